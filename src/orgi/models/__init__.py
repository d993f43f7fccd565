"""Data models and transfer objects."""

from .issue import (
    CREATED_KEYS,
    SOURCE_COLUMN,
    SOURCE_FILE,
    SOURCE_KEYS,
    SOURCE_LINE,
    SOURCE_UUID,
    Issue,
    IssueState,
    OrgEntry,
    Priority,
    PropertyMap,
)
from .results import (
    FindingKind,
    GatherResult,
    RewriteOutcome,
    RewriteResult,
    SyncResult,
    ValidationFinding,
    ValidationResult,
)
from .source_reference import SourceReference, relative_to_cwd

__all__ = [
    # Issue models
    "IssueState",
    "Priority",
    "PropertyMap",
    "OrgEntry",
    "Issue",
    "CREATED_KEYS",
    "SOURCE_FILE",
    "SOURCE_LINE",
    "SOURCE_COLUMN",
    "SOURCE_UUID",
    "SOURCE_KEYS",
    # Source models
    "SourceReference",
    "relative_to_cwd",
    # Result models
    "RewriteOutcome",
    "RewriteResult",
    "GatherResult",
    "SyncResult",
    "FindingKind",
    "ValidationFinding",
    "ValidationResult",
]
