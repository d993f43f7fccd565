"""Reporting structures returned by the rewriter and synchronizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .issue import Issue
from .source_reference import SourceReference


class RewriteOutcome(Enum):
    """What a single rewrite did to its target file."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class RewriteResult:
    """Result of one line-level rewrite."""

    file_path: Path
    outcome: RewriteOutcome
    message: str

    @property
    def success(self) -> bool:
        return self.outcome is not RewriteOutcome.FAILED

    @property
    def changed(self) -> bool:
        return self.outcome is RewriteOutcome.APPLIED


@dataclass
class GatherResult:
    """Outcome of gathering source TODOs into the org document."""

    source_files_scanned: int = 0
    todos_found: int = 0
    existing_issues_found: int = 0
    matched_issues: int = 0
    unmatched_todos: int = 0
    new_issues_created: int = 0
    files_modified: int = 0
    dry_run: bool = False
    new_issues: list[Issue] = field(default_factory=list)
    rewrite_results: list[RewriteResult] = field(default_factory=list)

    @property
    def rewrite_failures(self) -> list[RewriteResult]:
        return [result for result in self.rewrite_results if not result.success]


@dataclass
class SyncResult:
    """Outcome of pushing completed issues back into source files."""

    total_issues_checked: int = 0
    completed_source_issues_found: int = 0
    todos_removed: int = 0
    todos_skipped: int = 0
    files_modified: int = 0
    rewrite_results: list[RewriteResult] = field(default_factory=list)


class FindingKind(Enum):
    """Kinds of drift between the document and the source tree."""

    SOURCE_TODO_MISSING = "source_todo_missing"
    ORGI_ISSUE_MISSING = "orgi_issue_missing"


@dataclass(frozen=True)
class ValidationFinding:
    """One drift finding."""

    kind: FindingKind
    message: str
    issue: Issue | None = None
    source_todo: SourceReference | None = None


@dataclass
class ValidationResult:
    """Outcome of comparing the document against the source tree."""

    findings: list[ValidationFinding] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.findings

    def of_kind(self, kind: FindingKind) -> list[ValidationFinding]:
        return [finding for finding in self.findings if finding.kind is kind]
