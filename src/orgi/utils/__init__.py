"""Utility functions and helpers.

- errors: Exception taxonomy
- lines: Physical line splitting and newline-preserving file I/O
- logging: Structured logging configuration
"""

from orgi.utils.errors import (
    DirectoryNotFoundError,
    InvalidOperationError,
    OrgiError,
    OrgiFileNotFoundError,
    OrgParseError,
)
from orgi.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
)

__all__ = [
    # Errors
    "DirectoryNotFoundError",
    "InvalidOperationError",
    "OrgParseError",
    "OrgiError",
    "OrgiFileNotFoundError",
    # Logging
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    "bind_context",
    "clear_context",
    "configure_logging",
]
