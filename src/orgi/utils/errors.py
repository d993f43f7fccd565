"""Error taxonomy for the orgi synchronization engine.

Document parse errors are fail-fast: the first one aborts the parse and no
partial issue list is produced. File and directory errors double as the
matching builtin exceptions so callers may catch either.
"""

from __future__ import annotations


class OrgiError(Exception):
    """Base exception for all orgi errors."""


# =============================================================================
# Document parse errors
# =============================================================================


class OrgParseError(OrgiError):
    """Failed to parse an org document.

    Attributes:
        line_number: 1-based line where the error was detected, if known.
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class MalformedHeadlineError(OrgParseError):
    """Headline has an unknown/missing state keyword or an empty title."""


class UnterminatedPropertiesDrawerError(OrgParseError):
    """A :PROPERTIES: drawer reached a new headline or EOF without :END:."""


class MissingRequiredPropertyError(OrgParseError):
    """An entry lacks ID, a created timestamp, or part of a source reference."""


class InvalidTimestampError(OrgParseError):
    """A created timestamp property could not be decoded."""


class InvalidPropertyLineError(OrgParseError):
    """A line inside a properties drawer is not a valid :KEY: value line."""


# =============================================================================
# Codec, file and rewrite errors
# =============================================================================


class InvalidTimestampFormatError(OrgiError, ValueError):
    """Text is not a valid org timestamp literal."""


class OrgiFileNotFoundError(OrgiError, FileNotFoundError):
    """A document or source file does not exist."""


class DirectoryNotFoundError(OrgiError, FileNotFoundError):
    """A directory to scan does not exist."""


class InvalidOperationError(OrgiError, ValueError):
    """A rewrite targeted a line outside the file."""


__all__ = [
    "DirectoryNotFoundError",
    "InvalidOperationError",
    "InvalidPropertyLineError",
    "InvalidTimestampError",
    "InvalidTimestampFormatError",
    "MalformedHeadlineError",
    "MissingRequiredPropertyError",
    "OrgParseError",
    "OrgiError",
    "OrgiFileNotFoundError",
    "UnterminatedPropertiesDrawerError",
]
