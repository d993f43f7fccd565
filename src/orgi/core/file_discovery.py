"""Discovery of source files to scan for TODO comments.

Discovery looks at the top level of one directory only. Candidate files are
filtered by extension and then by exclude patterns matched against the path
relative to the scanned directory.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from pathlib import Path

import structlog

from orgi.config.schema import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_EXTENSIONS
from orgi.utils.errors import DirectoryNotFoundError

log = structlog.get_logger()

_GLOB_CHARS = frozenset("*?[")


def _split(path: str) -> list[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment]


def _segment_matches(segment: str, pattern: str) -> bool:
    if pattern == "*":
        return True
    if _GLOB_CHARS.intersection(pattern):
        return fnmatch.fnmatchcase(segment.lower(), pattern.lower())
    return segment.lower() == pattern.lower()


def _match_segments(path: list[str], pattern: list[str]) -> bool:
    if not pattern:
        return not path

    head, rest = pattern[0], pattern[1:]
    if head == "**":
        # Zero or more whole segments
        return any(_match_segments(path[i:], rest) for i in range(len(path) + 1))

    if not path or not _segment_matches(path[0], head):
        return False
    return _match_segments(path[1:], rest)


def matches_pattern(relative_path: str, pattern: str) -> bool:
    """Check a relative path against a segment-wise glob.

    ``*`` matches exactly one segment, ``**`` zero or more segments, and any
    other segment matches case-insensitively (with ``fnmatch`` wildcards
    confined to that segment).

    Args:
        relative_path: Path relative to the scanned directory, either separator
        pattern: Glob pattern such as ``build/**`` or ``**/*.test.*``

    Returns:
        True if the whole path matches the pattern
    """
    return _match_segments(_split(relative_path), _split(pattern))


class SourceFileDiscovery:
    """Lists candidate source files in a directory."""

    def discover(
        self,
        directory: Path | str,
        include_extensions: Iterable[str] | None = None,
        exclude_patterns: Iterable[str] | None = None,
    ) -> list[Path]:
        """Return matching regular files in ``directory``, sorted by path.

        Args:
            directory: Directory to scan (not recursed into)
            include_extensions: Allowed suffixes such as ``".py"``; defaults
                to DEFAULT_INCLUDE_EXTENSIONS
            exclude_patterns: Globs to drop; defaults to DEFAULT_EXCLUDE_PATTERNS

        Raises:
            DirectoryNotFoundError: If ``directory`` does not exist
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise DirectoryNotFoundError(f"Directory not found: {directory}")

        if include_extensions is None:
            include_extensions = DEFAULT_INCLUDE_EXTENSIONS
        extensions = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in include_extensions
        }
        patterns = list(exclude_patterns if exclude_patterns is not None else DEFAULT_EXCLUDE_PATTERNS)

        try:
            entries = list(directory.iterdir())
        except PermissionError as e:
            log.warning("source_directory_unreadable", path=str(directory), error=str(e))
            return []

        files = []
        for entry in entries:
            if not entry.is_file() or entry.suffix.lower() not in extensions:
                continue
            relative = entry.relative_to(directory).as_posix()
            if any(matches_pattern(relative, pattern) for pattern in patterns):
                log.debug("source_file_excluded", path=relative)
                continue
            files.append(entry)

        files.sort(key=lambda p: str(p))
        log.debug("source_files_discovered", path=str(directory), count=len(files))
        return files
