"""Data models for TODO comments found in source files."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path


def relative_to_cwd(path: Path | str) -> str:
    """Return ``path`` relative to the working directory, POSIX-style.

    Paths outside the working directory are returned absolute.
    """
    resolved = Path(path).resolve()
    try:
        return resolved.relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return resolved.as_posix()


@dataclass(frozen=True)
class SourceReference:
    """A TODO comment occurrence in a source file.

    References are recomputed on every scan; their identity for matching is
    ``(relative_path, line_number)``.
    """

    file_path: Path
    line_number: int  # 1-based
    column_number: int  # 1-based start of the comment match
    original_line: str
    todo_keyword: str  # e.g., "FIXME"
    todo_text: str
    comment_style: str  # e.g., "PY", "UNKNOWN"
    orgi_id: str | None = None  # Set when the line already carries [orgi:...]

    @property
    def relative_path(self) -> str:
        return relative_to_cwd(self.file_path)

    @property
    def full_todo_text(self) -> str:
        return f"{self.todo_keyword}: {self.todo_text}"

    @property
    def content_hash(self) -> str:
        """Stable hash of keyword and text, stored as SOURCE_UUID."""
        digest = hashlib.sha256(f"{self.todo_keyword}:{self.todo_text}".encode("utf-8", "surrogateescape"))
        return digest.hexdigest()[:16]

    @property
    def is_gathered(self) -> bool:
        return self.orgi_id is not None
