"""Line-level patching of source files.

Every mutation backs the file up first and rewrites it without newline
translation, so lines other than the target keep their exact bytes and
terminators. Failures are reported as RewriteResult values instead of
exceptions, except for a missing file which raises OrgiFileNotFoundError.
"""

from __future__ import annotations

import glob
import re
import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import structlog

from orgi.core.todo_extractor import TODO_KEYWORDS, grammar_for
from orgi.models.results import RewriteOutcome, RewriteResult
from orgi.models.source_reference import SourceReference
from orgi.utils.errors import InvalidOperationError, OrgiError, OrgiFileNotFoundError
from orgi.utils.lines import (
    line_terminator,
    read_source,
    split_lines_keepends,
    strip_terminator,
    write_source,
)

log = structlog.get_logger()

DEFAULT_BACKUP_DIR = Path(".orgi") / "backups"
DEFAULT_MAX_BACKUPS = 10
DEFAULT_DONE_NOTE = "Marked as done via orgi"

# An edit returns the new lines, or None with a message when nothing changes
LineEdit = Callable[[list[str]], tuple[list[str] | None, str]]


class SourceRewriter:
    """Applies identity markers and removals to source lines.

    Example:
        rewriter = SourceRewriter()
        result = rewriter.insert_identity(path, reference, issue.id)
        if not result.success:
            print(result.message)
    """

    KEYWORD_PATTERN = re.compile(
        r"\b(" + "|".join(TODO_KEYWORDS) + r"):[ \t]*", re.IGNORECASE
    )

    def __init__(
        self,
        backup_dir: Path | str | None = None,
        max_backups: int = DEFAULT_MAX_BACKUPS,
    ) -> None:
        """Initialize the rewriter.

        Args:
            backup_dir: Where backups go; defaults to ``.orgi/backups`` under
                the current directory. Created on first backup.
            max_backups: Backups kept per file name
        """
        if max_backups < 1:
            raise ValueError("max_backups must be at least 1")
        self.backup_dir = Path(backup_dir) if backup_dir else Path.cwd() / DEFAULT_BACKUP_DIR
        self.max_backups = max_backups

    def insert_identity(
        self, file_path: Path | str, reference: SourceReference, issue_id: str
    ) -> RewriteResult:
        """Rewrite ``KEYWORD: text`` to ``KEYWORD: [orgi:<id>] text``.

        A line that already carries a marker, or has no keyword, is left
        alone and reported as UNCHANGED.

        Raises:
            OrgiFileNotFoundError: If the file does not exist
        """
        path = self._require_file(file_path)

        def edit(lines: list[str]) -> tuple[list[str] | None, str]:
            index = self._line_index(lines, reference.line_number, path)
            line = lines[index]
            if "[orgi:" in line.lower():
                return None, "Line already has reference"

            match = self.KEYWORD_PATTERN.search(line, max(reference.column_number - 1, 0))
            if match is None:
                match = self.KEYWORD_PATTERN.search(line)
            if match is None:
                return None, "No TODO keyword found on line"

            marked = f"{match.group(1)}: [orgi:{issue_id}] "
            lines[index] = line[: match.start()] + marked + line[match.end() :]
            return lines, f"Inserted reference {issue_id}"

        return self._apply(path, "insert identity", edit)

    def remove_line(self, file_path: Path | str, line_number: int) -> RewriteResult:
        """Delete one physical line, terminator included.

        Raises:
            OrgiFileNotFoundError: If the file does not exist
        """
        path = self._require_file(file_path)

        def edit(lines: list[str]) -> tuple[list[str] | None, str]:
            index = self._line_index(lines, line_number, path)
            removed = lines.pop(index)
            return lines, f"Removed TODO line: {removed.strip()}"

        return self._apply(path, "remove line", edit)

    def comment_out_line(
        self, file_path: Path | str, line_number: int, note: str = DEFAULT_DONE_NOTE
    ) -> RewriteResult:
        """Turn a line into a comment and append ``note`` as a trailing comment.

        Raises:
            OrgiFileNotFoundError: If the file does not exist
        """
        path = self._require_file(file_path)
        grammar = grammar_for(path)
        prefix, suffix = grammar.line_prefix, grammar.line_suffix

        def wrap(text: str) -> str:
            return f"{prefix} {text} {suffix}" if suffix else f"{prefix} {text}"

        def edit(lines: list[str]) -> tuple[list[str] | None, str]:
            index = self._line_index(lines, line_number, path)
            line = lines[index]
            body = strip_terminator(line)
            content = body.strip()
            indent = body[: len(body) - len(body.lstrip())]
            lines[index] = f"{indent}{wrap(content)} {wrap(note)}{line_terminator(line)}"
            return lines, f"Commented out TODO line: {content}"

        return self._apply(path, "comment out line", edit)

    def create_backup(self, path: Path) -> Path:
        """Copy ``path`` to ``<backup_dir>/<name>.backup-<timestamp>``."""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        backup = self.backup_dir / f"{path.name}.backup-{stamp}"
        shutil.copy2(path, backup)
        log.debug("source_backup_created", path=str(path), backup=str(backup))
        self.prune_backups(path.name)
        return backup

    def prune_backups(self, file_name: str) -> None:
        """Keep the ``max_backups`` most recent backups of ``file_name``.

        Best-effort: failures are logged and never raised.
        """
        try:
            backups = sorted(
                self.backup_dir.glob(f"{glob.escape(file_name)}.backup-*"), reverse=True
            )
        except OSError as e:
            log.warning("backup_prune_failed", file=file_name, error=str(e))
            return

        for old in backups[self.max_backups :]:
            try:
                old.unlink()
            except OSError as e:
                log.warning("backup_prune_failed", file=str(old), error=str(e))

    def _apply(self, path: Path, operation: str, edit: LineEdit) -> RewriteResult:
        try:
            lines = split_lines_keepends(read_source(path))
            new_lines, message = edit(lines)
            if new_lines is None:
                log.info("source_rewrite_unchanged", path=str(path), operation=operation)
                return RewriteResult(path, RewriteOutcome.UNCHANGED, message)

            self.create_backup(path)
            write_source(path, "".join(new_lines))
        except (OrgiError, OSError, UnicodeError) as e:
            log.warning(
                "source_rewrite_failed",
                path=str(path),
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            return RewriteResult(path, RewriteOutcome.FAILED, f"Failed to {operation}: {e}")

        log.info("source_rewrite_applied", path=str(path), operation=operation)
        return RewriteResult(path, RewriteOutcome.APPLIED, message)

    @staticmethod
    def _require_file(file_path: Path | str) -> Path:
        path = Path(file_path)
        if not path.is_file():
            raise OrgiFileNotFoundError(f"Source file not found: {path}")
        return path

    @staticmethod
    def _line_index(lines: list[str], line_number: int, path: Path) -> int:
        if not 1 <= line_number <= len(lines):
            raise InvalidOperationError(
                f"Line number {line_number} is out of range for file {path}"
            )
        return line_number - 1
