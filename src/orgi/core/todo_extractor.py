"""Extraction of TODO-style comments from source files.

Each file extension maps to a CommentGrammar: an ordered list of
case-insensitive patterns that capture ``(KEYWORD, text)`` from a single
physical line. Unknown extensions fall back to the C-family grammar.

Lines that already carry an ``[orgi:<id>]`` marker have been gathered
before. They are skipped by default so gathering is idempotent, and reported
with ``orgi_id`` set when ``include_gathered`` is requested.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from orgi.models.source_reference import SourceReference
from orgi.utils.errors import OrgiFileNotFoundError
from orgi.utils.lines import BOM, read_source, split_lines

log = structlog.get_logger()

TODO_KEYWORDS = ("TODO", "FIXME", "HACK", "BUG", "NOTE", "XXX", "REVIEW")

_KEYWORD_GROUP = "(" + "|".join(TODO_KEYWORDS) + ")"

ORGI_MARKER_PATTERN = re.compile(r"\[orgi:\s*([^\]\s]*)\s*\]", re.IGNORECASE)


def _line_pattern(opener: str) -> re.Pattern[str]:
    """Comment running to end of line, e.g. ``// TODO: text``."""
    return re.compile(rf"{opener}\s*{_KEYWORD_GROUP}:\s*(.+)", re.IGNORECASE)


def _block_pattern(opener: str, closer: str) -> re.Pattern[str]:
    """Block comment closed on the same line or continuing past it."""
    return re.compile(
        rf"{opener}\s*{_KEYWORD_GROUP}:\s*(.*?)\s*(?:{closer}|$)", re.IGNORECASE
    )


@dataclass(frozen=True)
class CommentGrammar:
    """How TODO comments are written in one family of languages.

    Attributes:
        name: Grammar family name
        patterns: Ordered patterns capturing (keyword, text)
        line_prefix: Token that starts a comment (used when commenting out)
        line_suffix: Token that closes it, for block-only languages
        block_start: Multi-line comment opener, if any
        block_end: Multi-line comment closer, if any
    """

    name: str
    patterns: tuple[re.Pattern[str], ...]
    line_prefix: str
    line_suffix: str = ""
    block_start: str | None = None
    block_end: str | None = None


C_FAMILY = CommentGrammar(
    name="c",
    patterns=(_line_pattern("//"), _block_pattern(r"/\*", r"\*/")),
    line_prefix="//",
    block_start="/*",
    block_end="*/",
)

PYTHON = CommentGrammar(
    name="python",
    patterns=(
        _line_pattern("#"),
        _block_pattern("'''", "'''"),
        _block_pattern('"""', '"""'),
    ),
    line_prefix="#",
)

HASH = CommentGrammar(name="hash", patterns=(_line_pattern("#"),), line_prefix="#")

RUBY = CommentGrammar(
    name="ruby",
    patterns=(_line_pattern("#"),),
    line_prefix="#",
    block_start="=begin",
    block_end="=end",
)

POWERSHELL = CommentGrammar(
    name="powershell",
    patterns=(_line_pattern("#"), _block_pattern("<#", "#>")),
    line_prefix="#",
    block_start="<#",
    block_end="#>",
)

PHP = CommentGrammar(
    name="php",
    patterns=(_line_pattern("//"), _line_pattern("#")),
    line_prefix="//",
    block_start="/*",
    block_end="*/",
)

DASH = CommentGrammar(
    name="dash",
    patterns=(_line_pattern("--"),),
    line_prefix="--",
    block_start="/*",
    block_end="*/",
)

LUA = CommentGrammar(
    name="lua",
    patterns=(_line_pattern("--"),),
    line_prefix="--",
    block_start="--[[",
    block_end="]]",
)

MARKUP = CommentGrammar(
    name="markup",
    patterns=(_block_pattern("<!--", "-->"),),
    line_prefix="<!--",
    line_suffix="-->",
    block_start="<!--",
    block_end="-->",
)

CSS = CommentGrammar(
    name="css",
    patterns=(_block_pattern(r"/\*", r"\*/"),),
    line_prefix="/*",
    line_suffix="*/",
    block_start="/*",
    block_end="*/",
)

GRAMMARS: dict[str, CommentGrammar] = {
    ".cs": C_FAMILY,
    ".js": C_FAMILY,
    ".ts": C_FAMILY,
    ".jsx": C_FAMILY,
    ".tsx": C_FAMILY,
    ".java": C_FAMILY,
    ".cpp": C_FAMILY,
    ".c": C_FAMILY,
    ".h": C_FAMILY,
    ".hpp": C_FAMILY,
    ".go": C_FAMILY,
    ".rs": C_FAMILY,
    ".swift": C_FAMILY,
    ".dart": C_FAMILY,
    ".scala": C_FAMILY,
    ".kt": C_FAMILY,
    ".scss": C_FAMILY,
    ".less": C_FAMILY,
    ".py": PYTHON,
    ".rb": RUBY,
    ".php": PHP,
    ".sh": HASH,
    ".bash": HASH,
    ".pl": HASH,
    ".ps1": POWERSHELL,
    ".lua": LUA,
    ".sql": DASH,
    ".html": MARKUP,
    ".xml": MARKUP,
    ".css": CSS,
}


def grammar_for(path: Path | str) -> CommentGrammar:
    """Return the comment grammar for a file, C-family if unknown."""
    return GRAMMARS.get(Path(path).suffix.lower(), C_FAMILY)


def comment_style_name(path: Path | str) -> str:
    """Return the upper-cased extension (``"PY"``), or ``"UNKNOWN"``."""
    suffix = Path(path).suffix.lower()
    return suffix[1:].upper() if suffix in GRAMMARS else "UNKNOWN"


class SourceTodoExtractor:
    """Finds TODO comments in source files.

    Example:
        extractor = SourceTodoExtractor()
        for ref in extractor.extract_many(paths):
            print(ref.relative_path, ref.line_number, ref.full_todo_text)
    """

    def extract(self, path: Path | str, include_gathered: bool = False) -> list[SourceReference]:
        """Extract TODO references from one file.

        Args:
            path: Source file
            include_gathered: Also report lines carrying an ``[orgi:...]`` marker

        Returns:
            References in line order, then pattern order within a line

        Raises:
            OrgiFileNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise OrgiFileNotFoundError(f"Source file not found: {path}")

        return self.extract_from_text(read_source(path), path, include_gathered)

    def extract_many(
        self, paths: Iterable[Path | str], include_gathered: bool = False
    ) -> list[SourceReference]:
        """Extract from several files; a failing file is logged and skipped."""
        references: list[SourceReference] = []
        for path in paths:
            try:
                references.extend(self.extract(path, include_gathered))
            except (OSError, UnicodeError) as e:
                log.warning(
                    "source_file_extract_failed",
                    path=str(path),
                    error=str(e),
                    error_type=type(e).__name__,
                )
        log.debug("source_todos_extracted", count=len(references))
        return references

    def extract_from_text(
        self, text: str, path: Path | str, include_gathered: bool = False
    ) -> list[SourceReference]:
        """Extract TODO references from in-memory file content.

        ``path`` selects the grammar and is recorded on each reference.
        """
        path = Path(path)
        grammar = grammar_for(path)
        style = comment_style_name(path)

        references: list[SourceReference] = []
        for number, line in enumerate(split_lines(text.removeprefix(BOM)), start=1):
            references.extend(
                self._extract_line(line, number, path, grammar, style, include_gathered)
            )
        return references

    @staticmethod
    def _extract_line(
        line: str,
        line_number: int,
        path: Path,
        grammar: CommentGrammar,
        style: str,
        include_gathered: bool,
    ) -> list[SourceReference]:
        marker = ORGI_MARKER_PATTERN.search(line)
        if marker is None and "[orgi:" in line.lower():
            # Unterminated marker still counts as gathered
            orgi_id: str | None = ""
        else:
            orgi_id = marker.group(1) if marker else None

        if orgi_id is not None and not include_gathered:
            return []

        references = []
        for pattern in grammar.patterns:
            for match in pattern.finditer(line):
                text = match.group(2).strip()
                if orgi_id is not None:
                    text = ORGI_MARKER_PATTERN.sub("", text, count=1).strip()
                if not text:
                    continue
                references.append(
                    SourceReference(
                        file_path=path,
                        line_number=line_number,
                        column_number=match.start() + 1,
                        original_line=line,
                        todo_keyword=match.group(1).upper(),
                        todo_text=text,
                        comment_style=style,
                        orgi_id=orgi_id,
                    )
                )
        return references
