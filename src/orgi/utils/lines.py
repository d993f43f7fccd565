"""Physical line handling shared by the parser, extractor and rewriter.

All three components must agree on what "line N" means, so they split text
the same way: on ``\\r\\n``, ``\\r`` or ``\\n`` only (``str.splitlines`` also
splits on form feeds and Unicode separators, which editors do not count).
"""

from __future__ import annotations

import re
from pathlib import Path

_LINE_PATTERN = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")
_TERMINATOR_PATTERN = re.compile(r"(\r\n|\r|\n)\Z")

BOM = "\ufeff"


def split_lines_keepends(text: str) -> list[str]:
    """Split text into physical lines, keeping each line's terminator.

    ``"".join(split_lines_keepends(text)) == text`` always holds.
    """
    return _LINE_PATTERN.findall(text)


def split_lines(text: str) -> list[str]:
    """Split text into physical lines without terminators."""
    return [strip_terminator(line) for line in split_lines_keepends(text)]


def strip_terminator(line: str) -> str:
    """Remove a trailing line terminator, if any."""
    return _TERMINATOR_PATTERN.sub("", line)


def line_terminator(line: str) -> str:
    """Return the terminator of a physical line (empty for the last line)."""
    match = _TERMINATOR_PATTERN.search(line)
    return match.group(1) if match else ""


def read_source(path: Path) -> str:
    """Read a file without newline translation.

    Undecodable bytes are kept as surrogate escapes so writing the text back
    with :func:`write_source` reproduces them exactly.
    """
    with path.open(encoding="utf-8", errors="surrogateescape", newline="") as f:
        return f.read()


def write_source(path: Path, text: str) -> None:
    """Write text produced by :func:`read_source` back to disk."""
    with path.open("w", encoding="utf-8", errors="surrogateescape", newline="") as f:
        f.write(text)
