"""Serialization of issues back into the org document.

The document is only ever appended to: existing content is never re-read
or re-serialized, so hand edits, comments and formatting survive every
write.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import structlog

from orgi.core.org_parser import OrgParser
from orgi.core.timestamp import format_timestamp
from orgi.models.issue import CREATED_KEYS, Issue, IssueState, Priority, PropertyMap
from orgi.utils.errors import MalformedHeadlineError

log = structlog.get_logger()

BODY_INDENT = "  "

# Written explicitly at the top of every drawer
_LEADING_KEYS = {"ID", *(key.upper() for key in CREATED_KEYS)}

# Characters that let headline text be read as a cookie or tag group
_MARKUP_CHARS = re.compile(r"[:\[\]]")

_HEADLINE_PARSER = OrgParser()


def _single_line(value: str) -> str:
    return " ".join(value.splitlines()).strip()


def _compose_headline(issue: Issue, title: str) -> str:
    parts = ["*" * max(issue.level, 1), issue.state.value]
    if issue.priority is not Priority.NONE:
        parts.append(f"[#{issue.priority.value}]")
    parts.append(title)
    if issue.tags:
        parts.append(":" + ":".join(issue.tags) + ":")
    return " ".join(parts)


def _reads_back(issue: Issue, headline: str) -> bool:
    try:
        parsed = _HEADLINE_PARSER.parse_headline(headline)
    except MalformedHeadlineError:
        return False
    return parsed.priority is issue.priority and list(parsed.tags) == issue.tags


def headline_title(issue: Issue) -> str:
    """Return the title text to put in the headline.

    A title the parser would read back as a priority cookie or as tags
    (``[#A] check``, ``:wip:``) loses its ``:``, ``[`` and ``]``
    characters. The exact title is kept in the ``TITLE`` property.
    """
    title = _single_line(issue.title)
    if title and _reads_back(issue, _compose_headline(issue, title)):
        return title
    plain = " ".join(_MARKUP_CHARS.sub(" ", title).split())
    return plain or issue.id


def render_headline(issue: Issue) -> str:
    """Render ``* KEYWORD [#P] Title :tag1:tag2:``."""
    return _compose_headline(issue, headline_title(issue))


def render_issue(issue: Issue) -> str:
    """Render one issue as an org entry ending with a blank line.

    The drawer lists ``ID`` and ``CREATED`` first, then every other property
    in insertion order. A ``TITLE`` property is added when the headline
    cannot show the title as is. Description lines are indented so none of
    them can start a headline.
    """
    title = headline_title(issue)
    lines = [_compose_headline(issue, title), f"{BODY_INDENT}:PROPERTIES:"]
    lines.append(f"{BODY_INDENT}:ID: {issue.id}")
    lines.append(f"{BODY_INDENT}:CREATED: {format_timestamp(issue.created_at)}")
    if title != _single_line(issue.title) and "TITLE" not in issue.properties:
        lines.append(f"{BODY_INDENT}:TITLE: {_single_line(issue.title)}")

    for key, value in issue.properties.items():
        if key.upper() in _LEADING_KEYS:
            continue
        lines.append(f"{BODY_INDENT}:{key}: {_single_line(value)}".rstrip())
    lines.append(f"{BODY_INDENT}:END:")
    lines.append("")

    if issue.description:
        for line in issue.description.splitlines():
            lines.append(f"{BODY_INDENT}{line}" if line.strip() else "")
        lines.append("")

    return "\n".join(lines) + "\n"


def _ends_with_newline(path: Path) -> bool:
    with path.open("rb") as f:
        f.seek(0, 2)
        if f.tell() == 0:
            return True
        f.seek(-1, 2)
        return f.read(1) in (b"\n", b"\r")


def append_issues(path: Path | str, issues: Iterable[Issue]) -> int:
    """Append rendered issues to the document.

    Args:
        path: Org document path; parent directories are created
        issues: Issues to append, in order

    Returns:
        Number of issues appended
    """
    path = Path(path)
    rendered = [render_issue(issue) for issue in issues]
    if not rendered:
        return 0

    path.parent.mkdir(parents=True, exist_ok=True)
    prefix = ""
    if path.exists() and not _ends_with_newline(path):
        prefix = "\n"

    with path.open("a", encoding="utf-8", errors="surrogateescape", newline="") as f:
        f.write(prefix + "".join(rendered))

    log.info("org_issues_appended", path=str(path), count=len(rendered))
    return len(rendered)


def init_document(path: Path | str) -> bool:
    """Create an empty document if none exists.

    Returns:
        True if the document was created, False if it already existed
    """
    path = Path(path)
    if path.exists():
        log.debug("org_document_exists", path=str(path))
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()
    log.info("org_document_initialized", path=str(path))
    return True


def new_issue(
    title: str,
    priority: Priority = Priority.NONE,
    state: IssueState = IssueState.TODO,
    tags: Iterable[str] = (),
    body: str = "",
    now: datetime | None = None,
) -> Issue:
    """Build a manually added issue with a ``task-YYYYMMDDHHMMSS`` id.

    Raises:
        ValueError: If the title is empty or is only a ``:tag:`` group
    """
    now = now or datetime.now()
    title = _single_line(title)
    if not title:
        raise ValueError("Title is required")
    if OrgParser.TAG_GROUP_PATTERN.match(title):
        raise ValueError(f"Title cannot consist only of tags: {title}")

    properties = PropertyMap()
    properties["ID"] = f"task-{now:%Y%m%d%H%M%S}"
    properties["TITLE"] = title
    properties["CREATED"] = format_timestamp(now)

    return Issue(
        id=properties["ID"],
        title=title,
        description=body.strip(),
        created_at=now.replace(second=0, microsecond=0),
        state=state,
        priority=priority,
        tags=[tag.strip() for tag in tags if tag.strip()],
        properties=properties,
    )
