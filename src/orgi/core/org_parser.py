"""Parser for org issue documents.

This module implements the OrgParser class, a line-at-a-time state machine
that turns an org document into Issue records. It supports:
- Headlines with state keyword, priority cookie, title and trailing tags
- A :PROPERTIES: drawer directly under the headline
- Free-form body text up to the next headline
- BOM-prefixed files and \\n, \\r\\n or \\r line endings

Parsing is fail-fast: the first error aborts the whole document and no
partial issue list is returned. All mutable parse state lives in a
ParseContext created per call, so a single parser can be shared.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import structlog

from orgi.core.timestamp import parse_timestamp
from orgi.models.issue import (
    CREATED_KEYS,
    SOURCE_COLUMN,
    SOURCE_KEYS,
    SOURCE_LINE,
    Issue,
    IssueState,
    OrgEntry,
    Priority,
    PropertyMap,
)
from orgi.utils.errors import (
    InvalidPropertyLineError,
    InvalidTimestampError,
    InvalidTimestampFormatError,
    MalformedHeadlineError,
    MissingRequiredPropertyError,
    OrgiFileNotFoundError,
    UnterminatedPropertiesDrawerError,
)
from orgi.utils.lines import BOM, read_source, split_lines

log = structlog.get_logger()


class ParserState(Enum):
    """Where the parser is relative to the current entry."""

    UNASSIGNED = "unassigned"
    HEADLINE = "headline"
    PROPERTIES = "properties"
    BODY = "body"


@dataclass
class PendingEntry:
    """Entry being accumulated until the next headline or EOF."""

    line_number: int
    level: int
    state: IssueState
    priority: Priority
    headline: str
    tags: tuple[str, ...]
    properties: PropertyMap = field(default_factory=PropertyMap)
    body_lines: list[str] = field(default_factory=list)


@dataclass
class ParseContext:
    """Mutable state of one parse."""

    state: ParserState = ParserState.UNASSIGNED
    line_number: int = 0
    pending: PendingEntry | None = None
    issues: list[Issue] = field(default_factory=list)


class OrgParser:
    """Parser for org issue documents.

    Example:
        parser = OrgParser()
        for issue in parser.parse_file(".orgi/orgi.org"):
            print(issue.id, issue.state.value, issue.title)
    """

    HEADLINE_PATTERN = re.compile(r"^(\*+)(.*)$")
    STATE_TOKEN_PATTERN = re.compile(r"[^\s\[]+")
    PRIORITY_COOKIE_PATTERN = re.compile(r"\[#([A-Za-z])\]")
    # A :tag1:tag2: group that starts after whitespace and ends the line
    TAG_GROUP_PATTERN = re.compile(r"(?<!\S)(:(?:[^:]*:)+)\s*$")
    PROPERTY_LINE_PATTERN = re.compile(r"^:([^:]*):(.*)$")

    PROPERTIES_MARKER = ":PROPERTIES:"
    END_MARKER = ":END:"

    def parse_file(self, path: Path | str) -> list[Issue]:
        """Parse an org document from disk.

        Args:
            path: Path to the org document

        Returns:
            Issues in document order

        Raises:
            OrgiFileNotFoundError: If the document does not exist
            OrgParseError: On the first malformed construct
        """
        path = Path(path)
        if not path.is_file():
            raise OrgiFileNotFoundError(f"Org file not found: {path}")

        issues = self.parse_text(read_source(path))
        log.debug("org_file_parsed", path=str(path), issues=len(issues))
        return issues

    def parse_text(self, text: str) -> list[Issue]:
        """Parse org document text.

        Raises:
            OrgParseError: On the first malformed construct
        """
        context = ParseContext()
        for number, line in enumerate(split_lines(text.removeprefix(BOM)), start=1):
            context.line_number = number
            self.feed_line(context, line)
        self.finish(context)
        return context.issues

    def feed_line(self, context: ParseContext, line: str) -> None:
        """Advance the state machine by one physical line."""
        if self.is_headline(line):
            if context.state is ParserState.PROPERTIES:
                raise UnterminatedPropertiesDrawerError(
                    "Unterminated properties drawer before next headline",
                    line_number=context.line_number,
                )
            if context.pending is not None:
                self.finalize_entry(context)
            context.pending = self.parse_headline(line, context.line_number)
            context.state = ParserState.HEADLINE
            return

        handlers: dict[ParserState, Callable[[ParseContext, str], None]] = {
            ParserState.UNASSIGNED: self._on_unassigned,
            ParserState.HEADLINE: self._on_headline,
            ParserState.PROPERTIES: self._on_properties,
            ParserState.BODY: self._on_body,
        }
        handlers[context.state](context, line)

    def finish(self, context: ParseContext) -> None:
        """Handle EOF: finalize the pending entry, if any."""
        if context.state is ParserState.PROPERTIES:
            raise UnterminatedPropertiesDrawerError(
                "Unterminated properties drawer at end of file",
                line_number=context.line_number,
            )
        if context.pending is not None:
            self.finalize_entry(context)

    def finalize_entry(self, context: ParseContext) -> Issue:
        """Turn the pending entry into an Issue and reset to UNASSIGNED.

        Raises:
            MissingRequiredPropertyError: If ID, a created timestamp, or part
                of a source reference is missing
            InvalidTimestampError: If the created timestamp does not decode
            InvalidPropertyLineError: If SOURCE_LINE/SOURCE_COLUMN are not
                positive integers
        """
        entry = context.pending
        if entry is None:
            raise ValueError("No pending entry to finalize")

        props = entry.properties
        where = entry.line_number

        entry_id = props.get("ID", "").strip()
        if not entry_id:
            raise MissingRequiredPropertyError(
                f"Entry '{entry.headline}' is missing required property ID",
                line_number=where,
            )

        raw_created = props.first(*CREATED_KEYS)
        if raw_created is None:
            raise MissingRequiredPropertyError(
                f"Entry '{entry_id}' is missing required property CREATED",
                line_number=where,
            )
        try:
            created_at = parse_timestamp(raw_created)
        except InvalidTimestampFormatError as e:
            raise InvalidTimestampError(
                f"Entry '{entry_id}' has an invalid created timestamp '{raw_created}': {e}",
                line_number=where,
            ) from e

        self._check_source_reference(entry_id, props, where)

        org_entry = OrgEntry(
            headline=entry.headline,
            level=entry.level,
            state=entry.state,
            priority=entry.priority,
            tags=entry.tags,
            properties=props,
            body="\n".join(entry.body_lines),
            line_number=where,
        )
        issue = Issue.from_org_entry(org_entry, created_at)
        context.issues.append(issue)
        context.pending = None
        context.state = ParserState.UNASSIGNED
        return issue

    @classmethod
    def is_headline(cls, line: str) -> bool:
        return line.startswith("*")

    def parse_headline(self, line: str, line_number: int = 0) -> PendingEntry:
        """Parse ``*** KEYWORD [#P] Title :tag1:tag2:``.

        Raises:
            MalformedHeadlineError: If the state keyword is missing or
                unknown, or the title is empty after removing tags
        """
        match = self.HEADLINE_PATTERN.match(line)
        if not match:
            raise MalformedHeadlineError(f"Expected headline: {line}", line_number=line_number)

        level = len(match.group(1))
        rest = match.group(2).lstrip()

        token_match = self.STATE_TOKEN_PATTERN.match(rest)
        if not token_match:
            raise MalformedHeadlineError(
                f"Expected issue state but found end of line: {line}",
                line_number=line_number,
            )
        token = token_match.group(0)
        state = IssueState.from_keyword(token)
        if state is None:
            raise MalformedHeadlineError(
                f"Unknown issue state '{token}' in headline: {line}",
                line_number=line_number,
            )
        rest = rest[token_match.end() :].lstrip()

        priority = Priority.NONE
        cookie = self.PRIORITY_COOKIE_PATTERN.match(rest)
        if cookie:
            parsed = Priority.parse(cookie.group(1))
            if parsed is not None and parsed is not Priority.NONE:
                priority = parsed
                rest = rest[cookie.end() :].lstrip()

        title = rest.strip()
        tags: tuple[str, ...] = ()
        tag_match = self.TAG_GROUP_PATTERN.search(title)
        if tag_match:
            tags = tuple(
                tag.strip() for tag in tag_match.group(1).split(":") if tag.strip()
            )
            title = title[: tag_match.start()].strip()

        if not title:
            raise MalformedHeadlineError(
                f"Headline cannot be empty: {line}", line_number=line_number
            )

        return PendingEntry(
            line_number=line_number,
            level=level,
            state=state,
            priority=priority,
            headline=title,
            tags=tags,
        )

    # -------------------------------------------------------------------------
    # State handlers
    # -------------------------------------------------------------------------

    def _on_unassigned(self, context: ParseContext, line: str) -> None:
        # Blank lines, # comments and preamble text before the first headline
        pass

    def _on_headline(self, context: ParseContext, line: str) -> None:
        pending = self._pending(context)
        stripped = line.strip()

        if stripped.upper() == self.PROPERTIES_MARKER:
            # Blank lines between the headline and its drawer are dropped
            pending.body_lines.clear()
            context.state = ParserState.PROPERTIES
        elif not stripped:
            pending.body_lines.append(line)
        else:
            pending.body_lines.append(line)
            context.state = ParserState.BODY

    def _on_properties(self, context: ParseContext, line: str) -> None:
        pending = self._pending(context)
        stripped = line.strip()

        if stripped.upper() == self.END_MARKER:
            context.state = ParserState.BODY
            return

        if not stripped.startswith(":"):
            # Stray text inside the drawer
            return

        match = self.PROPERTY_LINE_PATTERN.match(stripped)
        if not match:
            raise InvalidPropertyLineError(
                f"Invalid property line format: {line}", line_number=context.line_number
            )
        key = match.group(1).strip()
        if not key:
            raise InvalidPropertyLineError(
                f"Property key cannot be empty: {line}", line_number=context.line_number
            )
        pending.properties[key] = match.group(2).strip()

    def _on_body(self, context: ParseContext, line: str) -> None:
        self._pending(context).body_lines.append(line)

    @staticmethod
    def _pending(context: ParseContext) -> PendingEntry:
        if context.pending is None:
            raise ValueError(f"Parser reached state {context.state.value} without an entry")
        return context.pending

    @staticmethod
    def _check_source_reference(entry_id: str, props: PropertyMap, where: int) -> None:
        present = [key for key in SOURCE_KEYS if key in props]
        if not present:
            return

        missing = [key for key in SOURCE_KEYS if key not in props]
        if missing:
            raise MissingRequiredPropertyError(
                f"Entry '{entry_id}' has an incomplete source reference, missing: "
                + ", ".join(missing),
                line_number=where,
            )

        for key in (SOURCE_LINE, SOURCE_COLUMN):
            value = props[key].strip()
            if not value.isdecimal() or int(value) < 1:
                raise InvalidPropertyLineError(
                    f"Entry '{entry_id}' has a non-numeric {key}: '{props[key]}'",
                    line_number=where,
                )


def parse_org_file(path: Path | str) -> list[Issue]:
    """Parse an org document with a fresh OrgParser."""
    return OrgParser().parse_file(path)
