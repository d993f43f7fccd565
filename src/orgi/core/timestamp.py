"""Codec for org timestamp literals.

Supports active ``<2025-12-18 Thu 14:30>`` and inactive ``[2025-12-18 Thu]``
timestamps, each with an optional weekday and an optional ``HH:MM`` or
``HH:MM-HH:MM`` time. Only the start time is kept. Repeaters and warning
delays (``+1w``, ``++1d``, ``--2d``) are not supported and are rejected with
InvalidTimestampFormatError rather than crashing.
"""

from __future__ import annotations

import re
from datetime import datetime

from orgi.utils.errors import InvalidTimestampFormatError

_BODY = (
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:\s+(?P<weekday>[^\W\d_]+\.?))?"
    r"(?:\s+(?P<hour>\d{1,2}):(?P<minute>\d{2})(?:-(?P<end_hour>\d{1,2}):(?P<end_minute>\d{2}))?)?"
    r"\s*"
)

ACTIVE_TIMESTAMP = re.compile(rf"^<{_BODY}>$")
INACTIVE_TIMESTAMP = re.compile(rf"^\[{_BODY}\]$")

# Locale-independent weekday abbreviations, Monday first
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def parse_timestamp(text: str) -> datetime:
    """Decode an org timestamp literal.

    Args:
        text: Timestamp literal, surrounding whitespace allowed

    Returns:
        Naive datetime of the start date/time (midnight if no time given)

    Raises:
        InvalidTimestampFormatError: If the text is empty, does not match
            either bracket style, or names an impossible date or time
    """
    if text is None or not text.strip():
        raise InvalidTimestampFormatError("Timestamp cannot be empty")

    candidate = text.strip()
    match = ACTIVE_TIMESTAMP.match(candidate) or INACTIVE_TIMESTAMP.match(candidate)
    if not match:
        raise InvalidTimestampFormatError(f"Invalid org timestamp format: {text}")

    hour = int(match.group("hour")) if match.group("hour") else 0
    minute = int(match.group("minute")) if match.group("minute") else 0

    try:
        return datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            hour,
            minute,
        )
    except ValueError as e:
        raise InvalidTimestampFormatError(
            f"Invalid date/time values in timestamp {candidate}: {e}"
        ) from e


def is_valid_timestamp(text: str) -> bool:
    """Return True if ``text`` decodes as an org timestamp. Never raises."""
    try:
        parse_timestamp(text)
    except (InvalidTimestampFormatError, TypeError, AttributeError):
        return False
    return True


def format_timestamp(value: datetime, active: bool = True) -> str:
    """Render a datetime as ``<YYYY-MM-DD Ddd HH:MM>`` (or ``[...]``)."""
    body = f"{value:%Y-%m-%d} {WEEKDAYS[value.weekday()]} {value:%H:%M}"
    return f"<{body}>" if active else f"[{body}]"
