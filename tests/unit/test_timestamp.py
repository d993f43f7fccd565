"""Tests for the org timestamp codec."""

from datetime import datetime

import pytest

from orgi.core.timestamp import format_timestamp, is_valid_timestamp, parse_timestamp
from orgi.utils.errors import InvalidTimestampFormatError


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_active_with_weekday_and_time(self) -> None:
        """Test the canonical active form."""
        assert parse_timestamp("<2025-12-18 Thu 14:30>") == datetime(2025, 12, 18, 14, 30)

    def test_inactive_date_only(self) -> None:
        """Test that a date-only inactive timestamp is midnight."""
        assert parse_timestamp("[2025-12-18 Thu]") == datetime(2025, 12, 18)

    def test_without_weekday(self) -> None:
        """Test that the weekday is optional."""
        assert parse_timestamp("<2025-12-18 09:05>") == datetime(2025, 12, 18, 9, 5)

    def test_time_range_keeps_start(self) -> None:
        """Test that only the start of a time range is kept."""
        assert parse_timestamp("<2025-12-18 Thu 14:30-15:45>") == datetime(2025, 12, 18, 14, 30)

    def test_surrounding_whitespace_ignored(self) -> None:
        """Test that whitespace around the literal is ignored."""
        assert parse_timestamp("  <2025-01-02>  ") == datetime(2025, 1, 2)

    def test_single_digit_hour(self) -> None:
        """Test that hours may have one digit."""
        assert parse_timestamp("<2025-01-02 Thu 9:15>") == datetime(2025, 1, 2, 9, 15)

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_rejected(self, text: str) -> None:
        """Test that empty input fails with InvalidTimestampFormatError."""
        with pytest.raises(InvalidTimestampFormatError):
            parse_timestamp(text)

    @pytest.mark.parametrize(
        "text",
        [
            "2025-12-18",
            "<2025-12-18",
            "<2025/12/18>",
            "<2025-12-18 Thu 14:30]",
            "{2025-12-18}",
        ],
    )
    def test_malformed_rejected(self, text: str) -> None:
        """Test that text without a matching bracket shape is rejected."""
        with pytest.raises(InvalidTimestampFormatError):
            parse_timestamp(text)

    @pytest.mark.parametrize(
        "text",
        [
            "<2025-13-01>",
            "<2025-02-30>",
            "<2025-04-31 Thu>",
            "<2025-12-18 Thu 24:00>",
            "<2025-12-18 Thu 12:60>",
        ],
    )
    def test_calendar_invalid_rejected(self, text: str) -> None:
        """Test that well-shaped but impossible values are rejected."""
        with pytest.raises(InvalidTimestampFormatError):
            parse_timestamp(text)

    @pytest.mark.parametrize(
        "text",
        ["<2025-12-18 Thu +1w>", "<2025-12-18 Thu 14:30 ++1d>", "<2025-12-18 --2d>"],
    )
    def test_repeaters_fail_cleanly(self, text: str) -> None:
        """Test that repeaters and delays raise rather than crash."""
        with pytest.raises(InvalidTimestampFormatError):
            parse_timestamp(text)

    def test_error_is_value_error(self) -> None:
        """Test that codec errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp("not a timestamp")


class TestIsValidTimestamp:
    """Tests for is_valid_timestamp."""

    def test_valid(self) -> None:
        """Test that a valid literal is accepted."""
        assert is_valid_timestamp("<2025-12-18 Thu 14:30>") is True

    @pytest.mark.parametrize("text", ["", "<2025-13-01>", "<2025-12-18 +1w>", "garbage"])
    def test_invalid(self, text: str) -> None:
        """Test that invalid literals return False."""
        assert is_valid_timestamp(text) is False

    def test_none_does_not_raise(self) -> None:
        """Test that None is reported invalid instead of raising."""
        assert is_valid_timestamp(None) is False  # type: ignore[arg-type]


class TestFormatTimestamp:
    """Tests for format_timestamp."""

    def test_active_format(self) -> None:
        """Test the rendered active form."""
        assert format_timestamp(datetime(2025, 12, 18, 14, 30)) == "<2025-12-18 Thu 14:30>"

    def test_inactive_format(self) -> None:
        """Test the rendered inactive form."""
        assert format_timestamp(datetime(2025, 12, 21, 8, 0), active=False) == "[2025-12-21 Sun 08:00]"

    def test_round_trip_minute_precision(self) -> None:
        """Test that parsing a formatted timestamp keeps date, hour and minute."""
        value = datetime(2024, 2, 29, 23, 59, 42)
        assert parse_timestamp(format_timestamp(value)) == value.replace(second=0)
