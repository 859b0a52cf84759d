"""Tests for datetime parsing service."""

from datetime import date, datetime, timezone

import pytest

from gitblog.services.datetime_service import (
    date_from_filename,
    format_date,
    now_utc,
    parse_datetime,
)


class TestDatetimeParsing:
    def test_parse_full_format(self) -> None:
        result = parse_datetime("2026-02-02 22:21:29.975359+00")
        assert (result.year, result.month, result.day) == (2026, 2, 2)
        assert (result.hour, result.minute) == (22, 21)

    def test_parse_date_only(self) -> None:
        result = parse_datetime("2026-02-02")
        assert (result.year, result.month, result.day) == (2026, 2, 2)
        assert (result.hour, result.minute) == (0, 0)
        assert result.tzinfo is not None

    def test_parse_iso_with_offset(self) -> None:
        result = parse_datetime("2026-03-01T08:15:00Z")
        assert result.utcoffset() is not None
        assert result.hour == 8

    def test_parse_date_object(self) -> None:
        result = parse_datetime(date(2025, 12, 31))
        assert (result.year, result.month, result.day) == (2025, 12, 31)
        assert result.tzinfo is not None

    def test_parse_datetime_object(self) -> None:
        dt = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert parse_datetime(dt) == dt

    def test_parse_datetime_naive_adds_tz(self) -> None:
        result = parse_datetime(datetime(2026, 1, 1, 12, 0), default_tz="UTC")
        assert result.tzinfo is not None

    def test_parse_garbage_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid date"):
            parse_datetime("not a date")


class TestFilenameDates:
    def test_date_from_jekyll_filename(self) -> None:
        result = date_from_filename("2024-05-17-hello-world.md")
        assert result is not None
        assert format_date(result) == "2024-05-17"

    def test_no_date_prefix(self) -> None:
        assert date_from_filename("hello-world.md") is None

    def test_impossible_date_prefix(self) -> None:
        assert date_from_filename("2024-13-45-bad.md") is None


class TestFormatting:
    def test_format_date(self) -> None:
        assert format_date(datetime(2026, 2, 2, 22, 21, tzinfo=timezone.utc)) == "2026-02-02"

    def test_now_utc(self) -> None:
        assert now_utc().tzinfo is not None
