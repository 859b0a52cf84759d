"""Datetime parsing: lax input -> strict output."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

import pendulum

# Post header dates are day precision.
DATE_FORMAT = "%Y-%m-%d"

_FILENAME_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def parse_datetime(value: str | date | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax date or datetime into a timezone-aware datetime.

    Accepts ``date`` and ``datetime`` objects (as produced by YAML) as well as
    strings such as ``2026-02-02``, ``2026-02-02 22:21`` or ISO 8601 variants.
    Missing timezone defaults to default_tz; missing time defaults to midnight.
    Raises ValueError on unparseable strings.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=pendulum.timezone(default_tz))  # type: ignore[arg-type]
        return value

    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz=default_tz)

    try:
        parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    except ValueError as exc:
        msg = f"Invalid date: {value!r}"
        raise ValueError(msg) from exc
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def date_from_filename(filename: str) -> datetime | None:
    """Recover the date encoded in a ``YYYY-MM-DD-slug.md`` filename."""
    match = _FILENAME_DATE_RE.match(filename)
    if match is None:
        return None
    try:
        return parse_datetime(match.group(1))
    except ValueError:
        return None


def format_date(dt: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DD``."""
    return dt.strftime(DATE_FORMAT)


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)
