# uapi_air/utils/datetime_utils.py
"""
Datetime utilities for the uAPI SOAP API.

Provides functions to format outbound date and datetime values the way uAPI
expects them and to read the offset-aware timestamps it returns.
"""

from datetime import UTC, date, datetime


def format_for_soap(dt: date | datetime) -> str:
    """
    Format a date or datetime the way uAPI timestamps are written.

    uAPI wants milliseconds and an explicit offset, e.g.
    ``2025-06-01T08:00:00.000+03:00``. The offset of an aware datetime is
    kept as is (segment times are local to their airport); naive datetimes
    and plain dates are taken as UTC, a date meaning its midnight.

    Examples:
        >>> format_for_soap(datetime(2025, 6, 1, 8, 0, tzinfo=timezone(timedelta(hours=3))))
        '2025-06-01T08:00:00.000+03:00'
        >>> format_for_soap(date(2025, 6, 1))
        '2025-06-01T00:00:00.000+00:00'
    """
    if not isinstance(dt, datetime):
        dt = datetime.combine(dt, datetime.min.time())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.isoformat(timespec='milliseconds')


def format_date(value: date | datetime) -> str:
    """Format the calendar part only (YYYY-MM-DD), as used by search requests."""
    return value.strftime('%Y-%m-%d')


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse a uAPI timestamp into an offset-aware datetime.

    Naive values are taken as UTC. Absent or unparsable values yield None.

    Example:
        >>> parse_timestamp('2021-05-15T14:50:00.000+03:00').utcoffset()
        datetime.timedelta(seconds=10800)
    """
    if not value:
        return None
    try:
        parsed: datetime = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).total_seconds() / 3600
