"""Centralized date and datetime helpers.

Timestamps are stored as naive UTC (SQLAlchemy models use naive UTC).
Planning arithmetic works on whole calendar days so that partial days never
shift a result by one.

Usage:
    from app.core.datetime_utils import utc_now, days_between, parse_calendar_date

    now = utc_now()
    due = parse_calendar_date("2026-02-20")
    remaining = days_between(date.today(), due)
"""

from datetime import UTC, date, datetime, timedelta

# Excel stores dates as days since 1899-12-30 (the 1900 leap-year bug included)
EXCEL_EPOCH = date(1899, 12, 30)


def utc_now() -> datetime:
    """Get current UTC time as naive datetime.

    Returns naive datetime for database compatibility.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def epoch_millis(dt: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch for a naive UTC datetime (default: now)."""
    dt = dt or utc_now()
    return int(dt.replace(tzinfo=UTC).timestamp() * 1000)


def to_calendar_date(value: date | datetime) -> date:
    """Truncate a date or datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole calendar days from start to end (negative when end is earlier)."""
    return (to_calendar_date(end) - to_calendar_date(start)).days


def excel_serial_to_date(serial: float) -> date:
    """Convert an Excel serial day number to a calendar date."""
    return EXCEL_EPOCH + timedelta(days=int(serial))


def parse_calendar_date(value: str | date | datetime | None) -> date | None:
    """Parse an ISO calendar date (YYYY-MM-DD, time component ignored).

    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, date | datetime):
        return to_calendar_date(value)

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
