"""Date helpers shared by the store adapter and the engines."""

from datetime import UTC, datetime, timedelta

from dateutil import parser as dateutil_parser


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_datetime(value: str | int | float) -> datetime:
    """Parse an ISO-8601 string or epoch-milliseconds number into an aware UTC datetime.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)

    text = value.strip()
    if text.lstrip("-").isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=UTC)

    return to_utc(dateutil_parser.isoparse(text))


def format_datetime(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string."""
    return to_utc(value).isoformat().replace("+00:00", "Z")


def day_bounds(value: datetime) -> tuple[datetime, datetime]:
    """Return the first and last instant of the UTC calendar day containing value."""
    start = to_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def week_start(value: datetime) -> datetime:
    """Return midnight of the Sunday starting the week containing value."""
    start, _ = day_bounds(value)
    return start - timedelta(days=js_weekday(start))


def js_weekday(value: datetime) -> int:
    """Day of week with 0=Sunday..6=Saturday."""
    return (value.weekday() + 1) % 7
