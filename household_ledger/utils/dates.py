"""
Date Utilities

Parsing and formatting of calendar dates and timestamps.

Records carry dates in several shapes: ``YYYY-MM-DD`` strings from forms,
ISO timestamps from the store, ``date``/``datetime`` objects from models and
epoch milliseconds from older exports. ``to_datetime`` accepts all of them;
every formatter returns an empty string (or the supplied fallback) instead
of raising when a value cannot be read.
"""

from datetime import date, datetime, time, timezone
from typing import NamedTuple, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

DATE_DISPLAY_FORMAT = "%Y-%m-%d"
TIME_DISPLAY_FORMAT = "%H:%M"

# Every record of a savings snapshot shares this time of day
SNAPSHOT_TIME = "12:00:00Z"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

DateLike = Union[str, int, float, date, datetime, None]


class DateKey(NamedTuple):
    """Canonical day key plus a sortable epoch-millisecond timestamp."""
    key: str
    timestamp: float


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_datetime(value: DateLike) -> Optional[datetime]:
    """
    Read any supported date shape into a timezone-aware datetime.

    Naive values are taken as UTC. Returns None when the value cannot be
    parsed.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.strptime(text, DATE_DISPLAY_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            pass
        try:
            return _as_utc(date_parser.isoparse(text))
        except ValueError:
            pass
        try:
            return _as_utc(date_parser.parse(text))
        except (ValueError, OverflowError):
            return None

    return None


def to_date(value: DateLike) -> Optional[date]:
    parsed = to_datetime(value)
    return parsed.date() if parsed else None


def format_date(value: DateLike, fmt: str = DATE_DISPLAY_FORMAT) -> str:
    parsed = to_datetime(value)
    return parsed.strftime(fmt) if parsed else ""


def format_time(value: DateLike, fmt: str = TIME_DISPLAY_FORMAT) -> str:
    parsed = to_datetime(value)
    return parsed.strftime(fmt) if parsed else ""


def format_date_with_fallback(value: DateLike, fallback: str = "") -> str:
    return format_date(value) or fallback


def format_time_with_fallback(value: DateLike, fallback: str = "") -> str:
    return format_time(value) or fallback


def is_valid_date_string(value: Optional[str], fmt: str = DATE_DISPLAY_FORMAT) -> bool:
    """Strict check: the string must match ``fmt`` exactly."""
    if not value:
        return False
    try:
        datetime.strptime(value, fmt)
    except ValueError:
        return False
    return True


def today() -> str:
    return date.today().strftime(DATE_DISPLAY_FORMAT)


def get_date_key(value: DateLike) -> DateKey:
    """
    Day key used to group savings into snapshots.

    Unparseable strings keep their raw text as key with timestamp 0, which
    sorts them after every real snapshot. Unparseable non-strings get an
    empty key.
    """
    parsed = to_datetime(value)
    if parsed is None:
        return DateKey(key=value if isinstance(value, str) else "", timestamp=0.0)

    return DateKey(
        key=parsed.strftime(DATE_DISPLAY_FORMAT),
        timestamp=parsed.timestamp() * 1000,
    )


def snapshot_timestamp(date_key: str) -> str:
    """Shared creation timestamp for every record of the snapshot on ``date_key``."""
    return f"{date_key}T{SNAPSHOT_TIME}"


def month_label(value: DateLike, include_year: bool = False) -> str:
    """English month name of a date ('March'), optionally with the year ('March 2026')."""
    parsed = to_datetime(value)
    if parsed is None:
        return ""
    name = MONTH_NAMES[parsed.month - 1]
    return f"{name} {parsed.year}" if include_year else name


def previous_month(reference: Optional[date] = None) -> date:
    """First day of the calendar month before ``reference`` (default: today)."""
    reference = reference or date.today()
    return reference.replace(day=1) - relativedelta(months=1)


def same_month(first: date, second: date) -> bool:
    return (first.year, first.month) == (second.year, second.month)
