"""
Calendar-day keys and local-midnight arithmetic.

PURPOSE: Map absolute instants onto calendar days of the configured zone.
AI CONTEXT: Pure functions - no I/O, no state. Every other module derives
"which day" and "how far into today" from here.

CONVENTIONS:
- Instants are timezone-aware datetimes. Naive values are taken as UTC.
- Returned instants are expressed in UTC.
- Day keys are 'YYYY-MM-DD' strings in the local calendar of the zone.
- Wire format is ISO 8601 UTC with millisecond precision and a 'Z' suffix,
  e.g. '2025-12-01T06:30:00.000Z'.

DST:
A local day may last 23, 24 or 25 real hours. start_of_day() and
next_midnight() resolve the exact instant through zoneinfo, so interval
splitting stays correct across transitions. minutes_since_midnight() reads
the local wall clock and therefore always lies in [0, 1440).

USAGE:
    from activity_clock.timekeys import day_key, start_of_day
    key = day_key(datetime.now(UTC))          # '2025-12-03'
    midnight = start_of_day(datetime.now(UTC))
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from .config import Config

__all__ = [
    "DAY_KEY_RE",
    "resolve_timezone",
    "now_utc",
    "day_key",
    "start_of_day",
    "next_midnight",
    "minutes_since_midnight",
    "parse_instant",
    "to_iso",
    "truncate_to_millis",
    "diff_minutes",
    "is_day_key",
    "day_keys_between",
    "previous_day_key",
    "is_weekend",
]

DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TimeZoneLike = ZoneInfo | str | None


def resolve_timezone(tz: TimeZoneLike = None) -> ZoneInfo:
    """
    Resolve a zone argument to a ZoneInfo instance.

    Args:
        tz: ZoneInfo, IANA name, or None for Config.get_timezone_name().

    Returns:
        ZoneInfo for the requested zone.

    Raises:
        ZoneInfoNotFoundError: If the name is not a known IANA zone.

    Example:
        >>> resolve_timezone('UTC')
        zoneinfo.ZoneInfo(key='UTC')
    """
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or Config.get_timezone_name())


def now_utc() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def _aware(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant


def _local_midnight(day: date, zone: ZoneInfo) -> datetime:
    # fold=0 maps a skipped local midnight onto the first instant of the day
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(UTC)


def day_key(instant: datetime, tz: TimeZoneLike = None) -> str:
    """
    Get the local calendar day containing an instant.

    Business context: Day keys are the primary key of both activity logs
    and habit records, so two instants belong to the same stored day
    exactly when their day keys match.

    Args:
        instant: Aware datetime (naive values are taken as UTC).
        tz: Zone defining the calendar. Defaults to the configured zone.

    Returns:
        'YYYY-MM-DD' string.

    Example:
        >>> day_key(datetime(2025, 12, 2, 5, 0, tzinfo=UTC), 'America/Edmonton')
        '2025-12-01'
    """
    local = _aware(instant).astimezone(resolve_timezone(tz))
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def start_of_day(instant: datetime, tz: TimeZoneLike = None) -> datetime:
    """
    Get the exact instant of local midnight for the day containing instant.

    Args:
        instant: Aware datetime (naive values are taken as UTC).
        tz: Zone defining the calendar. Defaults to the configured zone.

    Returns:
        Aware UTC datetime of the day's first instant. Never after instant.

    Example:
        >>> start_of_day(datetime(2025, 12, 2, 5, 0, tzinfo=UTC), 'America/Edmonton')
        datetime.datetime(2025, 12, 1, 7, 0, tzinfo=datetime.timezone.utc)
    """
    zone = resolve_timezone(tz)
    local = _aware(instant).astimezone(zone)
    return _local_midnight(local.date(), zone)


def next_midnight(instant: datetime, tz: TimeZoneLike = None) -> datetime:
    """
    Get the first instant of the local day after the one containing instant.

    Args:
        instant: Aware datetime (naive values are taken as UTC).
        tz: Zone defining the calendar. Defaults to the configured zone.

    Returns:
        Aware UTC datetime, strictly after instant.
    """
    zone = resolve_timezone(tz)
    local = _aware(instant).astimezone(zone)
    return _local_midnight(local.date() + timedelta(days=1), zone)


def minutes_since_midnight(instant: datetime, tz: TimeZoneLike = None) -> float:
    """
    Get the local wall-clock minutes elapsed since midnight.

    Business context: This is the denominator used to prorate "today"
    (untracked time, percentage of day) because the day is not over yet.

    Args:
        instant: Aware datetime (naive values are taken as UTC).
        tz: Zone defining the calendar. Defaults to the configured zone.

    Returns:
        Minutes in [0, 1440), including fractional seconds.

    Example:
        >>> minutes_since_midnight(datetime(2025, 12, 1, 10, 30, tzinfo=UTC), 'UTC')
        630.0
    """
    local = _aware(instant).astimezone(resolve_timezone(tz))
    seconds = local.second + local.microsecond / 1_000_000
    return local.hour * 60 + local.minute + seconds / 60


def parse_instant(value: str | datetime) -> datetime:
    """
    Parse a wire-format timestamp into an aware UTC datetime.

    Accepts both 'Z' suffix and '+00:00' style offsets; naive strings are
    taken as UTC.

    Args:
        value: ISO 8601 string or datetime.

    Returns:
        Aware datetime in UTC.

    Raises:
        ValueError: If the string is not ISO 8601.
        TypeError: If value is neither str nor datetime.

    Example:
        >>> parse_instant('2025-12-01T06:30:00.000Z')
        datetime.datetime(2025, 12, 1, 6, 30, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return _aware(value).astimezone(UTC)
    if not isinstance(value, str):
        raise TypeError(f"Expected ISO timestamp string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return _aware(parsed).astimezone(UTC)


def to_iso(instant: datetime) -> str:
    """Format an instant in wire format ('2025-12-01T06:30:00.000Z')."""
    text = _aware(instant).astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def truncate_to_millis(instant: datetime) -> datetime:
    """Drop sub-millisecond precision so values survive a wire round trip."""
    return instant.replace(microsecond=(instant.microsecond // 1000) * 1000)


def diff_minutes(a: datetime, b: datetime) -> float:
    """Minutes from a to b (negative when b precedes a)."""
    return (_aware(b) - _aware(a)).total_seconds() / 60


def is_day_key(value: object) -> bool:
    """
    Check that a value is a valid 'YYYY-MM-DD' day key.

    Args:
        value: Anything; non-strings are rejected.

    Returns:
        True for well-formed keys naming a real calendar date.
    """
    if not isinstance(value, str) or not DAY_KEY_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def day_keys_between(from_key: str, to_key: str) -> list[str]:
    """
    List every day key from from_key to to_key inclusive.

    Args:
        from_key: First day 'YYYY-MM-DD'.
        to_key: Last day 'YYYY-MM-DD'.

    Returns:
        Ascending list of keys; empty when from_key is after to_key.

    Raises:
        ValueError: If either key is not a valid date.

    Example:
        >>> day_keys_between('2025-12-30', '2026-01-01')
        ['2025-12-30', '2025-12-31', '2026-01-01']
    """
    current = date.fromisoformat(from_key)
    last = date.fromisoformat(to_key)
    keys: list[str] = []
    while current <= last:
        keys.append(current.isoformat())
        current += timedelta(days=1)
    return keys


def previous_day_key(key: str) -> str:
    """Day key of the calendar day before key."""
    return (date.fromisoformat(key) - timedelta(days=1)).isoformat()


def is_weekend(key: str) -> bool:
    """
    Check whether a day key falls on Saturday or Sunday.

    Reads the weekday from the plain calendar date of the key, so the
    answer does not depend on any zone.

    Args:
        key: Day key 'YYYY-MM-DD'.

    Returns:
        True for Saturday and Sunday.
    """
    return date.fromisoformat(key).weekday() >= 5
