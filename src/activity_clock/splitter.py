"""
Split time intervals at local-midnight boundaries.

PURPOSE: Guarantee that no stored session spans two calendar days.
AI CONTEXT: Pure function - no I/O. Used by the reconciler before writing.

ALGORITHM:
    cursor = start
    while day(cursor) != day(end):
        cut at next local midnight after cursor
    emit [cursor, end) unless empty

GUARANTEES:
- Concatenating the segments reconstructs [start, end) exactly
- Every segment lies within a single local calendar day
- Interior boundaries are exact local midnights
- No zero-length segment is emitted
"""

from __future__ import annotations

from datetime import datetime

from .errors import InvalidIntervalError
from .models import Segment
from .timekeys import TimeZoneLike, day_key, next_midnight, resolve_timezone

__all__ = ["split_by_midnight"]


def split_by_midnight(
    start: datetime, end: datetime, tz: TimeZoneLike = None
) -> list[Segment]:
    """
    Split [start, end) into per-day segments in the given zone.

    Business context: A session logged from 23:30 to 00:45 belongs half to
    one day and half to the next. Splitting before writing keeps each
    day's totals honest and lets every day log be keyed by its own date.

    Args:
        start: Interval start (aware datetime).
        end: Interval end (aware datetime), must be after start.
        tz: Zone defining day boundaries. Defaults to the configured zone.

    Returns:
        Chronologically ordered list of segments. An interval within one
        day yields exactly one segment equal to the input.

    Raises:
        InvalidIntervalError: If end <= start.

    Example:
        >>> segs = split_by_midnight(
        ...     datetime(2025, 12, 2, 6, 30, tzinfo=UTC),   # 23:30 MST
        ...     datetime(2025, 12, 2, 7, 45, tzinfo=UTC),   # 00:45 MST
        ...     'America/Edmonton',
        ... )
        >>> [(s.start.hour, s.end.hour) for s in segs]
        [(6, 7), (7, 7)]
    """
    if end <= start:
        raise InvalidIntervalError(f"Interval end {end.isoformat()} is not after start {start.isoformat()}")

    zone = resolve_timezone(tz)
    end_key = day_key(end, zone)
    segments: list[Segment] = []
    cursor = start

    while day_key(cursor, zone) != end_key:
        cut = next_midnight(cursor, zone)
        if cut >= end:
            break
        segments.append(Segment(start=cursor, end=cut))
        cursor = cut

    if end > cursor:
        segments.append(Segment(start=cursor, end=end))
    return segments
