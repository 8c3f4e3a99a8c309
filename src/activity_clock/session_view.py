"""
Display transforms over one day's sessions.

PURPOSE: Turn a stored DayLog into the rows shown in the sessions list.
AI CONTEXT: Pure functions - recomputed from the session list on every change.

PIPELINE (build_day_view):
    sort by start
      -> merge adjacent same-activity sessions (toggle)
      -> insert '__GAP__' rows for untracked gaps (toggle)
      -> filter to one activity (gap rows always kept)

The day total is always computed from the sorted, unmerged sessions so it
does not change with the display toggles.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from .config import Config
from .models import Session
from .timekeys import diff_minutes

__all__ = [
    "DisplaySession",
    "DayView",
    "sort_sessions",
    "merge_adjacent",
    "insert_gaps",
    "filter_by_activity",
    "total_tracked_minutes",
    "activities_in_day",
    "build_day_view",
]


@dataclass
class DisplaySession:
    """
    One row of the sessions list.

    Either a (possibly merged) session, or a gap sentinel whose activity is
    Config.GAP_ACTIVITY and whose gap_minutes holds the untracked length.
    """

    start: datetime
    end: datetime
    activity: str
    gap_minutes: float | None = None

    @property
    def is_gap(self) -> bool:
        """True for synthesized untracked-gap rows."""
        return self.activity == Config.GAP_ACTIVITY

    @property
    def minutes(self) -> float:
        """Row duration; gap rows report their gap length."""
        if self.gap_minutes is not None:
            return self.gap_minutes
        return diff_minutes(self.start, self.end)

    @classmethod
    def from_session(cls, session: Session) -> DisplaySession:
        return cls(start=session.start, end=session.end, activity=session.activity)


@dataclass
class DayView:
    """Rows to display plus the stable day total."""

    rows: list[DisplaySession] = field(default_factory=list)
    total_minutes: float = 0.0
    entry_count: int = 0
    activities: list[str] = field(default_factory=list)


def sort_sessions(sessions: Iterable[Session]) -> list[Session]:
    """Sessions ordered by start ascending (stable for equal starts)."""
    return sorted(sessions, key=lambda s: s.start)


def merge_adjacent(
    sessions: Iterable[Session],
    max_gap_minutes: float = Config.MERGE_GAP_MINUTES,
) -> list[DisplaySession]:
    """
    Merge consecutive same-activity sessions separated by a small gap.

    Each session is compared with the last emitted row only, so a session
    of another activity in between always prevents a merge.

    Args:
        sessions: Sessions sorted by start.
        max_gap_minutes: Largest gap (inclusive) that still merges.

    Returns:
        New DisplaySession rows; inputs are not modified.

    Example:
        Gym 10:00-10:30, Gym 10:32-11:00 -> Gym 10:00-11:00
        Gym 10:00-10:30, Read 10:30-10:40, Gym 10:41-11:00 -> three rows
    """
    out: list[DisplaySession] = []
    for session in sessions:
        last = out[-1] if out else None
        if (
            last is not None
            and last.activity == session.activity
            and diff_minutes(last.end, session.start) <= max_gap_minutes
        ):
            last.end = max(last.end, session.end)
        else:
            out.append(DisplaySession.from_session(session))
    return out


def insert_gaps(
    rows: Iterable[DisplaySession],
    threshold_minutes: float = Config.GAP_THRESHOLD_MINUTES,
) -> list[DisplaySession]:
    """
    Insert a gap sentinel between rows separated by threshold or more.

    Args:
        rows: Display rows sorted by start.
        threshold_minutes: Smallest gap (inclusive) that gets a row.

    Returns:
        Rows with '__GAP__' sentinels interleaved.
    """
    items = list(rows)
    out: list[DisplaySession] = []
    for current, following in zip(items, items[1:]):
        out.append(current)
        gap = diff_minutes(current.end, following.start)
        if gap >= threshold_minutes:
            out.append(
                DisplaySession(
                    start=current.end,
                    end=following.start,
                    activity=Config.GAP_ACTIVITY,
                    gap_minutes=gap,
                )
            )
    if items:
        out.append(items[-1])
    return out


def filter_by_activity(
    rows: Iterable[DisplaySession], activity: str = Config.ALL_ACTIVITIES
) -> list[DisplaySession]:
    """Keep rows of one activity plus every gap row; 'All' keeps everything."""
    if activity == Config.ALL_ACTIVITIES:
        return list(rows)
    return [r for r in rows if r.activity == activity or r.is_gap]


def total_tracked_minutes(sessions: Iterable[Session]) -> float:
    """Sum of session durations, independent of any display toggle."""
    return sum(s.minutes for s in sort_sessions(sessions))


def activities_in_day(sessions: Iterable[Session]) -> list[str]:
    """Distinct activity names of the day, sorted, without gap sentinels."""
    names = {s.activity for s in sessions if s.activity and s.activity != Config.GAP_ACTIVITY}
    return sorted(names)


def build_day_view(
    sessions: Iterable[Session],
    *,
    merge: bool = True,
    show_gaps: bool = True,
    activity: str = Config.ALL_ACTIVITIES,
) -> DayView:
    """
    Compose the full sessions-list pipeline for one day.

    Args:
        sessions: The day's stored sessions in any order.
        merge: Merge adjacent same-activity sessions.
        show_gaps: Insert untracked gap rows.
        activity: Activity filter, 'All' for no filtering.

    Returns:
        DayView with display rows, total minutes, entry count and the
        activity names available for filtering.
    """
    ordered = sort_sessions(sessions)
    if merge:
        rows = merge_adjacent(ordered)
    else:
        rows = [DisplaySession.from_session(s) for s in ordered]
    if show_gaps:
        rows = insert_gaps(rows)
    return DayView(
        rows=filter_by_activity(rows, activity),
        total_minutes=total_tracked_minutes(ordered),
        entry_count=len(ordered),
        activities=activities_in_day(ordered),
    )
