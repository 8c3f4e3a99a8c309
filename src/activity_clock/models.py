"""
Data models for Activity Clock.

PURPOSE: Type-safe dataclasses representing the tracked domain entities.
AI CONTEXT: These models define the wire schema for sessions, day logs and habits.

MODEL HIERARCHY:
- Segment: A bare [start, end) interval produced by the splitter
- Session: A labeled interval stored under exactly one DayLog
- DayLog: All sessions of one calendar day
- HabitDay: Free-form habit/metric bag of one calendar day
- UndoRecord: What the last append wrote, plus the cursor to restore

SERIALIZATION:
All models have to_dict() for JSON persistence and from_dict() for loading.
Timestamps use ISO 8601 UTC with millisecond precision ('...000Z').

USAGE:
    session = Session(start=a, end=b, activity="Gym")
    log = DayLog.from_dict({"date": "2025-12-01", "sessions": []})
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .timekeys import diff_minutes, parse_instant, to_iso

__all__ = [
    "Segment",
    "Session",
    "DayLog",
    "HabitDay",
    "UndoRecord",
]


@dataclass(frozen=True)
class Segment:
    """Half-open interval [start, end) lying within one local day."""

    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        """Length of the segment in minutes."""
        return diff_minutes(self.start, self.end)


@dataclass(frozen=True)
class Session:
    """
    Timed, labeled activity interval.

    INVARIANTS:
    - end > start
    - Never spans a local midnight once stored (see splitter)

    Sessions are immutable; a stored session is only ever removed by an
    exact (start, end, activity) match and recreated.
    """

    start: datetime
    end: datetime
    activity: str

    @property
    def minutes(self) -> float:
        """Duration in minutes."""
        return diff_minutes(self.start, self.end)

    def matches(self, other: Session) -> bool:
        """
        Check exact identity on the (start, end, activity) triple.

        Business context: Undo deletes by value, not by position, so two
        sessions are "the same" when all three fields agree.

        Args:
            other: Session to compare against.

        Returns:
            True when start, end and activity are all equal.
        """
        return (
            self.start == other.start
            and self.end == other.end
            and self.activity == other.activity
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize session to its wire representation.

        Returns:
            Dict with 'start' and 'end' as ISO strings and 'activity'.

        Example:
            >>> s.to_dict()
            {'start': '2025-12-01T07:00:00.000Z', 'end': '2025-12-01T07:30:00.000Z', 'activity': 'Gym'}
        """
        return {
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "activity": self.activity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """
        Deserialize session from its wire representation.

        Args:
            data: Dict with 'start', 'end' (ISO strings) and 'activity'.

        Returns:
            Session with aware UTC datetimes.

        Raises:
            KeyError: If 'start' or 'end' is missing.
            ValueError: If a timestamp is not ISO 8601.
        """
        return cls(
            start=parse_instant(data["start"]),
            end=parse_instant(data["end"]),
            activity=str(data.get("activity", "")),
        )


@dataclass
class DayLog:
    """
    All sessions recorded for one calendar day.

    Created lazily by the first append for a date and never deleted.
    Session order is insertion order; display code sorts by start.
    """

    date: str
    sessions: list[Session] = field(default_factory=list)

    @classmethod
    def empty(cls, date: str) -> DayLog:
        """DayLog with no sessions for the given day key."""
        return cls(date=date, sessions=[])

    @property
    def total_minutes(self) -> float:
        """Sum of all session durations."""
        return sum(s.minutes for s in self.sessions)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to {'date': ..., 'sessions': [...]}."""
        return {
            "date": self.date,
            "sessions": [s.to_dict() for s in self.sessions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, date: str = "") -> DayLog:
        """
        Deserialize a day log, tolerating missing or partial payloads.

        Business context: The API answers an unknown day with an empty log,
        and older documents may lack the sessions array. Both load as an
        empty DayLog for the requested date.

        Args:
            data: Payload as returned by the API, or None.
            date: Day key to use when the payload has none.

        Returns:
            DayLog instance.

        Raises:
            ValueError: If a stored session has an unparseable timestamp.
        """
        if not data:
            return cls.empty(date)
        sessions = [Session.from_dict(s) for s in data.get("sessions") or []]
        return cls(date=str(data.get("date") or date), sessions=sessions)


@dataclass
class HabitDay:
    """
    Habit and metric bag for one calendar day.

    The data map holds boolean habit flags, numeric counters, a 'study'
    sub-map of minutes, optional 'weight' and 'wastedMin', and derived
    fields maintained by habits.apply_derived_fields().
    """

    date: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to {'date': ..., 'data': {...}}."""
        return {"date": self.date, "data": dict(self.data)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None, date: str = "") -> HabitDay:
        """Deserialize, defaulting to an empty bag for the requested date."""
        payload = payload or {}
        data = payload.get("data")
        return cls(
            date=str(payload.get("date") or date),
            data=dict(data) if isinstance(data, dict) else {},
        )


@dataclass(frozen=True)
class UndoRecord:
    """
    One-level undo information for the most recent append.

    Holds the exact session values that were written (so the server can
    match them for deletion) and the cursor value in effect before the
    append. Lives in memory only.
    """

    prev_start: datetime
    segments: tuple[Session, ...]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for display/debugging."""
        return {
            "prevStart": to_iso(self.prev_start),
            "segments": [s.to_dict() for s in self.segments],
        }
