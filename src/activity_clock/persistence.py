"""
Persistence collaborator interfaces.

PURPOSE: Describe what the engine needs from storage, independent of transport.
AI CONTEXT: The reconciler and HabitService depend only on these Protocols.

IMPLEMENTATIONS:
- HttpPersistenceClient (client.py): talks to the FastAPI routes over httpx
- LocalPersistence (here): calls StorageManager in-process, no server needed
- FakePersistence (tests/conftest.py): in-memory, with failure injection

CONTRACT:
- get_day: empty DayLog when the day has no document
- append_session: upsert-on-missing-date, push-on-existing
- delete_session: removes one exact (start, end, activity) match; deleting
  a missing triple is not an error and returns the current state
- put_habit_day: full replace of the data bag
- list_*_range: inclusive range, missing days omitted
- Any failure raises PersistenceError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from .errors import PersistenceError
from .models import DayLog, HabitDay, Session

if TYPE_CHECKING:
    from .storage import StorageManager

__all__ = ["PersistenceClient", "ActivityNamesClient", "LocalPersistence"]


class PersistenceClient(Protocol):
    """Day log and habit storage, reached asynchronously."""

    async def get_day(self, date: str) -> DayLog:
        """Return the day's log, empty when absent."""
        ...

    async def append_session(self, date: str, session: Session) -> DayLog:
        """Push a session onto the day's log and return the updated log."""
        ...

    async def delete_session(self, date: str, session: Session) -> DayLog:
        """Remove one exact match and return the current log."""
        ...

    async def get_habit_day(self, date: str) -> HabitDay:
        """Return the day's habit data, empty when absent."""
        ...

    async def put_habit_day(self, date: str, data: dict[str, Any]) -> HabitDay:
        """Replace the day's habit data and return what was stored."""
        ...

    async def list_day_range(self, from_date: str, to_date: str) -> dict[str, DayLog]:
        """Stored day logs in [from_date, to_date]."""
        ...

    async def list_habit_range(self, from_date: str, to_date: str) -> dict[str, dict[str, Any]]:
        """Stored habit data bags in [from_date, to_date]."""
        ...


class ActivityNamesClient(Protocol):
    """Known activity names."""

    async def list_names(self) -> list[str]:
        """All known names, sorted."""
        ...

    async def ensure_name(self, name: str) -> None:
        """Insert the name if missing (first letter capitalized)."""
        ...


class LocalPersistence:
    """
    In-process persistence over a StorageManager.

    Lets the CLI track time without running the API server. Storage
    write failures (reported by StorageManager as None) become
    PersistenceError, matching what the HTTP client raises on a 500.
    """

    def __init__(self, storage: StorageManager) -> None:
        self.storage = storage

    @staticmethod
    def _require(result: Any, what: str) -> Any:
        if result is None:
            raise PersistenceError(f"Storage write failed: {what}", status_code=500)
        return result

    async def get_day(self, date: str) -> DayLog:
        return DayLog.from_dict(self.storage.get_day_log(date), date=date)

    async def append_session(self, date: str, session: Session) -> DayLog:
        doc = self._require(self.storage.append_session(date, session), f"append on {date}")
        return DayLog.from_dict(doc, date=date)

    async def delete_session(self, date: str, session: Session) -> DayLog:
        doc = self._require(self.storage.delete_session(date, session), f"delete on {date}")
        return DayLog.from_dict(doc, date=date)

    async def get_habit_day(self, date: str) -> HabitDay:
        return HabitDay(date=date, data=self.storage.get_habit_data(date))

    async def put_habit_day(self, date: str, data: dict[str, Any]) -> HabitDay:
        stored = self._require(self.storage.put_habit_data(date, data), f"habits on {date}")
        return HabitDay(date=date, data=stored)

    async def list_day_range(self, from_date: str, to_date: str) -> dict[str, DayLog]:
        docs = self.storage.list_day_logs(from_date, to_date)
        return {d: DayLog.from_dict(doc, date=d) for d, doc in docs.items()}

    async def list_habit_range(self, from_date: str, to_date: str) -> dict[str, dict[str, Any]]:
        return self.storage.list_habits(from_date, to_date)

    async def list_names(self) -> list[str]:
        return self.storage.load_activity_names()

    async def ensure_name(self, name: str) -> None:
        self._require(self.storage.ensure_activity_name(name), f"activity name {name!r}")
