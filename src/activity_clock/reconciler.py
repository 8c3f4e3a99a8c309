"""
Session reconciler - logging and undoing time against persistence.

PURPOSE: Own the cursor, the one-level undo record and the day-log cache.
AI CONTEXT: This is the service layer shared by the CLI tracker and reports.

ARCHITECTURE:
    CLI track/log ──► SessionReconciler ──► PersistenceClient (HTTP or local)
                            │
                            ├──► LocalState (cursor)
                            └──► in-memory today + history cache
                                   └──► SessionView / HistoricalAggregator

STATE MACHINE (per call):
    Idle -> Logging -> Idle      append()
    Idle -> Undoing -> Idle      undo()
Calls are serialized by an asyncio.Lock, so a second append waits for the
first to finish and always sees the advanced cursor.

APPEND:
    start = max(cursor, local midnight), clamped to now
    end   = min(start + minutes, now) or now
    split at local midnights, write each segment in order, stop on failure
    on success: advance cursor, record undo, ensure the activity name

UNDO:
    delete each recorded segment by exact match (failures logged only),
    reload today, restore the previous cursor, clear the record

USAGE:
    reconciler = SessionReconciler(client, names=client, local_state=LocalState())
    await reconciler.load()
    result = await reconciler.append("Gym", explicit_minutes=30)
    await reconciler.undo()
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .config import Config
from .errors import EmptyActivityError, NothingToUndoError, PersistenceError
from .models import DayLog, Session, UndoRecord
from .splitter import split_by_midnight
from .storage import capitalize_name
from .timekeys import (
    TimeZoneLike,
    day_key,
    day_keys_between,
    diff_minutes,
    now_utc,
    resolve_timezone,
    start_of_day,
    to_iso,
    truncate_to_millis,
)

if TYPE_CHECKING:
    from .local_state import LocalState
    from .persistence import ActivityNamesClient, PersistenceClient
    from .vacation import VacationStore

__all__ = [
    "ServiceResult",
    "SessionReconciler",
]

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """
    Result from a service operation.

    Provides a consistent return type for all service methods with
    success/failure status and optional data or error code.

    Attributes:
        success: Whether the operation completed successfully.
        message: Human-readable result message.
        data: Optional dict with operation-specific data.
        error: Optional error code (ActivityClockError.code) if success is False.
    """

    success: bool
    message: str
    data: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert this ServiceResult to a JSON-serializable dictionary.

        Fields with None/empty values (data, error) are omitted to keep
        CLI JSON output compact.

        Returns:
            Dict with 'success' and 'message', plus optional 'data' and
            'error' when present.

        Example:
            >>> ServiceResult(success=True, message="Done", data={"logged": True}).to_dict()
            {'success': True, 'message': 'Done', 'data': {'logged': True}}
        """
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
        }
        if self.data:
            result["data"] = self.data
        if self.error:
            result["error"] = self.error
        return result


def _positive_minutes(value: float | int | str | None) -> float | None:
    """Explicit minutes as a finite positive float, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(minutes) or minutes <= 0:
        return None
    return minutes


class SessionReconciler:
    """
    Core time-logging service.

    Keeps the client's view of today and of the history in step with the
    persistence collaborator. The cache is upsert-by-day: every write
    returns the day's new log and that log replaces the cached one.

    OPERATIONS:
    - load: Fetch names, today and history; initialize the cursor
    - append: Log the time since the cursor (or an explicit chunk)
    - undo: Remove exactly what the last append wrote

    Example:
        >>> reconciler = SessionReconciler(client, names=client)
        >>> await reconciler.load()
        >>> result = await reconciler.append("Read")
        >>> result.data["minutes"]
        42.5
    """

    def __init__(
        self,
        persistence: PersistenceClient,
        names: ActivityNamesClient | None = None,
        local_state: LocalState | None = None,
        vacation: VacationStore | None = None,
        clock: Callable[[], datetime] | None = None,
        tz: TimeZoneLike = None,
        start_date: str | None = None,
    ) -> None:
        """
        Initialize the reconciler with its collaborators.

        Args:
            persistence: Day log storage.
            names: Known activity names. None skips name bookkeeping.
            local_state: Durable cursor storage. None keeps it in memory.
            vacation: Vacation days removed from history_logs().
            clock: Returns the current instant. Default: now_utc
            tz: Zone defining days. Default: configured zone.
            start_date: First history day. Default: Config.START_DATE
        """
        self.persistence = persistence
        self.names = names
        self.local_state = local_state
        self.vacation = vacation
        self._clock = clock or now_utc
        self.tz = resolve_timezone(tz)
        self.start_date = start_date or Config.START_DATE

        self._lock = asyncio.Lock()
        self._cursor: datetime | None = None
        self._undo: UndoRecord | None = None
        self._today: DayLog = DayLog.empty(self.today_key)
        self._history: dict[str, DayLog] = {}
        self.activity_names: list[str] = []

    # =========================================================================
    # STATE ACCESSORS
    # =========================================================================

    def now(self) -> datetime:
        """Current instant, truncated to wire precision."""
        return truncate_to_millis(self._clock())

    @property
    def today_key(self) -> str:
        """Local day key of now."""
        return day_key(self.now(), self.tz)

    @property
    def cursor(self) -> datetime:
        """Where the next logged interval begins (local midnight before load)."""
        if self._cursor is None:
            return start_of_day(self.now(), self.tz)
        return self._cursor

    @property
    def undo_record(self) -> UndoRecord | None:
        return self._undo

    @property
    def can_undo(self) -> bool:
        return self._undo is not None

    @property
    def today_log(self) -> DayLog:
        return self._today

    def elapsed_minutes(self) -> float:
        """Minutes from the cursor to now (what a plain append would log)."""
        return max(0.0, diff_minutes(self.cursor, self.now()))

    def history_logs(self, exclude_vacation: bool = True) -> list[DayLog]:
        """
        Every calendar day from the start date to today, ascending.

        Days without a stored document appear as empty logs, so averages
        and trend windows count them.

        Args:
            exclude_vacation: Drop days in the vacation store.

        Returns:
            List of DayLog from the upsert-by-day cache.
        """
        today = self.today_key
        if self.start_date > today:
            return []
        logs = [
            self._history.get(key) or DayLog.empty(key)
            for key in day_keys_between(self.start_date, today)
        ]
        if exclude_vacation and self.vacation is not None:
            logs = self.vacation.filter_logs(logs)
        return logs

    def _set_cursor(self, instant: datetime) -> None:
        self._cursor = instant
        if self.local_state is not None:
            self.local_state.set_cursor(instant)

    def _upsert(self, log: DayLog) -> None:
        self._history[log.date] = log
        if log.date == self.today_key:
            self._today = log

    # =========================================================================
    # LOAD
    # =========================================================================

    async def load(self) -> ServiceResult:
        """
        Fetch names, today's log and the history; initialize the cursor.

        A failed fetch is logged and leaves that part at its empty
        default, so the views still render.

        Returns:
            ServiceResult; success is False when any fetch failed, with
            data['failed'] naming the parts that did.
        """
        failed: list[str] = []
        now = self.now()
        today = day_key(now, self.tz)

        if self.names is not None:
            try:
                self.activity_names = sorted(await self.names.list_names())
            except PersistenceError as e:
                logger.error(f"Failed to load activity names: {e}")
                self.activity_names = []
                failed.append("names")

        try:
            self._today = await self.persistence.get_day(today)
        except PersistenceError as e:
            logger.error(f"Failed to load today's log ({today}): {e}")
            self._today = DayLog.empty(today)
            failed.append("today")

        self._init_cursor(now)

        try:
            if self.start_date <= today:
                self._history = await self.persistence.list_day_range(self.start_date, today)
            else:
                self._history = {}
        except PersistenceError as e:
            logger.error(f"Failed to load history: {e}")
            self._history = {}
            failed.append("history")
        self._history[today] = self._today

        logger.info(
            f"Loaded {len(self._today.sessions)} session(s) today, "
            f"{len(self._history)} stored day(s); cursor at {to_iso(self.cursor)}"
        )
        if failed:
            return ServiceResult(
                success=False,
                message=f"Load incomplete: {', '.join(failed)} unavailable",
                data={"failed": failed},
                error=PersistenceError.code,
            )
        return ServiceResult(success=True, message="Loaded", data={"today": today})

    def _init_cursor(self, now: datetime) -> None:
        """
        Anchor the cursor for today.

        The latest end among today's sessions wins. Otherwise the stored
        cursor is used, clamped so it never precedes local midnight.
        """
        midnight = start_of_day(now, self.tz)
        if self._today.sessions:
            self._set_cursor(max(s.end for s in self._today.sessions))
            return
        stored = self.local_state.get_cursor() if self.local_state is not None else None
        self._cursor = max(stored or midnight, midnight)

    # =========================================================================
    # APPEND
    # =========================================================================

    async def append(
        self, activity: str, explicit_minutes: float | int | str | None = None
    ) -> ServiceResult:
        """
        Log the interval since the cursor under an activity.

        Business context: The user does something, then says what it was.
        Without minutes the whole span since the last stop is logged; with
        minutes only that chunk is back-filled from the cursor and the rest
        stays open for the next entry.

        Args:
            activity: Label; trimmed before use.
            explicit_minutes: Finite positive minutes to log from the
                cursor. Anything else means "up to now".

        Returns:
            ServiceResult. data['logged'] is False for an empty interval
            (a success that wrote nothing). On a storage failure,
            data['committed'] lists segments already written before it;
            cursor and undo record are left untouched.
        """
        async with self._lock:
            clean = (activity or "").strip()
            if not clean:
                err = EmptyActivityError("Activity name is required")
                return ServiceResult(success=False, message=str(err), error=err.code)

            now = self.now()
            prev_start = self.cursor
            session_start = max(prev_start, start_of_day(now, self.tz))
            if session_start > now:
                session_start = now

            minutes = _positive_minutes(explicit_minutes)
            if minutes is not None:
                session_end = min(truncate_to_millis(session_start + timedelta(minutes=minutes)), now)
            else:
                session_end = now

            if session_end <= session_start:
                return ServiceResult(
                    success=True,
                    message="Nothing to log",
                    data={"logged": False},
                )

            written: list[Session] = []
            for segment in split_by_midnight(session_start, session_end, self.tz):
                date = day_key(segment.start, self.tz)
                session = Session(start=segment.start, end=segment.end, activity=clean)
                try:
                    log = await self.persistence.append_session(date, session)
                except PersistenceError as e:
                    logger.error(f"Failed to save session on {date}: {e}")
                    return ServiceResult(
                        success=False,
                        message=f"Failed to save session on {date}: {e}",
                        data={
                            "logged": False,
                            "committed": [s.to_dict() for s in written],
                        },
                        error=e.code,
                    )
                written.append(session)
                self._upsert(log)

            self._set_cursor(session_end)
            self._undo = UndoRecord(prev_start=prev_start, segments=tuple(written))
            await self._ensure_name(clean)

            logged = diff_minutes(session_start, session_end)
            logger.info(f"Logged {clean}: {logged:.1f} min in {len(written)} segment(s)")
            return ServiceResult(
                success=True,
                message=f"Logged {clean}",
                data={
                    "logged": True,
                    "activity": clean,
                    "start": to_iso(session_start),
                    "end": to_iso(session_end),
                    "minutes": logged,
                    "segments": [s.to_dict() for s in written],
                },
            )

    async def _ensure_name(self, activity: str) -> None:
        if self.names is None or activity in self.activity_names:
            return
        try:
            await self.names.ensure_name(activity)
        except PersistenceError as e:
            logger.warning(f"Could not record activity name {activity!r}: {e}")
            return
        name = capitalize_name(activity)
        if name not in self.activity_names:
            self.activity_names = sorted([*self.activity_names, name])

    # =========================================================================
    # UNDO
    # =========================================================================

    async def undo(self) -> ServiceResult:
        """
        Remove exactly what the last append wrote and rewind the cursor.

        Deletes are best-effort: a failed delete is logged and reported in
        data['failed_days'], but the cursor is restored regardless.

        Returns:
            ServiceResult; failure only when there is nothing to undo.
        """
        async with self._lock:
            record = self._undo
            if record is None:
                err = NothingToUndoError("Nothing to undo")
                return ServiceResult(success=False, message=str(err), error=err.code)

            failed_days: list[str] = []
            for segment in record.segments:
                date = day_key(segment.start, self.tz)
                try:
                    await self.persistence.delete_session(date, segment)
                except PersistenceError as e:
                    logger.error(f"Failed to delete session on {date}: {e}")
                    failed_days.append(date)

            self._forget(record)

            today = self.today_key
            try:
                self._today = await self.persistence.get_day(today)
                self._history[today] = self._today
            except PersistenceError as e:
                logger.error(f"Failed to reload today after undo: {e}")

            self._set_cursor(record.prev_start)
            self._undo = None

            message = "Undid last entry"
            if failed_days:
                message += f" (server delete failed for {', '.join(failed_days)})"
            return ServiceResult(
                success=True,
                message=message,
                data={
                    "cursor": to_iso(record.prev_start),
                    "removed": [s.to_dict() for s in record.segments],
                    "failed_days": failed_days,
                },
            )

    def _forget(self, record: UndoRecord) -> None:
        """Drop one cached occurrence of each recorded segment."""
        for segment in record.segments:
            date = day_key(segment.start, self.tz)
            log = self._history.get(date)
            if log is None:
                continue
            sessions = list(log.sessions)
            for i, stored in enumerate(sessions):
                if stored.matches(segment):
                    del sessions[i]
                    break
            self._upsert(DayLog(date=date, sessions=sessions))
