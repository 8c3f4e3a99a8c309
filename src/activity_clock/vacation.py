"""
Vacation day store.

PURPOSE: Hold the set of days excluded from streaks and aggregates.
AI CONTEXT: Explicit store object injected where needed - not a module global.

BEHAVIOR:
- Days are normalized: trimmed, 'YYYY-MM-DD' only, deduplicated, sorted
- set() persists to LocalState and notifies every subscriber immediately
- reload() re-reads LocalState (e.g. after another process edited it)
- Excluded days keep their underlying data; they are only skipped

USAGE:
    store = VacationStore(LocalState())
    unsubscribe = store.subscribe(lambda days: print(days))
    store.set(["2025-12-24", "2025-12-25"])
    store.is_vacation_day("2025-12-25")   # True
    unsubscribe()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from .config import Config
from .timekeys import DAY_KEY_RE

if TYPE_CHECKING:
    from .local_state import LocalState

__all__ = [
    "VacationStore",
    "VacationListener",
    "normalize_vacation_days",
]

logger = logging.getLogger(__name__)

VacationListener = Callable[[list[str]], None]


class _Dated(Protocol):
    date: str


T = TypeVar("T")
D = TypeVar("D", bound=_Dated)


def normalize_vacation_days(days: Iterable[Any]) -> list[str]:
    """
    Clean a user-supplied list of day keys.

    Args:
        days: Iterable of candidate values; None and junk are dropped.

    Returns:
        Sorted, deduplicated list of 'YYYY-MM-DD' strings.

    Example:
        >>> normalize_vacation_days([' 2025-12-25', 'x', '2025-12-24', '2025-12-25'])
        ['2025-12-24', '2025-12-25']
    """
    cleaned = {str(d or "").strip() for d in days}
    return sorted(d for d in cleaned if DAY_KEY_RE.match(d))


class VacationStore:
    """
    Process-wide vacation day set with observer registration.

    Business context: Marking a day as vacation must immediately change
    every streak and average on screen, so consumers subscribe instead of
    polling.

    THREAD SAFETY:
    Not thread-safe; owned by the single event loop of the client.
    """

    def __init__(self, local_state: LocalState | None = None) -> None:
        """
        Initialize the store.

        Args:
            local_state: Durable backing store. When None the set lives in
                memory only (useful for tests and one-shot reports).
        """
        self._state = local_state
        self._listeners: list[VacationListener] = []
        self._days: list[str] | None = None
        self._day_set: frozenset[str] = frozenset()

    def _apply(self, days: Iterable[Any]) -> list[str]:
        self._days = normalize_vacation_days(days)
        self._day_set = frozenset(self._days)
        return self._days

    def _ensure_loaded(self) -> None:
        if self._days is not None:
            return
        stored = self._state.get(Config.VACATION_STATE_KEY, []) if self._state else []
        self._apply(stored if isinstance(stored, list) else [])

    def get(self) -> list[str]:
        """Return a copy of the sorted vacation day list."""
        self._ensure_loaded()
        return list(self._days or [])

    def set(self, days: Iterable[Any]) -> list[str]:
        """
        Replace the vacation set, persist it and notify subscribers.

        Args:
            days: New day keys (normalized before storing).

        Returns:
            The normalized list that was stored.
        """
        next_days = self._apply(days)
        logger.info(f"Vacation days updated: {len(next_days)} day(s)")
        if self._state is not None:
            self._state.set(Config.VACATION_STATE_KEY, next_days)
        self._emit(next_days)
        return list(next_days)

    def add(self, day: str) -> list[str]:
        """Add one day key and persist."""
        return self.set([*self.get(), day])

    def remove(self, day: str) -> list[str]:
        """Remove one day key (if present) and persist."""
        return self.set(d for d in self.get() if d != day)

    def reload(self) -> list[str]:
        """
        Re-read the backing state and notify subscribers.

        Returns:
            The reloaded, normalized list.
        """
        self._days = None
        self._ensure_loaded()
        days = self.get()
        self._emit(days)
        return days

    def subscribe(self, listener: VacationListener) -> Callable[[], None]:
        """
        Register a listener called with the new list on every change.

        Args:
            listener: Callable receiving the normalized day list.

        Returns:
            Zero-argument function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, days: list[str]) -> None:
        for listener in list(self._listeners):
            listener(list(days))

    def is_vacation_day(self, day: str | None) -> bool:
        """True when day is a non-empty key in the vacation set."""
        self._ensure_loaded()
        return bool(day) and day in self._day_set

    def filter_logs(self, logs: Iterable[D]) -> list[D]:
        """Drop entries whose .date is a vacation day."""
        return [log for log in logs if not self.is_vacation_day(log.date)]

    def filter_map(self, by_day: Mapping[str, T]) -> dict[str, T]:
        """Drop mapping entries keyed by a vacation day."""
        return {k: v for k, v in by_day.items() if not self.is_vacation_day(k)}
