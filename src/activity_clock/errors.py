"""
Error taxonomy for Activity Clock.

PURPOSE: Typed failures raised by the engine and its persistence client.
AI CONTEXT: Pure components raise these; the reconciler turns them into
ServiceResult failures carrying the error's ``code``.

HIERARCHY:
    ActivityClockError
    ├── InvalidIntervalError   # end <= start handed to the splitter
    ├── EmptyActivityError     # blank activity label
    ├── PersistenceError       # transport/storage failure, incl. HTTP 401
    └── NothingToUndoError     # undo with no recorded append
"""

from __future__ import annotations

__all__ = [
    "ActivityClockError",
    "InvalidIntervalError",
    "EmptyActivityError",
    "PersistenceError",
    "NothingToUndoError",
]


class ActivityClockError(Exception):
    """Base class for all Activity Clock errors."""

    code: str = "activity_clock_error"


class InvalidIntervalError(ActivityClockError, ValueError):
    """Raised when an interval's end does not come after its start."""

    code = "invalid_interval"


class EmptyActivityError(ActivityClockError, ValueError):
    """Raised when an activity label is empty after trimming."""

    code = "empty_activity"


class PersistenceError(ActivityClockError):
    """
    Raised when the persistence collaborator cannot complete a call.

    Wraps the transport-level detail. ``status_code`` is set when the
    server answered with an error status (401 for a rejected login token).
    """

    code = "persistence_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NothingToUndoError(ActivityClockError):
    """Raised when undo is requested but no append has been recorded."""

    code = "nothing_to_undo"
