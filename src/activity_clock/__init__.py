"""
Activity Clock.

PURPOSE: Track where the day goes (timed activity sessions) and daily habits.
AI CONTEXT: Core engine is pure Python; persistence is reached over HTTP.

PACKAGE STRUCTURE:
- timekeys.py: Day keys and local-midnight arithmetic in the configured zone
- splitter.py: Split an interval into per-day segments at local midnight
- reconciler.py: Log/undo segments against persistence, cursor + undo record
- session_view.py: Merge/gap/filter transforms for a day's sessions
- statistics.py: Historical averages, deltas, trend windows, top-N series
- habits.py: Habit streaks, derived waste fields, habit summary
- vacation.py: Vacation day store with subscribers
- local_state.py: Client-local durable state (cursor, vacation days)
- persistence.py / client.py: Persistence protocol and httpx client
- storage.py: JSON file document storage used by the web app
- web/: FastAPI app serving the persistence endpoints
- cli.py: Command-line entry points

QUICK START:
    # Serve the API
    activity-clock serve

    # Interactive tracker (log / undo / today)
    activity-clock track
"""

from activity_clock.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__author__",
    "__license__",
    "__copyright__",
]
