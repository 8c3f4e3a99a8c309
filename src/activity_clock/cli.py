"""
CLI entry point for Activity Clock.

PURPOSE: Command-line interface for the API server, the tracker and reports.
AI CONTEXT: Main entry points for package execution.

USAGE:
    activity-clock serve                  # Run the API server
    activity-clock track                  # Interactive log/undo loop
    activity-clock log "Deep work" -m 25  # Log 25 minutes from the cursor
    activity-clock today --no-merge       # Today's sessions and breakdown
    activity-clock usual                  # Today vs the usual day
    activity-clock trends --window 14     # Trend table for the top activities
    activity-clock habit show             # Today's habits
    activity-clock vacation add 2025-12-24

Every data command talks to the API at --api-url (default
Config.get_api_url()); --local reads and writes the JSON files directly.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import TYPE_CHECKING

from .config import Config
from .errors import PersistenceError
from .timekeys import TimeZoneLike, day_key, is_day_key, now_utc, parse_instant

if TYPE_CHECKING:
    from .client import HttpPersistenceClient
    from .local_state import LocalState
    from .persistence import LocalPersistence
    from .reconciler import ServiceResult, SessionReconciler
    from .vacation import VacationStore

    Backend = LocalPersistence | HttpPersistenceClient

# Constants
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
PROMPT = "activity> "
TRACK_HELP = """Commands:
  log ACTIVITY [MINUTES]  Log time since the last stop (or only MINUTES of it)
  undo                    Remove the last entry and rewind
  today                   Sessions and breakdown for today
  usual                   Today compared with the usual day
  status                  Where the next entry starts
  help                    Show this help
  quit                    Leave the tracker"""


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    logging.basicConfig(level=logging.INFO)
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


# =============================================================================
# BACKEND WIRING
# =============================================================================


@asynccontextmanager
async def open_backend(
    local: bool = False,
    api_url: str | None = None,
    local_state: LocalState | None = None,
) -> AsyncIterator[Backend]:
    """
    Yield the persistence backend for one command.

    Args:
        local: Use the JSON files directly instead of the API.
        api_url: API root for the HTTP client. Default: Config.get_api_url()
        local_state: Where the login token is kept. Default: LocalState()

    Yields:
        LocalPersistence or an open HttpPersistenceClient (closed on exit).
    """
    if local:
        from .persistence import LocalPersistence
        from .storage import StorageManager

        yield LocalPersistence(StorageManager())
        return

    from .client import HttpPersistenceClient
    from .local_state import LocalState as State

    state = local_state or State()
    token = state.get(Config.SESSION_STATE_KEY)
    async with HttpPersistenceClient(
        api_url, session_token=token if isinstance(token, str) else None
    ) as client:
        yield client


async def build_reconciler(
    backend: Backend,
    local_state: LocalState | None = None,
    vacation: VacationStore | None = None,
    clock: Callable[[], datetime] | None = None,
) -> SessionReconciler:
    """Create a reconciler over the backend and load today and the history."""
    from .reconciler import SessionReconciler

    reconciler = SessionReconciler(
        backend,
        names=backend,
        local_state=local_state,
        vacation=vacation,
        clock=clock,
    )
    result = await reconciler.load()
    if not result.success:
        _log(result.message, emoji="⚠️")
    return reconciler


def describe_append(result: ServiceResult, tz: TimeZoneLike = None) -> str:
    """One-line outcome of an append for the terminal."""
    from .presenters import format_duration, format_local_time

    data = result.data or {}
    if not result.success:
        committed = data.get("committed") or []
        suffix = f" ({len(committed)} segment(s) already saved)" if committed else ""
        return f"Error: {result.message}{suffix}"
    if not data.get("logged"):
        return "Nothing to log yet."
    start = format_local_time(parse_instant(data["start"]), tz)
    end = format_local_time(parse_instant(data["end"]), tz)
    return f"Logged {data['activity']}: {format_duration(data['minutes'])} ({start}-{end})"


def parse_log_args(text: str) -> tuple[str, float | None]:
    """
    Split 'ACTIVITY [MINUTES]' into the activity and optional minutes.

    A trailing token counts as minutes only when it is a positive number
    and something is left for the activity.

    Example:
        >>> parse_log_args("Deep work 25")
        ('Deep work', 25.0)
        >>> parse_log_args("Read")
        ('Read', None)
    """
    parts = text.strip().rsplit(" ", 1)
    if len(parts) == 2:
        try:
            minutes = float(parts[1])
        except ValueError:
            return text.strip(), None
        if minutes > 0:
            return parts[0].strip(), minutes
    return text.strip(), None


def _today_key() -> str:
    return day_key(now_utc())


# =============================================================================
# COMMANDS
# =============================================================================


def run_serve(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """
    Launch the Activity Clock API.

    Args:
        host: Network interface to bind to. Default '127.0.0.1' for
            local-only access. Use '0.0.0.0' for network access.
        port: TCP port for the HTTP server. Default 8000.
        reload: Auto-reload on code changes.
        log_level: Uvicorn log level.

    Returns:
        None. Blocks until server shutdown (Ctrl+C).
    """
    from .web import run_server as start_web

    _log(f"Starting API at http://{host}:{port}", emoji="🚀")
    _log(f"Storage: {Config.get_storage_dir()}")
    if not Config.is_auth_enabled():
        _log("APP_PASSWORD/APP_SESSION_SECRET not set; auth disabled", emoji="⚠️")
    _log("Press Ctrl+C to stop")
    start_web(host=host, port=port, reload=reload, log_level=log_level)


async def run_track(
    backend: Backend,
    local_state: LocalState | None = None,
    vacation: VacationStore | None = None,
    input_fn: Callable[[str], str] = input,
    clock: Callable[[], datetime] | None = None,
) -> int:
    """
    Interactive tracker loop.

    Business context: The undo record only lives in memory, so logging
    and undoing happen inside one long-running process.

    Args:
        backend: Persistence backend.
        local_state: Durable cursor storage.
        vacation: Vacation store for the usual-day view.
        input_fn: Line reader (tests pass a scripted one).
        clock: Current-instant source.

    Returns:
        Exit code 0 when the loop ends (quit or EOF).
    """
    from .presenters import ActivityPresenter, format_duration, format_local_time, render_today, render_usual

    reconciler = await build_reconciler(backend, local_state, vacation, clock)
    presenter = ActivityPresenter(reconciler)
    print(TRACK_HELP)

    while True:
        try:
            line = await asyncio.to_thread(input_fn, PROMPT)
        except EOFError:
            break
        command, _, rest = line.strip().partition(" ")
        command = command.lower()
        if not command:
            continue
        if command in ("quit", "exit", "q"):
            break
        if command == "help":
            print(TRACK_HELP)
        elif command == "log":
            activity, minutes = parse_log_args(rest)
            result = await reconciler.append(activity, minutes)
            print(describe_append(result, reconciler.tz))
        elif command == "undo":
            result = await reconciler.undo()
            print(result.message)
        elif command == "today":
            print(render_today(presenter.today()))
        elif command == "usual":
            print(render_usual(presenter.usual()))
        elif command == "status":
            print(
                f"Next entry starts at {format_local_time(reconciler.cursor, reconciler.tz)} "
                f"({format_duration(reconciler.elapsed_minutes())} open)"
            )
        else:
            print(f"Unknown command: {command}. Type 'help'.")
    return 0


async def run_log(
    backend: Backend,
    activity: str,
    minutes: float | None = None,
    local_state: LocalState | None = None,
) -> int:
    """Log one entry from the stored cursor and exit."""
    reconciler = await build_reconciler(backend, local_state)
    result = await reconciler.append(activity, minutes)
    print(describe_append(result, reconciler.tz))
    return 0 if result.success else 1


async def run_today(
    backend: Backend,
    merge: bool = True,
    show_gaps: bool = True,
    activity: str = Config.ALL_ACTIVITIES,
    local_state: LocalState | None = None,
) -> int:
    """Print today's sessions list and breakdown."""
    from .presenters import ActivityPresenter, render_today

    reconciler = await build_reconciler(backend, local_state)
    vm = ActivityPresenter(reconciler).today(merge=merge, show_gaps=show_gaps, activity=activity)
    print(render_today(vm))
    return 0


async def run_usual(
    backend: Backend,
    local_state: LocalState | None = None,
    vacation: VacationStore | None = None,
) -> int:
    """Print today compared with the usual day."""
    from .presenters import ActivityPresenter, render_usual

    reconciler = await build_reconciler(backend, local_state, vacation)
    print(render_usual(ActivityPresenter(reconciler).usual()))
    return 0


async def run_trends(
    backend: Backend,
    window: int = Config.DEFAULT_TREND_WINDOW,
    scope: str = "All",
    mode: str = "m",
    local_state: LocalState | None = None,
    vacation: VacationStore | None = None,
    chart_path: str | None = None,
) -> int:
    """Print the trend table for a window and scope, optionally saving a PNG chart."""
    from .presenters import ActivityPresenter, render_trend_chart, render_trends

    reconciler = await build_reconciler(backend, local_state, vacation)
    vm = ActivityPresenter(reconciler).trends(window=window, scope=scope, mode=mode)
    print(render_trends(vm))
    if chart_path:
        with open(chart_path, "wb") as f:
            f.write(render_trend_chart(vm))
        _log(f"Chart saved to {chart_path}", emoji="📊")
    return 0


async def run_habit(
    backend: Backend,
    action: str,
    date: str | None = None,
    name: str | None = None,
    value: str | None = None,
    vacation: VacationStore | None = None,
) -> int:
    """
    Show or edit habit data, or print streaks and the summary.

    Args:
        backend: Persistence backend.
        action: One of show, toggle, set, study, streaks, summary.
        date: Day key to edit. Default: today.
        name: Habit label (toggle) or field key (set, study).
        value: New value for set/study.
        vacation: Vacation store for streaks and the summary.

    Returns:
        0 on success, 1 when a read or write failed.
    """
    from .habits import HabitService, HabitStreakEngine, summarize_habits
    from .presenters import render_habit_day, render_habit_summary, render_streaks

    today = _today_key()
    if action in ("streaks", "summary"):
        try:
            history = await backend.list_habit_range(Config.START_DATE, today)
        except PersistenceError as e:
            print(f"Error: {e}")
            return 1
        if action == "streaks":
            streaks = HabitStreakEngine(vacation).all_streaks(history, today=today)
            print(render_streaks(streaks))
        else:
            summary = summarize_habits(history, today, vacation=vacation)
            print(render_habit_summary(summary))
        return 0

    day = date or today
    service = HabitService(backend, day)
    loaded = await service.load()
    if not loaded.success:
        print(f"Error: {loaded.message}")
        return 1

    if action == "toggle":
        result = await service.toggle_habit(name or "")
    elif action == "set":
        result = await service.update_number(name or "", value)
    elif action == "study":
        result = await service.update_study(name or "", value)
    else:
        result = loaded

    if action != "show":
        print(result.message)
    print(render_habit_day(day, service.data))
    return 0 if result.success else 1


def run_vacation(action: str, day: str | None = None, store: VacationStore | None = None) -> int:
    """List, add or remove vacation days (kept in local state)."""
    from .vacation import VacationStore as Store

    vacation = store or Store(_local_state())
    if action in ("add", "remove"):
        if not is_day_key(day):
            print(f"Invalid day: {day!r}. Use YYYY-MM-DD")
            return 1
        days = vacation.add(day) if action == "add" else vacation.remove(day)  # type: ignore[arg-type]
        _log(f"Vacation days: {len(days)}")
    for d in vacation.get():
        print(d)
    return 0


async def run_login(
    api_url: str | None = None,
    password: str | None = None,
    local_state: LocalState | None = None,
) -> int:
    """
    Log in to the API and remember the session token locally.

    Returns:
        0 when logged in (or the server has auth disabled), 1 otherwise.
    """
    from .client import HttpPersistenceClient

    state = local_state or _local_state()
    secret = password if password is not None else getpass.getpass("Password: ")
    async with HttpPersistenceClient(api_url) as client:
        try:
            token = await client.login(secret)
        except PersistenceError as e:
            if e.status_code == 401:
                print("Invalid password")
            else:
                print(f"Error: {e}")
            return 1
    if token is None:
        print("Server has auth disabled; no login needed")
        return 0
    state.set(Config.SESSION_STATE_KEY, token)
    print("Logged in")
    return 0


def _local_state() -> LocalState:
    from .local_state import LocalState as State

    return State()


async def _dispatch(args: argparse.Namespace) -> int:
    from .vacation import VacationStore as Store

    if args.command == "login":
        return await run_login(api_url=args.api_url, password=args.password)

    state = _local_state()
    vacation = Store(state)
    async with open_backend(local=args.local, api_url=args.api_url, local_state=state) as backend:
        if args.command == "track":
            return await run_track(backend, state, vacation)
        if args.command == "log":
            return await run_log(backend, args.activity, args.minutes, state)
        if args.command == "today":
            return await run_today(
                backend,
                merge=not args.no_merge,
                show_gaps=not args.no_gaps,
                activity=args.activity,
                local_state=state,
            )
        if args.command == "usual":
            return await run_usual(backend, state, vacation)
        if args.command == "trends":
            return await run_trends(
                backend,
                args.window,
                args.scope,
                "pct" if args.pct else "m",
                state,
                vacation,
                chart_path=args.chart,
            )
        if args.command == "habit":
            return await run_habit(
                backend,
                args.habit_command,
                date=args.date,
                name=getattr(args, "name", None),
                value=getattr(args, "value", None),
                vacation=vacation,
            )
    return 0


def main() -> int:
    """
    Main CLI entry point for Activity Clock.

    Parses command-line arguments and dispatches to the matching command.
    Without a subcommand, prints help.

    Subcommands:
    - serve [--host HOST] [--port PORT] [--reload]: Run the API
    - track: Interactive log/undo loop
    - log ACTIVITY [-m MINUTES]: Log one entry
    - today [--no-merge] [--no-gaps] [--activity NAME]
    - usual: Today vs the usual day
    - trends [--window N] [--scope SCOPE] [--pct]
    - habit {show,toggle,set,study,streaks,summary}
    - vacation {list,add,remove}
    - login [--password PASSWORD]

    Returns:
        Exit code 0 for success, 1 when a command failed.

    Raises:
        SystemExit: On --help or argument parsing errors.
    """
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog="activity-clock",
        description="Activity Clock - log where the day goes and keep habit streaks",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help=f"API root (default: $ACTIVITY_CLOCK_API_URL or {Config.DEFAULT_API_URL})",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Read and write the JSON storage directly instead of the API",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST})")
    serve_parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port number (default: {DEFAULT_PORT})")
    serve_parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    serve_parser.add_argument("--log-level", default="info", help="Uvicorn log level (default: info)")

    subparsers.add_parser("track", help="Interactive tracker (log / undo / today)")

    log_parser = subparsers.add_parser("log", help="Log time since the last stop")
    log_parser.add_argument("activity", help="Activity name")
    log_parser.add_argument("-m", "--minutes", type=float, default=None, help="Only log this many minutes")

    today_parser = subparsers.add_parser("today", help="Show today's sessions and breakdown")
    today_parser.add_argument("--no-merge", action="store_true", help="Do not merge adjacent entries")
    today_parser.add_argument("--no-gaps", action="store_true", help="Hide untracked gaps")
    today_parser.add_argument("--activity", default=Config.ALL_ACTIVITIES, help="Only show this activity")

    subparsers.add_parser("usual", help="Compare today with the usual day")

    trends_parser = subparsers.add_parser("trends", help="Show activity trends")
    trends_parser.add_argument(
        "--window", type=int, choices=Config.TREND_WINDOWS, default=Config.DEFAULT_TREND_WINDOW
    )
    trends_parser.add_argument("--scope", choices=Config.TREND_SCOPES, default="All")
    trends_parser.add_argument("--pct", action="store_true", help="Show percent of each day")
    trends_parser.add_argument("--chart", default=None, metavar="PATH", help="Also save a PNG chart")

    habit_parser = subparsers.add_parser("habit", help="Show or edit habits")
    habit_parser.add_argument("--date", default=None, help="Day to edit (default: today)")
    habit_sub = habit_parser.add_subparsers(dest="habit_command", required=True)
    habit_sub.add_parser("show", help="Show the day's habits")
    toggle_parser = habit_sub.add_parser("toggle", help="Flip a habit flag")
    toggle_parser.add_argument("name", choices=Config.HABITS)
    set_parser = habit_sub.add_parser("set", help="Set a numeric field (wastedMin, weight, counters)")
    set_parser.add_argument("name")
    set_parser.add_argument("value")
    study_parser = habit_sub.add_parser("study", help="Set study minutes")
    study_parser.add_argument("name", choices=Config.STUDY_KEYS)
    study_parser.add_argument("value")
    habit_sub.add_parser("streaks", help="Show habit streaks")
    habit_sub.add_parser("summary", help="Show the all-history summary")

    vacation_parser = subparsers.add_parser("vacation", help="Manage vacation days")
    vacation_sub = vacation_parser.add_subparsers(dest="vacation_command", required=True)
    vacation_sub.add_parser("list", help="List vacation days")
    for action in ("add", "remove"):
        action_parser = vacation_sub.add_parser(action, help=f"{action.capitalize()} a vacation day")
        action_parser.add_argument("day", help="YYYY-MM-DD")

    login_parser = subparsers.add_parser("login", help="Log in to the API")
    login_parser.add_argument("--password", default=None, help="Password (prompted when omitted)")

    args = parser.parse_args()

    if args.command == "serve":
        run_serve(host=args.host, port=args.port, reload=args.reload, log_level=args.log_level)
        return 0
    if args.command == "vacation":
        return run_vacation(args.vacation_command, getattr(args, "day", None))
    if args.command is None:
        parser.print_help()
        return 0
    return asyncio.run(_dispatch(args))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
