"""
Document storage for the Activity Clock API.

PURPOSE: Centralized JSON file I/O with error handling and data integrity.
AI CONTEXT: All server-side persistence goes through this module.

STORAGE STRUCTURE:
    .activity_clock/
    ├── activity_logs.json   # Dict: date -> {date, sessions: [...]}
    ├── habits.json          # Dict: date -> habit data bag
    └── activity_names.json  # List: known activity names, sorted

DOCUMENT SEMANTICS:
- Day logs are created on first append (upsert) and never deleted
- Deleting a session removes ONE exact (start, end, activity) match;
  deleting something that is not there returns the unchanged document
- Habit days are fully replaced on every put
- Activity names are inserted idempotently, first letter capitalized

ERROR HANDLING STRATEGY:
- File not found: Return empty structure (dict or list)
- JSON corruption: Log error, return empty structure
- Write failure: Log error, return None/False so the route can answer 500

USAGE:
    # Production
    storage = StorageManager()

    # Testing with MockFileSystem
    storage = StorageManager(storage_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from .config import Config
from .filesystem import RealFileSystem
from .models import Session

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["StorageManager", "capitalize_name"]

logger = logging.getLogger(__name__)


def capitalize_name(raw: str) -> str:
    """
    Normalize an activity name for the known-names list.

    Trims whitespace and upper-cases the first character only, leaving
    the rest untouched ('gym' -> 'Gym', 'iOS dev' -> 'IOS dev').

    Args:
        raw: User-entered name.

    Returns:
        Normalized name, or '' when raw is blank.
    """
    name = raw.strip()
    if not name:
        return ""
    return name[0].upper() + name[1:]


class StorageManager:
    """
    JSON file I/O manager with comprehensive error handling.

    DESIGN PRINCIPLES:
    1. Fail-safe reads: Never crash on I/O errors, return empty structures
    2. Reported writes: Write failures return None/False to the caller
    3. Idempotent: Safe to initialize multiple times
    4. Logged: All errors recorded for debugging
    5. Testable: FileSystem can be injected for mocking

    THREAD SAFETY:
    Not thread-safe. The API runs one worker over one storage dir.
    """

    def __init__(
        self,
        storage_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize storage with directory structure.

        Args:
            storage_dir: Custom storage path. Default: Config.get_storage_dir()
            filesystem: FileSystem implementation. Default: RealFileSystem

        Creates:
            - Main storage directory
            - Empty JSON files (activity logs, habits, activity names)
        """
        self.storage_dir = storage_dir or Config.get_storage_dir()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.activity_logs_file = os.path.join(self.storage_dir, Config.ACTIVITY_LOGS_FILE)
        self.habits_file = os.path.join(self.storage_dir, Config.HABITS_FILE)
        self.activity_names_file = os.path.join(self.storage_dir, Config.ACTIVITY_NAMES_FILE)

        self._initialize_storage()

    def _initialize_storage(self) -> None:
        """
        Create directory structure and initialize empty files.

        ERROR HANDLING:
        Logs errors but doesn't raise - allows degraded operation.
        """
        try:
            self._fs.makedirs(self.storage_dir, exist_ok=True)

            if not self._fs.exists(self.activity_logs_file):
                self._write_json(self.activity_logs_file, {})
            if not self._fs.exists(self.habits_file):
                self._write_json(self.habits_file, {})
            if not self._fs.exists(self.activity_names_file):
                self._write_json(self.activity_names_file, [])

            logger.info(f"Storage initialized: {self.storage_dir}")
        except OSError as e:
            logger.error(f"Failed to initialize storage: {e}")

    def _read_json(self, file_path: str, default: Any) -> Any:
        """
        Read JSON file with error handling.

        Args:
            file_path: Path to JSON file
            default: Value to return on any error

        Returns:
            Parsed JSON data or default value.
        """
        try:
            content = self._fs.read_text(file_path)
            data = json.loads(content)
        except FileNotFoundError:
            return default
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {file_path}: {e}")
            return default
        except OSError as e:
            logger.error(f"Error reading {file_path}: {e}")
            return default
        if not isinstance(data, type(default)):
            logger.error(f"Unexpected document shape in {file_path}: {type(data).__name__}")
            return default
        return data

    def _write_json(self, file_path: str, data: Any) -> bool:
        """
        Write JSON file through a temporary file and rename.

        Args:
            file_path: Path to JSON file
            data: Data to serialize

        Returns:
            True on success, False on failure.
        """
        tmp_path = f"{file_path}.tmp"
        try:
            content = json.dumps(data, indent=2, default=str)
            self._fs.write_text(tmp_path, content)
            self._fs.rename(tmp_path, file_path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing {file_path}: {e}")
            return False

    # =========================================================================
    # ACTIVITY LOG OPERATIONS
    # =========================================================================

    def load_activity_logs(self) -> dict[str, Any]:
        """
        Load all day logs.

        Returns:
            Dict of date -> {date, sessions}. Empty dict if unavailable.
        """
        result: dict[str, Any] = self._read_json(self.activity_logs_file, {})
        return result

    def get_day_log(self, date: str) -> dict[str, Any]:
        """
        Get one day's log.

        Args:
            date: Day key 'YYYY-MM-DD'

        Returns:
            Stored document, or {date, sessions: []} when absent.
        """
        doc = self.load_activity_logs().get(date)
        if not isinstance(doc, dict):
            return {"date": date, "sessions": []}
        return {"date": date, "sessions": list(doc.get("sessions") or [])}

    def append_session(self, date: str, session: Session) -> dict[str, Any] | None:
        """
        Append a session to a day log, creating the log if missing.

        Args:
            date: Day key 'YYYY-MM-DD'
            session: Validated session to push

        Returns:
            Updated document, or None if the write failed.
        """
        logs = self.load_activity_logs()
        doc = self.get_day_log(date) if date in logs else {"date": date, "sessions": []}
        doc["sessions"].append(session.to_dict())
        logs[date] = doc
        if not self._write_json(self.activity_logs_file, logs):
            return None
        return doc

    def delete_session(self, date: str, session: Session) -> dict[str, Any] | None:
        """
        Remove one stored session matching (start, end, activity) exactly.

        Timestamps are compared as instants, so '...00.000Z' and
        '...00+00:00' match. A missing day or missing session is not an
        error: the current document is returned unchanged.

        Args:
            date: Day key 'YYYY-MM-DD'
            session: Exact values that were saved

        Returns:
            Current document after removal, or None if the write failed.
        """
        logs = self.load_activity_logs()
        if date not in logs:
            return {"date": date, "sessions": []}

        doc = self.get_day_log(date)
        remaining: list[dict[str, Any]] = []
        removed = False
        for stored in doc["sessions"]:
            if not removed and self._matches(stored, session):
                removed = True
                continue
            remaining.append(stored)

        if not removed:
            logger.info(f"Delete on {date}: no session matched {session.to_dict()}")
            return doc

        doc["sessions"] = remaining
        logs[date] = doc
        if not self._write_json(self.activity_logs_file, logs):
            return None
        return doc

    @staticmethod
    def _matches(stored: dict[str, Any], session: Session) -> bool:
        try:
            return Session.from_dict(stored).matches(session)
        except (KeyError, ValueError, TypeError):
            return False

    def list_day_logs(self, from_date: str, to_date: str) -> dict[str, Any]:
        """
        Get stored day logs in an inclusive date range.

        Args:
            from_date: First day key
            to_date: Last day key

        Returns:
            Dict of date -> document for days that exist, ascending.
        """
        logs = self.load_activity_logs()
        return {
            date: self.get_day_log(date)
            for date in sorted(logs)
            if from_date <= date <= to_date
        }

    # =========================================================================
    # HABIT OPERATIONS
    # =========================================================================

    def load_habits(self) -> dict[str, Any]:
        """
        Load all habit days.

        Returns:
            Dict of date -> data bag. Empty dict if unavailable.
        """
        result: dict[str, Any] = self._read_json(self.habits_file, {})
        return result

    def get_habit_data(self, date: str) -> dict[str, Any]:
        """Return one day's habit data, {} when absent."""
        data = self.load_habits().get(date)
        return dict(data) if isinstance(data, dict) else {}

    def put_habit_data(self, date: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Replace one day's habit data.

        Args:
            date: Day key 'YYYY-MM-DD'
            data: Complete data bag (replaces what was stored)

        Returns:
            Stored data, or None if the write failed.
        """
        habits = self.load_habits()
        habits[date] = dict(data)
        if not self._write_json(self.habits_file, habits):
            return None
        return habits[date]

    def list_habits(self, from_date: str, to_date: str) -> dict[str, Any]:
        """Habit data for stored days in an inclusive range, ascending."""
        habits = self.load_habits()
        return {
            date: habits[date]
            for date in sorted(habits)
            if from_date <= date <= to_date and isinstance(habits[date], dict)
        }

    # =========================================================================
    # ACTIVITY NAME OPERATIONS
    # =========================================================================

    def load_activity_names(self) -> list[str]:
        """
        Load known activity names.

        Returns:
            Sorted list of names. Empty list if unavailable.
        """
        names: list[Any] = self._read_json(self.activity_names_file, [])
        return sorted({str(n) for n in names if n})

    def ensure_activity_name(self, raw: str) -> str | None:
        """
        Insert an activity name if it is not already known.

        Args:
            raw: User-entered name

        Returns:
            The normalized name (existing or inserted), '' for a blank
            name, or None if the write failed.
        """
        name = capitalize_name(raw)
        if not name:
            return ""
        names = self.load_activity_names()
        if name in names:
            return name
        if not self._write_json(self.activity_names_file, sorted([*names, name])):
            return None
        logger.info(f"New activity name: {name}")
        return name
