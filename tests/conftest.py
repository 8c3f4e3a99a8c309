"""
Pytest configuration and shared fixtures for Activity Clock tests.

This module contains:
- MockFileSystem: In-memory filesystem for testing without actual I/O
- FakePersistence: In-memory persistence client with failure injection
- FixedClock: Controllable clock for the reconciler and habit service
- Shared fixtures available to all test modules
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from activity_clock.config import Config
from activity_clock.errors import PersistenceError
from activity_clock.models import DayLog, HabitDay, Session
from activity_clock.storage import capitalize_name


class MockFileSystem:
    """
    In-memory file system for testing.

    Simulates a file system using dictionaries:
    - _files: dict mapping path -> content (str)
    - _dirs: set of directory paths
    - _read_only: paths whose writes raise PermissionError

    FEATURES:
    - No actual I/O operations
    - Fast test execution
    - Easy to inspect state
    - fail_writes simulates a full or broken disk
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._read_only: set[str] = set()
        self.fail_writes = False

    def exists(self, path: str) -> bool:
        """True if path is a mock file or directory."""
        return path in self._files or path in self._dirs

    def is_file(self, path: str) -> bool:
        return path in self._files

    def is_dir(self, path: str) -> bool:
        return path in self._dirs

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create a directory and its parents.

        Args:
            path: Absolute directory path.
            exist_ok: If False, raise when the directory already exists.

        Raises:
            FileExistsError: If path exists and exist_ok is False.
        """
        if path in self._dirs and not exist_ok:
            raise FileExistsError(f"Directory exists: {path}")
        current = path
        while current and current not in ("/", "."):
            self._dirs.add(current)
            current = os.path.dirname(current)

    def read_text(self, path: str, _encoding: str = "utf-8") -> str:
        """
        Read mock file content.

        Raises:
            FileNotFoundError: If the file doesn't exist.
        """
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[path]

    def write_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        """
        Write mock file content, creating parent directories.

        Raises:
            PermissionError: If the path is read-only.
            OSError: If fail_writes is set.
        """
        if self.fail_writes:
            raise OSError(f"Simulated write failure: {path}")
        if path in self._read_only:
            raise PermissionError(f"Read-only file: {path}")
        parent = os.path.dirname(path)
        if parent:
            self.makedirs(parent, exist_ok=True)
        self._files[path] = content

    def rename(self, src: str, dst: str) -> None:
        """
        Move a mock file.

        Raises:
            FileNotFoundError: If source doesn't exist.
        """
        if src not in self._files:
            raise FileNotFoundError(f"No such file: {src}")
        self._files[dst] = self._files.pop(src)

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    def get_file(self, path: str) -> str | None:
        """File content or None, without raising."""
        return self._files.get(path)

    def set_file(self, path: str, content: str) -> None:
        self.write_text(path, content)

    def set_read_only(self, path: str) -> None:
        self._read_only.add(path)

    def list_files(self) -> list[str]:
        return sorted(self._files.keys())


class FakePersistence:
    """
    In-memory PersistenceClient and ActivityNamesClient.

    Mirrors the API semantics: appends create the day, deletes remove the
    first exact match, unknown days read as empty. Failure injection:

    - fail_append_on: day keys whose append raises PersistenceError
    - fail_delete_on: day keys whose delete raises PersistenceError
    - fail_get / fail_range / fail_names: make those reads raise

    Every call is recorded in `calls` as (method, date-or-None).
    """

    def __init__(self) -> None:
        self.days: dict[str, list[Session]] = {}
        self.habits: dict[str, dict[str, Any]] = {}
        self.names: list[str] = []
        self.fail_append_on: set[str] = set()
        self.fail_delete_on: set[str] = set()
        self.fail_get = False
        self.fail_range = False
        self.fail_names = False
        self.fail_habit_put = False
        self.calls: list[tuple[str, str | None]] = []

    def _log(self, date: str) -> DayLog:
        return DayLog(date=date, sessions=list(self.days.get(date, [])))

    async def get_day(self, date: str) -> DayLog:
        self.calls.append(("get_day", date))
        if self.fail_get:
            raise PersistenceError("get failed", status_code=500)
        return self._log(date)

    async def append_session(self, date: str, session: Session) -> DayLog:
        self.calls.append(("append_session", date))
        if date in self.fail_append_on:
            raise PersistenceError(f"append failed on {date}", status_code=500)
        self.days.setdefault(date, []).append(session)
        return self._log(date)

    async def delete_session(self, date: str, session: Session) -> DayLog:
        self.calls.append(("delete_session", date))
        if date in self.fail_delete_on:
            raise PersistenceError(f"delete failed on {date}", status_code=500)
        sessions = self.days.get(date, [])
        for i, stored in enumerate(sessions):
            if stored.matches(session):
                del sessions[i]
                break
        return self._log(date)

    async def list_day_range(self, from_date: str, to_date: str) -> dict[str, DayLog]:
        self.calls.append(("list_day_range", None))
        if self.fail_range:
            raise PersistenceError("range failed", status_code=500)
        return {d: self._log(d) for d in sorted(self.days) if from_date <= d <= to_date}

    async def get_habit_day(self, date: str) -> HabitDay:
        self.calls.append(("get_habit_day", date))
        if self.fail_get:
            raise PersistenceError("get failed", status_code=500)
        return HabitDay(date=date, data=dict(self.habits.get(date, {})))

    async def put_habit_day(self, date: str, data: dict[str, Any]) -> HabitDay:
        self.calls.append(("put_habit_day", date))
        if self.fail_habit_put:
            raise PersistenceError("put failed", status_code=500)
        self.habits[date] = dict(data)
        return HabitDay(date=date, data=dict(data))

    async def list_habit_range(self, from_date: str, to_date: str) -> dict[str, dict[str, Any]]:
        self.calls.append(("list_habit_range", None))
        if self.fail_range:
            raise PersistenceError("range failed", status_code=500)
        return {d: dict(v) for d, v in sorted(self.habits.items()) if from_date <= d <= to_date}

    async def list_names(self) -> list[str]:
        self.calls.append(("list_names", None))
        if self.fail_names:
            raise PersistenceError("names failed", status_code=500)
        return sorted(self.names)

    async def ensure_name(self, name: str) -> None:
        self.calls.append(("ensure_name", None))
        clean = capitalize_name(name)
        if clean and clean not in self.names:
            self.names.append(clean)

    def count(self, method: str) -> int:
        """How many times a method was called."""
        return sum(1 for name, _ in self.calls if name == method)


class FixedClock:
    """Clock returning a settable instant; advance() moves it forward."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: float) -> datetime:
        self.current = self.current + timedelta(minutes=minutes)
        return self.current

    def set(self, instant: datetime) -> None:
        self.current = instant


def utc(*args: int) -> datetime:
    """Aware UTC datetime shorthand: utc(2025, 12, 1, 9, 30)."""
    return datetime(*args, tzinfo=UTC)


@pytest.fixture
def mock_fs() -> MockFileSystem:
    """Fresh in-memory filesystem for each test."""
    return MockFileSystem()


@pytest.fixture
def fake_persistence() -> FakePersistence:
    """Fresh in-memory persistence client for each test."""
    return FakePersistence()


@pytest.fixture
def utc_config() -> Iterator[None]:
    """Run the test with days defined in UTC; auth disabled."""
    Config.set_test_overrides(timezone="UTC", password="", secret="")
    yield
    Config.reset_test_overrides()


@pytest.fixture
def edmonton_config() -> Iterator[None]:
    """Run the test with days defined in America/Edmonton; auth disabled."""
    Config.set_test_overrides(timezone="America/Edmonton", password="", secret="")
    yield
    Config.reset_test_overrides()


@pytest.fixture
def auth_config() -> Iterator[None]:
    """Run the test with auth enabled (password 'hunter2')."""
    Config.set_test_overrides(timezone="UTC", password="hunter2", secret="test-secret")
    yield
    Config.reset_test_overrides()
