"""
Configuration for Activity Clock.

PURPOSE: Centralized configuration constants and runtime settings.
AI CONTEXT: All configurable values live here - modify this file to change behavior.

CONFIGURATION CATEGORIES:
- Calendar: Time zone and the first day of aggregated history
- Session display: Merge and gap thresholds for a day's sessions
- Trends: Window sizes and top-N bucketing
- Habits: Habit names, study keys, waste allowance, streak guard
- Storage: Local state and document file names
- Auth: Cookie name and token lifetime

ENVIRONMENT VARIABLES:
- ACTIVITY_CLOCK_TZ: IANA zone for day boundaries (default: America/Edmonton)
- ACTIVITY_CLOCK_API_URL: Base URL of the persistence API (default: http://127.0.0.1:8000)
- ACTIVITY_CLOCK_STORAGE_DIR: Directory for local files (default: .activity_clock)
- APP_PASSWORD: Login password (auth disabled when unset)
- APP_SESSION_SECRET: Token signing secret (auth disabled when unset)
- APP_SESSION_DAYS: Token lifetime in days (default: 30)

USAGE:
    from activity_clock.config import Config
    tz_name = Config.get_timezone_name()
    limit = Config.WASTE_LIMIT_MINUTES
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for Activity Clock.

    DESIGN: Frozen dataclass ensures configuration immutability at runtime.
    All values are class-level constants - no instance creation needed.

    STORAGE STRUCTURE:
        .activity_clock/
        ├── local_state.json     # Client-local: cursor, vacation days
        ├── activity_logs.json   # Server: date -> {date, sessions}
        ├── habits.json          # Server: date -> habit data bag
        └── activity_names.json  # Server: sorted list of known names
    """

    # =========================================================================
    # CALENDAR CONFIGURATION
    # =========================================================================
    DEFAULT_TIMEZONE: ClassVar[str] = "America/Edmonton"
    START_DATE: ClassVar[str] = "2025-12-01"
    """First day (inclusive) of history loaded for aggregates and summaries."""

    MINUTES_PER_DAY: ClassVar[int] = 1440

    # =========================================================================
    # SESSION DISPLAY
    # =========================================================================
    MERGE_GAP_MINUTES: ClassVar[float] = 3.0
    """Same-activity sessions separated by at most this gap are merged."""

    GAP_THRESHOLD_MINUTES: ClassVar[float] = 5.0
    """Gaps of at least this length are shown as untracked gap rows."""

    GAP_ACTIVITY: ClassVar[str] = "__GAP__"
    UNTRACKED_ACTIVITY: ClassVar[str] = "Untracked"
    OTHER_ACTIVITY: ClassVar[str] = "Other"
    ALL_ACTIVITIES: ClassVar[str] = "All"

    # =========================================================================
    # TRENDS
    # =========================================================================
    TOP_N: ClassVar[int] = 7
    TREND_WINDOWS: ClassVar[tuple[int, ...]] = (7, 14, 30, 60)
    DEFAULT_TREND_WINDOW: ClassVar[int] = 30
    TREND_SCOPES: ClassVar[tuple[str, ...]] = ("All", "Weekdays", "Weekends")

    # =========================================================================
    # HABITS
    # =========================================================================
    WASTE_LIMIT_MINUTES: ClassVar[float] = 50
    LESS_WASTE_HABIT_LABEL: ClassVar[str] = "Less than 50m waste"

    HABITS: ClassVar[tuple[str, ...]] = (
        "Daily Book",
        "Weight Check",
        "Cold Shower",
        "Sand",
        "Abishek",
        "Ab",
        "Pull/Push",
        "HIIT",
        "Steps",
        "LT",
        "Typing",
        "Proj",
        "Comm",
        "Less than 50m waste",
        "No news for the day",
        "No external music for the day",
    )

    STUDY_KEYS: ClassVar[tuple[str, ...]] = ("BK", "SD", "AP")
    LEGACY_STUDY_KEYS: ClassVar[dict[str, str]] = {
        "BK": "leetcode",
        "SD": "systemDesign",
        "AP": "resumeApply",
    }
    """Older records stored study minutes under these names."""

    EVENT_KEYS: ClassVar[dict[str, str]] = {
        "newsAccessCount": "lastNewsTs",
        "musicListenCount": "lastMusicTs",
        "jlCount": "lastJlTs",
    }
    """Counter -> timestamp key stamped when the counter increases."""

    STREAK_WALKBACK_LIMIT: ClassVar[int] = 3660
    """Roughly ten years of days; bounds the streak walk on corrupt history."""

    # =========================================================================
    # STORAGE CONFIGURATION
    # =========================================================================
    STORAGE_DIR: ClassVar[str] = ".activity_clock"
    LOCAL_STATE_FILE: ClassVar[str] = "local_state.json"
    ACTIVITY_LOGS_FILE: ClassVar[str] = "activity_logs.json"
    HABITS_FILE: ClassVar[str] = "habits.json"
    ACTIVITY_NAMES_FILE: ClassVar[str] = "activity_names.json"

    CURSOR_STATE_KEY: ClassVar[str] = "activity_clock_last_stop"
    VACATION_STATE_KEY: ClassVar[str] = "activity_clock_vacation_days"
    SESSION_STATE_KEY: ClassVar[str] = "activity_clock_session"

    # =========================================================================
    # API / AUTH
    # =========================================================================
    DEFAULT_API_URL: ClassVar[str] = "http://127.0.0.1:8000"
    REQUEST_TIMEOUT_SECONDS: ClassVar[float] = 10.0
    SESSION_COOKIE_NAME: ClassVar[str] = "activity_session"
    DEFAULT_SESSION_DAYS: ClassVar[int] = 30
    TOKEN_ALGORITHM: ClassVar[str] = "HS256"

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _timezone_override: ClassVar[str | None] = None
    _storage_dir_override: ClassVar[str | None] = None
    _password_override: ClassVar[str | None] = None
    _secret_override: ClassVar[str | None] = None

    @classmethod
    def get_timezone_name(cls) -> str:
        """
        Get the IANA time zone that defines calendar days.

        Uses a priority system: test override first, then the
        ACTIVITY_CLOCK_TZ environment variable, then DEFAULT_TIMEZONE.

        Business context: Every day key, local midnight and "minutes since
        midnight" figure is computed in this zone, so the whole history
        must be read and written with the same value.

        Returns:
            IANA zone name, e.g. 'America/Edmonton'.

        Example:
            >>> Config.get_timezone_name()
            'America/Edmonton'
        """
        if cls._timezone_override is not None:
            return cls._timezone_override
        return os.environ.get("ACTIVITY_CLOCK_TZ", "") or cls.DEFAULT_TIMEZONE

    @classmethod
    def get_storage_dir(cls) -> str:
        """
        Get the directory holding local state and document files.

        Returns:
            Directory path. Defaults to STORAGE_DIR relative to the cwd.
        """
        if cls._storage_dir_override is not None:
            return cls._storage_dir_override
        return os.environ.get("ACTIVITY_CLOCK_STORAGE_DIR", "") or cls.STORAGE_DIR

    @classmethod
    def get_api_url(cls) -> str:
        """Base URL of the persistence API, without trailing slash."""
        return (os.environ.get("ACTIVITY_CLOCK_API_URL", "") or cls.DEFAULT_API_URL).rstrip("/")

    @classmethod
    def get_app_password(cls) -> str:
        """Login password; empty string when not configured."""
        if cls._password_override is not None:
            return cls._password_override
        return os.environ.get("APP_PASSWORD", "")

    @classmethod
    def get_session_secret(cls) -> str:
        """Token signing secret; empty string when not configured."""
        if cls._secret_override is not None:
            return cls._secret_override
        return os.environ.get("APP_SESSION_SECRET", "")

    @classmethod
    def get_session_days(cls) -> int:
        """
        Get the login token lifetime in days.

        Invalid or non-positive APP_SESSION_DAYS values fall back to
        DEFAULT_SESSION_DAYS.

        Returns:
            Lifetime in whole days.
        """
        raw = os.environ.get("APP_SESSION_DAYS", "")
        try:
            days = int(raw)
        except ValueError:
            return cls.DEFAULT_SESSION_DAYS
        return days if days > 0 else cls.DEFAULT_SESSION_DAYS

    @classmethod
    def is_auth_enabled(cls) -> bool:
        """
        Check whether data routes require a login token.

        Auth is on only when both the password and the signing secret are
        configured. Without them the API runs open, which suits a local
        single-user install.

        Returns:
            True when APP_PASSWORD and APP_SESSION_SECRET are both set.
        """
        return bool(cls.get_app_password() and cls.get_session_secret())

    @classmethod
    def set_test_overrides(
        cls,
        timezone: str | None = None,
        storage_dir: str | None = None,
        password: str | None = None,
        secret: str | None = None,
    ) -> None:
        """
        Set test overrides for environment-based settings.

        Allows tests to control zone, storage and auth settings without
        modifying environment variables. Must call reset_test_overrides()
        in test teardown to avoid affecting other tests.

        Args:
            timezone: Override for the IANA zone name. None to clear.
            storage_dir: Override for the storage directory. None to clear.
            password: Override for the login password. None to clear.
            secret: Override for the signing secret. None to clear.

        Example:
            >>> Config.set_test_overrides(timezone='UTC')
            >>> Config.get_timezone_name()
            'UTC'
            >>> Config.reset_test_overrides()
        """
        cls._timezone_override = timezone
        cls._storage_dir_override = storage_dir
        cls._password_override = password
        cls._secret_override = secret

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Clear all test overrides so settings come from the environment again."""
        cls._timezone_override = None
        cls._storage_dir_override = None
        cls._password_override = None
        cls._secret_override = None
