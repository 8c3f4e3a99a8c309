"""
Habit tracking: derived fields, streaks, daily edits and all-time summary.

PURPOSE: Everything computed from HabitDay data bags.
AI CONTEXT: Streak and summary functions are pure; HabitService performs
the awaited reads and writes for one day through the persistence client.

DATA BAG KEYS:
- Habit flags: booleans named after Config.HABITS entries
- Counters: newsAccessCount, musicListenCount, jlCount (+ last*Ts stamps)
- study: {"BK": min, "SD": min, "AP": min} (legacy names also read)
- weight: number (older records may hold a string)
- wastedMin: minutes wasted; drives the derived fields below

DERIVED FIELDS (recomputed on every save, never set directly):
- wasteDelta = wastedMin - Config.WASTE_LIMIT_MINUTES
- "Less than 50m waste" = wastedMin <= Config.WASTE_LIMIT_MINUTES
Both are removed when wastedMin is absent.

STREAKS:
Walk back from today. Vacation days are skipped (neither counted nor
breaking); the first day without a truthy flag ends the streak.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .config import Config
from .errors import PersistenceError
from .reconciler import ServiceResult
from .timekeys import TimeZoneLike, day_key, now_utc, parse_instant, previous_day_key, to_iso

if TYPE_CHECKING:
    from .persistence import PersistenceClient
    from .vacation import VacationStore

__all__ = [
    "apply_derived_fields",
    "study_value",
    "habit_streak",
    "HabitStreakEngine",
    "HabitService",
    "HabitSummary",
    "WeightPoint",
    "summarize_habits",
    "minutes_since",
    "minutes_since_any",
]

logger = logging.getLogger(__name__)


def _finite_number(value: Any) -> float | None:
    """Value as a float when it is a real finite number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value) if math.isfinite(value) else None


def _coerce_number(value: Any) -> float | None:
    """Parse numbers and numeric strings; None when not a finite number."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _plain(number: float) -> int | float:
    """Store integral values as ints so the JSON stays tidy."""
    return int(number) if number.is_integer() else number


def _is_vacation(vacation: VacationStore | Collection[str] | None, day: str) -> bool:
    if vacation is None:
        return False
    if hasattr(vacation, "is_vacation_day"):
        return bool(vacation.is_vacation_day(day))
    return day in vacation


# =============================================================================
# DERIVED FIELDS
# =============================================================================


def apply_derived_fields(
    data: Mapping[str, Any], limit: float = Config.WASTE_LIMIT_MINUTES
) -> dict[str, Any]:
    """
    Recompute the waste-derived fields of a habit data bag.

    Args:
        data: Habit data as edited by the user.
        limit: Daily waste allowance in minutes.

    Returns:
        New dict. With a numeric wastedMin it carries wasteDelta and the
        derived habit flag; otherwise both keys are removed.

    Example:
        >>> apply_derived_fields({"wastedMin": 60})
        {'wastedMin': 60, 'Less than 50m waste': False, 'wasteDelta': 10}
    """
    computed = dict(data)
    wasted = _finite_number(computed.get("wastedMin"))
    if wasted is not None:
        computed[Config.LESS_WASTE_HABIT_LABEL] = wasted <= limit
        computed["wasteDelta"] = _plain(wasted - limit)
    else:
        computed.pop(Config.LESS_WASTE_HABIT_LABEL, None)
        computed.pop("wasteDelta", None)
    return computed


def study_value(key: str, data: Mapping[str, Any] | None) -> float:
    """
    Read study minutes for a key, falling back to its legacy name.

    Args:
        key: Current study key ('BK', 'SD', 'AP').
        data: Habit data bag (may be None).

    Returns:
        Minutes, or 0 when neither key holds a finite number.
    """
    study = (data or {}).get("study") or {}
    if not isinstance(study, Mapping):
        return 0
    value = _finite_number(study.get(key))
    if value is not None:
        return value
    legacy = Config.LEGACY_STUDY_KEYS.get(key)
    if legacy:
        value = _finite_number(study.get(legacy))
        if value is not None:
            return value
    return 0


# =============================================================================
# STREAKS
# =============================================================================


def habit_streak(
    habit: str,
    history: Mapping[str, Mapping[str, Any]],
    today: str,
    vacation: VacationStore | Collection[str] | None = None,
    limit: int = Config.STREAK_WALKBACK_LIMIT,
) -> int:
    """
    Count consecutive days (ending today) on which a habit was done.

    Business context: Streaks reward consistency. A vacation must not
    reset them, so vacation days are stepped over as if absent from the
    calendar.

    Args:
        habit: Habit flag name.
        history: Day key -> habit data bag.
        today: Day key the walk starts from.
        vacation: Vacation store or plain collection of day keys.
        limit: Maximum number of days inspected.

    Returns:
        Streak length >= 0.

    Example:
        >>> habit_streak("Sand", {"2025-12-03": {"Sand": True},
        ...                       "2025-12-02": {"Sand": True}}, "2025-12-03")
        2
    """
    streak = 0
    key = today
    for _ in range(limit):
        if _is_vacation(vacation, key):
            key = previous_day_key(key)
            continue
        day = history.get(key)
        if not day or not day.get(habit):
            break
        streak += 1
        key = previous_day_key(key)
    return streak


class HabitStreakEngine:
    """
    Streak calculator bound to a vacation store and zone.

    Reads the vacation store on every call, so a change made through
    VacationStore.set() shows up in the next computation without any
    cache invalidation.
    """

    def __init__(
        self,
        vacation: VacationStore | Collection[str] | None = None,
        tz: TimeZoneLike = None,
        limit: int = Config.STREAK_WALKBACK_LIMIT,
    ) -> None:
        self.vacation = vacation
        self.tz = tz
        self.limit = limit

    def _today(self, today: str | None, now: datetime | None) -> str:
        if today:
            return today
        return day_key(now or now_utc(), self.tz)

    def streak(
        self,
        habit: str,
        history: Mapping[str, Mapping[str, Any]],
        today: str | None = None,
        now: datetime | None = None,
    ) -> int:
        """Streak for one habit, as of today (or the day containing now)."""
        return habit_streak(habit, history, self._today(today, now), self.vacation, self.limit)

    def all_streaks(
        self,
        history: Mapping[str, Mapping[str, Any]],
        habits: Iterable[str] = Config.HABITS,
        today: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """
        Streaks for every habit.

        Args:
            history: Day key -> habit data bag (today included).
            habits: Habit names. Default: Config.HABITS
            today: Day key to start from. Default: day of now.
            now: Instant used when today is not given.

        Returns:
            Habit name -> streak, in the order of habits.
        """
        key = self._today(today, now)
        return {h: habit_streak(h, history, key, self.vacation, self.limit) for h in habits}


# =============================================================================
# HABIT SERVICE (one day's edits)
# =============================================================================


class HabitService:
    """
    Load and edit one day's habit data.

    Every edit builds a new data bag, applies the derived fields, updates
    the in-memory copy first and then writes it. A failed write is logged
    and reported; the in-memory copy keeps the edit.
    """

    def __init__(
        self,
        persistence: PersistenceClient,
        date: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.persistence = persistence
        self.date = date
        self._clock = clock or now_utc
        self.data: dict[str, Any] = {}

    async def load(self) -> ServiceResult:
        """
        Fetch the day's data, coercing a string weight to a number.

        Returns:
            ServiceResult with data['data'] holding the loaded bag.
        """
        try:
            day = await self.persistence.get_habit_day(self.date)
        except PersistenceError as e:
            logger.error(f"Error fetching habits for {self.date}: {e}")
            return ServiceResult(success=False, message=str(e), error=e.code)

        data = dict(day.data)
        if isinstance(data.get("weight"), str):
            weight = _coerce_number(data["weight"])
            if weight is not None:
                data["weight"] = _plain(weight)
        self.data = data
        return ServiceResult(success=True, message="Loaded", data={"data": dict(data)})

    async def save(self, updated: Mapping[str, Any]) -> ServiceResult:
        """
        Apply derived fields, keep the result locally and persist it.

        Args:
            updated: Complete data bag to store.

        Returns:
            ServiceResult with the computed bag in data['data'].
        """
        computed = apply_derived_fields(updated)
        self.data = computed
        try:
            await self.persistence.put_habit_day(self.date, computed)
        except PersistenceError as e:
            logger.error(f"Error saving habits for {self.date}: {e}")
            return ServiceResult(
                success=False,
                message=f"Saved locally only: {e}",
                data={"data": dict(computed)},
                error=e.code,
            )
        return ServiceResult(success=True, message="Saved", data={"data": dict(computed)})

    async def toggle_habit(self, habit: str) -> ServiceResult:
        """Flip a habit flag. The derived waste habit cannot be toggled."""
        if habit == Config.LESS_WASTE_HABIT_LABEL:
            return ServiceResult(
                success=True,
                message=f"'{habit}' is derived from wastedMin",
                data={"data": dict(self.data), "changed": False},
            )
        return await self.save({**self.data, habit: not self.data.get(habit)})

    async def update_number(self, key: str, value: Any) -> ServiceResult:
        """
        Set a numeric field, clamped at 0 (non-numbers become 0).

        For event counters (Config.EVENT_KEYS) an increase also stamps the
        matching 'last happened' timestamp with now.
        """
        number = _coerce_number(value)
        next_val = max(0.0, number) if number is not None else 0.0
        prev = _finite_number(self.data.get(key)) or 0.0

        updated = {**self.data, key: _plain(next_val)}
        stamp_key = Config.EVENT_KEYS.get(key)
        if stamp_key and next_val > prev:
            updated[stamp_key] = to_iso(self._clock())
        return await self.save(updated)

    async def update_study(self, key: str, value: Any) -> ServiceResult:
        """Set study minutes for a key, clamped at 0."""
        number = _coerce_number(value)
        current = self.data.get("study")
        study = dict(current) if isinstance(current, Mapping) else {}
        study[key] = _plain(max(0.0, number) if number is not None else 0.0)
        return await self.save({**self.data, "study": study})

    def study_value(self, key: str) -> float:
        """Study minutes of the loaded day (legacy keys honored)."""
        return study_value(key, self.data)


# =============================================================================
# SUMMARY
# =============================================================================


@dataclass
class WeightPoint:
    date: str
    weight: float


@dataclass
class HabitSummary:
    """
    Aggregates over every habit day from the start date to today.

    Per-day averages divide by days_observed (days with a record);
    days_counted only counts days carrying meaningful input.
    """

    study: dict[str, float] = field(default_factory=dict)
    total_study: float = 0
    total_waste: float = 0
    total_waste_delta: float = 0
    days_counted: int = 0
    days_observed: int = 0
    total_news_access: float = 0
    total_music_listen: float = 0
    total_jl: float = 0
    avg_news_per_day: float = 0
    avg_music_per_day: float = 0
    avg_jl_per_day: float = 0
    avg_study_per_day: dict[str, float] = field(default_factory=dict)
    avg_waste_per_day: float = 0
    avg_total_study_per_day: float = 0
    first_weight: float | None = None
    first_weight_date: str | None = None
    latest_weight: float | None = None
    latest_weight_date: str | None = None
    weight_series: list[WeightPoint] = field(default_factory=list)

    @property
    def weight_delta(self) -> float | None:
        """Latest minus first weight (positive means gain)."""
        if self.first_weight is None or self.latest_weight is None:
            return None
        return self.latest_weight - self.first_weight

    @property
    def weight_delta_pct(self) -> float | None:
        """Weight change as a percentage of the first weight, 1 decimal."""
        delta = self.weight_delta
        if delta is None or not self.first_weight:
            return None
        return round(delta / self.first_weight * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["weight_delta"] = self.weight_delta
        result["weight_delta_pct"] = self.weight_delta_pct
        return result


def _safe_avg(total: float, days: int) -> float:
    return total / days if days > 0 else 0.0


def summarize_habits(
    history: Mapping[str, Mapping[str, Any]],
    today: str,
    today_data: Mapping[str, Any] | None = None,
    start_date: str = Config.START_DATE,
    vacation: VacationStore | Collection[str] | None = None,
) -> HabitSummary:
    """
    Aggregate all habit data between start_date and today.

    Today's live data (when given) replaces the stored copy so fresh edits
    count immediately. Vacation days are left out.

    Args:
        history: Day key -> stored habit data bag.
        today: Last day (inclusive).
        today_data: Unsaved or freshly saved data for today.
        start_date: First day (inclusive).
        vacation: Vacation store or collection of day keys to skip.

    Returns:
        HabitSummary.
    """
    merged: dict[str, Mapping[str, Any]] = dict(history)
    if today_data is not None:
        merged[today] = today_data
    dates = sorted(
        d for d in merged if start_date <= d <= today and not _is_vacation(vacation, d)
    )

    summary = HabitSummary(study={k: 0 for k in Config.STUDY_KEYS})
    for date in dates:
        day = merged.get(date) or {}

        values = {k: study_value(k, day) for k in Config.STUDY_KEYS}
        day_study = sum(values.values())
        for k, v in values.items():
            summary.study[k] += v
        summary.total_study += day_study

        wasted = _finite_number(day.get("wastedMin"))
        delta = _finite_number(day.get("wasteDelta"))
        if wasted is not None or delta is not None:
            if wasted is not None:
                summary.total_waste += wasted
            summary.total_waste_delta += (
                delta if delta is not None else wasted - Config.WASTE_LIMIT_MINUTES
            )

        counters = {
            key: _finite_number(day.get(key))
            for key in ("newsAccessCount", "musicListenCount", "jlCount")
        }
        summary.total_news_access += counters["newsAccessCount"] or 0
        summary.total_music_listen += counters["musicListenCount"] or 0
        summary.total_jl += counters["jlCount"] or 0

        weight = _coerce_number(day.get("weight"))
        has_weight = weight is not None and weight > 0

        if (
            day_study > 0
            or wasted is not None
            or has_weight
            or Config.LESS_WASTE_HABIT_LABEL in day
            or any(v is not None for v in counters.values())
        ):
            summary.days_counted += 1

        if has_weight:
            if summary.first_weight is None:
                summary.first_weight = weight
                summary.first_weight_date = date
            summary.latest_weight = weight
            summary.latest_weight_date = date
            summary.weight_series.append(WeightPoint(date=date, weight=weight))

    observed = len(dates)
    summary.days_observed = observed
    summary.avg_news_per_day = _safe_avg(summary.total_news_access, observed)
    summary.avg_music_per_day = _safe_avg(summary.total_music_listen, observed)
    summary.avg_jl_per_day = _safe_avg(summary.total_jl, observed)
    summary.avg_study_per_day = {k: _safe_avg(v, observed) for k, v in summary.study.items()}
    summary.avg_waste_per_day = _safe_avg(summary.total_waste, observed)
    summary.avg_total_study_per_day = _safe_avg(summary.total_study, observed)
    return summary


# =============================================================================
# "MINUTES SINCE" COUNTERS
# =============================================================================


def minutes_since(iso: str | None, now: datetime | None = None) -> int | None:
    """
    Whole minutes elapsed since a stored timestamp.

    Args:
        iso: Wire-format timestamp, or None.
        now: Current instant. Default: now_utc()

    Returns:
        Minutes floored and clamped at 0; None for a missing or
        unparseable timestamp.
    """
    if not iso:
        return None
    try:
        then = parse_instant(iso)
    except (ValueError, TypeError):
        return None
    elapsed = ((now or now_utc()) - then).total_seconds() / 60
    return max(0, math.floor(elapsed))


def minutes_since_any(data: Mapping[str, Any], now: datetime | None = None) -> int | None:
    """Minutes since the most recent of the event timestamps in a data bag."""
    values = [
        m
        for m in (minutes_since(data.get(k), now) for k in Config.EVENT_KEYS.values())
        if m is not None
    ]
    return min(values) if values else None
