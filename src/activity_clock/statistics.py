"""
Historical aggregation for Activity Clock.

PURPOSE: Compute usual-day averages, today-vs-usual deltas and trend series.
AI CONTEXT: Pure data processing - no I/O. Callers remove vacation days from
the history before handing it over.

METRIC CATEGORIES:
1. Today: per-activity minutes, Untracked remainder, share of the day so far
2. Usual: per-activity average over days that had the activity
3. Deltas: today minus usual, with percentage change
4. Trends: last-N-days window, weekday/weekend scope, top-N with Other

DENOMINATORS:
- Past days count 1440 minutes
- Today counts the minutes since local midnight (the day is not over yet),
  rounded and floored at 1

USAGE:
    aggregator = HistoricalAggregator()
    breakdown = aggregator.today_breakdown(today_log, now)
    usual = aggregator.historical(history, breakdown)
    report = aggregator.trends(history, now, window=30, scope="Weekdays")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .config import Config
from .models import DayLog
from .timekeys import TimeZoneLike, day_key, is_weekend, minutes_since_midnight, resolve_timezone

__all__ = [
    "BreakdownRow",
    "TodayBreakdown",
    "ActivityDelta",
    "HistoricalSummary",
    "TrendDay",
    "SeriesPoint",
    "TrendReport",
    "HistoricalAggregator",
]


@dataclass
class BreakdownRow:
    """One activity's share of today so far."""

    activity: str
    minutes: float
    pct: float


@dataclass
class TodayBreakdown:
    """Today's rows (tracked activities, then Untracked) and the totals behind them."""

    rows: list[BreakdownRow]
    since_midnight: float
    total_tracked: float
    untracked: float

    def tracked_minutes(self) -> dict[str, float]:
        """Activity -> minutes for tracked rows only (no Untracked)."""
        return {
            r.activity: r.minutes
            for r in self.rows
            if r.activity != Config.UNTRACKED_ACTIVITY
        }


@dataclass
class ActivityDelta:
    """
    Today compared with the usual day for one activity.

    delta_pct is None when the average is zero, which displays as a dash.
    """

    activity: str
    avg_minutes: float
    today_minutes: float
    delta: float
    delta_pct: float | None


@dataclass
class HistoricalSummary:
    """Averages and deltas over the (vacation-free) history."""

    avg_per_day: dict[str, float] = field(default_factory=dict)
    deltas: list[ActivityDelta] = field(default_factory=list)
    day_count: int = 0
    avg_tracked_per_day: float = 0.0


@dataclass
class TrendDay:
    """
    Per-day totals prepared for trend charts.

    totals includes an 'Untracked' entry for the part of the day's
    denominator (total_min) that no session covered.
    """

    date: str
    weekend: bool
    totals: dict[str, float]
    total_min: int


@dataclass
class SeriesPoint:
    """One day of one activity's trend line."""

    date: str
    minutes: float
    pct: float
    weekend: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "minutes": self.minutes,
            "pct": self.pct,
            "weekend": self.weekend,
        }


@dataclass
class TrendReport:
    """Everything a trends view needs for one window/scope choice."""

    window: int
    scope: str
    days: list[TrendDay]
    activities: list[str]
    window_totals: dict[str, float]
    chosen: list[str]
    chosen_totals: dict[str, float]
    series: dict[str, list[SeriesPoint]]


class HistoricalAggregator:
    """
    Calculator for usual-day statistics and trend windows.

    DESIGN:
    - Stateless: each method works on the data it is given
    - Pure: no side effects, only data transformation
    - Zone-aware: 'today' and its denominator come from the configured zone

    Activity order is first-appearance order wherever ties must be broken,
    which makes top-N selection deterministic for a given history.
    """

    def __init__(self, top_n: int | None = None, tz: TimeZoneLike = None) -> None:
        """
        Initialize the aggregator.

        Args:
            top_n: How many activities trend charts keep before bucketing
                the rest into Other. Default: Config.TOP_N
            tz: Zone defining 'today'. Default: configured zone.
        """
        self.default_top_n = top_n if top_n is not None else Config.TOP_N
        self.tz = resolve_timezone(tz)

    # =========================================================================
    # PER-DAY TOTALS
    # =========================================================================

    @staticmethod
    def daily_totals(log: DayLog) -> dict[str, float]:
        """
        Sum session minutes by activity for one day.

        Args:
            log: Day log to total.

        Returns:
            Activity -> minutes in first-appearance order.
        """
        totals: dict[str, float] = {}
        for session in log.sessions:
            totals[session.activity] = totals.get(session.activity, 0.0) + session.minutes
        return totals

    # =========================================================================
    # TODAY
    # =========================================================================

    def today_breakdown(self, today_log: DayLog, now: datetime) -> TodayBreakdown:
        """
        Build today's per-activity rows plus an Untracked remainder.

        Business context: "Where did today go?" - every minute since local
        midnight is either attributed to an activity or shown as Untracked.

        Args:
            today_log: Today's sessions.
            now: Current instant.

        Returns:
            TodayBreakdown with rows sorted by minutes descending and the
            Untracked row last (only when positive). Percentages are of
            minutes since midnight.

        Example:
            100 tracked minutes at 200 minutes past midnight gives an
            Untracked row of 100 minutes (50%).
        """
        totals = self.daily_totals(today_log)
        since_midnight = minutes_since_midnight(now, self.tz)

        def pct(minutes: float) -> float:
            return minutes / since_midnight * 100 if since_midnight else 0.0

        rows = [
            BreakdownRow(activity=a, minutes=m, pct=pct(m))
            for a, m in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
        ]
        total_tracked = sum(totals.values())
        untracked = max(0.0, since_midnight - total_tracked)
        if untracked > 0:
            rows.append(
                BreakdownRow(activity=Config.UNTRACKED_ACTIVITY, minutes=untracked, pct=pct(untracked))
            )
        return TodayBreakdown(
            rows=rows,
            since_midnight=since_midnight,
            total_tracked=total_tracked,
            untracked=untracked,
        )

    # =========================================================================
    # USUAL DAY
    # =========================================================================

    def historical(
        self,
        history: Iterable[DayLog],
        today: TodayBreakdown | Mapping[str, float] | None = None,
    ) -> HistoricalSummary:
        """
        Average each activity over the days it occurred and compare today.

        The average's denominator is the number of days that had the
        activity at all, so days without it do not dilute the figure.
        Minutes [30, -, 60] for "Read" over three days average 45, not 30.

        Args:
            history: Day logs with vacation days already removed.
            today: Today's breakdown or an activity -> minutes map. The
                Untracked row never takes part in deltas.

        Returns:
            HistoricalSummary with deltas sorted by today's minutes
            descending.
        """
        if isinstance(today, TodayBreakdown):
            today_minutes = today.tracked_minutes()
        else:
            today_minutes = {
                a: m for a, m in (today or {}).items() if a != Config.UNTRACKED_ACTIVITY
            }

        sums: dict[str, float] = {}
        days_with: dict[str, int] = {}
        day_count = 0
        sum_tracked = 0.0
        for log in history:
            daily = self.daily_totals(log)
            sum_tracked += sum(daily.values())
            for activity, minutes in daily.items():
                sums[activity] = sums.get(activity, 0.0) + minutes
                days_with[activity] = days_with.get(activity, 0) + 1
            day_count += 1

        avg_per_day = {a: sums[a] / max(days_with[a], 1) for a in sums}

        deltas: list[ActivityDelta] = []
        for activity, avg in avg_per_day.items():
            today_m = today_minutes.get(activity, 0.0)
            delta = today_m - avg
            deltas.append(
                ActivityDelta(
                    activity=activity,
                    avg_minutes=avg,
                    today_minutes=today_m,
                    delta=delta,
                    delta_pct=delta / avg * 100 if avg else None,
                )
            )
        deltas.sort(key=lambda d: d.today_minutes, reverse=True)

        return HistoricalSummary(
            avg_per_day=avg_per_day,
            deltas=deltas,
            day_count=day_count,
            avg_tracked_per_day=sum_tracked / day_count if day_count else 0.0,
        )

    # =========================================================================
    # TRENDS
    # =========================================================================

    def trend_days(self, history: Iterable[DayLog], now: datetime) -> list[TrendDay]:
        """
        Prepare every history day for trend charts.

        Args:
            history: Day logs (vacation-free), ascending by date.
            now: Current instant; decides which day is prorated.

        Returns:
            One TrendDay per log, in input order.
        """
        today_key = day_key(now, self.tz)
        days: list[TrendDay] = []
        for log in history:
            totals = self.daily_totals(log)
            tracked = sum(totals.values())
            if log.date == today_key:
                denom = minutes_since_midnight(now, self.tz)
            else:
                denom = Config.MINUTES_PER_DAY
            safe_denom = max(1, round(denom))
            untracked = max(0.0, safe_denom - min(tracked, safe_denom))
            if untracked > 0:
                totals[Config.UNTRACKED_ACTIVITY] = (
                    totals.get(Config.UNTRACKED_ACTIVITY, 0.0) + untracked
                )
            days.append(
                TrendDay(
                    date=log.date,
                    weekend=is_weekend(log.date),
                    totals=totals,
                    total_min=safe_denom,
                )
            )
        return days

    @staticmethod
    def window_days(
        days: Sequence[TrendDay],
        window: int = Config.DEFAULT_TREND_WINDOW,
        scope: str = "All",
    ) -> list[TrendDay]:
        """
        Take the last `window` days, then restrict to the scope.

        Windowing happens first, so a 7-day Weekends view shows at most
        the two weekend days of the last week.

        Args:
            days: Trend days ascending by date.
            window: Number of most recent days to keep (positive).
            scope: 'All', 'Weekdays' or 'Weekends'.

        Returns:
            Filtered days, still ascending.

        Raises:
            ValueError: On a non-positive window or unknown scope.
        """
        if window <= 0:
            raise ValueError(f"Trend window must be positive, got {window}")
        if scope not in Config.TREND_SCOPES:
            raise ValueError(f"Unknown trend scope {scope!r}; expected one of {Config.TREND_SCOPES}")
        selected = list(days[-window:])
        if scope == "Weekdays":
            selected = [d for d in selected if not d.weekend]
        elif scope == "Weekends":
            selected = [d for d in selected if d.weekend]
        return selected

    @staticmethod
    def window_totals(days: Iterable[TrendDay]) -> dict[str, float]:
        """Activity -> minutes over the days, Untracked excluded."""
        totals: dict[str, float] = {}
        for day in days:
            for activity, minutes in day.totals.items():
                if activity == Config.UNTRACKED_ACTIVITY:
                    continue
                totals[activity] = totals.get(activity, 0.0) + minutes
        return totals

    def top_n(self, totals: Mapping[str, float], n: int | None = None) -> dict[str, float]:
        """
        Keep the n largest activities and bucket the rest into Other.

        Ties keep first-appearance order. Other is added only when the
        bucketed activities have positive minutes.

        Args:
            totals: Activity -> window minutes.
            n: How many to keep. Default: self.default_top_n

        Returns:
            Kept activities (descending) plus an optional Other entry.
        """
        n = self.default_top_n if n is None else n
        ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
        kept = dict(ranked[:n])
        other = sum(m for _, m in ranked[n:])
        if other > 0:
            kept[Config.OTHER_ACTIVITY] = kept.get(Config.OTHER_ACTIVITY, 0.0) + other
        return kept

    @staticmethod
    def bucket_days(days: Iterable[TrendDay], chosen: Sequence[str]) -> list[TrendDay]:
        """
        Fold non-chosen activities into Other on every day.

        Untracked is dropped; Other appears only when it was chosen and
        the day has positive leftover minutes.
        """
        keep = set(chosen)
        bucketed: list[TrendDay] = []
        for day in days:
            totals: dict[str, float] = {}
            other = 0.0
            for activity, minutes in day.totals.items():
                if activity == Config.UNTRACKED_ACTIVITY:
                    continue
                if activity in keep:
                    totals[activity] = totals.get(activity, 0.0) + minutes
                else:
                    other += minutes
            if other > 0 and Config.OTHER_ACTIVITY in keep:
                totals[Config.OTHER_ACTIVITY] = other
            bucketed.append(
                TrendDay(date=day.date, weekend=day.weekend, totals=totals, total_min=day.total_min)
            )
        return bucketed

    @staticmethod
    def build_series(
        days: Sequence[TrendDay], activities: Iterable[str]
    ) -> dict[str, list[SeriesPoint]]:
        """
        Build one line per activity with minutes and percentage of the day.

        Args:
            days: Bucketed trend days.
            activities: Activities to build lines for.

        Returns:
            Activity -> one SeriesPoint per day (zero when absent).
        """
        series: dict[str, list[SeriesPoint]] = {}
        for activity in activities:
            points = []
            for day in days:
                minutes = day.totals.get(activity, 0.0)
                denom = day.total_min or Config.MINUTES_PER_DAY
                points.append(
                    SeriesPoint(
                        date=day.date,
                        minutes=minutes,
                        pct=minutes / denom * 100,
                        weekend=day.weekend,
                    )
                )
            series[activity] = points
        return series

    def trends(
        self,
        history: Sequence[DayLog],
        now: datetime,
        window: int = Config.DEFAULT_TREND_WINDOW,
        scope: str = "All",
    ) -> TrendReport:
        """
        Compose the full trend computation for one window and scope.

        Args:
            history: Vacation-free day logs ascending by date.
            now: Current instant.
            window: Last-N-days window.
            scope: 'All', 'Weekdays' or 'Weekends'.

        Returns:
            TrendReport with chosen activities sorted by window total.
        """
        all_days = self.trend_days(history, now)
        activities = sorted({a for d in all_days for a in d.totals if a})
        selected = self.window_days(all_days, window, scope)
        totals = self.window_totals(selected)
        chosen_totals = self.top_n(totals)
        chosen = sorted(chosen_totals, key=lambda a: chosen_totals[a], reverse=True)
        bucketed = self.bucket_days(selected, chosen)
        return TrendReport(
            window=window,
            scope=scope,
            days=selected,
            activities=activities,
            window_totals=totals,
            chosen=chosen,
            chosen_totals=chosen_totals,
            series=self.build_series(bucketed, chosen),
        )
