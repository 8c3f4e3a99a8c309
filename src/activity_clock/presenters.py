"""
Presenters for Activity Clock views.

PURPOSE: Testable layer between the engine and whatever shows the data.
AI CONTEXT: Pure data transformation - no I/O. The CLI prints the text
rendered here; other front ends can consume the view models directly.

DESIGN PRINCIPLES:
1. Presenters receive engine results, return view models (dataclasses)
2. Display formatting (durations, badges, local times) lives here only
3. Fully unit-testable without mocking

USAGE:
    presenter = ActivityPresenter(reconciler)
    print(render_today(presenter.today()))
    print(render_trends(presenter.trends(window=14, scope="Weekdays")))
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .config import Config
from .habits import minutes_since_any, study_value
from .session_view import DisplaySession, build_day_view
from .statistics import HistoricalAggregator
from .timekeys import TimeZoneLike, resolve_timezone

if TYPE_CHECKING:
    from .habits import HabitSummary
    from .reconciler import SessionReconciler
    from .statistics import ActivityDelta, BreakdownRow, TrendReport

__all__ = [
    "format_duration",
    "format_delta_pct",
    "format_local_time",
    "SessionRowViewModel",
    "TodayViewModel",
    "DeltaViewModel",
    "UsualViewModel",
    "TrendLineViewModel",
    "TrendsViewModel",
    "ActivityPresenter",
    "render_today",
    "render_usual",
    "render_trends",
    "render_streaks",
    "render_habit_summary",
    "render_habit_day",
    "render_trend_chart",
]

GAP_LABEL = "Gap (Untracked)"
NO_VALUE = "—"


def format_duration(minutes: float | None) -> str:
    """
    Format minutes as a compact duration.

    Args:
        minutes: Duration in minutes (None shows a dash).

    Returns:
        '45m' under an hour, '2h 05m' otherwise.

    Example:
        >>> format_duration(125.4)
        '2h 05m'
    """
    if minutes is None:
        return NO_VALUE
    total = max(0, round(minutes))
    hours, mins = divmod(total, 60)
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins:02d}m"


def format_delta_pct(pct: float | None) -> str:
    """'+12.5%', '-3.0%', or a dash when the percentage is undefined."""
    if pct is None:
        return NO_VALUE
    sign = "+" if pct > 0 else ""
    return f"{sign}{pct:.1f}%"


def format_local_time(instant: datetime, tz: TimeZoneLike = None) -> str:
    """Instant as local 'HH:MM:SS'."""
    return instant.astimezone(resolve_timezone(tz)).strftime("%H:%M:%S")


@dataclass
class SessionRowViewModel:
    """One line of the sessions list."""

    label: str
    start_display: str
    end_display: str
    minutes: float
    is_gap: bool

    @property
    def duration_display(self) -> str:
        return format_duration(self.minutes)


@dataclass
class TodayViewModel:
    """Sessions list plus today's breakdown."""

    date: str
    cursor_display: str
    elapsed_minutes: float
    rows: list[SessionRowViewModel] = field(default_factory=list)
    entry_count: int = 0
    total_minutes: float = 0.0
    activities: list[str] = field(default_factory=list)
    breakdown: list[BreakdownRow] = field(default_factory=list)
    since_midnight: float = 0.0

    @property
    def total_display(self) -> str:
        return format_duration(self.total_minutes)


@dataclass
class DeltaViewModel:
    """Today-vs-usual card for one activity."""

    activity: str
    today_minutes: float
    avg_minutes: float
    delta: float
    delta_pct: float | None

    @property
    def delta_display(self) -> str:
        return format_delta_pct(self.delta_pct)

    @property
    def badge_class(self) -> str:
        """
        CSS-style badge hint: 'good' above usual, 'bad' below.

        Returns '' when there is no usual figure to compare with.
        """
        if self.delta_pct is None or self.delta_pct == 0:
            return ""
        return "good" if self.delta_pct > 0 else "bad"


@dataclass
class UsualViewModel:
    cards: list[DeltaViewModel]
    day_count: int
    avg_tracked_per_day: float


@dataclass
class TrendLineViewModel:
    activity: str
    total_minutes: float
    values: list[float]


@dataclass
class TrendsViewModel:
    """Trend lines for the chosen activities of a window/scope."""

    window: int
    scope: str
    mode: str
    dates: list[str]
    weekend: list[bool]
    lines: list[TrendLineViewModel]


def _row(row: DisplaySession, tz: TimeZoneLike) -> SessionRowViewModel:
    return SessionRowViewModel(
        label=GAP_LABEL if row.is_gap else row.activity,
        start_display=format_local_time(row.start, tz),
        end_display=format_local_time(row.end, tz),
        minutes=row.minutes,
        is_gap=row.is_gap,
    )


def _delta(d: ActivityDelta) -> DeltaViewModel:
    return DeltaViewModel(
        activity=d.activity,
        today_minutes=d.today_minutes,
        avg_minutes=d.avg_minutes,
        delta=d.delta,
        delta_pct=d.delta_pct,
    )


class ActivityPresenter:
    """
    Build activity view models from a loaded reconciler.

    The reconciler supplies today's log, the vacation-free history and
    the clock; HistoricalAggregator does the arithmetic.
    """

    def __init__(
        self,
        reconciler: SessionReconciler,
        aggregator: HistoricalAggregator | None = None,
    ) -> None:
        self.reconciler = reconciler
        self.tz = reconciler.tz
        self.aggregator = aggregator or HistoricalAggregator(tz=self.tz)

    def today(
        self,
        merge: bool = True,
        show_gaps: bool = True,
        activity: str = Config.ALL_ACTIVITIES,
    ) -> TodayViewModel:
        """Sessions list (with display toggles) and the breakdown of today."""
        now = self.reconciler.now()
        log = self.reconciler.today_log
        view = build_day_view(log.sessions, merge=merge, show_gaps=show_gaps, activity=activity)
        breakdown = self.aggregator.today_breakdown(log, now)
        return TodayViewModel(
            date=log.date,
            cursor_display=format_local_time(self.reconciler.cursor, self.tz),
            elapsed_minutes=self.reconciler.elapsed_minutes(),
            rows=[_row(r, self.tz) for r in view.rows],
            entry_count=view.entry_count,
            total_minutes=view.total_minutes,
            activities=view.activities,
            breakdown=breakdown.rows,
            since_midnight=breakdown.since_midnight,
        )

    def usual(self) -> UsualViewModel:
        """Today compared with the usual day, per activity."""
        now = self.reconciler.now()
        breakdown = self.aggregator.today_breakdown(self.reconciler.today_log, now)
        summary = self.aggregator.historical(self.reconciler.history_logs(), breakdown)
        return UsualViewModel(
            cards=[_delta(d) for d in summary.deltas],
            day_count=summary.day_count,
            avg_tracked_per_day=summary.avg_tracked_per_day,
        )

    def trends(
        self,
        window: int = Config.DEFAULT_TREND_WINDOW,
        scope: str = "All",
        mode: str = "m",
    ) -> TrendsViewModel:
        """
        Trend lines for the top activities.

        Args:
            window: Last-N-days window.
            scope: 'All', 'Weekdays' or 'Weekends'.
            mode: 'm' for minutes, 'pct' for share of each day.

        Returns:
            TrendsViewModel with one line per chosen activity.
        """
        report: TrendReport = self.aggregator.trends(
            self.reconciler.history_logs(), self.reconciler.now(), window=window, scope=scope
        )
        lines = [
            TrendLineViewModel(
                activity=activity,
                total_minutes=report.chosen_totals.get(activity, 0.0),
                values=[p.pct if mode == "pct" else p.minutes for p in report.series[activity]],
            )
            for activity in report.chosen
        ]
        return TrendsViewModel(
            window=window,
            scope=scope,
            mode=mode,
            dates=[d.date for d in report.days],
            weekend=[d.weekend for d in report.days],
            lines=lines,
        )


# =============================================================================
# TEXT RENDERING (CLI)
# =============================================================================


def render_today(vm: TodayViewModel) -> str:
    """Plain-text report of today's sessions and breakdown."""
    lines = [
        f"Today {vm.date}: {vm.entry_count} entries, {vm.total_display} tracked",
        f"Next entry starts at {vm.cursor_display} ({format_duration(vm.elapsed_minutes)} open)",
        "",
    ]
    if not vm.rows:
        lines.append("  No sessions yet.")
    for row in vm.rows:
        lines.append(
            f"  {row.start_display}-{row.end_display}  {row.duration_display:>8}  {row.label}"
        )
    if vm.breakdown:
        lines += ["", "Breakdown:"]
        for b in vm.breakdown:
            lines.append(f"  {b.activity:<24} {format_duration(b.minutes):>8}  {b.pct:5.1f}%")
    return "\n".join(lines)


def render_usual(vm: UsualViewModel) -> str:
    """Plain-text today-vs-usual table."""
    lines = [
        f"Usual day over {vm.day_count} day(s): "
        f"{format_duration(vm.avg_tracked_per_day)} tracked on average",
        "",
    ]
    if not vm.cards:
        lines.append("  No history yet.")
    for card in vm.cards:
        lines.append(
            f"  {card.activity:<24} today {format_duration(card.today_minutes):>8}"
            f"  usual {format_duration(card.avg_minutes):>8}  {card.delta_display:>8}"
        )
    return "\n".join(lines)


def render_trends(vm: TrendsViewModel) -> str:
    """Plain-text trend table (one row per day, one column per activity)."""
    header = f"Trends: last {vm.window} days, {vm.scope}, {'% of day' if vm.mode == 'pct' else 'minutes'}"
    if not vm.dates or not vm.lines:
        return f"{header}\n  No data in this window."
    names = [line.activity for line in vm.lines]
    lines = [header, "", "  " + "date        " + "".join(f"{n[:10]:>11}" for n in names)]
    for i, date in enumerate(vm.dates):
        mark = "*" if vm.weekend[i] else " "
        cells = "".join(f"{line.values[i]:>11.1f}" for line in vm.lines)
        lines.append(f" {mark}{date}  {cells}")
    lines.append("")
    lines.append("  totals      " + "".join(f"{format_duration(line.total_minutes):>11}" for line in vm.lines))
    return "\n".join(lines)


def render_streaks(streaks: dict[str, int]) -> str:
    """Plain-text list of habit streaks."""
    width = max((len(h) for h in streaks), default=0)
    return "\n".join(f"  {habit:<{width}}  {count:>4} day(s)" for habit, count in streaks.items())


def render_habit_summary(summary: HabitSummary, start_date: str = Config.START_DATE) -> str:
    """Plain-text all-history habit summary."""
    study = "  ".join(f"{k}: {v:g} min" for k, v in summary.study.items())
    delta = summary.total_waste_delta
    lines = [
        f"Summary since {start_date} ({summary.days_observed} day(s), {summary.days_counted} with input)",
        f"  Study      {study}  (total {summary.total_study:g} min, "
        f"{summary.avg_total_study_per_day:.2f}/day)",
        f"  Waste      {summary.total_waste:g} min, allowance delta "
        f"{'+' if delta > 0 else ''}{delta:g} ({summary.avg_waste_per_day:.2f} min/day)",
        f"  News       {summary.total_news_access:g} ({summary.avg_news_per_day:.2f}/day)",
        f"  Music      {summary.total_music_listen:g} ({summary.avg_music_per_day:.2f}/day)",
        f"  JL         {summary.total_jl:g} ({summary.avg_jl_per_day:.2f}/day)",
    ]
    if summary.first_weight is None or summary.latest_weight is None:
        lines.append(f"  Weight     {NO_VALUE}")
    else:
        diff = summary.weight_delta or 0.0
        pct = summary.weight_delta_pct
        lines.append(
            f"  Weight     {summary.first_weight:g} -> {summary.latest_weight:g} lbs "
            f"({'+' if diff > 0 else ''}{diff:.1f} lbs"
            f"{f', {pct}%' if pct is not None else ''})"
        )
    return "\n".join(lines)


def render_habit_day(date: str, data: dict[str, Any], now: datetime | None = None) -> str:
    """Plain-text view of one day's habit flags, counters and study minutes."""
    lines = [f"Habits for {date}"]
    for habit in Config.HABITS:
        mark = "x" if data.get(habit) else " "
        lines.append(f"  [{mark}] {habit}")
    study = "  ".join(f"{k}: {study_value(k, data):g}" for k in Config.STUDY_KEYS)
    lines.append(f"  Study      {study}")
    for key in ("wastedMin", "weight", *Config.EVENT_KEYS):
        value = data.get(key)
        lines.append(f"  {key:<17}{NO_VALUE if value is None else value}")
    since = minutes_since_any(data, now)
    if since is not None:
        lines.append(f"  Last event {format_duration(since)} ago")
    return "\n".join(lines)


def render_trend_chart(vm: TrendsViewModel) -> bytes:
    """
    Render trend lines as a PNG line chart.

    One line per chosen activity; weekend days are shaded so weekday and
    weekend patterns stand apart.

    Returns:
        PNG image as bytes (800x400 at 100 DPI).

    Raises:
        ImportError: If matplotlib is not installed.
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8, 4))
    x = list(range(len(vm.dates)))
    for i, weekend in enumerate(vm.weekend):
        if weekend:
            ax.axvspan(i - 0.5, i + 0.5, color="#e2e8f0", alpha=0.6, linewidth=0)
    for line in vm.lines:
        ax.plot(x, line.values, marker="o", markersize=3, label=line.activity)

    ax.set_xticks(x)
    ax.set_xticklabels([d[5:] for d in vm.dates], rotation=60, fontsize=7)
    ax.set_ylabel("% of day" if vm.mode == "pct" else "Minutes")
    ax.set_title(f"Last {vm.window} days ({vm.scope})")
    if vm.lines:
        ax.legend(fontsize=7, loc="upper left", bbox_to_anchor=(1.0, 1.0))
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    buf = io.BytesIO()
    plt.tight_layout()
    plt.savefig(buf, format="png", dpi=100, bbox_inches="tight")
    plt.close(fig)
    buf.seek(0)
    return buf.read()
