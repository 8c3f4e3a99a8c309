"""Tests for presenters module."""

from __future__ import annotations

import pytest
import pytest_asyncio

from activity_clock.habits import summarize_habits
from activity_clock.models import Session
from activity_clock.presenters import (
    ActivityPresenter,
    DeltaViewModel,
    TrendLineViewModel,
    TrendsViewModel,
    format_delta_pct,
    format_duration,
    format_local_time,
    render_habit_day,
    render_habit_summary,
    render_streaks,
    render_today,
    render_trend_chart,
    render_trends,
    render_usual,
)
from activity_clock.reconciler import SessionReconciler
from conftest import FakePersistence, FixedClock, utc


def session(day: int, start: tuple[int, int], end: tuple[int, int], activity: str) -> Session:
    return Session(start=utc(2025, 12, day, *start), end=utc(2025, 12, day, *end), activity=activity)


@pytest_asyncio.fixture
async def presenter(fake_persistence: FakePersistence) -> ActivityPresenter:
    """Presenter over a loaded reconciler with three days of Read/Gym.

    Data (UTC):
        12-01: Read 08:00-09:00
        12-02: Read 08:00-08:30
        12-03: Gym 08:00-08:30, Read 09:00-09:30 (now 10:00)

    Returns:
        ActivityPresenter with the default aggregator.
    """
    fake_persistence.days = {
        "2025-12-01": [session(1, (8, 0), (9, 0), "Read")],
        "2025-12-02": [session(2, (8, 0), (8, 30), "Read")],
        "2025-12-03": [session(3, (8, 0), (8, 30), "Gym"), session(3, (9, 0), (9, 30), "Read")],
    }
    reconciler = SessionReconciler(
        fake_persistence,
        clock=FixedClock(utc(2025, 12, 3, 10, 0)),
        tz="UTC",
        start_date="2025-12-01",
    )
    await reconciler.load()
    return ActivityPresenter(reconciler)


class TestFormatting:
    """Tests for the display formatting helpers."""

    @pytest.mark.parametrize(
        "minutes,expected",
        [(45, "45m"), (45.4, "45m"), (60, "1h 00m"), (125.4, "2h 05m"), (-5, "0m"), (None, "—")],
    )
    def test_format_duration(self, minutes: float | None, expected: str) -> None:
        assert format_duration(minutes) == expected

    @pytest.mark.parametrize(
        "pct,expected", [(12.5, "+12.5%"), (-3, "-3.0%"), (0, "0.0%"), (None, "—")]
    )
    def test_format_delta_pct(self, pct: float | None, expected: str) -> None:
        assert format_delta_pct(pct) == expected

    def test_format_local_time(self) -> None:
        assert format_local_time(utc(2025, 12, 1, 7, 5, 9), "America/Edmonton") == "00:05:09"

    @pytest.mark.parametrize("pct,badge", [(10.0, "good"), (-10.0, "bad"), (0.0, ""), (None, "")])
    def test_badge_class(self, pct: float | None, badge: str) -> None:
        card = DeltaViewModel(activity="Read", today_minutes=0, avg_minutes=0, delta=0, delta_pct=pct)
        assert card.badge_class == badge


class TestActivityPresenter:
    """Test suite for ActivityPresenter view models.

    Categories:
    1. today() - rows, toggles, breakdown
    2. usual() - delta cards
    3. trends() - minutes and percentage modes
    """

    @pytest.mark.asyncio
    async def test_today_rows_with_gap(self, presenter: ActivityPresenter) -> None:
        """Verifies today's rows carry local times and a labelled gap row.

        Arrangement:
        Gym 08:00-08:30 and Read 09:00-09:30 leave a 30 minute hole.

        Assertion Strategy:
        Row labels, displays, totals and cursor text.
        """
        vm = presenter.today()

        assert [r.label for r in vm.rows] == ["Gym", "Gap (Untracked)", "Read"]
        assert vm.rows[0].start_display == "08:00:00"
        assert vm.rows[1].duration_display == "30m"
        assert vm.entry_count == 2
        assert vm.total_display == "1h 00m"
        assert vm.cursor_display == "09:30:00"
        assert vm.elapsed_minutes == 30.0
        assert vm.since_midnight == 600.0
        assert {b.activity for b in vm.breakdown} == {"Gym", "Read", "Untracked"}

    @pytest.mark.asyncio
    async def test_today_toggles_and_filter(self, presenter: ActivityPresenter) -> None:
        vm = presenter.today(merge=False, show_gaps=False, activity="Read")
        assert [r.label for r in vm.rows] == ["Read"]
        assert vm.total_minutes == 60.0

    @pytest.mark.asyncio
    async def test_today_with_no_sessions_yet(self, fake_persistence: FakePersistence) -> None:
        reconciler = SessionReconciler(
            fake_persistence,
            clock=FixedClock(utc(2025, 12, 3, 10, 0)),
            tz="UTC",
            start_date="2025-12-01",
        )
        await reconciler.load()

        vm = ActivityPresenter(reconciler).today()

        assert vm.rows == []
        assert vm.entry_count == 0
        assert render_today(vm).startswith("Today 2025-12-03: 0 entries")

    @pytest.mark.asyncio
    async def test_usual_cards(self, presenter: ActivityPresenter) -> None:
        vm = presenter.usual()

        read = next(c for c in vm.cards if c.activity == "Read")
        assert read.avg_minutes == 40.0
        assert read.today_minutes == 30.0
        assert read.delta_display == "-25.0%"
        assert read.badge_class == "bad"
        assert vm.day_count == 3

    @pytest.mark.asyncio
    async def test_trends_minutes(self, presenter: ActivityPresenter) -> None:
        vm = presenter.trends(window=7)

        assert vm.dates == ["2025-12-01", "2025-12-02", "2025-12-03"]
        assert vm.weekend == [False, False, False]
        read = next(line for line in vm.lines if line.activity == "Read")
        assert read.values == [60.0, 30.0, 30.0]
        assert read.total_minutes == 120.0

    @pytest.mark.asyncio
    async def test_trends_percentage_prorates_today(self, presenter: ActivityPresenter) -> None:
        vm = presenter.trends(window=7, mode="pct")
        read = next(line for line in vm.lines if line.activity == "Read")
        assert read.values[0] == pytest.approx(60 / 1440 * 100)
        assert read.values[-1] == pytest.approx(5.0)


class TestRendering:
    """Tests for the plain-text renderers."""

    @pytest.mark.asyncio
    async def test_render_today(self, presenter: ActivityPresenter) -> None:
        text = render_today(presenter.today())
        assert text.startswith("Today 2025-12-03: 2 entries, 1h 00m tracked")
        assert "Gap (Untracked)" in text
        assert "Breakdown:" in text

    @pytest.mark.asyncio
    async def test_render_usual(self, presenter: ActivityPresenter) -> None:
        text = render_usual(presenter.usual())
        assert "Usual day over 3 day(s)" in text
        assert "-25.0%" in text

    def test_render_trends_marks_weekends(self) -> None:
        vm = TrendsViewModel(
            window=7,
            scope="All",
            mode="m",
            dates=["2025-12-05", "2025-12-06"],
            weekend=[False, True],
            lines=[TrendLineViewModel(activity="Read", total_minutes=90, values=[30.0, 60.0])],
        )
        lines = render_trends(vm).splitlines()
        assert lines[0] == "Trends: last 7 days, All, minutes"
        assert any(line.startswith(" *2025-12-06") for line in lines)
        assert any(line.startswith("  2025-12-05") for line in lines)

    def test_render_trends_empty(self) -> None:
        vm = TrendsViewModel(window=7, scope="Weekends", mode="pct", dates=[], weekend=[], lines=[])
        assert "No data in this window." in render_trends(vm)

    def test_render_streaks(self) -> None:
        text = render_streaks({"Sand": 2, "HIIT": 0})
        assert text.splitlines() == ["  Sand     2 day(s)", "  HIIT     0 day(s)"]

    def test_render_habit_summary(self) -> None:
        history = {"2025-12-01": {"weight": 200, "study": {"BK": 30}}, "2025-12-02": {"weight": 190}}
        text = render_habit_summary(summarize_habits(history, "2025-12-02", start_date="2025-12-01"))
        assert "Summary since 2025-12-01 (2 day(s), 2 with input)" in text
        assert "200 -> 190 lbs (-10.0 lbs, -5.0%)" in text

    def test_render_habit_summary_without_weight(self) -> None:
        text = render_habit_summary(summarize_habits({}, "2025-12-02", start_date="2025-12-01"))
        assert "Weight     —" in text

    def test_render_habit_day(self) -> None:
        data = {"Sand": True, "study": {"leetcode": 20}, "lastNewsTs": "2025-12-01T09:50:00.000Z"}
        text = render_habit_day("2025-12-01", data, now=utc(2025, 12, 1, 10, 0))
        assert "[x] Sand" in text
        assert "[ ] HIIT" in text
        assert "BK: 20" in text
        assert "Last event 10m ago" in text

    def test_render_trend_chart_png(self) -> None:
        pytest.importorskip("matplotlib")
        vm = TrendsViewModel(
            window=7,
            scope="All",
            mode="m",
            dates=["2025-12-05", "2025-12-06"],
            weekend=[False, True],
            lines=[TrendLineViewModel(activity="Read", total_minutes=90, values=[30.0, 60.0])],
        )
        assert render_trend_chart(vm).startswith(b"\x89PNG")
