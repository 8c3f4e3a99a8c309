"""Tests for session_view module."""

from __future__ import annotations

from activity_clock.config import Config
from activity_clock.models import Session
from activity_clock.session_view import (
    activities_in_day,
    build_day_view,
    filter_by_activity,
    insert_gaps,
    merge_adjacent,
    sort_sessions,
    total_tracked_minutes,
)
from conftest import utc


def s(start: tuple[int, int], end: tuple[int, int], activity: str) -> Session:
    """Session on 2025-12-01 UTC from (h, m) to (h, m)."""
    return Session(start=utc(2025, 12, 1, *start), end=utc(2025, 12, 1, *end), activity=activity)


class TestMergeAdjacent:
    """Test suite for merge_adjacent()."""

    def test_merges_same_activity_within_gap(self) -> None:
        rows = merge_adjacent([s((10, 0), (10, 30), "Gym"), s((10, 32), (11, 0), "Gym")])
        assert len(rows) == 1
        assert (rows[0].start, rows[0].end) == (utc(2025, 12, 1, 10, 0), utc(2025, 12, 1, 11, 0))

    def test_gap_of_exactly_three_minutes_merges(self) -> None:
        rows = merge_adjacent([s((10, 0), (10, 30), "Gym"), s((10, 33), (11, 0), "Gym")])
        assert len(rows) == 1

    def test_gap_over_three_minutes_does_not_merge(self) -> None:
        rows = merge_adjacent([s((10, 0), (10, 30), "Gym"), s((10, 34), (11, 0), "Gym")])
        assert len(rows) == 2

    def test_other_activity_in_between_prevents_merge(self) -> None:
        """Verifies merging only looks at the last emitted row.

        Gym 10:00-10:30, Read 10:30-10:40, Gym 10:41-11:00 stays three rows
        even though the two Gym rows are close.
        """
        rows = merge_adjacent(
            [s((10, 0), (10, 30), "Gym"), s((10, 30), (10, 40), "Read"), s((10, 41), (11, 0), "Gym")]
        )
        assert [r.activity for r in rows] == ["Gym", "Read", "Gym"]

    def test_overlapping_session_keeps_later_end(self) -> None:
        rows = merge_adjacent([s((10, 0), (11, 0), "Gym"), s((10, 30), (10, 45), "Gym")])
        assert rows[0].end == utc(2025, 12, 1, 11, 0)

    def test_inputs_not_modified(self) -> None:
        first = s((10, 0), (10, 30), "Gym")
        merge_adjacent([first, s((10, 31), (11, 0), "Gym")])
        assert first.end == utc(2025, 12, 1, 10, 30)


class TestInsertGaps:
    """Test suite for insert_gaps()."""

    def test_gap_at_threshold_inserted(self) -> None:
        rows = insert_gaps(merge_adjacent([s((10, 0), (10, 30), "Gym"), s((10, 35), (11, 0), "Read")]))
        assert [r.activity for r in rows] == ["Gym", Config.GAP_ACTIVITY, "Read"]
        assert rows[1].gap_minutes == 5.0
        assert rows[1].is_gap
        assert rows[1].minutes == 5.0

    def test_short_gap_not_inserted(self) -> None:
        rows = insert_gaps(merge_adjacent([s((10, 0), (10, 30), "Gym"), s((10, 34), (11, 0), "Read")]))
        assert len(rows) == 2

    def test_gap_row_spans_the_hole(self) -> None:
        rows = insert_gaps(merge_adjacent([s((9, 0), (9, 30), "Gym"), s((11, 0), (12, 0), "Read")]))
        gap = rows[1]
        assert (gap.start, gap.end) == (utc(2025, 12, 1, 9, 30), utc(2025, 12, 1, 11, 0))

    def test_empty_and_single(self) -> None:
        assert insert_gaps([]) == []
        assert len(insert_gaps(merge_adjacent([s((9, 0), (9, 30), "Gym")]))) == 1


class TestFilterAndTotals:
    """Tests for filter_by_activity(), totals and activity lists."""

    def test_filter_keeps_gaps(self) -> None:
        rows = insert_gaps(
            merge_adjacent([s((9, 0), (9, 30), "Gym"), s((10, 0), (10, 30), "Read")])
        )
        filtered = filter_by_activity(rows, "Read")
        assert [r.activity for r in filtered] == [Config.GAP_ACTIVITY, "Read"]

    def test_filter_all_keeps_everything(self) -> None:
        rows = merge_adjacent([s((9, 0), (9, 30), "Gym"), s((10, 0), (10, 30), "Read")])
        assert filter_by_activity(rows, "All") == rows

    def test_activities_sorted_distinct(self) -> None:
        sessions = [s((9, 0), (9, 30), "Read"), s((10, 0), (10, 30), "Gym"), s((11, 0), (11, 5), "Read")]
        assert activities_in_day(sessions) == ["Gym", "Read"]

    def test_sort_sessions(self) -> None:
        later, earlier = s((10, 0), (10, 30), "A"), s((9, 0), (9, 30), "B")
        assert sort_sessions([later, earlier]) == [earlier, later]

    def test_total_tracked(self) -> None:
        assert total_tracked_minutes([s((9, 0), (9, 30), "A"), s((10, 0), (10, 45), "B")]) == 75.0


class TestBuildDayView:
    """Test suite for build_day_view()."""

    SESSIONS = [
        s((10, 32), (11, 0), "Gym"),
        s((10, 0), (10, 30), "Gym"),
        s((12, 0), (12, 30), "Read"),
    ]

    def test_default_merges_and_shows_gaps(self) -> None:
        view = build_day_view(self.SESSIONS)
        assert [r.activity for r in view.rows] == ["Gym", Config.GAP_ACTIVITY, "Read"]
        assert view.entry_count == 3
        assert view.activities == ["Gym", "Read"]

    def test_toggles_off(self) -> None:
        view = build_day_view(self.SESSIONS, merge=False, show_gaps=False)
        assert [r.activity for r in view.rows] == ["Gym", "Gym", "Read"]

    def test_total_independent_of_toggles(self) -> None:
        """Verifies the day total never changes with merge, gaps or filter."""
        totals = {
            build_day_view(self.SESSIONS, merge=m, show_gaps=g, activity=a).total_minutes
            for m in (True, False)
            for g in (True, False)
            for a in ("All", "Read")
        }
        assert totals == {88.0}

    def test_activity_filter(self) -> None:
        view = build_day_view(self.SESSIONS, activity="Read")
        assert [r.activity for r in view.rows] == [Config.GAP_ACTIVITY, "Read"]

    def test_empty_day(self) -> None:
        view = build_day_view([])
        assert view.rows == []
        assert view.total_minutes == 0
        assert view.entry_count == 0
