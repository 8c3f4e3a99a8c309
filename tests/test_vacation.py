"""Tests for vacation module."""

from __future__ import annotations

from activity_clock.config import Config
from activity_clock.local_state import LocalState
from activity_clock.models import DayLog
from activity_clock.vacation import VacationStore, normalize_vacation_days
from conftest import MockFileSystem


class TestNormalize:
    """Tests for normalize_vacation_days()."""

    def test_trims_dedupes_sorts(self) -> None:
        assert normalize_vacation_days([" 2025-12-25", "2025-12-24", "2025-12-25 "]) == [
            "2025-12-24",
            "2025-12-25",
        ]

    def test_drops_junk(self) -> None:
        assert normalize_vacation_days([None, "", "xmas", "2025-12-25T00:00", 7]) == []


class TestVacationStore:
    """Test suite for VacationStore.

    Categories:
    1. Persistence through LocalState
    2. Subscriber notification
    3. Filtering helpers
    """

    def test_set_persists_normalized(self, mock_fs: MockFileSystem) -> None:
        state = LocalState(storage_dir="/s", filesystem=mock_fs)
        store = VacationStore(state)

        assert store.set(["2025-12-25", " 2025-12-24"]) == ["2025-12-24", "2025-12-25"]
        assert state.get(Config.VACATION_STATE_KEY) == ["2025-12-24", "2025-12-25"]

    def test_loads_from_state(self, mock_fs: MockFileSystem) -> None:
        LocalState(storage_dir="/s", filesystem=mock_fs).set(Config.VACATION_STATE_KEY, ["2025-12-25"])
        store = VacationStore(LocalState(storage_dir="/s", filesystem=mock_fs))
        assert store.is_vacation_day("2025-12-25")

    def test_non_list_state_is_empty(self, mock_fs: MockFileSystem) -> None:
        state = LocalState(storage_dir="/s", filesystem=mock_fs)
        state.set(Config.VACATION_STATE_KEY, "2025-12-25")
        assert VacationStore(state).get() == []

    def test_in_memory_store(self) -> None:
        store = VacationStore()
        store.add("2025-12-25")
        assert store.get() == ["2025-12-25"]

    def test_add_and_remove(self) -> None:
        store = VacationStore()
        store.add("2025-12-24")
        store.add("2025-12-25")
        store.add("2025-12-25")
        assert store.remove("2025-12-24") == ["2025-12-25"]
        assert store.remove("2030-01-01") == ["2025-12-25"]

    def test_subscribers_notified_immediately(self) -> None:
        """Verifies every subscriber sees the new list on set().

        Business context:
        Streaks and averages must change the moment a day is marked as
        vacation, without a reload.
        """
        store = VacationStore()
        seen_a: list[list[str]] = []
        seen_b: list[list[str]] = []
        store.subscribe(seen_a.append)
        store.subscribe(seen_b.append)

        store.set(["2025-12-25"])

        assert seen_a == [["2025-12-25"]]
        assert seen_b == [["2025-12-25"]]

    def test_unsubscribe(self) -> None:
        store = VacationStore()
        seen: list[list[str]] = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        store.set(["2025-12-25"])
        assert seen == []

    def test_reload_picks_up_external_change(self, mock_fs: MockFileSystem) -> None:
        state = LocalState(storage_dir="/s", filesystem=mock_fs)
        store = VacationStore(state)
        assert store.get() == []
        state.set(Config.VACATION_STATE_KEY, ["2025-12-31"])

        seen: list[list[str]] = []
        store.subscribe(seen.append)

        assert store.reload() == ["2025-12-31"]
        assert seen == [["2025-12-31"]]

    def test_empty_day_is_never_vacation(self) -> None:
        store = VacationStore()
        assert not store.is_vacation_day("")
        assert not store.is_vacation_day(None)

    def test_filter_logs_and_map(self) -> None:
        store = VacationStore()
        store.set(["2025-12-02"])
        logs = [DayLog.empty("2025-12-01"), DayLog.empty("2025-12-02"), DayLog.empty("2025-12-03")]

        assert [log.date for log in store.filter_logs(logs)] == ["2025-12-01", "2025-12-03"]
        assert store.filter_map({"2025-12-01": 1, "2025-12-02": 2}) == {"2025-12-01": 1}
