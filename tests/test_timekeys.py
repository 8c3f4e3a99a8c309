"""Tests for timekeys module."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from activity_clock.timekeys import (
    day_key,
    day_keys_between,
    diff_minutes,
    is_day_key,
    is_weekend,
    minutes_since_midnight,
    next_midnight,
    parse_instant,
    previous_day_key,
    resolve_timezone,
    start_of_day,
    to_iso,
    truncate_to_millis,
)
from conftest import utc

EDMONTON = "America/Edmonton"


class TestDayKey:
    """Tests for day_key()."""

    def test_evening_utc_instant_belongs_to_previous_local_day(self) -> None:
        """Verifies 05:00Z is still the previous evening in Edmonton.

        Business context:
        Day keys follow the user's wall clock. An entry at 22:00 local
        must be stored under that local date, not the UTC date.
        """
        assert day_key(utc(2025, 12, 2, 5, 0), EDMONTON) == "2025-12-01"

    def test_local_midnight_starts_new_day(self) -> None:
        assert day_key(utc(2025, 12, 2, 7, 0), EDMONTON) == "2025-12-02"

    def test_uses_configured_zone_by_default(self, utc_config: None) -> None:
        assert day_key(utc(2025, 12, 2, 5, 0)) == "2025-12-02"

    def test_naive_datetime_taken_as_utc(self) -> None:
        assert day_key(datetime(2025, 12, 2, 5, 0), EDMONTON) == "2025-12-01"


class TestMidnights:
    """Tests for start_of_day() and next_midnight()."""

    def test_start_of_day_in_winter(self) -> None:
        assert start_of_day(utc(2025, 12, 2, 5, 0), EDMONTON) == utc(2025, 12, 1, 7, 0)

    def test_start_of_day_in_summer(self) -> None:
        assert start_of_day(utc(2025, 7, 1, 12, 0), EDMONTON) == utc(2025, 7, 1, 6, 0)

    def test_start_of_day_never_after_instant(self) -> None:
        instant = utc(2025, 12, 1, 7, 0)
        assert start_of_day(instant, EDMONTON) == instant

    def test_next_midnight_strictly_after(self) -> None:
        instant = utc(2025, 12, 1, 7, 0)
        assert next_midnight(instant, EDMONTON) == utc(2025, 12, 2, 7, 0)

    def test_spring_forward_day_is_23_hours(self) -> None:
        """Verifies the DST start day in Edmonton has 23 real hours.

        Business context:
        Per-day segments are cut at true local midnights, so a DST day
        must contribute its real length, not a fixed 24 hours.
        """
        start = start_of_day(utc(2026, 3, 8, 12, 0), EDMONTON)
        end = next_midnight(start, EDMONTON)
        assert end - start == timedelta(hours=23)

    def test_fall_back_day_is_25_hours(self) -> None:
        start = start_of_day(utc(2025, 11, 2, 12, 0), EDMONTON)
        end = next_midnight(start, EDMONTON)
        assert end - start == timedelta(hours=25)


class TestMinutesSinceMidnight:
    """Tests for minutes_since_midnight()."""

    def test_simple_utc(self) -> None:
        assert minutes_since_midnight(utc(2025, 12, 1, 10, 30), "UTC") == 630.0

    def test_includes_seconds(self) -> None:
        assert minutes_since_midnight(utc(2025, 12, 1, 0, 1, 30), "UTC") == pytest.approx(1.5)

    def test_uses_wall_clock_on_dst_day(self) -> None:
        """Verifies 04:00 MDT on the spring-forward day reads as 240 minutes.

        Only 180 real minutes have elapsed, but "minutes since midnight"
        is defined on the local wall clock.
        """
        assert minutes_since_midnight(utc(2026, 3, 8, 10, 0), EDMONTON) == 240.0


class TestWireFormat:
    """Tests for parse_instant(), to_iso() and truncate_to_millis()."""

    def test_parse_z_suffix(self) -> None:
        assert parse_instant("2025-12-01T06:30:00.000Z") == utc(2025, 12, 1, 6, 30)

    def test_parse_offset_converted_to_utc(self) -> None:
        assert parse_instant("2025-12-01T00:30:00-07:00") == utc(2025, 12, 1, 7, 30)

    def test_parse_returns_utc(self) -> None:
        assert parse_instant("2025-12-01T06:30:00+00:00").tzinfo == UTC

    def test_parse_datetime_passthrough(self) -> None:
        local = datetime(2025, 12, 1, 0, 30, tzinfo=timezone(timedelta(hours=-7)))
        assert parse_instant(local) == utc(2025, 12, 1, 7, 30)

    def test_parse_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_instant("yesterday")

    def test_parse_rejects_non_string(self) -> None:
        with pytest.raises(TypeError):
            parse_instant(12345)  # type: ignore[arg-type]

    def test_to_iso_millisecond_z(self) -> None:
        assert to_iso(utc(2025, 12, 1, 6, 30)) == "2025-12-01T06:30:00.000Z"

    def test_to_iso_round_trips(self) -> None:
        instant = datetime(2025, 12, 1, 6, 30, 15, 123000, tzinfo=UTC)
        assert parse_instant(to_iso(instant)) == instant

    def test_truncate_to_millis(self) -> None:
        instant = datetime(2025, 12, 1, 6, 30, 15, 123456, tzinfo=UTC)
        assert truncate_to_millis(instant).microsecond == 123000


class TestDayKeyHelpers:
    """Tests for is_day_key(), day_keys_between(), previous_day_key(), is_weekend()."""

    @pytest.mark.parametrize("value", ["2025-12-01", "2024-02-29"])
    def test_valid_keys(self, value: str) -> None:
        assert is_day_key(value)

    @pytest.mark.parametrize("value", ["2025-02-30", "2025-1-01", "20251201", "", None, 20251201])
    def test_invalid_keys(self, value: object) -> None:
        assert not is_day_key(value)

    def test_days_between_crosses_year(self) -> None:
        assert day_keys_between("2025-12-30", "2026-01-01") == [
            "2025-12-30",
            "2025-12-31",
            "2026-01-01",
        ]

    def test_days_between_reversed_is_empty(self) -> None:
        assert day_keys_between("2025-12-02", "2025-12-01") == []

    def test_previous_day_key_crosses_month(self) -> None:
        assert previous_day_key("2025-12-01") == "2025-11-30"

    def test_weekend(self) -> None:
        assert is_weekend("2025-12-06")
        assert is_weekend("2025-12-07")
        assert not is_weekend("2025-12-08")

    def test_diff_minutes_signed(self) -> None:
        a, b = utc(2025, 12, 1, 9, 0), utc(2025, 12, 1, 9, 45)
        assert diff_minutes(a, b) == 45.0
        assert diff_minutes(b, a) == -45.0

    def test_resolve_timezone_default(self, edmonton_config: None) -> None:
        assert resolve_timezone().key == EDMONTON
