from __future__ import annotations

from datetime import datetime, timedelta, timezone

from opaboard.core.dates import FixedClock, duration, to_timestamp

TEN_AM_UTC_MS = 1704103200000  # 2024-01-01T10:00:00Z


def test_to_timestamp_empty_values_are_zero() -> None:
    assert to_timestamp(None) == 0
    assert to_timestamp("") == 0
    assert to_timestamp("   ") == 0
    assert to_timestamp("0000-00-00 00:00:00") == 0
    assert to_timestamp("not a date") == 0
    assert to_timestamp(float("nan")) == 0
    assert to_timestamp(True) == 0


def test_to_timestamp_accepts_numeric_epoch() -> None:
    assert to_timestamp(1700000000000) == 1700000000000
    assert to_timestamp(1700000000000.0) == 1700000000000


def test_space_and_t_forms_are_the_same_instant() -> None:
    assert to_timestamp("2024-01-01 10:00:00") == TEN_AM_UTC_MS
    assert to_timestamp("2024-01-01T10:00:00") == TEN_AM_UTC_MS
    assert to_timestamp("2024-01-01T10:00:00Z") == TEN_AM_UTC_MS
    assert to_timestamp("2024-01-01T10:00:00.000Z") == TEN_AM_UTC_MS
    assert to_timestamp("2024-01-01T07:00:00-03:00") == TEN_AM_UTC_MS


def test_component_fallback_for_unpadded_fields() -> None:
    expected = int(datetime(2024, 1, 5, 9, 3, tzinfo=timezone.utc).timestamp() * 1000)
    assert to_timestamp("2024-1-5 9:03:00") == expected
    assert to_timestamp("2024-1-5") == int(datetime(2024, 1, 5, tzinfo=timezone.utc).timestamp() * 1000)
    assert to_timestamp("2024-13-45 99:00:00") == 0


def test_naive_values_use_the_given_zone() -> None:
    brt = timezone(timedelta(hours=-3))
    assert to_timestamp("2024-01-01 07:00:00", brt) == TEN_AM_UTC_MS
    assert to_timestamp(datetime(2024, 1, 1, 7, 0), brt) == TEN_AM_UTC_MS


def test_duration_against_fixed_clock() -> None:
    clock = FixedClock("2024-01-01 10:05:00")
    assert duration("2024-01-01 10:00:00", clock=clock) == 300
    assert duration("2024-01-01 10:00:00", "", clock=clock) == 300


def test_duration_is_never_negative_or_nan() -> None:
    clock = FixedClock("2024-01-01 10:05:00")
    assert duration("2024-01-01 11:00:00", clock=clock) == 0
    assert duration("2024-01-01 10:00:00", "2024-01-01 09:00:00") == 0
    assert duration(None, clock=clock) == 0
    assert duration("garbage", clock=clock) == 0
    assert duration("2024-01-01 10:00:00", "garbage") == 0


def test_duration_floors_to_whole_seconds() -> None:
    assert duration(1000, 2999) == 1


def test_duration_ceiling_only_when_requested() -> None:
    start, end = "2024-01-01 10:00:00", "2024-01-06 10:00:00"
    assert duration(start, end) == 5 * 86400
    assert duration(start, end, max_seconds=360000) == 360000
