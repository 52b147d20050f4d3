from __future__ import annotations

import pytest

from dvr_pipeline.runtime.quiet_time import QuietWindow, parse_quiet_time


@pytest.mark.parametrize("hour", range(24))
def test_window_wrapping_past_midnight(hour: int) -> None:
    w = parse_quiet_time("22-06")
    assert w is not None and w.wraps
    assert w.is_quiet(hour) is (hour in {22, 23, 0, 1, 2, 3, 4, 5})


@pytest.mark.parametrize("hour", range(24))
def test_window_within_one_day_table(hour: int) -> None:
    assert parse_quiet_time("03-12").is_quiet(hour) is (3 <= hour < 12)


def test_window_within_one_day() -> None:
    w = parse_quiet_time("03-12")
    assert w == QuietWindow(3, 12)
    assert w.is_quiet(3)
    assert w.is_quiet(11)
    assert not w.is_quiet(12)
    assert not w.is_quiet(2)
    assert str(w) == "03-12"


@pytest.mark.parametrize("value", [None, "", "05-05", "5-6", "aa-bb", "24-01", "01-99", "22-06-01"])
def test_unusable_values_mean_no_quiet_time(value: str | None) -> None:
    assert parse_quiet_time(value) is None


def test_equal_hours_are_never_quiet() -> None:
    w = QuietWindow(7, 7)
    assert w.empty
    assert not any(w.is_quiet(h) for h in range(24))


def test_out_of_range_hour_rejected() -> None:
    with pytest.raises(ValueError):
        QuietWindow(0, 24)
