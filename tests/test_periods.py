from datetime import date, datetime, timedelta

from app.analytics.periods import (
    MAX_MONTH_BUCKETS,
    Period,
    Window,
    chart_bucket_keys,
    previous_window,
    resolve_window,
    shift_months,
)

NOW = datetime(2026, 3, 18, 10, 30, 0)


def test_week_window_covers_last_seven_calendar_days():
    window = resolve_window(Period.WEEK, NOW)
    assert window.start == datetime(2026, 3, 12, 0, 0, 0)
    assert window.end == NOW


def test_month_window_starts_on_the_first():
    window = resolve_window(Period.MONTH, NOW)
    assert window.start == datetime(2026, 3, 1)


def test_year_window_is_trailing_twelve_months():
    window = resolve_window(Period.YEAR, NOW)
    assert window.start == datetime(2025, 4, 1)


def test_previous_window_has_same_length_and_ends_before_current():
    window = resolve_window(Period.MONTH, NOW)
    prev = previous_window(window)
    assert prev.end == window.start - timedelta(milliseconds=1)
    assert prev.duration == window.duration
    assert prev.end < window.start


def test_window_contains_is_closed():
    window = Window(start=datetime(2026, 3, 1), end=NOW)
    assert window.contains(datetime(2026, 3, 1))
    assert window.contains(NOW)
    assert not window.contains(NOW + timedelta(microseconds=1))


def test_shift_months_crosses_year_boundaries():
    assert shift_months(2026, 1, -1) == (2025, 12)
    assert shift_months(2025, 12, 1) == (2026, 1)
    assert shift_months(2026, 3, -11) == (2025, 4)


def test_daily_bucket_keys_include_today():
    keys = chart_bucket_keys(Period.WEEK, resolve_window(Period.WEEK, NOW))
    assert keys[0] == date(2026, 3, 12)
    assert keys[-1] == date(2026, 3, 18)
    assert len(keys) == 7


def test_year_bucket_keys_are_twelve_months():
    keys = chart_bucket_keys(Period.YEAR, resolve_window(Period.YEAR, NOW))
    assert keys[0] == "2025-04"
    assert keys[-1] == "2026-03"
    assert len(keys) == 12


def test_year_bucket_keys_are_capped():
    window = Window(start=datetime(2020, 1, 1), end=NOW)
    keys = chart_bucket_keys(Period.YEAR, window)
    assert len(keys) == MAX_MONTH_BUCKETS
    assert keys[0] == "2020-01"


def test_year_bucket_keys_are_unique_and_increasing():
    for start in (datetime(2019, 7, 1), datetime(2025, 4, 1), datetime(2026, 3, 1)):
        keys = chart_bucket_keys(Period.YEAR, Window(start=start, end=NOW))
        assert len(keys) <= MAX_MONTH_BUCKETS
        assert len(set(keys)) == len(keys)
        assert keys == sorted(keys)
