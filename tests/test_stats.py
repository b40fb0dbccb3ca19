from datetime import datetime, timedelta

import pytest

from slip_engine.schema import SlipEvent
from slip_engine.stats import compute_stats, peak_bucket, quick_insight, today_status

# Sunday
NOW = datetime(2025, 6, 15, 12, 0).astimezone()


def at(days_back: int, hour: int = 12, minute: int = 0) -> datetime:
    day = NOW.date() - timedelta(days=days_back)
    return datetime(day.year, day.month, day.day, hour, minute).astimezone()


def slips(*moments: datetime) -> list[SlipEvent]:
    return [SlipEvent(f"e{i}", moment) for i, moment in enumerate(moments)]


def test_single_heavy_day_summary():
    events = slips(*(at(2, 9 + i) for i in range(5)))
    stats = compute_stats(events, limit=3, range_days=7, now=NOW)

    assert stats.total_slips == 5
    assert stats.avg_per_day == pytest.approx(5 / 7)
    assert stats.worst_day.count == 5
    assert stats.worst_day.date == "2025-06-13"
    assert stats.worst_day.is_over_limit
    assert stats.best_day.count == 0
    assert stats.best_day.date == "2025-06-09"
    assert stats.days_under_limit_percent == pytest.approx(600 / 7)


def test_daily_counts_dense_and_newest_first():
    stats = compute_stats(slips(at(0), at(3)), limit=3, range_days=7, now=NOW)
    assert len(stats.daily_counts) == 7
    assert stats.daily_counts[0].date == "2025-06-15"
    assert stats.daily_counts[0].display_date == "Today"
    assert stats.daily_counts[1].display_date == "Yesterday"
    assert [d.count for d in stats.daily_counts] == [1, 0, 0, 1, 0, 0, 0]


def test_events_outside_range_are_ignored():
    stats = compute_stats(slips(at(10), at(40)), limit=3, range_days=7, now=NOW)
    assert stats.total_slips == 0
    assert stats.has_any_data
    assert stats.days_under_limit_percent == 100.0


def test_worst_day_tie_goes_to_earliest_date():
    stats = compute_stats(slips(at(1), at(1, 13), at(4), at(4, 13)), limit=3, range_days=7, now=NOW)
    assert stats.worst_day.date == "2025-06-11"
    assert stats.best_day.date == "2025-06-09"


def test_zero_range_degrades_to_zeros():
    stats = compute_stats(slips(at(0)), limit=3, range_days=0, now=NOW)
    assert stats.total_slips == 0
    assert stats.avg_per_day == 0.0
    assert stats.days_under_limit_percent == 0.0
    assert stats.best_day is None
    assert stats.worst_day is None
    assert stats.daily_counts == []
    assert stats.has_any_data


def test_no_data_at_all():
    stats = compute_stats([], limit=3, range_days=30, now=NOW)
    assert not stats.has_any_data
    assert stats.peak_hour is None
    assert stats.peak_day_of_week is None


def test_patterns_need_three_distinct_days():
    events = slips(at(1, 21), at(1, 21, 30), at(2, 21), at(2, 21, 45))
    stats = compute_stats(events, limit=3, range_days=7, now=NOW)
    assert not stats.has_enough_data_for_patterns
    assert stats.peak_hour is None
    assert stats.peak_day_of_week is None


def test_single_occurrence_is_not_a_pattern():
    events = slips(at(1, 8), at(2, 13), at(3, 19))
    stats = compute_stats(events, limit=3, range_days=7, now=NOW)
    assert stats.has_enough_data_for_patterns
    assert stats.peak_hour is None
    assert stats.peak_day_of_week is None
    assert stats.peak_hour_label is None


def test_peak_hour_reported_with_label():
    events = slips(at(1, 21, 5), at(2, 21, 40), at(3, 9), at(4, 21, 15))
    stats = compute_stats(events, limit=3, range_days=7, now=NOW)
    assert stats.peak_hour == 21
    assert stats.peak_hour_label == "9–10 PM"


def test_peak_hour_tie_goes_to_lowest_hour():
    events = slips(at(1, 21), at(2, 9), at(3, 21), at(4, 9))
    stats = compute_stats(events, limit=3, range_days=7, now=NOW)
    assert stats.peak_hour == 9
    # four different weekdays, one slip each
    assert stats.peak_day_of_week is None


def test_peak_day_of_week():
    events = slips(at(0, 10), at(7, 15), at(3, 18))
    stats = compute_stats(events, limit=3, range_days=30, now=NOW)
    assert stats.peak_day_of_week == 0
    assert stats.peak_day_name == "Sunday"
    assert stats.peak_hour is None


def test_peak_bucket_helper():
    assert peak_bucket([], 24) is None
    assert peak_bucket([5, 5, 3, 3], 24) == 3
    assert peak_bucket([1, 2, 3], 7) is None


def test_today_status_variants():
    assert today_status([], 3, NOW).status_message == "No slips yet"

    status = today_status(slips(at(0, 8), at(0, 9), at(1)), 3, NOW)
    assert (status.count, status.remaining, status.is_under_limit) == (2, 1, True)
    assert status.status_message == "On track"

    at_limit = today_status(slips(at(0, 8), at(0, 9), at(0, 10)), 3, NOW)
    assert at_limit.is_under_limit
    assert at_limit.remaining == 0

    over = today_status(slips(*(at(0, 8 + i) for i in range(4))), 3, NOW)
    assert not over.is_under_limit
    assert over.remaining == 0
    assert over.status_message == "Over limit"


def test_quick_insight():
    assert quick_insight(slips(at(0, 21), at(1, 21))) is None
    assert quick_insight(slips(at(0, 21), at(1, 21), at(30, 8))) == 21
    assert quick_insight(slips(at(0, 7), at(1, 8), at(2, 9))) is None


def test_recompute_is_idempotent():
    events = slips(at(1, 21), at(2, 9), at(3, 21), at(4, 9), at(10))
    assert compute_stats(events, 3, 7, NOW) == compute_stats(events, 3, 7, NOW)
