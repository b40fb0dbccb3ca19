from datetime import datetime, timedelta, timezone

from slip_engine.dates import (
    days_ago,
    format_date_for_display,
    format_hour_range,
    format_time,
    hour_of,
    is_today,
    last_n_days,
    parse_timestamp,
    to_local_date_key,
    today,
    weekday_of,
)

# Sunday
NOW = datetime(2025, 6, 15, 12, 0).astimezone()


def test_date_key_is_zero_padded():
    assert to_local_date_key(datetime(2025, 1, 5, 9, 30).astimezone()) == "2025-01-05"


def test_date_key_order_matches_chronological_order():
    instants = [NOW - timedelta(days=d, hours=h) for d in (0, 3, 9, 40, 400) for h in (0, 5)]
    keys = [to_local_date_key(i) for i in sorted(instants)]
    assert keys == sorted(keys)


def test_last_n_days_shape():
    days = last_n_days(7, NOW)
    assert len(days) == 7
    assert days[-1] == today(NOW) == "2025-06-15"
    assert days[0] == "2025-06-09"
    assert days == sorted(days)


def test_last_n_days_defaults_to_now():
    days = last_n_days(7)
    assert len(days) == 7
    assert days[-1] == today()


def test_last_n_days_zero_and_negative():
    assert last_n_days(0, NOW) == []
    assert last_n_days(-3, NOW) == []


def test_days_ago_crosses_month_and_year():
    now = datetime(2025, 3, 1, 8, 0).astimezone()
    assert days_ago(1, now) == "2025-02-28"
    assert days_ago(60, now) == "2024-12-31"


def test_hour_and_weekday():
    assert hour_of(datetime(2025, 6, 15, 21, 14).astimezone()) == 21
    assert weekday_of(NOW) == 0
    assert weekday_of(NOW + timedelta(days=1)) == 1
    assert weekday_of(NOW - timedelta(days=1)) == 6


def test_format_hour_range():
    assert format_hour_range(21) == "9–10 PM"
    assert format_hour_range(0) == "12–1 AM"
    assert format_hour_range(11) == "11 AM–12 PM"
    assert format_hour_range(12) == "12–1 PM"
    assert format_hour_range(23) == "11 PM–12 AM"


def test_format_time():
    assert format_time(datetime(2025, 6, 15, 21, 14).astimezone()) == "9:14 PM"
    assert format_time(datetime(2025, 6, 15, 0, 5).astimezone()) == "12:05 AM"


def test_format_date_for_display():
    assert format_date_for_display("2025-06-15", NOW) == "Today"
    assert format_date_for_display("2025-06-14", NOW) == "Yesterday"
    assert format_date_for_display("2025-06-01", NOW) == "Jun 1"


def test_parse_timestamp_variants():
    utc = parse_timestamp("2025-01-16T21:14:00.000Z")
    assert utc == datetime(2025, 1, 16, 21, 14, tzinfo=timezone.utc)
    assert utc.tzinfo is not None

    naive = parse_timestamp("2025-01-16T21:14:00")
    assert naive.hour == 21
    assert naive.tzinfo is not None

    from_ms = parse_timestamp(1737062040000)
    assert from_ms == utc


def test_calendar_arithmetic_across_spring_forward(new_york):
    # 2025-03-09 is 23 hours long in New York
    now = datetime(2025, 3, 10, 0, 30).astimezone()
    assert now.utcoffset() == timedelta(hours=-4)
    assert days_ago(1, now) == "2025-03-09"
    assert days_ago(2, now) == "2025-03-08"
    assert last_n_days(3, now) == ["2025-03-08", "2025-03-09", "2025-03-10"]
    assert to_local_date_key(datetime(2025, 3, 9, 23, 30).astimezone()) == "2025-03-09"


def test_calendar_arithmetic_across_fall_back(new_york):
    # 2025-11-02 is 25 hours long in New York
    now = datetime(2025, 11, 3, 0, 30).astimezone()
    assert days_ago(1, now) == "2025-11-02"
    assert last_n_days(2, now) == ["2025-11-02", "2025-11-03"]


def test_is_today_uses_local_calendar_day():
    assert is_today(NOW.replace(hour=23, minute=59), NOW)
    assert not is_today(NOW - timedelta(days=1), NOW)
