"""Range statistics, today status and pattern signals."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from slip_engine.constants import (
    MIN_DAYS_FOR_PATTERNS,
    MIN_EVENTS_FOR_PATTERNS,
    MIN_PATTERN_COUNT,
    STATUS_CLEAN,
    STATUS_ON_TRACK,
    STATUS_OVER_LIMIT,
)
from slip_engine.dates import (
    format_date_for_display,
    hour_of,
    is_today,
    last_n_days,
    now_local,
    to_local_date_key,
    weekday_of,
)
from slip_engine.schema import DayCount, SlipEvent, StatsData, TodayStatus


def peak_bucket(values: Sequence[int], buckets: int) -> Optional[int]:
    """Most frequent bucket key, lowest key on ties, or None below the minimum count."""

    if not len(values):
        return None
    counts = np.bincount(np.asarray(values, dtype=int), minlength=buckets)
    winner = int(np.argmax(counts))
    if counts[winner] < MIN_PATTERN_COUNT:
        return None
    return winner


def detect_patterns(events: Sequence[SlipEvent]) -> tuple[Optional[int], Optional[int], bool]:
    """Return ``(peak_hour, peak_day_of_week, has_enough_data)`` for ``events``."""

    distinct_days = {to_local_date_key(event.timestamp) for event in events}
    enough = len(distinct_days) >= MIN_DAYS_FOR_PATTERNS
    if not enough or len(events) < MIN_EVENTS_FOR_PATTERNS:
        return None, None, enough

    peak_hour = peak_bucket([hour_of(event.timestamp) for event in events], 24)
    peak_day = peak_bucket([weekday_of(event.timestamp) for event in events], 7)
    return peak_hour, peak_day, enough


def compute_stats(
    events: Sequence[SlipEvent],
    limit: int,
    range_days: int,
    now: datetime | None = None,
) -> StatsData:
    """Summarize the trailing ``range_days`` local days ending today."""

    now = now or now_local()
    dates = last_n_days(range_days, now)
    counts = dict.fromkeys(dates, 0)

    in_range = []
    for event in events:
        key = to_local_date_key(event.timestamp)
        if key in counts:
            counts[key] += 1
            in_range.append(event)

    ascending = [
        DayCount(
            date=date,
            display_date=format_date_for_display(date, now),
            count=counts[date],
            is_over_limit=counts[date] > limit,
        )
        for date in dates
    ]

    best_day = worst_day = None
    for day in ascending:
        if best_day is None or day.count < best_day.count:
            best_day = day
        if worst_day is None or day.count > worst_day.count:
            worst_day = day

    total = len(in_range)
    under = sum(1 for day in ascending if day.count <= limit)
    peak_hour, peak_day, enough = detect_patterns(in_range)

    return StatsData(
        total_slips=total,
        avg_per_day=total / range_days if range_days > 0 else 0.0,
        best_day=best_day,
        worst_day=worst_day,
        days_under_limit_percent=100.0 * under / range_days if range_days > 0 else 0.0,
        daily_counts=list(reversed(ascending)),
        peak_hour=peak_hour,
        peak_day_of_week=peak_day,
        has_enough_data_for_patterns=enough,
        has_any_data=len(events) > 0,
    )


def today_status(events: Sequence[SlipEvent], limit: int, now: datetime | None = None) -> TodayStatus:
    """Today's count against the limit."""

    now = now or now_local()
    count = sum(1 for event in events if is_today(event.timestamp, now))
    under = count <= limit
    if count == 0:
        message = STATUS_CLEAN
    else:
        message = STATUS_ON_TRACK if under else STATUS_OVER_LIMIT
    return TodayStatus(
        count=count,
        limit=limit,
        is_under_limit=under,
        remaining=max(0, limit - count),
        status_message=message,
    )


def quick_insight(events: Sequence[SlipEvent]) -> Optional[int]:
    """All-time most common slip hour once there are enough events."""

    if len(events) < MIN_EVENTS_FOR_PATTERNS:
        return None
    return peak_bucket([hour_of(event.timestamp) for event in events], 24)
