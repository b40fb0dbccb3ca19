"""Consecutive-day streak calculation."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable

from slip_engine.constants import STREAK_SAFETY_BOUND
from slip_engine.dates import date_from_key, now_local, to_local_date_key, today
from slip_engine.schema import SlipEvent, StreakInfo


def counts_by_date(events: Iterable[SlipEvent]) -> Counter:
    """Count events per local ``YYYY-MM-DD`` key."""

    return Counter(to_local_date_key(event.timestamp) for event in events)


def current_streak(counts: Counter, limit: int, now: datetime | None = None) -> int:
    """Days ending today with ``count <= limit``, capped at the safety bound."""

    day = date_from_key(today(now))
    streak = 0
    for _ in range(STREAK_SAFETY_BOUND):
        if counts.get(day.isoformat(), 0) > limit:
            break
        streak += 1
        day -= timedelta(days=1)
    return streak


def best_streak(counts: Counter, limit: int, now: datetime | None = None) -> int:
    """Longest compliant run between the first logged day and today."""

    if not counts:
        return 0

    day = date_from_key(min(counts))
    end = date_from_key(today(now))
    best = running = 0
    while day <= end:
        if counts.get(day.isoformat(), 0) <= limit:
            running += 1
            best = max(best, running)
        else:
            running = 0
        day += timedelta(days=1)
    return best


def compute_streak(events: Iterable[SlipEvent], limit: int, now: datetime | None = None) -> StreakInfo:
    """Compute current and best streaks for ``events`` under ``limit``.

    A day exactly at the limit is compliant. With no logged days at all the
    best streak equals the current one.
    """

    now = now or now_local()
    counts = counts_by_date(events)
    current = current_streak(counts, limit, now)
    if not counts:
        return StreakInfo(current=current, best=current)
    return StreakInfo(current=current, best=max(best_streak(counts, limit, now), current))
