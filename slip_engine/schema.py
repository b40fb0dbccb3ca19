"""Core data schema for slip events and derived views."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from slip_engine.dates import day_name, format_hour_range


@dataclass(frozen=True)
class SlipEvent:
    """One logged slip. Immutable once created."""

    id: str
    timestamp: datetime
    source: str = "manual"


@dataclass
class UserSettings:
    """Persisted user preferences."""

    habit_name: str = ""
    daily_limit: int = 3
    reminder_enabled: bool = True
    reminder_time: str = "20:30"


@dataclass(frozen=True)
class DayCount:
    date: str
    display_date: str
    count: int
    is_over_limit: bool


@dataclass(frozen=True)
class StreakInfo:
    current: int
    best: int


@dataclass(frozen=True)
class TodayStatus:
    count: int
    limit: int
    is_under_limit: bool
    remaining: int
    status_message: str


@dataclass(frozen=True)
class StatsData:
    """Summary metrics for a trailing window of days."""

    total_slips: int
    avg_per_day: float
    best_day: Optional[DayCount]
    worst_day: Optional[DayCount]
    days_under_limit_percent: float
    daily_counts: list[DayCount]
    peak_hour: Optional[int]
    peak_day_of_week: Optional[int]
    has_enough_data_for_patterns: bool
    has_any_data: bool

    @property
    def peak_hour_label(self) -> Optional[str]:
        return None if self.peak_hour is None else format_hour_range(self.peak_hour)

    @property
    def peak_day_name(self) -> Optional[str]:
        return None if self.peak_day_of_week is None else day_name(self.peak_day_of_week)


@dataclass(frozen=True)
class HistorySection:
    date: str
    title: str
    events: list[SlipEvent] = field(default_factory=list)


@dataclass(frozen=True)
class ChangeEvent:
    """Notification sent to store subscribers after a mutation."""

    action: str
    version: int
    event_id: Optional[str] = None
    persisted: bool = True
