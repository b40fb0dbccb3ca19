"""Engine facade: stores plus cached derived views."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable

from slip_engine.adapters.json_adapter import JsonStorage
from slip_engine.config import Settings, get_settings
from slip_engine.constants import UNDO_WINDOW
from slip_engine.dates import now_local, today
from slip_engine.history import group_by_date
from slip_engine.schema import HistorySection, SlipEvent, StatsData, StreakInfo, TodayStatus, UserSettings
from slip_engine.settings_store import SettingsStore
from slip_engine.stats import compute_stats, quick_insight, today_status
from slip_engine.store import EventStore
from slip_engine.streak import compute_streak

logger = logging.getLogger(__name__)


class SlipEngine:
    """Wires the event and settings stores to the calculators.

    Derived views are memoized per ``(event version, settings version, local
    date)``; any mutation, limit change or midnight rollover produces a new
    token and drops the cache.
    """

    def __init__(
        self,
        storage=None,
        clock: Callable[[], datetime] | None = None,
        undo_window: timedelta = UNDO_WINDOW,
    ):
        self.storage = storage
        self._clock = clock or now_local
        self.store = EventStore(storage, clock=self._clock, undo_window=undo_window)
        self.settings = SettingsStore(storage)
        self._cache: dict[tuple, Any] = {}
        self._cache_token: tuple | None = None
        self._cache_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self.store.subscribe(lambda change: self.invalidate())

    @classmethod
    def from_config(cls, config: Settings | None = None) -> "SlipEngine":
        config = config or get_settings()
        storage = JsonStorage(config.resolved_data_path())
        engine = cls(storage, undo_window=timedelta(seconds=config.undo_window_seconds))
        engine.load()
        return engine

    def load(self) -> None:
        self.settings.load()
        self.store.load()
        logger.debug("Engine loaded %d events, limit %d", len(self.store.events), self.limit)

    # -- cache -------------------------------------------------------------

    def invalidate(self) -> None:
        with self._cache_lock:
            self._cache.clear()
            self._cache_token = None

    def cache_info(self) -> dict:
        return {"hits": self._hits, "misses": self._misses, "size": len(self._cache)}

    def _cached(self, name: str, compute: Callable[..., Any], *args) -> Any:
        now = self._clock()
        events, version = self.store.snapshot()
        limit = self.limit
        token = (version, self.settings.version, today(now))
        key = (name, *args)
        with self._cache_lock:
            if token != self._cache_token:
                self._cache.clear()
                self._cache_token = token
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
        value = compute(events, limit, now)
        with self._cache_lock:
            if token == self._cache_token:
                self._cache[key] = value
            self._misses += 1
        return value

    # -- reads -------------------------------------------------------------

    @property
    def events(self) -> tuple:
        return self.store.events

    @property
    def limit(self) -> int:
        return self.settings.daily_limit

    def streak(self) -> StreakInfo:
        return self._cached("streak", compute_streak)

    def stats(self, range_days: int = 7) -> StatsData:
        return self._cached(
            "stats", lambda events, limit, now: compute_stats(events, limit, range_days, now), range_days
        )

    def today(self) -> TodayStatus:
        return self._cached("today", today_status)

    def history(self) -> list[HistorySection]:
        return self._cached("history", lambda events, limit, now: group_by_date(events, now))

    def insight(self) -> int | None:
        return self._cached("insight", lambda events, limit, now: quick_insight(events))

    def subscribe(self, callback):
        return self.store.subscribe(callback)

    # -- mutators ----------------------------------------------------------

    def record(self) -> SlipEvent:
        return self.store.record()

    def remove(self, event_id: str) -> SlipEvent | None:
        return self.store.remove(event_id)

    def restore(self, event: SlipEvent) -> SlipEvent:
        return self.store.restore(event)

    def undo_last(self) -> bool:
        return self.store.undo_last()

    def import_events(self, events: list[SlipEvent]) -> int:
        return len(self.store.import_events(events))

    def clear_all(self) -> None:
        self.store.clear_all()

    def reset_all(self) -> None:
        """Delete every slip and restore default settings."""

        self.store.clear_all()
        self.settings.reset()
        self.invalidate()

    def set_limit(self, limit: int) -> UserSettings:
        settings = self.settings.set_limit(limit)
        self.invalidate()
        return settings

    def set_habit_name(self, name: str) -> UserSettings:
        return self.settings.update(habit_name=name)
