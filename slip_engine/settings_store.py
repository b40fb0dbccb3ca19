"""Settings store: habit name, daily limit and reminder preferences."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import asdict, fields, replace

from slip_engine.adapters.json_adapter import StorageError
from slip_engine.constants import DEFAULT_SETTINGS, HABIT_NAME_MAX_LENGTH, LIMIT_MAX, LIMIT_MIN
from slip_engine.schema import UserSettings

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"([01]\d|2[0-3]):[0-5]\d")
_FIELD_NAMES = {f.name for f in fields(UserSettings)}


def validate(settings: UserSettings) -> UserSettings:
    """Return a normalized copy of ``settings`` or raise ``ValueError``."""

    limit = settings.daily_limit
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValueError(f"daily_limit must be an integer, got {limit!r}")
    if not LIMIT_MIN <= limit <= LIMIT_MAX:
        raise ValueError(f"daily_limit must be between {LIMIT_MIN} and {LIMIT_MAX}")

    name = str(settings.habit_name).strip()
    if len(name) > HABIT_NAME_MAX_LENGTH:
        raise ValueError(f"habit_name must be at most {HABIT_NAME_MAX_LENGTH} characters")

    if not _TIME_RE.fullmatch(str(settings.reminder_time)):
        raise ValueError("reminder_time must look like HH:MM")

    return replace(settings, habit_name=name, reminder_enabled=bool(settings.reminder_enabled))


def from_mapping(raw: dict) -> UserSettings:
    """Merge stored values over defaults, keeping defaults for invalid fields."""

    settings = UserSettings(**DEFAULT_SETTINGS)
    for key, value in raw.items():
        if key not in _FIELD_NAMES:
            continue
        try:
            settings = validate(replace(settings, **{key: value}))
        except ValueError:
            logger.warning("Ignoring invalid stored setting %s=%r", key, value)
    return settings


class SettingsStore:
    """Owns ``UserSettings`` and exposes the live daily limit to calculators."""

    def __init__(self, storage=None):
        self.storage = storage
        self.last_write_ok = True
        self._lock = threading.RLock()
        self._settings = UserSettings(**DEFAULT_SETTINGS)
        self._version = 0

    @property
    def settings(self) -> UserSettings:
        return self._settings

    @property
    def daily_limit(self) -> int:
        return self._settings.daily_limit

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_setup_complete(self) -> bool:
        return bool(self._settings.habit_name.strip())

    def load(self) -> UserSettings:
        raw: dict = {}
        if self.storage is not None:
            try:
                raw = self.storage.load_settings()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to load settings, using defaults")
        with self._lock:
            self._settings = from_mapping(raw)
            self._version += 1
        return self._settings

    def _save(self) -> bool:
        if self.storage is None:
            return True
        try:
            self.storage.save_settings(asdict(self._settings))
        except (StorageError, OSError):
            logger.exception("Failed to save settings")
            self.last_write_ok = False
            return False
        self.last_write_ok = True
        return True

    def update(self, **changes) -> UserSettings:
        unknown = set(changes) - _FIELD_NAMES
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")
        with self._lock:
            updated = validate(replace(self._settings, **changes))
            if updated != self._settings:
                self._settings = updated
                self._version += 1
                self._save()
        return self._settings

    def set_limit(self, limit: int) -> UserSettings:
        return self.update(daily_limit=limit)

    def increment_limit(self) -> bool:
        with self._lock:
            if self.daily_limit >= LIMIT_MAX:
                return False
            self.set_limit(self.daily_limit + 1)
            return True

    def decrement_limit(self) -> bool:
        with self._lock:
            if self.daily_limit <= LIMIT_MIN:
                return False
            self.set_limit(self.daily_limit - 1)
            return True

    def reset(self) -> UserSettings:
        with self._lock:
            self._settings = UserSettings(**DEFAULT_SETTINGS)
            self._version += 1
            self._save()
        return self._settings
