"""Shared constants for slip tracking."""

from __future__ import annotations

from datetime import timedelta

UNDO_WINDOW = timedelta(minutes=5)

MIN_DAYS_FOR_PATTERNS = 3
MIN_EVENTS_FOR_PATTERNS = 3
MIN_PATTERN_COUNT = 2

STREAK_SAFETY_BOUND = 365

LIMIT_MIN = 1
LIMIT_MAX = 99
HABIT_NAME_MAX_LENGTH = 50

STATS_RANGES = {"week": 7, "month": 30}
DEFAULT_HISTORY_DAYS = 30

SOURCES = ("manual", "undo-restore")

STATUS_ON_TRACK = "On track"
STATUS_OVER_LIMIT = "Over limit"
STATUS_CLEAN = "No slips yet"

KEY_EVENTS = "slips-events"
KEY_SETTINGS = "slip-settings"
KEY_LAST_SLIP_TIME = "slip-last-slip-time"

DEFAULT_SETTINGS = {
    "habit_name": "",
    "daily_limit": 3,
    "reminder_enabled": True,
    "reminder_time": "20:30",
}
