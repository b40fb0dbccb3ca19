"""Local-time calendar helpers.

Every function takes the device's local timezone at call time and nothing is
cached between calls, so results stay correct across midnight and DST changes.
Functions that depend on the current moment accept an optional ``now``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def now_local() -> datetime:
    return datetime.now().astimezone()


def _local(instant: datetime) -> datetime:
    # naive datetimes are taken as local wall-clock time
    return instant.astimezone()


def _local_date(now: datetime | None) -> date:
    return _local(now or now_local()).date()


def to_local_date_key(instant: datetime) -> str:
    """Return the ``YYYY-MM-DD`` local calendar date of ``instant``."""

    return _local(instant).date().isoformat()


def today(now: datetime | None = None) -> str:
    return to_local_date_key(now or now_local())


def days_ago(n: int, now: datetime | None = None) -> str:
    """Local date ``n`` calendar days before today."""

    return (_local_date(now) - timedelta(days=n)).isoformat()


def last_n_days(n: int, now: datetime | None = None) -> list[str]:
    """Ascending list of the last ``n`` local dates, ending with today."""

    end = _local_date(now)
    return [(end - timedelta(days=offset)).isoformat() for offset in range(max(0, n) - 1, -1, -1)]


def date_from_key(key: str) -> date:
    return date.fromisoformat(key)


def hour_of(instant: datetime) -> int:
    return _local(instant).hour


def weekday_of(instant: datetime) -> int:
    """Local day of week with 0 = Sunday."""

    return (_local(instant).weekday() + 1) % 7


def day_name(weekday: int) -> str:
    return _DAY_NAMES[weekday % 7]


def is_today(instant: datetime, now: datetime | None = None) -> bool:
    return to_local_date_key(instant) == today(now)


def _twelve_hour(hour: int) -> int:
    return hour % 12 or 12


def format_hour_range(hour: int) -> str:
    """Label the one-hour bucket starting at ``hour``, e.g. ``9–10 PM``."""

    start_period = "AM" if hour < 12 else "PM"
    end_period = "AM" if hour + 1 < 12 or hour + 1 == 24 else "PM"
    start, end = _twelve_hour(hour), _twelve_hour(hour + 1)
    if start_period == end_period:
        return f"{start}–{end} {start_period}"
    return f"{start} {start_period}–{end} {end_period}"


def format_time(instant: datetime) -> str:
    local = _local(instant)
    period = "AM" if local.hour < 12 else "PM"
    return f"{_twelve_hour(local.hour)}:{local.minute:02d} {period}"


def format_date_for_display(key: str, now: datetime | None = None) -> str:
    """``Today``, ``Yesterday`` or a short ``Jan 16`` style label."""

    if key == today(now):
        return "Today"
    if key == days_ago(1, now):
        return "Yesterday"
    value = date_from_key(key)
    return f"{value.strftime('%b')} {value.day}"


def parse_timestamp(value: str | int | float | datetime) -> datetime:
    """Parse an ISO 8601 string or epoch milliseconds into a local aware datetime."""

    if isinstance(value, datetime):
        return _local(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).astimezone()
    text = str(value).strip()
    if text.isdigit():
        return parse_timestamp(int(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _local(datetime.fromisoformat(text))


def format_timestamp(instant: datetime) -> str:
    return _local(instant).isoformat(timespec="milliseconds")
