"""JSON adapter and file-backed storage for slip events."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from slip_engine.constants import KEY_EVENTS, KEY_LAST_SLIP_TIME, KEY_SETTINGS, SOURCES
from slip_engine.dates import format_timestamp, parse_timestamp
from slip_engine.schema import SlipEvent

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = {"id", "timestamp"}
_VALID_SOURCES = set(SOURCES)


class StorageError(Exception):
    """Raised when a write to persistent storage fails."""


def _parse_item(item: Any, index: int) -> SlipEvent:
    if not isinstance(item, dict):
        raise ValueError(f"Item {index}: expected an object")

    missing = sorted(field for field in _REQUIRED_FIELDS if not item.get(field))
    if missing:
        raise ValueError(f"Item {index}: missing required fields {missing}")

    try:
        timestamp = parse_timestamp(item["timestamp"])
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Item {index}: malformed timestamp") from exc

    source = str(item.get("source") or "manual").strip()
    if source not in _VALID_SOURCES:
        raise ValueError(f"Item {index}: invalid source '{source}'")

    return SlipEvent(id=str(item["id"]).strip(), timestamp=timestamp, source=source)


def parse_items(payload: Any) -> list[SlipEvent]:
    """Validate a decoded JSON list into slip events with unique ids."""

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    events = [_parse_item(item, i) for i, item in enumerate(payload, start=1)]
    seen: set[str] = set()
    for i, event in enumerate(events, start=1):
        if event.id in seen:
            raise ValueError(f"Item {i}: duplicate id '{event.id}'")
        seen.add(event.id)
    return events


def serialize_event(event: SlipEvent) -> dict:
    return {"id": event.id, "timestamp": format_timestamp(event.timestamp), "source": event.source}


def parse(file_path: str) -> list[SlipEvent]:
    """Parse a JSON export (a bare list, or a storage file) into slip events."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if isinstance(payload, dict):
        payload = payload.get(KEY_EVENTS, [])
    return parse_items(payload)


def export_events(events: Iterable[SlipEvent], file_path: str) -> None:
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([serialize_event(e) for e in events], indent=2) + "\n", encoding="utf-8")


class JsonStorage:
    """Key-value persistence in a single JSON file.

    Reads never raise: a missing file yields defaults and a corrupt file is
    backed up next to the original and treated as empty. Unreadable
    event items are skipped after the same backup. Writes are atomic
    (temp file + ``os.replace``) and raise ``StorageError`` on failure.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _backup(self, text: str) -> Path:
        backup = self.path.with_suffix(f".corrupt-{int(time.time())}.json")
        try:
            backup.write_text(text, encoding="utf-8")
        except OSError:
            logger.exception("Failed to back up %s", self.path)
        return backup

    def _read(self) -> dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return {}
        except OSError:
            logger.exception("Failed to read %s", self.path)
            return {}

        if not text:
            return {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            backup = self._backup(text)
            logger.error("Corrupt data file %s, backed up to %s", self.path, backup)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        payload = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StorageError(f"Could not write {self.path}: {exc}") from exc

        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", self.path)

    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def load_events(self) -> list[SlipEvent]:
        """Stored events, skipping unreadable items.

        If anything is skipped the file is backed up first, because the next
        save rewrites the event list without those items.
        """

        data = self._read()
        raw = data.get(KEY_EVENTS)
        if raw is None:
            return []

        events: list[SlipEvent] = []
        seen: set[str] = set()
        skipped = 0 if isinstance(raw, list) else 1
        for i, item in enumerate(raw if isinstance(raw, list) else [], start=1):
            try:
                event = _parse_item(item, i)
                if event.id in seen:
                    raise ValueError(f"Item {i}: duplicate id '{event.id}'")
            except ValueError as exc:
                logger.warning("Skipping stored event in %s: %s", self.path, exc)
                skipped += 1
                continue
            seen.add(event.id)
            events.append(event)

        if skipped:
            backup = self._backup(json.dumps(data, indent=2, ensure_ascii=False))
            logger.error("Skipped %d unreadable events in %s, backed up to %s", skipped, self.path, backup)
        return events

    def save_events(self, events: Iterable[SlipEvent]) -> None:
        self._set(KEY_EVENTS, [serialize_event(e) for e in events])

    def get_last_event_timestamp(self) -> datetime | None:
        raw = self._read().get(KEY_LAST_SLIP_TIME)
        if raw in (None, ""):
            return None
        try:
            return parse_timestamp(raw)
        except (TypeError, ValueError, OverflowError, OSError):
            logger.warning("Ignoring unreadable last slip time %r", raw)
            return None

    def set_last_event_timestamp(self, instant: datetime) -> None:
        self._set(KEY_LAST_SLIP_TIME, format_timestamp(instant))

    def load_settings(self) -> dict[str, Any]:
        raw = self._read().get(KEY_SETTINGS)
        return raw if isinstance(raw, dict) else {}

    def save_settings(self, settings: dict[str, Any]) -> None:
        self._set(KEY_SETTINGS, dict(settings))

    def clear(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._read()
            for key in keys:
                data.pop(key, None)
            self._write(data)
