"""Event store: canonical slip list plus single-slot undo bookkeeping."""

from __future__ import annotations

import logging
import math
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, NamedTuple, Optional

from slip_engine.adapters.json_adapter import StorageError
from slip_engine.constants import KEY_EVENTS, KEY_LAST_SLIP_TIME, UNDO_WINDOW
from slip_engine.dates import now_local
from slip_engine.schema import ChangeEvent, SlipEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[ChangeEvent], None]


class _StoreState(NamedTuple):
    events: tuple
    last_event_id: Optional[str]
    last_event_time: Optional[datetime]
    version: int


def new_event_id() -> str:
    return uuid.uuid4().hex


class EventStore:
    """Owns the insertion-ordered event collection.

    State is swapped in as one immutable snapshot, so readers always see a
    collection and undo slot that belong together. Mutators are serialized by
    a lock, update memory first, then write through to ``storage``. A failed
    write is logged and reported via ``ChangeEvent.persisted`` but the
    in-memory state is kept.
    """

    def __init__(
        self,
        storage=None,
        clock: Callable[[], datetime] | None = None,
        undo_window: timedelta = UNDO_WINDOW,
    ):
        self.storage = storage
        self.undo_window = undo_window
        self.last_write_ok = True
        self._clock = clock or now_local
        self._lock = threading.RLock()
        self._state = _StoreState((), None, None, 0)
        self._subscribers: list[Subscriber] = []

    # -- reads -------------------------------------------------------------

    @property
    def events(self) -> tuple:
        return self._state.events

    @property
    def version(self) -> int:
        return self._state.version

    @property
    def undo_state(self) -> tuple[Optional[str], Optional[datetime]]:
        state = self._state
        return state.last_event_id, state.last_event_time

    def snapshot(self) -> tuple[tuple, int]:
        state = self._state
        return state.events, state.version

    def get(self, event_id: str) -> SlipEvent | None:
        return next((e for e in self._state.events if e.id == event_id), None)

    def _now(self) -> datetime:
        instant = self._clock()
        return instant if instant.tzinfo else instant.astimezone()

    def undo_seconds_remaining(self) -> int:
        last_id, last_time = self.undo_state
        if last_id is None or last_time is None:
            return 0
        remaining = (self.undo_window - (self._now() - last_time)).total_seconds()
        return max(0, math.ceil(remaining))

    def can_undo(self) -> bool:
        last_id, last_time = self.undo_state
        if last_id is None or last_time is None:
            return False
        return self._now() - last_time <= self.undo_window

    # -- observers ---------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, change: ChangeEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:  # noqa: BLE001
                logger.exception("Subscriber %r failed on %s", callback, change.action)

    # -- persistence -------------------------------------------------------

    def load_all(self) -> list[SlipEvent]:
        if self.storage is None:
            return []
        try:
            return list(self.storage.load_events())
        except Exception:  # noqa: BLE001
            logger.exception("Failed to load events, starting empty")
            return []

    def _load_last_time(self) -> datetime | None:
        if self.storage is None:
            return None
        try:
            return self.storage.get_last_event_timestamp()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to load last slip time")
            return None

    def load(self) -> tuple:
        """Replace in-memory state with what the storage collaborator holds."""

        events = tuple(self.load_all())
        last_time = self._load_last_time()
        with self._lock:
            # only the slip that wrote the last-slip time can be undone
            armed = bool(events) and last_time is not None and events[-1].timestamp == last_time
            self._state = _StoreState(
                events,
                events[-1].id if armed else None,
                last_time if armed else None,
                self._state.version + 1,
            )
            version = self._state.version
        logger.debug("Loaded %d events", len(events))
        self._notify(ChangeEvent("load", version))
        return events

    def _write_through(self, events: tuple, last_time: datetime | None = None) -> bool:
        if self.storage is None:
            return True
        try:
            self.storage.save_events(events)
            if last_time is not None:
                self.storage.set_last_event_timestamp(last_time)
        except (StorageError, OSError):
            logger.exception("Failed to persist %d events", len(events))
            self.last_write_ok = False
            return False
        self.last_write_ok = True
        return True

    # -- mutators ----------------------------------------------------------

    def record(self, source: str = "manual") -> SlipEvent:
        """Log a slip now and arm it for undo, replacing any armed slip."""

        with self._lock:
            now = self._now()
            event = SlipEvent(id=new_event_id(), timestamp=now, source=source)
            state = self._state
            self._state = _StoreState(state.events + (event,), event.id, now, state.version + 1)
            version = self._state.version
            persisted = self._write_through(self._state.events, last_time=now)
        logger.info("Recorded slip %s", event.id)
        self._notify(ChangeEvent("record", version, event.id, persisted))
        return event

    def remove(self, event_id: str) -> SlipEvent | None:
        """Delete one slip by id. Unknown ids are ignored; the undo slot is kept."""

        with self._lock:
            state = self._state
            removed = next((e for e in state.events if e.id == event_id), None)
            if removed is None:
                return None
            remaining = tuple(e for e in state.events if e.id != event_id)
            self._state = state._replace(events=remaining, version=state.version + 1)
            version = self._state.version
            persisted = self._write_through(remaining)
        logger.info("Removed slip %s", event_id)
        self._notify(ChangeEvent("remove", version, event_id, persisted))
        return removed

    def restore(self, event: SlipEvent) -> SlipEvent:
        """Re-add a previously removed slip at its original time."""

        with self._lock:
            state = self._state
            taken = {e.id for e in state.events}
            restored = SlipEvent(
                id=event.id if event.id not in taken else new_event_id(),
                timestamp=event.timestamp,
                source="undo-restore",
            )
            self._state = _StoreState(state.events + (restored,), None, None, state.version + 1)
            version = self._state.version
            persisted = self._write_through(self._state.events)
        logger.info("Restored slip %s", restored.id)
        self._notify(ChangeEvent("restore", version, restored.id, persisted))
        return restored

    def import_events(self, events) -> list[SlipEvent]:
        """Append events whose ids are not yet known, oldest first, in one write."""

        with self._lock:
            state = self._state
            known = {e.id for e in state.events}
            added = []
            for event in sorted(events, key=lambda e: e.timestamp):
                if event.id in known:
                    continue
                known.add(event.id)
                added.append(event)
            if not added:
                return []
            self._state = _StoreState(state.events + tuple(added), None, None, state.version + 1)
            version = self._state.version
            persisted = self._write_through(self._state.events)
        logger.info("Imported %d slips", len(added))
        self._notify(ChangeEvent("import", version, None, persisted))
        return added

    def undo_last(self) -> bool:
        """Remove the armed slip if still inside the undo window."""

        with self._lock:
            state = self._state
            if state.last_event_id is None or state.last_event_time is None:
                return False

            if self._now() - state.last_event_time > self.undo_window:
                logger.debug("Undo window expired for %s", state.last_event_id)
                self._state = state._replace(last_event_id=None, last_event_time=None)
                return False

            target = state.last_event_id
            remaining = tuple(e for e in state.events if e.id != target)
            if len(remaining) == len(state.events):
                # armed slip was already deleted
                self._state = state._replace(last_event_id=None, last_event_time=None)
                return False

            self._state = _StoreState(remaining, None, None, state.version + 1)
            version = self._state.version
            persisted = self._write_through(remaining)
        logger.info("Undid slip %s", target)
        self._notify(ChangeEvent("undo", version, target, persisted))
        return True

    def clear_all(self) -> None:
        with self._lock:
            self._state = _StoreState((), None, None, self._state.version + 1)
            version = self._state.version
            persisted = True
            if self.storage is not None:
                try:
                    self.storage.clear([KEY_EVENTS, KEY_LAST_SLIP_TIME])
                except (StorageError, OSError):
                    logger.exception("Failed to clear stored events")
                    persisted = False
                self.last_write_ok = persisted
        logger.info("Cleared all slips")
        self._notify(ChangeEvent("clear", version, None, persisted))
