from datetime import datetime, timedelta

import pytest

from slip_engine.adapters.json_adapter import JsonStorage, StorageError
from slip_engine.schema import SlipEvent
from slip_engine.store import EventStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FailingStorage:
    def load_events(self):
        raise OSError("disk gone")

    def get_last_event_timestamp(self):
        raise OSError("disk gone")

    def save_events(self, events):
        raise StorageError("read-only")

    def set_last_event_timestamp(self, instant):
        raise StorageError("read-only")

    def clear(self, keys):
        raise StorageError("read-only")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 6, 15, 21, 0).astimezone())


@pytest.fixture()
def store(clock) -> EventStore:
    return EventStore(clock=clock)


def test_record_appends_and_arms_undo(store, clock):
    event = store.record()
    assert store.events == (event,)
    assert event.source == "manual"
    assert event.timestamp == clock.now
    assert store.undo_state == (event.id, clock.now)
    assert store.can_undo()


def test_undo_within_window_removes_exactly_that_event(store, clock):
    first = store.record()
    clock.advance(minutes=10)
    second = store.record()
    clock.advance(seconds=1)

    assert store.undo_last() is True
    assert store.events == (first,)
    assert store.get(second.id) is None
    assert store.undo_state == (None, None)
    assert store.undo_last() is False
    assert store.events == (first,)


def test_undo_after_window_fails_and_keeps_event(store, clock):
    event = store.record()
    clock.advance(minutes=5, seconds=1)
    assert store.undo_seconds_remaining() == 0
    assert store.undo_last() is False
    assert store.events == (event,)
    assert store.undo_state == (None, None)


def test_undo_at_exact_window_boundary_succeeds(store, clock):
    store.record()
    clock.advance(minutes=5)
    assert store.can_undo()
    assert store.undo_last() is True
    assert store.events == ()


def test_can_undo_ends_just_after_window(store, clock):
    store.record()
    clock.advance(minutes=5, seconds=1)
    assert not store.can_undo()
    assert store.undo_last() is False


def test_undo_seconds_remaining_counts_down(store, clock):
    store.record()
    clock.advance(seconds=59, microseconds=500000)
    assert store.undo_seconds_remaining() == 241


def test_undo_with_nothing_armed(store):
    assert store.undo_last() is False


def test_second_record_replaces_armed_event(store):
    first = store.record()
    second = store.record()
    assert store.undo_state[0] == second.id
    assert store.undo_last() is True
    assert store.events == (first,)
    assert store.undo_last() is False


def test_remove_unknown_id_is_a_no_op(store):
    event = store.record()
    before = (store.events, store.undo_state, store.version)
    assert store.remove("missing") is None
    assert (store.events, store.undo_state, store.version) == before
    assert store.events == (event,)


def test_remove_keeps_undo_state(store):
    first = store.record()
    second = store.record()
    assert store.remove(first.id) == first
    assert store.events == (second,)
    assert store.undo_state[0] == second.id


def test_undo_after_armed_event_was_removed(store):
    event = store.record()
    store.remove(event.id)
    assert store.undo_state[0] == event.id
    assert store.undo_last() is False
    assert store.undo_state == (None, None)


def test_clear_all(store):
    store.record()
    store.record()
    store.clear_all()
    assert store.events == ()
    assert store.undo_state == (None, None)
    assert store.undo_last() is False


def test_restore_marks_source_and_disarms_undo(store, clock):
    event = store.record()
    store.remove(event.id)
    restored = store.restore(event)
    assert restored.id == event.id
    assert restored.timestamp == event.timestamp
    assert restored.source == "undo-restore"
    assert store.undo_state == (None, None)


def test_import_skips_known_ids(store, clock):
    existing = store.record()
    older = SlipEvent("old", clock.now - timedelta(days=3))
    added = store.import_events([existing, older, older])
    assert added == [older]
    assert store.events == (existing, older)


def test_version_bumps_on_each_mutation(store):
    versions = [store.version]
    event = store.record()
    versions.append(store.version)
    store.remove(event.id)
    versions.append(store.version)
    store.clear_all()
    versions.append(store.version)
    assert versions == sorted(set(versions))


def test_subscribers_receive_changes(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    event = store.record()
    store.undo_last()
    unsubscribe()
    store.record()

    assert [c.action for c in seen] == ["record", "undo"]
    assert seen[0].event_id == event.id
    assert all(c.persisted for c in seen)


def test_failing_subscriber_does_not_break_mutation(store):
    def boom(change):
        raise RuntimeError("listener bug")

    store.subscribe(boom)
    event = store.record()
    assert store.events == (event,)


def test_write_failure_keeps_memory_and_reports(clock):
    store = EventStore(FailingStorage(), clock=clock)
    seen = []
    store.subscribe(seen.append)

    event = store.record()
    assert store.events == (event,)
    assert store.last_write_ok is False
    assert seen[-1].persisted is False

    store.clear_all()
    assert store.events == ()
    assert seen[-1].persisted is False


def test_load_failure_degrades_to_empty(clock):
    store = EventStore(FailingStorage(), clock=clock)
    assert store.load() == ()
    assert store.undo_state == (None, None)


def test_write_through_and_reload(tmp_path, clock):
    path = tmp_path / "data.json"
    store = EventStore(JsonStorage(path), clock=clock)
    first = store.record()
    clock.advance(minutes=1)
    second = store.record()

    clock.advance(minutes=1)
    reloaded = EventStore(JsonStorage(path), clock=clock)
    events = reloaded.load()
    assert [e.id for e in events] == [first.id, second.id]
    assert events[0].timestamp == first.timestamp
    assert reloaded.undo_state[0] == second.id
    assert reloaded.undo_last() is True
    assert [e.id for e in EventStore(JsonStorage(path)).load()] == [first.id]


def test_reload_after_undo_does_not_arm_older_event(tmp_path, clock):
    path = tmp_path / "data.json"
    store = EventStore(JsonStorage(path), clock=clock)
    store.record()
    clock.advance(minutes=1)
    store.record()
    assert store.undo_last() is True

    reloaded = EventStore(JsonStorage(path), clock=clock)
    reloaded.load()
    assert reloaded.undo_state == (None, None)
    assert reloaded.undo_last() is False
