"""Tests for object_atlas.subscription.subscriber — Subscriber and SubscriptionHandle."""
from __future__ import annotations

import threading
import time
from collections.abc import Iterator

import pytest

from object_atlas.index.naming import InvalidArgumentError
from object_atlas.index.tag_index import TagIndex
from object_atlas.subscription.subscriber import (
    Subscriber,
    SubscriberClosedError,
    SubscriptionHandle,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Thing:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Thing({self.name!r})"


class Recorder:
    """Thread-safe callback that records every object it receives."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.received: list[Thing] = []
        self._lock = threading.Lock()

    def __call__(self, obj: Thing) -> None:
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.received.append(obj)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(obj.name for obj in self.received)


@pytest.fixture()
def index() -> TagIndex:
    return TagIndex()


@pytest.fixture()
def subscriber(index: TagIndex) -> Iterator[Subscriber]:
    sub = Subscriber(index, max_workers=4)
    yield sub
    sub.close()


def _populate(index: TagIndex, tag: str, *names: str) -> list[Thing]:
    things = [Thing(name) for name in names]
    for thing in things:
        index.tag(thing, tag)
    return things


# ---------------------------------------------------------------------------
# Snapshot replay
# ---------------------------------------------------------------------------


class TestBindSnapshot:
    def test_existing_members_delivered_once_each(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        _populate(index, "X", "a", "b", "c")
        recorder = Recorder()
        subscriber.bind("x", recorder)
        assert subscriber.drain(timeout=5.0)
        assert recorder.names() == ["a", "b", "c"]

    def test_cancel_right_after_bind_keeps_snapshot_deliveries(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        _populate(index, "X", "a", "b", "c")
        recorder = Recorder(delay=0.02)
        handle = subscriber.bind("X", recorder)
        handle.cancel()
        assert subscriber.drain(timeout=5.0)
        assert recorder.names() == ["a", "b", "c"]

    def test_bind_does_not_wait_for_callbacks(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        _populate(index, "X", "a")
        release = threading.Event()
        subscriber.bind("X", lambda obj: release.wait(5.0))
        started = time.monotonic()
        subscriber.bind("X", lambda obj: None)
        assert time.monotonic() - started < 1.0
        release.set()
        assert subscriber.drain(timeout=5.0)

    def test_empty_tag_delivers_nothing(self, subscriber: Subscriber) -> None:
        recorder = Recorder()
        subscriber.bind("nothing", recorder)
        assert subscriber.drain(timeout=5.0)
        assert recorder.received == []


# ---------------------------------------------------------------------------
# Arrivals
# ---------------------------------------------------------------------------


class TestArrivals:
    def test_new_member_delivered_once(self, index: TagIndex, subscriber: Subscriber) -> None:
        recorder = Recorder()
        subscriber.bind("X", recorder)
        new_obj = Thing("new")
        index.tag(new_obj, "X")
        assert subscriber.drain(timeout=5.0)
        assert recorder.received == [new_obj]

    def test_retag_delivers_nothing_more(self, index: TagIndex, subscriber: Subscriber) -> None:
        recorder = Recorder()
        subscriber.bind("X", recorder)
        new_obj = Thing("new")
        index.tag(new_obj, "X")
        index.tag(new_obj, "x")
        assert subscriber.drain(timeout=5.0)
        assert recorder.received == [new_obj]

    def test_removal_is_not_delivered(self, index: TagIndex, subscriber: Subscriber) -> None:
        (existing,) = _populate(index, "X", "a")
        recorder = Recorder()
        subscriber.bind("X", recorder)
        assert subscriber.drain(timeout=5.0)
        index.untag(existing, "X")
        assert subscriber.drain(timeout=5.0)
        assert recorder.received == [existing]

    def test_other_tags_are_ignored(self, index: TagIndex, subscriber: Subscriber) -> None:
        recorder = Recorder()
        subscriber.bind("X", recorder)
        index.tag(Thing("other"), "Y")
        assert subscriber.drain(timeout=5.0)
        assert recorder.received == []

    def test_every_subscription_receives_arrival(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        first, second = Recorder(), Recorder()
        subscriber.bind("X", first)
        subscriber.bind("X", second)
        obj = Thing("new")
        index.tag(obj, "X")
        assert subscriber.drain(timeout=5.0)
        assert first.received == [obj]
        assert second.received == [obj]

    def test_cancelled_subscription_receives_no_arrivals(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        recorder = Recorder()
        handle = subscriber.bind("X", recorder)
        handle.cancel()
        index.tag(Thing("late"), "X")
        assert subscriber.drain(timeout=5.0)
        assert recorder.received == []
        assert not handle.active


# ---------------------------------------------------------------------------
# Ordering and isolation
# ---------------------------------------------------------------------------


class TestOrdering:
    def test_snapshot_completes_before_arrivals(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        _populate(index, "X", "a", "b", "c")
        order: list[str] = []
        lock = threading.Lock()

        def slow_callback(obj: Thing) -> None:
            if obj.name != "late":
                time.sleep(0.05)
            with lock:
                order.append(obj.name)

        subscriber.bind("X", slow_callback)
        index.tag(Thing("late"), "X")
        assert subscriber.drain(timeout=5.0)
        assert sorted(order[:3]) == ["a", "b", "c"]
        assert order[3] == "late"

    def test_slow_subscriber_does_not_block_others(
        self, index: TagIndex, subscriber: Subscriber
    ) -> None:
        _populate(index, "X", "a")
        release = threading.Event()
        fast = Recorder()
        subscriber.bind("X", lambda obj: release.wait(5.0))
        subscriber.bind("X", fast)
        deadline = time.monotonic() + 5.0
        while not fast.received and time.monotonic() < deadline:
            time.sleep(0.005)
        assert fast.names() == ["a"]
        release.set()
        assert subscriber.drain(timeout=5.0)


class TestFaultIsolation:
    def test_failing_callback_does_not_affect_others(
        self, index: TagIndex, subscriber: Subscriber, caplog: pytest.LogCaptureFixture
    ) -> None:
        _populate(index, "X", "a", "b")

        def explode(obj: Thing) -> None:
            raise RuntimeError(f"boom {obj.name}")

        recorder = Recorder()
        with caplog.at_level("ERROR", logger="object_atlas.subscription.subscriber"):
            subscriber.bind("X", explode)
            subscriber.bind("X", recorder)
            late = Thing("c")
            index.tag(late, "X")
            assert subscriber.drain(timeout=5.0)

        assert recorder.names() == ["a", "b", "c"]
        assert index.objects_with_tag("X")[-1] is late
        assert "failed" in caplog.text


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_bind_validates_tag(self, subscriber: Subscriber) -> None:
        with pytest.raises(InvalidArgumentError):
            subscriber.bind("", lambda obj: None)

    def test_bind_validates_callback(self, subscriber: Subscriber) -> None:
        with pytest.raises(InvalidArgumentError):
            subscriber.bind("X", "not callable")  # type: ignore[arg-type]

    def test_handle_properties(self, subscriber: Subscriber) -> None:
        handle = subscriber.bind("Enemies", lambda obj: None)
        assert isinstance(handle, SubscriptionHandle)
        assert handle.tag == "enemies"
        assert handle.active
        assert "enemies" in repr(handle)

    def test_cancel_twice_is_harmless(self, subscriber: Subscriber) -> None:
        handle = subscriber.bind("X", lambda obj: None)
        handle.cancel()
        subscriber.cancel(handle)
        assert subscriber.active_subscriptions() == []

    def test_active_subscriptions_by_tag(self, subscriber: Subscriber) -> None:
        x = subscriber.bind("X", lambda obj: None)
        subscriber.bind("Y", lambda obj: None)
        assert subscriber.active_subscriptions("x") == [x]
        assert len(subscriber.active_subscriptions()) == 2

    def test_bind_after_close_raises(self, index: TagIndex) -> None:
        subscriber = Subscriber(index)
        subscriber.close()
        with pytest.raises(SubscriberClosedError):
            subscriber.bind("X", lambda obj: None)

    def test_close_detaches_from_index(self, index: TagIndex) -> None:
        recorder = Recorder()
        with Subscriber(index) as subscriber:
            handle = subscriber.bind("X", recorder)
        index.tag(Thing("after"), "X")
        assert recorder.received == []
        assert not handle.active
