"""Tests for object_atlas.index.tag_index — TagIndex."""
from __future__ import annotations

import gc
import threading

import pytest

from object_atlas.index.naming import InvalidArgumentError
from object_atlas.index.tag_index import MembershipChange, MembershipEvent, TagIndex


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Thing:
    def __init__(self, name: str) -> None:
        self.name = name
        self.destroyed = False

    def __repr__(self) -> str:
        return f"Thing({self.name!r})"


@pytest.fixture()
def index() -> TagIndex:
    return TagIndex(is_alive=lambda obj: not obj.destroyed)


@pytest.fixture()
def events(index: TagIndex) -> list[MembershipEvent]:
    received: list[MembershipEvent] = []
    index.add_listener(received.append)
    return received


# ---------------------------------------------------------------------------
# tag / untag
# ---------------------------------------------------------------------------


class TestTag:
    def test_tagged_object_is_listed(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "Interactable")
        assert index.objects_with_tag("interactable") == [door]

    def test_tagging_twice_lists_object_once(self, index: TagIndex) -> None:
        door = Thing("Door")
        for _ in range(5):
            index.tag(door, "Interactable")
        assert index.objects_with_tag("Interactable") == [door]

    def test_tag_is_case_insensitive(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "INTERACTABLE")
        index.tag(door, "interactable")
        assert index.tags_of(door) == frozenset({"interactable"})

    def test_empty_tag_raises(self, index: TagIndex) -> None:
        with pytest.raises(InvalidArgumentError):
            index.tag(Thing("Door"), "")

    def test_none_object_raises(self, index: TagIndex) -> None:
        with pytest.raises(InvalidArgumentError):
            index.tag(None, "Interactable")

    def test_non_weakrefable_object_raises(self, index: TagIndex) -> None:
        with pytest.raises(InvalidArgumentError):
            index.tag(42, "Numbers")
        assert index.objects_with_tag("numbers") == []

    def test_destroyed_object_raises(self, index: TagIndex) -> None:
        door = Thing("Door")
        door.destroyed = True
        with pytest.raises(InvalidArgumentError):
            index.tag(door, "Interactable")

    def test_insertion_order_is_preserved(self, index: TagIndex) -> None:
        things = [Thing(f"t{i}") for i in range(10)]
        for thing in things:
            index.tag(thing, "bag")
        assert index.objects_with_tag("bag") == things


class TestUntag:
    def test_untagged_object_is_not_listed(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "Interactable")
        index.untag(door, "interactable")
        assert door not in index.objects_with_tag("Interactable")

    def test_untag_missing_association_is_noop(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.untag(door, "Interactable")
        index.tag(door, "Other")
        index.untag(door, "Interactable")
        assert index.tags_of(door) == frozenset({"other"})

    def test_untag_keeps_other_tags(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "a")
        index.tag(door, "b")
        index.untag(door, "a")
        assert index.has_tag(door, "b")
        assert not index.has_tag(door, "a")

    def test_removing_last_tag_does_not_touch_object(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "a")
        index.untag(door, "a")
        assert door not in index
        assert door.name == "Door"
        assert not door.destroyed

    def test_untag_empty_tag_raises(self, index: TagIndex) -> None:
        with pytest.raises(InvalidArgumentError):
            index.untag(Thing("Door"), " ")

    def test_remove_object_drops_every_tag(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "b")
        index.tag(door, "a")
        assert index.remove_object(door) == ["a", "b"]
        assert index.tags_of(door) == frozenset()


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TestFindByName:
    def test_case_insensitive_match(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "Interactable")
        assert index.find_by_name("Interactable", "door") is door

    def test_no_match_returns_none(self, index: TagIndex) -> None:
        index.tag(Thing("Door"), "Interactable")
        assert index.find_by_name("Interactable", "window") is None

    def test_unknown_tag_returns_none(self, index: TagIndex) -> None:
        assert index.find_by_name("missing", "door") is None

    def test_first_tagged_wins(self, index: TagIndex) -> None:
        first = Thing("Door")
        second = Thing("DOOR")
        index.tag(first, "Interactable")
        index.tag(second, "Interactable")
        assert index.find_by_name("interactable", "door") is first

    def test_empty_name_raises(self, index: TagIndex) -> None:
        with pytest.raises(InvalidArgumentError):
            index.find_by_name("Interactable", "")

    def test_custom_name_resolver(self) -> None:
        index = TagIndex(name_of=lambda obj: obj.label)

        class Labelled:
            label = "Lamp"

        lamp = Labelled()
        index.tag(lamp, "light")
        assert index.find_by_name("light", "lamp") is lamp


class TestQueries:
    def test_objects_with_unknown_tag_is_empty(self, index: TagIndex) -> None:
        assert index.objects_with_tag("nothing") == []

    def test_tags_lists_populated_tags(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "b")
        index.tag(door, "a")
        assert index.tags() == ["a", "b"]

    def test_len_counts_tagged_objects(self, index: TagIndex) -> None:
        door, window = Thing("Door"), Thing("Window")
        index.tag(door, "a")
        index.tag(door, "b")
        index.tag(window, "a")
        assert len(index) == 2

    def test_snapshot_runs_hook_with_members(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "a")
        assert index.snapshot("A", lambda members: list(members)) == [door]


# ---------------------------------------------------------------------------
# Stale entries
# ---------------------------------------------------------------------------


class TestPruning:
    def test_destroyed_object_is_not_returned(self, index: TagIndex) -> None:
        door, window = Thing("Door"), Thing("Window")
        index.tag(door, "a")
        index.tag(window, "a")
        door.destroyed = True
        assert index.objects_with_tag("a") == [window]
        assert index.find_by_name("a", "door") is None

    def test_destroyed_object_is_pruned_from_reverse_map(self, index: TagIndex) -> None:
        door = Thing("Door")
        index.tag(door, "a")
        index.tag(door, "b")
        door.destroyed = True
        index.objects_with_tag("a")
        assert index.tags_of(door) == frozenset()
        assert len(index) == 0

    def test_collected_object_is_pruned(self, index: TagIndex) -> None:
        door = Thing("Door")
        keep = Thing("Keep")
        index.tag(door, "a")
        index.tag(keep, "a")
        del door
        gc.collect()
        assert index.objects_with_tag("a") == [keep]
        assert len(index) == 1

    def test_index_does_not_keep_objects_alive(self, index: TagIndex) -> None:
        import weakref

        door = Thing("Door")
        index.tag(door, "a")
        ref = weakref.ref(door)
        del door
        gc.collect()
        assert ref() is None


# ---------------------------------------------------------------------------
# Listeners
# ---------------------------------------------------------------------------


class TestListeners:
    def test_tag_publishes_added(self, index: TagIndex, events: list[MembershipEvent]) -> None:
        door = Thing("Door")
        index.tag(door, "A")
        assert events == [MembershipEvent("a", door, MembershipChange.ADDED)]

    def test_retag_publishes_nothing(self, index: TagIndex, events: list[MembershipEvent]) -> None:
        door = Thing("Door")
        index.tag(door, "a")
        index.tag(door, "a")
        assert len(events) == 1

    def test_untag_publishes_removed(self, index: TagIndex, events: list[MembershipEvent]) -> None:
        door = Thing("Door")
        index.tag(door, "a")
        index.untag(door, "a")
        assert events[-1].change is MembershipChange.REMOVED

    def test_noop_untag_publishes_nothing(self, index: TagIndex, events: list[MembershipEvent]) -> None:
        index.untag(Thing("Door"), "a")
        assert events == []

    def test_failing_listener_does_not_break_index(self, index: TagIndex) -> None:
        def explode(event: MembershipEvent) -> None:
            raise RuntimeError("boom")

        received: list[MembershipEvent] = []
        index.add_listener(explode)
        index.add_listener(received.append)
        door = Thing("Door")
        index.tag(door, "a")
        assert index.objects_with_tag("a") == [door]
        assert len(received) == 1

    def test_removed_listener_stops_receiving(self, index: TagIndex) -> None:
        received: list[MembershipEvent] = []
        index.add_listener(received.append)
        index.remove_listener(received.append)
        index.tag(Thing("Door"), "a")
        assert received == []


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_concurrent_tagging_loses_nothing(self, index: TagIndex) -> None:
        things = [Thing(f"t{i}") for i in range(400)]
        barrier = threading.Barrier(8)

        def worker(offset: int) -> None:
            barrier.wait()
            for thing in things[offset::8]:
                index.tag(thing, "crowd")
                index.tag(thing, "crowd")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        members = index.objects_with_tag("crowd")
        assert len(members) == len(things)
        assert {id(m) for m in members} == {id(t) for t in things}

    def test_concurrent_tag_and_untag_leave_consistent_state(self, index: TagIndex) -> None:
        things = [Thing(f"t{i}") for i in range(200)]
        for thing in things:
            index.tag(thing, "crowd")

        def remover() -> None:
            for thing in things[::2]:
                index.untag(thing, "crowd")

        def reader() -> None:
            for _ in range(50):
                index.objects_with_tag("crowd")

        threads = [threading.Thread(target=remover), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert index.objects_with_tag("crowd") == things[1::2]
