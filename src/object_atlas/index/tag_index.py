"""TagIndex — thread-safe bidirectional index between tags and live objects.

The index never owns the objects it references. Each tracked object is
held through a :class:`weakref.ref`; when the object is garbage-collected
its entries are queued for removal and pruned on the next call into the
index. Objects that the owning object system reports as destroyed (via
the ``is_alive`` probe) are pruned the same way when a lookup touches
them.

Membership changes are published to registered listeners as
:class:`MembershipEvent` values. Only net changes are published: tagging
an object that already carries the tag is a silent no-op.
"""
from __future__ import annotations

import collections
import logging
import threading
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from object_atlas.index.naming import InvalidArgumentError, sanitize_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

NameResolver = Callable[[Any], str]
LivenessProbe = Callable[[Any], bool]
MembershipListener = Callable[["MembershipEvent"], None]


class MembershipChange(str, Enum):
    """Kind of change carried by a :class:`MembershipEvent`."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class MembershipEvent:
    """A single net change to the tag/object relation.

    Parameters
    ----------
    tag:
        The normalized tag whose membership changed.
    obj:
        The object that gained or lost the tag.
    change:
        Whether the association was added or removed.
    """

    tag: str
    obj: Any
    change: MembershipChange


def _default_name(obj: Any) -> str:
    return obj.name


def _always_alive(obj: Any) -> bool:
    return True


class TagIndex:
    """Many-to-many relation between normalized tags and managed objects.

    Thread-safe. Every read and write goes through a single re-entrant
    lock. Listeners are invoked synchronously while the lock is held and
    must therefore return quickly without calling back into blocking code.

    Parameters
    ----------
    name_of:
        Returns the display name of an object. Defaults to ``obj.name``.
    is_alive:
        Returns False for objects the owning system has destroyed. Such
        objects are never returned from a lookup and are pruned on touch.

    Example
    -------
    ::

        index = TagIndex()
        index.tag(door, "Interactable")
        assert index.find_by_name("interactable", "DOOR") is door
    """

    def __init__(
        self,
        name_of: Optional[NameResolver] = None,
        is_alive: Optional[LivenessProbe] = None,
    ) -> None:
        self._name_of: NameResolver = name_of or _default_name
        self._is_alive: LivenessProbe = is_alive or _always_alive
        # tag -> {object key -> weak reference}, in insertion order
        self._members: dict[str, dict[int, weakref.ref]] = {}
        self._tags_by_key: dict[int, set[str]] = {}
        self._refs: dict[int, weakref.ref] = {}
        # Filled from weakref callbacks, which may run on any thread.
        self._dead: collections.deque[tuple[int, weakref.ref]] = collections.deque()
        self._listeners: list[MembershipListener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def tag(self, obj: Any, tag: str) -> None:
        """Attach *tag* to *obj*.

        Tagging an object that already carries the tag does nothing and
        publishes no event.

        Parameters
        ----------
        obj:
            The object to tag. Must be weak-referenceable and alive.
        tag:
            The tag to attach. Normalized with :func:`sanitize_name`.

        Raises
        ------
        InvalidArgumentError
            If the tag is empty, the object is None, cannot be weakly
            referenced, or has already been destroyed.
        """
        normalized = sanitize_name(tag, "tag")
        self._check_object(obj)
        with self._lock:
            self._prune_dead()
            key = id(obj)
            ref = self._track(obj)
            members = self._members.setdefault(normalized, {})
            if key in members:
                return
            members[key] = ref
            self._tags_by_key.setdefault(key, set()).add(normalized)
            self._publish(MembershipEvent(normalized, obj, MembershipChange.ADDED))

    def untag(self, obj: Any, tag: str) -> None:
        """Detach *tag* from *obj*. Missing associations are ignored.

        Raises
        ------
        InvalidArgumentError
            If the tag is empty or the object is None.
        """
        normalized = sanitize_name(tag, "tag")
        if obj is None:
            raise InvalidArgumentError("object", "must not be None")
        with self._lock:
            self._prune_dead()
            key = id(obj)
            if not self._is_tracked(obj):
                return
            members = self._members.get(normalized)
            if members is None or key not in members:
                return
            del members[key]
            if not members:
                del self._members[normalized]
            remaining = self._tags_by_key[key]
            remaining.discard(normalized)
            if not remaining:
                del self._tags_by_key[key]
                del self._refs[key]
            self._publish(MembershipEvent(normalized, obj, MembershipChange.REMOVED))

    def remove_object(self, obj: Any) -> list[str]:
        """Drop every association held by *obj*.

        Returns
        -------
        list[str]
            Sorted list of the tags that were removed.
        """
        if obj is None:
            raise InvalidArgumentError("object", "must not be None")
        with self._lock:
            self._prune_dead()
            if not self._is_tracked(obj):
                return []
            removed = sorted(self._tags_by_key.get(id(obj), ()))
            for tag in removed:
                self.untag(obj, tag)
            return removed

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def objects_with_tag(self, tag: str) -> list[Any]:
        """Return the live objects carrying *tag* in insertion order.

        Returns an empty list when nothing carries the tag.
        """
        normalized = sanitize_name(tag, "tag")
        with self._lock:
            self._prune_dead()
            return self._live_members(normalized)

    def find_by_name(self, tag: str, name: str) -> Optional[Any]:
        """Return the first object under *tag* whose name matches *name*.

        The comparison is case-insensitive. When several objects share the
        name, the one tagged earliest wins.
        """
        wanted = sanitize_name(name, "name")
        for obj in self.objects_with_tag(tag):
            if str(self._name_of(obj)).casefold() == wanted:
                return obj
        return None

    def tags_of(self, obj: Any) -> frozenset[str]:
        """Return the tags currently attached to *obj*."""
        with self._lock:
            self._prune_dead()
            if obj is None or not self._is_tracked(obj) or not self._is_alive(obj):
                return frozenset()
            return frozenset(self._tags_by_key.get(id(obj), ()))

    def has_tag(self, obj: Any, tag: str) -> bool:
        """Return True if *obj* carries *tag*."""
        return sanitize_name(tag, "tag") in self.tags_of(obj)

    def tags(self) -> list[str]:
        """Return every tag with at least one live member, sorted."""
        with self._lock:
            self._prune_dead()
            return sorted(t for t in list(self._members) if self._live_members(t))

    def snapshot(self, tag: str, hook: Callable[[list[Any]], T]) -> T:
        """Read the members of *tag* and run *hook* on them atomically.

        No tag or untag call can interleave between the read and the hook,
        which lets a caller pair a snapshot with a listener registration
        without missing or duplicating a membership change.
        """
        normalized = sanitize_name(tag, "tag")
        with self._lock:
            self._prune_dead()
            return hook(self._live_members(normalized))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: MembershipListener) -> None:
        """Register a callable that receives every :class:`MembershipEvent`."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: MembershipListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_object(self, obj: Any) -> None:
        if obj is None:
            raise InvalidArgumentError("object", "must not be None")
        try:
            weakref.ref(obj)
        except TypeError:
            raise InvalidArgumentError(
                "object", f"{type(obj).__name__} instances cannot be weakly referenced"
            ) from None
        if not self._is_alive(obj):
            raise InvalidArgumentError("object", "has already been destroyed")

    def _track(self, obj: Any) -> weakref.ref:
        key = id(obj)
        ref = self._refs.get(key)
        if ref is not None and ref() is obj:
            return ref
        if ref is not None:
            # The id was recycled by a new object before the old entry was pruned.
            self._drop_key(key)
        dead = self._dead
        ref = weakref.ref(obj, lambda r, key=key: dead.append((key, r)))
        self._refs[key] = ref
        return ref

    def _is_tracked(self, obj: Any) -> bool:
        ref = self._refs.get(id(obj))
        return ref is not None and ref() is obj

    def _live_members(self, tag: str) -> list[Any]:
        members = self._members.get(tag)
        if not members:
            return []
        live: list[Any] = []
        stale: list[int] = []
        for key, ref in members.items():
            obj = ref()
            if obj is None or not self._is_alive(obj):
                stale.append(key)
            else:
                live.append(obj)
        for key in stale:
            self._drop_key(key)
        if stale:
            logger.debug("Pruned %d stale entries while reading tag %r", len(stale), tag)
        return live

    def _prune_dead(self) -> None:
        while self._dead:
            key, ref = self._dead.popleft()
            if self._refs.get(key) is ref:
                self._drop_key(key)

    def _drop_key(self, key: int) -> None:
        for tag in self._tags_by_key.pop(key, ()):
            members = self._members.get(tag)
            if members is None:
                continue
            members.pop(key, None)
            if not members:
                del self._members[tag]
        self._refs.pop(key, None)

    def _publish(self, event: MembershipEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Membership listener %r failed for %s on tag %r",
                    listener,
                    event.change.value,
                    event.tag,
                )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        """Return the number of live objects carrying at least one tag."""
        with self._lock:
            self._prune_dead()
            live = [ref() for ref in self._refs.values()]
            return sum(1 for obj in live if obj is not None and self._is_alive(obj))

    def __contains__(self, obj: object) -> bool:
        """Support ``obj in index`` for objects carrying any tag."""
        return bool(self.tags_of(obj))
