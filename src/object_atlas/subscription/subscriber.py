"""Subscriber — deliver tag arrivals to registered callbacks.

Binding a callback to a tag replays the tag's current members and then
follows every object that newly gains the tag. Removals are never
delivered.

Delivery runs on a thread pool, so :meth:`Subscriber.bind` and
:meth:`TagIndex.tag` never wait for callbacks. Each invocation is
isolated: an exception raised by a callback is logged and dropped.

For a single subscription the replayed snapshot completes before any
arrival-driven invocation starts. Arrivals that happen while the
snapshot is still running are parked on the subscription and released
when the last snapshot invocation finishes, so a slow subscriber only
delays itself.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from functools import partial
from typing import Any, Callable, Optional

from object_atlas.index.naming import InvalidArgumentError, sanitize_name
from object_atlas.index.tag_index import MembershipChange, MembershipEvent, TagIndex

logger = logging.getLogger(__name__)

SubscriptionCallback = Callable[[Any], None]

DEFAULT_DISPATCH_WORKERS = 4


class SubscriberClosedError(RuntimeError):
    """Raised when binding on a subscriber that has been closed."""

    def __init__(self) -> None:
        super().__init__("Subscriber is closed; create a new one to bind callbacks.")


class _Subscription:
    def __init__(self, tag: str, callback: SubscriptionCallback) -> None:
        self.subscription_id = uuid.uuid4().hex
        self.tag = tag
        self.callback = callback
        self.active = True
        self.pending_snapshot = 0
        self.parked: list[Any] = []
        self.lock = threading.Lock()


class SubscriptionHandle:
    """Caller-side handle returned by :meth:`Subscriber.bind`.

    Cancelling stops future deliveries. Deliveries that were already
    dispatched still run.
    """

    def __init__(self, subscriber: "Subscriber", subscription: _Subscription) -> None:
        self._subscriber = subscriber
        self._subscription = subscription

    @property
    def subscription_id(self) -> str:
        return self._subscription.subscription_id

    @property
    def tag(self) -> str:
        return self._subscription.tag

    @property
    def active(self) -> bool:
        return self._subscription.active

    def cancel(self) -> None:
        """Stop future deliveries. Calling it twice is harmless."""
        self._subscriber.cancel(self)

    def __repr__(self) -> str:
        return (
            f"SubscriptionHandle(tag={self.tag!r}, id={self.subscription_id[:8]!r}, "
            f"active={self.active})"
        )


class Subscriber:
    """Fan tag arrivals out to callbacks on a worker pool.

    Thread-safe. The subscriber registers itself as a listener on the
    index at construction and detaches on :meth:`close`.

    Parameters
    ----------
    index:
        The index whose membership changes drive delivery.
    max_workers:
        Size of the dispatch pool when no executor is supplied.
    executor:
        Optional externally owned executor. It is not shut down by
        :meth:`close`.

    Example
    -------
    ::

        subscriber = Subscriber(index)
        handle = subscriber.bind("enemy", lambda obj: print("spawned", obj.name))
        ...
        handle.cancel()
    """

    def __init__(
        self,
        index: TagIndex,
        max_workers: int = DEFAULT_DISPATCH_WORKERS,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._index = index
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="object-atlas-dispatch"
        )
        self._subscriptions: dict[str, dict[str, SubscriptionHandle]] = {}
        self._outstanding: set[Future] = set()
        self._closed = False
        self._lock = threading.Lock()
        index.add_listener(self._on_membership)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def bind(self, tag: str, callback: SubscriptionCallback) -> SubscriptionHandle:
        """Deliver every current and future member of *tag* to *callback*.

        Parameters
        ----------
        tag:
            The tag to follow.
        callback:
            Called once per object, on a worker thread.

        Returns
        -------
        SubscriptionHandle
            Handle used to cancel the subscription.

        Raises
        ------
        InvalidArgumentError
            If the tag is empty or *callback* is not callable.
        SubscriberClosedError
            If :meth:`close` has already been called.
        """
        normalized = sanitize_name(tag, "tag")
        if not callable(callback):
            raise InvalidArgumentError("callback", "must be callable")
        if self._closed:
            raise SubscriberClosedError()

        subscription = _Subscription(normalized, callback)
        handle = SubscriptionHandle(self, subscription)

        def register(members: list[Any]) -> list[Any]:
            subscription.pending_snapshot = len(members)
            with self._lock:
                self._subscriptions.setdefault(normalized, {})[
                    subscription.subscription_id
                ] = handle
            return members

        members = self._index.snapshot(normalized, register)
        for obj in members:
            self._submit(subscription, obj, from_snapshot=True)

        logger.debug(
            "Bound subscription %s to tag %r with %d existing member(s)",
            subscription.subscription_id,
            normalized,
            len(members),
        )
        return handle

    def cancel(self, handle: SubscriptionHandle) -> None:
        """Stop future deliveries to *handle*."""
        subscription = handle._subscription
        with self._lock:
            bucket = self._subscriptions.get(subscription.tag)
            if bucket is not None:
                bucket.pop(subscription.subscription_id, None)
                if not bucket:
                    del self._subscriptions[subscription.tag]
        with subscription.lock:
            was_active = subscription.active
            subscription.active = False
        if was_active:
            logger.debug(
                "Cancelled subscription %s on tag %r",
                subscription.subscription_id,
                subscription.tag,
            )

    def active_subscriptions(self, tag: Optional[str] = None) -> list[SubscriptionHandle]:
        """Return the handles that are still receiving deliveries."""
        with self._lock:
            if tag is None:
                return [h for bucket in self._subscriptions.values() for h in bucket.values()]
            return list(self._subscriptions.get(sanitize_name(tag, "tag"), {}).values())

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait until every dispatched delivery has finished.

        Returns
        -------
        bool
            True when nothing is outstanding, False if *timeout* expired.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = list(self._outstanding)
            if not pending:
                return True
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
            wait(pending, timeout=remaining)

    def close(self, wait_for_deliveries: bool = True) -> None:
        """Detach from the index, cancel everything, and stop the pool."""
        self._index.remove_listener(self._on_membership)
        with self._lock:
            self._closed = True
            handles = [h for bucket in self._subscriptions.values() for h in bucket.values()]
        for handle in handles:
            self.cancel(handle)
        if self._owns_executor:
            self._executor.shutdown(wait=wait_for_deliveries)

    def __enter__(self) -> "Subscriber":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _on_membership(self, event: MembershipEvent) -> None:
        if event.change is not MembershipChange.ADDED:
            return
        with self._lock:
            handles = list(self._subscriptions.get(event.tag, {}).values())
        for handle in handles:
            subscription = handle._subscription
            with subscription.lock:
                if not subscription.active:
                    continue
                if subscription.pending_snapshot > 0:
                    subscription.parked.append(event.obj)
                    continue
            self._submit(subscription, event.obj, from_snapshot=False)

    def _submit(self, subscription: _Subscription, obj: Any, from_snapshot: bool) -> None:
        try:
            future = self._executor.submit(self._invoke, subscription, obj)
        except RuntimeError:
            logger.warning(
                "Dispatcher is shut down; dropping delivery for tag %r", subscription.tag
            )
            if from_snapshot:
                self._snapshot_finished(subscription)
            return
        with self._lock:
            self._outstanding.add(future)
        future.add_done_callback(partial(self._delivered, subscription, from_snapshot))

    def _delivered(self, subscription: _Subscription, from_snapshot: bool, future: Future) -> None:
        # Release parked arrivals before this future stops counting as outstanding.
        if from_snapshot:
            self._snapshot_finished(subscription)
        with self._lock:
            self._outstanding.discard(future)

    def _snapshot_finished(self, subscription: _Subscription) -> None:
        with subscription.lock:
            subscription.pending_snapshot -= 1
            if subscription.pending_snapshot > 0:
                return
            released, subscription.parked = subscription.parked, []
        for obj in released:
            self._submit(subscription, obj, from_snapshot=False)

    @staticmethod
    def _invoke(subscription: _Subscription, obj: Any) -> None:
        try:
            subscription.callback(obj)
        except Exception:
            logger.exception(
                "Callback for subscription %s on tag %r failed",
                subscription.subscription_id,
                subscription.tag,
            )
