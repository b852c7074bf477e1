"""Retriever — wait for a named object to appear under a tag.

Objects may be tagged by code that never talks to a subscriber, so the
retriever polls the index instead of waiting on an event. Each attempt
is a plain :meth:`TagIndex.find_by_name` call; between attempts the
retriever sleeps on the shared :class:`Heartbeat`, never while holding
the index lock.

Failing to find the object is an expected outcome. It is reported
through :class:`RetrievalResult` rather than raised.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from object_atlas.errors import ErrorKind
from object_atlas.index.naming import sanitize_name
from object_atlas.index.tag_index import TagIndex
from object_atlas.retrieval.heartbeat import Heartbeat
from object_atlas.retrieval.policy import RetryPolicy

logger = logging.getLogger(__name__)


class RetrievalOutcome(str, Enum):
    """Terminal state of a retrieval."""

    FOUND = "found"
    NOT_FOUND_TIMEOUT = ErrorKind.NOT_FOUND_TIMEOUT.value
    NOT_FOUND_EXHAUSTED = ErrorKind.NOT_FOUND_EXHAUSTED.value
    CANCELLED = ErrorKind.CANCELLED.value


@dataclass(frozen=True)
class RetrievalResult:
    """Result of a :meth:`Retriever.retrieve` call.

    Parameters
    ----------
    outcome:
        How the retrieval ended.
    obj:
        The matching object, or None unless ``outcome`` is FOUND.
    attempts:
        Number of lookups performed (always at least one).
    elapsed:
        Wall-clock seconds spent inside the call.
    """

    outcome: RetrievalOutcome
    obj: Optional[Any] = None
    attempts: int = 0
    elapsed: float = 0.0

    @property
    def found(self) -> bool:
        """True when an object was returned."""
        return self.outcome is RetrievalOutcome.FOUND

    @property
    def error(self) -> Optional[ErrorKind]:
        """The matching :class:`ErrorKind`, or None on success."""
        if self.found:
            return None
        return ErrorKind(self.outcome.value)


class Retriever:
    """Bounded polling lookup over a :class:`TagIndex`.

    Parameters
    ----------
    index:
        The index to poll.
    heartbeat:
        Tick source used between attempts. A private heartbeat with the
        default interval is created when omitted.
    default_policy:
        Policy used when :meth:`retrieve` is called without one.
    """

    def __init__(
        self,
        index: TagIndex,
        heartbeat: Optional[Heartbeat] = None,
        default_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._index = index
        self._heartbeat = heartbeat or Heartbeat()
        self._default_policy = default_policy or RetryPolicy()

    @property
    def default_policy(self) -> RetryPolicy:
        return self._default_policy

    def retrieve(
        self,
        tag: str,
        name: str,
        policy: Optional[RetryPolicy] = None,
        cancel: Optional[threading.Event] = None,
    ) -> RetrievalResult:
        """Poll for an object named *name* carrying *tag*.

        Parameters
        ----------
        tag:
            Tag the object must carry.
        name:
            Object name, matched case-insensitively.
        policy:
            Attempt and time limits. Defaults to ``default_policy``.
        cancel:
            Optional event; when set, the retrieval stops before its next
            attempt and reports CANCELLED.

        Returns
        -------
        RetrievalResult
            FOUND with the object, or one of the not-found outcomes.

        Raises
        ------
        InvalidArgumentError
            If *tag* or *name* is empty. Bad input is never retried.
        """
        sanitize_name(tag, "tag")
        sanitize_name(name, "name")
        policy = policy or self._default_policy
        started = time.monotonic()
        attempts = 0

        while True:
            attempts += 1
            obj = self._index.find_by_name(tag, name)
            elapsed = time.monotonic() - started
            if obj is not None:
                logger.debug("Found %r under tag %r after %d attempt(s)", name, tag, attempts)
                return RetrievalResult(RetrievalOutcome.FOUND, obj, attempts, elapsed)

            if policy.timeout is not None and elapsed >= policy.timeout:
                logger.warning(
                    "Timed out after %.3fs and %d attempt(s) waiting for %r under tag %r",
                    elapsed,
                    attempts,
                    name,
                    tag,
                )
                return RetrievalResult(RetrievalOutcome.NOT_FOUND_TIMEOUT, None, attempts, elapsed)

            if attempts >= policy.max_attempts:
                break

            if not self._heartbeat.wait(policy.poll_interval, cancel):
                elapsed = time.monotonic() - started
                logger.debug("Retrieval of %r under tag %r cancelled", name, tag)
                return RetrievalResult(RetrievalOutcome.CANCELLED, None, attempts, elapsed)

        elapsed = time.monotonic() - started
        logger.warning(
            "Object %r not found under tag %r after %d attempt(s)", name, tag, attempts
        )
        return RetrievalResult(RetrievalOutcome.NOT_FOUND_EXHAUSTED, None, attempts, elapsed)
