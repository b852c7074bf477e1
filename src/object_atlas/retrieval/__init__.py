"""Blocking lookups with bounded retries.

Quick start
-----------
::

    from object_atlas.retrieval import Retriever, RetryPolicy

    retriever = Retriever(index)
    result = retriever.retrieve("framework", "door", RetryPolicy(timeout=0.5))
    if result.found:
        open_door(result.obj)
"""
from __future__ import annotations

from object_atlas.retrieval.heartbeat import DEFAULT_TICK_INTERVAL, Heartbeat
from object_atlas.retrieval.policy import DEFAULT_MAX_ATTEMPTS, RetryPolicy
from object_atlas.retrieval.retriever import (
    RetrievalOutcome,
    RetrievalResult,
    Retriever,
)

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_TICK_INTERVAL",
    "Heartbeat",
    "RetrievalOutcome",
    "RetrievalResult",
    "Retriever",
    "RetryPolicy",
]
