"""object-atlas — tag-indexed object registry with retrieval and subscriptions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import object_atlas
>>> object_atlas.__version__
'0.1.0'

Quick start
-----------
::

    from object_atlas import (
        # Façade
        Atlas, AtlasConfig,
        # Index
        TagIndex, sanitize_name,
        # Retrieval
        Retriever, RetryPolicy, RetrievalResult,
        # Subscriptions
        Subscriber, SubscriptionHandle,
        # Objects
        ObjectOps, InMemoryObjectSystem, ManagedObject,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

from object_atlas.config import AtlasConfig
from object_atlas.convenience import Atlas
from object_atlas.errors import ErrorKind

# ------------------------------------------------------------------
# Index
# ------------------------------------------------------------------
from object_atlas.index.naming import InvalidArgumentError, sanitize_name
from object_atlas.index.tag_index import MembershipChange, MembershipEvent, TagIndex

# ------------------------------------------------------------------
# Retrieval
# ------------------------------------------------------------------
from object_atlas.retrieval.heartbeat import Heartbeat
from object_atlas.retrieval.policy import RetryPolicy
from object_atlas.retrieval.retriever import RetrievalOutcome, RetrievalResult, Retriever

# ------------------------------------------------------------------
# Subscriptions
# ------------------------------------------------------------------
from object_atlas.subscription.subscriber import (
    Subscriber,
    SubscriberClosedError,
    SubscriptionHandle,
)

# ------------------------------------------------------------------
# Objects
# ------------------------------------------------------------------
from object_atlas.objects.ops import FRAMEWORK_TAG, ApplyResult, CreateResult, ObjectOps
from object_atlas.objects.system import (
    InMemoryObjectSystem,
    ManagedObject,
    ObjectSystem,
    ObjectSystemError,
    PropertyError,
    UnknownClassError,
)

# ------------------------------------------------------------------
# Telemetry
# ------------------------------------------------------------------
from object_atlas.telemetry.operation_log import OperationLog, OperationRecord, TelemetrySink

__all__ = [
    # version
    "__version__",
    # façade
    "Atlas",
    "AtlasConfig",
    # errors
    "ErrorKind",
    "InvalidArgumentError",
    # index
    "MembershipChange",
    "MembershipEvent",
    "TagIndex",
    "sanitize_name",
    # retrieval
    "Heartbeat",
    "RetrievalOutcome",
    "RetrievalResult",
    "Retriever",
    "RetryPolicy",
    # subscriptions
    "Subscriber",
    "SubscriberClosedError",
    "SubscriptionHandle",
    # objects
    "ApplyResult",
    "CreateResult",
    "FRAMEWORK_TAG",
    "InMemoryObjectSystem",
    "ManagedObject",
    "ObjectOps",
    "ObjectSystem",
    "ObjectSystemError",
    "PropertyError",
    "UnknownClassError",
    # telemetry
    "OperationLog",
    "OperationRecord",
    "TelemetrySink",
]
