"""Convenience API for object-atlas — one object wiring every component.

Example
-------
::

    from object_atlas import Atlas

    atlas = Atlas()
    door = atlas.new("Part")
    atlas.apply_settings(door, {"name": "Door"})
    assert atlas.get_object("door") is door

"""
from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Optional

from object_atlas.config import AtlasConfig
from object_atlas.index.tag_index import TagIndex
from object_atlas.objects.ops import ApplyResult, ObjectOps
from object_atlas.objects.system import InMemoryObjectSystem, ObjectSystem
from object_atlas.retrieval.heartbeat import Heartbeat
from object_atlas.retrieval.policy import RetryPolicy
from object_atlas.retrieval.retriever import RetrievalResult, Retriever
from object_atlas.subscription.subscriber import (
    Subscriber,
    SubscriptionCallback,
    SubscriptionHandle,
)
from object_atlas.telemetry.operation_log import OperationLog, TelemetrySink

logger = logging.getLogger(__name__)


class Atlas:
    """Registry façade for the common case.

    Builds a :class:`TagIndex`, :class:`Heartbeat`, :class:`Retriever`,
    :class:`Subscriber` and :class:`ObjectOps` sharing one index. Use
    :meth:`default` for a lazily created process-wide instance, or
    construct independent instances where isolation matters (tests).

    Parameters
    ----------
    config:
        Defaults for retrieval, dispatch, and telemetry.
    system:
        Object system collaborator. Defaults to :class:`InMemoryObjectSystem`.
    telemetry:
        Telemetry sink. Defaults to an :class:`OperationLog` at
        ``config.operation_log_path``.
    """

    _default: Optional["Atlas"] = None
    _default_lock = threading.Lock()

    def __init__(
        self,
        config: Optional[AtlasConfig] = None,
        system: Optional[ObjectSystem] = None,
        telemetry: Optional[TelemetrySink] = None,
    ) -> None:
        self.config = config or AtlasConfig()
        self.system = system or InMemoryObjectSystem()
        self.telemetry = telemetry or OperationLog(
            self.config.operation_log_path, buffer_size=self.config.operation_buffer_size
        )
        self.index = TagIndex(name_of=self.system.name, is_alive=self.system.is_alive)
        self.heartbeat = Heartbeat(self.config.tick_interval)
        self.retriever = Retriever(self.index, self.heartbeat, self.config.retry_policy())
        self.subscriber = Subscriber(self.index, max_workers=self.config.dispatch_workers)
        self.ops = ObjectOps(
            self.index,
            self.system,
            telemetry=self.telemetry,
            reserved_tag=self.config.reserved_tag,
        )

    @classmethod
    def default(cls) -> "Atlas":
        """Return or create the shared instance, configured from the environment."""
        with cls._default_lock:
            if cls._default is None:
                cls._default = cls(AtlasConfig.from_env())
                logger.debug("Created default Atlas instance")
            return cls._default

    @classmethod
    def reset_default(cls) -> None:
        """Close and forget the shared instance."""
        with cls._default_lock:
            if cls._default is not None:
                cls._default.close()
            cls._default = None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_object(self, name: str, timeout: Optional[float] = None) -> Optional[Any]:
        """Wait for an object named *name* under the reserved tag.

        Uses the configured attempt limit; *timeout* overrides the
        configured timeout. Returns None if the object never appears.
        """
        policy = self.retriever.default_policy
        if timeout is not None:
            policy = RetryPolicy.model_validate({**policy.model_dump(), "timeout": timeout})
        return self.retrieve(self.ops.reserved_tag, name, policy).obj

    def retrieve(
        self,
        tag: str,
        name: str,
        policy: Optional[RetryPolicy] = None,
        cancel: Optional[threading.Event] = None,
    ) -> RetrievalResult:
        """Full-result form of :meth:`get_object` for any tag."""
        return self.retriever.retrieve(tag, name, policy, cancel)

    def get_objects(self, tag: str) -> list[Any]:
        return self.ops.get_objects(tag)

    def get_object_with_tag(self, tag: str) -> list[Any]:
        return self.ops.get_object_with_tag(tag)

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def new(self, class_name: str) -> Optional[Any]:
        """Create an object, or return None for an unknown class."""
        return self.ops.create(class_name).obj

    def deep_clone(self, obj: Any) -> Any:
        return self.ops.clone(obj)

    def apply_settings(self, obj: Any, settings: Mapping[str, Any]) -> ApplyResult:
        return self.ops.apply_settings(obj, settings)

    def tag_object(self, obj: Any, tag: str) -> None:
        self.ops.tag_object(obj, tag)

    def remove_tag(self, obj: Any, tag: str) -> None:
        self.ops.remove_tag(obj, tag)

    def bind_to_tag(self, tag: str, callback: SubscriptionCallback) -> SubscriptionHandle:
        return self.subscriber.bind(tag, callback)

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def generate_unique_id(self) -> str:
        return self.ops.generate_unique_id()

    def log_operation(self, operation: str, details: Optional[Mapping[str, Any]] = None) -> None:
        self.ops.log_operation(operation, details)

    def close(self) -> None:
        """Stop the heartbeat and the dispatch pool."""
        self.heartbeat.stop()
        self.subscriber.close()

    def __enter__(self) -> "Atlas":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Atlas(objects={len(self.index)}, reserved_tag={self.ops.reserved_tag!r})"
