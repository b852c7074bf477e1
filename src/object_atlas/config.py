"""AtlasConfig — tunable defaults for an :class:`~object_atlas.convenience.Atlas`.

Values can be set in code or read from ``OBJECT_ATLAS_*`` environment
variables via :meth:`AtlasConfig.from_env`.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from object_atlas.objects.ops import FRAMEWORK_TAG
from object_atlas.retrieval.heartbeat import DEFAULT_TICK_INTERVAL
from object_atlas.retrieval.policy import DEFAULT_MAX_ATTEMPTS, RetryPolicy
from object_atlas.subscription.subscriber import DEFAULT_DISPATCH_WORKERS
from object_atlas.telemetry.operation_log import DEFAULT_BUFFER_SIZE

ENV_PREFIX = "OBJECT_ATLAS_"


class AtlasConfig(BaseModel):
    """Registry configuration.

    Parameters
    ----------
    max_attempts:
        Default lookup attempts for :meth:`Atlas.get_object`.
    timeout:
        Default retrieval timeout in seconds, or None.
    tick_interval:
        Seconds between heartbeat ticks.
    dispatch_workers:
        Worker threads used to deliver subscription callbacks.
    reserved_tag:
        Tag placed on objects created or cloned through the registry.
    operation_log_path:
        JSONL file for operation telemetry. None keeps records in memory.
    operation_buffer_size:
        Records kept in memory when no log file is configured.
    """

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    timeout: Optional[float] = Field(default=None, ge=0.0)
    tick_interval: float = Field(default=DEFAULT_TICK_INTERVAL, gt=0.0)
    dispatch_workers: int = Field(default=DEFAULT_DISPATCH_WORKERS, ge=1)
    reserved_tag: str = Field(default=FRAMEWORK_TAG, min_length=1)
    operation_log_path: Optional[Path] = None
    operation_buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=1)

    def retry_policy(self) -> RetryPolicy:
        """Return the default :class:`RetryPolicy` described by this config."""
        return RetryPolicy(max_attempts=self.max_attempts, timeout=self.timeout)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AtlasConfig":
        """Build a config from ``OBJECT_ATLAS_*`` variables.

        Unset variables keep their defaults. An empty ``OBJECT_ATLAS_TIMEOUT``
        means no timeout.

        Raises
        ------
        pydantic.ValidationError
            If a variable holds a value the field rejects.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for field_name in cls.model_fields:
            raw = env.get(ENV_PREFIX + field_name.upper())
            if raw is None:
                continue
            if raw == "" and field_name in ("timeout", "operation_log_path"):
                values[field_name] = None
            else:
                values[field_name] = raw
        return cls.model_validate(values)
