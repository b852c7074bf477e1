"""RetryPolicy — bounds on a blocking lookup.

A policy is fixed for the lifetime of a single retrieval call; the model
is frozen so a caller cannot change it while a retrieval is in progress.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_MAX_ATTEMPTS = 9


class RetryPolicy(BaseModel):
    """Attempt and time limits for :meth:`Retriever.retrieve`.

    Parameters
    ----------
    max_attempts:
        Upper bound on lookups. The first lookup always happens.
    timeout:
        Seconds after which the retrieval gives up even if attempts
        remain. None means only ``max_attempts`` bounds the call.
    poll_interval:
        Seconds to wait between attempts. None follows the shared
        heartbeat's tick.
    """

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    timeout: Optional[float] = Field(default=None, ge=0.0)
    poll_interval: Optional[float] = Field(default=None, gt=0.0)

    model_config = {"frozen": True}

    def describe(self) -> str:
        """Return a short human-readable summary of the limits."""
        timeout = "none" if self.timeout is None else f"{self.timeout:g}s"
        return f"max_attempts={self.max_attempts}, timeout={timeout}"
