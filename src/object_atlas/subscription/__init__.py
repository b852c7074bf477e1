"""Tag subscriptions with snapshot replay."""
from __future__ import annotations

from object_atlas.subscription.subscriber import (
    DEFAULT_DISPATCH_WORKERS,
    Subscriber,
    SubscriberClosedError,
    SubscriptionCallback,
    SubscriptionHandle,
)

__all__ = [
    "DEFAULT_DISPATCH_WORKERS",
    "Subscriber",
    "SubscriberClosedError",
    "SubscriptionCallback",
    "SubscriptionHandle",
]
