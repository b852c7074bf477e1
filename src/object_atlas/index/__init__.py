"""Tag index.

Provides :class:`TagIndex`, the thread-safe relation between normalized
tags and weakly referenced objects, and :func:`sanitize_name`, the key
normalization used throughout the package.

Quick start
-----------
::

    from object_atlas.index import TagIndex

    index = TagIndex()
    index.tag(door, "Interactable")
    index.objects_with_tag("interactable")  # [door]
"""
from __future__ import annotations

from object_atlas.index.naming import InvalidArgumentError, sanitize_name
from object_atlas.index.tag_index import (
    MembershipChange,
    MembershipEvent,
    TagIndex,
)

__all__ = [
    "InvalidArgumentError",
    "MembershipChange",
    "MembershipEvent",
    "TagIndex",
    "sanitize_name",
]
