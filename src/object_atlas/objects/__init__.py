"""Managed objects and the operations layered over the tag index.

Quick start
-----------
::

    from object_atlas.index import TagIndex
    from object_atlas.objects import InMemoryObjectSystem, ObjectOps

    system = InMemoryObjectSystem()
    index = TagIndex(name_of=system.name, is_alive=system.is_alive)
    ops = ObjectOps(index, system)

    part = ops.create("Part").obj
    ops.apply_settings(part, {"name": "Door", "anchored": True})
"""
from __future__ import annotations

from object_atlas.objects.ops import FRAMEWORK_TAG, ApplyResult, CreateResult, ObjectOps
from object_atlas.objects.system import (
    DEFAULT_CLASSES,
    InMemoryObjectSystem,
    ManagedObject,
    ObjectSystem,
    ObjectSystemError,
    PropertyError,
    UnknownClassError,
)

__all__ = [
    "ApplyResult",
    "CreateResult",
    "DEFAULT_CLASSES",
    "FRAMEWORK_TAG",
    "InMemoryObjectSystem",
    "ManagedObject",
    "ObjectOps",
    "ObjectSystem",
    "ObjectSystemError",
    "PropertyError",
    "UnknownClassError",
]
