"""Object system — the collaborator that owns managed objects.

The registry never creates, destroys, or copies objects itself. It asks
an :class:`ObjectSystem` to do so and only keeps weak references to the
results. :class:`InMemoryObjectSystem` is a small reference
implementation: a class registry, a parent/child tree, typed properties,
and explicit destruction.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterator, Mapping, Optional, Sequence


class ObjectSystemError(Exception):
    """Base class for failures reported by an :class:`ObjectSystem`."""


class UnknownClassError(ObjectSystemError):
    """Raised when constructing a class the object system does not know."""

    def __init__(self, class_name: str) -> None:
        self.class_name = class_name
        super().__init__(f"Unknown class name {class_name!r}")


class PropertyError(ObjectSystemError):
    """Raised when a property cannot be assigned on an object.

    Parameters
    ----------
    key:
        The property that was being set.
    reason:
        Why the assignment was refused.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot set property {key!r}: {reason}")


class ObjectSystem(ABC):
    """Abstract interface the registry needs from the owning object system."""

    @abstractmethod
    def construct(self, class_name: str) -> Any:
        """Create a new object of *class_name*.

        Raises
        ------
        UnknownClassError
            If the class name is not recognised.
        """

    @abstractmethod
    def clone(self, obj: Any) -> Any:
        """Return a deep copy of *obj* and its descendants.

        :meth:`descendants` of the copy must list nodes in the same order
        as :meth:`descendants` of *obj*.
        """

    @abstractmethod
    def descendants(self, obj: Any) -> Sequence[Any]:
        """Return every descendant of *obj* (not including *obj*)."""

    @abstractmethod
    def name(self, obj: Any) -> str:
        """Return the display name of *obj*."""

    @abstractmethod
    def set_property(self, obj: Any, key: str, value: Any) -> None:
        """Assign *value* to property *key* on *obj*.

        Raises
        ------
        PropertyError
            If the property does not exist or the value is rejected.
        """

    @abstractmethod
    def is_alive(self, obj: Any) -> bool:
        """Return False once *obj* has been destroyed."""


# ---------------------------------------------------------------------------
# Reference implementation
# ---------------------------------------------------------------------------

PropertyTypes = Mapping[str, Any]

_NUMBER = (int, float)

DEFAULT_CLASSES: dict[str, dict[str, Any]] = {
    "Folder": {},
    "Model": {},
    "Part": {
        "anchored": bool,
        "color": str,
        "size": _NUMBER,
        "transparency": _NUMBER,
    },
    "Script": {"enabled": bool, "source": str},
    "StringValue": {"value": str},
    "NumberValue": {"value": _NUMBER},
}


class ManagedObject:
    """A node in the :class:`InMemoryObjectSystem` tree.

    Every object has ``name`` and ``parent`` plus the typed properties
    declared for its class.

    Parameters
    ----------
    class_name:
        The class this object was constructed from.
    property_types:
        Declared property names mapped to accepted Python types.
    name:
        Display name. Defaults to the class name.
    """

    def __init__(
        self,
        class_name: str,
        property_types: Optional[PropertyTypes] = None,
        name: Optional[str] = None,
    ) -> None:
        self.class_name = class_name
        self.name = name or class_name
        self.destroyed = False
        self._property_types: dict[str, Any] = dict(property_types or {})
        self._properties: dict[str, Any] = {}
        self._parent: Optional[ManagedObject] = None
        self._children: list[ManagedObject] = []

    # ------------------------------------------------------------------
    # Tree
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Optional["ManagedObject"]:
        return self._parent

    @parent.setter
    def parent(self, new_parent: Optional["ManagedObject"]) -> None:
        if new_parent is self or (new_parent is not None and new_parent.is_descendant_of(self)):
            raise PropertyError("parent", "would create a cycle")
        if self._parent is not None:
            self._parent._children.remove(self)
        self._parent = new_parent
        if new_parent is not None:
            new_parent._children.append(self)

    @property
    def children(self) -> list["ManagedObject"]:
        return list(self._children)

    def iter_descendants(self) -> Iterator["ManagedObject"]:
        """Yield descendants depth-first, parents before their children."""
        for child in self._children:
            yield child
            yield from child.iter_descendants()

    def is_descendant_of(self, ancestor: "ManagedObject") -> bool:
        node = self._parent
        while node is not None:
            if node is ancestor:
                return True
            node = node._parent
        return False

    def find_first_child(self, name: str) -> Optional["ManagedObject"]:
        for child in self._children:
            if child.name == name:
                return child
        return None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def get_property(self, key: str) -> Any:
        if key == "name":
            return self.name
        if key == "parent":
            return self._parent
        if key not in self._property_types:
            raise PropertyError(key, f"{self.class_name} has no such property")
        return self._properties.get(key)

    def set_property(self, key: str, value: Any) -> None:
        if self.destroyed:
            raise PropertyError(key, "object has been destroyed")
        if key == "name":
            if not isinstance(value, str):
                raise PropertyError(key, f"expected str, got {type(value).__name__}")
            self.name = value
            return
        if key == "parent":
            if value is not None and not isinstance(value, ManagedObject):
                raise PropertyError(key, f"expected ManagedObject, got {type(value).__name__}")
            self.parent = value
            return
        expected = self._property_types.get(key)
        if expected is None:
            raise PropertyError(key, f"{self.class_name} has no such property")
        if isinstance(value, bool) and expected is _NUMBER:
            raise PropertyError(key, "expected a number, got bool")
        if not isinstance(value, expected):
            raise PropertyError(key, f"expected {_type_label(expected)}, got {type(value).__name__}")
        self._properties[key] = value

    @property
    def properties(self) -> dict[str, Any]:
        """Snapshot of the declared properties that have been set."""
        return dict(self._properties)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Destroy this object and its descendants and detach it from its parent."""
        for node in [self, *self.iter_descendants()]:
            node.destroyed = True
        if self._parent is not None:
            self._parent._children.remove(self)
            self._parent = None

    def __repr__(self) -> str:
        state = " destroyed" if self.destroyed else ""
        return f"<{self.class_name} {self.name!r}{state}>"


def _type_label(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


class InMemoryObjectSystem(ObjectSystem):
    """Object system backed by plain :class:`ManagedObject` trees.

    Parameters
    ----------
    classes:
        Class names mapped to their declared property types. Defaults to
        :data:`DEFAULT_CLASSES`.
    """

    def __init__(self, classes: Optional[Mapping[str, PropertyTypes]] = None) -> None:
        self._classes: dict[str, dict[str, Any]] = {
            name: dict(props) for name, props in (classes or DEFAULT_CLASSES).items()
        }

    @property
    def class_names(self) -> list[str]:
        return sorted(self._classes)

    def register_class(self, class_name: str, property_types: Optional[PropertyTypes] = None) -> None:
        """Declare a new constructible class."""
        self._classes[class_name] = dict(property_types or {})

    def construct(self, class_name: str) -> ManagedObject:
        if not isinstance(class_name, str) or class_name not in self._classes:
            raise UnknownClassError(str(class_name))
        return ManagedObject(class_name, self._classes[class_name])

    def clone(self, obj: Any) -> ManagedObject:
        source = self._require(obj)
        if source.destroyed:
            raise ObjectSystemError(f"Cannot clone destroyed object {source!r}")
        return self._copy_tree(source)

    def descendants(self, obj: Any) -> list[ManagedObject]:
        return list(self._require(obj).iter_descendants())

    def name(self, obj: Any) -> str:
        return self._require(obj).name

    def set_property(self, obj: Any, key: str, value: Any) -> None:
        self._require(obj).set_property(key, value)

    def is_alive(self, obj: Any) -> bool:
        return isinstance(obj, ManagedObject) and not obj.destroyed

    def _copy_tree(self, source: ManagedObject) -> ManagedObject:
        copy = ManagedObject(source.class_name, source._property_types, name=source.name)
        copy._properties = dict(source._properties)
        for child in source._children:
            self._copy_tree(child).parent = copy
        return copy

    @staticmethod
    def _require(obj: Any) -> ManagedObject:
        if not isinstance(obj, ManagedObject):
            raise ObjectSystemError(
                f"Expected a ManagedObject, got {type(obj).__name__}"
            )
        return obj
