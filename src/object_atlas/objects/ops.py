"""ObjectOps — the utility layer between callers, the index, and the object system.

Objects created or cloned through :class:`ObjectOps` are marked with the
reserved :data:`FRAMEWORK_TAG`. Operations that can legitimately come up
empty (construction with an unknown class, a settings key the object
refuses, a tag with no members) log a warning and report the outcome on
a result object. Bad input raises
:class:`~object_atlas.index.naming.InvalidArgumentError` immediately.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from object_atlas.errors import ErrorKind
from object_atlas.index.naming import InvalidArgumentError, sanitize_name
from object_atlas.index.tag_index import TagIndex
from object_atlas.objects.system import ObjectSystem, ObjectSystemError
from object_atlas.telemetry.operation_log import OperationRecord, TelemetrySink

logger = logging.getLogger(__name__)

FRAMEWORK_TAG = "Framework"


@dataclass
class CreateResult:
    """Outcome of :meth:`ObjectOps.create`.

    Parameters
    ----------
    obj:
        The new object, or None when construction failed.
    error:
        ``ErrorKind.INVALID_CLASS`` on failure, None on success.
    reason:
        Human-readable failure description, empty on success.
    """

    obj: Optional[Any] = None
    error: Optional[ErrorKind] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ApplyResult:
    """Outcome of :meth:`ObjectOps.apply_settings`.

    Parameters
    ----------
    applied:
        Keys that were set, in the order they were attempted.
    failed:
        Keys that were refused, mapped to the failure message.
    """

    applied: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        """True when every key was applied."""
        return not self.failed

    @property
    def error(self) -> Optional[ErrorKind]:
        return ErrorKind.PROPERTY_APPLY_FAILURE if self.failed else None


class ObjectOps:
    """Façade for tagging, creating, cloning, and configuring objects.

    Parameters
    ----------
    index:
        The shared tag index.
    system:
        The object system that owns the objects.
    telemetry:
        Optional sink receiving :meth:`log_operation` records.
    reserved_tag:
        Tag placed on every object created or cloned here.
    """

    def __init__(
        self,
        index: TagIndex,
        system: ObjectSystem,
        telemetry: Optional[TelemetrySink] = None,
        reserved_tag: str = FRAMEWORK_TAG,
    ) -> None:
        self._index = index
        self._system = system
        self._telemetry = telemetry
        self._reserved_tag = sanitize_name(reserved_tag, "reserved_tag")

    @property
    def reserved_tag(self) -> str:
        return self._reserved_tag

    # ------------------------------------------------------------------
    # Tagging
    # ------------------------------------------------------------------

    def tag_object(self, obj: Any, tag: str) -> None:
        """Attach *tag* to *obj*. Re-tagging is a no-op."""
        self._index.tag(obj, tag)

    def remove_tag(self, obj: Any, tag: str) -> None:
        """Detach *tag* from *obj*. Missing associations are ignored."""
        self._index.untag(obj, tag)

    def get_objects(self, tag: str) -> list[Any]:
        """Return every live object carrying *tag*, warning when there are none."""
        objects = self._index.objects_with_tag(tag)
        if not objects:
            logger.warning("No objects found with tag %r", sanitize_name(tag, "tag"))
        return objects

    get_object_with_tag = get_objects

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create(self, class_name: str) -> CreateResult:
        """Construct a *class_name* object and tag it with the reserved tag.

        Returns
        -------
        CreateResult
            The new object, or ``error=INVALID_CLASS`` when the object
            system rejects the class name.
        """
        try:
            obj = self._system.construct(class_name)
        except ObjectSystemError as exc:
            logger.warning("Invalid class name %r: %s", class_name, exc)
            return CreateResult(error=ErrorKind.INVALID_CLASS, reason=str(exc))
        self._index.tag(obj, self._reserved_tag)
        logger.debug("Created %r", obj)
        return CreateResult(obj=obj)

    def clone(self, obj: Any) -> Any:
        """Deep-clone *obj* and tag every descendant of the copy.

        Each node of the copy inherits the tags of the node it was copied
        from, and every descendant also gains the reserved tag. The source
        and its descendants are left untouched.

        Raises
        ------
        InvalidArgumentError
            If *obj* is None.
        """
        if obj is None:
            raise InvalidArgumentError("object", "no object provided for cloning")
        source_tags = [self._index.tags_of(obj)]
        source_tags.extend(self._index.tags_of(d) for d in self._system.descendants(obj))
        copy = self._system.clone(obj)
        descendants = self._system.descendants(copy)
        # descendants() of source and copy both walk depth-first, so nodes pair up.
        for node, tags in zip([copy, *descendants], source_tags):
            for tag in sorted(tags):
                self._index.tag(node, tag)
        for descendant in descendants:
            self._index.tag(descendant, self._reserved_tag)
        logger.debug("Cloned %r with %d descendant(s)", obj, len(descendants))
        return copy

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def apply_settings(self, obj: Any, settings: Mapping[str, Any]) -> ApplyResult:
        """Set each property in *settings* on *obj*.

        A key that fails is logged and skipped; the remaining keys are
        still applied.

        Raises
        ------
        InvalidArgumentError
            If *obj* is None or *settings* is not a mapping.
        """
        if obj is None:
            raise InvalidArgumentError("object", "must not be None")
        if not isinstance(settings, Mapping):
            raise InvalidArgumentError(
                "settings", f"expected a mapping, got {type(settings).__name__}"
            )

        result = ApplyResult()
        for key, value in settings.items():
            try:
                self._system.set_property(obj, key, value)
            except Exception as exc:
                logger.warning(
                    "Failed to apply setting %r on object %r: %s",
                    key,
                    self._display_name(obj),
                    exc,
                )
                result.failed[key] = str(exc)
            else:
                result.applied.append(key)
        return result

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    @staticmethod
    def generate_unique_id() -> str:
        """Return a random (version 4) UUID string."""
        return str(uuid.uuid4())

    def log_operation(self, operation: str, details: Optional[Mapping[str, Any]] = None) -> None:
        """Forward an operation record to the telemetry sink.

        The operation name is always validated. Nothing is forwarded when
        *details* is None or no sink is configured.

        Raises
        ------
        InvalidArgumentError
            If *operation* is empty.
        """
        normalized = sanitize_name(operation, "operation")
        if details is None or self._telemetry is None:
            return
        record = OperationRecord(operation=normalized, details=dict(details))
        try:
            self._telemetry.record(record)
        except Exception:
            logger.exception("Telemetry sink failed to record operation %r", normalized)

    def _display_name(self, obj: Any) -> str:
        try:
            return self._system.name(obj)
        except ObjectSystemError:
            return repr(obj)
