"""Error taxonomy shared by the registry components.

Only :class:`~object_atlas.index.naming.InvalidArgumentError` is raised.
The other kinds describe expected outcomes and are carried on result
objects (``RetrievalResult``, ``CreateResult``, ``ApplyResult``) so that
callers branch on them instead of catching exceptions.
"""
from __future__ import annotations

from enum import Enum

from object_atlas.index.naming import InvalidArgumentError


class ErrorKind(str, Enum):
    """Classification of a failed or empty registry operation.

    INVALID_ARGUMENT: Caller bug; raised immediately, never retried.
    INVALID_CLASS: Construction with an unknown class name.
    NOT_FOUND_TIMEOUT: Retrieval stopped because the timeout elapsed.
    NOT_FOUND_EXHAUSTED: Retrieval used every attempt without a match.
    PROPERTY_APPLY_FAILURE: One key of a settings batch could not be set.
    CANCELLED: Retrieval ended by its cancel token.
    """

    INVALID_ARGUMENT = "invalid_argument"
    INVALID_CLASS = "invalid_class"
    NOT_FOUND_TIMEOUT = "not_found_timeout"
    NOT_FOUND_EXHAUSTED = "not_found_exhausted"
    PROPERTY_APPLY_FAILURE = "property_apply_failure"
    CANCELLED = "cancelled"


__all__ = ["ErrorKind", "InvalidArgumentError"]
