"""Name sanitation for tags, lookup names, and operation names.

Every key that enters the registry goes through :func:`sanitize_name`
so that ``"Door"``, ``" door "`` and ``"DOOR"`` address the same entry.
"""
from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Raised when a caller passes a missing or malformed argument.

    Parameters
    ----------
    argument:
        Name of the offending parameter.
    reason:
        Human-readable explanation of what is wrong with it.
    """

    def __init__(self, argument: str, reason: str) -> None:
        self.argument = argument
        self.reason = reason
        super().__init__(f"Invalid {argument}: {reason}")


def sanitize_name(value: object, argument: str = "name") -> str:
    """Return the case-folded form of *value*.

    Parameters
    ----------
    value:
        The raw name. Must be a non-empty string.
    argument:
        Parameter name reported in the error message.

    Returns
    -------
    str
        ``value`` stripped of surrounding whitespace and case-folded.

    Raises
    ------
    InvalidArgumentError
        If *value* is not a string or is empty after stripping.
    """
    if not isinstance(value, str):
        raise InvalidArgumentError(argument, f"expected a string, got {type(value).__name__}")
    normalized = value.strip().casefold()
    if not normalized:
        raise InvalidArgumentError(argument, "must not be empty")
    return normalized
