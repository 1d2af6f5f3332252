"""Error taxonomy for histogram volume construction and opacity fitting.

Every error carries a ``kind`` tag and a ``context`` dict with the
offending values, so callers can react without parsing messages.

Example:
    >>> try:
    ...     builder.build()
    ... except InclusionTooAggressive as err:
    ...     print(err.kind, err.context["fraction"])
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound=Enum)


class HVolError(Exception):
    """Base class for all hvoltf errors."""

    kind: str = "error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = context

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.args[0]!r}, context={self.context!r})"


class InsufficientData(HVolError, ValueError):
    """A statistics-based policy was asked for an answer without samples."""

    kind = "insufficient-data"


class InclusionTooAggressive(HVolError, ValueError):
    """Inclusion bounds would discard more data than ``inc_limit`` allows."""

    kind = "inclusion-too-aggressive"


class ProbeFailure(HVolError, RuntimeError):
    """The probe could not answer a query at a voxel."""

    kind = "probe-failure"


class ShapeMismatch(HVolError, ValueError):
    """An array does not have the rank, shape or dtype its role requires."""

    kind = "shape-mismatch"


class InvalidPolicyParameter(HVolError, ValueError):
    """A policy or configuration parameter is out of its valid domain."""

    kind = "invalid-policy-parameter"


def enum_member(enum_cls: type[E], value: Any, what: str) -> E:
    """Coerce ``value`` to a member of ``enum_cls``.

    :param enum_cls: Enum to look ``value`` up in
    :param value: Member or member value
    :param what: Name of the parameter, used in the message
    :raises InvalidPolicyParameter: If ``value`` names no member
    """
    try:
        return enum_cls(value)
    except ValueError as err:
        available = ", ".join(str(m.value) for m in enum_cls)
        raise InvalidPolicyParameter(
            f"Unknown {what} '{value}'. Available: {available}", value=value, enum=enum_cls.__name__
        ) from err
