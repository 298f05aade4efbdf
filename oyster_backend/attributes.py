"""
Helpers for the five oyster flavor attributes.

Every attribute lives on a 1-10 scale. Values coming from callers are checked
here before anything is persisted, and nullable values are resolved through an
explicit ordered fallback rather than truthiness.
"""
from __future__ import annotations

from typing import Mapping

from .db.models import ATTRIBUTES
from .errors import InvalidAttributeRange

ATTRIBUTE_MIN = 1.0
ATTRIBUTE_MAX = 10.0


def validate_attribute(name: str, value: float | None) -> None:
    """Raise ``InvalidAttributeRange`` if *value* is set and outside [1, 10]."""
    if name not in ATTRIBUTES:
        raise KeyError(f"Unknown attribute: {name}")
    if value is None:
        return
    if not ATTRIBUTE_MIN <= float(value) <= ATTRIBUTE_MAX:
        raise InvalidAttributeRange(name, value, ATTRIBUTE_MIN, ATTRIBUTE_MAX)


def validate_attributes(values: Mapping[str, float | None]) -> None:
    for name, value in values.items():
        validate_attribute(name, value)


def resolve_attribute(*candidates: float | None) -> float | None:
    """Return the first candidate that is not ``None``.

    Candidates are listed most specific first, e.g. review value, then the
    oyster's aggregate, then its seed value.
    """
    for value in candidates:
        if value is not None:
            return value
    return None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
