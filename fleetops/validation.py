"""Checks for numeric values arriving from callers."""

import math
from numbers import Real


def require_quantity(name: str, value, optional: bool = False):
    """
    Return value if it is a finite, non-negative real number.

    Strings, booleans, NaN, infinities and negatives raise ValueError naming
    the field. With optional, None is passed through.
    """
    if value is None and optional:
        return None
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a non-negative number, got {value!r}")
    return value
