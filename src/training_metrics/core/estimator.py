"""
Strength estimation and rounding helpers.

The one-rep-max model is a fixed linear formula:

    e1rm = weight * (1 + reps / 30)
"""

import math

from .config import E1RM_REPS_DIVISOR


def round_half_away(value: float) -> int:
    """
    Round to the nearest integer, with .5 going away from zero.

    Python's built-in round() uses banker's rounding (2.5 -> 2); stored
    history was produced with half-away rounding (2.5 -> 3).
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def is_number(value: object) -> bool:
    """True for finite int/float values (bool excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def estimate_1rm(weight_kg: float | None, reps: int | None) -> float | None:
    """
    Estimated one-rep-max for a weight/reps pair.

    Args:
        weight_kg: Load in kilograms
        reps: Repetitions performed

    Returns:
        Estimated 1RM in kg, or None when weight or reps is missing or
        reps is not positive, or the result overflows
    """
    if not is_number(weight_kg) or not is_number(reps):
        return None
    if reps <= 0:
        return None
    value = weight_kg * (1 + reps / E1RM_REPS_DIVISOR)
    return value if math.isfinite(value) else None


def set_volume(weight_kg: float | None, reps: int | None) -> int:
    """Volume load of one set, rounded: weight * reps, or 0 if either is missing or it overflows."""
    if not is_number(weight_kg) or not is_number(reps):
        return 0
    volume = weight_kg * reps
    if not math.isfinite(volume):
        return 0
    return round_half_away(volume)
