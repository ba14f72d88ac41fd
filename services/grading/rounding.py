"""Rounding helpers shared by the grading modules."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (74.5 -> 75, not banker's 74)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
