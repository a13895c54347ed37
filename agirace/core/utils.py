"""Small numeric helpers used across the core."""
import math


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round1(value: float) -> float:
    """Round to one decimal place, halves up."""
    return math.floor(value * 10 + 0.5) / 10
