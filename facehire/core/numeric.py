import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (4.5 -> 5, -0.5 -> 0)."""
    return int(math.floor(value + 0.5))


def clamp(value, low, high):
    return max(low, min(high, value))
