"""
Session readiness modifiers.

Readiness is a 1-5 star rating given at the start of a session (0 = not
rated). It never changes a ProgressionDecision; it only scales what is
suggested for today.
"""

import math

from .engine import load_step


def load_modifier(stars: int) -> float:
    """1 star: -10%, 2 stars: -5%, 3-5 stars (or unrated): no change."""
    if stars <= 0:
        return 0.0
    if stars == 1:
        return -0.10
    if stars == 2:
        return -0.05
    return 0.0


def allow_test_set(stars: int) -> bool:
    """Only a 5-star day earns the 4th diagnostic set."""
    return stars >= 5


def readiness_adjusted_load(load: float, stars: int) -> float:
    """Scale a load by readiness and round down onto the equipment grid."""
    if load <= 0:
        return 0.0
    modifier = load_modifier(stars)
    if modifier == 0:
        return load
    adjusted = load * (1 + modifier)
    step = load_step(adjusted)
    return math.floor(adjusted / step + 1e-9) * step
