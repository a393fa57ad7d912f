"""
Geometry helpers: positions, effect areas, motion steps and signal delay
"""

import math
from typing import Tuple

from .errors import InvalidParameter

Position = Tuple[float, float, float]

ORIGIN: Position = (0.0, 0.0, 0.0)

ITERATION_TIME_MS = 50             # one tick of simulated time
DESTINATION_RADIUS = 5.0           # meters, arrival tolerance
SPEED_OF_LIGHT_M_PER_MS = 299_792.458


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two positions"""
    return math.dist(a, b)


def in_area(position: Position, center: Position, radius: float) -> bool:
    """True if position lies inside the circular area around center"""
    if radius < 0:
        raise InvalidParameter("radius", f"must be non-negative, got {radius}")
    return distance(position, center) <= radius


def add(a: Position, b: Position) -> Position:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: Position, b: Position) -> Position:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def scale(v: Position, k: float) -> Position:
    return (v[0] * k, v[1] * k, v[2] * k)


def norm(v: Position) -> float:
    return math.sqrt(v[0] ** 2 + v[1] ** 2 + v[2] ** 2)


def unit(v: Position) -> Position:
    """Unit vector along v, or the zero vector when v has no length"""
    n = norm(v)
    if n < 1e-9:
        return ORIGIN
    return scale(v, 1.0 / n)


def clip_step(displacement: Position, step: float) -> Position:
    """Shorten a displacement to at most `step` meters.

    Displacements shorter than a step are kept whole so a drone lands
    exactly on its goal instead of oscillating around it.
    """
    length = norm(displacement)
    if length <= step:
        return displacement
    return scale(displacement, step / length)


def delay_to(dist: float, multiplier: float, tick_ms: int = ITERATION_TIME_MS) -> int:
    """Transmission delay in ms over `dist` meters.

    The delay is the light travel time over dist * multiplier meters, floored
    to whole ticks, so a zero multiplier always means same-tick delivery.
    """
    if dist < 0:
        raise InvalidParameter("distance", f"must be non-negative, got {dist}")
    if multiplier < 0:
        raise InvalidParameter("delay_multiplier", f"must be non-negative, got {multiplier}")
    if multiplier == 0:
        return 0
    delay = int(dist * multiplier / SPEED_OF_LIGHT_M_PER_MS)
    return delay - delay % tick_ms
