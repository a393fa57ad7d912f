"""
Signal (TRX) models: decide whether two nodes can exchange signal and how well
"""

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from .errors import InvalidParameter
from .geometry import ITERATION_TIME_MS, delay_to

SPEED_OF_LIGHT_M_PER_S = 299_792_458.0

# Strength scaling keeps typical radii (tens to hundreds of meters) in the
# same numeric range as the tier thresholds below.
SIGNAL_STRENGTH_SCALING = 2_500.0

MAX_BLACK_SIGNAL_STRENGTH = 1.0
MAX_RED_SIGNAL_STRENGTH = 20.0
MAX_YELLOW_SIGNAL_STRENGTH = 50.0
GREEN_SIGNAL_STRENGTH = 100.0

GREEN_SIGNAL_ZONE_COEFFICIENT = 0.1
YELLOW_SIGNAL_ZONE_COEFFICIENT = 0.2


class Frequency(IntEnum):
    """Carrier frequencies in MHz"""
    CONTROL = 2_400
    GPS = 1_575


class TRXSystem(Enum):
    COLOR = "color"
    STRENGTH = "strength"


class SignalLevel(IntEnum):
    BLACK = 0   # (almost) no signal
    RED = 1     # critically low
    YELLOW = 2  # decent
    GREEN = 3   # good

    @classmethod
    def from_strength(cls, strength: float) -> "SignalLevel":
        if strength > MAX_YELLOW_SIGNAL_STRENGTH:
            return cls.GREEN
        if strength > MAX_RED_SIGNAL_STRENGTH:
            return cls.YELLOW
        if strength > MAX_BLACK_SIGNAL_STRENGTH:
            return cls.RED
        return cls.BLACK

    def lower(self) -> "SignalLevel":
        return SignalLevel(max(self.value - 1, SignalLevel.BLACK.value))


_NOMINAL_STRENGTH = {
    SignalLevel.BLACK: MAX_BLACK_SIGNAL_STRENGTH,
    SignalLevel.RED: MAX_RED_SIGNAL_STRENGTH,
    SignalLevel.YELLOW: MAX_YELLOW_SIGNAL_STRENGTH,
    SignalLevel.GREEN: GREEN_SIGNAL_STRENGTH,
}


@dataclass(frozen=True)
class SignalQuality:
    """Received signal: a continuous strength and the tier it falls in"""
    strength: float
    level: SignalLevel

    @classmethod
    def from_strength(cls, strength: float) -> "SignalQuality":
        return cls(strength, SignalLevel.from_strength(strength))

    @classmethod
    def from_level(cls, level: SignalLevel) -> "SignalQuality":
        return cls(_NOMINAL_STRENGTH[level], level)

    @property
    def is_black(self) -> bool:
        return self.level is SignalLevel.BLACK

    def __str__(self) -> str:
        return f"{self.level.name.capitalize()}({self.strength:.2f})"


BLACK_SIGNAL_QUALITY = SignalQuality(0.0, SignalLevel.BLACK)


def wave_length(frequency: int) -> float:
    """Wave length in meters for a frequency in MHz"""
    return SPEED_OF_LIGHT_M_PER_S / (frequency * 1e6)


def tx_strength_from_radius(radius: float, frequency: int) -> float:
    """TX strength that still reaches the black threshold exactly at `radius`"""
    if radius < 0:
        raise InvalidParameter("radius", f"must be non-negative, got {radius}")
    return (radius / wave_length(frequency)) ** 2 / SIGNAL_STRENGTH_SCALING


def area_radius(tx_strength: float, frequency: int) -> float:
    """Inverse of tx_strength_from_radius()"""
    if tx_strength <= MAX_BLACK_SIGNAL_STRENGTH:
        return 0.0
    return wave_length(frequency) * math.sqrt(tx_strength * SIGNAL_STRENGTH_SCALING)


def strength_at(tx_strength: float, frequency: int, dist: float) -> float:
    """Free-space attenuation of a TX strength over `dist` meters.

    Inside one wave length the distance is clamped, so a receiver sitting on
    the transmitter gets the full scaled strength.
    """
    if tx_strength <= MAX_BLACK_SIGNAL_STRENGTH:
        return 0.0
    wl = wave_length(frequency)
    return tx_strength * SIGNAL_STRENGTH_SCALING * (wl / max(dist, wl)) ** 2


@dataclass(frozen=True)
class SignalModel:
    """TRX system shared by every node of a world"""
    kind: TRXSystem = TRXSystem.STRENGTH
    delay_multiplier: float = 0.0
    frequency: Frequency = Frequency.CONTROL
    tick_ms: int = ITERATION_TIME_MS

    def __post_init__(self):
        if self.delay_multiplier < 0:
            raise InvalidParameter(
                "delay_multiplier", f"must be non-negative, got {self.delay_multiplier}"
            )
        if self.tick_ms <= 0:
            raise InvalidParameter("tick_ms", f"must be positive, got {self.tick_ms}")

    def quality_at(self, tx_radius: float, dist: float) -> SignalQuality:
        """Quality received `dist` meters away from a transmitter of `tx_radius`"""
        if dist < 0:
            raise InvalidParameter("distance", f"must be non-negative, got {dist}")
        tx_strength = tx_strength_from_radius(tx_radius, self.frequency)
        if self.kind is TRXSystem.STRENGTH:
            return SignalQuality.from_strength(strength_at(tx_strength, self.frequency, dist))
        return self._quality_by_zone(tx_strength, dist)

    def _quality_by_zone(self, tx_strength: float, dist: float) -> SignalQuality:
        tx_quality = SignalQuality.from_strength(tx_strength)
        radius = area_radius(tx_strength, self.frequency)
        if dist <= radius * GREEN_SIGNAL_ZONE_COEFFICIENT:
            return tx_quality
        if dist <= radius * YELLOW_SIGNAL_ZONE_COEFFICIENT:
            return SignalQuality.from_level(tx_quality.level.lower())
        if dist <= radius:
            return SignalQuality.from_level(tx_quality.level.lower().lower())
        return BLACK_SIGNAL_QUALITY

    def link_quality(self, radius_a: float, radius_b: float, dist: float) -> Optional[SignalQuality]:
        """Better of the two directional qualities, or None if neither reaches"""
        best = max(
            self.quality_at(radius_a, dist),
            self.quality_at(radius_b, dist),
            key=lambda q: (q.level, q.strength),
        )
        if best.is_black:
            return None
        return best

    def delay(self, dist: float) -> int:
        return delay_to(dist, self.delay_multiplier, self.tick_ms)
