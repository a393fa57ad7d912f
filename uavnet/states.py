"""
Per-axis drone state types

Each drone carries exactly one value on every axis (GPS, connectivity,
infection, mission). The axes are combined by the transition rules in
drone.py rather than by ad hoc flags.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import InvalidState
from .geometry import Position


class GPSStatus(Enum):
    VALID = "valid"
    LOST = "lost"
    SPOOFED = "spoofed"


@dataclass(frozen=True)
class GPSState:
    """GPS axis; a spoofed receiver carries the falsified position it reports"""
    status: GPSStatus = GPSStatus.VALID
    fake_position: Optional[Position] = None

    def __post_init__(self):
        if self.status is GPSStatus.SPOOFED and self.fake_position is None:
            raise InvalidState("gps.fake_position", "spoofed GPS needs a fake position")
        if self.status is not GPSStatus.SPOOFED and self.fake_position is not None:
            raise InvalidState("gps.fake_position", f"not allowed for {self.status.value} GPS")

    @classmethod
    def spoofed(cls, fake_position: Position) -> "GPSState":
        return cls(GPSStatus.SPOOFED, fake_position)

    def __str__(self) -> str:
        return self.status.value


GPS_VALID = GPSState(GPSStatus.VALID)
GPS_LOST = GPSState(GPSStatus.LOST)


class Connectivity(Enum):
    CONNECTED = "connected"
    LOST = "lost"


class MalwareVariant(Enum):
    DOS = "dos"              # disables transmit capability of the host
    INDICATOR = "indicator"  # marks and spreads, no payload


@dataclass(frozen=True)
class InfectionState:
    """Infection axis; `infected_ms` is the simulated time the malware landed"""
    variant: Optional[MalwareVariant] = None
    infected_ms: int = field(default=0, compare=False)

    @property
    def is_infected(self) -> bool:
        return self.variant is not None

    def payload_due_ms(self, infection_delay_ms: int) -> Optional[int]:
        if self.variant is None:
            return None
        return self.infected_ms + infection_delay_ms

    def payload_active(self, now_ms: int, infection_delay_ms: int = 0) -> bool:
        due = self.payload_due_ms(infection_delay_ms)
        return due is not None and now_ms >= due

    def is_dos_active(self, now_ms: int, infection_delay_ms: int = 0) -> bool:
        return self.variant is MalwareVariant.DOS and self.payload_active(now_ms, infection_delay_ms)

    def __str__(self) -> str:
        return f"infected({self.variant.value})" if self.variant else "healthy"


HEALTHY = InfectionState()


class MissionState(Enum):
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    DISABLED = "disabled"

    @property
    def is_terminal(self) -> bool:
        return self is not MissionState.EN_ROUTE


class SignalLossResponse(Enum):
    ASCEND = "ascend"
    IGNORE = "ignore"
    HOVER = "hover"
    RETURN_TO_HOME = "rth"
    SHUTDOWN = "shutdown"
