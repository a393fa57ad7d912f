"""
Attacker / EW devices and the per-tick effect field
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from .errors import InvalidParameter
from .geometry import Position, in_area
from .states import MalwareVariant


class DeviceKind(Enum):
    GPS_SPOOF = "gps_spoof"
    GPS_JAM = "gps_jam"
    CONTROL_JAM = "control_jam"
    MALWARE_SOURCE = "malware_source"


@dataclass(frozen=True)
class Device:
    """Stationary attacker placed for the whole run"""
    kind: DeviceKind
    position: Position
    radius: float
    lure_point: Optional[Position] = None      # GPS_SPOOF only
    malware: Optional[MalwareVariant] = None   # MALWARE_SOURCE only

    def __post_init__(self):
        if self.radius < 0:
            raise InvalidParameter("radius", f"must be non-negative, got {self.radius}")
        if self.kind is DeviceKind.GPS_SPOOF and self.lure_point is None:
            raise InvalidParameter("lure_point", "a GPS spoofer needs a lure point")
        if self.kind is not DeviceKind.GPS_SPOOF and self.lure_point is not None:
            raise InvalidParameter("lure_point", f"not allowed for {self.kind.value} devices")
        if self.kind is DeviceKind.MALWARE_SOURCE and self.malware is None:
            raise InvalidParameter("malware", "a malware source needs a variant")
        if self.kind is not DeviceKind.MALWARE_SOURCE and self.malware is not None:
            raise InvalidParameter("malware", f"not allowed for {self.kind.value} devices")

    def covers(self, position: Position) -> bool:
        return in_area(position, self.position, self.radius)


@dataclass(frozen=True)
class DroneExposure:
    """Everything the devices do to one drone during one tick"""
    gps_jammed: bool = False
    spoof_lure: Optional[Position] = None
    control_jammed: bool = False
    malware: FrozenSet[MalwareVariant] = frozenset()


NO_EXPOSURE = DroneExposure()


class EffectField:
    """Which drones sit inside which device areas this tick"""

    def __init__(self, devices: Sequence[Device], members: List[FrozenSet[int]]):
        self.devices = tuple(devices)
        self._members = members
        self._exposures: Dict[int, DroneExposure] = {}
        self._collect()

    @classmethod
    def compute(cls, devices: Sequence[Device], drones: Iterable) -> "EffectField":
        """Membership of every active drone in every device area"""
        active = [d for d in drones if not d.is_disabled]
        members = [
            frozenset(d.id for d in active if device.covers(d.position))
            for device in devices
        ]
        return cls(devices, members)

    def _collect(self):
        gps_jammed, control_jammed = set(), set()
        lures: Dict[int, Position] = {}
        malware: Dict[int, set] = {}

        for device, ids in zip(self.devices, self._members):
            for drone_id in ids:
                if device.kind is DeviceKind.GPS_JAM:
                    gps_jammed.add(drone_id)
                elif device.kind is DeviceKind.GPS_SPOOF:
                    # first spoofer in device order wins
                    lures.setdefault(drone_id, device.lure_point)
                elif device.kind is DeviceKind.CONTROL_JAM:
                    control_jammed.add(drone_id)
                else:
                    malware.setdefault(drone_id, set()).add(device.malware)

        exposed = gps_jammed | control_jammed | set(lures) | set(malware)
        for drone_id in exposed:
            self._exposures[drone_id] = DroneExposure(
                gps_jammed=drone_id in gps_jammed,
                spoof_lure=lures.get(drone_id),
                control_jammed=drone_id in control_jammed,
                malware=frozenset(malware.get(drone_id, ())),
            )

    def members(self, index: int) -> FrozenSet[int]:
        """Drone ids inside the area of the device at `index`"""
        return self._members[index]

    def exposure(self, drone_id: int) -> DroneExposure:
        return self._exposures.get(drone_id, NO_EXPOSURE)
