"""
Configuration for the UAV network simulation
"""

import copy
import math
from enum import Enum
from typing import Any, Dict, Optional

from .errors import InvalidParameter
from .states import MalwareVariant, SignalLossResponse
from .topology import Topology
from .trx import TRXSystem


class Experiment(Enum):
    CUSTOM = "custom"
    MOVEMENT = "move"
    GPS_JAM = "gpsjam"
    CONTROL_JAM = "controljam"
    GPS_SPOOFING = "gpsspoof"
    MALWARE = "malware"
    SIGNAL_LOSS = "signalloss"


SIM_CONFIG = {
    "experiment": "move",
    "drone_count": 100,
    "sim_time_ms": 15_000,             # total simulated time
    "tick_ms": 50,                     # one iteration of the model
    "trx_system": "strength",          # color | strength
    "topology": "mesh",                # mesh | star
    "delay_multiplier": 0.0,           # 0 disables transmission delay
    "attacker_radius": 50.0,           # meters, EW/attacker effect area
    "malware": "indicator",            # dos | indicator
    "signal_loss_response": "ignore",  # ascend | ignore | hover | rth | shutdown
    "drone_speed_mps": 25.0,
    "cc_radius": 300.0,                # meters, command center control range
    "drone_radius": 50.0,              # meters, drone control range
    "destination_radius": 5.0,         # meters, arrival tolerance
    "command_center": (200.0, 100.0, 0.0),
    "destination": (0.0, 0.0, 0.0),
    "swarm_origin": (150.3, 90.6, 25.5),
    "swarm_spread": (40.0, 40.0, 20.0),  # +/- offsets around swarm_origin
    "drone_power": 100_000,            # power units, drained by living, moving and processing
    "infection_delay_ms": 0,           # infection to malware payload execution
    "spread_delay_ms": 0,              # infection to first spread, also the source warm-up
    "dos_power_drain": 0,              # power a DoS payload burns when it executes
    "vulnerability_probability": 1.0,  # share of drones without a malware patch
    "seed": 42,
    "json_input": None,                # world document for the custom experiment
    "json_output": None,               # directory for per-tick world documents
}

RENDER_CONFIG = {
    "plot": True,
    "caption": "UAV network",
    "width": 800,                      # pixels
    "height": 600,                     # pixels
    "camera_pitch": 0.15,              # radians above the horizon
    "camera_yaw": 0.5,                 # radians around the z axis
    "fps": 20,                         # one frame per tick
    "output": None,                    # GIF path, derived from the experiment when None
}

_CHOICES = {
    "experiment": Experiment,
    "trx_system": TRXSystem,
    "topology": Topology,
    "malware": MalwareVariant,
    "signal_loss_response": SignalLossResponse,
}

_NON_NEGATIVE = (
    "drone_count", "sim_time_ms", "delay_multiplier", "attacker_radius",
    "drone_speed_mps", "cc_radius", "drone_radius", "destination_radius",
    "drone_power", "infection_delay_ms", "spread_delay_ms", "dos_power_drain",
)

_POSITIONS = ("command_center", "destination", "swarm_origin", "swarm_spread")


def _to_choice(field: str, value: Any) -> Enum:
    enum_cls = _CHOICES[field]
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidParameter(field, f"unknown value {value!r} (expected one of: {allowed})") from None


def _to_position(field: str, value: Any):
    try:
        x, y, z = (float(c) for c in value)
    except (TypeError, ValueError):
        raise InvalidParameter(field, f"expected three coordinates, got {value!r}") from None
    if not all(math.isfinite(c) for c in (x, y, z)):
        raise InvalidParameter(field, "coordinates must be finite")
    return (x, y, z)


def build_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return a validated copy of SIM_CONFIG with `overrides` applied.

    Choice fields are converted to their enums. Any problem raises
    InvalidParameter naming the offending field, so a bad configuration is
    rejected before a single tick runs.
    """
    cfg = copy.deepcopy(SIM_CONFIG)
    if overrides:
        unknown = sorted(set(overrides) - set(SIM_CONFIG))
        if unknown:
            raise InvalidParameter(unknown[0], "unknown configuration key")
        cfg.update(overrides)

    for field in _CHOICES:
        cfg[field] = _to_choice(field, cfg[field])

    for field in _NON_NEGATIVE:
        value = cfg[field]
        if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
            raise InvalidParameter(field, f"expected a number, got {value!r}")
        if value < 0:
            raise InvalidParameter(field, f"must be non-negative, got {value}")

    for field in (
        "drone_count", "sim_time_ms", "tick_ms",
        "drone_power", "infection_delay_ms", "spread_delay_ms", "dos_power_drain",
    ):
        if not isinstance(cfg[field], int) or isinstance(cfg[field], bool):
            raise InvalidParameter(field, f"expected an integer, got {cfg[field]!r}")
    if cfg["tick_ms"] <= 0:
        raise InvalidParameter("tick_ms", f"must be positive, got {cfg['tick_ms']}")
    if cfg["drone_power"] == 0:
        raise InvalidParameter("drone_power", "drones need some power to fly")

    if not 0.0 <= cfg["vulnerability_probability"] <= 1.0:
        raise InvalidParameter(
            "vulnerability_probability", f"must be within [0, 1], got {cfg['vulnerability_probability']}"
        )

    for field in _POSITIONS:
        cfg[field] = _to_position(field, cfg[field])

    if cfg["experiment"] is Experiment.CUSTOM and not cfg["json_input"]:
        raise InvalidParameter("json_input", "the custom experiment needs a world document to import")
    if cfg["experiment"] is not Experiment.CUSTOM and cfg["json_input"]:
        raise InvalidParameter("json_input", "only the custom experiment imports a world document")

    return cfg
