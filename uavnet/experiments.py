"""
Experiment presets: ready-made worlds for the common attack situations
"""

import logging
import random
from typing import Any, Callable, Dict, List, Tuple

from .commands import BROADCAST_ID, Command, Scenario, ScenarioEntry
from .config import Experiment
from .drone import DroneAgent
from .effects import Device, DeviceKind
from .persistence import import_world
from .states import MalwareVariant, SignalLossResponse
from .trx import SignalModel, TRXSystem
from .world import CommandCenter, World

logger = logging.getLogger(__name__)

EW_DEVICE_POSITION = (0.0, 5.0, 2.0)           # just off the destination
SPOOF_LURE_POINT = (-200.0, -100.0, -200.0)
MALWARE_SOURCE_POSITION = (-10.0, 2.0, 0.0)

SIGNAL_LOSS_COMMAND_CENTER = (100.0, 50.0, 0.0)
SIGNAL_LOSS_DRONE_START = (70.0, 50.0, 30.0)
SIGNAL_LOSS_JAM_POSITION = (-10.0, 2.0, 0.0)
SIGNAL_LOSS_JAM_RADIUS = 25.0

_FILE_TAGS = {
    Experiment.CUSTOM: "custom",
    Experiment.MOVEMENT: "movement",
    Experiment.GPS_JAM: "gps_only",
    Experiment.CONTROL_JAM: "control_only",
    Experiment.GPS_SPOOFING: "gps_spoofing",
    Experiment.SIGNAL_LOSS: "signal_loss_response",
}

Preset = Tuple[List[DroneAgent], List[Device], Scenario]


def derive_filename(cfg: Dict[str, Any]) -> str:
    """GIF name such as `str_gps_only_mesh.gif`"""
    trx = "col" if cfg["trx_system"] is TRXSystem.COLOR else "str"
    if cfg["experiment"] is Experiment.MALWARE:
        tag = f"mal_{cfg['malware'].value}"
    else:
        tag = _FILE_TAGS[cfg["experiment"]]
    return f"{trx}_{tag}_{cfg['topology'].value}.gif"


# -------- Scenarios --------

def attack_scenario(destination) -> Scenario:
    """Every drone heads for the destination from the start"""
    return Scenario([ScenarioEntry(0, BROADCAST_ID, Command.reposition(destination))])


def reposition_scenario(destination) -> Scenario:
    """Climb, side-step and come back to the destination"""
    return Scenario([
        ScenarioEntry(0, BROADCAST_ID, Command.reposition(destination)),
        ScenarioEntry(250, BROADCAST_ID, Command.reposition((0.0, 0.0, 150.0))),
        ScenarioEntry(4000, BROADCAST_ID, Command.reposition((0.0, 150.0, 150.0))),
        ScenarioEntry(6000, BROADCAST_ID, Command.reposition(destination)),
    ])


# -------- Swarm --------

def make_swarm(cfg: Dict[str, Any], rng: random.Random) -> List[DroneAgent]:
    """Drones scattered around the swarm origin, all heading for the destination"""
    ox, oy, oz = cfg["swarm_origin"]
    sx, sy, sz = cfg["swarm_spread"]
    drones = []
    for i in range(cfg["drone_count"]):
        position = (
            ox + rng.uniform(-sx, sx),
            oy + rng.uniform(-sy, sy),
            oz + rng.uniform(-sz, sz),
        )
        vulnerable = rng.random() < cfg["vulnerability_probability"]
        drones.append(DroneAgent(
            id=i + 1,
            position=position,
            target=cfg["destination"],
            policy=cfg["signal_loss_response"],
            speed_mps=cfg["drone_speed_mps"],
            tx_radius=cfg["drone_radius"],
            power=cfg["drone_power"],
            patches=frozenset() if vulnerable else frozenset(MalwareVariant),
        ))
    return drones


# -------- Presets --------

def _movement(cfg: Dict[str, Any], rng: random.Random) -> Preset:
    return make_swarm(cfg, rng), [], reposition_scenario(cfg["destination"])


def _gps_jam(cfg: Dict[str, Any], rng: random.Random) -> Preset:
    jammer = Device(DeviceKind.GPS_JAM, EW_DEVICE_POSITION, cfg["attacker_radius"])
    return make_swarm(cfg, rng), [jammer], attack_scenario(cfg["destination"])


def _control_jam(cfg: Dict[str, Any], rng: random.Random) -> Preset:
    jammer = Device(DeviceKind.CONTROL_JAM, EW_DEVICE_POSITION, cfg["attacker_radius"])
    return make_swarm(cfg, rng), [jammer], attack_scenario(cfg["destination"])


def _gps_spoofing(cfg: Dict[str, Any], rng: random.Random) -> Preset:
    spoofer = Device(
        DeviceKind.GPS_SPOOF, EW_DEVICE_POSITION, cfg["attacker_radius"], lure_point=SPOOF_LURE_POINT
    )
    return make_swarm(cfg, rng), [spoofer], attack_scenario(cfg["destination"])


def _malware(cfg: Dict[str, Any], rng: random.Random) -> Preset:
    source = Device(
        DeviceKind.MALWARE_SOURCE, MALWARE_SOURCE_POSITION, cfg["attacker_radius"], malware=cfg["malware"]
    )
    return make_swarm(cfg, rng), [source], attack_scenario(cfg["destination"])


def _signal_loss(cfg: Dict[str, Any], rng: random.Random) -> Preset:
    # one drone per response, all starting together, flying into a control jammer
    drones = [
        DroneAgent(
            id=i + 1,
            position=SIGNAL_LOSS_DRONE_START,
            target=cfg["destination"],
            policy=policy,
            speed_mps=cfg["drone_speed_mps"],
            tx_radius=cfg["drone_radius"],
            power=cfg["drone_power"],
        )
        for i, policy in enumerate(SignalLossResponse)
    ]
    jammer = Device(DeviceKind.CONTROL_JAM, SIGNAL_LOSS_JAM_POSITION, SIGNAL_LOSS_JAM_RADIUS)
    return drones, [jammer], attack_scenario(cfg["destination"])


_PRESETS: Dict[Experiment, Callable[[Dict[str, Any], random.Random], Preset]] = {
    Experiment.MOVEMENT: _movement,
    Experiment.GPS_JAM: _gps_jam,
    Experiment.CONTROL_JAM: _control_jam,
    Experiment.GPS_SPOOFING: _gps_spoofing,
    Experiment.MALWARE: _malware,
    Experiment.SIGNAL_LOSS: _signal_loss,
}


def build_world(cfg: Dict[str, Any]) -> World:
    """World for the experiment named in a validated config"""
    experiment = cfg["experiment"]
    if experiment is Experiment.CUSTOM:
        return import_world(cfg["json_input"])

    rng = random.Random(cfg["seed"])
    drones, devices, scenario = _PRESETS[experiment](cfg, rng)

    position = cfg["command_center"]
    if experiment is Experiment.SIGNAL_LOSS:
        position = SIGNAL_LOSS_COMMAND_CENTER

    world = World.from_drones(
        CommandCenter(position, cfg["cc_radius"]),
        cfg["destination"],
        drones,
        devices=tuple(devices),
        topology=cfg["topology"],
        signal_model=SignalModel(
            kind=cfg["trx_system"],
            delay_multiplier=cfg["delay_multiplier"],
            tick_ms=cfg["tick_ms"],
        ),
        scenario=scenario,
        destination_radius=cfg["destination_radius"],
        infection_delay_ms=cfg["infection_delay_ms"],
        spread_delay_ms=cfg["spread_delay_ms"],
        dos_power_drain=cfg["dos_power_drain"],
    )
    logger.info("built %s world: %d drones, %d devices",
                experiment.value, len(world.drones), len(world.devices))
    return world
