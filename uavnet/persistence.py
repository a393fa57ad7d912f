"""
JSON export / import of whole worlds

One document holds everything needed to continue a run: model parameters,
command center, devices, every drone with all of its state axes, the
scenario and the orders still in flight. Links are written for readers of
the document and ignored on import, since they are derived each tick.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .commands import Command, CommandKind, CommandMessage, Scenario, ScenarioEntry
from .delay_queue import DelayQueue, QueueEntry
from .drone import DEVICE_MAX_POWER, DroneAgent
from .effects import Device, DeviceKind
from .errors import InvalidParameter, InvalidState, SimulationError
from .states import (
    Connectivity,
    GPSState,
    GPSStatus,
    InfectionState,
    MalwareVariant,
    MissionState,
    SignalLossResponse,
)
from .topology import Topology
from .trx import SignalModel, TRXSystem
from .world import CommandCenter, Snapshot, World

logger = logging.getLogger(__name__)

MAX_COORDINATE = 1e6  # meters; anything farther is treated as corrupt

Coordinate = Annotated[float, Field(ge=-MAX_COORDINATE, le=MAX_COORDINATE)]
Coord = Tuple[Coordinate, Coordinate, Coordinate]
NonNegative = Annotated[float, Field(ge=0)]


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


# ----------------------------- Schema -----------------------------

class CommandModel(_Model):
    kind: CommandKind
    point: Optional[Coord] = None


class GPSModel(_Model):
    status: GPSStatus
    fake_position: Optional[Coord] = None


class DroneModel(_Model):
    id: Annotated[int, Field(ge=1)]
    position: Coord
    target: Coord
    heading: Coord = (0.0, 0.0, 0.0)
    gps: GPSModel
    connectivity: Connectivity
    infection: Optional[MalwareVariant] = None
    infected_ms: Annotated[int, Field(ge=0)] = 0
    mission: MissionState
    policy: SignalLossResponse
    speed_mps: NonNegative
    tx_radius: NonNegative
    patches: List[MalwareVariant] = []
    power: Annotated[int, Field(ge=0)] = DEVICE_MAX_POWER


class DeviceModel(_Model):
    kind: DeviceKind
    position: Coord
    radius: NonNegative
    lure_point: Optional[Coord] = None
    malware: Optional[MalwareVariant] = None


class CommandCenterModel(_Model):
    position: Coord
    tx_radius: NonNegative


class LinkModel(_Model):
    a: int
    b: int
    distance: float
    strength: float
    level: str


class ScenarioEntryModel(_Model):
    time_ms: Annotated[int, Field(ge=0)]
    drone_id: int
    command: CommandModel


class PendingModel(_Model):
    due_ms: Annotated[int, Field(ge=0)]
    sent_ms: Annotated[int, Field(ge=0)]
    drone_id: Annotated[int, Field(ge=1)]
    command: CommandModel


class WorldDocument(_Model):
    tick: Annotated[int, Field(ge=0)]
    time_ms: Annotated[int, Field(ge=0)]
    tick_ms: Annotated[int, Field(gt=0)]
    topology: Topology
    trx_system: TRXSystem
    delay_multiplier: NonNegative
    destination_radius: NonNegative
    infection_delay_ms: Annotated[int, Field(ge=0)] = 0
    spread_delay_ms: Annotated[int, Field(ge=0)] = 0
    dos_power_drain: Annotated[int, Field(ge=0)] = 0
    command_center: CommandCenterModel
    destination: Coord
    devices: List[DeviceModel] = []
    drones: List[DroneModel]
    links: List[LinkModel] = []
    scenario: List[ScenarioEntryModel] = []
    pending: List[PendingModel] = []


# ----------------------------- Export -----------------------------

def _command_model(command: Command) -> CommandModel:
    return CommandModel(kind=command.kind, point=command.point)


def _drone_model(drone: DroneAgent) -> DroneModel:
    return DroneModel(
        id=drone.id,
        position=drone.position,
        target=drone.target,
        heading=drone.heading,
        gps=GPSModel(status=drone.gps.status, fake_position=drone.gps.fake_position),
        connectivity=drone.connectivity,
        infection=drone.infection.variant,
        infected_ms=drone.infection.infected_ms if drone.is_infected else 0,
        mission=drone.mission,
        policy=drone.policy,
        speed_mps=drone.speed_mps,
        tx_radius=drone.tx_radius,
        patches=sorted(drone.patches, key=lambda v: v.value),
        power=drone.power,
    )


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    """JSON-ready document for one committed tick"""
    doc = WorldDocument(
        tick=snapshot.tick,
        time_ms=snapshot.time_ms,
        tick_ms=snapshot.tick_ms,
        topology=snapshot.topology,
        trx_system=snapshot.signal_model.kind,
        delay_multiplier=snapshot.signal_model.delay_multiplier,
        destination_radius=snapshot.destination_radius,
        infection_delay_ms=snapshot.infection_delay_ms,
        spread_delay_ms=snapshot.spread_delay_ms,
        dos_power_drain=snapshot.dos_power_drain,
        command_center=CommandCenterModel(
            position=snapshot.command_center.position,
            tx_radius=snapshot.command_center.tx_radius,
        ),
        destination=snapshot.destination,
        devices=[
            DeviceModel(kind=d.kind, position=d.position, radius=d.radius,
                        lure_point=d.lure_point, malware=d.malware)
            for d in snapshot.devices
        ],
        drones=[_drone_model(d) for d in snapshot.drones],
        links=[
            LinkModel(a=a, b=b, distance=info.distance, strength=info.quality.strength,
                      level=info.quality.level.name.lower())
            for a, b, info in snapshot.links
        ],
        scenario=[
            ScenarioEntryModel(time_ms=e.time_ms, drone_id=e.drone_id, command=_command_model(e.command))
            for e in snapshot.scenario
        ],
        pending=[
            PendingModel(due_ms=e.due_ms, sent_ms=e.sent_ms, drone_id=e.message.drone_id,
                         command=_command_model(e.message.command))
            for e in snapshot.pending
        ],
    )
    return doc.model_dump(mode="json")


def world_to_dict(world: World) -> Dict[str, Any]:
    return snapshot_to_dict(world.snapshot())


def _document_path(directory: Union[str, Path], tick: int) -> Path:
    return Path(directory) / f"tick_{tick:06d}.json"


def write_snapshot(snapshot: Snapshot, directory: Union[str, Path]) -> Path:
    path = _document_path(directory, snapshot.tick)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(snapshot_to_dict(snapshot), fh, indent=2)
    return path


def export_world(world: World, directory: Union[str, Path]) -> Path:
    """Write the world as `tick_NNNNNN.json` under directory"""
    path = write_snapshot(world.snapshot(), directory)
    logger.info("exported tick %d to %s", world.tick, path)
    return path


class JsonRecorder:
    """Recorder writing one world document per committed tick"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.paths: List[Path] = []

    def __call__(self, snapshot: Snapshot):
        self.paths.append(write_snapshot(snapshot, self.directory))


# ----------------------------- Import -----------------------------

def _rewrap(prefix: str, exc: SimulationError) -> InvalidState:
    return InvalidState(f"{prefix}.{exc.field}", exc.reason)


def _command(model: CommandModel, where: str) -> Command:
    try:
        return Command(model.kind, model.point)
    except InvalidParameter as exc:
        raise _rewrap(where, exc) from None


def _drone(model: DroneModel, where: str) -> DroneAgent:
    try:
        gps = GPSState(model.gps.status, model.gps.fake_position)
    except InvalidState as exc:
        raise _rewrap(where, exc) from None
    return DroneAgent(
        id=model.id,
        position=model.position,
        target=model.target,
        heading=model.heading,
        gps=gps,
        connectivity=model.connectivity,
        infection=InfectionState(model.infection, model.infected_ms),
        mission=model.mission,
        policy=model.policy,
        speed_mps=model.speed_mps,
        tx_radius=model.tx_radius,
        patches=frozenset(model.patches),
        power=model.power,
    )


def world_from_dict(data: Any) -> World:
    """Rebuild a World from a document, raising InvalidState on any defect"""
    try:
        doc = WorldDocument.model_validate(data)
    except ValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(part) for part in err["loc"]) or "document"
        raise InvalidState(field, err["msg"]) from None

    drones = []
    seen = set()
    for i, model in enumerate(doc.drones):
        if model.id in seen:
            raise InvalidState(f"drones.{i}.id", f"duplicate drone id {model.id}")
        seen.add(model.id)
        drones.append(_drone(model, f"drones.{i}"))

    devices = []
    for i, model in enumerate(doc.devices):
        try:
            devices.append(Device(model.kind, model.position, model.radius,
                                  model.lure_point, model.malware))
        except InvalidParameter as exc:
            raise _rewrap(f"devices.{i}", exc) from None

    entries = []
    for i, model in enumerate(doc.scenario):
        where = f"scenario.{i}"
        try:
            entry = ScenarioEntry(model.time_ms, model.drone_id, _command(model.command, f"{where}.command"))
        except InvalidParameter as exc:
            raise _rewrap(where, exc) from None
        if entry.drone_id > 0 and entry.drone_id not in seen:
            raise InvalidState(f"{where}.drone_id", f"unknown drone {entry.drone_id}")
        entries.append(entry)

    pending = []
    for i, model in enumerate(doc.pending):
        where = f"pending.{i}"
        if model.drone_id not in seen:
            raise InvalidState(f"{where}.drone_id", f"unknown drone {model.drone_id}")
        if model.due_ms < model.sent_ms:
            raise InvalidState(f"{where}.due_ms", "due before it was sent")
        message = CommandMessage(model.drone_id, _command(model.command, f"{where}.command"), model.sent_ms)
        pending.append(QueueEntry(model.due_ms, message))

    try:
        signal_model = SignalModel(
            kind=doc.trx_system, delay_multiplier=doc.delay_multiplier, tick_ms=doc.tick_ms
        )
        command_center = CommandCenter(doc.command_center.position, doc.command_center.tx_radius)
    except SimulationError as exc:
        raise InvalidState(exc.field, exc.reason) from None

    return World.from_drones(
        command_center,
        doc.destination,
        drones,
        devices=tuple(devices),
        topology=doc.topology,
        signal_model=signal_model,
        scenario=Scenario(entries),
        queue=DelayQueue(pending),
        destination_radius=doc.destination_radius,
        infection_delay_ms=doc.infection_delay_ms,
        spread_delay_ms=doc.spread_delay_ms,
        dos_power_drain=doc.dos_power_drain,
        tick=doc.tick,
        time_ms=doc.time_ms,
    )


def import_world(path: Union[str, Path]) -> World:
    """Load a world document from disk"""
    with open(path, "rb") as fh:
        raw = fh.read()
    try:
        data = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise InvalidState("document", f"not UTF-8 text (byte {exc.start})") from None
    except json.JSONDecodeError as exc:
        raise InvalidState("document", f"not valid JSON ({exc.msg} at line {exc.lineno})") from None
    world = world_from_dict(data)
    logger.info("imported %d drones at tick %d from %s", len(world.drones), world.tick, path)
    return world
