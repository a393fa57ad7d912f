"""
World aggregate: every entity of one simulation, owned by the driver
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .commands import Scenario, ScenarioEntry
from .delay_queue import DelayQueue, QueueEntry
from .drone import DroneAgent, StepContext
from .effects import Device
from .errors import InvalidState
from .geometry import DESTINATION_RADIUS, Position
from .topology import LinkInfo, NetworkTopology, Topology
from .trx import SignalModel


@dataclass(frozen=True)
class CommandCenter:
    position: Position
    tx_radius: float = 300.0

    def __post_init__(self):
        if self.tx_radius < 0:
            raise InvalidState("command_center.tx_radius", f"must be non-negative, got {self.tx_radius}")


@dataclass(frozen=True)
class Snapshot:
    """Committed state of one tick, safe to hand to any recorder"""
    tick: int
    time_ms: int
    topology: Topology
    signal_model: SignalModel
    destination_radius: float
    infection_delay_ms: int
    spread_delay_ms: int
    dos_power_drain: int
    command_center: CommandCenter
    destination: Position
    devices: Tuple[Device, ...]
    drones: Tuple[DroneAgent, ...]
    links: Tuple[Tuple[int, int, LinkInfo], ...]
    scenario: Tuple[ScenarioEntry, ...]
    pending: Tuple[QueueEntry, ...]

    @property
    def tick_ms(self) -> int:
        return self.signal_model.tick_ms


@dataclass
class World:
    command_center: CommandCenter
    destination: Position
    drones: Dict[int, DroneAgent]
    devices: Tuple[Device, ...] = ()
    topology: Topology = Topology.MESH
    signal_model: SignalModel = field(default_factory=SignalModel)
    scenario: Scenario = field(default_factory=Scenario)
    queue: DelayQueue = field(default_factory=DelayQueue)
    destination_radius: float = DESTINATION_RADIUS
    infection_delay_ms: int = 0
    spread_delay_ms: int = 0
    dos_power_drain: int = 0
    tick: int = 0
    time_ms: int = 0

    def __post_init__(self):
        self.devices = tuple(self.devices)
        for key, drone in self.drones.items():
            if key != drone.id:
                raise InvalidState(f"drones.{key}", f"keyed under {key} but has id {drone.id}")

    @classmethod
    def from_drones(cls, command_center: CommandCenter, destination: Position,
                    drones: Sequence[DroneAgent], **kwargs) -> "World":
        by_id: Dict[int, DroneAgent] = {}
        for drone in drones:
            if drone.id in by_id:
                raise InvalidState("drones.id", f"duplicate drone id {drone.id}")
            by_id[drone.id] = drone
        return cls(command_center, destination, by_id, **kwargs)

    @property
    def tick_ms(self) -> int:
        return self.signal_model.tick_ms

    @property
    def all_terminal(self) -> bool:
        return all(d.is_terminal for d in self.drones.values())

    @property
    def next_time_ms(self) -> int:
        return self.time_ms + self.tick_ms

    def context(self) -> StepContext:
        return StepContext(
            tick_ms=self.tick_ms,
            home=self.command_center.position,
            destination_radius=self.destination_radius,
            destination=self.destination,
            now_ms=self.next_time_ms,
            infection_delay_ms=self.infection_delay_ms,
            dos_power_drain=self.dos_power_drain,
        )

    def build_topology(self) -> NetworkTopology:
        return NetworkTopology.build(
            self.command_center, self.drones.values(), self.topology, self.signal_model
        )

    def commit(self, drones: Mapping[int, DroneAgent]):
        """Replace every drone at once and advance the clock by one tick"""
        self.drones = dict(sorted(drones.items()))
        self.tick += 1
        self.time_ms += self.tick_ms

    def snapshot(self, topology: Optional[NetworkTopology] = None) -> Snapshot:
        if topology is None:
            topology = self.build_topology()
        return Snapshot(
            tick=self.tick,
            time_ms=self.time_ms,
            topology=self.topology,
            signal_model=self.signal_model,
            destination_radius=self.destination_radius,
            infection_delay_ms=self.infection_delay_ms,
            spread_delay_ms=self.spread_delay_ms,
            dos_power_drain=self.dos_power_drain,
            command_center=self.command_center,
            destination=self.destination,
            devices=self.devices,
            drones=tuple(self.drones[i] for i in sorted(self.drones)),
            links=tuple(topology.links()),
            scenario=self.scenario.entries,
            pending=self.queue.pending(),
        )
