"""
Drone agent state and its per-tick transition
"""

import logging
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional, Sequence, Tuple

from .commands import Command
from .effects import DroneExposure
from .errors import InvalidState
from .geometry import ORIGIN, Position, add, clip_step, distance, norm, scale, sub, unit
from .states import (
    GPS_LOST,
    GPS_VALID,
    HEALTHY,
    Connectivity,
    GPSState,
    GPSStatus,
    InfectionState,
    MalwareVariant,
    MissionState,
    SignalLossResponse,
)

logger = logging.getLogger(__name__)

# power units
DEVICE_MAX_POWER = 100_000
PASSIVE_POWER_CONSUMPTION = 1      # every tick the drone is alive
MOVEMENT_POWER_CONSUMPTION = 5     # every tick the drone changes position
PROCESSING_POWER_CONSUMPTION = 5   # every delivered order


@dataclass(frozen=True)
class DroneAgent:
    """One drone, with exactly one value on every state axis"""
    id: int
    position: Position
    target: Position
    heading: Position = ORIGIN  # unit vector of the last steering decision
    gps: GPSState = GPS_VALID
    connectivity: Connectivity = Connectivity.CONNECTED
    infection: InfectionState = HEALTHY
    mission: MissionState = MissionState.EN_ROUTE
    policy: SignalLossResponse = SignalLossResponse.IGNORE
    speed_mps: float = 25.0
    tx_radius: float = 50.0
    patches: FrozenSet[MalwareVariant] = field(default_factory=frozenset)
    power: int = DEVICE_MAX_POWER

    def __post_init__(self):
        if self.id < 1:
            raise InvalidState("id", f"drone ids start at 1, got {self.id}")
        if self.speed_mps < 0:
            raise InvalidState("speed_mps", f"must be non-negative, got {self.speed_mps}")
        if self.tx_radius < 0:
            raise InvalidState("tx_radius", f"must be non-negative, got {self.tx_radius}")
        if self.power < 0:
            raise InvalidState("power", f"must be non-negative, got {self.power}")

    @property
    def is_disabled(self) -> bool:
        return self.mission is MissionState.DISABLED

    @property
    def is_terminal(self) -> bool:
        return self.mission.is_terminal

    @property
    def is_infected(self) -> bool:
        return self.infection.is_infected

    def step_length(self, tick_ms: int) -> float:
        return self.speed_mps * tick_ms / 1000.0


@dataclass(frozen=True)
class StepContext:
    """World facts a drone needs for one transition"""
    tick_ms: int
    home: Position               # command center position
    destination_radius: float
    destination: Position = ORIGIN
    now_ms: int = 0              # time of the tick being computed
    infection_delay_ms: int = 0  # infection to payload execution
    dos_power_drain: int = 0     # power a DoS payload burns when it executes


# -------- GPS --------

def _next_gps(drone: DroneAgent, exposure: DroneExposure, target: Position) -> GPSState:
    if exposure.gps_jammed:
        return GPS_LOST
    if exposure.spoof_lure is not None:
        # the receiver reports a position offset so that steering toward
        # the real target from it flies the drone at the lure point
        fake = add(drone.position, sub(target, exposure.spoof_lure))
        return GPSState.spoofed(fake)
    return GPS_VALID


# -------- Motion --------

def _navigate(drone: DroneAgent, gps: GPSState, goal: Position, step: float) -> Tuple[Position, Position]:
    """Position and heading after steering toward `goal` for one tick"""
    if gps.status is GPSStatus.LOST:
        # no fix: keep flying the recorded heading, climb or descent included
        return add(drone.position, scale(drone.heading, step)), drone.heading

    believed = gps.fake_position if gps.status is GPSStatus.SPOOFED else drone.position
    displacement = sub(goal, believed)
    if norm(displacement) == 0:
        return drone.position, drone.heading
    return add(drone.position, clip_step(displacement, step)), unit(displacement)


# -------- Power --------

def _payload_fires(infection: InfectionState, ctx: StepContext) -> bool:
    """True on the one tick the malware payload executes"""
    due = infection.payload_due_ms(ctx.infection_delay_ms)
    return due is not None and ctx.now_ms - ctx.tick_ms < due <= ctx.now_ms


def _power_out(drone: DroneAgent, infection: InfectionState) -> DroneAgent:
    logger.debug("drone %d ran out of power", drone.id)
    return replace(
        drone,
        power=0,
        connectivity=Connectivity.LOST,
        infection=infection,
        mission=MissionState.DISABLED,
    )


def next_drone_state(
    drone: DroneAgent,
    exposure: DroneExposure,
    route_delay_ms: Optional[int],
    commands: Sequence[Command],
    infection: InfectionState,
    ctx: StepContext,
) -> DroneAgent:
    """Compute the drone's state for the next tick.

    `route_delay_ms` is the command delay from the command center, or None
    when no route exists this tick. `commands` are the orders delivered this
    tick in send order, and `infection` is the already propagated infection
    state. The input drone is never modified.
    """
    dos = infection.is_dos_active(ctx.now_ms, ctx.infection_delay_ms)

    if drone.is_terminal:
        connectivity = Connectivity.LOST if dos else drone.connectivity
        return replace(drone, infection=infection, connectivity=connectivity)

    power = drone.power - PASSIVE_POWER_CONSUMPTION - PROCESSING_POWER_CONSUMPTION * len(commands)
    if infection.variant is MalwareVariant.DOS and _payload_fires(infection, ctx):
        power -= ctx.dos_power_drain
    if power <= 0:
        return _power_out(drone, infection)

    target = drone.target
    for command in commands:
        target = command.resolve(ctx.home)

    gps = _next_gps(drone, exposure, target)

    lost = exposure.control_jammed or route_delay_ms is None or dos
    connectivity = Connectivity.LOST if lost else Connectivity.CONNECTED
    response = drone.policy if lost else SignalLossResponse.IGNORE

    step = drone.step_length(ctx.tick_ms)
    position, heading = drone.position, drone.heading
    mission = drone.mission

    if response is SignalLossResponse.SHUTDOWN:
        mission = MissionState.DISABLED
    elif response is SignalLossResponse.HOVER:
        pass
    elif response is SignalLossResponse.ASCEND:
        position = add(position, (0.0, 0.0, step))
    elif response is SignalLossResponse.RETURN_TO_HOME:
        position, heading = _navigate(drone, gps, ctx.home, step)
    else:
        position, heading = _navigate(drone, gps, target, step)

    if position != drone.position:
        power -= MOVEMENT_POWER_CONSUMPTION
        if power <= 0:
            return _power_out(drone, infection)

    # only the destination completes the mission; reposition points do not
    if (
        mission is not MissionState.DISABLED
        and gps.status is GPSStatus.VALID
        and distance(position, ctx.destination) <= ctx.destination_radius
    ):
        mission = MissionState.ARRIVED

    nxt = replace(
        drone,
        position=position,
        target=target,
        heading=heading,
        gps=gps,
        connectivity=connectivity,
        infection=infection,
        mission=mission,
        power=power,
    )
    _log_changes(drone, nxt)
    return nxt


def _log_changes(before: DroneAgent, after: DroneAgent):
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if before.gps.status is not after.gps.status:
        logger.debug("drone %d gps %s -> %s", after.id, before.gps, after.gps)
    if before.connectivity is not after.connectivity:
        logger.debug("drone %d control link %s -> %s", after.id,
                     before.connectivity.value, after.connectivity.value)
    if before.mission is not after.mission:
        logger.debug("drone %d mission %s -> %s", after.id,
                     before.mission.value, after.mission.value)
