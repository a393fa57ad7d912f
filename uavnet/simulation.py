"""
Simulation driver for the UAV network
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .commands import CommandMessage
from .drone import next_drone_state
from .effects import EffectField
from .malware import infection_counts, propagate_malware
from .states import Connectivity, GPSStatus, MissionState
from .topology import NetworkTopology
from .world import Snapshot, World

logger = logging.getLogger(__name__)

Recorder = Callable[[Snapshot], None]


class Simulation:
    """Advances a World tick by tick and hands every committed tick to the recorders"""

    def __init__(self, world: World, cfg: Dict[str, Any], recorders: Iterable[Recorder] = ()):
        self.world = world
        self.cfg = cfg
        self.recorders: List[Recorder] = list(recorders)
        self.ticks_run = 0
        self._topology: Optional[NetworkTopology] = None
        self._stop_requested = False
        self._started = False
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def finished(self) -> bool:
        return self.world.time_ms >= self.cfg["sim_time_ms"] or self.world.all_terminal

    def request_stop(self):
        """Stop after the tick in progress"""
        self._stop_requested = True

    def _emit(self, snapshot: Snapshot):
        for recorder in self.recorders:
            recorder(snapshot)

    def _current_topology(self) -> NetworkTopology:
        if self._topology is None:
            self._topology = self.world.build_topology()
        return self._topology

    # -------- Tick --------

    def step(self) -> Snapshot:
        """Compute and commit one tick"""
        world = self.world
        topology = self._current_topology()
        field = EffectField.compute(world.devices, world.drones.values())

        # DoS hosts cannot transmit, so they never relay orders
        dos_hosts = {
            d.id for d in world.drones.values()
            if d.infection.is_dos_active(world.time_ms, world.infection_delay_ms)
        }
        routes = topology.command_routes(blocked=dos_hosts)
        reachable = {nid for nid in routes if not field.exposure(nid).control_jammed}

        now = world.next_time_ms
        world.queue.prune(reachable)
        for nid in sorted(reachable):
            if world.drones[nid].is_terminal:
                continue
            command = world.scenario.latest_for(nid, now)
            if command is not None:
                world.queue.push(now, CommandMessage(nid, command, now), routes[nid])
        delivered = world.queue.pop_due(now)

        infections = propagate_malware(
            topology, world.drones.values(), field, now_ms=now, spread_delay_ms=world.spread_delay_ms
        )

        ctx = world.context()
        nxt = {
            nid: next_drone_state(
                drone,
                field.exposure(nid),
                routes.get(nid),
                delivered.get(nid, ()),
                infections[nid],
                ctx,
            )
            for nid, drone in world.drones.items()
        }

        world.commit(nxt)
        self.ticks_run += 1
        self._topology = world.build_topology()
        snapshot = world.snapshot(self._topology)
        self._emit(snapshot)
        return snapshot

    # -------- Run loop --------

    async def run(self):
        """Run until the configured time elapses, every drone is done, or a stop is requested"""
        self._running = True
        if not self._started:
            self._started = True
            logger.info("starting run: %d drones, %s topology, %s TRX, %d ms",
                        len(self.world.drones), self.world.topology.value,
                        self.world.signal_model.kind.value, self.cfg["sim_time_ms"])
            self._emit(self.world.snapshot(self._current_topology()))

        while not self._stop_requested and not self.finished():
            self.step()
            await asyncio.sleep(0)

        self._running = False
        self._stop_requested = False
        logger.info("run ended at tick %d (%d ms)", self.world.tick, self.world.time_ms)

    def run_sync(self):
        asyncio.run(self.run())

    # -------- Results --------

    def statistics(self) -> Dict[str, int]:
        drones = list(self.world.drones.values())
        missions = [d.mission for d in drones]
        stats = {
            "drones": len(drones),
            "arrived": missions.count(MissionState.ARRIVED),
            "disabled": missions.count(MissionState.DISABLED),
            "en_route": missions.count(MissionState.EN_ROUTE),
            "infected": sum(1 for d in drones if d.is_infected),
            "control_lost": sum(1 for d in drones if d.connectivity is Connectivity.LOST),
            "gps_lost": sum(1 for d in drones if d.gps.status is GPSStatus.LOST),
            "gps_spoofed": sum(1 for d in drones if d.gps.status is GPSStatus.SPOOFED),
            "ticks": self.ticks_run,
            "time_ms": self.world.time_ms,
            "pending_commands": len(self.world.queue),
            "out_of_power": sum(1 for d in drones if d.power == 0),
        }
        return stats

    def report(self):
        """Print simulation statistics and results"""
        s = self.statistics()
        infections = infection_counts(d.infection for d in self.world.drones.values())

        print("\n=== Simulation Summary ===")
        print(f"Drones: {s['drones']}  Topology: {self.world.topology.value}  "
              f"TRX: {self.world.signal_model.kind.value}  Duration: {s['time_ms']} ms ({s['ticks']} ticks)")
        print(f"Arrived: {s['arrived']}  Disabled: {s['disabled']}  En route: {s['en_route']}")
        print(f"Infected: {s['infected']}  "
              f"(dos={infections['dos']}, indicator={infections['indicator']})")
        print(f"Control lost: {s['control_lost']}  GPS lost: {s['gps_lost']}  "
              f"GPS spoofed: {s['gps_spoofed']}  Pending commands: {s['pending_commands']}")
        print(f"Out of power: {s['out_of_power']}")
        ar = (s["arrived"] / s["drones"]) if s["drones"] else 0.0
        print(f"Arrival ratio: {ar:.3f}")
