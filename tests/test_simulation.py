import math

from uavnet.commands import BROADCAST_ID, Command, Scenario, ScenarioEntry
from uavnet.config import build_config
from uavnet.drone import DroneAgent
from uavnet.effects import Device, DeviceKind
from uavnet.experiments import build_world
from uavnet.simulation import Simulation
from uavnet.states import (
    Connectivity,
    GPSStatus,
    InfectionState,
    MalwareVariant,
    MissionState,
    SignalLossResponse,
)
from uavnet.topology import COMMAND_CENTER_ID, Topology
from uavnet.trx import SignalModel, TRXSystem
from uavnet.world import CommandCenter, World
import pytest

DESTINATION = (0.0, 0.0, 0.0)


def _make_drone(drone_id: int, position, **kwargs):
    kwargs.setdefault("target", DESTINATION)
    return DroneAgent(id=drone_id, position=position, **kwargs)


def _make_world(drones, devices=(), topology=Topology.MESH, multiplier: float = 0.0,
                scenario=None, cc=((0.0, 0.0, 0.0), 300.0)):
    return World.from_drones(
        CommandCenter(*cc),
        DESTINATION,
        drones,
        devices=tuple(devices),
        topology=topology,
        signal_model=SignalModel(kind=TRXSystem.STRENGTH, delay_multiplier=multiplier),
        scenario=scenario or Scenario(),
    )


def _make_sim(world, sim_time_ms: int = 5_000):
    snapshots = []
    sim = Simulation(world, {"sim_time_ms": sim_time_ms}, [snapshots.append])
    return sim, snapshots


def test_two_drone_mesh_arrives_in_straight_line_time():
    drones = [_make_drone(1, (50.0, 0.0, 0.0)), _make_drone(2, (0.0, 40.0, 0.0))]
    sim, snapshots = _make_sim(_make_world(drones))

    sim.run_sync()

    # 25 m/s over 50 ms ticks is 1.25 m per tick
    assert all(d.mission is MissionState.ARRIVED for d in sim.world.drones.values())
    assert sim.world.tick <= math.ceil(50.0 / 1.25)
    assert snapshots[0].tick == 0
    assert snapshots[-1].tick == sim.world.tick
    assert sim.statistics()["arrived"] == 2


def test_reposition_waypoint_does_not_end_the_mission():
    drone = _make_drone(1, (0.0, 50.0, 0.0))
    scenario = Scenario([
        ScenarioEntry(0, BROADCAST_ID, Command.reposition((0.0, 52.0, 0.0))),
        ScenarioEntry(500, BROADCAST_ID, Command.reposition(DESTINATION)),
    ])
    sim, snapshots = _make_sim(_make_world([drone], scenario=scenario))

    sim.run_sync()

    missions = [s.drones[0].mission for s in snapshots]
    assert snapshots[2].drones[0].position == pytest.approx((0.0, 52.0, 0.0))
    assert all(m is MissionState.EN_ROUTE for m in missions[:-1])
    assert missions[-1] is MissionState.ARRIVED
    assert math.dist(snapshots[-1].drones[0].position, DESTINATION) <= 5.0
    assert sim.world.tick > 10


def test_jammed_hovering_drone_is_frozen_without_gps():
    drone = _make_drone(1, (0.0, 0.0, 10.0), target=(100.0, 0.0, 0.0), policy=SignalLossResponse.HOVER)
    jammer = Device(DeviceKind.GPS_JAM, (0.0, 0.0, 0.0), 50.0)
    # command center far out of range, so there is no control link
    world = _make_world([drone], [jammer], cc=((1000.0, 0.0, 0.0), 10.0))
    sim, _ = _make_sim(world)

    for _ in range(10):
        snap = sim.step()
        d = snap.drones[0]
        assert d.position == (0.0, 0.0, 10.0)
        assert d.gps.status is GPSStatus.LOST
        assert d.connectivity is Connectivity.LOST


def test_dos_source_infects_and_cuts_control_link():
    drone = _make_drone(1, (0.0, 0.0, 0.0), target=(0.0, 100.0, 0.0))
    source = Device(DeviceKind.MALWARE_SOURCE, (0.0, 0.0, 0.0), 10.0, malware=MalwareVariant.DOS)
    sim, _ = _make_sim(_make_world([drone], [source], cc=((20.0, 0.0, 0.0), 300.0)))

    first = sim.step()
    assert first.drones[0].infection == InfectionState(MalwareVariant.DOS)
    assert first.drones[0].connectivity is Connectivity.LOST

    for _ in range(5):
        snap = sim.step()
        assert snap.drones[0].connectivity is Connectivity.LOST
        # the signal link itself is still there
        assert (COMMAND_CENTER_ID, 1) in [(a, b) for a, b, _ in snap.links]


def test_shutdown_freezes_drone_from_the_tick_it_loses_control():
    drone = _make_drone(1, (20.0, 0.0, 0.0), target=(100.0, 0.0, 0.0), policy=SignalLossResponse.SHUTDOWN)
    jammer = Device(DeviceKind.CONTROL_JAM, (30.0, 0.0, 0.0), 2.0)
    world = _make_world([drone], [jammer])
    sim, snapshots = _make_sim(world, sim_time_ms=1_000)

    sim.run_sync()

    missions = [s.drones[0].mission for s in snapshots]
    k = missions.index(MissionState.DISABLED)
    assert k > 1
    assert all(m is MissionState.DISABLED for m in missions[k:])
    frozen = snapshots[k - 1].drones[0].position
    assert all(s.drones[0].position == frozen for s in snapshots[k:])
    # every drone is terminal, so the run ends right away
    assert sim.world.tick == k


def test_gps_lost_drone_keeps_heading_until_it_leaves_the_jam_area():
    drone = _make_drone(1, (0.0, 0.0, 0.0), target=(0.0, 100.0, 0.0), heading=(1.0, 0.0, 0.0))
    jammer = Device(DeviceKind.GPS_JAM, (0.0, 0.0, 0.0), 20.0)
    sim, _ = _make_sim(_make_world([drone], [jammer]))

    inside = []
    for _ in range(40):
        d = sim.step().drones[0]
        if d.gps.status is not GPSStatus.LOST:
            break
        inside.append(d)

    assert len(inside) > 10
    assert all(d.heading == (1.0, 0.0, 0.0) for d in inside)
    assert all(d.position[1] == 0.0 for d in inside)
    # outside again it steers for the target
    assert d.heading != (1.0, 0.0, 0.0)


def _first_order_tick(multiplier: float) -> int:
    order = (200.0, -100.0, 0.0)
    drone = _make_drone(1, (200.0, 0.0, 0.0), target=(200.0, 100.0, 0.0))
    scenario = Scenario([ScenarioEntry(0, BROADCAST_ID, Command.reposition(order))])
    sim, _ = _make_sim(_make_world([drone], multiplier=multiplier, scenario=scenario))

    for _ in range(20):
        snap = sim.step()
        if snap.drones[0].target == order:
            return snap.tick
    return 10_000


def test_larger_delay_multiplier_never_delivers_earlier():
    ticks = [_first_order_tick(m) for m in (0.0, 1e5, 2e5, 4e5, 8e5)]

    assert ticks[0] == 1
    assert ticks == sorted(ticks)
    assert ticks[-1] > ticks[0]


def test_pending_orders_are_dropped_when_the_route_disappears():
    drone = _make_drone(1, (200.0, 0.0, 0.0), target=(200.0, 100.0, 0.0))
    jammer = Device(DeviceKind.CONTROL_JAM, (200.0, 0.0, 0.0), 10.0)
    scenario = Scenario([ScenarioEntry(0, BROADCAST_ID, Command.return_home())])
    world = _make_world([drone], multiplier=4e5, scenario=scenario)
    sim, _ = _make_sim(world)

    sim.step()
    assert len(world.queue) == 1

    world.devices = (jammer,)
    sim.step()
    assert len(world.queue) == 0


def test_star_run_never_links_drones():
    cfg = build_config({"topology": "star", "drone_count": 12, "sim_time_ms": 500})
    sim, snapshots = _make_sim(build_world(cfg), cfg["sim_time_ms"])

    sim.run_sync()

    assert len(snapshots) == 11
    for snap in snapshots:
        assert all(COMMAND_CENTER_ID in (a, b) for a, b, _ in snap.links)


def test_states_are_total_and_infection_is_monotonic():
    cfg = build_config({"experiment": "malware", "drone_count": 20, "sim_time_ms": 10_000,
                        "attacker_radius": 60.0})
    sim, snapshots = _make_sim(build_world(cfg), cfg["sim_time_ms"])

    sim.run_sync()

    infected_at = {}
    for snap in snapshots:
        for d in snap.drones:
            assert isinstance(d.gps.status, GPSStatus)
            assert isinstance(d.connectivity, Connectivity)
            assert isinstance(d.infection, InfectionState)
            assert isinstance(d.mission, MissionState)
            if d.id in infected_at:
                assert d.infection == infected_at[d.id]
            elif d.is_infected:
                infected_at[d.id] = d.infection
    assert infected_at


def test_disabled_positions_never_change():
    cfg = build_config({"experiment": "signalloss", "sim_time_ms": 15_000})
    sim, snapshots = _make_sim(build_world(cfg), cfg["sim_time_ms"])

    sim.run_sync()

    disabled_at = {}
    for snap in snapshots:
        for d in snap.drones:
            if d.id in disabled_at:
                assert d.position == disabled_at[d.id]
            elif d.is_disabled:
                disabled_at[d.id] = d.position
    assert disabled_at


def test_stop_request_takes_effect_after_the_current_tick():
    drones = [_make_drone(1, (100.0, 0.0, 0.0))]
    sim = Simulation(_make_world(drones), {"sim_time_ms": 5_000})

    def stop_at_three(snapshot):
        if snapshot.tick == 3:
            sim.request_stop()

    sim.recorders.append(stop_at_three)
    sim.run_sync()

    assert sim.world.tick == 3
    assert not sim.running

    sim.run_sync()
    assert sim.world.tick > 3


def test_run_ends_at_configured_time():
    drones = [_make_drone(1, (1000.0, 0.0, 0.0))]
    sim, snapshots = _make_sim(_make_world(drones), sim_time_ms=500)

    sim.run_sync()

    assert sim.world.time_ms == 500
    assert sim.statistics()["ticks"] == 10
    assert len(snapshots) == 11


def test_report_prints_summary(capsys):
    sim, _ = _make_sim(_make_world([_make_drone(1, (2.0, 0.0, 0.0))]))
    sim.run_sync()

    sim.report()

    out = capsys.readouterr().out
    assert "=== Simulation Summary ===" in out
    assert "Arrived: 1" in out


def test_spread_delay_postpones_the_first_infection():
    cfg = build_config({"experiment": "malware", "drone_count": 8, "sim_time_ms": 1_000,
                        "attacker_radius": 300.0, "spread_delay_ms": 500})
    sim, snapshots = _make_sim(build_world(cfg), cfg["sim_time_ms"])

    sim.run_sync()

    first = next(s for s in snapshots if any(d.is_infected for d in s.drones))
    assert first.tick == 10
    assert all(d.infection.infected_ms == 500 for d in first.drones if d.is_infected)


def test_dos_drain_disables_the_swarm():
    cfg = build_config({"experiment": "malware", "malware": "dos", "drone_count": 8,
                        "sim_time_ms": 2_000, "attacker_radius": 300.0,
                        "infection_delay_ms": 200, "dos_power_drain": 100_000})
    sim, snapshots = _make_sim(build_world(cfg), cfg["sim_time_ms"])

    sim.run_sync()

    # infected on tick 1, payload executes 200 ms later
    assert all(d.mission is MissionState.EN_ROUTE for d in snapshots[4].drones)
    assert all(d.is_disabled and d.power == 0 for d in snapshots[5].drones)
    assert sim.statistics()["out_of_power"] == 8
    assert sim.world.tick == 5
