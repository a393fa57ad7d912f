from uavnet.config import build_config
from uavnet.effects import DeviceKind
from uavnet.experiments import build_world, derive_filename
from uavnet.persistence import export_world
from uavnet.states import MalwareVariant, SignalLossResponse
from uavnet.topology import Topology
from uavnet.trx import TRXSystem


def _make_cfg(**overrides):
    return build_config(dict({"drone_count": 10}, **overrides))


def test_filenames_follow_trx_experiment_and_topology():
    assert derive_filename(_make_cfg(experiment="gpsjam")) == "str_gps_only_mesh.gif"
    assert derive_filename(_make_cfg(experiment="move", trx_system="color", topology="star")) == \
        "col_movement_star.gif"
    assert derive_filename(_make_cfg(experiment="malware", malware="dos")) == "str_mal_dos_mesh.gif"


def test_swarm_is_reproducible_for_a_seed():
    a = build_world(_make_cfg(seed=7))
    b = build_world(_make_cfg(seed=7))
    c = build_world(_make_cfg(seed=8))

    assert a.drones == b.drones
    assert a.drones != c.drones


def test_swarm_starts_around_the_origin_point():
    cfg = _make_cfg()
    world = build_world(cfg)

    assert sorted(world.drones) == list(range(1, 11))
    for drone in world.drones.values():
        for coord, origin, spread in zip(drone.position, cfg["swarm_origin"], cfg["swarm_spread"]):
            assert origin - spread <= coord <= origin + spread
        assert drone.target == cfg["destination"]


def test_presets_place_their_devices():
    kinds = {
        "move": [],
        "gpsjam": [DeviceKind.GPS_JAM],
        "controljam": [DeviceKind.CONTROL_JAM],
        "gpsspoof": [DeviceKind.GPS_SPOOF],
        "malware": [DeviceKind.MALWARE_SOURCE],
        "signalloss": [DeviceKind.CONTROL_JAM],
    }
    for experiment, expected in kinds.items():
        world = build_world(_make_cfg(experiment=experiment, attacker_radius=70.0))
        assert [d.kind for d in world.devices] == expected


def test_malware_preset_uses_configured_variant():
    world = build_world(_make_cfg(experiment="malware", malware="dos"))

    assert world.devices[0].malware is MalwareVariant.DOS


def test_signal_loss_preset_has_one_drone_per_response():
    world = build_world(_make_cfg(experiment="signalloss"))

    assert [d.policy for d in world.drones.values()] == list(SignalLossResponse)


def test_model_parameters_come_from_config():
    world = build_world(_make_cfg(trx_system="color", topology="star", delay_multiplier=2.0))

    assert world.topology is Topology.STAR
    assert world.signal_model.kind is TRXSystem.COLOR
    assert world.signal_model.delay_multiplier == 2.0


def test_unpatched_share_follows_vulnerability_probability():
    world = build_world(_make_cfg(vulnerability_probability=0.0))

    assert all(d.patches == frozenset(MalwareVariant) for d in world.drones.values())


def test_custom_experiment_imports_a_document(tmp_path):
    path = export_world(build_world(_make_cfg(experiment="gpsjam")), tmp_path)

    world = build_world(_make_cfg(experiment="custom", json_input=str(path)))

    assert len(world.drones) == 10
    assert world.devices[0].kind is DeviceKind.GPS_JAM
