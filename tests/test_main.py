import json

from uavnet.main import main, parse_args


def test_cli_maps_flags_to_config_keys():
    args = parse_args(["gpsspoof", "--trx", "color", "--drones", "5", "--sim-time", "250",
                       "--signal-loss-response", "rth", "--no-plot"])

    assert args.experiment == "gpsspoof"
    assert args.trx_system == "color"
    assert args.drone_count == 5
    assert args.sim_time_ms == 250
    assert args.signal_loss_response == "rth"
    assert args.no_plot


def test_run_prints_final_statistics(capsys):
    code = main(["move", "--drones", "3", "--sim-time", "200", "--no-plot"])

    assert code == 0
    assert "=== Simulation Summary ===" in capsys.readouterr().out


def test_invalid_configuration_exits_with_status_two(capsys):
    assert main(["move", "--attacker-radius", "-1", "--no-plot"]) == 2
    assert main(["custom", "--no-plot"]) == 2
    assert "=== Simulation Summary ===" not in capsys.readouterr().out


def test_missing_import_file_exits_with_status_two(tmp_path):
    assert main(["custom", "--json-input", str(tmp_path / "nope.json"), "--no-plot"]) == 2


def test_json_output_writes_every_tick(tmp_path):
    out = tmp_path / "ticks"

    code = main(["malware", "--drones", "2", "--sim-time", "100", "--json-output", str(out), "--no-plot"])

    assert code == 0
    names = sorted(p.name for p in out.iterdir())
    assert names == ["tick_000000.json", "tick_000001.json", "tick_000002.json"]
    doc = json.loads((out / "tick_000002.json").read_text(encoding="utf-8"))
    assert doc["time_ms"] == 100


def test_cli_maps_power_and_malware_timing_flags():
    args = parse_args(["malware", "--drone-power", "500", "--infection-delay", "1000",
                       "--spread-delay", "500", "--dos-power-drain", "400"])

    assert args.drone_power == 500
    assert args.infection_delay_ms == 1000
    assert args.spread_delay_ms == 500
    assert args.dos_power_drain == 400


def test_undecodable_world_document_exits_with_status_two(tmp_path, capsys):
    path = tmp_path / "world.json"
    path.write_bytes(b'{"tick": "\xff\xfe"}')

    assert main(["custom", "--json-input", str(path), "--no-plot"]) == 2
    assert "=== Simulation Summary ===" not in capsys.readouterr().out
