#!/usr/bin/env python3
"""
UAV Network Simulator - Main Entry Point

Simulates a drone swarm flying to a destination while electronic-warfare
devices and malware attack it.

Features:
- Mesh or star network derived every tick from the color or strength TRX model
- GPS jamming, GPS spoofing and control-signal jamming areas
- DoS / indicator malware spreading over the network graph, with infection and spread delays
- Per-drone power budget; a drone that runs out of power is disabled
- Command-center orders with distance-based transmission delay
- Per-tick JSON export / import of the whole world
- Animated 3D GIF of the run

Run:
    python -m uavnet.main gpsjam --topology star --no-plot
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import RENDER_CONFIG, SIM_CONFIG, build_config
from .errors import SimulationError
from .experiments import build_world, derive_filename
from .persistence import JsonRecorder
from .simulation import Simulation
from .visualization import render_gif

logger = logging.getLogger("uavnet")

EXPERIMENTS = ["move", "gpsjam", "controljam", "gpsspoof", "malware", "signalloss", "custom"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for simulation configuration"""
    p = argparse.ArgumentParser(prog="uavnet", description="UAV network EW / malware simulator")
    p.add_argument("experiment", choices=EXPERIMENTS, nargs="?", default=SIM_CONFIG["experiment"])
    p.add_argument("--trx", dest="trx_system", choices=["color", "strength"],
                   help="signal model deciding links and their quality")
    p.add_argument("--topology", choices=["mesh", "star"])
    p.add_argument("--drones", dest="drone_count", type=int, help="number of drones")
    p.add_argument("--sim-time", dest="sim_time_ms", type=int, help="simulated time (ms)")
    p.add_argument("--delay-multiplier", type=float,
                   help="scales signal travel distance; 0 delivers commands in the same tick")
    p.add_argument("--attacker-radius", type=float, help="effect area radius of attackers (m)")
    p.add_argument("--malware", choices=["dos", "indicator"])
    p.add_argument("--signal-loss-response", choices=["ascend", "ignore", "hover", "rth", "shutdown"])
    p.add_argument("--drone-power", type=int, help="starting power of every drone (power units)")
    p.add_argument("--infection-delay", dest="infection_delay_ms", type=int,
                   help="ms from infection to malware payload execution")
    p.add_argument("--spread-delay", dest="spread_delay_ms", type=int,
                   help="ms from infection to first spread to neighbors")
    p.add_argument("--dos-power-drain", type=int, help="power a DoS payload burns when it executes")
    p.add_argument("--json-input", help="world document to start from (custom experiment)")
    p.add_argument("--json-output", help="directory receiving one world document per tick")
    p.add_argument("--seed", type=int)

    g = p.add_argument_group("plot")
    g.add_argument("--no-plot", action="store_true", help="do not render a GIF")
    g.add_argument("--output", help="GIF path (default derived from the experiment)")
    g.add_argument("--caption", default=RENDER_CONFIG["caption"])
    g.add_argument("--width", type=int, default=RENDER_CONFIG["width"])
    g.add_argument("--height", type=int, default=RENDER_CONFIG["height"])
    g.add_argument("--camera-pitch", type=float, default=RENDER_CONFIG["camera_pitch"], help="radians")
    g.add_argument("--camera-yaw", type=float, default=RENDER_CONFIG["camera_yaw"], help="radians")

    p.add_argument("-v", "--verbose", action="store_true", help="log every state transition")
    return p.parse_args(argv)


_SIM_KEYS = (
    "experiment", "trx_system", "topology", "drone_count", "sim_time_ms", "delay_multiplier",
    "attacker_radius", "malware", "signal_loss_response", "drone_power", "infection_delay_ms",
    "spread_delay_ms", "dos_power_drain", "json_input", "json_output", "seed",
)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the UAV network simulation"""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {k: getattr(args, k) for k in _SIM_KEYS if getattr(args, k) is not None}
    try:
        cfg = build_config(overrides)
        world = build_world(cfg)
    except (SimulationError, OSError) as exc:
        logger.error("cannot start simulation: %s", exc)
        return 2

    render_cfg = dict(RENDER_CONFIG)
    render_cfg.update(
        plot=not args.no_plot,
        caption=args.caption,
        width=args.width,
        height=args.height,
        camera_pitch=args.camera_pitch,
        camera_yaw=args.camera_yaw,
        output=args.output or derive_filename(cfg),
    )

    frames = []
    recorders = []
    if render_cfg["plot"]:
        recorders.append(frames.append)
    if cfg["json_output"]:
        recorders.append(JsonRecorder(cfg["json_output"]))

    sim = Simulation(world, cfg, recorders)
    print(f"Starting {cfg['experiment'].value} experiment...")
    sim.run_sync()
    sim.report()

    if render_cfg["plot"]:
        render_gif(frames, render_cfg["output"], render_cfg)
        print(f"Animation saved to {render_cfg['output']}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
