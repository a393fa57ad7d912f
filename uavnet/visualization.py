"""
GIF rendering of a recorded run
"""

import logging
import math
from typing import Any, Dict, List, Sequence

import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation, PillowWriter
from mpl_toolkits.mplot3d.art3d import Line3DCollection

from .drone import DroneAgent
from .effects import DeviceKind
from .states import Connectivity, GPSStatus, MalwareVariant, MissionState
from .world import Snapshot

logger = logging.getLogger(__name__)

DEVICE_COLORS = {
    DeviceKind.GPS_JAM: "tab:orange",
    DeviceKind.GPS_SPOOF: "tab:purple",
    DeviceKind.CONTROL_JAM: "tab:red",
    DeviceKind.MALWARE_SOURCE: "black",
}


def drone_color(drone: DroneAgent) -> str:
    """Color of a drone marker, most severe condition first"""
    if drone.mission is MissionState.DISABLED:
        return "gray"
    if drone.infection.variant is MalwareVariant.DOS:
        return "black"
    if drone.infection.is_infected:
        return "crimson"
    if drone.mission is MissionState.ARRIVED:
        return "green"
    if drone.gps.status is not GPSStatus.VALID:
        return "darkorange"
    if drone.connectivity is Connectivity.LOST:
        return "gold"
    return "tab:blue"


def _link_segments(snapshot: Snapshot):
    """3D segments for every link of the tick"""
    pos = {0: snapshot.command_center.position}
    pos.update({d.id: d.position for d in snapshot.drones})
    return [(pos[a], pos[b]) for a, b, _ in snapshot.links if a in pos and b in pos]


def _circle(center, radius: float, points: int = 48):
    cx, cy, cz = center
    angles = [2 * math.pi * i / points for i in range(points + 1)]
    return (
        [cx + radius * math.cos(a) for a in angles],
        [cy + radius * math.sin(a) for a in angles],
        [cz] * len(angles),
    )


def _bounds(snapshots: Sequence[Snapshot]):
    xs, ys, zs = [], [], []
    for snap in snapshots:
        points = [snap.command_center.position, snap.destination]
        points += [d.position for d in snap.drones]
        points += [dev.position for dev in snap.devices]
        for x, y, z in points:
            xs.append(x)
            ys.append(y)
            zs.append(z)
    margin = 10.0
    return (
        (min(xs) - margin, max(xs) + margin),
        (min(ys) - margin, max(ys) + margin),
        (min(zs) - margin, max(zs) + margin),
    )


class GifArtist:
    """Matplotlib 3D view of the drone network, one frame per snapshot"""

    def __init__(self, snapshots: Sequence[Snapshot], render_cfg: Dict[str, Any]):
        self.snapshots = snapshots
        dpi = 100
        self.fig = plt.figure(figsize=(render_cfg["width"] / dpi, render_cfg["height"] / dpi), dpi=dpi)
        self.ax = self.fig.add_subplot(projection="3d")
        (x0, x1), (y0, y1), (z0, z1) = _bounds(snapshots)
        self.ax.set_xlim(x0, x1)
        self.ax.set_ylim(y0, y1)
        self.ax.set_zlim(z0, z1)
        self.ax.set_xlabel("X (m)")
        self.ax.set_ylabel("Y (m)")
        self.ax.set_zlabel("Z (m)")
        self.ax.set_title(render_cfg["caption"])
        self.ax.view_init(
            elev=math.degrees(render_cfg["camera_pitch"]),
            azim=math.degrees(render_cfg["camera_yaw"]),
        )

        first = snapshots[0]

        # Static scene: command center, destination and device areas
        self.ax.scatter(*[[c] for c in first.command_center.position], marker="^", s=80, c="tab:green")
        self.ax.scatter(*[[c] for c in first.destination], marker="*", s=120, c="tab:olive")
        for device in first.devices:
            self.ax.plot(*_circle(device.position, device.radius),
                         color=DEVICE_COLORS[device.kind], linewidth=0.9)

        # Drones
        xs, ys, zs = self._coords(first)
        self.scatter = self.ax.scatter(xs, ys, zs, s=18, c=[drone_color(d) for d in first.drones],
                                       depthshade=False)

        # Links (line collection)
        self.lines = Line3DCollection(_link_segments(first), linewidths=0.5, alpha=0.4)
        self.ax.add_collection3d(self.lines)

        # Stats banner
        self.stats_txt = self.ax.text2D(0.01, 0.99, "", transform=self.ax.transAxes, va="top")

    @staticmethod
    def _coords(snapshot: Snapshot):
        return (
            [d.position[0] for d in snapshot.drones],
            [d.position[1] for d in snapshot.drones],
            [d.position[2] for d in snapshot.drones],
        )

    def update(self, frame: int):
        """Draw one snapshot"""
        snap = self.snapshots[frame]
        self.scatter._offsets3d = self._coords(snap)
        self.scatter.set_color([drone_color(d) for d in snap.drones])
        self.lines.set_segments(_link_segments(snap))

        missions = [d.mission for d in snap.drones]
        infected = sum(1 for d in snap.drones if d.is_infected)
        self.stats_txt.set_text(
            f"t={snap.time_ms} ms  tick {snap.tick}  links: {len(snap.links)}\n"
            f"Arrived: {missions.count(MissionState.ARRIVED)}  "
            f"Disabled: {missions.count(MissionState.DISABLED)}  Infected: {infected}"
        )
        return self.scatter, self.lines, self.stats_txt


def render_gif(snapshots: List[Snapshot], path: str, render_cfg: Dict[str, Any]) -> str:
    """Save the recorded snapshots as an animated GIF at `path`"""
    if not snapshots:
        raise ValueError("nothing to render: no snapshots were recorded")
    artist = GifArtist(snapshots, render_cfg)
    try:
        anim = FuncAnimation(artist.fig, artist.update, frames=len(snapshots), blit=False)
        anim.save(path, writer=PillowWriter(fps=render_cfg["fps"]))
    finally:
        plt.close(artist.fig)
    logger.info("wrote %d frames to %s", len(snapshots), path)
    return path
