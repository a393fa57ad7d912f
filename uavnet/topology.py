"""
Network topology derived from node positions and the TRX model
"""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, AbstractSet, Dict, Iterable, List, Optional, Tuple

import networkx as nx

from .geometry import Position, distance
from .trx import SignalModel, SignalQuality

if TYPE_CHECKING:
    from .drone import DroneAgent
    from .world import CommandCenter

COMMAND_CENTER_ID = 0


class Topology(Enum):
    MESH = "mesh"  # any two nodes in range link directly
    STAR = "star"  # only command-center-to-drone links


@dataclass(frozen=True)
class LinkInfo:
    distance: float
    quality: SignalQuality
    delay_ms: int


@dataclass(frozen=True)
class _Node:
    nid: int
    pos: Position
    tx_radius: float


class NetworkTopology:
    """Undirected link set of one tick, recomputed from scratch every tick"""

    def __init__(self, graph: nx.Graph, kind: Topology, signal_model: SignalModel):
        self.graph = graph
        self.kind = kind
        self.signal_model = signal_model

    @classmethod
    def build(
        cls,
        command_center: "CommandCenter",
        drones: Iterable["DroneAgent"],
        kind: Topology,
        signal_model: SignalModel,
    ) -> "NetworkTopology":
        """Derive the links between the command center and all active drones"""
        hub = _Node(COMMAND_CENTER_ID, command_center.position, command_center.tx_radius)
        nodes = [hub] + [
            _Node(d.id, d.position, d.tx_radius)
            for d in sorted(drones, key=lambda d: d.id)
            if not d.is_disabled
        ]

        graph = nx.Graph()
        for node in nodes:
            graph.add_node(node.nid, pos=node.pos)

        topology = cls(graph, kind, signal_model)
        if kind is Topology.STAR:
            pairs = ((hub, node) for node in nodes[1:])
        else:
            pairs = itertools.combinations(nodes, 2)
        for a, b in pairs:
            topology._connect(a, b)
        return topology

    def _connect(self, a: _Node, b: _Node):
        dist = distance(a.pos, b.pos)
        quality = self.signal_model.link_quality(a.tx_radius, b.tx_radius, dist)
        if quality is None:
            return
        self.graph.add_edge(
            a.nid, b.nid,
            distance=dist,
            quality=quality,
            delay_ms=self.signal_model.delay(dist),
        )

    # -------- Queries --------

    def has_link(self, a: int, b: int) -> bool:
        return self.graph.has_edge(a, b)

    def link(self, a: int, b: int) -> Optional[LinkInfo]:
        data = self.graph.get_edge_data(a, b)
        if data is None:
            return None
        return LinkInfo(data["distance"], data["quality"], data["delay_ms"])

    def links(self) -> List[Tuple[int, int, LinkInfo]]:
        out = []
        for a, b in self.graph.edges():
            lo, hi = min(a, b), max(a, b)
            out.append((lo, hi, self.link(lo, hi)))
        return sorted(out, key=lambda item: (item[0], item[1]))

    def neighbors(self, node: int) -> List[int]:
        if node not in self.graph:
            return []
        return sorted(self.graph.neighbors(node))

    def has_drone_to_drone_links(self) -> bool:
        return any(COMMAND_CENTER_ID not in edge for edge in self.graph.edges())

    def command_routes(self, blocked: AbstractSet[int] = frozenset()) -> Dict[int, int]:
        """Command delay in ms for every drone the command center can reach.

        Star routes are the direct hub links. Mesh routes follow the shortest
        path by distance; drones in `blocked` cannot transmit, so they may be
        the end of a route but never relay it.
        """
        if self.kind is Topology.STAR:
            return {
                nid: self.graph.edges[COMMAND_CENTER_ID, nid]["delay_ms"]
                for nid in self.neighbors(COMMAND_CENTER_ID)
            }

        def hop_length(u, v, data):
            if u in blocked:
                return None
            return data["distance"]

        lengths = nx.single_source_dijkstra_path_length(
            self.graph, COMMAND_CENTER_ID, weight=hop_length
        )
        return {
            nid: self.signal_model.delay(length)
            for nid, length in sorted(lengths.items())
            if nid != COMMAND_CENTER_ID
        }
