"""
Malware propagation: one synchronous round of a graph epidemic per tick
"""

import logging
from typing import Dict, Iterable, Optional, Set

from .effects import EffectField
from .states import InfectionState, MalwareVariant
from .topology import COMMAND_CENTER_ID, NetworkTopology

logger = logging.getLogger(__name__)

# strongest first: a drone reached by several variants in one tick gets this one
_PRECEDENCE = (MalwareVariant.DOS, MalwareVariant.INDICATOR)


def _strongest(variants: Set[MalwareVariant]) -> Optional[MalwareVariant]:
    for variant in _PRECEDENCE:
        if variant in variants:
            return variant
    return None


def _contagious(drone, now_ms: int, spread_delay_ms: int) -> bool:
    if drone is None or not drone.is_infected or drone.is_disabled:
        return False
    return drone.infection.infected_ms + spread_delay_ms <= now_ms


def propagate_malware(
    topology: NetworkTopology,
    drones: Iterable,
    exposures: EffectField,
    now_ms: int = 0,
    spread_delay_ms: int = 0,
) -> Dict[int, InfectionState]:
    """Next infection state of every drone.

    Only the links and infections of the current tick are read, so a drone
    infected this round starts spreading on the next one and the result does
    not depend on drone order. Infections are never undone.

    `now_ms` is the time of the tick being computed and stamps new
    infections. A spreader is contagious `spread_delay_ms` after it was
    infected; malware sources after `spread_delay_ms` of simulated time.
    """
    drones = {d.id: d for d in drones}
    result: Dict[int, InfectionState] = {}

    for drone_id, drone in sorted(drones.items()):
        if drone.is_infected or drone.is_disabled:
            result[drone_id] = drone.infection
            continue

        reaching = set()
        if spread_delay_ms <= now_ms:
            reaching.update(exposures.exposure(drone_id).malware)
        for neighbor in topology.neighbors(drone_id):
            if neighbor == COMMAND_CENTER_ID:
                continue
            source = drones.get(neighbor)
            if _contagious(source, now_ms, spread_delay_ms):
                reaching.add(source.infection.variant)

        variant = _strongest(reaching - drone.patches)
        if variant is None:
            result[drone_id] = drone.infection
            continue
        result[drone_id] = InfectionState(variant, now_ms)
        logger.debug("drone %d infected (%s) at %d ms", drone_id, variant.value, now_ms)

    return result


def infection_counts(infections: Iterable[InfectionState]) -> Dict[str, int]:
    """Number of drones per infection state name"""
    counts = {"healthy": 0}
    counts.update({variant.value: 0 for variant in MalwareVariant})
    for infection in infections:
        key = infection.variant.value if infection.is_infected else "healthy"
        counts[key] += 1
    return counts
