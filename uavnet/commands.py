"""
Command-center orders and the timed scenario that issues them
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from .errors import InvalidParameter
from .geometry import Position

BROADCAST_ID = -1


class CommandKind(Enum):
    REPOSITION = "reposition"    # fly to `point`
    RETURN_HOME = "return_home"  # fly to the command center


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    point: Optional[Position] = None

    def __post_init__(self):
        if self.kind is CommandKind.REPOSITION and self.point is None:
            raise InvalidParameter("point", "a reposition order needs a point")
        if self.kind is CommandKind.RETURN_HOME and self.point is not None:
            raise InvalidParameter("point", "a return-home order takes no point")

    @classmethod
    def reposition(cls, point: Position) -> "Command":
        return cls(CommandKind.REPOSITION, tuple(float(c) for c in point))

    @classmethod
    def return_home(cls) -> "Command":
        return cls(CommandKind.RETURN_HOME)

    def resolve(self, home: Position) -> Position:
        """Navigation target this order sets"""
        if self.kind is CommandKind.RETURN_HOME:
            return home
        return self.point


@dataclass(frozen=True)
class CommandMessage:
    """One order in flight from the command center to a drone"""
    drone_id: int
    command: Command
    sent_ms: int


@dataclass(frozen=True)
class ScenarioEntry:
    time_ms: int
    drone_id: int  # BROADCAST_ID addresses every drone
    command: Command

    def __post_init__(self):
        if self.time_ms < 0:
            raise InvalidParameter("time_ms", f"must be non-negative, got {self.time_ms}")
        if self.drone_id < 1 and self.drone_id != BROADCAST_ID:
            raise InvalidParameter("drone_id", f"not a drone id: {self.drone_id}")


class Scenario:
    """Orders the command center gives over time.

    Every tick the command center repeats the latest order that applies to
    a drone, so a drone that regains its link still learns its current task.
    """

    def __init__(self, entries: Iterable[ScenarioEntry] = ()):
        # stable: entries with equal times keep their given order
        self.entries: Tuple[ScenarioEntry, ...] = tuple(sorted(entries, key=lambda e: e.time_ms))

    def latest_for(self, drone_id: int, now_ms: int) -> Optional[Command]:
        latest = None
        for entry in self.entries:
            if entry.time_ms > now_ms:
                break
            if entry.drone_id in (drone_id, BROADCAST_ID):
                latest = entry.command
        return latest

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other) -> bool:
        return isinstance(other, Scenario) and self.entries == other.entries
