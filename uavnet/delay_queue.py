"""
Command messages in flight, held back by their transmission delay
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Tuple

from .commands import Command, CommandMessage
from .errors import InvalidParameter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueEntry:
    due_ms: int
    message: CommandMessage

    @property
    def sent_ms(self) -> int:
        return self.message.sent_ms


class DelayQueue:
    """Pending orders, kept in (due time, send order)"""

    def __init__(self, entries: Iterable[QueueEntry] = ()):
        self._entries: List[QueueEntry] = []
        for entry in entries:
            self._insert(entry)

    def _insert(self, entry: QueueEntry):
        # insert after every entry due at the same time to keep send order
        idx = len(self._entries)
        while idx > 0 and self._entries[idx - 1].due_ms > entry.due_ms:
            idx -= 1
        self._entries.insert(idx, entry)

    def push(self, sent_ms: int, message: CommandMessage, delay_ms: int):
        """Queue a message; it is delivered at the first tick >= sent_ms + delay_ms"""
        if delay_ms < 0:
            raise InvalidParameter("delay_ms", f"must be non-negative, got {delay_ms}")
        self._insert(QueueEntry(sent_ms + delay_ms, message))

    def prune(self, reachable: AbstractSet[int]) -> int:
        """Drop messages for drones the command center cannot reach this tick"""
        kept = [e for e in self._entries if e.message.drone_id in reachable]
        dropped = len(self._entries) - len(kept)
        if dropped:
            logger.debug("dropped %d in-flight command(s) after route loss", dropped)
        self._entries = kept
        return dropped

    def pop_due(self, now_ms: int) -> Dict[int, List[Command]]:
        """Remove due messages and return their commands per drone, in send order"""
        ready = [e for e in self._entries if e.due_ms <= now_ms]
        self._entries = [e for e in self._entries if e.due_ms > now_ms]

        due: Dict[int, List[Command]] = {}
        for entry in sorted(ready, key=lambda e: e.sent_ms):
            due.setdefault(entry.message.drone_id, []).append(entry.message.command)
        return due

    def pending(self) -> Tuple[QueueEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
