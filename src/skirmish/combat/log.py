from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from .models import ActionResult

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"
SYSTEM_ACTOR_NAME = "System"


@dataclass(frozen=True)
class CombatLogEntry:
    """A single combat log entry.

    Attributes:
        id: Unique entry id.
        round: Round in which the entry was recorded.
        actor_id: Acting combatant id, or "system" for round/phase banners.
        action: Action type name (e.g. "ATTACK"), or an event name such as
            "round_start" or "effect_tick" for system entries.
        result: The ActionResult for combatant actions, None for system entries.
        message: Human-readable line shown in the UI.
    """

    round: int
    actor_id: str
    actor_name: str
    action: str
    message: str
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    result: Optional["ActionResult"] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "round": self.round,
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "action": self.action,
            "target_id": self.target_id,
            "target_name": self.target_name,
            "message": self.message,
        }


class CombatLog:
    """In-memory combat log for the duration of a battle.

    Keeps a finite history (capacity) to avoid unbounded growth; the oldest
    entries are dropped first.
    """

    def __init__(self, capacity: int = 500) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[CombatLogEntry] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: CombatLogEntry) -> CombatLogEntry:
        self._entries.append(entry)
        if len(self._entries) > self._capacity:
            dropped = len(self._entries) - self._capacity
            del self._entries[0:dropped]
            logger.debug("CombatLog capacity exceeded, dropped=%d old entries", dropped)
        logger.debug("[round %d] %s", entry.round, entry.message)
        return entry

    def system(self, round_number: int, event: str, message: str) -> CombatLogEntry:
        return self.add(
            CombatLogEntry(
                round=round_number,
                actor_id=SYSTEM_ACTOR_ID,
                actor_name=SYSTEM_ACTOR_NAME,
                action=event,
                message=message,
            )
        )

    def events(self) -> List[CombatLogEntry]:
        return list(self._entries)

    def recent(self, n: int) -> List[CombatLogEntry]:
        if n <= 0:
            return []
        return self._entries[-n:]

    def messages(self) -> List[str]:
        return [e.message for e in self._entries]

    def last_action_by(self, actor_id: str) -> Optional[CombatLogEntry]:
        for entry in reversed(self._entries):
            if entry.actor_id == actor_id:
                return entry
        return None

    def to_dict(self) -> dict:
        return {
            "capacity": self._capacity,
            "entries": [e.to_dict() for e in self._entries],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CombatLog":
        log = cls(capacity=int(data.get("capacity", 500)))
        entries = [
            CombatLogEntry(
                id=item["id"],
                round=int(item["round"]),
                timestamp=datetime.fromisoformat(item["timestamp"]),
                actor_id=item["actor_id"],
                actor_name=item["actor_name"],
                action=item["action"],
                target_id=item.get("target_id"),
                target_name=item.get("target_name"),
                message=item.get("message", ""),
            )
            for item in data.get("entries", [])
        ]
        # Payloads written elsewhere may hold more than the capacity allows
        log._entries = entries[-log.capacity :]
        return log
