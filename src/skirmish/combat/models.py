from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .log import CombatLog

logger = logging.getLogger(__name__)


class CombatPhase(str, Enum):
    INITIATIVE = "INITIATIVE"
    PLAYER_TURN = "PLAYER_TURN"
    ENEMY_TURN = "ENEMY_TURN"
    END_ROUND = "END_ROUND"
    VICTORY = "VICTORY"
    DEFEAT = "DEFEAT"
    FLED = "FLED"

    @property
    def is_terminal(self) -> bool:
        return self in (CombatPhase.VICTORY, CombatPhase.DEFEAT, CombatPhase.FLED)


class ActionType(str, Enum):
    ATTACK = "ATTACK"
    DEFEND = "DEFEND"
    SKILL = "SKILL"
    ITEM = "ITEM"
    FLEE = "FLEE"
    WAIT = "WAIT"


class EffectType(str, Enum):
    BUFF = "buff"
    DEBUFF = "debuff"
    DOT = "dot"
    HOT = "hot"
    CC = "cc"


class IntentionType(str, Enum):
    ATTACK = "attack"
    DEFEND = "defend"
    SKILL = "skill"
    FLEE = "flee"
    BUFF = "buff"
    HEAL = "heal"


class Outcome(str, Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"


ATTRIBUTE_NAMES = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
    "luck",
)


def new_id() -> str:
    return str(uuid.uuid4())


def ability_modifier(score: int) -> int:
    """d20-style modifier: floor((score - 10) / 2)."""
    return (int(score) - 10) // 2


@dataclass
class Attributes:
    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10
    luck: int = 10

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Attributes":
        data = dict(data or {})
        unknown = set(data) - set(ATTRIBUTE_NAMES)
        if unknown:
            raise ValueError(f"Unknown attributes: {sorted(unknown)}")
        return cls(**{k: int(v) for k, v in data.items()})

    def to_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class Resource:
    """A clamped pool such as HP, stamina or mana."""

    current: int
    maximum: int

    def __post_init__(self) -> None:
        self.current = int(self.current)
        self.maximum = int(self.maximum)
        if self.maximum < 0:
            raise ValueError("maximum must be non-negative")
        self.current = max(0, min(self.maximum, self.current))

    @classmethod
    def full(cls, maximum: int) -> "Resource":
        return cls(current=maximum, maximum=maximum)

    @property
    def percent(self) -> int:
        if self.maximum <= 0:
            return 0
        return int(round(self.current / self.maximum * 100))

    @property
    def ratio(self) -> float:
        if self.maximum <= 0:
            return 0.0
        return self.current / self.maximum

    def drain(self, amount: int) -> int:
        """Remove up to amount, returning what was actually removed."""
        if amount < 0:
            raise ValueError("amount cannot be negative")
        before = self.current
        self.current = max(0, self.current - int(amount))
        return before - self.current

    def fill(self, amount: int) -> int:
        """Add up to amount without exceeding maximum, returning what was added."""
        if amount < 0:
            raise ValueError("amount cannot be negative")
        before = self.current
        self.current = min(self.maximum, self.current + int(amount))
        return self.current - before


@dataclass
class StatusEffect:
    """A timed modifier ticking down at the end of every round.

    Attributes:
        id: Unique instance id.
        name: Effect name; also the key for refresh-on-reapply and for
            initiative modifiers such as 'alert' and 'slow'.
        type: buff/debuff adjust ``affected_stat``; dot/hot deal or heal
            ``magnitude`` per round; cc prevents the holder from acting.
        duration: Rounds remaining.
        magnitude: Strength of the effect.
    """

    id: str
    name: str
    type: EffectType
    duration: int
    magnitude: int = 0
    affected_stat: Optional[str] = None
    icon: Optional[str] = None
    source_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.type = EffectType(self.type)
        if self.duration < 0:
            raise ValueError("duration cannot be negative")
        if self.affected_stat is not None and self.affected_stat not in ATTRIBUTE_NAMES:
            raise ValueError(f"Unknown affected_stat: {self.affected_stat}")

    @property
    def expired(self) -> bool:
        return self.duration <= 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "duration": self.duration,
            "magnitude": self.magnitude,
            "affected_stat": self.affected_stat,
            "icon": self.icon,
            "source_id": self.source_id,
        }


@dataclass
class EnemyIntention:
    """What an enemy plans to do on its turn, telegraphed to the player."""

    type: IntentionType
    description: str
    icon: str
    target_id: Optional[str] = None
    skill_id: Optional[str] = None


@dataclass
class Combatant:
    """A participant in a combat, either player-controlled or an enemy."""

    id: str
    name: str
    hp: Resource
    stamina: Resource
    mana: Resource
    attributes: Attributes = field(default_factory=Attributes)
    level: int = 1
    is_player: bool = False
    template_id: Optional[str] = None
    initiative: int = 0
    status_effects: List[StatusEffect] = field(default_factory=list)
    is_defending: bool = False
    fled: bool = False
    skills: List[str] = field(default_factory=list)
    inventory: Dict[str, int] = field(default_factory=dict)
    cooldowns: Dict[str, int] = field(default_factory=dict)
    intention: Optional[EnemyIntention] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Combatant.name must be a non-empty string")
        if self.hp.maximum <= 0:
            raise ValueError("max hp must be >= 1")
        if self.level < 1:
            raise ValueError("level must be >= 1")

    @classmethod
    def build(
        cls,
        name: str,
        *,
        hp: int = 100,
        stamina: int = 50,
        mana: int = 30,
        level: int = 1,
        is_player: bool = False,
        attributes: Optional[Mapping[str, int]] = None,
        skills: Iterable[str] = (),
        inventory: Optional[Mapping[str, int]] = None,
        template_id: Optional[str] = None,
        id: Optional[str] = None,
    ) -> "Combatant":
        """Convenience constructor with full resource pools."""
        return cls(
            id=id or new_id(),
            name=name,
            hp=Resource.full(hp),
            stamina=Resource.full(stamina),
            mana=Resource.full(mana),
            attributes=Attributes.from_dict(attributes),
            level=level,
            is_player=is_player,
            template_id=template_id,
            skills=list(skills),
            inventory=dict(inventory or {}),
        )

    # State

    @property
    def alive(self) -> bool:
        return self.hp.current > 0

    @property
    def active(self) -> bool:
        """Still taking part in the fight (alive and has not fled)."""
        return self.alive and not self.fled

    @property
    def is_crowd_controlled(self) -> bool:
        return any(e.type == EffectType.CC and not e.expired for e in self.status_effects)

    @property
    def can_act(self) -> bool:
        return self.active and not self.is_crowd_controlled

    def has_effect(self, name: str) -> bool:
        return any(e.name == name and not e.expired for e in self.status_effects)

    def effective_attribute(self, name: str) -> int:
        """Base attribute adjusted by active buffs and debuffs, never below 1."""
        if name not in ATTRIBUTE_NAMES:
            raise ValueError(f"Unknown attribute: {name}")
        value = getattr(self.attributes, name)
        for effect in self.status_effects:
            if effect.affected_stat != name or effect.expired:
                continue
            if effect.type == EffectType.BUFF:
                value += effect.magnitude
            elif effect.type == EffectType.DEBUFF:
                value -= effect.magnitude
        return max(1, value)

    # Mutations

    def take_damage(self, amount: int) -> int:
        """Apply incoming damage, clamping HP to zero. Returns damage applied."""
        if amount < 0:
            raise ValueError("Damage amount cannot be negative.")
        if not self.alive:
            logger.debug("%s is already down. Incoming damage ignored.", self.name)
            return 0
        applied = self.hp.drain(amount)
        logger.debug("%s takes %d damage (HP: %d/%d)", self.name, applied, self.hp.current, self.hp.maximum)
        return applied

    def heal(self, amount: int) -> int:
        """Heal by amount, not exceeding max HP. Dead combatants cannot be healed."""
        if amount < 0:
            raise ValueError("Heal amount cannot be negative.")
        if not self.alive:
            return 0
        healed = self.hp.fill(amount)
        if healed:
            logger.debug("%s heals %d HP (HP: %d/%d)", self.name, healed, self.hp.current, self.hp.maximum)
        return healed

    def can_afford(self, stamina: int = 0, mana: int = 0) -> bool:
        return self.stamina.current >= stamina and self.mana.current >= mana

    def spend(self, stamina: int = 0, mana: int = 0) -> None:
        if not self.can_afford(stamina, mana):
            raise ValueError(f"{self.name} cannot afford stamina={stamina} mana={mana}")
        self.stamina.drain(stamina)
        self.mana.drain(mana)

    def item_count(self, item_id: str) -> int:
        return self.inventory.get(item_id, 0)

    def consume_item(self, item_id: str) -> None:
        count = self.item_count(item_id)
        if count <= 0:
            raise ValueError(f"{self.name} has no {item_id}")
        if count == 1:
            del self.inventory[item_id]
        else:
            self.inventory[item_id] = count - 1

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"Combatant(name={self.name!r}, hp={self.hp.current}/{self.hp.maximum}, player={self.is_player})"


def combatant_from_character(data: Mapping[str, Any], *, is_player: bool = True) -> Combatant:
    """Build a combatant from a persisted character payload.

    Expected shape (extra keys are ignored)::

        {"id": "...", "name": "Aria", "level": 3,
         "health": {"current": 40, "maximum": 50},
         "stamina": {"current": 30, "maximum": 30},
         "mana": {"current": 10, "maximum": 20},
         "attributes": {"strength": 12, ...},
         "skills": ["spell_fireball"], "inventory": {"potion_health_minor": 2}}
    """

    def pool(key: str, default: int) -> Resource:
        raw = data.get(key) or {}
        maximum = int(raw.get("maximum", default))
        return Resource(current=int(raw.get("current", maximum)), maximum=maximum)

    return Combatant(
        id=str(data.get("id") or new_id()),
        name=str(data["name"]),
        hp=pool("health", 100),
        stamina=pool("stamina", 50),
        mana=pool("mana", 0),
        attributes=Attributes.from_dict(data.get("attributes")),
        level=int(data.get("level", 1)),
        is_player=is_player,
        skills=list(data.get("skills", [])),
        inventory={str(k): int(v) for k, v in (data.get("inventory") or {}).items()},
    )


@dataclass
class CombatAction:
    type: ActionType
    actor_id: str
    target_id: Optional[str] = None
    skill_id: Optional[str] = None
    item_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.type = ActionType(self.type)


@dataclass
class ActionResult:
    """Outcome of one resolved combat action."""

    success: bool
    action: CombatAction
    message: str
    damage: Optional[int] = None
    healing: Optional[int] = None
    is_critical: bool = False
    is_miss: bool = False
    effects_applied: List[StatusEffect] = field(default_factory=list)
    effects_removed: List[str] = field(default_factory=list)
    target_killed: bool = False
    fled: bool = False


@dataclass
class CombatOptions:
    enemy_ids: List[str]
    is_ambush: bool = False
    can_flee: bool = True
    terrain: str = "normal"
    location_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.enemy_ids:
            raise ValueError("A combat needs at least one enemy")
        if self.terrain not in ("normal", "forest", "cave", "water", "fire"):
            raise ValueError(f"Unknown terrain: {self.terrain}")


@dataclass
class DefeatedEnemy:
    id: str
    name: str
    level: int


@dataclass
class LootedItem:
    item_id: str
    quantity: int


@dataclass
class CombatResult:
    outcome: Outcome
    rounds: int
    duration_ms: int
    experience_gained: int = 0
    gold_gained: int = 0
    items_looted: List[LootedItem] = field(default_factory=list)
    enemies_defeated: List[DefeatedEnemy] = field(default_factory=list)


@dataclass
class CombatSession:
    """Complete mutable state of one combat."""

    id: str
    turn_order: List[Combatant]
    options: CombatOptions
    round: int = 1
    phase: CombatPhase = CombatPhase.INITIATIVE
    current_turn_index: int = 0
    actions_remaining: int = 1
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None
    is_active: bool = True
    log: CombatLog = field(default_factory=CombatLog)
    lead_id: Optional[str] = None

    @property
    def current(self) -> Optional[Combatant]:
        if 0 <= self.current_turn_index < len(self.turn_order):
            return self.turn_order[self.current_turn_index]
        return None

    def find(self, combatant_id: Optional[str]) -> Optional[Combatant]:
        if combatant_id is None:
            return None
        for c in self.turn_order:
            if c.id == combatant_id:
                return c
        return None

    def allies_of(self, actor: Combatant) -> List[Combatant]:
        return [c for c in self.turn_order if c.is_player == actor.is_player]

    def opponents_of(self, actor: Combatant) -> List[Combatant]:
        return [c for c in self.turn_order if c.is_player != actor.is_player]

    @property
    def players(self) -> List[Combatant]:
        return [c for c in self.turn_order if c.is_player]

    @property
    def enemies(self) -> List[Combatant]:
        return [c for c in self.turn_order if not c.is_player]

    @property
    def player(self) -> Optional[Combatant]:
        """The lead player-side combatant, the one the combat was started for."""
        lead = self.find(self.lead_id)
        if lead is not None:
            return lead
        players = self.players
        return players[0] if players else None
