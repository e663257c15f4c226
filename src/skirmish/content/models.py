from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


logger = logging.getLogger(__name__)


class TargetType(str, Enum):
    ENEMY = "enemy"
    SELF = "self"
    ALLY = "ally"


class BehaviorType(str, Enum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    TACTICAL = "tactical"
    COWARD = "coward"
    BERSERKER = "berserker"
    SUPPORT = "support"


@dataclass(frozen=True)
class SkillDefinition:
    """A skill or spell.

    ``power`` multiplies a basic attack roll; 0 means the skill deals no
    damage and only heals, cleanses or applies effects.
    """

    id: str
    name: str
    target: TargetType
    description: str = ""
    stamina_cost: int = 0
    mana_cost: int = 0
    cooldown: int = 0
    power: float = 0.0
    heal: int = 0
    can_miss: bool = True
    effects: Tuple[Dict[str, Any], ...] = ()
    cleanse: Tuple[str, ...] = ()
    intention: str = "skill"

    @property
    def deals_damage(self) -> bool:
        return self.power > 0

    @classmethod
    def from_dict(cls, skill_id: str, data: Mapping[str, Any]) -> "SkillDefinition":
        return cls(
            id=skill_id,
            name=data["name"],
            target=TargetType(data["target"]),
            description=data.get("description", ""),
            stamina_cost=int(data.get("stamina_cost", 0)),
            mana_cost=int(data.get("mana_cost", 0)),
            cooldown=int(data.get("cooldown", 0)),
            power=float(data.get("power", 0.0)),
            heal=int(data.get("heal", 0)),
            can_miss=bool(data.get("can_miss", True)),
            effects=tuple(dict(e) for e in data.get("effects", [])),
            cleanse=tuple(data.get("cleanse", [])),
            intention=data.get("intention", "skill"),
        )


@dataclass(frozen=True)
class ItemDefinition:
    id: str
    name: str
    target: TargetType
    description: str = ""
    heal: int = 0
    restore_mana: int = 0
    restore_stamina: int = 0
    damage: int = 0
    effects: Tuple[Dict[str, Any], ...] = ()
    cleanse: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, item_id: str, data: Mapping[str, Any]) -> "ItemDefinition":
        return cls(
            id=item_id,
            name=data["name"],
            target=TargetType(data["target"]),
            description=data.get("description", ""),
            heal=int(data.get("heal", 0)),
            restore_mana=int(data.get("restore_mana", 0)),
            restore_stamina=int(data.get("restore_stamina", 0)),
            damage=int(data.get("damage", 0)),
            effects=tuple(dict(e) for e in data.get("effects", [])),
            cleanse=tuple(data.get("cleanse", [])),
        )


@dataclass(frozen=True)
class BehaviorConfig:
    """Enemy AI tuning.

    Attributes:
        low_hp_threshold: HP ratio at or below which the enemy counts as wounded.
        flee_chance: Chance a wounded coward plans to flee.
        defend_chance: Chance a wounded defensive enemy plans to defend.
        skill_use_chance: Chance to use a skill instead of a basic attack.
    """

    type: BehaviorType = BehaviorType.AGGRESSIVE
    low_hp_threshold: float = 0.25
    flee_chance: float = 0.15
    defend_chance: float = 0.1
    skill_use_chance: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BehaviorConfig":
        if not data:
            return cls()
        return cls(
            type=BehaviorType(data.get("type", "aggressive")),
            low_hp_threshold=float(data.get("low_hp_threshold", 0.25)),
            flee_chance=float(data.get("flee_chance", 0.15)),
            defend_chance=float(data.get("defend_chance", 0.1)),
            skill_use_chance=float(data.get("skill_use_chance", 0.0)),
        )


@dataclass(frozen=True)
class EnemyTemplate:
    id: str
    name: str
    hp: int
    level: int = 1
    stamina: int = 20
    mana: int = 0
    attributes: Dict[str, int] = field(default_factory=dict)
    skills: Tuple[str, ...] = ()
    inventory: Dict[str, int] = field(default_factory=dict)
    behavior: Optional[BehaviorConfig] = None

    @classmethod
    def from_dict(cls, enemy_id: str, data: Mapping[str, Any]) -> "EnemyTemplate":
        behavior = data.get("behavior")
        return cls(
            id=enemy_id,
            name=data["name"],
            hp=int(data["hp"]),
            level=int(data.get("level", 1)),
            stamina=int(data.get("stamina", 20)),
            mana=int(data.get("mana", 0)),
            attributes={k: int(v) for k, v in (data.get("attributes") or {}).items()},
            skills=tuple(data.get("skills", [])),
            inventory={k: int(v) for k, v in (data.get("inventory") or {}).items()},
            behavior=BehaviorConfig.from_dict(behavior) if behavior else None,
        )


# Used when a combat references an enemy id missing from the bestiary
UNKNOWN_ENEMY = EnemyTemplate(
    id="unknown",
    name="Unknown Enemy",
    hp=30,
    level=1,
    stamina=20,
    mana=0,
    attributes={
        "strength": 10,
        "dexterity": 10,
        "constitution": 10,
        "intelligence": 5,
        "wisdom": 5,
        "charisma": 5,
        "luck": 10,
    },
)
