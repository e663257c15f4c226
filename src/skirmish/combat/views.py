from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .models import Combatant, EnemyIntention, Resource, StatusEffect


class EffectView(BaseModel):
    name: str
    type: str
    duration: int
    magnitude: int = 0
    icon: Optional[str] = None

    @classmethod
    def from_effect(cls, effect: StatusEffect) -> "EffectView":
        return cls(
            name=effect.name,
            type=effect.type.value,
            duration=effect.duration,
            magnitude=effect.magnitude,
            icon=effect.icon,
        )


class IntentionView(BaseModel):
    type: str
    description: str
    icon: str
    target_id: Optional[str] = None
    skill_id: Optional[str] = None

    @classmethod
    def from_intention(cls, intention: EnemyIntention) -> "IntentionView":
        return cls(
            type=intention.type.value,
            description=intention.description,
            icon=intention.icon,
            target_id=intention.target_id,
            skill_id=intention.skill_id,
        )


class BarView(BaseModel):
    """A resource bar; ``percent`` is rounded and 0 when the maximum is 0."""

    current: int
    maximum: int
    percent: int = Field(..., ge=0, le=100)

    @classmethod
    def from_resource(cls, resource: Resource) -> "BarView":
        return cls(current=resource.current, maximum=resource.maximum, percent=resource.percent)


class CombatantView(BaseModel):
    id: str
    name: str
    is_player: bool
    level: int
    hp: BarView
    stamina: BarView
    mana: BarView
    is_alive: bool
    is_defending: bool
    fled: bool
    can_act: bool
    status_effects: List[EffectView] = Field(default_factory=list)
    intention: Optional[IntentionView] = None

    @classmethod
    def from_combatant(cls, combatant: Combatant) -> "CombatantView":
        # Only enemies telegraph their plans
        intention = None
        if not combatant.is_player and combatant.intention is not None and combatant.active:
            intention = IntentionView.from_intention(combatant.intention)
        return cls(
            id=combatant.id,
            name=combatant.name,
            is_player=combatant.is_player,
            level=combatant.level,
            hp=BarView.from_resource(combatant.hp),
            stamina=BarView.from_resource(combatant.stamina),
            mana=BarView.from_resource(combatant.mana),
            is_alive=combatant.alive,
            is_defending=combatant.is_defending,
            fled=combatant.fled,
            can_act=combatant.can_act,
            status_effects=[EffectView.from_effect(e) for e in combatant.status_effects if not e.expired],
            intention=intention,
        )


class TurnOrderEntry(BaseModel):
    id: str
    name: str
    is_player: bool
    initiative: int
    is_current: bool
    is_active: bool


class CombatView(BaseModel):
    """Everything a client needs to render the combat screen."""

    combat_id: str
    round: int
    phase: str
    is_player_turn: bool
    player: Optional[CombatantView] = None
    allies: List[CombatantView] = Field(default_factory=list)
    enemies: List[CombatantView] = Field(default_factory=list)
    turn_order: List[TurnOrderEntry] = Field(default_factory=list)
    current_turn_id: Optional[str] = None
    available_actions: List[str] = Field(default_factory=list)
    usable_skills: List[str] = Field(default_factory=list)
    recent_log: List[str] = Field(default_factory=list)
