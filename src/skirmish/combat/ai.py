from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..content.models import BehaviorConfig, BehaviorType, SkillDefinition, TargetType
from ..utils.random_provider import RandomProvider
from .actions import ActionResolver
from .models import ActionType, CombatAction, Combatant, EnemyIntention, IntentionType

logger = logging.getLogger(__name__)

WOUNDED_ALLY_RATIO = 0.5

INTENTION_ICONS = {
    IntentionType.ATTACK: "⚔️",
    IntentionType.DEFEND: "🛡️",
    IntentionType.SKILL: "✨",
    IntentionType.FLEE: "🏃",
    IntentionType.BUFF: "📯",
    IntentionType.HEAL: "💚",
}

SKILL_DESCRIPTIONS = {
    "skill_bite": "Baring its fangs...",
    "skill_howl": "Drawing breath to howl...",
    "skill_dirty_trick": "Planning a dirty trick...",
    "skill_backstab": "Looking for a weak spot...",
    "skill_throw_rock": "Picking up a rock...",
    "skill_bone_strike": "Raising a bone club...",
    "skill_venom_bite": "Dripping venom...",
    "skill_heal": "Channeling a healing spell...",
    "skill_buff": "Preparing a rallying cry...",
}


def select_weakest_target(targets: Sequence[Combatant]) -> Optional[Combatant]:
    """The active target with the lowest HP ratio; earliest wins ties."""
    weakest: Optional[Combatant] = None
    for target in targets:
        if not target.active:
            continue
        if weakest is None or target.hp.ratio < weakest.hp.ratio:
            weakest = target
    return weakest


def skill_description(skill: SkillDefinition) -> str:
    return SKILL_DESCRIPTIONS.get(skill.id, f"Preparing {skill.name}...")


class EnemyAI:
    """Chooses what an enemy will do on its turn.

    The decision is made ahead of time and stored on the combatant as an
    EnemyIntention so it can be shown to the player before it happens.
    """

    def __init__(self, resolver: ActionResolver) -> None:
        self.resolver = resolver
        self.library = resolver.library

    def behavior_for(self, enemy: Combatant) -> BehaviorConfig:
        return self.library.behavior(enemy.template_id)

    def choose_target(
        self, enemy: Combatant, opponents: Sequence[Combatant], behavior: BehaviorConfig
    ) -> Optional[Combatant]:
        active = [o for o in opponents if o.active]
        if not active:
            return None
        if behavior.type == BehaviorType.TACTICAL:
            return select_weakest_target(active)
        for opponent in active:
            if opponent.is_player:
                return opponent
        return active[0]

    def determine_intention(
        self,
        enemy: Combatant,
        opponents: Sequence[Combatant],
        allies: Sequence[Combatant] = (),
        rng: Optional[RandomProvider] = None,
    ) -> EnemyIntention:
        """Plan the enemy's next move.

        Wounded enemies react by behaviour first (cowards may flee, defensive
        ones may defend, berserkers attack). Support enemies heal a wounded
        ally, then any enemy may roll to use a skill, and the fallback is a
        basic attack on the chosen target.
        """
        rng = rng or RandomProvider()
        behavior = self.behavior_for(enemy)
        target = self.choose_target(enemy, opponents, behavior)
        is_low_hp = enemy.hp.ratio <= behavior.low_hp_threshold

        if is_low_hp:
            if behavior.type == BehaviorType.COWARD and rng.random() < behavior.flee_chance:
                return self._intention(IntentionType.FLEE, "Getting ready to run...")
            if behavior.type == BehaviorType.DEFENSIVE and rng.random() < behavior.defend_chance:
                return self._intention(IntentionType.DEFEND, "Taking a defensive stance")
            if behavior.type == BehaviorType.BERSERKER and target is not None:
                return self._intention(IntentionType.ATTACK, "Will attack in a frenzy!", target_id=target.id)

        usable = [self.library.skill(s) for s in self.resolver.usable_skills(enemy)]

        if behavior.type == BehaviorType.SUPPORT:
            heal = self._support_heal(enemy, allies, usable)
            if heal is not None:
                return heal

        if usable and rng.random() < behavior.skill_use_chance:
            skill = rng.choice(usable)
            skill_target = self._skill_target(enemy, skill, target, allies)
            if skill_target is not None:
                kind = IntentionType(skill.intention)
                return self._intention(
                    kind,
                    skill_description(skill),
                    target_id=skill_target.id,
                    skill_id=skill.id,
                )

        if target is None:
            return self._intention(IntentionType.DEFEND, "Waiting warily")
        return self._intention(IntentionType.ATTACK, "Preparing to attack...", target_id=target.id)

    def plan(
        self,
        enemy: Combatant,
        opponents: Sequence[Combatant],
        allies: Sequence[Combatant],
        rng: RandomProvider,
    ) -> EnemyIntention:
        """Determine an intention and store it on the enemy."""
        intention = self.determine_intention(enemy, opponents, allies, rng)
        enemy.intention = intention
        logger.debug(
            "%s intends to %s (target=%s, skill=%s)",
            enemy.name,
            intention.type.value,
            intention.target_id,
            intention.skill_id,
        )
        return intention

    def _support_heal(
        self, enemy: Combatant, allies: Sequence[Combatant], usable: List[SkillDefinition]
    ) -> Optional[EnemyIntention]:
        heals = [s for s in usable if s.heal > 0 and s.target in (TargetType.ALLY, TargetType.SELF)]
        if not heals:
            return None
        for ally in allies:
            if not ally.active or ally.hp.ratio >= WOUNDED_ALLY_RATIO:
                continue
            skill = next((s for s in heals if s.target == TargetType.ALLY or ally is enemy), None)
            if skill is None:
                continue
            return self._intention(
                IntentionType.HEAL,
                skill_description(skill),
                target_id=ally.id,
                skill_id=skill.id,
            )
        return None

    def _skill_target(
        self,
        enemy: Combatant,
        skill: SkillDefinition,
        target: Optional[Combatant],
        allies: Sequence[Combatant],
    ) -> Optional[Combatant]:
        if skill.target == TargetType.SELF:
            return enemy
        if skill.target == TargetType.ALLY:
            return select_weakest_target(allies) or enemy
        return target

    @staticmethod
    def _intention(
        kind: IntentionType,
        description: str,
        target_id: Optional[str] = None,
        skill_id: Optional[str] = None,
    ) -> EnemyIntention:
        return EnemyIntention(
            type=kind,
            description=description,
            icon=INTENTION_ICONS[kind],
            target_id=target_id,
            skill_id=skill_id,
        )


def intention_to_action(enemy: Combatant, intention: EnemyIntention) -> CombatAction:
    """Translate a telegraphed intention into the action the enemy performs."""
    if intention.type == IntentionType.DEFEND:
        return CombatAction(type=ActionType.DEFEND, actor_id=enemy.id)
    if intention.type == IntentionType.FLEE:
        return CombatAction(type=ActionType.FLEE, actor_id=enemy.id)
    if intention.skill_id and intention.type in (IntentionType.SKILL, IntentionType.HEAL, IntentionType.BUFF):
        return CombatAction(
            type=ActionType.SKILL,
            actor_id=enemy.id,
            target_id=intention.target_id,
            skill_id=intention.skill_id,
        )
    return CombatAction(type=ActionType.ATTACK, actor_id=enemy.id, target_id=intention.target_id)
