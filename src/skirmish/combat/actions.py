from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from ..config import CombatConfig
from ..content.loader import ContentLibrary
from ..content.models import ItemDefinition, SkillDefinition, TargetType
from ..errors import ContentError, IllegalActionError
from ..utils.random_provider import RandomProvider
from .damage import DamageCalculator
from .effects import apply_effect, effect_from_template, remove_effects
from .models import ActionResult, ActionType, CombatAction, Combatant, CombatSession

logger = logging.getLogger(__name__)


class ActionResolver:
    """Validates and resolves combat actions against a session.

    ``validate`` rejects anything illegal with IllegalActionError before any
    state changes; the per-action methods assume a validated action.
    """

    def __init__(
        self,
        library: ContentLibrary,
        calculator: Optional[DamageCalculator] = None,
        config: Optional[CombatConfig] = None,
    ) -> None:
        self.library = library
        self.config = config or CombatConfig.default()
        self.calculator = calculator or DamageCalculator(self.config)

    # --------------- Legality ---------------

    def usable_skills(self, actor: Combatant) -> List[str]:
        """Known skills that are off cooldown and affordable right now."""
        usable = []
        for skill_id in actor.skills:
            if not self.library.has_skill(skill_id):
                continue
            skill = self.library.skill(skill_id)
            if actor.cooldowns.get(skill_id, 0) > 0:
                continue
            if actor.can_afford(stamina=skill.stamina_cost, mana=skill.mana_cost):
                usable.append(skill_id)
        return usable

    def available_actions(self, session: CombatSession, actor: Combatant) -> List[ActionType]:
        if not actor.can_act:
            return []
        actions: List[ActionType] = []
        if actor.can_afford(stamina=self.config.attack_stamina_cost):
            actions.append(ActionType.ATTACK)
        actions.append(ActionType.DEFEND)
        if self.usable_skills(actor):
            actions.append(ActionType.SKILL)
        if any(qty > 0 for qty in actor.inventory.values()):
            actions.append(ActionType.ITEM)
        if not actor.is_player or session.options.can_flee:
            actions.append(ActionType.FLEE)
        actions.append(ActionType.WAIT)
        return actions

    def validate(self, session: CombatSession, action: CombatAction, actor: Combatant) -> None:
        """Raise IllegalActionError if ``actor`` may not perform ``action`` now."""
        if session.find(actor.id) is not actor:
            raise IllegalActionError(f"{actor.name} is not part of this combat")
        if action.actor_id != actor.id:
            raise IllegalActionError("Action actor does not match the acting combatant")
        if not actor.can_act:
            raise IllegalActionError(f"{actor.name} cannot act")

        if action.type == ActionType.ATTACK:
            if not actor.can_afford(stamina=self.config.attack_stamina_cost):
                raise IllegalActionError(f"{actor.name} lacks the stamina to attack")
            self._resolve_target(session, actor, action.target_id, TargetType.ENEMY)
        elif action.type == ActionType.SKILL:
            skill = self._known_skill(actor, action.skill_id)
            remaining = actor.cooldowns.get(skill.id, 0)
            if remaining > 0:
                raise IllegalActionError(f"{skill.name} is on cooldown for {remaining} more round(s)")
            if not actor.can_afford(stamina=skill.stamina_cost, mana=skill.mana_cost):
                raise IllegalActionError(
                    f"{actor.name} cannot pay for {skill.name} "
                    f"(stamina {skill.stamina_cost}, mana {skill.mana_cost})"
                )
            self._resolve_target(session, actor, action.target_id, skill.target)
        elif action.type == ActionType.ITEM:
            item = self._carried_item(actor, action.item_id)
            self._resolve_target(session, actor, action.target_id, item.target)
        elif action.type == ActionType.FLEE:
            if actor.is_player and not session.options.can_flee:
                raise IllegalActionError("Fleeing is not possible in this combat")

    def _known_skill(self, actor: Combatant, skill_id: Optional[str]) -> SkillDefinition:
        if not skill_id:
            raise IllegalActionError("SKILL requires a skill_id")
        if skill_id not in actor.skills:
            raise IllegalActionError(f"{actor.name} does not know {skill_id}")
        try:
            return self.library.skill(skill_id)
        except ContentError as exc:
            raise IllegalActionError(str(exc)) from exc

    def _carried_item(self, actor: Combatant, item_id: Optional[str]) -> ItemDefinition:
        if not item_id:
            raise IllegalActionError("ITEM requires an item_id")
        if actor.item_count(item_id) <= 0:
            raise IllegalActionError(f"{actor.name} does not have item '{item_id}' to use.")
        try:
            return self.library.item(item_id)
        except ContentError as exc:
            raise IllegalActionError(str(exc)) from exc

    def _resolve_target(
        self,
        session: CombatSession,
        actor: Combatant,
        target_id: Optional[str],
        target_type: Union[TargetType, str],
    ) -> Combatant:
        target_type = TargetType(target_type)
        if target_type == TargetType.SELF:
            if target_id is not None and target_id != actor.id:
                raise IllegalActionError("This action can only target the user")
            return actor
        if target_type == TargetType.ALLY and target_id is None:
            return actor
        if target_id is None:
            raise IllegalActionError("This action requires a target")

        target = session.find(target_id)
        if target is None:
            raise IllegalActionError(f"Target {target_id} not found")
        if not target.active:
            raise IllegalActionError(f"{target.name} is no longer in the fight")
        same_side = target.is_player == actor.is_player
        if target_type == TargetType.ENEMY and same_side:
            raise IllegalActionError(f"{actor.name} cannot target an ally with this action")
        if target_type == TargetType.ALLY and not same_side:
            raise IllegalActionError(f"{actor.name} cannot target an enemy with this action")
        return target

    # --------------- Resolution ---------------

    def resolve(
        self,
        session: CombatSession,
        action: CombatAction,
        actor: Combatant,
        rng: RandomProvider,
    ) -> ActionResult:
        self.validate(session, action, actor)
        logger.debug("Resolving %s by %s", action.type.value, actor.name)
        if action.type == ActionType.ATTACK:
            return self.attack(session, action, actor, rng)
        if action.type == ActionType.DEFEND:
            return self.defend(action, actor)
        if action.type == ActionType.SKILL:
            return self.skill(session, action, actor, rng)
        if action.type == ActionType.ITEM:
            return self.item(session, action, actor)
        if action.type == ActionType.FLEE:
            return self.flee(session, action, actor, rng)
        return ActionResult(success=True, action=action, message=f"{actor.name} waits.")

    def attack(
        self,
        session: CombatSession,
        action: CombatAction,
        actor: Combatant,
        rng: RandomProvider,
    ) -> ActionResult:
        target = self._resolve_target(session, actor, action.target_id, TargetType.ENEMY)
        actor.spend(stamina=self.config.attack_stamina_cost)

        roll = self.calculator.roll_attack(actor, target, rng)
        if not roll.hit:
            return ActionResult(
                success=True,
                action=action,
                damage=0,
                is_miss=True,
                message=f"{actor.name} misses {target.name}!",
            )

        defending = target.is_defending
        applied = target.take_damage(roll.damage)
        killed = not target.alive
        message = f"{actor.name} hits {target.name} for {applied} damage!"
        if roll.critical:
            message += " Critical hit!"
        if defending:
            message += " (defending)"
        if killed:
            message += f" {target.name} is defeated!"
        return ActionResult(
            success=True,
            action=action,
            damage=applied,
            is_critical=roll.critical,
            target_killed=killed,
            message=message,
        )

    def defend(self, action: CombatAction, actor: Combatant) -> ActionResult:
        actor.is_defending = True
        logger.debug("%s is defending until their next turn", actor.name)
        return ActionResult(success=True, action=action, message=f"{actor.name} takes a defensive stance!")

    def skill(
        self,
        session: CombatSession,
        action: CombatAction,
        actor: Combatant,
        rng: RandomProvider,
    ) -> ActionResult:
        skill = self._known_skill(actor, action.skill_id)
        target = self._resolve_target(session, actor, action.target_id, skill.target)
        actor.spend(stamina=skill.stamina_cost, mana=skill.mana_cost)
        if skill.cooldown:
            actor.cooldowns[skill.id] = skill.cooldown

        result = ActionResult(success=True, action=action, message="")
        parts = [f"{actor.name} uses {skill.name}"]
        if target is not actor:
            parts[0] += f" on {target.name}"

        if skill.deals_damage:
            roll = self.calculator.roll_attack(actor, target, rng, power=skill.power, can_miss=skill.can_miss)
            if not roll.hit:
                result.is_miss = True
                result.damage = 0
                result.message = parts[0] + " but misses!"
                return result
            result.damage = target.take_damage(roll.damage)
            result.is_critical = roll.critical
            result.target_killed = not target.alive
            parts.append(f"dealing {result.damage} damage" + (" (critical!)" if roll.critical else ""))

        self._apply_support(skill.heal, skill.effects, skill.cleanse, actor, target, result, parts)
        if result.target_killed:
            parts.append(f"{target.name} is defeated")
        result.message = ", ".join(parts) + "!"
        return result

    def item(self, session: CombatSession, action: CombatAction, actor: Combatant) -> ActionResult:
        item = self._carried_item(actor, action.item_id)
        target = self._resolve_target(session, actor, action.target_id, item.target)
        actor.consume_item(item.id)

        result = ActionResult(success=True, action=action, message="")
        parts = [f"{actor.name} uses {item.name}"]
        if target is not actor:
            parts[0] += f" on {target.name}"

        if item.damage:
            result.damage = target.take_damage(item.damage)
            result.target_killed = not target.alive
            parts.append(f"dealing {result.damage} damage")
        if item.restore_mana:
            parts.append(f"restoring {target.mana.fill(item.restore_mana)} mana")
        if item.restore_stamina:
            parts.append(f"restoring {target.stamina.fill(item.restore_stamina)} stamina")

        self._apply_support(item.heal, item.effects, item.cleanse, actor, target, result, parts)
        if result.target_killed:
            parts.append(f"{target.name} is defeated")
        result.message = ", ".join(parts) + "!"
        return result

    def _apply_support(
        self,
        heal: int,
        effects: Sequence[Mapping[str, Any]],
        cleanse: Sequence[str],
        actor: Combatant,
        target: Combatant,
        result: ActionResult,
        parts: List[str],
    ) -> None:
        if heal:
            result.healing = target.heal(heal)
            parts.append(f"restoring {result.healing} HP")
        if target.alive:
            for template in effects:
                applied = apply_effect(target, effect_from_template(template, source_id=actor.id))
                result.effects_applied.append(applied)
                parts.append(f"{target.name} is affected by {applied.name} ({applied.duration} rounds)")
        if cleanse:
            removed = remove_effects(target, names=cleanse)
            result.effects_removed.extend(removed)
            if removed:
                parts.append(f"curing {', '.join(removed)}")

    def flee_chance(self, session: CombatSession, actor: Combatant) -> float:
        """Chance for ``actor`` to escape.

        base + (DEX - best opposing DEX) * 0.02 + (1 - hp ratio) * 0.2,
        clamped to [flee_min, flee_max]. Always 1.0 with no active opponents.
        """
        cfg = self.config
        opponents = [c for c in session.opponents_of(actor) if c.active]
        if not opponents:
            return 1.0
        base = cfg.flee_base_player if actor.is_player else cfg.flee_base_enemy
        best_dex = max(c.effective_attribute("dexterity") for c in opponents)
        chance = base + (actor.effective_attribute("dexterity") - best_dex) * 0.02
        chance += (1.0 - actor.hp.ratio) * 0.2
        chance = max(cfg.flee_min, min(cfg.flee_max, chance))
        logger.debug("Flee chance for %s: %.3f", actor.name, chance)
        return chance

    def flee(
        self,
        session: CombatSession,
        action: CombatAction,
        actor: Combatant,
        rng: RandomProvider,
    ) -> ActionResult:
        chance = self.flee_chance(session, actor)
        roll = rng.random()
        success = roll < chance
        logger.debug("Flee attempt by %s: roll=%.5f, chance=%.5f, success=%s", actor.name, roll, chance, success)
        if not success:
            return ActionResult(
                success=False,
                action=action,
                fled=False,
                message=f"{actor.name} tries to flee but fails!",
            )
        actor.fled = True
        actor.is_defending = False
        return ActionResult(success=True, action=action, fled=True, message=f"{actor.name} flees the battle!")
