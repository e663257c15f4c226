from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from ..config import CombatConfig
from ..content.loader import ContentLibrary, default_library
from ..errors import CombatError, CombatNotFoundError, IllegalActionError
from ..loot import LootManager
from ..utils.random_provider import RandomProvider
from .actions import ActionResolver
from .ai import EnemyAI, intention_to_action
from .damage import DamageCalculator
from .effects import tick_effects
from .initiative import calculate_initiative, format_turn_order, next_turn
from .log import CombatLog, CombatLogEntry
from .models import (
    ActionResult,
    ActionType,
    Attributes,
    CombatAction,
    Combatant,
    CombatOptions,
    CombatPhase,
    CombatResult,
    CombatSession,
    DefeatedEnemy,
    EffectType,
    EnemyIntention,
    LootedItem,
    Outcome,
    Resource,
    new_id,
)
from .views import CombatantView, CombatView, TurnOrderEntry

logger = logging.getLogger(__name__)

PlayerPolicy = Callable[[CombatSession, Combatant], CombatAction]

END_MESSAGES = {
    CombatPhase.VICTORY: "Victory! All enemies have been dealt with.",
    CombatPhase.DEFEAT: "Defeat... the party has fallen.",
    CombatPhase.FLED: "The party escaped from combat.",
}


class CombatManager:
    """Runs combat sessions from start to outcome.

    One manager holds any number of sessions keyed by id. Every random draw
    goes through the manager's RandomProvider, so a seeded provider replays a
    combat exactly.
    """

    def __init__(
        self,
        library: Optional[ContentLibrary] = None,
        config: Optional[CombatConfig] = None,
        rng: Optional[RandomProvider] = None,
    ) -> None:
        self.config = config or CombatConfig.default()
        self.config.validate()
        self.library = library or default_library()
        self.rng = rng or RandomProvider()
        self.calculator = DamageCalculator(self.config)
        self.resolver = ActionResolver(self.library, self.calculator, self.config)
        self.ai = EnemyAI(self.resolver)
        self.loot = LootManager(self.library.loot_tables)
        self._sessions: Dict[str, CombatSession] = {}
        self._results: Dict[str, CombatResult] = {}

    # --------------- Session lifecycle ---------------

    def spawn_enemy(self, enemy_id: str) -> Combatant:
        """Create a fresh enemy combatant from its content template."""
        template = self.library.enemy(enemy_id)
        return Combatant(
            id=new_id(),
            name=template.name,
            hp=Resource.full(template.hp),
            stamina=Resource.full(template.stamina),
            mana=Resource.full(template.mana),
            attributes=Attributes.from_dict(template.attributes),
            level=template.level,
            is_player=False,
            template_id=enemy_id,
            skills=list(template.skills),
            inventory=dict(template.inventory),
        )

    def start_combat(
        self,
        player: Combatant,
        options: CombatOptions,
        *,
        allies: Iterable[Combatant] = (),
        surprise: bool = False,
    ) -> CombatSession:
        """Create a session, roll initiative and hand the first turn out.

        Args:
            player: The lead player-side combatant.
            options: Enemies to spawn and encounter flags.
            allies: Extra player-side combatants.
            surprise: The player caught the enemies unaware and gains the
                surprise initiative bonus.
        """
        party = [player, *allies]
        for member in party:
            if not member.is_player:
                raise ValueError(f"{member.name} is not a player-side combatant")
        if not player.alive:
            raise ValueError(f"{player.name} cannot start a combat with 0 HP")

        enemies = [self.spawn_enemy(enemy_id) for enemy_id in options.enemy_ids]
        self._disambiguate_names(enemies)

        bonuses = {player.id: self.config.surprise_bonus} if surprise else None
        order = calculate_initiative(
            party + enemies,
            self.rng,
            is_ambush=options.is_ambush,
            config=self.config,
            bonuses=bonuses,
        )
        for combatant in order:
            combatant.is_defending = False
            combatant.fled = False

        session = CombatSession(
            id=new_id(),
            turn_order=order,
            options=options,
            current_turn_index=-1,
            log=CombatLog(capacity=self.config.log_capacity),
            lead_id=player.id,
        )
        self._sessions[session.id] = session

        opening = "Combat begins!"
        if options.is_ambush:
            opening = "Ambush! Combat begins!"
        elif surprise:
            opening = "You catch the enemy off guard! Combat begins!"
        session.log.system(session.round, "combat_start", opening)
        session.log.system(session.round, "turn_order", f"Turn order: {format_turn_order(order, 0)}")
        logger.info(
            "Combat %s started: %s vs %s (ambush=%s, surprise=%s)",
            session.id,
            ", ".join(c.name for c in party),
            ", ".join(e.name for e in enemies),
            options.is_ambush,
            surprise,
        )

        for enemy in session.enemies:
            self._plan(session, enemy)
        self._advance(session)
        return session

    def get_combat(self, combat_id: str) -> Optional[CombatSession]:
        return self._sessions.get(combat_id)

    def end_combat(self, combat_id: str) -> Optional[CombatResult]:
        """Forget a session, returning its result if it had finished."""
        self._require(combat_id)
        result = self.get_combat_result(combat_id)
        del self._sessions[combat_id]
        self._results.pop(combat_id, None)
        logger.debug("Combat %s removed", combat_id)
        return result

    def _require(self, combat_id: str) -> CombatSession:
        session = self._sessions.get(combat_id)
        if session is None:
            raise CombatNotFoundError(f"Combat {combat_id} not found")
        return session

    def _require_active(self, combat_id: str) -> CombatSession:
        session = self._require(combat_id)
        if not session.is_active:
            raise IllegalActionError(f"Combat {combat_id} has already ended ({session.phase.value})")
        return session

    @staticmethod
    def _disambiguate_names(enemies: List[Combatant]) -> None:
        counts: Dict[str, int] = {}
        for enemy in enemies:
            counts[enemy.name] = counts.get(enemy.name, 0) + 1
        seen: Dict[str, int] = {}
        for enemy in enemies:
            if counts[enemy.name] > 1:
                seen[enemy.name] = seen.get(enemy.name, 0) + 1
                enemy.name = f"{enemy.name} {chr(ord('A') + seen[enemy.name] - 1)}"

    # --------------- Turns ---------------

    def execute_player_action(self, combat_id: str, action: CombatAction) -> ActionResult:
        session = self._require_active(combat_id)
        if session.phase != CombatPhase.PLAYER_TURN:
            raise IllegalActionError(f"It is not the player's turn (phase={session.phase.value})")
        actor = session.current
        if actor is None or action.actor_id != actor.id:
            raise IllegalActionError("It is not this combatant's turn")

        result = self.resolver.resolve(session, action, actor, self.rng)
        self._record(session, actor, action, result)
        self._after_action(session, actor, result)
        return result

    def execute_enemy_turn(self, combat_id: str) -> ActionResult:
        session = self._require_active(combat_id)
        if session.phase != CombatPhase.ENEMY_TURN:
            raise IllegalActionError(f"It is not an enemy turn (phase={session.phase.value})")
        enemy = session.current
        if enemy is None:
            raise CombatError("No combatant holds the current turn")

        action = self._enemy_action(session, enemy)
        result = self.resolver.resolve(session, action, enemy, self.rng)
        self._record(session, enemy, action, result)
        if enemy.active:
            self._plan(session, enemy)
        else:
            enemy.intention = None
        self._after_action(session, enemy, result)
        return result

    def _plan(self, session: CombatSession, enemy: Combatant) -> EnemyIntention:
        allies = [a for a in session.allies_of(enemy) if a.active]
        return self.ai.plan(enemy, session.opponents_of(enemy), allies, self.rng)

    def _enemy_action(self, session: CombatSession, enemy: Combatant) -> CombatAction:
        """The telegraphed action, re-planned once if it became illegal, else WAIT."""
        intention = enemy.intention or self._plan(session, enemy)
        action = intention_to_action(enemy, intention)
        try:
            self.resolver.validate(session, action, enemy)
            return action
        except IllegalActionError as exc:
            logger.debug("%s cannot follow its plan (%s); re-planning", enemy.name, exc)

        action = intention_to_action(enemy, self._plan(session, enemy))
        try:
            self.resolver.validate(session, action, enemy)
            return action
        except IllegalActionError as exc:
            logger.debug("%s has no legal plan (%s); waiting", enemy.name, exc)
        return CombatAction(type=ActionType.WAIT, actor_id=enemy.id)

    def _record(self, session: CombatSession, actor: Combatant, action: CombatAction, result: ActionResult) -> None:
        target = session.find(action.target_id)
        session.log.add(
            CombatLogEntry(
                round=session.round,
                actor_id=actor.id,
                actor_name=actor.name,
                action=action.type.value,
                message=result.message,
                target_id=target.id if target else None,
                target_name=target.name if target else None,
                result=result,
            )
        )

    def _after_action(self, session: CombatSession, actor: Combatant, result: ActionResult) -> None:
        if result.fled and actor.is_player:
            self._finish(session, CombatPhase.FLED)
            return
        self._advance(session)

    def _advance(self, session: CombatSession) -> None:
        """Hand the turn to the next combatant able to act.

        Passing the end of the order, or finding nobody able to act, closes
        the round. Rounds where nobody can act count toward the stalemate
        guard, which ends the combat as a defeat.
        """
        if self._check_end(session):
            return

        order = session.turn_order
        search_from = session.current_turn_index
        stalled = 0
        while True:
            index, new_round = next_turn(order, search_from)
            if index != -1 and not new_round:
                break
            self._log_skipped(session, search_from, len(order))
            if index == -1:
                stalled += 1
                session.log.system(session.round, "stalled", "No one is able to act.")
            self._end_round(session)
            if self._check_end(session):
                return
            if stalled >= self.config.max_stalled_rounds:
                logger.warning("Combat %s stalled for %d rounds", session.id, stalled)
                session.log.system(session.round, "stalemate", "The fight grinds to a halt.")
                self._finish(session, CombatPhase.DEFEAT)
                return
            search_from = -1

        self._log_skipped(session, search_from, index)
        self._begin_turn(session, index)

    def _log_skipped(self, session: CombatSession, start: int, stop: int) -> None:
        for combatant in session.turn_order[start + 1 : stop]:
            if combatant.active and combatant.is_crowd_controlled:
                names = [e.name for e in combatant.status_effects if e.type == EffectType.CC and not e.expired]
                session.log.add(
                    CombatLogEntry(
                        round=session.round,
                        actor_id=combatant.id,
                        actor_name=combatant.name,
                        action="SKIPPED",
                        message=f"{combatant.name} is {', '.join(names)} and cannot act!",
                    )
                )

    def _begin_turn(self, session: CombatSession, index: int) -> None:
        session.current_turn_index = index
        actor = session.turn_order[index]
        if actor.is_defending:
            actor.is_defending = False
            logger.debug("%s lowers their guard", actor.name)
        session.actions_remaining = 1
        session.phase = CombatPhase.PLAYER_TURN if actor.is_player else CombatPhase.ENEMY_TURN
        logger.debug("Round %d: %s's turn (%s)", session.round, actor.name, session.phase.value)

    def _end_round(self, session: CombatSession) -> None:
        session.phase = CombatPhase.END_ROUND
        for combatant in session.turn_order:
            tick = tick_effects(combatant)
            if tick.damage:
                message = f"{combatant.name} takes {tick.damage} damage from status effects."
                if not combatant.alive:
                    message += f" {combatant.name} is defeated!"
                session.log.system(session.round, "effect_tick", message)
            if tick.healing:
                session.log.system(
                    session.round, "effect_tick", f"{combatant.name} recovers {tick.healing} HP from status effects."
                )
            if tick.expired:
                session.log.system(
                    session.round, "effect_expired", f"{', '.join(tick.expired)} wore off for {combatant.name}."
                )
            if combatant.active:
                combatant.stamina.fill(self.config.stamina_regen)
            for skill_id in list(combatant.cooldowns):
                remaining = combatant.cooldowns[skill_id] - 1
                if remaining <= 0:
                    del combatant.cooldowns[skill_id]
                else:
                    combatant.cooldowns[skill_id] = remaining

        session.round += 1
        session.log.system(session.round, "round_start", f"--- Round {session.round} ---")

    def _check_end(self, session: CombatSession) -> bool:
        players = session.players
        if any(p.fled for p in players):
            self._finish(session, CombatPhase.FLED)
        elif not any(p.alive for p in players):
            self._finish(session, CombatPhase.DEFEAT)
        elif not any(e.active for e in session.enemies):
            self._finish(session, CombatPhase.VICTORY)
        return not session.is_active

    def _finish(self, session: CombatSession, phase: CombatPhase) -> None:
        session.phase = phase
        session.is_active = False
        session.ended_at = datetime.now(timezone.utc)
        for combatant in session.turn_order:
            combatant.is_defending = False
            combatant.intention = None
        session.log.system(session.round, "combat_end", END_MESSAGES[phase])
        logger.info("Combat %s ended: %s after %d round(s)", session.id, phase.value, session.round)

    # --------------- Results and views ---------------

    def get_combat_result(self, combat_id: str) -> Optional[CombatResult]:
        """The outcome of a finished combat, or None while it is still running.

        Experience and loot are only granted on victory. Loot is rolled once
        and the same result is returned on every call.
        """
        session = self._require(combat_id)
        if session.is_active:
            return None
        cached = self._results.get(combat_id)
        if cached is not None:
            return cached

        defeated = [e for e in session.enemies if not e.alive]
        result = CombatResult(
            outcome=Outcome(session.phase.value.lower()),
            rounds=session.round,
            duration_ms=self._duration_ms(session),
            enemies_defeated=[DefeatedEnemy(id=e.id, name=e.name, level=e.level) for e in defeated],
        )
        if session.phase == CombatPhase.VICTORY:
            result.experience_gained = sum(e.level * self.config.xp_per_level for e in defeated)
            lead = session.player
            luck = lead.effective_attribute("luck") if lead else 10
            loot = self.loot.generate_many([e.template_id or "" for e in defeated], self.rng, luck=luck)
            result.gold_gained = loot.gold
            result.items_looted = [LootedItem(item_id=k, quantity=v) for k, v in sorted(loot.items.items())]
            logger.info(
                "Combat %s rewards: %d XP, %d gold, %d item stack(s)",
                combat_id,
                result.experience_gained,
                result.gold_gained,
                len(result.items_looted),
            )
        self._results[combat_id] = result
        return result

    @staticmethod
    def _duration_ms(session: CombatSession) -> int:
        ended = session.ended_at or datetime.now(timezone.utc)
        return max(0, int((ended - session.started_at).total_seconds() * 1000))

    def get_ui_state(self, combat_id: str) -> CombatView:
        session = self._require(combat_id)
        current = session.current if session.is_active else None
        is_player_turn = session.is_active and session.phase == CombatPhase.PLAYER_TURN
        lead = session.player

        available: List[str] = []
        usable: List[str] = []
        if is_player_turn and current is not None:
            available = [a.value for a in self.resolver.available_actions(session, current)]
            usable = self.resolver.usable_skills(current)

        return CombatView(
            combat_id=session.id,
            round=session.round,
            phase=session.phase.value,
            is_player_turn=is_player_turn,
            player=CombatantView.from_combatant(lead) if lead else None,
            allies=[CombatantView.from_combatant(c) for c in session.players if c is not lead],
            enemies=[CombatantView.from_combatant(c) for c in session.enemies],
            turn_order=[
                TurnOrderEntry(
                    id=c.id,
                    name=c.name,
                    is_player=c.is_player,
                    initiative=c.initiative,
                    is_current=c is current,
                    is_active=c.active,
                )
                for c in session.turn_order
            ],
            current_turn_id=current.id if current else None,
            available_actions=available,
            usable_skills=usable,
            recent_log=[e.message for e in session.log.recent(self.config.ui_log_lines)],
        )

    def run_auto(self, combat_id: str, player_policy: PlayerPolicy, max_turns: int = 1000) -> Optional[CombatResult]:
        """Play a combat to the end, asking ``player_policy`` for player moves."""
        session = self._require_active(combat_id)
        turns = 0
        while session.is_active:
            if turns >= max_turns:
                raise CombatError(f"Combat {combat_id} did not finish within {max_turns} turns")
            if session.phase == CombatPhase.PLAYER_TURN:
                self.execute_player_action(combat_id, player_policy(session, session.current))
            else:
                self.execute_enemy_turn(combat_id)
            turns += 1
        return self.get_combat_result(combat_id)
