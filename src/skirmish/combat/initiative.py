from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import CombatConfig
from ..utils.random_provider import RandomProvider
from .models import Combatant, ability_modifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitiativeRoll:
    """Breakdown of one initiative roll.

    Attributes:
        base_roll: The 1d20 result.
        dex_modifier: floor((DEX - 10) / 2).
        bonuses: Situational bonuses (ambush, alert, slow, luck, surprise).
        total: Sum of the above, never below 1.
    """

    combatant_id: str
    base_roll: int
    dex_modifier: int
    bonuses: int
    total: int


@dataclass(frozen=True)
class SurpriseCheck:
    surprised: bool
    attacker_bonus: int
    stealth_roll: int
    perception_roll: int


def roll_initiative(
    combatant: Combatant,
    rng: RandomProvider,
    is_ambush: bool = False,
    config: Optional[CombatConfig] = None,
    extra_bonus: int = 0,
) -> InitiativeRoll:
    """Roll 1d20 + DEX modifier + situational bonuses for a single combatant."""
    cfg = config or CombatConfig.default()
    base_roll = rng.roll(20)
    dex_modifier = ability_modifier(combatant.effective_attribute("dexterity"))

    bonuses = extra_bonus
    if is_ambush and not combatant.is_player:
        bonuses += cfg.ambush_bonus
    if combatant.has_effect("alert"):
        bonuses += cfg.alert_bonus
    if combatant.has_effect("slow"):
        bonuses -= cfg.slow_penalty
    # Small luck bonus
    bonuses += (combatant.effective_attribute("luck") - 10) // 5

    total = max(1, base_roll + dex_modifier + bonuses)
    logger.debug(
        "Initiative for %s: d20=%d dex=%+d bonuses=%+d -> %d",
        combatant.name,
        base_roll,
        dex_modifier,
        bonuses,
        total,
    )
    return InitiativeRoll(
        combatant_id=combatant.id,
        base_roll=base_roll,
        dex_modifier=dex_modifier,
        bonuses=bonuses,
        total=total,
    )


def calculate_initiative(
    combatants: Sequence[Combatant],
    rng: RandomProvider,
    is_ambush: bool = False,
    config: Optional[CombatConfig] = None,
    bonuses: Optional[Dict[str, int]] = None,
) -> List[Combatant]:
    """Roll initiative for everyone and return them in turn order.

    Order is total descending, then DEX descending, then a random draw. Each
    combatant's ``initiative`` field is updated in place.
    """
    bonuses = bonuses or {}
    keyed = []
    for combatant in combatants:
        roll = roll_initiative(
            combatant,
            rng,
            is_ambush=is_ambush,
            config=config,
            extra_bonus=bonuses.get(combatant.id, 0),
        )
        combatant.initiative = roll.total
        keyed.append((combatant, roll))

    # Tie-break draws are taken after all rolls so the d20 sequence is stable
    tiebreak = {id(c): rng.random() for c, _ in keyed}
    ordered = sorted(
        keyed,
        key=lambda pair: (
            -pair[1].total,
            -pair[0].attributes.dexterity,
            tiebreak[id(pair[0])],
        ),
    )
    order = [c for c, _ in ordered]
    logger.debug("Turn order: %s", format_turn_order(order, 0))
    return order


def check_surprise(
    attacker: Combatant,
    defender: Combatant,
    rng: RandomProvider,
    config: Optional[CombatConfig] = None,
) -> SurpriseCheck:
    """Stealth (d20 + DEX mod) against perception (d20 + WIS mod).

    The defender is surprised when stealth beats perception by more than 5;
    a surprising attacker gains +10 initiative.
    """
    cfg = config or CombatConfig.default()
    stealth = rng.roll(20) + ability_modifier(attacker.effective_attribute("dexterity"))
    perception = rng.roll(20) + ability_modifier(defender.effective_attribute("wisdom"))
    surprised = stealth > perception + 5
    logger.debug(
        "Surprise check %s vs %s: stealth=%d perception=%d surprised=%s",
        attacker.name,
        defender.name,
        stealth,
        perception,
        surprised,
    )
    return SurpriseCheck(
        surprised=surprised,
        attacker_bonus=cfg.surprise_bonus if surprised else 0,
        stealth_roll=stealth,
        perception_roll=perception,
    )


def next_turn(order: Sequence[Combatant], current_index: int) -> Tuple[int, bool]:
    """Find the next combatant able to act after ``current_index``.

    Dead, fled and crowd-controlled combatants are skipped. Passing the end of
    the order wraps to the start and flags a new round. Returns (-1, False)
    when nobody can act.
    """
    if not any(c.can_act for c in order):
        return -1, False

    size = len(order)
    index = current_index
    is_new_round = False
    for _ in range(size):
        index += 1
        if index >= size:
            index = 0
            is_new_round = True
        if order[index].can_act:
            return index, is_new_round
    return -1, False  # pragma: no cover - guarded by the any() check above


def format_turn_order(order: Sequence[Combatant], current_index: int) -> str:
    parts = []
    for i, c in enumerate(order):
        marker = "►" if i == current_index else " "
        side = "[P]" if c.is_player else "[E]"
        parts.append(f"{marker}{side} {c.name} ({c.initiative})")
    return " → ".join(parts)
