from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import CombatConfig
from ..utils.random_provider import RandomProvider
from .models import Combatant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttackRoll:
    """Details of a resolved attack roll.

    Attributes:
        hit: Whether the accuracy roll landed.
        critical: Whether the hit was a critical.
        damage: Final damage to apply (0 on a miss, otherwise >= 1).
        hit_chance: Percent chance to hit used for this roll.
        roll: The accuracy roll in [0, 100), or None when the attack cannot miss.
        multiplier: Variance multiplier applied to the base damage.
    """

    hit: bool
    critical: bool
    damage: int
    hit_chance: float
    roll: Optional[float] = None
    multiplier: float = 1.0


class DamageCalculator:
    """Accuracy, critical and damage math for attacks and damaging skills.

    The formulas are:
      hit%   = clamp(5, 95, 80 + (DEX_a - 10) * 2 - DEX_t * 1.5 [- 15 if defending])
      crit%  = clamp(1, 50, 5 + (DEX_a - 10) * 0.5 + (LUCK_a - 10) * 0.3)
      damage = max(1, floor((10 + STR_a * 1.5 + level_a * 2) * U(1 - v, 1 + v) - CON_t * 0.8))

    All stats are effective attributes, so buffs and debuffs are included.
    RNG draws happen in a fixed order per attack: accuracy, variance, critical.
    """

    def __init__(self, config: Optional[CombatConfig] = None) -> None:
        self.config = config or CombatConfig.default()

    def hit_chance(self, attacker: Combatant, target: Combatant) -> float:
        cfg = self.config
        chance = cfg.hit_base
        chance += (attacker.effective_attribute("dexterity") - 10) * 2
        chance -= target.effective_attribute("dexterity") * 1.5
        if target.is_defending:
            chance -= cfg.defend_hit_penalty
        return max(cfg.hit_min, min(cfg.hit_max, chance))

    def crit_chance(self, attacker: Combatant) -> float:
        cfg = self.config
        chance = cfg.crit_base
        chance += (attacker.effective_attribute("dexterity") - 10) * 0.5
        chance += (attacker.effective_attribute("luck") - 10) * 0.3
        return max(cfg.crit_min, min(cfg.crit_max, chance))

    def base_damage(self, attacker: Combatant, target: Combatant, rng: RandomProvider) -> Tuple[int, float]:
        """Return (damage, variance multiplier) before crit/defend adjustments."""
        raw = 10 + attacker.effective_attribute("strength") * 1.5 + attacker.level * 2
        variance = self.config.damage_variance
        multiplier = rng.uniform(1.0 - variance, 1.0 + variance) if variance else 1.0
        raw *= multiplier
        raw -= target.effective_attribute("constitution") * 0.8
        return max(1, math.floor(raw)), multiplier

    def roll_attack(
        self,
        attacker: Combatant,
        target: Combatant,
        rng: RandomProvider,
        power: float = 1.0,
        can_miss: bool = True,
    ) -> AttackRoll:
        """Roll accuracy, damage and critical for one attack.

        Args:
            power: Damage multiplier (1.0 for a basic attack, skill power otherwise).
            can_miss: Spells pass False and always hit.
        """
        if power < 0:
            raise ValueError("power cannot be negative")
        chance = self.hit_chance(attacker, target)
        roll: Optional[float] = None
        if can_miss:
            roll = rng.random() * 100
            if roll > chance:
                logger.debug("%s misses %s (roll=%.2f > %.2f)", attacker.name, target.name, roll, chance)
                return AttackRoll(hit=False, critical=False, damage=0, hit_chance=chance, roll=roll)

        damage, multiplier = self.base_damage(attacker, target, rng)
        damage = math.floor(damage * power)

        critical = rng.random() * 100 < self.crit_chance(attacker)
        if critical:
            damage = math.floor(damage * self.config.crit_multiplier)
        if target.is_defending:
            damage = math.floor(damage * self.config.defend_multiplier)
        damage = max(1, damage)

        logger.debug(
            "%s hits %s: damage=%d critical=%s defending=%s (multiplier=%.3f, power=%.2f)",
            attacker.name,
            target.name,
            damage,
            critical,
            target.is_defending,
            multiplier,
            power,
        )
        return AttackRoll(
            hit=True,
            critical=critical,
            damage=damage,
            hit_chance=chance,
            roll=roll,
            multiplier=multiplier,
        )
