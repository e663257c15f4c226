from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from .models import Combatant, EffectType, StatusEffect, new_id

logger = logging.getLogger(__name__)


@dataclass
class EffectTick:
    """Summary of one end-of-round effect tick for a combatant."""

    combatant_id: str
    damage: int = 0
    healing: int = 0
    expired: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.damage or self.healing or self.expired)


def effect_from_template(template: Mapping[str, Any], source_id: Optional[str] = None) -> StatusEffect:
    """Create a fresh StatusEffect instance from a content template."""
    return StatusEffect(
        id=new_id(),
        name=str(template["name"]),
        type=EffectType(template["type"]),
        duration=int(template["duration"]),
        magnitude=int(template.get("magnitude", 0)),
        affected_stat=template.get("affected_stat"),
        icon=template.get("icon"),
        source_id=source_id,
    )


def apply_effect(target: Combatant, effect: StatusEffect) -> StatusEffect:
    """Apply an effect, refreshing an active one of the same name instead of stacking."""
    for existing in target.status_effects:
        if existing.name == effect.name and not existing.expired:
            existing.duration = max(existing.duration, effect.duration)
            existing.magnitude = effect.magnitude
            existing.source_id = effect.source_id
            logger.debug(
                "%s: refreshed %s (duration=%d, magnitude=%d)",
                target.name,
                existing.name,
                existing.duration,
                existing.magnitude,
            )
            return existing
    target.status_effects.append(effect)
    logger.debug(
        "%s: gained %s [%s] for %d rounds (magnitude=%d)",
        target.name,
        effect.name,
        effect.type.value,
        effect.duration,
        effect.magnitude,
    )
    return effect


def remove_effects(
    target: Combatant,
    *,
    names: Optional[Iterable[str]] = None,
    types: Optional[Iterable[EffectType]] = None,
) -> List[str]:
    """Remove effects matching any given name or type. Returns removed names."""
    name_set = set(names or ())
    type_set = {EffectType(t) for t in (types or ())}
    kept: List[StatusEffect] = []
    removed: List[str] = []
    for effect in target.status_effects:
        if effect.name in name_set or effect.type in type_set:
            removed.append(effect.name)
        else:
            kept.append(effect)
    target.status_effects = kept
    if removed:
        logger.debug("%s: removed effects %s", target.name, removed)
    return removed


def tick_effects(combatant: Combatant) -> EffectTick:
    """Process one round of status effects for a combatant.

    DoTs deal and HoTs heal their magnitude, every duration drops by one and
    effects reaching zero are removed. Dead combatants are left untouched.
    """
    tick = EffectTick(combatant_id=combatant.id)
    if not combatant.alive:
        return tick

    for effect in combatant.status_effects:
        if effect.type == EffectType.DOT:
            tick.damage += combatant.take_damage(max(0, effect.magnitude))
        elif effect.type == EffectType.HOT:
            tick.healing += combatant.heal(max(0, effect.magnitude))
        effect.duration -= 1

    remaining: List[StatusEffect] = []
    for effect in combatant.status_effects:
        if effect.expired:
            tick.expired.append(effect.name)
        else:
            remaining.append(effect)
    combatant.status_effects = remaining

    if tick.changed:
        logger.debug(
            "%s effect tick: damage=%d healing=%d expired=%s",
            combatant.name,
            tick.damage,
            tick.healing,
            tick.expired,
        )
    return tick
