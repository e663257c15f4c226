import pytest

from skirmish.combat.effects import apply_effect, effect_from_template, remove_effects, tick_effects
from skirmish.combat.models import Combatant, EffectType, StatusEffect


def dummy(hp=50):
    return Combatant.build("Dummy", hp=hp)


def make_effect(name, type_, duration=2, magnitude=0, stat=None):
    return StatusEffect(id=f"{name}-id", name=name, type=type_, duration=duration, magnitude=magnitude, affected_stat=stat)


def test_reapplying_refreshes_instead_of_stacking():
    target = dummy()
    apply_effect(target, make_effect("poisoned", EffectType.DOT, duration=3, magnitude=4))
    active = apply_effect(target, make_effect("poisoned", EffectType.DOT, duration=2, magnitude=6))

    assert len(target.status_effects) == 1
    assert active.duration == 3
    assert active.magnitude == 6


def test_effect_from_template_makes_unique_instances():
    template = {"name": "burning", "type": "dot", "duration": 2, "magnitude": 3, "icon": "🔥"}
    first = effect_from_template(template, source_id="caster")
    second = effect_from_template(template)
    assert first.id != second.id
    assert first.type is EffectType.DOT
    assert first.source_id == "caster"
    assert first.icon == "🔥"


def test_remove_effects_by_name_and_type():
    target = dummy()
    apply_effect(target, make_effect("poisoned", EffectType.DOT))
    apply_effect(target, make_effect("burning", EffectType.DOT))
    apply_effect(target, make_effect("stunned", EffectType.CC))

    assert remove_effects(target, names=["poisoned"]) == ["poisoned"]
    assert remove_effects(target, types=[EffectType.CC]) == ["stunned"]
    assert [e.name for e in target.status_effects] == ["burning"]
    assert remove_effects(target, names=["missing"]) == []


def test_tick_applies_dot_and_hot_then_expires():
    target = dummy()
    target.hp.current = 30
    apply_effect(target, make_effect("burning", EffectType.DOT, duration=1, magnitude=3))
    apply_effect(target, make_effect("regrowth", EffectType.HOT, duration=2, magnitude=5))

    tick = tick_effects(target)
    assert tick.damage == 3
    assert tick.healing == 5
    assert tick.expired == ["burning"]
    assert target.hp.current == 32
    assert [e.name for e in target.status_effects] == ["regrowth"]
    assert target.status_effects[0].duration == 1


def test_dot_can_kill_and_dead_are_not_ticked():
    target = dummy(hp=10)
    target.hp.current = 2
    apply_effect(target, make_effect("poisoned", EffectType.DOT, duration=3, magnitude=4))

    assert tick_effects(target).damage == 2
    assert not target.alive

    second = tick_effects(target)
    assert not second.changed
    assert target.status_effects[0].duration == 2


def test_effective_attribute_uses_buffs_and_debuffs():
    target = Combatant.build("Dummy", attributes={"strength": 10, "dexterity": 3})
    apply_effect(target, make_effect("rallied", EffectType.BUFF, magnitude=3, stat="strength"))
    apply_effect(target, make_effect("blinded", EffectType.DEBUFF, magnitude=4, stat="dexterity"))
    assert target.effective_attribute("strength") == 13
    assert target.effective_attribute("dexterity") == 1


def test_crowd_control_blocks_acting_until_it_expires():
    target = dummy()
    apply_effect(target, make_effect("stunned", EffectType.CC, duration=1))
    assert target.is_crowd_controlled
    assert not target.can_act
    tick_effects(target)
    assert target.can_act


def test_unknown_affected_stat_is_rejected():
    with pytest.raises(ValueError):
        make_effect("weird", EffectType.BUFF, stat="speed")
