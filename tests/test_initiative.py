import pytest

from skirmish.combat.effects import apply_effect
from skirmish.combat.initiative import (
    calculate_initiative,
    check_surprise,
    format_turn_order,
    next_turn,
    roll_initiative,
)
from skirmish.combat.models import Combatant, EffectType, StatusEffect
from skirmish.utils.random_provider import RandomProvider


def make(name, is_player=False, **attrs):
    return Combatant.build(name, hp=50, is_player=is_player, attributes=attrs)


def effect(name, type_=EffectType.BUFF, duration=3, magnitude=0, stat=None):
    return StatusEffect(id=name, name=name, type=type_, duration=duration, magnitude=magnitude, affected_stat=stat)


def test_roll_is_d20_plus_dex_modifier(scripted):
    roll = roll_initiative(make("Hero", is_player=True, dexterity=14), scripted(rolls=[15]))
    assert roll.base_roll == 15
    assert roll.dex_modifier == 2
    assert roll.total == 17


def test_ambush_bonus_only_for_enemies(scripted):
    enemy = roll_initiative(make("Wolf"), scripted(rolls=[10]), is_ambush=True)
    hero = roll_initiative(make("Hero", is_player=True), scripted(rolls=[10]), is_ambush=True)
    assert enemy.total == 15
    assert hero.total == 10


def test_alert_and_slow_and_luck_modifiers(scripted):
    alert = make("Alert")
    apply_effect(alert, effect("alert"))
    assert roll_initiative(alert, scripted(rolls=[10])).total == 15

    slowed = make("Slowed")
    apply_effect(slowed, effect("slow", EffectType.DEBUFF, magnitude=2, stat="dexterity"))
    # DEX 8 -> -1, slow -4
    assert roll_initiative(slowed, scripted(rolls=[10])).total == 5

    lucky = make("Lucky", luck=20)
    assert roll_initiative(lucky, scripted(rolls=[10])).bonuses == 2


def test_total_never_below_one(scripted):
    sloth = make("Sloth", dexterity=1)
    apply_effect(sloth, effect("slow", EffectType.DEBUFF))
    assert roll_initiative(sloth, scripted(rolls=[1])).total == 1


def test_order_by_total_descending(scripted):
    a, b, c = make("A"), make("B", dexterity=16), make("C")
    order = calculate_initiative([a, b, c], scripted(rolls=[10, 10, 18]))
    assert [x.name for x in order] == ["C", "B", "A"]
    assert (c.initiative, b.initiative, a.initiative) == (18, 13, 10)


def test_ties_break_on_dex_then_random(scripted):
    a, b = make("A", dexterity=12), make("B")
    order = calculate_initiative([a, b], scripted(rolls=[10, 11]))
    assert a.initiative == b.initiative == 11
    assert [x.name for x in order] == ["A", "B"]

    c, d = make("C"), make("D")
    order = calculate_initiative([c, d], scripted(rolls=[10, 10], randoms=[0.9, 0.1]))
    assert [x.name for x in order] == ["D", "C"]


def test_extra_bonuses_are_added(scripted):
    hero, wolf = make("Hero", is_player=True), make("Wolf")
    order = calculate_initiative([wolf, hero], scripted(rolls=[15, 10]), bonuses={hero.id: 10})
    assert order[0] is hero
    assert hero.initiative == 20


def test_seeded_initiative_is_reproducible():
    names = ["A", "B", "C", "D"]
    first = [c.name for c in calculate_initiative([make(n) for n in names], RandomProvider(99))]
    second = [c.name for c in calculate_initiative([make(n) for n in names], RandomProvider(99))]
    assert first == second


@pytest.mark.parametrize("rolls, surprised", [([20, 1], True), ([10, 10], False), ([15, 10], False)])
def test_surprise_requires_beating_perception_by_more_than_five(scripted, rolls, surprised):
    check = check_surprise(make("Rogue", is_player=True), make("Guard"), scripted(rolls=rolls))
    assert check.surprised is surprised
    assert check.attacker_bonus == (10 if surprised else 0)


def test_next_turn_skips_and_wraps():
    a, b, c = make("A"), make("B"), make("C")
    b.hp.current = 0
    order = [a, b, c]
    assert next_turn(order, -1) == (0, False)
    assert next_turn(order, 0) == (2, False)
    assert next_turn(order, 2) == (0, True)


def test_next_turn_skips_crowd_control_and_fled():
    a, b, c = make("A"), make("B"), make("C")
    apply_effect(b, effect("stunned", EffectType.CC, duration=1))
    c.fled = True
    assert next_turn([a, b, c], 0) == (0, True)


def test_next_turn_when_nobody_can_act():
    a, b = make("A"), make("B")
    a.hp.current = 0
    apply_effect(b, effect("stunned", EffectType.CC, duration=1))
    assert next_turn([a, b], 0) == (-1, False)


def test_format_turn_order():
    hero, wolf = make("Hero", is_player=True), make("Wolf")
    hero.initiative, wolf.initiative = 17, 12
    assert format_turn_order([hero, wolf], 0) == "►[P] Hero (17) →  [E] Wolf (12)"


def test_dex_tiebreak_ignores_buffs(scripted):
    a, b = make("A"), make("B", dexterity=11)
    apply_effect(a, effect("haste", magnitude=1, stat="dexterity"))
    order = calculate_initiative([a, b], scripted(rolls=[10, 10], randoms=[0.1, 0.9]))
    assert a.initiative == b.initiative == 10
    assert [x.name for x in order] == ["B", "A"]
