import pytest

from skirmish.combat.models import (
    Attributes,
    CombatOptions,
    CombatPhase,
    Combatant,
    Resource,
    ability_modifier,
    combatant_from_character,
)


def test_resource_clamps_and_reports_percent():
    pool = Resource(current=150, maximum=100)
    assert pool.current == 100
    assert pool.drain(30) == 30
    assert pool.fill(50) == 30
    assert Resource(1, 3).percent == 33
    assert Resource(0, 0).percent == 0
    with pytest.raises(ValueError):
        pool.drain(-1)


def test_take_damage_and_heal_are_clamped():
    hero = Combatant.build("Hero", hp=20)
    assert hero.take_damage(25) == 20
    assert not hero.alive
    assert hero.take_damage(5) == 0
    assert hero.heal(10) == 0  # dead combatants stay down

    hero = Combatant.build("Hero", hp=20)
    hero.take_damage(5)
    assert hero.heal(10) == 5
    with pytest.raises(ValueError):
        hero.take_damage(-1)


def test_spend_requires_affordable_costs():
    hero = Combatant.build("Hero", stamina=10, mana=5)
    hero.spend(stamina=4, mana=5)
    assert (hero.stamina.current, hero.mana.current) == (6, 0)
    with pytest.raises(ValueError):
        hero.spend(mana=1)


def test_consume_item_removes_empty_stacks():
    hero = Combatant.build("Hero", inventory={"potion": 2})
    hero.consume_item("potion")
    assert hero.item_count("potion") == 1
    hero.consume_item("potion")
    assert "potion" not in hero.inventory
    with pytest.raises(ValueError):
        hero.consume_item("potion")


@pytest.mark.parametrize("score, modifier", [(10, 0), (11, 0), (12, 1), (9, -1), (1, -5), (20, 5)])
def test_ability_modifier(score, modifier):
    assert ability_modifier(score) == modifier


def test_attributes_reject_unknown_names():
    assert Attributes.from_dict({"strength": 14}).strength == 14
    with pytest.raises(ValueError):
        Attributes.from_dict({"speed": 3})


def test_combatant_from_character_payload():
    hero = combatant_from_character(
        {
            "id": "char-1",
            "name": "Aria",
            "level": 3,
            "health": {"current": 40, "maximum": 50},
            "mana": {"current": 10, "maximum": 20},
            "attributes": {"dexterity": 14},
            "skills": ["spell_fireball"],
            "inventory": {"potion_health_minor": 2},
            "gold": 120,
        }
    )
    assert hero.id == "char-1"
    assert hero.is_player
    assert (hero.hp.current, hero.hp.maximum) == (40, 50)
    assert hero.stamina.maximum == 50
    assert hero.attributes.dexterity == 14
    assert hero.skills == ["spell_fireball"]


def test_combat_options_validation():
    with pytest.raises(ValueError):
        CombatOptions(enemy_ids=[])
    with pytest.raises(ValueError):
        CombatOptions(enemy_ids=["enemy_wolf"], terrain="lava")


def test_terminal_phases():
    assert {p for p in CombatPhase if p.is_terminal} == {CombatPhase.VICTORY, CombatPhase.DEFEAT, CombatPhase.FLED}
