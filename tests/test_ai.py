import pytest

from skirmish.combat.actions import ActionResolver
from skirmish.combat.ai import EnemyAI, intention_to_action, select_weakest_target
from skirmish.combat.models import ActionType, Combatant, EnemyIntention, IntentionType


@pytest.fixture()
def ai(library):
    return EnemyAI(ActionResolver(library))


@pytest.fixture()
def hero():
    return Combatant.build("Hero", hp=100, is_player=True)


def enemy(template_id, hp, current=None, **kwargs):
    e = Combatant.build(template_id, hp=hp, template_id=template_id, **kwargs)
    if current is not None:
        e.hp.current = current
    return e


def test_wounded_coward_may_flee(ai, hero, scripted):
    rat = enemy("enemy_giant_rat", 20, current=5)
    intention = ai.determine_intention(rat, [hero], [rat], scripted(randoms=[0.1]))
    assert intention.type is IntentionType.FLEE
    assert intention.icon == "🏃"


def test_coward_that_keeps_its_nerve_attacks(ai, hero, scripted):
    rat = enemy("enemy_giant_rat", 20, current=5)
    intention = ai.determine_intention(rat, [hero], [rat], scripted(randoms=[0.9]))
    assert intention.type is IntentionType.ATTACK
    assert intention.target_id == hero.id


def test_wounded_berserker_attacks_without_rolling(ai, hero, scripted):
    orc = enemy("enemy_orc_brute", 80, current=20, skills=["skill_power_strike"])
    rng = scripted(randoms=[0.0])
    intention = ai.determine_intention(orc, [hero], [orc], rng)
    assert intention.type is IntentionType.ATTACK
    assert "frenzy" in intention.description
    assert rng.randoms == [0.0]


def test_wounded_defensive_enemy_defends(ai, hero, scripted):
    guardian = enemy("enemy_stone_guardian", 70, current=20)
    intention = ai.determine_intention(guardian, [hero], [guardian], scripted(randoms=[0.1]))
    assert intention.type is IntentionType.DEFEND


def test_support_heals_wounded_ally(ai, hero, scripted):
    shaman = enemy("enemy_goblin_shaman", 22, mana=30, skills=["skill_heal", "skill_buff"])
    goblin = enemy("enemy_goblin", 25, current=10)
    intention = ai.determine_intention(shaman, [hero], [shaman, goblin], scripted())
    assert intention.type is IntentionType.HEAL
    assert intention.target_id == goblin.id
    assert intention.skill_id == "skill_heal"

    action = intention_to_action(shaman, intention)
    assert action.type is ActionType.SKILL
    assert action.skill_id == "skill_heal"


def test_support_without_mana_cannot_heal(ai, hero, scripted):
    shaman = enemy("enemy_goblin_shaman", 22, mana=0, skills=["skill_heal", "skill_buff"])
    goblin = enemy("enemy_goblin", 25, current=10)
    intention = ai.determine_intention(shaman, [hero], [shaman, goblin], scripted(randoms=[0.9]))
    assert intention.type is IntentionType.ATTACK


def test_tactical_enemy_targets_weakest(ai, hero, scripted):
    ally = Combatant.build("Squire", hp=100, is_player=True)
    ally.hp.current = 10
    bandit = enemy("enemy_bandit", 40, skills=["skill_dirty_trick", "skill_backstab"])
    intention = ai.determine_intention(bandit, [hero, ally], [bandit], scripted(randoms=[0.9]))
    assert intention.type is IntentionType.ATTACK
    assert intention.target_id == ally.id


def test_other_enemies_target_the_player_first(ai, hero, scripted):
    ally = Combatant.build("Squire", hp=100, is_player=True)
    ally.hp.current = 10
    wolf = enemy("enemy_wolf", 60, skills=["skill_bite", "skill_howl"])
    intention = ai.determine_intention(wolf, [hero, ally], [wolf], scripted(randoms=[0.1]))
    assert intention.type is IntentionType.SKILL
    assert intention.skill_id == "skill_bite"
    assert intention.target_id == hero.id
    assert intention.description == "Baring its fangs..."


def test_self_buff_skill_targets_the_enemy_itself(ai, hero, scripted):
    wolf = enemy("enemy_wolf", 60, skills=["skill_howl"])
    intention = ai.determine_intention(wolf, [hero], [wolf], scripted(randoms=[0.1]))
    assert intention.type is IntentionType.BUFF
    assert intention.target_id == wolf.id


def test_skills_on_cooldown_are_not_planned(ai, hero, scripted):
    wolf = enemy("enemy_wolf", 60, skills=["skill_bite", "skill_howl"])
    wolf.cooldowns.update({"skill_bite": 1, "skill_howl": 2})
    rng = scripted(randoms=[0.0])
    intention = ai.determine_intention(wolf, [hero], [wolf], rng)
    assert intention.type is IntentionType.ATTACK
    assert rng.randoms == [0.0]


def test_no_active_opponents(ai, hero, scripted):
    hero.hp.current = 0
    wolf = enemy("enemy_wolf", 60)
    assert ai.determine_intention(wolf, [hero], [wolf], scripted()).type is IntentionType.DEFEND


def test_plan_stores_intention(ai, hero, scripted):
    wolf = enemy("enemy_wolf", 60)
    intention = ai.plan(wolf, [hero], [wolf], scripted())
    assert wolf.intention is intention


@pytest.mark.parametrize(
    "kind, skill_id, expected",
    [
        (IntentionType.ATTACK, None, ActionType.ATTACK),
        (IntentionType.DEFEND, None, ActionType.DEFEND),
        (IntentionType.FLEE, None, ActionType.FLEE),
        (IntentionType.SKILL, "skill_bite", ActionType.SKILL),
        (IntentionType.BUFF, "skill_howl", ActionType.SKILL),
    ],
)
def test_intention_to_action(kind, skill_id, expected):
    wolf = enemy("enemy_wolf", 60)
    intention = EnemyIntention(type=kind, description="", icon="", target_id="hero", skill_id=skill_id)
    action = intention_to_action(wolf, intention)
    assert action.type is expected
    assert action.actor_id == wolf.id
    assert action.skill_id == skill_id


def test_select_weakest_target_ignores_the_fallen():
    a = Combatant.build("A", hp=100)
    b = Combatant.build("B", hp=100)
    c = Combatant.build("C", hp=100)
    a.hp.current, b.hp.current, c.hp.current = 50, 0, 70
    assert select_weakest_target([a, b, c]) is a
    assert select_weakest_target([b]) is None
    assert select_weakest_target([]) is None
