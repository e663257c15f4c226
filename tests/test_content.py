import pytest
import yaml

from skirmish.content.loader import ContentLibrary
from skirmish.content.models import BehaviorType, TargetType
from skirmish.content.schema import validate_document
from skirmish.errors import ContentError


def test_bundled_content_loads(library):
    assert "enemy_goblin" in library.enemy_ids()
    assert "spell_fireball" in library.skill_ids()
    assert "potion_health_minor" in library.item_ids()

    fireball = library.skill("spell_fireball")
    assert fireball.mana_cost == 15
    assert fireball.can_miss is False
    assert fireball.target is TargetType.ENEMY
    assert fireball.deals_damage

    heal = library.skill("spell_minor_heal")
    assert not heal.deals_damage
    assert heal.heal == 15


def test_every_enemy_has_a_loot_table(library):
    for enemy_id in library.enemy_ids():
        assert library.loot_table(enemy_id) is not None, enemy_id


def test_behaviors_fall_back_to_default(library):
    assert library.behavior("enemy_giant_rat").type is BehaviorType.COWARD
    assert library.behavior("enemy_goblin_shaman").type is BehaviorType.SUPPORT
    fallback = library.behavior("nope")
    assert fallback.type is BehaviorType.AGGRESSIVE
    assert fallback.low_hp_threshold == pytest.approx(0.25)
    assert library.behavior(None) is fallback


def test_unknown_enemy_uses_generic_template(library, caplog):
    template = library.enemy("enemy_dragon")
    assert template.name == "Unknown Enemy"
    assert template.hp == 30
    assert template.stamina == 20
    assert template.mana == 0
    assert template.attributes["intelligence"] == 5
    assert "enemy_dragon" in caplog.text


def test_unknown_skill_or_item_raises(library):
    with pytest.raises(ContentError):
        library.skill("skill_nope")
    with pytest.raises(ContentError):
        library.item("item_nope")


def test_schema_rejects_bad_documents():
    with pytest.raises(ContentError):
        validate_document("skills", {"skills": {"s": {"name": "Broken"}}})
    with pytest.raises(ContentError):
        validate_document("items", {"items": {"i": {"name": "Bad", "target": "enemy", "effects": [{"name": "x"}]}}})
    with pytest.raises(ContentError):
        validate_document("monsters", {})


def test_override_directory_with_fallback(tmp_path):
    skills = {
        "skills": {
            "skill_poke": {"name": "Poke", "target": "enemy", "power": 0.5},
        }
    }
    (tmp_path / "skills.yaml").write_text(yaml.safe_dump(skills), encoding="utf-8")
    enemies = {"enemies": {"enemy_imp": {"name": "Imp", "hp": 12, "skills": ["skill_poke"]}}}
    (tmp_path / "enemies.yaml").write_text(yaml.safe_dump(enemies), encoding="utf-8")

    library = ContentLibrary.load(tmp_path)
    assert library.skill_ids() == ["skill_poke"]
    assert library.enemy("enemy_imp").skills == ("skill_poke",)
    # items and loot tables come from the bundled copies
    assert "potion_health_minor" in library.item_ids()


def test_override_with_dangling_skill_reference(tmp_path):
    enemies = {"enemies": {"enemy_imp": {"name": "Imp", "hp": 12, "skills": ["skill_missing"]}}}
    (tmp_path / "enemies.yaml").write_text(yaml.safe_dump(enemies), encoding="utf-8")
    with pytest.raises(ContentError, match="skill_missing"):
        ContentLibrary.load(tmp_path)


def test_override_with_invalid_yaml(tmp_path):
    (tmp_path / "items.yaml").write_text("items: [unclosed", encoding="utf-8")
    with pytest.raises(ContentError):
        ContentLibrary.load(tmp_path)
