from __future__ import annotations

import logging
from functools import lru_cache
from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..errors import ContentError
from ..loot import LootTable
from .models import UNKNOWN_ENEMY, BehaviorConfig, EnemyTemplate, ItemDefinition, SkillDefinition
from .schema import validate_document

logger = logging.getLogger(__name__)

CONTENT_FILES = ("skills", "items", "enemies", "loot_tables")


def _read_document(kind: str, directory: Optional[Path]) -> Dict[str, Any]:
    """Read <kind>.yaml from an override directory, falling back to the bundled copy."""
    if directory is not None:
        path = Path(directory) / f"{kind}.yaml"
        if path.exists():
            text = path.read_text(encoding="utf-8")
            source = str(path)
        else:
            logger.debug("%s not found in %s; using bundled content", path.name, directory)
            directory = None
    if directory is None:
        text = files("skirmish.data").joinpath(f"{kind}.yaml").read_text(encoding="utf-8")
        source = f"skirmish.data/{kind}.yaml"

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ContentError(f"Invalid YAML in {source}: {exc}") from exc
    validate_document(kind, data, source=source)
    logger.debug("Loaded %s content from %s", kind, source)
    return data


class ContentLibrary:
    """Validated catalog of enemies, skills, items and loot tables."""

    def __init__(
        self,
        enemies: Mapping[str, EnemyTemplate],
        skills: Mapping[str, SkillDefinition],
        items: Mapping[str, ItemDefinition],
        loot_tables: Mapping[str, LootTable],
        default_behavior: Optional[BehaviorConfig] = None,
    ) -> None:
        self._enemies = dict(enemies)
        self._skills = dict(skills)
        self._items = dict(items)
        self._loot_tables = dict(loot_tables)
        self.default_behavior = default_behavior or BehaviorConfig()
        self._check_references()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ContentLibrary":
        """Load content from a directory of YAML files, or the bundled defaults.

        Files missing from the directory fall back to the bundled copies.
        """
        docs = {kind: _read_document(kind, path) for kind in CONTENT_FILES}
        library = cls(
            enemies={k: EnemyTemplate.from_dict(k, v) for k, v in docs["enemies"]["enemies"].items()},
            skills={k: SkillDefinition.from_dict(k, v) for k, v in docs["skills"]["skills"].items()},
            items={k: ItemDefinition.from_dict(k, v) for k, v in docs["items"]["items"].items()},
            loot_tables={k: LootTable.from_dict(k, v) for k, v in docs["loot_tables"]["loot_tables"].items()},
            default_behavior=BehaviorConfig.from_dict(docs["enemies"].get("default_behavior")),
        )
        logger.info(
            "Content loaded: %d enemies, %d skills, %d items, %d loot tables",
            len(library._enemies),
            len(library._skills),
            len(library._items),
            len(library._loot_tables),
        )
        return library

    def _check_references(self) -> None:
        for enemy in self._enemies.values():
            for skill_id in enemy.skills:
                if skill_id not in self._skills:
                    raise ContentError(f"Enemy {enemy.id} references unknown skill {skill_id}")
            for item_id in enemy.inventory:
                if item_id not in self._items:
                    raise ContentError(f"Enemy {enemy.id} carries unknown item {item_id}")

    # Lookups

    def has_enemy(self, enemy_id: str) -> bool:
        return enemy_id in self._enemies

    def enemy(self, enemy_id: str) -> EnemyTemplate:
        template = self._enemies.get(enemy_id)
        if template is None:
            logger.warning("Unknown enemy template %s; using generic enemy", enemy_id)
            return UNKNOWN_ENEMY
        return template

    def skill(self, skill_id: str) -> SkillDefinition:
        try:
            return self._skills[skill_id]
        except KeyError as exc:
            raise ContentError(f"Unknown skill id: {skill_id}") from exc

    def item(self, item_id: str) -> ItemDefinition:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise ContentError(f"Unknown item id: {item_id}") from exc

    def has_skill(self, skill_id: str) -> bool:
        return skill_id in self._skills

    def has_item(self, item_id: str) -> bool:
        return item_id in self._items

    def loot_table(self, enemy_id: str) -> Optional[LootTable]:
        return self._loot_tables.get(enemy_id)

    @property
    def loot_tables(self) -> Dict[str, LootTable]:
        return dict(self._loot_tables)

    def behavior(self, template_id: Optional[str]) -> BehaviorConfig:
        template = self._enemies.get(template_id or "")
        if template is not None and template.behavior is not None:
            return template.behavior
        return self.default_behavior

    def enemy_ids(self) -> List[str]:
        return sorted(self._enemies)

    def skill_ids(self) -> List[str]:
        return sorted(self._skills)

    def item_ids(self) -> List[str]:
        return sorted(self._items)


@lru_cache(maxsize=1)
def default_library() -> ContentLibrary:
    """The bundled content, loaded once per process."""
    return ContentLibrary.load()
