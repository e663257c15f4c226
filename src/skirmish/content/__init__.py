"""
Game content for combat: enemies, skills, items and loot tables.

Content ships as YAML inside ``skirmish.data`` and is validated against the
JSON schemas in ``skirmish/data/schemas`` before use.
"""

from .loader import ContentLibrary, default_library
from .models import (
    UNKNOWN_ENEMY,
    BehaviorConfig,
    BehaviorType,
    EnemyTemplate,
    ItemDefinition,
    SkillDefinition,
    TargetType,
)

__all__ = [
    "ContentLibrary",
    "default_library",
    "UNKNOWN_ENEMY",
    "BehaviorConfig",
    "BehaviorType",
    "EnemyTemplate",
    "ItemDefinition",
    "SkillDefinition",
    "TargetType",
]
