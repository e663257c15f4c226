"""
Turn-based combat: initiative, action resolution, enemy AI and sessions.

The CombatManager is the entry point; the other modules hold the rules it
applies and can be used on their own.
"""

from .actions import ActionResolver
from .ai import EnemyAI, intention_to_action, select_weakest_target
from .damage import AttackRoll, DamageCalculator
from .effects import EffectTick, apply_effect, effect_from_template, remove_effects, tick_effects
from .initiative import (
    InitiativeRoll,
    SurpriseCheck,
    calculate_initiative,
    check_surprise,
    format_turn_order,
    next_turn,
    roll_initiative,
)
from .log import CombatLog, CombatLogEntry
from .manager import CombatManager
from .models import (
    ActionResult,
    ActionType,
    Attributes,
    CombatAction,
    Combatant,
    CombatOptions,
    CombatPhase,
    CombatResult,
    CombatSession,
    EffectType,
    EnemyIntention,
    IntentionType,
    Outcome,
    Resource,
    StatusEffect,
    combatant_from_character,
)
from .requests import ActionRequest
from .views import CombatantView, CombatView

__all__ = [
    "ActionResolver",
    "EnemyAI",
    "intention_to_action",
    "select_weakest_target",
    "AttackRoll",
    "DamageCalculator",
    "EffectTick",
    "apply_effect",
    "effect_from_template",
    "remove_effects",
    "tick_effects",
    "InitiativeRoll",
    "SurpriseCheck",
    "calculate_initiative",
    "check_surprise",
    "format_turn_order",
    "next_turn",
    "roll_initiative",
    "CombatLog",
    "CombatLogEntry",
    "CombatManager",
    "ActionResult",
    "ActionType",
    "Attributes",
    "CombatAction",
    "Combatant",
    "CombatOptions",
    "CombatPhase",
    "CombatResult",
    "CombatSession",
    "EffectType",
    "EnemyIntention",
    "IntentionType",
    "Outcome",
    "Resource",
    "StatusEffect",
    "combatant_from_character",
    "ActionRequest",
    "CombatantView",
    "CombatView",
]
