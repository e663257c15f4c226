from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .combat.ai import select_weakest_target
from .combat.manager import CombatManager, PlayerPolicy
from .combat.models import ActionType, CombatAction, Combatant, CombatOptions, CombatSession
from .config import CombatConfig
from .content.loader import ContentLibrary
from .content.models import TargetType
from .errors import SkirmishError
from .logging_config import configure_logging
from .utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)

LOW_HP_RATIO = 0.35


def default_hero() -> Combatant:
    return Combatant.build(
        "Hero",
        hp=120,
        stamina=60,
        mana=40,
        level=3,
        is_player=True,
        attributes={
            "strength": 14,
            "dexterity": 13,
            "constitution": 12,
            "intelligence": 12,
            "wisdom": 11,
            "luck": 11,
        },
        skills=["skill_power_strike", "spell_fireball", "spell_minor_heal"],
        inventory={"potion_health_minor": 2, "bomb_fire": 1},
    )


def simple_policy(manager: CombatManager) -> PlayerPolicy:
    """Heal when low, otherwise hit the weakest enemy with the best thing available."""
    library = manager.library

    def choose(session: CombatSession, actor: Combatant) -> CombatAction:
        target = select_weakest_target(session.opponents_of(actor))
        if target is None:
            return CombatAction(type=ActionType.WAIT, actor_id=actor.id)

        usable = [library.skill(s) for s in manager.resolver.usable_skills(actor)]
        if actor.hp.ratio < LOW_HP_RATIO:
            for skill in usable:
                if skill.heal > 0 and skill.target != TargetType.ENEMY:
                    return CombatAction(type=ActionType.SKILL, actor_id=actor.id, skill_id=skill.id)
            for item_id, qty in actor.inventory.items():
                if qty > 0 and library.has_item(item_id) and library.item(item_id).heal > 0:
                    return CombatAction(type=ActionType.ITEM, actor_id=actor.id, item_id=item_id)

        for skill in usable:
            if skill.deals_damage and skill.target == TargetType.ENEMY:
                return CombatAction(
                    type=ActionType.SKILL,
                    actor_id=actor.id,
                    target_id=target.id,
                    skill_id=skill.id,
                )
        return CombatAction(type=ActionType.ATTACK, actor_id=actor.id, target_id=target.id)

    return choose


def _verbosity_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def cmd_simulate(args: argparse.Namespace) -> int:
    config = CombatConfig.load(args.config)
    library = ContentLibrary.load(args.content)
    manager = CombatManager(library=library, config=config, rng=RandomProvider(args.seed))

    options = CombatOptions(enemy_ids=list(args.enemy), is_ambush=args.ambush, can_flee=not args.no_flee)
    session = manager.start_combat(default_hero(), options, surprise=args.surprise)
    result = manager.run_auto(session.id, simple_policy(manager))

    for message in session.log.messages():
        print(message)
    print()
    print(f"Outcome: {result.outcome.value} after {result.rounds} round(s)")
    if result.enemies_defeated:
        print("Defeated: " + ", ".join(e.name for e in result.enemies_defeated))
    print(f"Experience: {result.experience_gained}  Gold: {result.gold_gained}")
    for item in result.items_looted:
        print(f"  + {item.item_id} x{item.quantity}")
    return 0


def cmd_list_content(args: argparse.Namespace) -> int:
    library = ContentLibrary.load(args.content)
    print("Enemies:")
    for enemy_id in library.enemy_ids():
        enemy = library.enemy(enemy_id)
        behavior = library.behavior(enemy_id)
        print(f"  {enemy_id:<24} {enemy.name} (level {enemy.level}, {enemy.hp} HP, {behavior.type.value})")
    print("Skills:")
    for skill_id in library.skill_ids():
        skill = library.skill(skill_id)
        print(f"  {skill_id:<24} {skill.name} -> {skill.target.value}")
    print("Items:")
    for item_id in library.item_ids():
        print(f"  {item_id:<24} {library.item(item_id).name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skirmish",
        description="Skirmish - turn-based combat resolver",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    parser.add_argument(
        "--content",
        type=Path,
        default=None,
        help="Directory with enemies/skills/items/loot_tables YAML overriding the bundled content.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Auto-play a combat and print the log")
    sim.add_argument("--enemy", action="append", required=True, help="Enemy template id (repeatable)")
    sim.add_argument("--seed", type=int, default=None, help="Seed for reproducible rolls")
    sim.add_argument("--ambush", action="store_true", help="Enemies ambush the hero")
    sim.add_argument("--surprise", action="store_true", help="The hero surprises the enemies")
    sim.add_argument("--no-flee", action="store_true", help="Disallow fleeing")
    sim.add_argument("--config", type=Path, default=None, help="Path to a combat config YAML file")
    sim.set_defaults(func=cmd_simulate)

    lst = sub.add_parser("list-content", help="List known enemies, skills and items")
    lst.set_defaults(func=cmd_list_content)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=_verbosity_level(args.verbose))
    try:
        return args.func(args)
    except SkirmishError as exc:
        logger.error("%s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
