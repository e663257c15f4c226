from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LootDrop:
    item_id: str
    chance: float
    min_quantity: int = 1
    max_quantity: int = 1

    def __post_init__(self) -> None:
        if not (0.0 <= self.chance <= 1.0):
            raise ValueError("chance must be within [0, 1]")
        if self.min_quantity < 1 or self.max_quantity < self.min_quantity:
            raise ValueError("quantities must satisfy 1 <= min <= max")


@dataclass(frozen=True)
class LootTable:
    enemy_id: str
    gold_min: int = 0
    gold_max: int = 0
    drops: Tuple[LootDrop, ...] = ()

    def __post_init__(self) -> None:
        if self.gold_min < 0 or self.gold_max < self.gold_min:
            raise ValueError("gold range must satisfy 0 <= min <= max")

    @classmethod
    def from_dict(cls, enemy_id: str, data: Mapping[str, Any]) -> "LootTable":
        gold = data.get("gold") or {}
        return cls(
            enemy_id=enemy_id,
            gold_min=int(gold.get("min", 0)),
            gold_max=int(gold.get("max", 0)),
            drops=tuple(
                LootDrop(
                    item_id=d["item_id"],
                    chance=float(d["chance"]),
                    min_quantity=int(d.get("min_quantity", 1)),
                    max_quantity=int(d.get("max_quantity", d.get("min_quantity", 1))),
                )
                for d in data.get("drops", [])
            ),
        )


@dataclass
class LootRoll:
    gold: int = 0
    items: Dict[str, int] = field(default_factory=dict)

    def merge(self, other: "LootRoll") -> None:
        self.gold += other.gold
        for item_id, qty in other.items.items():
            self.items[item_id] = self.items.get(item_id, 0) + qty


class LootManager:
    """Rolls loot for defeated enemies from their loot tables.

    Gold is uniform in the table's range; every drop rolls independently.
    Luck above 10 adds 1% gold and 0.5% (relative) drop chance per point.
    """

    def __init__(self, tables: Mapping[str, LootTable]) -> None:
        self._tables: Dict[str, LootTable] = dict(tables)

    def table(self, table_id: str) -> Optional[LootTable]:
        return self._tables.get(table_id)

    def generate(self, table_id: str, rng: RandomProvider, luck: int = 10) -> LootRoll:
        table = self._tables.get(table_id)
        if table is None:
            logger.debug("No loot table for %s", table_id)
            return LootRoll()

        luck_over = max(0, luck - 10)
        gold = 0
        if table.gold_max > 0:
            gold = rng.randint(table.gold_min, table.gold_max)
            gold = math.floor(gold * (1 + luck_over * 0.01))

        items: Dict[str, int] = {}
        for drop in table.drops:
            chance = min(1.0, drop.chance * (1 + luck_over * 0.005))
            if rng.random() < chance:
                qty = rng.randint(drop.min_quantity, drop.max_quantity)
                items[drop.item_id] = items.get(drop.item_id, 0) + qty

        logger.debug("Loot for %s: gold=%d items=%s", table_id, gold, items)
        return LootRoll(gold=gold, items=items)

    def generate_many(self, table_ids: List[str], rng: RandomProvider, luck: int = 10) -> LootRoll:
        total = LootRoll()
        for table_id in table_ids:
            total.merge(self.generate(table_id, rng, luck=luck))
        return total
