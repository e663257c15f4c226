from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


CONFIG_ENV_VAR = "SKIRMISH_CONFIG"

CONFIG_PATHS = [
    Path("configs/combat.yaml"),
]


@dataclass
class CombatConfig:
    """
    Combat rule constants with sensible defaults.

    You can override any of them by providing configs/combat.yaml (or a file
    named by $SKIRMISH_CONFIG) with the same keys, e.g.:

        damage_variance: 0.1
        flee_base_player: 0.5
        stamina_regen: 8
    """

    # Accuracy
    hit_base: float = 80.0
    hit_min: float = 5.0
    hit_max: float = 95.0
    defend_hit_penalty: float = 15.0
    # Criticals
    crit_base: float = 5.0
    crit_min: float = 1.0
    crit_max: float = 50.0
    crit_multiplier: float = 2.0
    # Damage
    damage_variance: float = 0.15
    defend_multiplier: float = 0.5
    # Resources
    attack_stamina_cost: int = 0
    stamina_regen: int = 5
    # Flee
    flee_base_player: float = 0.4
    flee_base_enemy: float = 0.3
    flee_min: float = 0.1
    flee_max: float = 0.8
    # Initiative
    ambush_bonus: int = 5
    alert_bonus: int = 5
    slow_penalty: int = 4
    surprise_bonus: int = 10
    # Session
    xp_per_level: int = 20
    log_capacity: int = 500
    ui_log_lines: int = 10
    max_stalled_rounds: int = 50

    @staticmethod
    def default() -> "CombatConfig":
        return CombatConfig()

    def validate(self) -> "CombatConfig":
        if not (0 <= self.hit_min <= self.hit_max <= 100):
            raise ConfigError("hit_min/hit_max must satisfy 0 <= min <= max <= 100")
        if not (0 <= self.crit_min <= self.crit_max <= 100):
            raise ConfigError("crit_min/crit_max must satisfy 0 <= min <= max <= 100")
        if self.crit_multiplier < 1:
            raise ConfigError("crit_multiplier must be >= 1")
        if not (0.0 <= self.damage_variance <= 0.75):
            raise ConfigError("damage_variance must be between 0.0 and 0.75")
        if not (0 < self.defend_multiplier <= 1):
            raise ConfigError("defend_multiplier must be within (0, 1]")
        if not (0.0 <= self.flee_min <= self.flee_max <= 1.0):
            raise ConfigError("flee_min/flee_max must satisfy 0 <= min <= max <= 1")
        if self.attack_stamina_cost < 0 or self.stamina_regen < 0:
            raise ConfigError("stamina values must be non-negative")
        if self.log_capacity <= 0 or self.ui_log_lines <= 0:
            raise ConfigError("log sizes must be positive")
        if self.max_stalled_rounds <= 0:
            raise ConfigError("max_stalled_rounds must be positive")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CombatConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown combat config keys: {', '.join(unknown)}")
        return cls(**{**cls.default().to_dict(), **data}).validate()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CombatConfig":
        """Load config from an explicit path, $SKIRMISH_CONFIG, or configs/combat.yaml.

        Falls back to defaults when no file is found.
        """
        candidates = []
        if path is not None:
            candidates.append(Path(path))
        elif os.getenv(CONFIG_ENV_VAR):
            candidates.append(Path(os.environ[CONFIG_ENV_VAR]))
        else:
            candidates.extend(CONFIG_PATHS)

        for candidate in candidates:
            if not candidate.exists():
                if path is not None:
                    raise ConfigError(f"Combat config not found: {candidate}")
                continue
            try:
                raw = yaml.safe_load(candidate.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {candidate}: {exc}") from exc
            if not isinstance(raw, dict):
                raise ConfigError(f"Combat config {candidate} must be a mapping")
            logger.info("Loaded combat config from %s", candidate)
            return cls.from_dict(raw)

        logger.debug("No combat config file found; using defaults")
        return cls.default()
