class SkirmishError(Exception):
    """Base error for Skirmish domain exceptions."""


class CombatError(SkirmishError):
    """Raised for combat related errors."""


class IllegalActionError(CombatError):
    """Raised when an action cannot be performed in the current combat state."""


class CombatNotFoundError(CombatError):
    """Raised when a combat id is unknown."""


class ContentError(SkirmishError):
    """Raised when game content (enemies, skills, items) is missing or invalid."""


class ConfigError(SkirmishError):
    """Raised when a combat configuration file cannot be used."""
