"""
Skirmish: a turn-based combat resolver.

Initiative, action resolution, status effects, enemy AI and rewards for
RPG encounters, driven by YAML content and an injectable random source.
"""

__version__ = "0.1.0"
