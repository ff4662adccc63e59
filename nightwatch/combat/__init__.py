"""Player attack resolution."""

from nightwatch.combat.combat_resolver import CombatResolver, DAMAGE_JITTER

__all__ = [
    "CombatResolver",
    "DAMAGE_JITTER",
]
