"""Autonomous monster behavior: spawning, attrition and boss moves."""

from nightwatch.monsters.boss_ai import BossAI, WeightedMove, choose_weighted_move
from nightwatch.monsters.monster_turn import MonsterTurnOrchestrator

__all__ = [
    "BossAI",
    "WeightedMove",
    "choose_weighted_move",
    "MonsterTurnOrchestrator",
]
