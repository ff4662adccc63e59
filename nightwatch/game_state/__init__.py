"""Game state management module: cooldowns and session persistence.

The turn controller lives in nightwatch.game_state.turn_controller; it
depends on every other engine package and is imported from there directly.
"""

from nightwatch.game_state.cooldowns import CooldownManager
from nightwatch.game_state.session_manager import GameSession, SessionManager

__all__ = [
    "CooldownManager",
    "GameSession",
    "SessionManager",
]
