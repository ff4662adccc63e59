"""
Cooldown Manager.

Owns the two spawn-suppression counters (grace period after a cleared board,
repeat suppression after a noise spawn) and the per-turn clock tick.
"""

from typing import TYPE_CHECKING, Optional
import logging

from nightwatch.data_models import GameMode, GameState
from nightwatch.ruleset import Settings

if TYPE_CHECKING:
    from nightwatch.observability.run_log import RunLog

logger = logging.getLogger(__name__)


class CooldownManager:
    """Grace-period reset and per-turn cooldown decrement."""

    def __init__(self, settings: Settings, run_log: Optional["RunLog"] = None):
        self.settings = settings
        self.run_log = run_log

    def check_and_set_grace_period(self, state: GameState) -> bool:
        """
        Reset the board once the last monster is gone.

        No-op while exploring or while any monster remains. Otherwise the
        game returns to exploring, the horde location is cleared, the grace
        cooldown is armed and the repeat cooldown is zeroed.

        Returns:
            True if the reset happened
        """
        status = state.status
        if status.game_mode == GameMode.EXPLORING:
            return False
        if state.horde.total() > 0:
            return False

        previous_mode = status.game_mode
        status.game_mode = GameMode.EXPLORING
        state.world.horde_location = ""
        status.grace_period_cooldown = self.settings.grace_period
        status.repeated_spawn_cooldown = 0

        logger.info(
            f"Board cleared: {previous_mode.value} -> exploring, "
            f"grace period {self.settings.grace_period} turns"
        )
        if self.run_log is not None:
            self.run_log.log_transition(previous_mode.value, GameMode.EXPLORING.value, "board_cleared")
        return True

    def tick(self, state: GameState) -> None:
        """Advance the clock by one completed player turn."""
        world = state.world
        status = state.status
        world.actions_remaining = max(0, world.actions_remaining - 1)
        status.grace_period_cooldown = max(0, status.grace_period_cooldown - 1)
        status.repeated_spawn_cooldown = max(0, status.repeated_spawn_cooldown - 1)
