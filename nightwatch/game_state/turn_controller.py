"""
Turn Controller for the Nightwatch engine.

Thin glue over the engine components. One turn is:

    player turn  -> effects, player damage, clock tick
    status check -> lose / phase change / win
    monster turn -> spawns, despawns, traps, fortifications (unless over)

The caller owns input and display: it picks an action from
get_current_actions() and drains the message queue after the turn.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import copy
import logging

from nightwatch.conditions.condition_evaluator import ConditionEvaluator, get_condition_evaluator
from nightwatch.data_models import (
    DiceRoller,
    GameMode,
    GameState,
    Horde,
    MessageRecord,
    MonsterInstance,
    Player,
    PlayerState,
    Status,
    World,
)
from nightwatch.effects.effect_processor import EffectProcessor
from nightwatch.game_state.cooldowns import CooldownManager
from nightwatch.monsters.boss_ai import BossAI
from nightwatch.monsters.monster_turn import MonsterTurnOrchestrator
from nightwatch.observability.run_log import RunLog
from nightwatch.ruleset import Ruleset, RulesetError

logger = logging.getLogger(__name__)


@dataclass
class GameAction:
    """An action currently available to the player."""
    action_id: str
    category: str
    display_text: str
    effects: dict[str, Any] = field(default_factory=dict)


@dataclass
class GameStatus:
    """Result of the status check after a player turn."""
    is_game_over: bool = False
    outcome: Optional[str] = None  # "win" or "lose"


class TurnController:
    """
    Sequences player turn, status check and monster turn.

    Owns one instance of every engine component, all sharing the same
    DiceRoller, CooldownManager and RunLog.
    """

    def __init__(
        self,
        ruleset: Ruleset,
        dice: Optional[DiceRoller] = None,
        run_log: Optional[RunLog] = None,
        conditions: Optional[ConditionEvaluator] = None,
    ):
        self.ruleset = ruleset
        self.settings = ruleset.settings
        self.run_log = run_log or RunLog()
        self.dice = dice or DiceRoller(run_log=self.run_log)
        if dice is not None:
            dice.attach_run_log(self.run_log)
        if self.run_log.get_seed() is None:
            self.run_log.set_seed(self.dice.seed)

        self.conditions = conditions or get_condition_evaluator()
        self.cooldowns = CooldownManager(self.settings, self.run_log)
        self.effects = EffectProcessor(ruleset, self.dice, self.cooldowns)
        self.monsters = MonsterTurnOrchestrator(
            ruleset,
            self.dice,
            cooldowns=self.cooldowns,
            boss_ai=BossAI(ruleset, self.dice),
            run_log=self.run_log,
        )

    # =========================================================================
    # SESSION SETUP
    # =========================================================================

    def initialize_game_state(self) -> GameState:
        """
        Build a fresh state from the ruleset's initial state.

        Raises:
            RulesetError: If the initial phase does not exist
        """
        initial = copy.deepcopy(self.ruleset.initial_state)
        player_doc = initial.get("player", {})
        world_doc = initial.get("world", {})
        status_doc = initial.get("status", {})

        stats = player_doc.get("initialStats", {})
        player = Player(
            health=stats.get("health", self.settings.stat_max),
            stamina=stats.get("stamina", self.settings.stat_max),
            inventory={k: v for k, v in player_doc.get("initialInventory", {}).items() if v > 0},
        )

        phase_id = world_doc.get("currentPhaseId", "")
        first_phase = self.ruleset.get_phase(phase_id)
        if first_phase is None:
            logger.error(f"Could not find phase data for initial phase id {phase_id!r}")
            raise RulesetError(f"Initial phase not found: {phase_id!r}")

        world = World(
            current_location=world_doc.get("currentLocation", ""),
            previous_location=world_doc.get("previousLocation", ""),
            current_phase_id=phase_id,
            actions_remaining=first_phase.duration_in_actions,
            noise=world_doc.get("noise", 0),
            fortifications=dict(world_doc.get("fortifications", {})),
            traps=dict(world_doc.get("traps", {})),
            flags=dict(world_doc.get("flags", {})),
            horde_location=world_doc.get("hordeLocation", ""),
        )

        horde = Horde({
            monster_type: [
                MonsterInstance(
                    instance_id=m["id"],
                    current_health=m["currentHealth"],
                    persistent=m.get("persistent", False),
                )
                for m in members
            ]
            for monster_type, members in initial.get("horde", {}).items()
        })

        status = Status(
            game_mode=GameMode(status_doc.get("gameMode", GameMode.EXPLORING.value)),
            player_state=PlayerState(status_doc.get("playerState", PlayerState.NORMAL.value)),
            noise_spawn_count=status_doc.get("noiseSpawnCount", 0),
            repeated_spawn_cooldown=status_doc.get("repeatedSpawnCooldown", 0),
            grace_period_cooldown=status_doc.get("gracePeriodCooldown", 0),
        )

        state = GameState(player=player, world=world, horde=horde, status=status)
        logger.info(
            f"New game at {world.current_location}, phase {phase_id} "
            f"({world.actions_remaining} actions)"
        )
        return state

    def start_session(self) -> GameState:
        """Fresh state plus the opening monster turn of a new game."""
        state = self.initialize_game_state()
        self._track(state)
        self.monsters.run_monster_turn(state)
        return state

    def _track(self, state: GameState) -> None:
        world = state.world
        self.run_log.set_turn_marker_provider(
            lambda: f"{world.current_phase_id}:{world.actions_remaining}"
        )

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def get_current_actions(self, state: GameState) -> list[GameAction]:
        """Location and global actions whose conditions currently hold."""
        location = self.ruleset.get_location(state.world.current_location)
        if location is None:
            logger.error(f"No location data for {state.world.current_location!r}")
            menus = list(self.ruleset.global_actions)
        else:
            menus = location.menu + self.ruleset.global_actions

        actions = []
        for category in menus:
            for action in category.actions:
                if not self.conditions.are_conditions_met(action.show_if, state):
                    continue
                display_text = self.ruleset.texts.get(action.text_ref) if action.text_ref else None
                actions.append(GameAction(
                    action_id=action.action_id,
                    category=category.category,
                    display_text=display_text or action.action_id,
                    effects=action.effects,
                ))
        return actions

    # =========================================================================
    # TURN STAGES
    # =========================================================================

    def run_player_turn(self, action: GameAction, state: GameState) -> None:
        """Resolve the player's action, let monsters strike back, tick the clock."""
        self._track(state)
        queued_before = len(state.status.message_queue)

        state.world.previous_location = state.world.current_location
        self.effects.apply_action(action.action_id, action.effects, state)
        self.monsters.process_player_damage(state)
        self.cooldowns.tick(state)

        self.run_log.log_action(
            action.action_id,
            messages_queued=len(state.status.message_queue) - queued_before,
        )

    def check_game_status(self, state: GameState) -> GameStatus:
        """Check for a loss, advance the phase when its clock runs out, check for a win."""
        world = state.world
        if state.player.health <= 0:
            return GameStatus(is_game_over=True, outcome="lose")

        if world.actions_remaining == 0:
            previous = world.current_phase_id
            next_phase = self.ruleset.next_phase(previous)
            if next_phase is not None:
                world.current_phase_id = next_phase.phase_id
                world.actions_remaining = next_phase.duration_in_actions
            else:
                world.current_phase_id = self.settings.win_phase
            logger.info(f"Phase {previous} -> {world.current_phase_id}")
            self.run_log.log_transition(previous, world.current_phase_id, "phase_clock")

        if world.current_phase_id == self.settings.win_phase:
            return GameStatus(is_game_over=True, outcome="win")
        return GameStatus()

    def run_monster_turn(self, state: GameState) -> None:
        self._track(state)
        self.monsters.run_monster_turn(state)

    def take_turn(self, action: GameAction, state: GameState) -> GameStatus:
        """Run one complete turn."""
        self.run_player_turn(action, state)
        status = self.check_game_status(state)
        if status.is_game_over:
            logger.info(f"Game over: {status.outcome}")
            return status
        self.run_monster_turn(state)
        return status

    @staticmethod
    def drain_messages(state: GameState) -> list[MessageRecord]:
        """Return the queued messages and empty the queue."""
        messages = list(state.status.message_queue)
        state.status.message_queue.clear()
        return messages
