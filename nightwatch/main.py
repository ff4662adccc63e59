"""
Nightwatch Engine - Main Entry Point

Turn-based survival simulation core. The engine itself takes a loaded
ruleset and a chosen action and produces state mutations plus opaque
message records; rendering and interactive input belong to a front end.

This module provides a non-interactive harness: it loads a ruleset, plays a
seeded game by picking a random available action each turn, and prints the
drained message records. Useful for smoke-testing data files and for
reproducing a session from its seed.
"""

import argparse
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from nightwatch.data_models import DiceRoller, GameState
from nightwatch.game_state.session_manager import SessionManager
from nightwatch.game_state.turn_controller import GameStatus, TurnController
from nightwatch.observability.run_log import EventType, RunLog
from nightwatch.ruleset import Ruleset, RulesetError


# Configure logging
def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


logger = logging.getLogger(__name__)


# Data files of a ruleset directory, keyed by document section
RULESET_FILES = {
    "items": "items.json",
    "monsters": "monsters.json",
    "locations": "locations.json",
    "globalActions": "globalActions.json",
    "phases": "phases.json",
    "settings": "settings.json",
    "texts": "texts.json",
    "initialState": "initialState.json",
}


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class EngineConfig:
    """Configuration for a harness run."""

    ruleset_path: Path = field(default_factory=lambda: Path("data"))
    seed: Optional[int] = None
    max_turns: int = 100
    save_path: Optional[Path] = None
    run_log_path: Optional[Path] = None

    # Runtime options
    verbose: bool = False
    show_log: bool = False

    def __post_init__(self):
        """Ensure paths are Path objects."""
        if isinstance(self.ruleset_path, str):
            self.ruleset_path = Path(self.ruleset_path)
        if isinstance(self.save_path, str):
            self.save_path = Path(self.save_path)
        if isinstance(self.run_log_path, str):
            self.run_log_path = Path(self.run_log_path)


# =============================================================================
# RULESET LOADING
# =============================================================================

def load_ruleset(path: Path) -> Ruleset:
    """
    Load a ruleset from a combined JSON document or a directory of data files.

    Raises:
        FileNotFoundError: If the path does not exist
        RulesetError: If a required section is missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ruleset not found: {path}")

    if path.is_dir():
        document: dict[str, Any] = {}
        for section, filename in RULESET_FILES.items():
            filepath = path / filename
            if filepath.exists():
                with open(filepath, "r", encoding="utf-8") as f:
                    document[section] = json.load(f)
            else:
                logger.debug(f"Ruleset directory has no {filename}")
    else:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)

    return Ruleset.from_dict(document)


# =============================================================================
# AUTOPLAY
# =============================================================================

@dataclass
class AutoplayResult:
    """Outcome of a harness run."""
    status: GameStatus
    state: GameState
    turns_played: int
    run_log: RunLog
    dice: DiceRoller


def print_messages(controller: TurnController, state: GameState) -> None:
    for message in controller.drain_messages(state):
        params = f" {message.params}" if message.params else ""
        print(f"  > {message.text_ref}{params}")


def run_autoplay(ruleset: Ruleset, config: EngineConfig) -> AutoplayResult:
    """
    Play a seeded game by picking a random available action each turn.

    Action picks use their own DiceRoller so the engine's roll stream is
    the same as it would be under any other front end.
    """
    run_log = RunLog(seed=config.seed)
    dice = DiceRoller(seed=config.seed, run_log=run_log)
    picker = DiceRoller(seed=config.seed)
    controller = TurnController(ruleset, dice=dice, run_log=run_log)

    state = controller.start_session()
    print_messages(controller, state)

    status = GameStatus()
    turns = 0
    while turns < config.max_turns:
        actions = controller.get_current_actions(state)
        if not actions:
            logger.error(f"No actions available at {state.world.current_location}")
            run_log.log_custom("autoplay_stalled", {"location": state.world.current_location})
            break

        action = picker.choice(actions, "autoplay action")
        turns += 1
        print(
            f"[{state.world.current_phase_id} {state.world.actions_remaining}] "
            f"{action.category}: {action.display_text}"
        )
        status = controller.take_turn(action, state)
        print_messages(controller, state)
        if status.is_game_over:
            break

    return AutoplayResult(status=status, state=state, turns_played=turns, run_log=run_log, dice=dice)


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Nightwatch Engine - seeded autoplay harness",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m nightwatch.main --ruleset data              # Autoplay with data/*.json
  python -m nightwatch.main --ruleset game.json --seed 7
  python -m nightwatch.main --ruleset data --turns 30 --save saves/run.json
        """
    )

    parser.add_argument(
        "--ruleset",
        type=Path,
        default=Path("data"),
        help="Combined ruleset JSON or directory of data files (default: data)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for reproducible runs",
    )
    parser.add_argument(
        "--turns",
        type=int,
        default=100,
        help="Maximum number of turns to play (default: 100)",
    )
    parser.add_argument(
        "--save",
        type=Path,
        help="Save the final session to this file (skipped if the game ended)",
    )
    parser.add_argument(
        "--run-log",
        type=Path,
        help="Write the run log (rolls, actions, transitions) to this JSON file",
    )
    parser.add_argument(
        "--show-log",
        action="store_true",
        help="Print the run log after the game",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def create_config_from_args(args: argparse.Namespace) -> EngineConfig:
    """Create EngineConfig from parsed arguments."""
    return EngineConfig(
        ruleset_path=args.ruleset,
        seed=args.seed,
        max_turns=args.turns,
        save_path=args.save,
        run_log_path=args.run_log,
        verbose=args.verbose,
        show_log=args.show_log,
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI usage."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    config = create_config_from_args(args)

    try:
        ruleset = load_ruleset(config.ruleset_path)
    except (FileNotFoundError, RulesetError, json.JSONDecodeError) as e:
        logger.error(f"Could not load ruleset: {e}")
        return 1

    result = run_autoplay(ruleset, config)

    print("=" * 60)
    outcome = result.status.outcome or "in progress"
    print(f"After {result.turns_played} turns: {outcome}")
    print(f"Rolls: {result.run_log.get_summary()['rolls']}")
    print("=" * 60)

    if config.save_path is not None:
        manager = SessionManager(
            config.save_path.parent,
            win_phase=ruleset.settings.win_phase,
        )
        saved = manager.save_session(result.state, filename=config.save_path.name, dice=result.dice)
        if saved is not None:
            result.run_log.log_custom("session_saved", {"path": str(saved)})

    if config.run_log_path is not None:
        result.run_log.save(str(config.run_log_path))

    if config.show_log:
        print(result.run_log.format_log(event_types=[EventType.ACTION, EventType.TRANSITION, EventType.CUSTOM]))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
