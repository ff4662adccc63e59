"""
Session Manager for the Nightwatch engine.

Saves and loads game sessions as JSON files. The ruleset is never saved:
a save holds only the mutable state graph plus session metadata, so data
files can be updated without breaking existing saves.

Finished games (player dead, or the night survived) are not saved; there
is nothing left to resume.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional
import json
import logging
import uuid

from nightwatch.data_models import DiceRoller, GameState

if TYPE_CHECKING:
    from nightwatch.observability.run_log import RunLog

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """
    A saved game: metadata plus the complete state graph.

    dice_state is the position of the session's random stream, so a resumed
    game draws the same numbers the uninterrupted game would have drawn.
    """
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    session_name: str = "Untitled Night"
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    last_saved_at: Optional[str] = None
    version: str = "1.0.0"
    seed: Optional[int] = None
    dice_state: Optional[list[Any]] = None
    state: GameState = field(default_factory=GameState)

    def to_dict(self) -> dict[str, Any]:
        """Serialize entire session to dictionary."""
        return {
            "session_id": self.session_id,
            "session_name": self.session_name,
            "created_at": self.created_at,
            "last_saved_at": self.last_saved_at,
            "version": self.version,
            "seed": self.seed,
            "dice_state": self.dice_state,
            "state": self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameSession":
        """Deserialize from dictionary."""
        return cls(
            session_id=data.get("session_id", str(uuid.uuid4())),
            session_name=data.get("session_name", "Untitled Night"),
            created_at=data.get("created_at", datetime.now().isoformat()),
            last_saved_at=data.get("last_saved_at"),
            version=data.get("version", "1.0.0"),
            seed=data.get("seed"),
            dice_state=data.get("dice_state"),
            state=GameState.from_dict(data.get("state", {})),
        )

    def make_dice(self, run_log: Optional["RunLog"] = None) -> DiceRoller:
        """Build a DiceRoller positioned where the saved session left off."""
        dice = DiceRoller(seed=self.seed, run_log=run_log)
        if self.dice_state is not None:
            dice.set_state(self.dice_state)
        else:
            logger.warning(f"Session {self.session_id} has no dice state; restarting from the seed")
        return dice


class SessionManager:
    """
    Manages game session save/load operations.

    Handles:
    - Saving sessions to JSON files
    - Loading sessions from JSON files
    - Listing and deleting save files
    """

    def __init__(self, save_directory: Optional[Path] = None, win_phase: str = "dawn"):
        """
        Initialize the session manager.

        Args:
            save_directory: Directory for save files. Defaults to ./saves/
            win_phase: Phase id that ends the game in a win
        """
        self.save_directory = Path(save_directory) if save_directory else Path("./saves")
        self.save_directory.mkdir(parents=True, exist_ok=True)
        self.win_phase = win_phase
        self._current_session: Optional[GameSession] = None

    @property
    def current_session(self) -> Optional[GameSession]:
        """Get the currently loaded session."""
        return self._current_session

    def is_finished(self, state: GameState) -> bool:
        return state.player.health <= 0 or state.world.current_phase_id == self.win_phase

    def save_session(
        self,
        state: Optional[GameState] = None,
        filename: Optional[str] = None,
        session_name: Optional[str] = None,
        seed: Optional[int] = None,
        dice: Optional[DiceRoller] = None,
    ) -> Optional[Path]:
        """
        Save a game state to a JSON file.

        Args:
            state: State to save (defaults to the current session's state)
            filename: Custom filename (defaults to name + session id)
            session_name: Name recorded in the save
            seed: Seed of the session's dice, if known
            dice: The session's DiceRoller; its seed and stream position are saved

        Returns:
            Path to the saved file, or None if the game is already over

        Raises:
            ValueError: If there is no state to save
        """
        session = self._current_session
        if state is None:
            if session is None:
                raise ValueError("No session to save")
            state = session.state

        if self.is_finished(state):
            logger.info("Game is over; not saving")
            return None

        if session is None or session.state is not state:
            session = GameSession(state=state)
        if session_name:
            session.session_name = session_name
        if seed is not None:
            session.seed = seed
        if dice is not None:
            session.seed = dice.seed
            session.dice_state = dice.get_state()
        session.last_saved_at = datetime.now().isoformat()
        self._current_session = session

        if filename is None:
            safe_name = "".join(c for c in session.session_name if c.isalnum() or c in " -_")
            filename = f"{safe_name}_{session.session_id[:8]}.json"

        filepath = self.save_directory / filename
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved session to: {filepath}")
        return filepath

    def load_session(self, filepath: Path | str) -> GameSession:
        """
        Load a session from a JSON file.

        Args:
            filepath: Path to the save file (absolute, or relative to the save directory)

        Returns:
            Loaded GameSession

        Raises:
            FileNotFoundError: If the save file does not exist
        """
        filepath = Path(filepath)
        if not filepath.exists():
            filepath = self.save_directory / filepath

        if not filepath.exists():
            raise FileNotFoundError(f"Save file not found: {filepath}")

        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        session = GameSession.from_dict(data)
        self._current_session = session

        logger.info(f"Loaded session: {session.session_name} ({session.session_id})")
        return session

    def list_sessions(self) -> list[dict[str, Any]]:
        """
        List all available save files.

        Returns:
            List of session metadata dictionaries, most recent first
        """
        sessions = []

        for filepath in self.save_directory.glob("*.json"):
            try:
                with open(filepath, "r", encoding="utf-8") as f:
                    data = json.load(f)

                sessions.append({
                    "filepath": str(filepath),
                    "filename": filepath.name,
                    "session_id": data.get("session_id", "unknown"),
                    "session_name": data.get("session_name", "Untitled Night"),
                    "created_at": data.get("created_at"),
                    "last_saved_at": data.get("last_saved_at"),
                    "phase": data.get("state", {}).get("world", {}).get("current_phase_id"),
                })
            except (json.JSONDecodeError, KeyError) as e:
                logger.warning(f"Could not read save file {filepath}: {e}")

        sessions.sort(
            key=lambda s: s.get("last_saved_at") or s.get("created_at") or "",
            reverse=True
        )
        return sessions

    def delete_session(self, filepath: Path | str) -> bool:
        """
        Delete a save file.

        Returns:
            True if deleted successfully
        """
        filepath = Path(filepath)
        if not filepath.exists():
            filepath = self.save_directory / filepath

        if filepath.exists():
            filepath.unlink()
            logger.info(f"Deleted save file: {filepath}")
            return True
        return False
