"""
Shared data structures for the Nightwatch engine.

The mutable state graph of a session (player, world, horde, status) and the
injectable randomization source. Every engine component reads and writes
these structures; none of them owns data exclusively.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence
import logging
import random

if TYPE_CHECKING:
    from nightwatch.observability.run_log import RunLog


logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class GameMode(str, Enum):
    """Overall threat mode of the session."""
    EXPLORING = "exploring"
    COMBAT = "combat"            # Scripted horde is active
    COMBAT_LONE = "combat_lone"  # Only noise-spawned lone monsters


class PlayerState(str, Enum):
    """Player stance."""
    NORMAL = "normal"
    HIDING = "hiding"


# =============================================================================
# DICE AND RANDOMIZATION
# =============================================================================


@dataclass
class DiceResult:
    """Result of a dice roll with full information."""
    notation: str
    rolls: list[int]
    modifier: int
    total: int
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"{self.notation}: {self.rolls} + {self.modifier} = {self.total}"
        elif self.modifier < 0:
            return f"{self.notation}: {self.rolls} - {abs(self.modifier)} = {self.total}"
        return f"{self.notation}: {self.rolls} = {self.total}"


class DiceRoller:
    """
    Randomization source for the engine.

    Every random draw made during a turn goes through one DiceRoller so a
    session can be reproduced from its seed. Each instance owns its own
    random.Random; pass the same instance to every component of a session.
    """

    def __init__(self, seed: Optional[int] = None, run_log: Optional["RunLog"] = None):
        """
        Initialize the roller.

        Args:
            seed: Optional seed for reproducible sessions
            run_log: Optional RunLog that mirrors every roll
        """
        self._seed = seed
        self._rng = random.Random(seed)
        self._roll_log: list[DiceResult] = []
        self._run_log = run_log

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def set_seed(self, seed: int) -> None:
        """Reseed for reproducibility."""
        self._seed = seed
        self._rng.seed(seed)

    def get_state(self) -> list[Any]:
        """
        Capture the generator's position in its stream.

        Returns:
            JSON-safe form of random.Random.getstate(), for set_state()
        """
        version, internal, gauss_next = self._rng.getstate()
        return [version, list(internal), gauss_next]

    def set_state(self, state: Sequence[Any]) -> None:
        """Resume the stream from a position captured by get_state()."""
        version, internal, gauss_next = state
        self._rng.setstate((version, tuple(internal), gauss_next))

    def attach_run_log(self, run_log: Optional["RunLog"]) -> None:
        self._run_log = run_log

    def _record(self, result: DiceResult) -> None:
        self._roll_log.append(result)
        if self._run_log is not None:
            self._run_log.log_roll(
                notation=result.notation,
                rolls=result.rolls,
                modifier=result.modifier,
                total=result.total,
                reason=result.reason,
            )
        logger.debug(f"Roll {result} ({result.reason})")

    def roll(self, dice: str, reason: str = "") -> DiceResult:
        """
        Roll dice using standard notation (e.g., '1d100', '2d6', '1d4+1').

        Args:
            dice: Dice notation string
            reason: Why this roll is being made (for logging)

        Returns:
            DiceResult with individual rolls and total
        """
        modifier = 0
        if '+' in dice:
            dice_part, mod_part = dice.split('+')
            modifier = int(mod_part)
        elif '-' in dice:
            dice_part, mod_part = dice.split('-')
            modifier = -int(mod_part)
        else:
            dice_part = dice

        num_dice, die_size = dice_part.lower().split('d')
        num_dice = int(num_dice) if num_dice else 1
        die_size = int(die_size)

        rolls = [self._rng.randint(1, die_size) for _ in range(num_dice)]
        result = DiceResult(
            notation=dice,
            rolls=rolls,
            modifier=modifier,
            total=sum(rolls) + modifier,
            reason=reason,
        )
        self._record(result)
        return result

    def roll_percentile(self, reason: str = "") -> int:
        """Roll d100 (1..100 inclusive)."""
        return self.roll("1d100", reason).total

    def randint(self, a: int, b: int, reason: str = "") -> int:
        """
        Return random integer in range [a, b], inclusive.

        Args:
            a: Minimum value (inclusive)
            b: Maximum value (inclusive)
            reason: Why this roll is being made
        """
        value = self._rng.randint(a, b)
        self._record(DiceResult(
            notation=f"range({a}..{b})",
            rolls=[value],
            modifier=0,
            total=value,
            reason=reason,
        ))
        return value

    def choice(self, seq: Sequence[Any], reason: str = "") -> Any:
        """
        Choose a random element from a non-empty sequence.

        Raises:
            IndexError: If sequence is empty
        """
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.randint(0, len(seq) - 1, reason)]

    def shuffle(self, x: list, reason: str = "") -> None:
        """Shuffle list x in place (Fisher-Yates over randint)."""
        for i in range(len(x) - 1, 0, -1):
            j = self.randint(0, i, f"{reason} (shuffle position {i})")
            x[i], x[j] = x[j], x[i]

    def get_roll_log(self) -> list[DiceResult]:
        """Get the complete roll log for the session."""
        return self._roll_log.copy()

    def clear_roll_log(self) -> None:
        self._roll_log = []


# =============================================================================
# MESSAGES
# =============================================================================


@dataclass
class MessageRecord:
    """
    Opaque narrative record.

    text_ref names a template owned by the presentation layer; params are
    the values it may interpolate. The engine never renders text.
    """
    text_ref: str
    params: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text_ref": self.text_ref}
        if self.params is not None:
            data["params"] = self.params
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageRecord":
        return cls(text_ref=data["text_ref"], params=data.get("params"))


# =============================================================================
# SESSION STATE
# =============================================================================


def clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


@dataclass
class MonsterInstance:
    """
    One living monster on the board.

    persistent monsters come from scripted spawns and never despawn; lone
    (non-persistent) monsters come from noise and leave when it dies down.
    """
    instance_id: str
    current_health: int
    persistent: bool = False

    @property
    def is_dead(self) -> bool:
        return self.current_health <= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.instance_id,
            "current_health": self.current_health,
            "persistent": self.persistent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MonsterInstance":
        return cls(
            instance_id=data["id"],
            current_health=data["current_health"],
            persistent=data.get("persistent", False),
        )


@dataclass
class Player:
    """Player stats and inventory."""
    health: int = 100
    stamina: int = 100
    inventory: dict[str, int] = field(default_factory=dict)

    def item_count(self, item_id: str) -> int:
        return self.inventory.get(item_id, 0)

    def has_item(self, item_id: str) -> bool:
        return self.item_count(item_id) > 0

    def add_item(self, item_id: str, quantity: int = 1) -> None:
        """Merge a quantity into the inventory, dropping the key at <= 0."""
        new_count = self.item_count(item_id) + quantity
        if new_count <= 0:
            self.inventory.pop(item_id, None)
        else:
            self.inventory[item_id] = new_count

    def remove_item(self, item_id: str, quantity: int = 1) -> int:
        """
        Subtract a quantity without checking sufficiency.

        Returns:
            The count that was actually available before removal
        """
        available = self.item_count(item_id)
        self.add_item(item_id, -quantity)
        return available

    def to_dict(self) -> dict[str, Any]:
        return {
            "health": self.health,
            "stamina": self.stamina,
            "inventory": dict(self.inventory),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Player":
        return cls(
            health=data.get("health", 100),
            stamina=data.get("stamina", 100),
            inventory={k: v for k, v in data.get("inventory", {}).items() if v > 0},
        )


@dataclass
class World:
    """Location, clock, noise and defensive structures."""
    current_location: str = ""
    previous_location: str = ""
    current_phase_id: str = ""
    actions_remaining: int = 0
    noise: int = 0
    fortifications: dict[str, int] = field(default_factory=dict)
    traps: dict[str, int] = field(default_factory=dict)
    flags: dict[str, bool] = field(default_factory=dict)
    visited_locations: set[str] = field(default_factory=set)
    scavenged_locations: set[str] = field(default_factory=set)
    horde_location: str = ""  # Empty string = no active horde

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_location": self.current_location,
            "previous_location": self.previous_location,
            "current_phase_id": self.current_phase_id,
            "actions_remaining": self.actions_remaining,
            "noise": self.noise,
            "fortifications": dict(self.fortifications),
            "traps": dict(self.traps),
            "flags": dict(self.flags),
            "visited_locations": sorted(self.visited_locations),
            "scavenged_locations": sorted(self.scavenged_locations),
            "horde_location": self.horde_location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "World":
        return cls(
            current_location=data.get("current_location", ""),
            previous_location=data.get("previous_location", ""),
            current_phase_id=data.get("current_phase_id", ""),
            actions_remaining=data.get("actions_remaining", 0),
            noise=data.get("noise", 0),
            fortifications=dict(data.get("fortifications", {})),
            traps=dict(data.get("traps", {})),
            flags=dict(data.get("flags", {})),
            visited_locations=set(data.get("visited_locations", [])),
            scavenged_locations=set(data.get("scavenged_locations", [])),
            horde_location=data.get("horde_location", ""),
        )


class Horde:
    """
    All active monster instances, grouped by monster type.

    Behaves like a mapping of monster type to instance list; a type may map
    to an empty list.
    """

    def __init__(self, groups: Optional[dict[str, list[MonsterInstance]]] = None):
        self.groups: dict[str, list[MonsterInstance]] = groups if groups is not None else {}

    def __getitem__(self, monster_type: str) -> list[MonsterInstance]:
        return self.groups[monster_type]

    def __contains__(self, monster_type: str) -> bool:
        return monster_type in self.groups

    def __iter__(self):
        return iter(self.groups)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Horde):
            return NotImplemented
        return self.groups == other.groups

    def __repr__(self) -> str:
        return f"Horde({self.counts()})"

    def get(self, monster_type: str) -> list[MonsterInstance]:
        """Instances of a type (empty list when absent)."""
        return self.groups.get(monster_type, [])

    def members(self, monster_type: str) -> list[MonsterInstance]:
        """Instance list for a type, created on first use."""
        return self.groups.setdefault(monster_type, [])

    def is_present(self, monster_type: str) -> bool:
        return len(self.get(monster_type)) > 0

    def total(self) -> int:
        return sum(len(members) for members in self.groups.values())

    def is_empty(self) -> bool:
        return self.total() == 0

    def all_monsters(self) -> list[MonsterInstance]:
        """Flattened list of every instance, in type order."""
        return [m for members in self.groups.values() for m in members]

    def present_types(self) -> list[str]:
        return [t for t, members in self.groups.items() if members]

    def counts(self) -> dict[str, int]:
        """Per-type counts, excluding empty types."""
        return {t: len(members) for t, members in self.groups.items() if members}

    def purge_dead(self) -> int:
        """
        Remove every instance at or below 0 health, across all types.

        Returns:
            Number of instances removed
        """
        removed = 0
        for monster_type, members in self.groups.items():
            alive = [m for m in members if not m.is_dead]
            removed += len(members) - len(alive)
            self.groups[monster_type] = alive
        return removed

    def to_dict(self) -> dict[str, Any]:
        return {
            monster_type: [m.to_dict() for m in members]
            for monster_type, members in self.groups.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Horde":
        return cls({
            monster_type: [MonsterInstance.from_dict(m) for m in members]
            for monster_type, members in data.items()
        })


@dataclass
class Status:
    """Game mode, player stance, message queue and spawn cooldowns."""
    game_mode: GameMode = GameMode.EXPLORING
    player_state: PlayerState = PlayerState.NORMAL
    message_queue: list[MessageRecord] = field(default_factory=list)
    noise_spawn_count: int = 0
    repeated_spawn_cooldown: int = 0
    grace_period_cooldown: int = 0

    def queue(self, text_ref: str, params: Optional[dict[str, Any]] = None) -> MessageRecord:
        """Append a message record to the queue."""
        message = MessageRecord(text_ref=text_ref, params=params)
        self.message_queue.append(message)
        return message

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_mode": self.game_mode.value,
            "player_state": self.player_state.value,
            "message_queue": [m.to_dict() for m in self.message_queue],
            "noise_spawn_count": self.noise_spawn_count,
            "repeated_spawn_cooldown": self.repeated_spawn_cooldown,
            "grace_period_cooldown": self.grace_period_cooldown,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Status":
        return cls(
            game_mode=GameMode(data.get("game_mode", GameMode.EXPLORING.value)),
            player_state=PlayerState(data.get("player_state", PlayerState.NORMAL.value)),
            message_queue=[MessageRecord.from_dict(m) for m in data.get("message_queue", [])],
            noise_spawn_count=data.get("noise_spawn_count", 0),
            repeated_spawn_cooldown=data.get("repeated_spawn_cooldown", 0),
            grace_period_cooldown=data.get("grace_period_cooldown", 0),
        )


@dataclass
class GameState:
    """
    The complete mutable state graph of a session.

    Everything needed to resume a session lives here; to_dict/from_dict
    round-trip every field.
    """
    player: Player = field(default_factory=Player)
    world: World = field(default_factory=World)
    horde: Horde = field(default_factory=Horde)
    status: Status = field(default_factory=Status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player.to_dict(),
            "world": self.world.to_dict(),
            "horde": self.horde.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        return cls(
            player=Player.from_dict(data.get("player", {})),
            world=World.from_dict(data.get("world", {})),
            horde=Horde.from_dict(data.get("horde", {})),
            status=Status.from_dict(data.get("status", {})),
        )
