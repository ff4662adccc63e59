"""
Run Log for turn-by-turn engine event tracking.

Captures the deterministic events of a session (dice rolls, chosen actions,
game-mode and phase transitions) so a seeded run can be inspected or compared
against another run of the same seed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional
import json
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be logged."""

    ROLL = "roll"  # Dice roll
    ACTION = "action"  # Player action resolved
    TRANSITION = "transition"  # Game mode or phase change
    CUSTOM = "custom"  # Custom event


@dataclass
class LogEvent:
    """Base class for all logged events."""

    # Subclasses set the correct value in __post_init__
    event_type: EventType = EventType.CUSTOM
    timestamp: datetime = field(default_factory=datetime.now)
    sequence_number: int = 0
    turn_marker: Optional[str] = None  # e.g. "dusk:5"
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "sequence_number": self.sequence_number,
            "turn_marker": self.turn_marker,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEvent":
        """Create from dictionary."""
        return cls(
            event_type=EventType(data["event_type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            turn_marker=data.get("turn_marker"),
            context=data.get("context", {}),
        )

    def __str__(self) -> str:
        details = {k: v for k, v in self.context.items() if k != "event_name"}
        name = self.context.get("event_name", self.event_type.value)
        return f"[{self.sequence_number}] {self.event_type.name} {name} {details}"


@dataclass
class RollEvent(LogEvent):
    """A dice roll event."""

    notation: str = ""  # e.g. "1d100", "range(-2-2)"
    rolls: list[int] = field(default_factory=list)
    modifier: int = 0
    total: int = 0
    reason: str = ""

    def __post_init__(self):
        self.event_type = EventType.ROLL

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "notation": self.notation,
                "rolls": self.rolls,
                "modifier": self.modifier,
                "total": self.total,
                "reason": self.reason,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            turn_marker=data.get("turn_marker"),
            context=data.get("context", {}),
            notation=data.get("notation", ""),
            rolls=data.get("rolls", []),
            modifier=data.get("modifier", 0),
            total=data.get("total", 0),
            reason=data.get("reason", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] ROLL {self.notation}: {self.rolls} = {self.total} ({self.reason})"


@dataclass
class ActionEvent(LogEvent):
    """A resolved player action."""

    action_id: str = ""
    messages_queued: int = 0

    def __post_init__(self):
        self.event_type = EventType.ACTION

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "action_id": self.action_id,
                "messages_queued": self.messages_queued,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            turn_marker=data.get("turn_marker"),
            context=data.get("context", {}),
            action_id=data.get("action_id", ""),
            messages_queued=data.get("messages_queued", 0),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] ACTION {self.action_id} ({self.messages_queued} messages)"


@dataclass
class TransitionEvent(LogEvent):
    """A game mode or phase transition."""

    from_state: str = ""
    to_state: str = ""
    trigger: str = ""

    def __post_init__(self):
        self.event_type = EventType.TRANSITION

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "from_state": self.from_state,
                "to_state": self.to_state,
                "trigger": self.trigger,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransitionEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            turn_marker=data.get("turn_marker"),
            context=data.get("context", {}),
            from_state=data.get("from_state", ""),
            to_state=data.get("to_state", ""),
            trigger=data.get("trigger", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] TRANSITION {self.from_state} -> {self.to_state} (trigger: {self.trigger})"


_EVENT_CLASSES: dict[EventType, type] = {
    EventType.ROLL: RollEvent,
    EventType.ACTION: ActionEvent,
    EventType.TRANSITION: TransitionEvent,
}


class RunLog:
    """
    Event log for one engine session.

    One instance is owned by the turn controller and shared with its
    DiceRoller, so rolls and actions interleave in sequence order.
    """

    def __init__(self, seed: Optional[int] = None):
        self._events: list[LogEvent] = []
        self._sequence: int = 0
        self._seed: Optional[int] = seed
        self._session_start: datetime = datetime.now()
        self._turn_marker_provider: Optional[Callable[[], str]] = None

    def set_seed(self, seed: Optional[int]) -> None:
        """Record the RNG seed used for this session."""
        self._seed = seed

    def get_seed(self) -> Optional[int]:
        return self._seed

    def set_turn_marker_provider(self, provider: Callable[[], str]) -> None:
        """
        Set a callback that describes the current turn.

        The provider should return a string like "dusk:5" (phase id and
        actions remaining).
        """
        self._turn_marker_provider = provider

    def _get_turn_marker(self) -> Optional[str]:
        if self._turn_marker_provider:
            return self._turn_marker_provider()
        return None

    def _log_event(self, event: LogEvent) -> None:
        self._sequence += 1
        event.sequence_number = self._sequence
        event.turn_marker = self._get_turn_marker()
        self._events.append(event)

    def log_roll(
        self,
        notation: str,
        rolls: list[int],
        modifier: int,
        total: int,
        reason: str = "",
        context: Optional[dict[str, Any]] = None,
    ) -> RollEvent:
        """Log a dice roll."""
        event = RollEvent(
            notation=notation,
            rolls=rolls,
            modifier=modifier,
            total=total,
            reason=reason,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_action(
        self,
        action_id: str,
        messages_queued: int = 0,
        context: Optional[dict[str, Any]] = None,
    ) -> ActionEvent:
        """Log a resolved player action."""
        event = ActionEvent(
            action_id=action_id,
            messages_queued=messages_queued,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_transition(
        self,
        from_state: str,
        to_state: str,
        trigger: str,
        context: Optional[dict[str, Any]] = None,
    ) -> TransitionEvent:
        """Log a game mode or phase transition."""
        event = TransitionEvent(
            from_state=from_state,
            to_state=to_state,
            trigger=trigger,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_custom(self, event_name: str, details: dict[str, Any]) -> LogEvent:
        """Log a custom event."""
        event = LogEvent(
            event_type=EventType.CUSTOM,
            context={"event_name": event_name, **details},
        )
        self._log_event(event)
        return event

    def get_events(
        self,
        event_type: Optional[EventType] = None,
        since_sequence: int = 0,
    ) -> list[LogEvent]:
        """
        Get logged events.

        Args:
            event_type: Filter by event type (None = all)
            since_sequence: Only events after this sequence number

        Returns:
            List of events
        """
        events = [e for e in self._events if e.sequence_number > since_sequence]
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events

    def get_rolls(self) -> list[RollEvent]:
        return [e for e in self._events if isinstance(e, RollEvent)]

    def get_actions(self) -> list[ActionEvent]:
        return [e for e in self._events if isinstance(e, ActionEvent)]

    def get_transitions(self) -> list[TransitionEvent]:
        return [e for e in self._events if isinstance(e, TransitionEvent)]

    def get_roll_stream(self) -> list[dict[str, Any]]:
        """
        Get the roll stream of the session.

        Two runs with the same seed and the same chosen actions produce
        identical streams.
        """
        return [
            {
                "notation": e.notation,
                "rolls": e.rolls,
                "total": e.total,
                "reason": e.reason,
            }
            for e in self.get_rolls()
        ]

    def get_event_count(self) -> int:
        return len(self._events)

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the run log."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "total_events": len(self._events),
            "rolls": len(self.get_rolls()),
            "actions": len(self.get_actions()),
            "transitions": len(self.get_transitions()),
            "last_sequence": self._sequence,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entire log to a dictionary."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "sequence": self._sequence,
            "events": [e.to_dict() for e in self._events],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunLog":
        """Rebuild a log from its serialized form."""
        log = cls(seed=data.get("seed"))
        log._session_start = datetime.fromisoformat(data["session_start"])
        log._sequence = data.get("sequence", 0)

        for event_data in data.get("events", []):
            event_cls = _EVENT_CLASSES.get(EventType(event_data["event_type"]), LogEvent)
            log._events.append(event_cls.from_dict(event_data))

        return log

    def save(self, filepath: str) -> None:
        """Save the log to a file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())
        logger.info(f"RunLog saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "RunLog":
        """Load a log from a file."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        log = cls.from_dict(data)
        logger.info(f"RunLog loaded from {filepath}: {log.get_event_count()} events")
        return log

    def format_log(
        self,
        event_types: Optional[list[EventType]] = None,
        max_events: Optional[int] = None,
    ) -> str:
        """Format the log as a human-readable string."""
        lines = [
            "=== Run Log ===",
            f"Session: {self._session_start.isoformat()}",
            f"Seed: {self._seed if self._seed is not None else 'not set'}",
            f"Total Events: {len(self._events)}",
            "",
        ]

        events = self._events
        if event_types:
            events = [e for e in events if e.event_type in event_types]
        if max_events:
            events = events[-max_events:]

        for event in events:
            lines.append(str(event))

        return "\n".join(lines)
