"""
Condition Evaluator

Parses and evaluates the declarative availability conditions ("showIf"
lists) attached to actions. Each condition is a single-key mapping such as
{"hasItem": "axe"} or {"minStamina": 10}; a list of conditions holds when
every entry holds.

Supported condition keys:
- gameModeIs, minStamina, hordeLocationNotIn
- hasItem, hasAnyItem, hasItems
- atLocation, isTargetAdjacent, notScavenged
- flagIsTrue, flagIsFalse
- monsterIsPresent, bossIsPresent, hordeSizeIsGreaterThan

Unknown keys are logged and treated as satisfied so that an action is never
hidden by a data typo.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional
import logging

from nightwatch.data_models import GameState, World

logger = logging.getLogger(__name__)


# Player/horde location pairs that are close but out of reach of each other
UNREACHABLE_PAIRS: frozenset[tuple[str, str]] = frozenset({("cabin", "campGate")})


def is_target_adjacent(world: World) -> bool:
    """False only when the player stands in an unreachable pair with the horde."""
    return (world.current_location, world.horde_location) not in UNREACHABLE_PAIRS


class ConditionKind(str, Enum):
    """Kinds of availability conditions, keyed by their data name."""
    GAME_MODE_IS = "gameModeIs"
    MIN_STAMINA = "minStamina"
    HORDE_LOCATION_NOT_IN = "hordeLocationNotIn"
    HAS_ITEM = "hasItem"
    HAS_ANY_ITEM = "hasAnyItem"
    HAS_ITEMS = "hasItems"
    AT_LOCATION = "atLocation"
    IS_TARGET_ADJACENT = "isTargetAdjacent"
    NOT_SCAVENGED = "notScavenged"
    FLAG_IS_TRUE = "flagIsTrue"
    FLAG_IS_FALSE = "flagIsFalse"
    MONSTER_IS_PRESENT = "monsterIsPresent"
    BOSS_IS_PRESENT = "bossIsPresent"
    HORDE_SIZE_GREATER_THAN = "hordeSizeIsGreaterThan"
    UNKNOWN = "unknown"


_KINDS_BY_KEY = {kind.value: kind for kind in ConditionKind if kind is not ConditionKind.UNKNOWN}


@dataclass(frozen=True)
class Condition:
    """A parsed condition: its kind, its operand, and the raw data key."""
    kind: ConditionKind
    value: Any
    raw_key: str


def parse_condition(raw: dict[str, Any]) -> Condition:
    """
    Parse a single-key condition mapping.

    Args:
        raw: Mapping like {"hasItem": "axe"}

    Returns:
        Condition; unrecognized keys produce ConditionKind.UNKNOWN
    """
    if not raw:
        return Condition(kind=ConditionKind.UNKNOWN, value=None, raw_key="")

    key = next(iter(raw))
    kind = _KINDS_BY_KEY.get(key, ConditionKind.UNKNOWN)
    return Condition(kind=kind, value=raw[key], raw_key=key)


class ConditionEvaluator:
    """
    Pure predicate matcher over condition lists.

    Evaluation never mutates state and never caches: the same state always
    yields the same answer.
    """

    def __init__(self):
        self._handlers: dict[ConditionKind, Callable[[Any, GameState], bool]] = {
            ConditionKind.GAME_MODE_IS: self._game_mode_is,
            ConditionKind.MIN_STAMINA: self._min_stamina,
            ConditionKind.HORDE_LOCATION_NOT_IN: self._horde_location_not_in,
            ConditionKind.HAS_ITEM: self._has_item,
            ConditionKind.HAS_ANY_ITEM: self._has_any_item,
            ConditionKind.HAS_ITEMS: self._has_items,
            ConditionKind.AT_LOCATION: self._at_location,
            ConditionKind.IS_TARGET_ADJACENT: self._is_target_adjacent,
            ConditionKind.NOT_SCAVENGED: self._not_scavenged,
            ConditionKind.FLAG_IS_TRUE: self._flag_is_true,
            ConditionKind.FLAG_IS_FALSE: self._flag_is_false,
            ConditionKind.MONSTER_IS_PRESENT: self._monster_is_present,
            ConditionKind.BOSS_IS_PRESENT: self._monster_is_present,
            ConditionKind.HORDE_SIZE_GREATER_THAN: self._horde_size_greater_than,
            ConditionKind.UNKNOWN: self._unknown,
        }

    def handled_kinds(self) -> set[ConditionKind]:
        return set(self._handlers)

    def are_conditions_met(
        self,
        conditions: Optional[list[dict[str, Any]]],
        state: GameState,
    ) -> bool:
        """
        Check whether every condition in the list holds.

        Args:
            conditions: Raw showIf list (None or empty = always available)
            state: Current game state

        Returns:
            True if all conditions are met
        """
        if not conditions:
            return True
        return all(self.evaluate(parse_condition(raw), state) for raw in conditions)

    def evaluate(self, condition: Condition, state: GameState) -> bool:
        """Evaluate one parsed condition."""
        return self._handlers[condition.kind](condition, state)

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _game_mode_is(self, condition: Condition, state: GameState) -> bool:
        return state.status.game_mode.value == condition.value

    def _min_stamina(self, condition: Condition, state: GameState) -> bool:
        return state.player.stamina >= condition.value

    def _horde_location_not_in(self, condition: Condition, state: GameState) -> bool:
        return state.world.horde_location not in condition.value

    def _has_item(self, condition: Condition, state: GameState) -> bool:
        return state.player.has_item(condition.value)

    def _has_any_item(self, condition: Condition, state: GameState) -> bool:
        return any(state.player.has_item(item) for item in condition.value)

    def _has_items(self, condition: Condition, state: GameState) -> bool:
        return all(
            state.player.item_count(item) >= quantity
            for item, quantity in condition.value.items()
        )

    def _at_location(self, condition: Condition, state: GameState) -> bool:
        return state.world.current_location == condition.value

    def _is_target_adjacent(self, condition: Condition, state: GameState) -> bool:
        return is_target_adjacent(state.world)

    def _not_scavenged(self, condition: Condition, state: GameState) -> bool:
        return condition.value not in state.world.scavenged_locations

    def _flag_is_true(self, condition: Condition, state: GameState) -> bool:
        return state.world.flags.get(condition.value) is True

    def _flag_is_false(self, condition: Condition, state: GameState) -> bool:
        # Strict: an undeclared flag is neither true nor false
        return state.world.flags.get(condition.value) is False

    def _monster_is_present(self, condition: Condition, state: GameState) -> bool:
        return state.horde.is_present(condition.value)

    def _horde_size_greater_than(self, condition: Condition, state: GameState) -> bool:
        return state.horde.total() > condition.value

    def _unknown(self, condition: Condition, state: GameState) -> bool:
        logger.warning(f"Unknown condition key: {condition.raw_key!r}; treating as satisfied")
        return True


# Shared instance for convenience
_default_evaluator: Optional[ConditionEvaluator] = None


def get_condition_evaluator() -> ConditionEvaluator:
    """Get the default condition evaluator instance."""
    global _default_evaluator
    if _default_evaluator is None:
        _default_evaluator = ConditionEvaluator()
    return _default_evaluator


def are_conditions_met(
    conditions: Optional[list[dict[str, Any]]],
    state: GameState,
) -> bool:
    """Convenience function: evaluate a showIf list with the default evaluator."""
    return get_condition_evaluator().are_conditions_met(conditions, state)
