"""
Tests for the availability condition evaluator.

Tests parsing, every condition kind, the permissive handling of unknown
keys and the campsite adjacency exception.
"""

import logging

import pytest

from nightwatch.conditions import (
    ConditionEvaluator,
    ConditionKind,
    are_conditions_met,
    get_condition_evaluator,
    parse_condition,
)
from nightwatch.data_models import GameMode

from tests.helpers import add_monsters, make_state


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


class TestParseCondition:
    """Tests for parse_condition."""

    def test_known_key(self):
        """A known key parses to its kind."""
        condition = parse_condition({"hasItem": "axe"})
        assert condition.kind == ConditionKind.HAS_ITEM
        assert condition.value == "axe"
        assert condition.raw_key == "hasItem"

    def test_unknown_key(self):
        """An unknown key parses to UNKNOWN."""
        condition = parse_condition({"isFullMoon": True})
        assert condition.kind == ConditionKind.UNKNOWN
        assert condition.raw_key == "isFullMoon"

    def test_every_kind_has_a_handler(self, evaluator):
        """Every condition kind has a handler."""
        assert evaluator.handled_kinds() == set(ConditionKind)


class TestConditionKinds:
    """Each condition kind against a matching and a non-matching state."""

    def test_no_conditions_always_met(self, evaluator, state):
        """An action without conditions is always available."""
        assert evaluator.are_conditions_met(None, state)
        assert evaluator.are_conditions_met([], state)

    def test_game_mode(self, evaluator, state):
        """gameModeIs matches the current mode."""
        assert evaluator.are_conditions_met([{"gameModeIs": "exploring"}], state)
        state.status.game_mode = GameMode.COMBAT
        assert not evaluator.are_conditions_met([{"gameModeIs": "exploring"}], state)

    def test_min_stamina(self, evaluator, state):
        """minStamina compares against current stamina."""
        state.player.stamina = 10
        assert evaluator.are_conditions_met([{"minStamina": 10}], state)
        assert not evaluator.are_conditions_met([{"minStamina": 11}], state)

    def test_horde_location_not_in(self, evaluator, state):
        """hordeLocationNotIn rejects listed horde locations."""
        state.world.horde_location = "campGate"
        assert not evaluator.are_conditions_met([{"hordeLocationNotIn": ["campGate", "campsite"]}], state)
        assert evaluator.are_conditions_met([{"hordeLocationNotIn": ["cabin"]}], state)

    def test_item_conditions(self, evaluator):
        """Item conditions check inventory counts."""
        state = make_state(inventory={"wood": 2, "bat": 1})
        assert evaluator.are_conditions_met([{"hasItem": "bat"}], state)
        assert not evaluator.are_conditions_met([{"hasItem": "axe"}], state)
        assert evaluator.are_conditions_met([{"hasAnyItem": ["axe", "bat"]}], state)
        assert not evaluator.are_conditions_met([{"hasAnyItem": ["axe", "bow"]}], state)
        assert evaluator.are_conditions_met([{"hasItems": {"wood": 2}}], state)
        assert not evaluator.are_conditions_met([{"hasItems": {"wood": 2, "net": 1}}], state)

    def test_location_conditions(self, evaluator, state):
        """Location conditions check where the player stands."""
        assert evaluator.are_conditions_met([{"atLocation": "campsite"}], state)
        assert evaluator.are_conditions_met([{"notScavenged": "campsite"}], state)
        state.world.scavenged_locations.add("campsite")
        assert not evaluator.are_conditions_met([{"notScavenged": "campsite"}], state)

    def test_target_adjacency_exception(self, evaluator):
        """The cabin and camp gate are not adjacent."""
        state = make_state(location="cabin", horde_location="campGate")
        assert not evaluator.are_conditions_met([{"isTargetAdjacent": True}], state)
        state.world.current_location = "campsite"
        assert evaluator.are_conditions_met([{"isTargetAdjacent": True}], state)

    def test_flags_are_strict(self, evaluator, state):
        """An undeclared flag is neither true nor false."""
        assert evaluator.are_conditions_met([{"flagIsFalse": "enfeebled"}], state)
        assert not evaluator.are_conditions_met([{"flagIsTrue": "enfeebled"}], state)
        # An undeclared flag is neither true nor false
        assert not evaluator.are_conditions_met([{"flagIsFalse": "bridge_burnt"}], state)
        assert not evaluator.are_conditions_met([{"flagIsTrue": "bridge_burnt"}], state)

    def test_monster_presence(self, evaluator, state):
        """Presence conditions look at live horde members."""
        assert not evaluator.are_conditions_met([{"monsterIsPresent": "zombie"}], state)
        add_monsters(state, "zombie", 1, 10)
        add_monsters(state, "witch", 1, 35)
        assert evaluator.are_conditions_met([{"monsterIsPresent": "zombie"}], state)
        assert evaluator.are_conditions_met([{"bossIsPresent": "witch"}], state)

    def test_horde_size(self, evaluator, state):
        """hordeSizeIsGreaterThan compares the total horde size."""
        add_monsters(state, "zombie", 2, 10)
        add_monsters(state, "spirit", 1, 6)
        assert evaluator.are_conditions_met([{"hordeSizeIsGreaterThan": 2}], state)
        assert not evaluator.are_conditions_met([{"hordeSizeIsGreaterThan": 3}], state)

    def test_all_conditions_must_hold(self, evaluator):
        """Every condition must hold for the action to show."""
        state = make_state(inventory={"bat": 1})
        assert not evaluator.are_conditions_met([{"hasItem": "bat"}, {"monsterIsPresent": "zombie"}], state)


class TestPermissiveUnknown:
    """Unknown keys never hide an action."""

    def test_unknown_key_is_satisfied_and_logged(self, evaluator, state, caplog):
        """An unknown condition passes with a warning."""
        with caplog.at_level(logging.WARNING, logger="nightwatch.conditions.condition_evaluator"):
            assert evaluator.are_conditions_met([{"isFullMoon": True}], state)
        assert "isFullMoon" in caplog.text


class TestPurity:
    """Evaluation never mutates state and is repeatable."""

    def test_idempotent_on_unchanged_state(self, evaluator):
        """Evaluating twice gives the same answer and changes nothing."""
        state = make_state(inventory={"wood": 2}, horde_location="campGate")
        add_monsters(state, "zombie", 1, 10)
        conditions = [
            {"hasItems": {"wood": 2}},
            {"monsterIsPresent": "zombie"},
            {"isTargetAdjacent": True},
            {"flagIsFalse": "enfeebled"},
        ]
        before = state.to_dict()
        results = [evaluator.are_conditions_met(conditions, state) for _ in range(3)]
        assert results == [True, True, True]
        assert state.to_dict() == before

    def test_module_helpers_share_one_evaluator(self, state):
        """The module helpers reuse one shared evaluator."""
        assert get_condition_evaluator() is get_condition_evaluator()
        assert are_conditions_met([{"atLocation": "campsite"}], state)
