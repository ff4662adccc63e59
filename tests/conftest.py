"""
Pytest fixtures for the Nightwatch engine test suite.

Provides reusable fixtures for dice, the test ruleset and game state.
"""

import pytest

from nightwatch.data_models import DiceRoller
from nightwatch.game_state.cooldowns import CooldownManager
from nightwatch.ruleset import Ruleset

from tests.helpers import ScriptedDice, build_ruleset_document, make_state


# =============================================================================
# DICE FIXTURES
# =============================================================================


@pytest.fixture
def seeded_dice():
    """Provide a seeded DiceRoller for reproducible tests."""
    return DiceRoller(seed=42)


@pytest.fixture
def scripted_dice():
    """Provide a DiceRoller driven by queued values."""
    return ScriptedDice()


# =============================================================================
# RULESET FIXTURES
# =============================================================================


@pytest.fixture
def ruleset_document():
    """Raw test ruleset document."""
    return build_ruleset_document()


@pytest.fixture
def ruleset(ruleset_document):
    """Parsed test ruleset."""
    return Ruleset.from_dict(ruleset_document)


@pytest.fixture
def cooldowns(ruleset):
    return CooldownManager(ruleset.settings)


# =============================================================================
# STATE FIXTURES
# =============================================================================


@pytest.fixture
def state():
    """Fresh state: player at the campsite at dusk, empty board."""
    return make_state()
