"""
Test helpers for the Nightwatch engine test suite.

Provides:
- ScriptedDice: a DiceRoller whose draws come from a queue of values
- build_ruleset_document: a small but complete ruleset document
- make_state / add_monsters: quick GameState construction
"""

import copy
from typing import Any, Optional

from nightwatch.data_models import (
    DiceResult,
    DiceRoller,
    GameMode,
    GameState,
    MonsterInstance,
    Player,
    PlayerState,
    Status,
    World,
)


# =============================================================================
# SCRIPTED DICE
# =============================================================================


class ScriptedDice(DiceRoller):
    """
    DiceRoller that returns queued values in order.

    randint() and roll_percentile() pop from the queue; once it is empty
    they fall back to the seeded generator. A queued value outside the
    requested range fails the test immediately.
    """

    def __init__(self, values: Optional[list[int]] = None, seed: int = 0):
        super().__init__(seed=seed)
        self.values: list[int] = list(values or [])
        self.requests: list[tuple[int, int, str]] = []

    def queue(self, *values: int) -> "ScriptedDice":
        self.values.extend(values)
        return self

    def randint(self, a: int, b: int, reason: str = "") -> int:
        self.requests.append((a, b, reason))
        if not self.values:
            return super().randint(a, b, reason)
        value = self.values.pop(0)
        assert a <= value <= b, f"scripted {value} outside [{a}, {b}] for {reason!r}"
        self._record(DiceResult(
            notation=f"range({a}..{b})",
            rolls=[value],
            modifier=0,
            total=value,
            reason=reason,
        ))
        return value

    def roll_percentile(self, reason: str = "") -> int:
        if not self.values:
            return super().roll_percentile(reason)
        return self.randint(1, 100, reason)


# =============================================================================
# RULESET DOCUMENT
# =============================================================================


_RULESET_DOCUMENT: dict[str, Any] = {
    "items": {
        "axe": {
            "name": "Axe",
            "effects": {
                "single_attack": {"damage": 10},
                "cleave_attack": {"damage": 6, "targets": {"min": 3, "max": 4}},
            },
        },
        "bat": {"name": "Baseball Bat", "effects": {"single_attack": {"damage": 6}}},
        "bow": {"name": "Bow", "effects": {"single_attack": {"damage": 8}}},
        "arrow": {"name": "Arrow"},
        "molotov": {
            "name": "Molotov",
            "effects": {"incinerate": {"damage": 12}},
            "recipe": [{"item": "bottle", "quantity": 1}, {"item": "cloth", "quantity": 1}],
        },
        "spear": {"name": "Spear", "recipe": [{"item": "wood", "quantity": 2}]},
        "black_salt": {"name": "Black Salt", "effects": {"damage": 25}},
        "wood": {"name": "Wood"},
        "net": {"name": "Net"},
        "bottle": {"name": "Bottle"},
        "cloth": {"name": "Cloth"},
    },
    "monsters": {
        "zombie": {
            "name": "Zombie",
            "health": 10,
            "behavior": {"damage": 5, "target": ["player", "fortification"], "special": ["lingers_short"]},
        },
        "skeleton": {
            "name": "Skeleton",
            "health": 8,
            "behavior": {"damage": 4, "target": ["player", "fortification"]},
        },
        "spirit": {
            "name": "Spirit",
            "health": 6,
            "behavior": {"damage": 3, "target": ["player"], "special": ["lingers_long"]},
        },
        "vampire": {
            "name": "Vampire",
            "health": 40,
            "behavior": {
                "damage": 8,
                "target": ["player"],
                "special": ["boss"],
                "specialMoves": [
                    {"name": "life_drain", "weight": 30, "minPlayerHealth": 20, "damage": 10},
                    {"name": "enfeeble", "weight": 20, "minPlayerStamina": 10, "staminaDrain": 5},
                ],
            },
        },
        "witch": {
            "name": "Witch",
            "health": 35,
            "behavior": {
                "damage": 6,
                "target": ["player"],
                "special": ["boss"],
                "specialMoves": [
                    {"name": "heal_horde", "weight": 40, "minDamagedAllies": 2, "amount": 5},
                    {"name": "ranged_potion", "weight": 30, "damage": 8, "jitter": 2},
                ],
            },
        },
    },
    "locations": {
        "campsite": {
            "menu": [
                {
                    "category": "MOVE",
                    "subActions": [
                        {"id": "go_cabin", "text_ref": "action_go_cabin", "effects": {"setLocation": "cabin"}},
                        {"id": "go_gate", "text_ref": "action_go_gate", "effects": {"setLocation": "campGate"}},
                    ],
                },
                {
                    "category": "SCAVENGE",
                    "subActions": [
                        {
                            "id": "scavenge_campsite",
                            "text_ref": "action_scavenge",
                            "showIf": [{"notScavenged": "campsite"}],
                            "effects": {
                                "addRandomItems": {"wood": {"min": 1, "max": 3}},
                                "addScavengedFlag": "campsite",
                                "changeStat": {"noise": 5},
                                "result_ref": "outcome_scavenge",
                            },
                        },
                    ],
                },
                {
                    "category": "FIGHT",
                    "subActions": [
                        {
                            "id": "attack_zombie",
                            "text_ref": "action_attack_zombie",
                            "showIf": [{"monsterIsPresent": "zombie"}, {"hasAnyItem": ["axe", "bat"]}],
                            "effects": {
                                "attackType": "single",
                                "attackTarget": "zombie",
                                "weaponPriority": ["axe", "bat"],
                                "result_ref": "outcome_attack_single",
                            },
                        },
                    ],
                },
            ],
        },
        "cabin": {
            "menu": [
                {
                    "category": "HIDE",
                    "subActions": [
                        {
                            "id": "hide_in_cabin",
                            "text_ref": "action_hide",
                            "effects": {"setPlayerState": "hiding", "result_ref": "outcome_hide"},
                        },
                    ],
                },
                {
                    "category": "MOVE",
                    "subActions": [
                        {"id": "go_campsite", "effects": {"setLocation": "campsite"}},
                    ],
                },
            ],
        },
        "campGate": {
            "menu": [
                {
                    "category": "FORTIFY",
                    "subActions": [
                        {
                            "id": "repair_gate",
                            "showIf": [{"hasItem": "wood"}],
                            "effects": {
                                "changeStat": {"campGate": 10},
                                "removeItem": "wood",
                                "result_ref": "outcome_repair",
                            },
                        },
                        {
                            "id": "set_trap",
                            "showIf": [{"hasItems": {"wood": 1, "net": 1}}],
                            "effects": {"addTrap": "campGate", "result_ref": "outcome_trap"},
                        },
                    ],
                },
            ],
        },
    },
    "globalActions": {
        "menu": [
            {
                "category": "REST",
                "subActions": [
                    {
                        "id": "wait",
                        "text_ref": "action_wait",
                        "effects": {
                            "wait": {"staminaGain": 10, "noiseReduction": 5, "hidingNoiseReduction": 10},
                        },
                    },
                ],
            },
            {
                "category": "CRAFT",
                "subActions": [
                    {
                        "id": "craft_spear",
                        "text_ref": "action_craft_spear",
                        "showIf": [{"hasItems": {"wood": 2}}],
                        "effects": {"craft": "spear", "result_ref": "outcome_craft_spear"},
                    },
                ],
            },
        ],
    },
    "phases": {
        "phases": [
            {
                "id": "dusk",
                "durationInActions": 6,
                "events": [
                    {"trigger": {"value": 4}, "effect": {"spawn": [{"monster": "zombie", "count": 2}]}},
                ],
                "noiseSpawnPool": ["zombie"],
            },
            {
                "id": "midnight",
                "durationInActions": 6,
                "events": [
                    {
                        "trigger": {"value": 3},
                        "effect": {"spawn": [{"monster": "skeleton", "count": 1}, {"bossPool": ["vampire", "witch"]}]},
                    },
                ],
                "noiseSpawnPool": ["zombie", "spirit"],
            },
            {"id": "dawn", "durationInActions": 0},
        ],
    },
    "settings": {
        "COOLDOWNS": {"GRACE_PERIOD": 3, "REPEATED_SPAWN": 2},
        "NOISE": {"SPAWN_THRESHOLD": 50},
    },
    "texts": {
        "action_go_cabin": "Go to the cabin",
        "action_wait": "Wait",
    },
    "initialState": {
        "player": {
            "initialStats": {"health": 100, "stamina": 100},
            "initialInventory": {"bat": 1, "wood": 2},
        },
        "world": {
            "currentLocation": "campsite",
            "currentPhaseId": "dusk",
            "noise": 0,
            "fortifications": {"campGate": 30, "cabin": 40, "graveyardGate": 30},
            "traps": {"campGate": 0, "graveyardGate": 0},
            "flags": {"enfeebled": False},
            "hordeLocation": "",
        },
        "horde": {"zombie": [], "skeleton": [], "spirit": [], "vampire": [], "witch": []},
        "status": {
            "gameMode": "exploring",
            "playerState": "normal",
            "noiseSpawnCount": 0,
            "repeatedSpawnCooldown": 0,
            "gracePeriodCooldown": 0,
        },
    },
}


def build_ruleset_document() -> dict[str, Any]:
    """Fresh copy of the test ruleset document."""
    return copy.deepcopy(_RULESET_DOCUMENT)


# =============================================================================
# STATE BUILDERS
# =============================================================================


def make_state(
    location: str = "campsite",
    phase: str = "dusk",
    actions_remaining: int = 6,
    inventory: Optional[dict[str, int]] = None,
    game_mode: GameMode = GameMode.EXPLORING,
    player_state: PlayerState = PlayerState.NORMAL,
    horde_location: str = "",
    noise: int = 0,
) -> GameState:
    """Build a GameState with sensible defaults for tests."""
    return GameState(
        player=Player(health=100, stamina=100, inventory=dict(inventory or {})),
        world=World(
            current_location=location,
            current_phase_id=phase,
            actions_remaining=actions_remaining,
            noise=noise,
            fortifications={"campGate": 30, "cabin": 40, "graveyardGate": 30},
            traps={"campGate": 0, "graveyardGate": 0},
            flags={"enfeebled": False},
            horde_location=horde_location,
        ),
        status=Status(game_mode=game_mode, player_state=player_state),
    )


def add_monsters(
    state: GameState,
    monster_type: str,
    count: int,
    health: int,
    persistent: bool = True,
) -> list[MonsterInstance]:
    """Append count instances of a type to the horde."""
    members = state.horde.members(monster_type)
    added = []
    for _ in range(count):
        monster = MonsterInstance(
            instance_id=f"{monster_type}_test_{len(members)}",
            current_health=health,
            persistent=persistent,
        )
        members.append(monster)
        added.append(monster)
    return added


def queued_refs(state: GameState) -> list[str]:
    return [m.text_ref for m in state.status.message_queue]
