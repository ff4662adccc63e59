"""
Read-only ruleset for the Nightwatch engine.

Typed view over the static game data document (items, monsters, locations,
global actions, phases, settings, texts and the initial state). The engine
never mutates a Ruleset; reading the data files from disk is the caller's
concern, this module only parses an already-loaded document.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import copy
import logging

logger = logging.getLogger(__name__)


class RulesetError(ValueError):
    """Raised when a ruleset document is malformed."""


REQUIRED_SECTIONS = ("items", "monsters", "phases", "initialState")

# Default gate topology of the camp/graveyard map:
#   location -> (horde gate when spawning, fortification attacked, next tier)
DEFAULT_TOPOLOGY: dict[str, tuple[Optional[str], Optional[str], Optional[str]]] = {
    "campsite": ("campGate", "cabin", "cabin"),
    "cabin": ("campGate", None, None),
    "campGate": (None, "campGate", "campsite"),
    "graveyard": ("graveyardGate", None, None),
    "graveyardGate": (None, "graveyardGate", "graveyard"),
}


# =============================================================================
# SETTINGS
# =============================================================================


@dataclass
class Settings:
    """Tunable constants of the ruleset."""

    # Player
    enfeeble_multiplier: float = 0.75
    stat_max: int = 100
    hiding_actions: list[str] = field(
        default_factory=lambda: ["hide_in_tents", "hide_in_cabin", "hide_in_hut", "wait"]
    )

    # Cooldowns (in completed player turns)
    grace_period: int = 3
    repeated_spawn: int = 2

    # Noise
    noise_spawn_threshold: int = 50
    despawn_threshold_short: int = 30
    despawn_threshold_long: int = 15

    # Combat
    shoot_weapon: str = "bow"
    shoot_ammo: str = "arrow"
    incinerate_item: str = "molotov"
    shoot_target_order: list[str] = field(
        default_factory=lambda: ["witch", "vampire", "zombie", "skeleton", "spirit"]
    )

    # Traps and scavenging
    trap_materials: dict[str, int] = field(default_factory=lambda: {"wood": 1, "net": 1})
    tracked_random_item: str = "wood"

    # Game
    win_phase: str = "dawn"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Parse the sectioned settings document; absent keys keep defaults."""
        defaults = cls()
        player = data.get("PLAYER", {})
        cooldowns = data.get("COOLDOWNS", {})
        noise = data.get("NOISE", {})
        combat = data.get("COMBAT", {})
        traps = data.get("TRAPS", {})
        game = data.get("GAME", {})

        return cls(
            enfeeble_multiplier=player.get("ENFEEBLE_MULTIPLIER", defaults.enfeeble_multiplier),
            stat_max=player.get("STAT_MAX", defaults.stat_max),
            hiding_actions=list(player.get("HIDING_ACTIONS", defaults.hiding_actions)),
            grace_period=cooldowns.get("GRACE_PERIOD", defaults.grace_period),
            repeated_spawn=cooldowns.get("REPEATED_SPAWN", defaults.repeated_spawn),
            noise_spawn_threshold=noise.get("SPAWN_THRESHOLD", defaults.noise_spawn_threshold),
            despawn_threshold_short=noise.get("DESPAWN_THRESHOLD_SHORT", defaults.despawn_threshold_short),
            despawn_threshold_long=noise.get("DESPAWN_THRESHOLD_LONG", defaults.despawn_threshold_long),
            shoot_weapon=combat.get("SHOOT_WEAPON", defaults.shoot_weapon),
            shoot_ammo=combat.get("SHOOT_AMMO", defaults.shoot_ammo),
            incinerate_item=combat.get("INCINERATE_ITEM", defaults.incinerate_item),
            shoot_target_order=list(combat.get("SHOOT_TARGET_ORDER", defaults.shoot_target_order)),
            trap_materials=dict(traps.get("MATERIALS", defaults.trap_materials)),
            tracked_random_item=traps.get("TRACKED_RANDOM_ITEM", defaults.tracked_random_item),
            win_phase=game.get("WIN_PHASE", defaults.win_phase),
        )


# =============================================================================
# ITEMS
# =============================================================================


@dataclass
class RecipeIngredient:
    """One ingredient line of a crafting recipe."""
    item_id: str
    quantity: int


@dataclass
class AttackProfile:
    """Damage profile of a weapon for one attack style."""
    damage: int
    min_targets: int = 1
    max_targets: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttackProfile":
        targets = data.get("targets", {})
        return cls(
            damage=data.get("damage", 0),
            min_targets=targets.get("min", 1),
            max_targets=targets.get("max", 1),
        )


@dataclass
class ItemData:
    """Static definition of an item."""
    item_id: str
    name: str
    recipe: Optional[list[RecipeIngredient]] = None
    single_attack: Optional[AttackProfile] = None
    cleave_attack: Optional[AttackProfile] = None
    incinerate: Optional[AttackProfile] = None
    special_damage: Optional[int] = None  # Boss-only consumables

    @classmethod
    def from_dict(cls, item_id: str, data: dict[str, Any]) -> "ItemData":
        effects = data.get("effects", {}) or {}
        recipe = data.get("recipe")

        def profile(key: str) -> Optional[AttackProfile]:
            return AttackProfile.from_dict(effects[key]) if key in effects else None

        return cls(
            item_id=item_id,
            name=data.get("name", item_id),
            recipe=(
                [RecipeIngredient(item_id=r["item"], quantity=r["quantity"]) for r in recipe]
                if recipe is not None else None
            ),
            single_attack=profile("single_attack"),
            cleave_attack=profile("cleave_attack"),
            incinerate=profile("incinerate"),
            special_damage=effects.get("damage"),
        )


# =============================================================================
# MONSTERS
# =============================================================================


@dataclass
class BossMove:
    """A weighted special move of a boss, with its tuning parameters."""
    name: str
    weight: int
    params: dict[str, Any] = field(default_factory=dict)

    def param(self, key: str, default: Any = 0) -> Any:
        return self.params.get(key, default)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BossMove":
        params = {k: v for k, v in data.items() if k not in ("name", "weight")}
        return cls(name=data["name"], weight=data.get("weight", 0), params=params)


@dataclass
class MonsterData:
    """Static definition of a monster type."""
    monster_id: str
    name: str
    health: int
    damage: int = 0
    targets: list[str] = field(default_factory=list)  # "player", "fortification"
    special: list[str] = field(default_factory=list)  # "boss", "lingers_long", ...
    special_moves: list[BossMove] = field(default_factory=list)

    @property
    def can_attack_player(self) -> bool:
        return "player" in self.targets

    @property
    def can_attack_fortification(self) -> bool:
        return "fortification" in self.targets

    @property
    def is_boss(self) -> bool:
        return "boss" in self.special

    @property
    def lingers_long(self) -> bool:
        return "lingers_long" in self.special

    @classmethod
    def from_dict(cls, monster_id: str, data: dict[str, Any]) -> "MonsterData":
        behavior = data.get("behavior", {})
        return cls(
            monster_id=monster_id,
            name=data.get("name", monster_id),
            health=data.get("health", 1),
            damage=behavior.get("damage", 0),
            targets=list(behavior.get("target", [])),
            special=list(behavior.get("special", [])),
            special_moves=[BossMove.from_dict(m) for m in behavior.get("specialMoves", [])],
        )


# =============================================================================
# LOCATIONS AND ACTIONS
# =============================================================================


@dataclass
class ActionDefinition:
    """A menu action as declared in the data."""
    action_id: str
    text_ref: Optional[str] = None
    show_if: list[dict[str, Any]] = field(default_factory=list)
    effects: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionDefinition":
        return cls(
            action_id=data["id"],
            text_ref=data.get("text_ref"),
            show_if=list(data.get("showIf") or []),
            effects=dict(data.get("effects") or {}),
        )


@dataclass
class MenuCategory:
    """A group of actions shown under one heading (MOVE, FORTIFY, ...)."""
    category: str
    actions: list[ActionDefinition] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MenuCategory":
        return cls(
            category=data.get("category", ""),
            actions=[ActionDefinition.from_dict(a) for a in data.get("subActions", [])],
        )


@dataclass
class LocationData:
    """
    A location and its place in the gate topology.

    horde_gate: where a new horde appears while the player is here
    fortification: structure attacked by a horde standing here
    breach_to: where the horde advances once that structure falls
    """
    location_id: str
    menu: list[MenuCategory] = field(default_factory=list)
    horde_gate: Optional[str] = None
    fortification: Optional[str] = None
    breach_to: Optional[str] = None

    @classmethod
    def from_dict(cls, location_id: str, data: dict[str, Any]) -> "LocationData":
        gate, fort, breach = DEFAULT_TOPOLOGY.get(location_id, (None, None, None))
        return cls(
            location_id=location_id,
            menu=[MenuCategory.from_dict(c) for c in data.get("menu", [])],
            horde_gate=data.get("hordeGate", gate),
            fortification=data.get("fortification", fort),
            breach_to=data.get("breachTo", breach),
        )


# =============================================================================
# PHASES
# =============================================================================


@dataclass
class SpawnEntry:
    """One line of a scripted spawn: a fixed monster count or a boss pool."""
    monster: Optional[str] = None
    count: int = 0
    boss_pool: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpawnEntry":
        return cls(
            monster=data.get("monster"),
            count=data.get("count", 1 if data.get("monster") else 0),
            boss_pool=list(data.get("bossPool", [])),
        )


@dataclass
class PhaseEvent:
    """A scripted event fired when actions remaining equals trigger_value."""
    trigger_value: int
    spawns: list[SpawnEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhaseEvent":
        effect = data.get("effect", {})
        return cls(
            trigger_value=data["trigger"]["value"],
            spawns=[SpawnEntry.from_dict(s) for s in effect.get("spawn", [])],
        )


@dataclass
class PhaseData:
    """A phase of the night."""
    phase_id: str
    duration_in_actions: int
    events: list[PhaseEvent] = field(default_factory=list)
    noise_spawn_pool: list[str] = field(default_factory=list)

    def event_for(self, actions_remaining: int) -> Optional[PhaseEvent]:
        for event in self.events:
            if event.trigger_value == actions_remaining:
                return event
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhaseData":
        return cls(
            phase_id=data["id"],
            duration_in_actions=data.get("durationInActions", 0),
            events=[PhaseEvent.from_dict(e) for e in data.get("events", [])],
            noise_spawn_pool=list(data.get("noiseSpawnPool", [])),
        )


# =============================================================================
# RULESET
# =============================================================================


@dataclass
class Ruleset:
    """The immutable game data consumed by the engine."""
    items: dict[str, ItemData] = field(default_factory=dict)
    monsters: dict[str, MonsterData] = field(default_factory=dict)
    locations: dict[str, LocationData] = field(default_factory=dict)
    global_actions: list[MenuCategory] = field(default_factory=list)
    phases: list[PhaseData] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)
    texts: dict[str, Any] = field(default_factory=dict)
    initial_state: dict[str, Any] = field(default_factory=dict)

    def get_item(self, item_id: Optional[str]) -> Optional[ItemData]:
        return self.items.get(item_id) if item_id else None

    def get_monster(self, monster_id: str) -> Optional[MonsterData]:
        return self.monsters.get(monster_id)

    def get_location(self, location_id: str) -> Optional[LocationData]:
        return self.locations.get(location_id)

    def get_phase(self, phase_id: str) -> Optional[PhaseData]:
        for phase in self.phases:
            if phase.phase_id == phase_id:
                return phase
        return None

    def next_phase(self, phase_id: str) -> Optional[PhaseData]:
        """The phase after phase_id, or None if it is the last (or unknown)."""
        for index, phase in enumerate(self.phases):
            if phase.phase_id == phase_id:
                if index + 1 < len(self.phases):
                    return self.phases[index + 1]
                return None
        return None

    def monster_name(self, monster_id: str) -> str:
        monster = self.get_monster(monster_id)
        return monster.name if monster else monster_id

    def boss_types(self) -> list[str]:
        return [m.monster_id for m in self.monsters.values() if m.is_boss]

    def gate_topology(self, location_id: str) -> tuple[Optional[str], Optional[str], Optional[str]]:
        """(horde_gate, fortification, breach_to) for a location."""
        location = self.get_location(location_id)
        if location is not None:
            return location.horde_gate, location.fortification, location.breach_to
        return DEFAULT_TOPOLOGY.get(location_id, (None, None, None))

    @classmethod
    def from_dict(cls, document: dict[str, Any]) -> "Ruleset":
        """
        Build a ruleset from a loaded data document.

        Args:
            document: Mapping with the keys items, monsters, locations,
                globalActions, phases, settings, texts and initialState

        Raises:
            RulesetError: If a required section is missing
        """
        missing = [s for s in REQUIRED_SECTIONS if s not in document]
        if missing:
            raise RulesetError(f"Ruleset is missing sections: {', '.join(missing)}")

        phases_doc = document["phases"]
        phase_list = phases_doc.get("phases", []) if isinstance(phases_doc, dict) else phases_doc
        global_doc = document.get("globalActions", {})

        ruleset = cls(
            items={k: ItemData.from_dict(k, v) for k, v in document["items"].items()},
            monsters={k: MonsterData.from_dict(k, v) for k, v in document["monsters"].items()},
            locations={
                k: LocationData.from_dict(k, v)
                for k, v in document.get("locations", {}).items()
            },
            global_actions=[MenuCategory.from_dict(c) for c in global_doc.get("menu", [])],
            phases=[PhaseData.from_dict(p) for p in phase_list],
            settings=Settings.from_dict(document.get("settings", {})),
            texts=dict(document.get("texts", {})),
            initial_state=copy.deepcopy(document["initialState"]),
        )
        logger.info(
            f"Ruleset loaded: {len(ruleset.items)} items, {len(ruleset.monsters)} monsters, "
            f"{len(ruleset.locations)} locations, {len(ruleset.phases)} phases"
        )
        return ruleset
