"""
Effect types.

An action declares its consequences as an ordered mapping of effect keys to
values. parse_effects turns that mapping into a list of typed effects, one
dataclass per kind, in declaration order. Companion keys that only qualify
another effect (attack target, boss, weapon priority, result reference) are
folded into the effect they qualify instead of being processed on their own.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional


class EffectKind(str, Enum):
    """Valid effect kinds, keyed by their data name."""
    SET_LOCATION = "setLocation"
    CHANGE_STAT = "changeStat"
    ADD_ITEMS = "addItems"
    ADD_RANDOM_ITEMS = "addRandomItems"
    REMOVE_ITEM = "removeItem"
    SET_PLAYER_STATE = "setPlayerState"
    SET_TO_FALSE = "setToFalse"
    ADD_SCAVENGED_FLAG = "addScavengedFlag"
    ADD_TRAP = "addTrap"
    WAIT = "wait"
    CRAFT = "craft"
    ATTACK = "attackType"
    UNKNOWN = "unknown"


class AttackType(str, Enum):
    """Damage-resolution strategies."""
    SINGLE = "single"
    CLEAVE = "cleave"
    SHOOT = "shoot"
    INCINERATE = "incinerate"
    SPECIAL = "special"


# Keys that qualify another effect and are never processed alone
COMPANION_KEYS = frozenset({"attackTarget", "attackBoss", "weaponPriority", "result_ref"})


@dataclass(frozen=True)
class Effect:
    """Base of all effect kinds."""
    kind: ClassVar[EffectKind] = EffectKind.UNKNOWN


@dataclass(frozen=True)
class SetLocation(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SET_LOCATION
    location: str = ""


@dataclass(frozen=True)
class ChangeStat(Effect):
    """Additive deltas keyed by stat name (player stat, fortification or world scalar)."""
    kind: ClassVar[EffectKind] = EffectKind.CHANGE_STAT
    deltas: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AddItems(Effect):
    kind: ClassVar[EffectKind] = EffectKind.ADD_ITEMS
    items: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AddRandomItems(Effect):
    """Per item, an inclusive (min, max) quantity range."""
    kind: ClassVar[EffectKind] = EffectKind.ADD_RANDOM_ITEMS
    ranges: dict[str, tuple[int, int]] = field(default_factory=dict)


@dataclass(frozen=True)
class RemoveItem(Effect):
    kind: ClassVar[EffectKind] = EffectKind.REMOVE_ITEM
    item_id: str = ""


@dataclass(frozen=True)
class SetPlayerState(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SET_PLAYER_STATE
    player_state: str = "normal"


@dataclass(frozen=True)
class SetToFalse(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SET_TO_FALSE
    flag: str = ""


@dataclass(frozen=True)
class AddScavengedFlag(Effect):
    kind: ClassVar[EffectKind] = EffectKind.ADD_SCAVENGED_FLAG
    location: str = ""


@dataclass(frozen=True)
class AddTrap(Effect):
    kind: ClassVar[EffectKind] = EffectKind.ADD_TRAP
    location: str = ""


@dataclass(frozen=True)
class Wait(Effect):
    """Do nothing for a turn: recover stamina or, while hiding, shed noise."""
    kind: ClassVar[EffectKind] = EffectKind.WAIT
    stamina_gain: int = 0
    noise_reduction: int = 0
    hiding_noise_reduction: int = 0


@dataclass(frozen=True)
class Craft(Effect):
    kind: ClassVar[EffectKind] = EffectKind.CRAFT
    item_id: str = ""
    result_ref: Optional[str] = None


@dataclass(frozen=True)
class Attack(Effect):
    """An attack with its companion data folded in."""
    kind: ClassVar[EffectKind] = EffectKind.ATTACK
    attack_type: str = ""
    target: Optional[str] = None
    boss: Optional[str] = None
    weapon_priority: tuple[str, ...] = ()
    special_item: Optional[str] = None  # Consumable used by a special attack
    result_ref: Optional[str] = None


@dataclass(frozen=True)
class UnknownEffect(Effect):
    """An unrecognized key, kept with its raw value for diagnostics."""
    kind: ClassVar[EffectKind] = EffectKind.UNKNOWN
    key: str = ""
    raw: Any = None


@dataclass
class ParsedEffects:
    """The ordered effects of one action plus its generic result reference."""
    effects: list[Effect] = field(default_factory=list)
    result_ref: Optional[str] = None

    def __len__(self) -> int:
        return len(self.effects)


def _parse_one(key: str, value: Any, effect_map: dict[str, Any]) -> Effect:
    result_ref = effect_map.get("result_ref")

    if key == EffectKind.SET_LOCATION.value:
        return SetLocation(location=value)
    if key == EffectKind.CHANGE_STAT.value:
        return ChangeStat(deltas=dict(value))
    if key == EffectKind.ADD_ITEMS.value:
        return AddItems(items=dict(value))
    if key == EffectKind.ADD_RANDOM_ITEMS.value:
        return AddRandomItems(ranges={
            item_id: (bounds.get("min", 0), bounds.get("max", 0))
            for item_id, bounds in value.items()
        })
    if key == EffectKind.REMOVE_ITEM.value:
        return RemoveItem(item_id=value)
    if key == EffectKind.SET_PLAYER_STATE.value:
        return SetPlayerState(player_state=value)
    if key == EffectKind.SET_TO_FALSE.value:
        return SetToFalse(flag=value)
    if key == EffectKind.ADD_SCAVENGED_FLAG.value:
        return AddScavengedFlag(location=value)
    if key == EffectKind.ADD_TRAP.value:
        return AddTrap(location=value)
    if key == EffectKind.WAIT.value:
        value = value or {}
        return Wait(
            stamina_gain=value.get("staminaGain", 0),
            noise_reduction=value.get("noiseReduction", 0),
            hiding_noise_reduction=value.get("hidingNoiseReduction", 0),
        )
    if key == EffectKind.CRAFT.value:
        return Craft(item_id=value, result_ref=result_ref)
    if key == EffectKind.ATTACK.value:
        return Attack(
            attack_type=value,
            target=effect_map.get("attackTarget"),
            boss=effect_map.get("attackBoss"),
            weapon_priority=tuple(effect_map.get("weaponPriority") or ()),
            special_item=effect_map.get("removeItem"),
            result_ref=result_ref,
        )
    return UnknownEffect(key=key, raw=value)


def parse_effects(effect_map: Optional[dict[str, Any]]) -> ParsedEffects:
    """
    Parse an action's effect mapping.

    Args:
        effect_map: Ordered mapping of effect keys to values (may be None)

    Returns:
        ParsedEffects in declaration order, companion keys folded in
    """
    if not effect_map:
        return ParsedEffects()

    parsed = ParsedEffects(result_ref=effect_map.get("result_ref"))
    for key, value in effect_map.items():
        if key in COMPANION_KEYS:
            continue
        parsed.effects.append(_parse_one(key, value, effect_map))
    return parsed
