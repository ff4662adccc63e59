"""Action effects: parsing, application and crafting."""

from nightwatch.effects.effect_types import (
    EffectKind,
    AttackType,
    Effect,
    SetLocation,
    ChangeStat,
    AddItems,
    AddRandomItems,
    RemoveItem,
    SetPlayerState,
    SetToFalse,
    AddScavengedFlag,
    AddTrap,
    Wait,
    Craft,
    Attack,
    UnknownEffect,
    ParsedEffects,
    parse_effects,
)
from nightwatch.effects.craft_resolver import CraftResolver

__all__ = [
    "EffectKind",
    "AttackType",
    "Effect",
    "SetLocation",
    "ChangeStat",
    "AddItems",
    "AddRandomItems",
    "RemoveItem",
    "SetPlayerState",
    "SetToFalse",
    "AddScavengedFlag",
    "AddTrap",
    "Wait",
    "Craft",
    "Attack",
    "UnknownEffect",
    "ParsedEffects",
    "parse_effects",
    "CraftResolver",
]
