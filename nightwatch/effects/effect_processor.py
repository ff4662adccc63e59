"""
Effect Processor for the Nightwatch engine.

Applies the declared effects of a chosen action to the game state, in
declaration order. Results are observable only through state mutation and
the message queue.

Message contract:
- craft, wait and attack effects queue their own message
- any other action that declares a result_ref gets one generic message
  carrying the parameters accumulated by its effects
"""

from typing import Any, Callable, Optional, Union
import logging

from nightwatch.combat.combat_resolver import CombatResolver
from nightwatch.data_models import DiceRoller, GameMode, GameState, PlayerState, clamp
from nightwatch.effects.craft_resolver import CraftResolver
from nightwatch.effects.effect_types import (
    AddItems,
    AddRandomItems,
    AddScavengedFlag,
    AddTrap,
    Attack,
    ChangeStat,
    Craft,
    Effect,
    EffectKind,
    ParsedEffects,
    RemoveItem,
    SetLocation,
    SetPlayerState,
    SetToFalse,
    UnknownEffect,
    Wait,
    parse_effects,
)
from nightwatch.game_state.cooldowns import CooldownManager
from nightwatch.ruleset import Ruleset

logger = logging.getLogger(__name__)


PLAYER_STATS = ("health", "stamina")
WORLD_SCALARS = ("noise",)


class EffectProcessor:
    """
    Applies parsed effects to the state.

    One handler per EffectKind. A handler returns True when it queued its
    own message, which suppresses the generic result message.
    """

    def __init__(
        self,
        ruleset: Ruleset,
        dice: DiceRoller,
        cooldowns: Optional[CooldownManager] = None,
        combat: Optional[CombatResolver] = None,
        crafting: Optional[CraftResolver] = None,
    ):
        self.ruleset = ruleset
        self.settings = ruleset.settings
        self.dice = dice
        self.cooldowns = cooldowns or CooldownManager(ruleset.settings)
        self.combat = combat or CombatResolver(ruleset, dice, self.cooldowns)
        self.crafting = crafting or CraftResolver(ruleset)

        self._handlers: dict[EffectKind, Callable[[Any, GameState, dict[str, Any]], bool]] = {
            EffectKind.SET_LOCATION: self._set_location,
            EffectKind.CHANGE_STAT: self._change_stat,
            EffectKind.ADD_ITEMS: self._add_items,
            EffectKind.ADD_RANDOM_ITEMS: self._add_random_items,
            EffectKind.REMOVE_ITEM: self._remove_item,
            EffectKind.SET_PLAYER_STATE: self._set_player_state,
            EffectKind.SET_TO_FALSE: self._set_to_false,
            EffectKind.ADD_SCAVENGED_FLAG: self._add_scavenged_flag,
            EffectKind.ADD_TRAP: self._add_trap,
            EffectKind.WAIT: self._wait,
            EffectKind.CRAFT: self._craft,
            EffectKind.ATTACK: self._attack,
            EffectKind.UNKNOWN: self._unknown,
        }

    def handled_kinds(self) -> set[EffectKind]:
        return set(self._handlers)

    def apply_action(
        self,
        action_id: str,
        effects: Union[dict[str, Any], ParsedEffects, None],
        state: GameState,
    ) -> None:
        """
        Apply a chosen action.

        Args:
            action_id: Id of the chosen action (decides whether hiding breaks)
            effects: Raw effect mapping or already-parsed effects
            state: Game state to mutate
        """
        self.update_hiding_status(action_id, state)

        parsed = effects if isinstance(effects, ParsedEffects) else parse_effects(effects)
        if not parsed.effects and parsed.result_ref is None:
            return

        message_params: dict[str, Any] = {}
        special_message_handled = False
        for effect in parsed.effects:
            if self.apply_effect(effect, state, message_params):
                special_message_handled = True

        if parsed.result_ref and not special_message_handled:
            state.status.queue(parsed.result_ref, message_params)

    def apply_effect(
        self,
        effect: Effect,
        state: GameState,
        message_params: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Apply a single effect.

        Returns:
            True if the effect queued its own message
        """
        if message_params is None:
            message_params = {}
        return self._handlers[effect.kind](effect, state, message_params)

    def update_hiding_status(self, action_id: str, state: GameState) -> None:
        """A hiding player who does anything but hide or wait comes out."""
        status = state.status
        if status.player_state != PlayerState.HIDING:
            return
        if action_id in self.settings.hiding_actions:
            return

        status.player_state = PlayerState.NORMAL
        status.queue("outcome_stop_hiding")
        logger.debug(f"Action {action_id} broke hiding")

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _set_location(self, effect: SetLocation, state: GameState, params: dict[str, Any]) -> bool:
        state.world.current_location = effect.location
        state.world.visited_locations.add(effect.location)
        return False

    def _change_stat(self, effect: ChangeStat, state: GameState, params: dict[str, Any]) -> bool:
        player = state.player
        world = state.world

        for stat, delta in effect.deltas.items():
            if stat in PLAYER_STATS:
                current = getattr(player, stat)
                new_value = clamp(current + delta, 0, self.settings.stat_max)
                setattr(player, stat, new_value)
                params[stat] = new_value - current
            elif stat in world.fortifications:
                new_strength = max(0, world.fortifications[stat] + delta)
                world.fortifications[stat] = new_strength
                params["strength"] = new_strength
            elif stat in WORLD_SCALARS:
                setattr(world, stat, max(0, getattr(world, stat) + delta))
                params[stat] = delta
            else:
                logger.warning(f"changeStat: no owner for stat {stat!r}")
        return False

    def _add_items(self, effect: AddItems, state: GameState, params: dict[str, Any]) -> bool:
        for item_id, quantity in effect.items.items():
            state.player.add_item(item_id, quantity)
        return False

    def _add_random_items(self, effect: AddRandomItems, state: GameState, params: dict[str, Any]) -> bool:
        added: dict[str, int] = {}
        for item_id, (low, high) in effect.ranges.items():
            quantity = self.dice.randint(low, high, f"scavenge {item_id}")
            if quantity > 0:
                state.player.add_item(item_id, quantity)
                added[item_id] = quantity

        params["quantity"] = added.get(self.settings.tracked_random_item, 0)
        return False

    def _remove_item(self, effect: RemoveItem, state: GameState, params: dict[str, Any]) -> bool:
        if state.player.has_item(effect.item_id):
            state.player.remove_item(effect.item_id, 1)
        return False

    def _set_player_state(self, effect: SetPlayerState, state: GameState, params: dict[str, Any]) -> bool:
        try:
            state.status.player_state = PlayerState(effect.player_state)
        except ValueError:
            logger.warning(f"setPlayerState: unknown player state {effect.player_state!r}")
        return False

    def _set_to_false(self, effect: SetToFalse, state: GameState, params: dict[str, Any]) -> bool:
        state.world.flags[effect.flag] = False
        return False

    def _add_scavenged_flag(self, effect: AddScavengedFlag, state: GameState, params: dict[str, Any]) -> bool:
        state.world.scavenged_locations.add(effect.location)
        return False

    def _add_trap(self, effect: AddTrap, state: GameState, params: dict[str, Any]) -> bool:
        traps = state.world.traps
        traps[effect.location] = traps.get(effect.location, 0) + 1
        for item_id, quantity in self.settings.trap_materials.items():
            state.player.remove_item(item_id, quantity)
        logger.debug(f"Trap set at {effect.location} ({traps[effect.location]} armed)")
        return False

    def _wait(self, effect: Wait, state: GameState, params: dict[str, Any]) -> bool:
        status = state.status
        world = state.world
        player = state.player

        if status.player_state == PlayerState.HIDING and status.game_mode == GameMode.COMBAT_LONE:
            world.noise = max(0, world.noise - effect.hiding_noise_reduction)
            status.queue("outcome_wait_hiding")
            return True

        before = player.stamina
        player.stamina = clamp(before + effect.stamina_gain, 0, self.settings.stat_max)
        world.noise = max(0, world.noise - effect.noise_reduction)
        status.queue("outcome_wait_normal", {"staminaGain": player.stamina - before})
        return True

    def _craft(self, effect: Craft, state: GameState, params: dict[str, Any]) -> bool:
        self.crafting.craft(effect.item_id, state, effect.result_ref)
        return True

    def _attack(self, effect: Attack, state: GameState, params: dict[str, Any]) -> bool:
        self.combat.resolve(effect, state)
        # Attacking lifts the curse whether or not the blow landed
        state.world.flags["enfeebled"] = False
        return True

    def _unknown(self, effect: UnknownEffect, state: GameState, params: dict[str, Any]) -> bool:
        logger.warning(f"Unhandled effect key: {effect.key!r}")
        return False
