"""
Tests for effect parsing and the effect processor.

Covers every effect kind, the hiding-break rule, and the message contract
(special handlers queue their own message, everything else shares one
generic result message).
"""

import logging

import pytest

from nightwatch.data_models import GameMode, PlayerState
from nightwatch.effects import (
    Attack,
    ChangeStat,
    EffectKind,
    RemoveItem,
    UnknownEffect,
    parse_effects,
)
from nightwatch.effects.effect_processor import EffectProcessor

from tests.helpers import add_monsters, make_state, queued_refs


@pytest.fixture
def processor(ruleset, scripted_dice, cooldowns):
    return EffectProcessor(ruleset, scripted_dice, cooldowns)


class TestParseEffects:
    """Tests for parse_effects."""

    def test_declaration_order_preserved(self):
        """Effects keep the order they are declared in."""
        parsed = parse_effects({
            "changeStat": {"campGate": 10},
            "removeItem": "wood",
            "result_ref": "outcome_repair",
        })
        assert [e.kind for e in parsed.effects] == [EffectKind.CHANGE_STAT, EffectKind.REMOVE_ITEM]
        assert parsed.result_ref == "outcome_repair"
        assert len(parsed) == 2

    def test_attack_folds_companion_keys(self):
        """Attack companion keys fold into the attack effect."""
        parsed = parse_effects({
            "attackType": "special",
            "attackBoss": "vampire",
            "removeItem": "black_salt",
            "result_ref": "outcome_attack_special",
        })
        attack = parsed.effects[0]
        assert isinstance(attack, Attack)
        assert attack.boss == "vampire"
        assert attack.special_item == "black_salt"
        assert attack.result_ref == "outcome_attack_special"
        assert isinstance(parsed.effects[1], RemoveItem)

    def test_weapon_priority_is_a_tuple(self):
        """Weapon priority is stored as a tuple."""
        attack = parse_effects({"attackType": "single", "weaponPriority": ["axe", "bat"]}).effects[0]
        assert attack.weapon_priority == ("axe", "bat")

    def test_unknown_key_kept(self):
        """An unknown key is kept as an UnknownEffect."""
        effect = parse_effects({"summonRain": 3}).effects[0]
        assert isinstance(effect, UnknownEffect)
        assert effect.key == "summonRain"
        assert effect.raw == 3

    def test_empty_map(self):
        """An empty effect map parses to no effects."""
        assert len(parse_effects(None)) == 0
        assert parse_effects({}).result_ref is None


class TestHandlerCoverage:

    def test_every_kind_has_a_handler(self, processor):
        """Every effect kind has a handler."""
        assert processor.handled_kinds() == set(EffectKind)


class TestChangeStat:
    """Player stats, fortifications and world scalars."""

    def test_player_health_delta(self, processor):
        """A health delta changes player health."""
        state = make_state()
        params = {}
        processor.apply_effect(ChangeStat(deltas={"health": -30}), state, params)
        assert state.player.health == 70
        assert params == {"health": -30}

    def test_player_stat_clamped_reports_actual_delta(self, processor):
        """A clamped stat reports the change actually applied."""
        state = make_state()
        state.player.stamina = 95
        params = {}
        processor.apply_effect(ChangeStat(deltas={"stamina": 10}), state, params)
        assert state.player.stamina == 100
        assert params == {"stamina": 5}

    def test_health_floors_at_zero(self, processor):
        """Health never drops below zero."""
        state = make_state()
        processor.apply_effect(ChangeStat(deltas={"health": -250}), state)
        assert state.player.health == 0

    def test_fortification_repair_with_generic_message(self, processor):
        """Repairing a fortification raises its strength."""
        state = make_state(location="campGate", inventory={"wood": 2})
        effects = {"changeStat": {"campGate": 10}, "removeItem": "wood", "result_ref": "outcome_repair"}

        processor.apply_action("repair_gate", effects, state)

        assert state.world.fortifications["campGate"] == 40
        assert state.player.inventory == {"wood": 1}
        assert [m.to_dict() for m in state.status.message_queue] == [
            {"text_ref": "outcome_repair", "params": {"strength": 40}}
        ]

    def test_noise_floors_at_zero(self, processor):
        """Noise never drops below zero."""
        state = make_state(noise=3)
        params = {}
        processor.apply_effect(ChangeStat(deltas={"noise": -10}), state, params)
        assert state.world.noise == 0
        assert params == {"noise": -10}

    def test_unowned_stat_is_logged(self, processor, caplog):
        """A stat nobody owns is logged and skipped."""
        state = make_state()
        with caplog.at_level(logging.WARNING, logger="nightwatch.effects.effect_processor"):
            processor.apply_effect(ChangeStat(deltas={"morale": 5}), state)
        assert "morale" in caplog.text


class TestInventoryAndWorldEffects:

    def test_scavenge(self, processor, scripted_dice):
        """Scavenging adds the rolled quantity and reports it."""
        scripted_dice.queue(2)
        state = make_state(inventory={"wood": 2})
        effects = {
            "addRandomItems": {"wood": {"min": 1, "max": 3}},
            "addScavengedFlag": "campsite",
            "changeStat": {"noise": 5},
            "result_ref": "outcome_scavenge",
        }

        processor.apply_action("scavenge_campsite", effects, state)

        assert state.player.inventory["wood"] == 4
        assert "campsite" in state.world.scavenged_locations
        assert state.world.noise == 5
        assert state.status.message_queue[0].params == {"quantity": 2, "noise": 5}

    def test_scavenge_of_untracked_item_reports_zero(self, processor, scripted_dice):
        """Only tracked items count toward the reported quantity."""
        scripted_dice.queue(1)
        state = make_state()
        params = {}
        processor.apply_effect(parse_effects({"addRandomItems": {"net": {"min": 1, "max": 1}}}).effects[0], state, params)
        assert state.player.inventory == {"net": 1}
        assert params == {"quantity": 0}

    def test_add_items(self, processor):
        """addItems adds fixed quantities."""
        state = make_state(inventory={"arrow": 1})
        processor.apply_action("loot", {"addItems": {"arrow": 3, "net": 1}}, state)
        assert state.player.inventory == {"arrow": 4, "net": 1}

    def test_remove_absent_item_is_noop(self, processor):
        """Removing an item not owned changes nothing."""
        state = make_state(inventory={"bat": 1})
        processor.apply_action("drop", {"removeItem": "wood"}, state)
        assert state.player.inventory == {"bat": 1}

    def test_set_location_records_visit(self, processor):
        """Moving records the location as visited."""
        state = make_state()
        processor.apply_action("go_cabin", {"setLocation": "cabin"}, state)
        assert state.world.current_location == "cabin"
        assert "cabin" in state.world.visited_locations
        assert state.status.message_queue == []

    def test_set_to_false(self, processor):
        """setToFalse clears a flag."""
        state = make_state()
        state.world.flags["gate_locked"] = True
        processor.apply_action("unlock", {"setToFalse": "gate_locked"}, state)
        assert state.world.flags["gate_locked"] is False

    def test_add_trap_consumes_materials(self, processor):
        """Setting a trap arms it and spends the materials."""
        state = make_state(location="campGate", inventory={"wood": 1, "net": 1})
        processor.apply_action("set_trap", {"addTrap": "campGate", "result_ref": "outcome_trap"}, state)
        assert state.world.traps["campGate"] == 1
        assert state.player.inventory == {}
        assert queued_refs(state) == ["outcome_trap"]


class TestPlayerState:
    """Hiding and the hiding-break rule."""

    def test_set_player_state(self, processor):
        """setPlayerState changes the stance."""
        state = make_state(location="cabin")
        processor.apply_action("hide_in_cabin", {"setPlayerState": "hiding", "result_ref": "outcome_hide"}, state)
        assert state.status.player_state == PlayerState.HIDING
        assert queued_refs(state) == ["outcome_hide"]

    def test_invalid_player_state_is_ignored(self, processor, caplog):
        """An unknown stance is logged and ignored."""
        state = make_state()
        with caplog.at_level(logging.WARNING, logger="nightwatch.effects.effect_processor"):
            processor.apply_action("levitate", {"setPlayerState": "flying"}, state)
        assert state.status.player_state == PlayerState.NORMAL
        assert "flying" in caplog.text

    def test_other_action_breaks_hiding_first(self, processor):
        """Any other action brings a hiding player out first."""
        state = make_state(location="cabin", player_state=PlayerState.HIDING)
        processor.apply_action("go_campsite", {"setLocation": "campsite", "result_ref": "outcome_move"}, state)
        assert state.status.player_state == PlayerState.NORMAL
        assert queued_refs(state) == ["outcome_stop_hiding", "outcome_move"]

    def test_hiding_action_keeps_hiding(self, processor):
        """A hiding action keeps the player hidden."""
        state = make_state(location="cabin", player_state=PlayerState.HIDING)
        processor.apply_action("hide_in_cabin", {"setPlayerState": "hiding"}, state)
        assert state.status.player_state == PlayerState.HIDING
        assert queued_refs(state) == []


class TestWait:
    """The wait effect queues its own message."""

    WAIT = {"wait": {"staminaGain": 10, "noiseReduction": 5, "hidingNoiseReduction": 10}, "result_ref": "outcome_x"}

    def test_normal_wait(self, processor):
        """Waiting restores stamina and lowers noise."""
        state = make_state(noise=20)
        state.player.stamina = 80
        processor.apply_action("wait", self.WAIT, state)
        assert state.player.stamina == 90
        assert state.world.noise == 15
        assert [m.to_dict() for m in state.status.message_queue] == [
            {"text_ref": "outcome_wait_normal", "params": {"staminaGain": 10}}
        ]

    def test_wait_reports_clamped_gain(self, processor):
        """Wait reports the stamina actually gained."""
        state = make_state()
        state.player.stamina = 96
        processor.apply_action("wait", self.WAIT, state)
        assert state.status.message_queue[0].params == {"staminaGain": 4}

    def test_hiding_wait_during_lone_combat(self, processor):
        """Hiding through lone combat only lowers noise."""
        state = make_state(noise=20, game_mode=GameMode.COMBAT_LONE, player_state=PlayerState.HIDING)
        state.player.stamina = 80
        processor.apply_action("wait", self.WAIT, state)
        assert state.player.stamina == 80
        assert state.world.noise == 10
        assert queued_refs(state) == ["outcome_wait_hiding"]

    def test_hiding_wait_outside_lone_combat_is_normal(self, processor):
        """Hiding outside lone combat waits normally."""
        state = make_state(noise=20, player_state=PlayerState.HIDING)
        processor.apply_action("wait", self.WAIT, state)
        assert state.world.noise == 15
        assert queued_refs(state) == ["outcome_wait_normal"]


class TestSpecialHandlers:
    """Craft and attack effects."""

    def test_craft_queues_single_message(self, processor):
        """Crafting queues only the craft message."""
        state = make_state(inventory={"wood": 3})
        processor.apply_action("craft_spear", {"craft": "spear", "result_ref": "outcome_craft_spear"}, state)
        assert state.player.inventory == {"wood": 1, "spear": 1}
        assert [m.to_dict() for m in state.status.message_queue] == [
            {"text_ref": "outcome_craft_spear", "params": {}}
        ]

    def test_attack_lifts_enfeeblement(self, processor, scripted_dice):
        """Attacking lifts enfeeblement."""
        state = make_state(inventory={"bat": 1})
        state.world.flags["enfeebled"] = True
        add_monsters(state, "zombie", 1, 10)
        scripted_dice.queue(0, 0)  # jitter, target index
        effects = {
            "attackType": "single",
            "attackTarget": "zombie",
            "weaponPriority": ["axe", "bat"],
            "result_ref": "outcome_attack_single",
        }

        processor.apply_action("attack_zombie", effects, state)

        assert state.horde["zombie"][0].current_health == 6  # floor(6 * 0.75) = 4
        assert state.world.flags["enfeebled"] is False
        assert [m.to_dict() for m in state.status.message_queue] == [{
            "text_ref": "outcome_attack_single",
            "params": {"weapon": "Baseball Bat", "monster": "Zombie", "damage": 4, "kill": 0, "cursed": True},
        }]

    def test_attack_without_weapon_still_lifts_enfeeblement(self, processor):
        """Even an attack without a weapon lifts enfeeblement."""
        state = make_state()
        state.world.flags["enfeebled"] = True
        add_monsters(state, "zombie", 1, 10)
        processor.apply_action("attack_zombie", {"attackType": "single", "attackTarget": "zombie",
                                                 "weaponPriority": ["axe"], "result_ref": "outcome_attack_single"}, state)
        assert state.world.flags["enfeebled"] is False
        assert state.status.message_queue == []

    def test_unknown_effect_still_gets_generic_message(self, processor, caplog):
        """An unknown effect is logged and the action message still queues."""
        state = make_state()
        with caplog.at_level(logging.WARNING, logger="nightwatch.effects.effect_processor"):
            processor.apply_action("rain_dance", {"summonRain": 1, "result_ref": "outcome_rain"}, state)
        assert "summonRain" in caplog.text
        assert [m.to_dict() for m in state.status.message_queue] == [{"text_ref": "outcome_rain", "params": {}}]

    def test_action_without_effects(self, processor):
        """An action without effects does nothing."""
        state = make_state()
        before = state.to_dict()
        processor.apply_action("stare", None, state)
        assert state.to_dict() == before
