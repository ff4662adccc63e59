"""
Combat Resolver for the Nightwatch engine.

Resolves a player attack against the horde. Five strategies, selected by the
attack type of the action:

- single: one random monster of a named type, melee weapon
- cleave: several random monsters of any type, weapon with a cleave profile
- shoot: one monster picked by a fixed type priority, consumes ammunition
- incinerate: every monster on the board, consumes the incendiary
- special: the boss of a named type, damage from a consumable

Every strategy removes dead monsters before returning, checks whether the
board was cleared, and queues one result message.
"""

from typing import Any, Callable, Optional
import logging
import math

from nightwatch.data_models import DiceRoller, GameState, MonsterInstance, Player
from nightwatch.effects.effect_types import Attack, AttackType
from nightwatch.game_state.cooldowns import CooldownManager
from nightwatch.ruleset import Ruleset

logger = logging.getLogger(__name__)


# Symmetric-ish damage jitter per strategy, inclusive (low, high)
DAMAGE_JITTER: dict[AttackType, tuple[int, int]] = {
    AttackType.SINGLE: (-2, 2),
    AttackType.CLEAVE: (-1, 2),
    AttackType.SHOOT: (-1, 1),
    AttackType.INCINERATE: (-4, 3),
    AttackType.SPECIAL: (-2, 3),
}


class CombatResolver:
    """
    Dispatches an attack to its damage-resolution strategy.

    Precondition failures (no ammunition, no weapon data) are caller bugs
    since the action should not have been offered; they are logged and the
    state is left untouched.
    """

    def __init__(self, ruleset: Ruleset, dice: DiceRoller, cooldowns: CooldownManager):
        self.ruleset = ruleset
        self.settings = ruleset.settings
        self.dice = dice
        self.cooldowns = cooldowns
        self._strategies: dict[AttackType, Callable[[Attack, GameState], None]] = {
            AttackType.SINGLE: self._single_attack,
            AttackType.CLEAVE: self._cleave_attack,
            AttackType.SHOOT: self._shoot_attack,
            AttackType.INCINERATE: self._incinerate_attack,
            AttackType.SPECIAL: self._special_attack,
        }

    def resolve(self, attack: Attack, state: GameState) -> None:
        """Resolve one attack against the current horde."""
        try:
            attack_type = AttackType(attack.attack_type)
        except ValueError:
            logger.warning(f"Unknown attack type: {attack.attack_type!r}")
            return
        self._strategies[attack_type](attack, state)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def select_weapon(priority: tuple[str, ...], player: Player) -> Optional[str]:
        """First weapon of the priority list present in the inventory."""
        for weapon_id in priority:
            if player.has_item(weapon_id):
                return weapon_id
        return None

    def _roll_damage(self, base: int, attack_type: AttackType, enfeebled: bool) -> int:
        low, high = DAMAGE_JITTER[attack_type]
        raw = base + self.dice.randint(low, high, f"{attack_type.value} damage")
        if enfeebled:
            raw = math.floor(raw * self.settings.enfeeble_multiplier)
        return max(0, raw)

    def _is_enfeebled(self, state: GameState) -> bool:
        return state.world.flags.get("enfeebled") is True

    def _finish(self, state: GameState, attack: Attack, params: dict[str, Any]) -> None:
        if attack.result_ref:
            state.status.queue(attack.result_ref, params)
        else:
            logger.debug(f"{attack.attack_type} attack resolved without a result reference")

    def _consume(self, player: Player, item_id: str) -> bool:
        if not player.has_item(item_id):
            return False
        player.remove_item(item_id, 1)
        return True

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def _single_attack(self, attack: Attack, state: GameState) -> None:
        weapon_id = self.select_weapon(attack.weapon_priority, state.player)
        if weapon_id is None:
            logger.debug("Single attack: no weapon in inventory")
            return

        weapon = self.ruleset.get_item(weapon_id)
        if weapon is None or weapon.single_attack is None:
            logger.error(f"Single attack: {weapon_id} has no single_attack profile")
            return

        members = state.horde.get(attack.target) if attack.target else []
        if not members:
            logger.debug(f"Single attack: no {attack.target} to hit")
            return

        enfeebled = self._is_enfeebled(state)
        damage = self._roll_damage(weapon.single_attack.damage, AttackType.SINGLE, enfeebled)
        index = self.dice.randint(0, len(members) - 1, f"single attack target ({attack.target})")
        monster = members[index]
        monster.current_health -= damage

        killed = 0
        if monster.is_dead:
            members.pop(index)
            killed = 1
            logger.info(f"Killed {monster.instance_id} with {weapon_id}")
            self.cooldowns.check_and_set_grace_period(state)

        self._finish(state, attack, {
            "weapon": weapon.name,
            "monster": self.ruleset.monster_name(attack.target),
            "damage": damage,
            "kill": killed,
            "cursed": enfeebled,
        })

    def _cleave_attack(self, attack: Attack, state: GameState) -> None:
        weapon_id = self.select_weapon(attack.weapon_priority, state.player)
        weapon = self.ruleset.get_item(weapon_id)
        if weapon is None or weapon.cleave_attack is None:
            logger.debug(f"Cleave attack: {weapon_id} cannot cleave")
            return

        profile = weapon.cleave_attack
        max_targets = self.dice.randint(profile.min_targets, profile.max_targets, "cleave target count")
        pool: list[MonsterInstance] = state.horde.all_monsters()
        self.dice.shuffle(pool, "cleave target order")
        targets = pool[:max_targets]

        enfeebled = self._is_enfeebled(state)
        total_damage = 0
        for monster in targets:
            damage = self._roll_damage(profile.damage, AttackType.CLEAVE, enfeebled)
            monster.current_health -= damage
            total_damage += damage

        killed = state.horde.purge_dead()
        if killed:
            logger.info(f"Cleave with {weapon_id} killed {killed}")
            self.cooldowns.check_and_set_grace_period(state)

        self._finish(state, attack, {
            "weapon": weapon.name,
            "numHit": len(targets),
            "damage": total_damage,
            "kill": killed,
            "cursed": enfeebled,
        })

    def _shoot_target_type(self, state: GameState) -> Optional[str]:
        for monster_type in self.settings.shoot_target_order:
            if state.horde.is_present(monster_type):
                return monster_type
        present = state.horde.present_types()
        return present[0] if present else None

    def _shoot_attack(self, attack: Attack, state: GameState) -> None:
        player = state.player
        ammo = self.settings.shoot_ammo
        if not player.has_item(ammo):
            logger.error(f"Attempted to shoot without {ammo}")
            return

        weapon = self.ruleset.get_item(self.settings.shoot_weapon)
        if weapon is None or weapon.single_attack is None:
            logger.error(f"Shoot weapon {self.settings.shoot_weapon} has no single_attack profile")
            return

        target_type = self._shoot_target_type(state)
        if target_type is None:
            logger.warning("Shoot attack with an empty horde; nothing to hit")
            return

        self._consume(player, ammo)
        enfeebled = self._is_enfeebled(state)
        damage = self._roll_damage(weapon.single_attack.damage, AttackType.SHOOT, enfeebled)

        members = state.horde[target_type]
        index = self.dice.randint(0, len(members) - 1, f"shoot target ({target_type})")
        monster = members[index]
        monster.current_health -= damage

        killed = 0
        if monster.is_dead:
            members.pop(index)
            killed = 1
            logger.info(f"Shot {monster.instance_id} dead")
            self.cooldowns.check_and_set_grace_period(state)

        self._finish(state, attack, {
            "weapon": weapon.name,
            "monster": self.ruleset.monster_name(target_type),
            "damage": damage,
            "kill": killed,
            "cursed": enfeebled,
        })

    def _incinerate_attack(self, attack: Attack, state: GameState) -> None:
        player = state.player
        item_id = self.settings.incinerate_item
        if not player.has_item(item_id):
            logger.error(f"Attempted to incinerate without {item_id}")
            return

        item = self.ruleset.get_item(item_id)
        if item is None or item.incinerate is None:
            logger.error(f"{item_id} has no incinerate profile")
            return

        victims = state.horde.all_monsters()
        if not victims:
            logger.warning("Incinerate with an empty horde; nothing to burn")
            return

        self._consume(player, item_id)
        enfeebled = self._is_enfeebled(state)
        base_damage = item.incinerate.damage
        reported_damage = 0
        for monster in victims:
            # The jittered value is only reported; health takes the flat base
            reported_damage += self._roll_damage(base_damage, AttackType.INCINERATE, enfeebled)
            monster.current_health -= base_damage

        killed = state.horde.purge_dead()
        if killed:
            logger.info(f"Fire killed {killed}")
            self.cooldowns.check_and_set_grace_period(state)

        self._finish(state, attack, {
            "weapon": item.name,
            "numHit": len(victims),
            "damage": reported_damage,
            "kill": killed,
            "cursed": enfeebled,
        })

    def _special_attack(self, attack: Attack, state: GameState) -> None:
        item = self.ruleset.get_item(attack.special_item)
        if item is None or item.special_damage is None:
            logger.error(f"Special attack: {attack.special_item} deals no special damage")
            return

        bosses = state.horde.get(attack.boss) if attack.boss else []
        if not bosses:
            logger.debug(f"Special attack: no {attack.boss} on the board")
            return

        low, high = DAMAGE_JITTER[AttackType.SPECIAL]
        damage = max(0, item.special_damage + self.dice.randint(low, high, "special damage"))
        # At most one boss of a type is ever on the board
        boss = bosses[0]
        boss.current_health -= damage

        killed = 0
        if boss.is_dead:
            bosses.pop(0)
            killed = 1
            logger.info(f"Defeated boss {boss.instance_id}")
            self.cooldowns.check_and_set_grace_period(state)

        self._finish(state, attack, {
            "weapon": item.name,
            "monster": self.ruleset.monster_name(attack.boss),
            "damage": damage,
            "kill": killed,
        })
