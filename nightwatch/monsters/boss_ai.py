"""
Boss AI.

Weighted special-move selection for boss monsters. Each boss declares its
special moves (name, weight out of 100, tuning parameters) in its monster
data. On the boss's turn only the moves whose preconditions hold enter the
pool; whatever weight the pool leaves unused goes to the default move, which
does nothing and lets the boss fall back to plain melee.

Known moves:
- life_drain: hit the player and heal the boss (player above minPlayerHealth,
  boss below full health, boss and player in the same place)
- enfeeble: curse the player's attacks (stamina above minPlayerStamina,
  curse not already active)
- heal_horde: heal every damaged non-boss ally (at least minDamagedAllies)
- ranged_potion: throw at the player from the same place or the gate
"""

from dataclasses import dataclass
from typing import Callable, Optional
import logging

from nightwatch.conditions.condition_evaluator import is_target_adjacent
from nightwatch.data_models import DiceRoller, GameState, MonsterInstance, clamp
from nightwatch.ruleset import BossMove, MonsterData, Ruleset

logger = logging.getLogger(__name__)


DEFAULT_MOVE = "default"
WEIGHT_TOTAL = 100


@dataclass
class WeightedMove:
    """A move admitted to this turn's pool."""
    name: str
    weight: int
    move: Optional[BossMove] = None


def choose_weighted_move(pool: list[WeightedMove], roll: int) -> Optional[WeightedMove]:
    """
    Pick the first move whose cumulative weight reaches the roll.

    Args:
        pool: Moves in declared order
        roll: Value in 1..WEIGHT_TOTAL

    Returns:
        The selected move, or None if the roll exceeds the total weight
    """
    cumulative = 0
    for entry in pool:
        cumulative += entry.weight
        if roll <= cumulative:
            return entry
    return None


class BossAI:
    """Runs the special-move decision for one boss type per call."""

    def __init__(self, ruleset: Ruleset, dice: DiceRoller):
        self.ruleset = ruleset
        self.settings = ruleset.settings
        self.dice = dice
        self._gates: dict[str, Callable[[BossMove, MonsterData, MonsterInstance, GameState], bool]] = {
            "life_drain": self._can_life_drain,
            "enfeeble": self._can_enfeeble,
            "heal_horde": self._can_heal_horde,
            "ranged_potion": self._can_throw_potion,
        }
        self._moves: dict[str, Callable[[BossMove, MonsterData, MonsterInstance, GameState], None]] = {
            "life_drain": self._life_drain,
            "enfeeble": self._enfeeble,
            "heal_horde": self._heal_horde,
            "ranged_potion": self._ranged_potion,
        }

    def take_turn(self, monster_type: str, state: GameState) -> bool:
        """
        Let a boss attempt a special move.

        Args:
            monster_type: Boss monster type
            state: Game state to mutate

        Returns:
            True if a special move fired (its melee is skipped this turn)
        """
        data = self.ruleset.get_monster(monster_type)
        if data is None or not data.is_boss:
            return False
        bosses = state.horde.get(monster_type)
        if not bosses:
            return False

        boss = bosses[0]
        pool = self.build_move_pool(data, boss, state)
        roll = self.dice.roll_percentile(f"{monster_type} move")
        chosen = choose_weighted_move(pool, roll)
        if chosen is None or chosen.move is None:
            logger.debug(f"{monster_type} rolled {roll}: default move")
            return False

        logger.info(f"{monster_type} rolled {roll}: {chosen.name}")
        self._moves[chosen.name](chosen.move, data, boss, state)
        return True

    def build_move_pool(
        self,
        data: MonsterData,
        boss: MonsterInstance,
        state: GameState,
    ) -> list[WeightedMove]:
        """Admissible moves in declared order, padded with the default move."""
        pool: list[WeightedMove] = []
        for move in data.special_moves:
            if move.name == DEFAULT_MOVE:
                continue
            gate = self._gates.get(move.name)
            if gate is None:
                logger.warning(f"{data.monster_id}: unknown special move {move.name!r}")
                continue
            if gate(move, data, boss, state):
                pool.append(WeightedMove(name=move.name, weight=move.weight, move=move))

        unused = WEIGHT_TOTAL - sum(entry.weight for entry in pool)
        if unused > 0:
            pool.append(WeightedMove(name=DEFAULT_MOVE, weight=unused))
        return pool

    # =========================================================================
    # PRECONDITIONS
    # =========================================================================

    @staticmethod
    def _co_located(state: GameState) -> bool:
        return state.world.horde_location == state.world.current_location

    def _in_range(self, state: GameState) -> bool:
        if self._co_located(state):
            return True
        world = state.world
        gate, _, _ = self.ruleset.gate_topology(world.current_location)
        return gate is not None and world.horde_location == gate and is_target_adjacent(world)

    def _damaged_allies(self, state: GameState) -> list[tuple[MonsterInstance, int]]:
        damaged = []
        for monster_type in state.horde.present_types():
            data = self.ruleset.get_monster(monster_type)
            if data is None or data.is_boss:
                continue
            for monster in state.horde.get(monster_type):
                if monster.current_health < data.health:
                    damaged.append((monster, data.health))
        return damaged

    def _can_life_drain(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> bool:
        return (
            state.player.health > move.param("minPlayerHealth")
            and boss.current_health < data.health
            and self._co_located(state)
        )

    def _can_enfeeble(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> bool:
        return (
            state.player.stamina > move.param("minPlayerStamina")
            and state.world.flags.get("enfeebled") is not True
        )

    def _can_heal_horde(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> bool:
        return len(self._damaged_allies(state)) >= move.param("minDamagedAllies", 2)

    def _can_throw_potion(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> bool:
        return self._in_range(state)

    # =========================================================================
    # MOVES
    # =========================================================================

    def _queue(self, data: MonsterData, move: BossMove, state: GameState, params: dict) -> None:
        state.status.queue(f"boss_{data.monster_id}_{move.name}", params)

    def _life_drain(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> None:
        player = state.player
        before = player.health
        player.health = clamp(before - move.param("damage", 10), 0, self.settings.stat_max)
        drained = before - player.health

        healed_to = min(data.health, boss.current_health + move.param("heal", drained))
        healed = healed_to - boss.current_health
        boss.current_health = healed_to
        self._queue(data, move, state, {"damage": drained, "heal": healed})

    def _enfeeble(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> None:
        player = state.player
        state.world.flags["enfeebled"] = True
        before = player.stamina
        player.stamina = clamp(before - move.param("staminaDrain"), 0, self.settings.stat_max)
        self._queue(data, move, state, {"stamina": before - player.stamina})

    def _heal_horde(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> None:
        amount = move.param("amount", 5)
        healed = 0
        for monster, max_health in self._damaged_allies(state):
            monster.current_health = min(max_health, monster.current_health + amount)
            healed += 1
        self._queue(data, move, state, {"amount": amount, "count": healed})

    def _ranged_potion(self, move: BossMove, data: MonsterData, boss: MonsterInstance, state: GameState) -> None:
        jitter = move.param("jitter", 2)
        damage = max(0, move.param("damage", 8) + self.dice.randint(-jitter, jitter, "potion damage"))
        player = state.player
        before = player.health
        player.health = clamp(before - damage, 0, self.settings.stat_max)
        self._queue(data, move, state, {"damage": before - player.health})
