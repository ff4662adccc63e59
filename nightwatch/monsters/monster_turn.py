"""
Monster Turn Orchestrator for the Nightwatch engine.

Sequences everything the monsters do between two player actions:

1. Timed spawn: scripted horde waves keyed to the phase clock
2. Noise spawn: a lone monster drawn by a loud player
3. Noise despawn: lone monsters leave once the noise dies down
4. Trap resolution: armed traps at the horde's gate kill one monster each
5. Fortification damage: the horde batters the structure in its way and
   advances once it falls

Player damage is a separate stage run by the turn controller right after the
player's own action resolves. Every stage may be a no-op.
"""

from typing import TYPE_CHECKING, Optional
import logging

from nightwatch.conditions.condition_evaluator import is_target_adjacent
from nightwatch.data_models import (
    DiceRoller,
    GameMode,
    GameState,
    MonsterInstance,
    PlayerState,
    clamp,
)
from nightwatch.game_state.cooldowns import CooldownManager
from nightwatch.monsters.boss_ai import BossAI
from nightwatch.ruleset import MonsterData, Ruleset

if TYPE_CHECKING:
    from nightwatch.observability.run_log import RunLog

logger = logging.getLogger(__name__)


# Health jitter applied to scripted spawns, inclusive
SPAWN_HEALTH_JITTER = (-1, 1)


class MonsterTurnOrchestrator:
    """
    Runs the monster stages of a turn against the shared state.

    All draws go through the injected DiceRoller so a turn can be replayed
    from its seed.
    """

    def __init__(
        self,
        ruleset: Ruleset,
        dice: DiceRoller,
        cooldowns: Optional[CooldownManager] = None,
        boss_ai: Optional[BossAI] = None,
        run_log: Optional["RunLog"] = None,
    ):
        self.ruleset = ruleset
        self.settings = ruleset.settings
        self.dice = dice
        self.cooldowns = cooldowns or CooldownManager(ruleset.settings, run_log)
        self.boss_ai = boss_ai or BossAI(ruleset, dice)
        self.run_log = run_log

    def run_monster_turn(self, state: GameState) -> None:
        """Run stages 1 through 5 in order."""
        self.process_timed_events(state)
        self.process_noise_spawning(state)
        self.process_noise_despawning(state)
        self.trap_monsters(state)
        self.process_fortification_damage(state)

    # =========================================================================
    # SHARED HELPERS
    # =========================================================================

    def _set_game_mode(self, state: GameState, mode: GameMode, trigger: str) -> None:
        previous = state.status.game_mode
        if previous == mode:
            return
        state.status.game_mode = mode
        logger.info(f"Game mode {previous.value} -> {mode.value} ({trigger})")
        if self.run_log is not None:
            self.run_log.log_transition(previous.value, mode.value, trigger)

    def _place_horde(self, state: GameState) -> None:
        """Put a new horde at the gate of the player's location, if none is placed."""
        world = state.world
        if world.horde_location:
            return
        gate, _, _ = self.ruleset.gate_topology(world.current_location)
        world.horde_location = gate or world.current_location
        logger.debug(f"Horde placed at {world.horde_location}")

    def _spawn(
        self,
        state: GameState,
        data: MonsterData,
        instance_id: str,
        persistent: bool,
        jitter: bool,
    ) -> MonsterInstance:
        health = data.health
        if jitter:
            low, high = SPAWN_HEALTH_JITTER
            health += self.dice.randint(low, high, f"{data.monster_id} spawn health")
        monster = MonsterInstance(
            instance_id=instance_id,
            current_health=max(1, health),
            persistent=persistent,
        )
        state.horde.members(data.monster_id).append(monster)
        return monster

    def _is_engaged(self, state: GameState) -> bool:
        """Whether the player is within reach of the horde."""
        if state.status.player_state == PlayerState.HIDING:
            return False
        return is_target_adjacent(state.world)

    # =========================================================================
    # STAGE 1: TIMED SPAWN
    # =========================================================================

    def process_timed_events(self, state: GameState) -> None:
        """Spawn the scripted wave whose trigger matches the phase clock."""
        world = state.world
        phase = self.ruleset.get_phase(world.current_phase_id)
        if phase is None:
            logger.error(f"Timed spawn: unknown phase {world.current_phase_id!r}")
            return

        event = phase.event_for(world.actions_remaining)
        if event is None:
            return

        # Lone monsters already on the board join the horde for good
        for monster in state.horde.all_monsters():
            monster.persistent = True

        composition: dict[str, int] = {}
        for spawn in event.spawns:
            if spawn.monster:
                data = self.ruleset.get_monster(spawn.monster)
                if data is None:
                    logger.error(f"Timed spawn: unknown monster {spawn.monster!r}")
                    continue
                for i in range(spawn.count):
                    instance_id = f"{data.monster_id}_{phase.phase_id}_{world.actions_remaining}_{i}"
                    self._spawn(state, data, instance_id, persistent=True, jitter=True)
                composition[data.monster_id] = composition.get(data.monster_id, 0) + spawn.count
            elif spawn.boss_pool:
                boss_type = self.dice.choice(spawn.boss_pool, "boss pool")
                data = self.ruleset.get_monster(boss_type)
                if data is None:
                    logger.error(f"Timed spawn: unknown boss {boss_type!r}")
                    continue
                instance_id = f"{data.monster_id}_{phase.phase_id}_{world.actions_remaining}_boss"
                self._spawn(state, data, instance_id, persistent=True, jitter=True)
                composition[data.monster_id] = composition.get(data.monster_id, 0) + 1

        if not composition:
            return

        self._place_horde(state)
        self._set_game_mode(state, GameMode.COMBAT, f"timed_spawn_{phase.phase_id}")
        state.status.queue(
            f"threat_horde_spawn_timed_{phase.phase_id}",
            {"composition": composition},
        )
        logger.info(f"Horde wave at {world.horde_location}: {composition}")

    # =========================================================================
    # STAGE 2: NOISE SPAWN
    # =========================================================================

    def process_noise_spawning(self, state: GameState) -> None:
        """Draw one lone monster if the player has been loud enough."""
        world = state.world
        status = state.status

        if world.noise < self.settings.noise_spawn_threshold:
            return
        if status.grace_period_cooldown > 0 or status.repeated_spawn_cooldown > 0:
            logger.debug("Noise spawn suppressed by cooldown")
            return

        phase = self.ruleset.get_phase(world.current_phase_id)
        if phase is None or not phase.noise_spawn_pool:
            return

        monster_type = self.dice.choice(phase.noise_spawn_pool, "noise spawn type")
        data = self.ruleset.get_monster(monster_type)
        if data is None:
            logger.error(f"Noise spawn: unknown monster {monster_type!r}")
            return

        status.noise_spawn_count += 1
        self._spawn(
            state,
            data,
            f"{data.monster_id}_lone_{status.noise_spawn_count}",
            persistent=False,
            jitter=False,
        )
        self._place_horde(state)
        # A lone arrival never downgrades an active horde fight
        if status.game_mode != GameMode.COMBAT:
            self._set_game_mode(state, GameMode.COMBAT_LONE, "noise_spawn")
        status.repeated_spawn_cooldown = self.settings.repeated_spawn

        status.queue("threat_lone_spawn", {"monster": data.name})
        logger.info(f"Noise {world.noise} drew a {data.monster_id}")

    # =========================================================================
    # STAGE 3: NOISE DESPAWN
    # =========================================================================

    def process_noise_despawning(self, state: GameState) -> None:
        """Lone monsters lose interest once noise drops below their threshold."""
        if state.status.game_mode != GameMode.COMBAT_LONE:
            return
        if self._is_engaged(state):
            logger.debug("Noise despawn skipped: player engaged")
            return

        noise = state.world.noise
        despawned: dict[str, int] = {}
        for monster_type in state.horde.present_types():
            members = state.horde[monster_type]
            lone = [m for m in members if not m.persistent]
            if not lone:
                continue

            data = self.ruleset.get_monster(monster_type)
            if data is not None and data.lingers_long:
                threshold = self.settings.despawn_threshold_long
            else:
                threshold = self.settings.despawn_threshold_short

            if noise < threshold:
                state.horde.groups[monster_type] = [m for m in members if m.persistent]
                despawned[monster_type] = len(lone)

        if not despawned:
            return

        state.status.queue("threat_lone_despawn", {"monsters": despawned})
        logger.info(f"Lone monsters left: {despawned}")
        self.cooldowns.check_and_set_grace_period(state)

    # =========================================================================
    # STAGE 4: TRAPS
    # =========================================================================

    def trap_monsters(self, state: GameState) -> None:
        """Spend armed traps at the horde's location, one kill each."""
        world = state.world
        location = world.horde_location
        if not location:
            return

        armed = world.traps.get(location, 0)
        if armed <= 0:
            return

        kills: dict[str, int] = {}
        while armed > 0:
            eligible = [
                (monster_type, monster)
                for monster_type in state.horde.present_types()
                if not self._is_boss(monster_type)
                for monster in state.horde[monster_type]
            ]
            if not eligible:
                break
            monster_type, victim = self.dice.choice(eligible, "trap victim")
            state.horde[monster_type].remove(victim)
            armed -= 1
            kills[monster_type] = kills.get(monster_type, 0) + 1

        world.traps[location] = armed
        if not kills:
            return

        total = sum(kills.values())
        state.status.queue("threat_trap_triggered", {"monsters": kills, "count": total})
        logger.info(f"Traps at {location} killed {kills}")
        self.cooldowns.check_and_set_grace_period(state)

    def _is_boss(self, monster_type: str) -> bool:
        data = self.ruleset.get_monster(monster_type)
        return data is not None and data.is_boss

    # =========================================================================
    # STAGE 5: FORTIFICATIONS
    # =========================================================================

    def _fortification_damage(self, state: GameState) -> int:
        """
        Aggregate damage of every fortification-capable monster type.

        Per type: base damage x count plus a jitter in [-count, count].
        """
        total = 0
        for monster_type in state.horde.present_types():
            data = self.ruleset.get_monster(monster_type)
            if data is None:
                logger.error(f"No data for monster type {monster_type!r}")
                continue
            if not data.can_attack_fortification:
                continue
            count = len(state.horde[monster_type])
            total += data.damage * count + self.dice.randint(-count, count, f"{monster_type} damage")
        return max(0, total)

    def process_fortification_damage(self, state: GameState) -> None:
        """Damage the structure in the horde's way, advancing on breach."""
        world = state.world
        if not world.horde_location or world.horde_location == world.current_location:
            return

        _, fortification, breach_to = self.ruleset.gate_topology(world.horde_location)
        if fortification is None:
            return
        if fortification not in world.fortifications:
            logger.error(f"No strength recorded for fortification {fortification!r}")
            return

        strength = world.fortifications[fortification]
        if strength <= 0:
            self._advance_horde(state, fortification, breach_to)
            return

        total_damage = self._fortification_damage(state)
        if total_damage <= 0:
            return

        strength = max(0, strength - total_damage)
        world.fortifications[fortification] = strength
        state.status.queue(
            f"threat_horde_attacks_fortification_{fortification}",
            {"totalDamage": total_damage, "strength": strength},
        )
        logger.debug(f"{fortification} took {total_damage}, {strength} left")

        if strength <= 0:
            self._advance_horde(state, fortification, breach_to)

    def _advance_horde(self, state: GameState, fortification: str, breach_to: Optional[str]) -> None:
        if breach_to is None:
            return
        world = state.world
        status = state.status

        world.horde_location = breach_to
        status.queue(f"threat_fortification_breached_{fortification}", {"location": breach_to})
        logger.info(f"{fortification} breached; horde advances to {breach_to}")

        if breach_to == world.current_location and status.player_state == PlayerState.HIDING:
            status.player_state = PlayerState.NORMAL
            status.queue("threat_hiding_broken")

    # =========================================================================
    # PLAYER DAMAGE
    # =========================================================================

    def process_player_damage(self, state: GameState) -> None:
        """
        Monsters strike the player.

        Bosses try a special move first; a boss that used one skips melee.
        Melee only lands when the horde shares the player's location and the
        player is not hiding.
        """
        if state.horde.is_empty():
            return

        world = state.world
        co_located = world.horde_location == world.current_location
        hiding = state.status.player_state == PlayerState.HIDING

        total = 0
        attackers: dict[str, int] = {}
        for monster_type in list(state.horde.present_types()):
            data = self.ruleset.get_monster(monster_type)
            if data is None:
                logger.error(f"No data for monster type {monster_type!r}")
                continue
            if not data.can_attack_player:
                continue
            if data.is_boss and self.boss_ai.take_turn(monster_type, state):
                continue
            if not co_located or hiding:
                continue

            count = len(state.horde.get(monster_type))
            if count == 0:
                continue
            total += data.damage * count + self.dice.randint(-count, count, f"{monster_type} damage")
            attackers[monster_type] = count

        if not attackers:
            return

        player = state.player
        before = player.health
        player.health = clamp(before - max(0, total), 0, self.settings.stat_max)
        dealt = before - player.health
        state.status.queue("threat_monsters_attack_player", {"damage": dealt, "monsters": attackers})
        logger.debug(f"Player took {dealt} from {attackers}")
