"""Wave manager - enemy wave progression and reward aggregation."""

import logging
from collections.abc import Sequence

from .dice import Dice
from .errors import LootUnavailable
from .interfaces import LootGenerator
from .types import CombatRewards, LootDrop, MonsterCombatant, Wave

logger = logging.getLogger(__name__)

MAX_LOOT_CHANCE = 80


class WaveManager:
    """Tracks the ordered enemy waves of one encounter."""

    def __init__(
        self,
        waves: Sequence[Sequence[MonsterCombatant] | MonsterCombatant],
        dice: Dice,
        loot_generator: LootGenerator | None = None,
        default_experience_value: int = 10,
    ) -> None:
        self.waves: list[Wave] = [
            Wave(index=i, enemies=(w,) if isinstance(w, MonsterCombatant) else tuple(w))
            for i, w in enumerate(waves)
        ]
        self.dice = dice
        self.loot_generator = loot_generator
        self.default_experience_value = default_experience_value
        self.current_index = 0
        self.advances = 0

    @property
    def total_waves(self) -> int:
        return len(self.waves)

    @property
    def current_wave(self) -> Wave | None:
        if self.current_index < len(self.waves):
            return self.waves[self.current_index]
        return None

    @property
    def wave_number(self) -> int:
        """1-based number of the current wave."""
        return self.current_index + 1

    def has_more_waves(self) -> bool:
        return self.current_index + 1 < len(self.waves)

    def is_current_wave_defeated(self) -> bool:
        """True once every enemy in the active wave is down."""
        wave = self.current_wave
        if wave is None:
            return True
        return all(not enemy.is_alive for enemy in wave.enemies)

    def advance(self) -> Wave | None:
        """Move to the next wave. Returns it, or None when all waves are done."""
        self.advances += 1
        self.current_index += 1
        return self.current_wave

    def defeated_enemies(self) -> list[MonsterCombatant]:
        """Every downed enemy across all waves, in wave order."""
        return [enemy for wave in self.waves for enemy in wave.enemies if not enemy.is_alive]

    def loot_chance(self, defeated: Sequence[MonsterCombatant]) -> float:
        if not defeated:
            return 0.0
        average_level = sum(e.level for e in defeated) / len(defeated)
        return min(MAX_LOOT_CHANCE, len(defeated) * 15 + average_level * 5)

    async def calculate_rewards(self) -> CombatRewards:
        """Aggregate experience, gold and loot over all defeated enemies."""
        rewards = CombatRewards()
        defeated = self.defeated_enemies()

        for enemy in defeated:
            rewards.experience += enemy.experience_value or self.default_experience_value
            rewards.gold += self.dice.die(6) * enemy.level

        rewards.loot = await self._generate_loot(defeated)
        return rewards

    async def _generate_loot(self, defeated: Sequence[MonsterCombatant]) -> list[LootDrop]:
        loot: list[LootDrop] = []
        chance = self.loot_chance(defeated)

        for enemy in defeated:
            if not self.dice.percent(chance):
                continue
            if self.loot_generator is None:
                loot.append(self._fallback_drop(enemy))
                continue
            try:
                loot.extend(await self.loot_generator.generate_loot(enemy.level, 1))
            except LootUnavailable:
                logger.info(f"Loot generator unavailable, dropping coins for {enemy.name}")
                loot.append(self._fallback_drop(enemy))
            except Exception:
                logger.exception(f"Failed to generate loot for {enemy.name}")

        return loot

    def _fallback_drop(self, enemy: MonsterCombatant) -> LootDrop:
        return LootDrop(
            name="Coins",
            kind="currency",
            value=self.dice.die(10) * enemy.level,
            level=enemy.level,
        )
