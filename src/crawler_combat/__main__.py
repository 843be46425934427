"""Entry point for running a demo encounter."""

import asyncio
import logging
import sys

from crawler_combat.config import get_settings
from crawler_combat.db.engine import async_session_factory, engine
from crawler_combat.db.models import Base, CharacterClass, SpellEffectType, SpellSchool
from crawler_combat.engine import Party
from crawler_combat.engine.types import (
    ArmorPiece,
    Attributes,
    DiceSpec,
    Equipment,
    MonsterCombatant,
    PlayerCombatant,
    Spell,
    Weapon,
)
from crawler_combat.services import DatabaseLootGenerator, build_session, run_encounter

MAGIC_MISSILE = Spell(
    name="Magic Missile",
    level=1,
    school=SpellSchool.ARCANE,
    effect=SpellEffectType.DAMAGE,
    dice=DiceSpec(1, 8),
)


def demo_party() -> Party:
    return Party(
        [
            PlayerCombatant(
                id="alda",
                name="Alda",
                max_hp=25,
                level=3,
                character_class=CharacterClass.FIGHTER,
                attributes=Attributes(strength=16, agility=12, vitality=14),
                equipment=Equipment(
                    weapon=Weapon("Longsword", attack_bonus=1, damage_bonus=1),
                    armor=ArmorPiece("Chain Mail", ac_bonus=4),
                ),
            ),
            PlayerCombatant(
                id="brom",
                name="Brom",
                max_hp=20,
                level=3,
                character_class=CharacterClass.SAMURAI,
                attributes=Attributes(strength=15, agility=14),
                equipment=Equipment(weapon=Weapon("Katana", attack_bonus=2, damage_bonus=2)),
            ),
            PlayerCombatant(
                id="cyra",
                name="Cyra",
                max_hp=12,
                level=3,
                character_class=CharacterClass.MAGE,
                attributes=Attributes(intelligence=17, agility=11),
                memorized_spells={SpellSchool.ARCANE: [MAGIC_MISSILE, MAGIC_MISSILE, MAGIC_MISSILE]},
            ),
        ]
    )


def demo_waves() -> list[list[MonsterCombatant]]:
    return [
        [
            MonsterCombatant(id="kobold-1", name="Kobold", max_hp=5, level=1),
            MonsterCombatant(id="kobold-2", name="Kobold", max_hp=5, level=1),
        ],
        [
            MonsterCombatant(
                id="orc-1",
                name="Orc",
                max_hp=12,
                level=2,
                experience_value=25,
                attributes=Attributes(strength=14),
                equipment=Equipment(weapon=Weapon("Cleaver", damage_bonus=1)),
            ),
        ],
    ]


async def main() -> None:
    """Play one encounter and print its log."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    loot = DatabaseLootGenerator(async_session_factory)
    if not await loot.has_entries(1):
        await loot.add_entry("Healing Potion", min_level=1, max_level=3, kind="consumable", value=25)
        await loot.add_entry("Dagger", min_level=1, max_level=5, value=10)

    session = build_session(settings, session_factory=async_session_factory)

    logging.info("Starting demo encounter...")
    result = await run_encounter(session, demo_party(), demo_waves())

    print(session.get_combat_log().format_readable())
    if result.summary:
        rewards = result.summary.rewards
        print(
            f"\nOutcome: {result.summary.outcome.value} after {result.summary.rounds} round(s), "
            f"{rewards.experience} xp, {rewards.gold} gold, loot: {[d.name for d in rewards.loot]}"
        )

    await engine.dispose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
