"""Tests for encounter wiring and auto-play."""

from conftest import make_monster, make_player

from crawler_combat.config import Settings
from crawler_combat.db.models.enums import CharacterClass, SpellEffectType, SpellSchool
from crawler_combat.engine.dice import Dice
from crawler_combat.engine.events import EventBus
from crawler_combat.engine.spells import SpellBook
from crawler_combat.engine.terminology import Terminology
from crawler_combat.engine.types import (
    AttackAction,
    DefendAction,
    DiceSpec,
    Spell,
    SpellAction,
    Weapon,
)
from crawler_combat.services.encounters import build_session, choose_action, run_encounter
from crawler_combat.services.loot import DatabaseLootGenerator
from crawler_combat.services.persistence import DatabasePersistenceSink


def settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestBuildSession:
    """Tests for build_session."""

    def test_in_memory_session(self):
        """Test wiring without a database."""
        session = build_session(settings(terminology_mode="cyber", formation_front_capacity=2))

        assert session.persistence is None
        assert session.loot_generator is None
        assert isinstance(session.bus, EventBus)
        assert isinstance(session.spell_executor, SpellBook)
        assert isinstance(session.terminology, Terminology)
        assert session.terminology.mode == "cyber"
        assert session.formation.max_front_row == 2

    def test_database_collaborators(self, session_factory):
        """Test wiring with a session factory."""
        session = build_session(settings(), session_factory=session_factory)

        assert isinstance(session.persistence, DatabasePersistenceSink)
        assert isinstance(session.loot_generator, DatabaseLootGenerator)

    def test_seed_makes_dice_reproducible(self):
        """Test that rng_seed seeds the session dice."""
        first = build_session(settings(rng_seed=7)).dice
        second = build_session(settings(rng_seed=7)).dice

        assert [first.die(20) for _ in range(5)] == [second.die(20) for _ in range(5)]


class TestChooseAction:
    """Tests for the auto-play tactics."""

    async def test_enemy_targets_front_row(self):
        """Test that enemies go for the front row first."""
        session = build_session(settings(rng_seed=1))
        fighter = make_player(weapon=Weapon("Longsword"))
        mage = make_player(id="p2", character_class=CharacterClass.MAGE)
        kobold = make_monster()
        await session.start([fighter, mage], [[kobold]], surprise_override=False)

        action = choose_action(session, next(e for e in session.turn_order if e.combatant is kobold))

        assert isinstance(action, AttackAction)
        assert action.target is fighter

    async def test_back_row_caster_casts_or_defends(self):
        """Test that a back-row caster avoids illegal melee."""
        session = build_session(settings(rng_seed=1))
        fighter = make_player(weapon=Weapon("Longsword"))
        mage = make_player(id="p2", character_class=CharacterClass.MAGE)
        kobold = make_monster()
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        entry = next(e for e in session.turn_order if e.combatant is mage)

        assert isinstance(choose_action(session, entry), DefendAction)

        bolt = Spell("Bolt", 1, SpellSchool.ARCANE, SpellEffectType.DAMAGE, dice=DiceSpec(1, 6))
        mage.memorized_spells = {SpellSchool.ARCANE: [bolt]}
        action = choose_action(session, entry)
        assert isinstance(action, SpellAction)
        assert action.target is kobold


class TestRunEncounter:
    """Tests for run_encounter."""

    async def test_auto_played_encounter_finishes(self):
        """Test that auto-play reaches a terminal outcome."""
        session = build_session(settings(rng_seed=3), dice=Dice(seed=3))
        party = [
            make_player(id="p1", level=3, strength=16, weapon=Weapon("Longsword", damage_bonus=2)),
            make_player(id="p2", character_class=CharacterClass.SAMURAI, level=3, weapon=Weapon("Katana")),
        ]
        waves = [[make_monster(id="m1")], [make_monster(id="m2"), make_monster(id="m3")]]

        result = await run_encounter(session, party, waves)

        assert result.summary is not None
        assert result.actions_taken > 0
        assert session.is_active is False
        assert result.summary.combat_log.entries
