"""Tests for the combat session state machine."""

import pytest
from conftest import make_monster, make_player

from crawler_combat.db.models.enums import (
    CharacterClass,
    CombatEvent,
    CombatOutcome,
    CombatPhase,
    ConditionType,
    Side,
    SpellEffectType,
    SpellSchool,
)
from crawler_combat.engine.dice import Dice
from crawler_combat.engine.errors import CombatStateError
from crawler_combat.engine.logging import LogEventType
from crawler_combat.engine.party import Party
from crawler_combat.engine.session import CombatSession
from crawler_combat.engine.types import (
    AttackAction,
    Condition,
    DefendAction,
    DiceSpec,
    EscapeAction,
    Spell,
    SpellAction,
    Weapon,
)
from crawler_combat.services.encounters import choose_action


class TestStart:
    """Tests for starting an encounter."""

    async def test_start_returns_first_actor(self, session, fighter, kobold):
        """Test that start builds the roster and hands back the first actor."""
        actor = await session.start([fighter], [[kobold]], surprise_override=False)

        assert actor is session.turn_order[0]
        assert session.phase is CombatPhase.ACTION_SELECTION
        assert set(session.combatants) == {fighter, kobold}
        assert session.round_number == 1

    async def test_start_skips_downed_members(self, session, fighter, mage, kobold):
        """Test that only living party members join."""
        mage.knock_out()

        await session.start(Party([fighter, mage]), [[kobold]], surprise_override=False)

        assert mage not in session.combatants

    async def test_start_publishes_combat_started(self, session, bus, fighter, kobold):
        """Test the combat-started notification."""
        await session.start([fighter], [[kobold], [make_monster(id="m2")]], surprise_override=False)

        payload = bus.events_of(CombatEvent.COMBAT_STARTED)[0].payload
        assert payload["total_waves"] == 2
        assert payload["enemies"] == [kobold]

    async def test_double_start_raises(self, session, fighter, kobold):
        """Test that a running session cannot be started again."""
        await session.start([fighter], [[kobold]], surprise_override=False)

        with pytest.raises(CombatStateError):
            await session.start([fighter], [[kobold]])

    async def test_start_without_party_raises(self, session, kobold):
        """Test that an empty party is a caller error."""
        with pytest.raises(CombatStateError):
            await session.start([], [[kobold]])


class TestTurnOrder:
    """Tests for get_current_actor."""

    async def test_current_actor_is_idempotent(self, session, fighter, kobold):
        """Test that asking twice without acting returns the same entry."""
        await session.start([fighter], [[kobold]], surprise_override=False)

        first = session.get_current_actor()

        assert session.get_current_actor() is first
        assert session.get_current_actor() is first

    async def test_skips_downed_combatants(self, session, fighter, mage, kobold):
        """Test that dead or unconscious entries are skipped."""
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        session.turn_order[0].combatant.knock_out()

        actor = session.get_current_actor()

        assert actor is session.turn_order[1]
        assert actor.combatant.is_alive

    async def test_wrap_around_advances_round(self, session, fighter, kobold):
        """Test that a full rotation starts a new round."""
        await session.start([fighter], [[make_monster(max_hp=50)]], surprise_override=False)

        for _ in range(2):
            entry = session.get_current_actor()
            await session.process_action(DefendAction(actor=entry.combatant))

        assert session.round_number == 2
        assert session.get_current_actor() is session.turn_order[0]

    async def test_surprise_round_favors_one_side(self, session, fighter, mage):
        """Test that only the favored side acts until it is exhausted."""
        enemies = [make_monster(id="m1", max_hp=30), make_monster(id="m2", max_hp=30)]
        await session.start([fighter, mage], [enemies], surprise_override=Side.PARTY)
        assert session.phase is CombatPhase.SURPRISE_ROUND

        acted = []
        for _ in range(2):
            entry = session.get_current_actor()
            assert entry.side is Side.PARTY
            acted.append(entry.combatant)
            await session.process_action(DefendAction(actor=entry.combatant))

        assert set(acted) == {fighter, mage}
        assert session.get_current_actor() is session.turn_order[0]
        assert session.phase is CombatPhase.ACTION_SELECTION
        assert session.surprise_side is None
        assert session.round_number == 2

    async def test_surprised_side_cannot_act(self, session, fighter, mage):
        """Test that the surprised side is refused without using a surprise slot."""
        enemies = [make_monster(id="m1", max_hp=30), make_monster(id="m2", max_hp=30)]
        await session.start([fighter, mage], [enemies], surprise_override=Side.PARTY)
        current = session.get_current_actor()

        outcome = await session.process_action(DefendAction(actor=enemies[0]))

        assert outcome.result.invalid is True
        assert session.surprise_index == 0
        assert session.get_current_actor() is current

    async def test_surprise_actors_go_in_order(self, session, fighter, mage):
        """Test that a favored member cannot jump ahead of the current one."""
        await session.start([fighter, mage], [[make_monster(max_hp=30)]], surprise_override=Side.PARTY)
        current = session.get_current_actor()
        other = mage if current.combatant is fighter else fighter

        outcome = await session.process_action(DefendAction(actor=other))

        assert outcome.result.invalid is True
        assert session.get_current_actor() is current

    async def test_surprise_entries_in_initiative_order(self, session, fighter, mage, kobold):
        """Test that the favored side acts in turn-order sequence."""
        await session.start([fighter, mage], [[kobold]], surprise_override=Side.ENEMIES)

        entry = session.get_current_actor()

        assert entry.combatant is kobold


class TestActions:
    """Tests for process_action."""

    async def test_fighter_kills_weak_enemy_in_one_hit(self, session, dice, kobold):
        """Test a one-hit victory."""
        fighter = make_player(weapon=Weapon("Longsword", damage_bonus=4))
        await session.start([fighter], [[kobold]], surprise_override=False)
        dice.script(rolls=[15, 6])

        outcome = await session.process_action(AttackAction(actor=fighter, target=kobold))

        assert outcome.result.damage == 10
        assert kobold.is_alive is False
        assert session.waves.is_current_wave_defeated() is True
        assert outcome.combat_ended is True
        assert outcome.winner is Side.PARTY
        assert outcome.summary.outcome is CombatOutcome.VICTORY
        assert session.phase is CombatPhase.IDLE

    async def test_back_row_melee_is_rejected_before_rolling(self, session, dice, fighter, mage, kobold):
        """Test that an illegal position is rejected with state unchanged."""
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        draws = dice.draws
        index = session.turn_index

        outcome = await session.process_action(AttackAction(actor=mage, target=kobold))

        assert outcome.result.invalid is True
        assert outcome.result.success is False
        assert dice.draws == draws
        assert session.turn_index == index
        assert kobold.current_hp == kobold.max_hp

    async def test_normal_action_advances_turn(self, session, fighter, kobold):
        """Test that a non-escape action moves to the next actor."""
        await session.start([fighter], [[make_monster(max_hp=50)]], surprise_override=False)
        first = session.get_current_actor()

        outcome = await session.process_action(DefendAction(actor=first.combatant))

        assert outcome.next_actor is not first
        assert outcome.next_actor is session.turn_order[1]

    async def test_failed_escape_does_not_advance_turn(self, session, dice, fighter, kobold):
        """Test that escape bypasses the normal turn advance."""
        await session.start([fighter], [[kobold]], surprise_override=False)
        index = session.turn_index
        current = session.get_current_actor()
        dice.script(percents=[False], rolls=[1])

        outcome = await session.process_action(EscapeAction(actor=fighter))

        assert outcome.result.success is False
        assert session.turn_index == index
        assert outcome.next_actor is current

    async def test_confused_escape_is_blocked(self, session, dice, fighter, mage, kobold):
        """Test that a confused character stays in combat and nothing is rolled."""
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        fighter.add_condition(Condition(type=ConditionType.CONFUSED, name="Confused"))
        draws = dice.draws

        outcome = await session.process_action(EscapeAction(actor=fighter))

        assert outcome.result.blocked is True
        assert fighter in session.combatants
        assert dice.draws == draws

    async def test_escaped_character_cannot_act(self, session, dice, fighter, mage, kobold):
        """Test that an escapee is no longer part of the encounter."""
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        dice.script(percents=[True])
        await session.process_action(EscapeAction(actor=mage))

        outcome = await session.process_action(DefendAction(actor=mage))

        assert outcome.result.invalid is True
        assert mage not in session.combatants
        assert all(e.combatant is not mage for e in session.turn_order)

    async def test_escaped_character_cannot_be_attacked(self, session, dice, fighter, mage, kobold):
        """Test that an escapee is out of reach of attacks."""
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        dice.script(percents=[True])
        await session.process_action(EscapeAction(actor=mage))
        hp = mage.current_hp
        draws = dice.draws

        outcome = await session.process_action(AttackAction(actor=kobold, target=mage))

        assert outcome.result.invalid is True
        assert outcome.result.reason == "Cyra is not part of this combat"
        assert mage.current_hp == hp
        assert dice.draws == draws

    async def test_escaped_character_cannot_be_spell_target(self, session, dice, fighter, mage, kobold):
        """Test that spells cannot reach an escapee either."""
        cure = Spell("Cure", 1, SpellSchool.DIVINE, SpellEffectType.HEAL, dice=DiceSpec(1, 8))
        mage.memorized_spells = {SpellSchool.DIVINE: [cure]}
        await session.start([fighter, mage], [[kobold]], surprise_override=False)
        dice.script(percents=[True])
        await session.process_action(EscapeAction(actor=fighter))

        outcome = await session.process_action(SpellAction(actor=mage, spell=cure, target=fighter))

        assert outcome.result.invalid is True
        assert outcome.result.reason == "Alda is not part of this combat"
        assert mage.knows_spell(cure)

    async def test_enemy_escape_is_rejected(self, session, dice, fighter, kobold):
        """Test that enemies cannot leave the fight and stall the wave."""
        await session.start([fighter], [[kobold]], surprise_override=False)
        draws = dice.draws

        outcome = await session.process_action(EscapeAction(actor=kobold))

        assert outcome.result.invalid is True
        assert kobold in session.combatants
        assert dice.draws == draws
        assert session.get_disconnected_characters() == []

        kobold.slay()
        outcome = await session.process_action(DefendAction(actor=fighter))

        assert outcome.combat_ended is True
        assert outcome.summary.outcome is CombatOutcome.VICTORY

    async def test_inactive_session_rejects_actions(self, session, fighter):
        """Test that actions before start are rejected."""
        outcome = await session.process_action(DefendAction(actor=fighter))

        assert outcome.result.invalid is True


class TestWaves:
    """Tests for multi-wave encounters."""

    async def test_all_waves_forced_down_is_victory(self, session, fighter):
        """Test that N cleared waves advance N times and sum experience."""
        waves = [
            [make_monster(id="a", experience_value=10), make_monster(id="b", experience_value=20)],
            [make_monster(id="c", experience_value=15)],
            [make_monster(id="d")],
        ]
        await session.start([fighter], waves, surprise_override=False)

        outcome = None
        for _ in waves:
            for enemy in session.get_wave_info()["enemies"]:
                enemy.take_damage(enemy.max_hp)
            outcome = await session.process_action(DefendAction(actor=fighter))

        assert session.waves.advances == len(waves)
        assert outcome.combat_ended is True
        assert outcome.summary.outcome is CombatOutcome.VICTORY
        assert outcome.summary.rewards.experience == 10 + 20 + 15 + 10
        assert outcome.summary.waves_cleared == 3

    async def test_next_wave_rebuilds_turn_order(self, session, fighter):
        """Test that clearing a wave brings in the next one."""
        second = make_monster(id="m2", max_hp=30)
        await session.start([fighter], [[make_monster()], [second]], surprise_override=False)
        session.get_wave_info()["enemies"][0].slay()

        outcome = await session.process_action(DefendAction(actor=fighter))

        assert outcome.wave_advanced is True
        assert session.get_wave_info()["current_wave"] == 2
        assert {e.combatant for e in session.turn_order} == {fighter, second}
        assert session.turn_index == 0
        assert session.phase is CombatPhase.ACTION_SELECTION

    async def test_escapee_does_not_return_next_wave(self, session, dice, fighter, mage):
        """Test that escaped characters stay out across waves."""
        await session.start([fighter, mage], [[make_monster()], [make_monster(id="m2")]], surprise_override=False)
        dice.script(percents=[True])
        await session.process_action(EscapeAction(actor=mage))
        session.get_wave_info()["enemies"][0].slay()

        await session.process_action(DefendAction(actor=fighter))

        assert mage not in session.combatants
        assert [r.combatant for r in session.get_disconnected_characters()] == [mage]


class TestEnding:
    """Tests for outcome classification."""

    async def test_total_defeat(self, session, bus, fighter, kobold):
        """Test that a fallen party with no escapees is a total defeat."""
        await session.start([fighter], [[kobold]], surprise_override=False)
        fighter.take_damage(100)

        outcome = await session.process_action(DefendAction(actor=kobold))

        assert outcome.summary.outcome is CombatOutcome.TOTAL_DEFEAT
        assert outcome.winner is Side.ENEMIES
        assert outcome.summary.casualties == [fighter]
        payload = bus.events_of(CombatEvent.PARTY_DEFEATED)[0].payload
        assert payload["total_defeat"] is True

    async def test_partial_defeat_when_last_member_escapes(self, session, bus, dice, fighter, kobold):
        """Test that an escape leaving nobody standing is a partial defeat."""
        await session.start([fighter], [[kobold]], surprise_override=False)
        dice.script(percents=[True])

        outcome = await session.process_action(EscapeAction(actor=fighter))

        assert outcome.combat_ended is True
        assert outcome.summary.outcome is CombatOutcome.PARTIAL_DEFEAT
        assert [r.combatant for r in outcome.summary.disconnected] == [fighter]
        payload = bus.events_of(CombatEvent.PARTY_DEFEATED)[0].payload
        assert payload["total_defeat"] is False

    async def test_unusual_outcome(self, session, bus, fighter, kobold):
        """Test that ending with both sides standing is its own outcome."""
        await session.start([fighter], [[kobold]], surprise_override=False)

        summary = await session.end_combat()

        assert summary.outcome is CombatOutcome.UNUSUAL
        assert session.phase is CombatPhase.IDLE
        assert bus.events_of(CombatEvent.PARTY_DEFEATED)[0].payload["victory"] is False

    async def test_victory_publishes_rewards(self, session, bus, dice, fighter, kobold):
        """Test the combat-ended payload."""
        await session.start([fighter], [[kobold]], surprise_override=False)
        kobold.slay()

        await session.process_action(DefendAction(actor=fighter))

        payload = bus.events_of(CombatEvent.COMBAT_ENDED)[0].payload
        assert payload["victory"] is True
        assert payload["rewards"].experience == 10
        assert session.get_last_combat_rewards() is payload["rewards"]

    async def test_end_combat_when_idle_raises(self, session):
        """Test that ending an idle session is a caller error."""
        with pytest.raises(CombatStateError):
            await session.end_combat()

    async def test_next_turn_logs_actor(self, session, fighter, kobold):
        """Test that next_turn announces the current actor."""
        await session.start([fighter], [[kobold]], surprise_override=False)

        entry = await session.next_turn()

        turns = session.get_combat_log().get_entries_by_type(LogEventType.TURN)
        assert turns[-1].actor_id == entry.combatant.id


class TestInvariants:
    """Property-style checks over whole encounters."""

    @pytest.mark.parametrize("seed", range(10))
    async def test_hp_stays_in_bounds(self, seed):
        """Test that hp never leaves [0, max] during an auto-played encounter."""
        dice = Dice(seed=seed)
        session = CombatSession(dice=dice)
        party = [
            make_player(id="p1", weapon=Weapon("Longsword")),
            make_player(id="p2", character_class=CharacterClass.THIEF, max_hp=15, weapon=Weapon("Dagger")),
            make_player(id="p3", character_class=CharacterClass.MAGE, max_hp=10),
        ]
        waves = [
            [make_monster(id="m1", max_hp=8), make_monster(id="m2", max_hp=8, strength=14)],
            [make_monster(id="m3", max_hp=15, strength=16)],
        ]
        everyone = [*party, *(m for w in waves for m in w)]

        await session.start(party, waves)
        for _ in range(500):
            entry = session.get_current_actor()
            if entry is None:
                break
            outcome = await session.process_action(choose_action(session, entry))
            for combatant in everyone:
                assert 0 <= combatant.current_hp <= combatant.max_hp
            if outcome.combat_ended:
                break

        assert session.is_active is False
