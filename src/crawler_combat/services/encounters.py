"""Encounter service - wires a CombatSession and can auto-play it."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..db.models.enums import AttackType, SpellEffectType, Side
from ..engine.dice import Dice
from ..engine.events import EventBus
from ..engine.formation import Formation
from ..engine.interfaces import NotificationBus, PartyProvider
from ..engine.session import CombatSession, EnemyWaves
from ..engine.spells import SpellBook
from ..engine.terminology import Terminology
from ..engine.types import (
    Action,
    AttackAction,
    CombatSummary,
    DefendAction,
    PlayerCombatant,
    SpellAction,
    TurnEntry,
)
from .loot import DatabaseLootGenerator
from .persistence import DatabasePersistenceSink

logger = logging.getLogger(__name__)

# Safety valve for auto-played encounters
MAX_AUTO_ACTIONS = 1000


@dataclass
class EncounterResult:
    """Result of an auto-played encounter."""

    summary: CombatSummary | None
    actions_taken: int


def build_session(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    bus: NotificationBus | None = None,
    dice: Dice | None = None,
) -> CombatSession:
    """Create a CombatSession from settings.

    With a session factory the database sink and loot table are used;
    without one combat runs purely in memory with the coin fallback.
    """
    settings = settings or get_settings()
    dice = dice or Dice(seed=settings.rng_seed)

    persistence = None
    loot_generator = None
    if session_factory is not None:
        persistence = DatabasePersistenceSink(session_factory)
        loot_generator = DatabaseLootGenerator(session_factory, dice=dice)

    return CombatSession(
        dice=dice,
        formation=Formation(
            max_front_row=settings.formation_front_capacity,
            max_back_row=settings.formation_back_capacity,
        ),
        persistence=persistence,
        bus=bus or EventBus(),
        loot_generator=loot_generator,
        spell_executor=SpellBook(dice),
        terminology=Terminology(settings.terminology_mode),
        default_experience_value=settings.default_experience_value,
    )


def choose_action(session: CombatSession, entry: TurnEntry) -> Action:
    """Simple tactics for an actor.

    Enemies strike the highest-priority party target (front row first).
    Party members melee when their row allows it, otherwise cast a
    memorized damage spell, otherwise defend.
    """
    actor = entry.combatant
    opponents = session.context.living(actor.side.opponent)
    if not opponents:
        return DefendAction(actor=actor)

    if entry.side is Side.ENEMIES:
        priorities = [p for p in session.formation.get_target_priority() if session.context.contains(p.character)]
        target = priorities[0].character if priorities else opponents[0]
        return AttackAction(actor=actor, target=target)

    target = min(opponents, key=lambda c: c.current_hp)
    if session.formation.can_attack_from_position(actor, target, AttackType.MELEE):
        return AttackAction(actor=actor, target=target)

    if isinstance(actor, PlayerCombatant):
        for spells in actor.memorized_spells.values():
            for spell in spells:
                if spell.effect is SpellEffectType.DAMAGE:
                    return SpellAction(actor=actor, spell=spell, target=target)

    return DefendAction(actor=actor)


async def run_encounter(
    session: CombatSession,
    party: PartyProvider | Sequence[PlayerCombatant],
    enemy_waves: EnemyWaves,
) -> EncounterResult:
    """Start an encounter and auto-play it to the end."""
    await session.start(party, enemy_waves)
    actions = 0

    while session.is_active and actions < MAX_AUTO_ACTIONS:
        entry = await session.next_turn()
        if entry is None:
            break
        outcome = await session.process_action(choose_action(session, entry))
        actions += 1
        if outcome.combat_ended:
            break

    if session.is_active:
        logger.warning(f"Encounter still running after {actions} actions, ending it")
        await session.end_combat()

    return EncounterResult(summary=session.last_summary, actions_taken=actions)
