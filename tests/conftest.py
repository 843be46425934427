"""Shared fixtures for combat tests."""

from collections import deque
from collections.abc import Sequence
from typing import TypeVar

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crawler_combat.db.models import Base, CharacterClass
from crawler_combat.engine.actions import ActionResolver
from crawler_combat.engine.dice import Dice
from crawler_combat.engine.events import EventBus
from crawler_combat.engine.formation import Formation
from crawler_combat.engine.session import CombatSession
from crawler_combat.engine.spells import SpellBook
from crawler_combat.engine.types import (
    Attributes,
    CombatContext,
    Equipment,
    MonsterCombatant,
    PlayerCombatant,
    Weapon,
)

T = TypeVar("T")


class ScriptedDice(Dice):
    """Dice that replay queued results and count every draw.

    Queues run dry into a seeded generator, so tests only script the rolls
    they care about.
    """

    def __init__(self, seed: int = 0) -> None:
        super().__init__(seed=seed)
        self.rolls: deque[int] = deque()
        self.percents: deque[bool] = deque()
        self.choices: deque[int] = deque()
        self.draws = 0

    def script(
        self,
        rolls: Sequence[int] = (),
        percents: Sequence[bool] = (),
        choices: Sequence[int] = (),
    ) -> "ScriptedDice":
        self.rolls.extend(rolls)
        self.percents.extend(percents)
        self.choices.extend(choices)
        return self

    def die(self, sides: int) -> int:
        self.draws += 1
        if self.rolls:
            return self.rolls.popleft()
        return super().die(sides)

    def integer(self, low: int, high: int) -> int:
        self.draws += 1
        if self.rolls:
            return self.rolls.popleft()
        return super().integer(low, high)

    def percent(self, chance: float) -> bool:
        self.draws += 1
        if self.percents:
            return self.percents.popleft()
        return super().percent(chance)

    def choice(self, items: Sequence[T]) -> T:
        self.draws += 1
        if self.choices:
            return items[self.choices.popleft()]
        return items[0]


def make_player(
    id: str = "p1",
    name: str = "Alda",
    character_class: CharacterClass = CharacterClass.FIGHTER,
    max_hp: int = 25,
    level: int = 1,
    weapon: Weapon | None = None,
    **attributes: int,
) -> PlayerCombatant:
    return PlayerCombatant(
        id=id,
        name=name,
        max_hp=max_hp,
        level=level,
        character_class=character_class,
        attributes=Attributes(**attributes),
        equipment=Equipment(weapon=weapon),
    )


def make_monster(
    id: str = "m1",
    name: str = "Kobold",
    max_hp: int = 5,
    level: int = 1,
    experience_value: int = 10,
    **attributes: int,
) -> MonsterCombatant:
    return MonsterCombatant(
        id=id,
        name=name,
        max_hp=max_hp,
        level=level,
        experience_value=experience_value,
        attributes=Attributes(**attributes),
    )


@pytest.fixture
def dice() -> ScriptedDice:
    return ScriptedDice()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def fighter() -> PlayerCombatant:
    return make_player(weapon=Weapon("Longsword"))


@pytest.fixture
def mage() -> PlayerCombatant:
    return make_player(id="p2", name="Cyra", character_class=CharacterClass.MAGE, max_hp=12, intelligence=16)


@pytest.fixture
def kobold() -> MonsterCombatant:
    return make_monster()


@pytest.fixture
def resolver_factory(dice: ScriptedDice, bus: EventBus):
    """Build an ActionResolver over the given combatants."""

    def factory(*combatants, formation: Formation | None = None, **kwargs) -> ActionResolver:
        context = CombatContext(combatants=list(combatants), round_number=1)
        if formation is None:
            formation = Formation()
            formation.setup_from_party([c for c in combatants if isinstance(c, PlayerCombatant)])
        kwargs.setdefault("spell_executor", SpellBook(dice))
        return ActionResolver(dice=dice, context=context, formation=formation, bus=bus, **kwargs)

    return factory


@pytest.fixture
def session(dice: ScriptedDice, bus: EventBus) -> CombatSession:
    return CombatSession(dice=dice, bus=bus, spell_executor=SpellBook(dice))


@pytest.fixture
async def async_engine():
    """Create async SQLite in-memory engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
