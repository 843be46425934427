"""Database-backed LootGenerator."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models.loot import LootTableEntry
from ..engine.dice import Dice
from ..engine.errors import LootUnavailable
from ..engine.types import LootDrop


class DatabaseLootGenerator:
    """Draws loot from the loot_table_entries level bands."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], dice: Dice | None = None) -> None:
        self.session_factory = session_factory
        self.dice = dice or Dice()

    async def generate_loot(self, level: int, count: int) -> list[LootDrop]:
        """Pick `count` entries whose level band contains `level`.

        Raises:
            LootUnavailable: if the table has nothing for this level or can't be read
        """
        try:
            async with self.session_factory() as session:
                entries = await self._entries_for_level(session, level)
        except SQLAlchemyError as e:
            raise LootUnavailable(f"Loot table unavailable: {e}") from e

        if not entries:
            raise LootUnavailable(f"No loot for level {level}")

        drops: list[LootDrop] = []
        for _ in range(count):
            entry = self.dice.choice(entries)
            drops.append(LootDrop(name=entry.name, kind=entry.kind, value=entry.value, level=level))
        return drops

    @staticmethod
    async def _entries_for_level(session: AsyncSession, level: int) -> list[LootTableEntry]:
        stmt = (
            select(LootTableEntry)
            .where(LootTableEntry.min_level <= level, LootTableEntry.max_level >= level)
            .order_by(LootTableEntry.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def add_entry(
        self,
        name: str,
        min_level: int,
        max_level: int,
        kind: str = "equipment",
        value: int = 0,
    ) -> LootTableEntry:
        async with self.session_factory() as session:
            entry = LootTableEntry(name=name, kind=kind, min_level=min_level, max_level=max_level, value=value)
            session.add(entry)
            await session.commit()
            return entry

    async def has_entries(self, level: int) -> bool:
        async with self.session_factory() as session:
            return bool(await self._entries_for_level(session, level))
