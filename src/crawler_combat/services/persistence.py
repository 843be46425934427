"""Database-backed PersistenceSink."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models.combatants import CombatantRecord
from ..engine.errors import PersistenceError
from ..engine.types import AnyCombatant, PlayerCombatant

logger = logging.getLogger(__name__)


class DatabasePersistenceSink:
    """Mirrors combatant hp/status/conditions into combatant_records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def persist(self, combatant: AnyCombatant) -> None:
        """Insert or update the record for a combatant.

        Raises:
            PersistenceError: if the database rejects the write
        """
        try:
            async with self.session_factory() as session:
                record = await self._get_record(session, combatant.id)
                if record is None:
                    record = CombatantRecord(combatant_id=combatant.id, kind=combatant.kind)
                    session.add(record)
                self._apply(record, combatant)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not persist {combatant.id}: {e}") from e

        logger.debug(f"Persisted {combatant.name}: {combatant.current_hp}/{combatant.max_hp} {combatant.status.value}")

    async def get_record(self, combatant_id: str) -> CombatantRecord | None:
        async with self.session_factory() as session:
            return await self._get_record(session, combatant_id)

    @staticmethod
    async def _get_record(session: AsyncSession, combatant_id: str) -> CombatantRecord | None:
        stmt = select(CombatantRecord).where(CombatantRecord.combatant_id == combatant_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _apply(record: CombatantRecord, combatant: AnyCombatant) -> None:
        record.name = combatant.name
        record.current_hp = combatant.current_hp
        record.max_hp = combatant.max_hp
        record.is_alive = combatant.is_alive
        record.status = combatant.status
        record.conditions = [c.to_dict() for c in combatant.conditions]
        if isinstance(combatant, PlayerCombatant):
            record.is_phased_out = combatant.is_phased_out
            record.phase_out_reason = combatant.phase_out_reason
