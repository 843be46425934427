"""Persisted combatant snapshots."""

from typing import Any

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .enums import CombatantKind, CombatantStatus


class CombatantRecord(Base, TimestampMixin):
    """Last known combat-relevant state of a combatant.

    Written after every hp/status mutation. The roster subsystem owns the
    full character record; this table only mirrors what combat changes.
    """

    __tablename__ = "combatant_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    combatant_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    kind: Mapped[CombatantKind] = mapped_column(
        SQLEnum(CombatantKind, name="combatant_kind"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    current_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    max_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    is_alive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[CombatantStatus] = mapped_column(
        SQLEnum(CombatantStatus, name="combatant_status"),
        nullable=False,
        default=CombatantStatus.OK,
    )

    # Persistent conditions (e.g., [{"type": "confused", "duration": -1, ...}])
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Phase-out bookkeeping owned by the roster subsystem
    is_phased_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    phase_out_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<CombatantRecord(id={self.combatant_id}, hp={self.current_hp}/{self.max_hp}, status={self.status})>"
