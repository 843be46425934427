"""Database models."""

from .base import Base, TimestampMixin
from .combatants import CombatantRecord
from .enums import (
    ActionType,
    AttackType,
    CharacterClass,
    CombatantKind,
    CombatantStatus,
    CombatEvent,
    CombatOutcome,
    CombatPhase,
    ConditionType,
    FormationRow,
    Side,
    SpellEffectType,
    SpellSchool,
    TemporaryEffectType,
)
from .loot import LootTableEntry

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Enums
    "ActionType",
    "AttackType",
    "CharacterClass",
    "CombatantKind",
    "CombatantStatus",
    "CombatEvent",
    "CombatOutcome",
    "CombatPhase",
    "ConditionType",
    "FormationRow",
    "Side",
    "SpellEffectType",
    "SpellSchool",
    "TemporaryEffectType",
    # Combatants
    "CombatantRecord",
    # Loot
    "LootTableEntry",
]
