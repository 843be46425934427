"""Combat engine - initiative, formation, action resolution, waves and the session state machine."""

from .actions import ActionResolver, build_action
from .dice import Dice
from .errors import CombatError, CombatStateError, LootUnavailable, PersistenceError
from .events import EventBus, PublishedEvent
from .formation import Formation, FormationEffects, FormationValidation
from .initiative import InitiativeEngine
from .logging import CombatLog, CombatLogger, LogEntry, LogEventType
from .party import Party
from .session import CombatSession
from .spells import SpellBook
from .terminology import Terminology
from .types import (
    ActionResult,
    AttackAction,
    Attributes,
    CombatRewards,
    CombatSummary,
    DefendAction,
    EscapeAction,
    ItemAction,
    MonsterCombatant,
    PlayerCombatant,
    ProcessResult,
    SpellAction,
    TurnEntry,
    Wave,
)
from .waves import WaveManager

__all__ = [
    "ActionResolver",
    "build_action",
    "CombatSession",
    "InitiativeEngine",
    "Formation",
    "FormationEffects",
    "FormationValidation",
    "WaveManager",
    "SpellBook",
    "Dice",
    "EventBus",
    "PublishedEvent",
    "Party",
    "Terminology",
    "CombatError",
    "CombatStateError",
    "LootUnavailable",
    "PersistenceError",
    "CombatLogger",
    "CombatLog",
    "LogEntry",
    "LogEventType",
    "PlayerCombatant",
    "MonsterCombatant",
    "Attributes",
    "TurnEntry",
    "Wave",
    "AttackAction",
    "SpellAction",
    "DefendAction",
    "ItemAction",
    "EscapeAction",
    "ActionResult",
    "ProcessResult",
    "CombatRewards",
    "CombatSummary",
]
