"""Exceptions raised inside the combat core.

Only caller misuse escapes the session. Everything else is caught at the
collaborator boundary and turned into a tagged result or a log line.
"""


class CombatError(Exception):
    """Base class for combat errors."""


class CombatStateError(CombatError):
    """Operation not allowed in the session's current phase."""


class PersistenceError(CombatError):
    """A persistence sink failed to store a combatant."""


class LootUnavailable(CombatError):
    """The loot generator cannot produce loot right now."""
