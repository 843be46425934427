"""Collaborator interfaces the combat core depends on.

The core never reaches for globals - every collaborator is handed to the
session at construction time.
"""

from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from ..db.models.enums import CombatEvent
from .types import AnyCombatant, Item, LootDrop, PlayerCombatant, Spell, SpellEffectResult

EventHandler = Callable[[CombatEvent, dict[str, Any]], None]


@runtime_checkable
class PartyProvider(Protocol):
    """The player party as seen by combat."""

    @property
    def alive_members(self) -> Sequence[PlayerCombatant]: ...

    @property
    def average_level(self) -> float: ...

    @property
    def size(self) -> int: ...


class PersistenceSink(Protocol):
    """Best-effort storage of mutated combatants."""

    async def persist(self, combatant: AnyCombatant) -> None: ...


class NotificationBus(Protocol):
    """Publish/subscribe channel for combat events."""

    def publish(self, event: CombatEvent, payload: dict[str, Any]) -> None: ...

    def subscribe(self, event: CombatEvent, handler: EventHandler) -> None: ...


class LootGenerator(Protocol):
    """Produces level-appropriate loot. Raises LootUnavailable when it cannot."""

    async def generate_loot(self, level: int, count: int) -> list[LootDrop]: ...


class SpellEffectExecutor(Protocol):
    """Resolves a spell's effect variant."""

    def execute(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult: ...


class ItemEffectHandler(Protocol):
    """Applies an item's effect. Returns a message describing it."""

    def apply(self, user: AnyCombatant, item: Item, target: AnyCombatant | None) -> str: ...


class TerminologyProvider(Protocol):
    """Maps canonical keys to display strings. Cosmetic only."""

    def get_text(self, key: str, default: str | None = None) -> str: ...


class NullPersistenceSink:
    """Persistence sink that stores nothing."""

    async def persist(self, combatant: AnyCombatant) -> None:
        return None
