"""Party - the PartyProvider used by sessions and the demo."""

from collections.abc import Iterable

from .types import PlayerCombatant


class Party:
    """An ordered group of player characters."""

    def __init__(self, members: Iterable[PlayerCombatant] = (), max_size: int = 6) -> None:
        self.max_size = max_size
        self.members: list[PlayerCombatant] = []
        for member in members:
            self.add_member(member)

    def add_member(self, member: PlayerCombatant) -> bool:
        if self.is_full or any(m.id == member.id for m in self.members):
            return False
        self.members.append(member)
        return True

    def remove_member(self, member: PlayerCombatant) -> bool:
        before = len(self.members)
        self.members = [m for m in self.members if m.id != member.id]
        return len(self.members) != before

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_size

    @property
    def alive_members(self) -> list[PlayerCombatant]:
        """Members able to enter combat - alive and not phased out."""
        return [m for m in self.members if m.is_alive and not m.is_phased_out]

    @property
    def average_level(self) -> float:
        if not self.members:
            return 0.0
        return sum(m.level for m in self.members) / len(self.members)
