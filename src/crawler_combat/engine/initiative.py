"""Initiative engine - turn order and surprise."""

from collections.abc import Sequence

from ..db.models.enums import CharacterClass, Side
from .dice import Dice
from .types import AnyCombatant, TurnEntry

CLASS_INITIATIVE_BONUS: dict[CharacterClass, int] = {
    CharacterClass.FIGHTER: 1,
    CharacterClass.THIEF: 2,
    CharacterClass.NINJA: 4,
    CharacterClass.MAGE: -1,
    CharacterClass.PRIEST: -1,
    CharacterClass.LORD: 1,
    CharacterClass.SAMURAI: 2,
    CharacterClass.BISHOP: 0,
}


class InitiativeEngine:
    """Computes per-wave turn order and surprise-round eligibility."""

    def __init__(self, dice: Dice) -> None:
        self.dice = dice

    @staticmethod
    def class_bonus(combatant: AnyCombatant) -> int:
        """Class-specific initiative bonus. Monsters have no class."""
        character_class = getattr(combatant, "character_class", None) if combatant.is_player else None
        if character_class is None:
            return 0
        return CLASS_INITIATIVE_BONUS.get(character_class, 0)

    def roll_initiative(self, combatant: AnyCombatant) -> int:
        """agility + class bonus + d6."""
        return combatant.attributes.agility + self.class_bonus(combatant) + self.dice.die(6)

    def compute_turn_order(self, combatants: Sequence[AnyCombatant]) -> list[TurnEntry]:
        """Roll initiative for everyone and sort descending.

        Ties keep the order combatants were given in (sorted() is stable
        even with reverse=True).
        """
        entries = [
            TurnEntry(combatant=c, initiative=self.roll_initiative(c), side=c.side)
            for c in combatants
        ]
        return sorted(entries, key=lambda e: e.initiative, reverse=True)

    @staticmethod
    def average_agility(combatants: Sequence[AnyCombatant]) -> float:
        if not combatants:
            return 0.0
        return sum(c.attributes.agility for c in combatants) / len(combatants)

    def surprise_chance(
        self,
        party: Sequence[AnyCombatant],
        enemies: Sequence[AnyCombatant],
    ) -> float:
        """Percent chance that one side surprises the other."""
        if not party or not enemies:
            return 0.0
        difference = abs(self.average_agility(party) - self.average_agility(enemies))
        return min(100.0, max(0.0, difference * 2))

    def check_surprise(
        self,
        party: Sequence[AnyCombatant],
        enemies: Sequence[AnyCombatant],
    ) -> Side | None:
        """Roll for surprise. Returns the favored side or None."""
        chance = self.surprise_chance(party, enemies)
        if chance <= 0:
            return None
        if self.dice.percent(chance):
            if self.average_agility(party) > self.average_agility(enemies):
                return Side.PARTY
            return Side.ENEMIES
        return None
