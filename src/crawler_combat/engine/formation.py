"""Formation - front/back row placement for the party."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from ..db.models.enums import AttackType, CharacterClass, FormationRow
from .types import AnyCombatant, PlayerCombatant, attribute_modifier

FRONT_ROW_CLASSES: frozenset[CharacterClass] = frozenset(
    {
        CharacterClass.FIGHTER,
        CharacterClass.LORD,
        CharacterClass.SAMURAI,
        CharacterClass.THIEF,
        CharacterClass.NINJA,
    }
)

SPELLCASTER_CLASSES: frozenset[CharacterClass] = frozenset(
    {CharacterClass.MAGE, CharacterClass.PRIEST, CharacterClass.BISHOP}
)

HEAVY_FIGHTER_CLASSES: frozenset[CharacterClass] = frozenset(
    {CharacterClass.FIGHTER, CharacterClass.LORD, CharacterClass.SAMURAI}
)

FRONT_ROW_PRIORITY: dict[CharacterClass, int] = {
    CharacterClass.FIGHTER: 10,
    CharacterClass.LORD: 9,
    CharacterClass.SAMURAI: 9,
    CharacterClass.THIEF: 6,
    CharacterClass.NINJA: 7,
    CharacterClass.PRIEST: 3,
    CharacterClass.MAGE: 2,
    CharacterClass.BISHOP: 1,
}


@dataclass
class FormationPosition:
    row: FormationRow
    index: int


@dataclass
class FormationEffects:
    """Row modifiers consumed by the action resolver."""

    damage_bonus: int = 0
    accuracy_bonus: int = 0
    damage_taken_multiplier: float = 1.0
    targeting_priority: str = "high"


@dataclass
class FormationResult:
    success: bool
    reason: str | None = None


@dataclass
class FormationValidation:
    valid: bool
    issues: list[str] = field(default_factory=list)


@dataclass
class TargetPriority:
    character: PlayerCombatant
    priority: int
    row: FormationRow
    position: int


@dataclass
class RowStats:
    count: int
    classes: list[CharacterClass]
    total_hp: int
    average_ac: float


@dataclass
class FormationStats:
    front_row: RowStats
    back_row: RowStats
    total_members: int
    front_row_ratio: float
    balance_score: float


def base_armor_class(character: AnyCombatant) -> int:
    """Armor class from agility and equipment only (no one-shot bonuses)."""
    ac = 10 - attribute_modifier(character.attributes.agility)
    if character.equipment.armor:
        ac -= character.equipment.armor.ac_bonus
    if character.equipment.shield:
        ac -= character.equipment.shield.ac_bonus
    return ac


class Formation:
    """Two fixed-capacity rows of party members."""

    def __init__(self, max_front_row: int = 3, max_back_row: int = 3) -> None:
        self.max_front_row = max_front_row
        self.max_back_row = max_back_row
        self.front_row: list[PlayerCombatant] = []
        self.back_row: list[PlayerCombatant] = []

    @staticmethod
    def should_be_in_front_row(character: PlayerCombatant) -> bool:
        return character.character_class in FRONT_ROW_CLASSES

    def setup_from_party(self, members: Sequence[PlayerCombatant]) -> None:
        """Default placement by class affinity, overflowing into the other row."""
        self.front_row = []
        self.back_row = []
        self._place(members)

    def _place(self, members: Sequence[PlayerCombatant]) -> None:
        for member in members:
            if self.should_be_in_front_row(member) and len(self.front_row) < self.max_front_row:
                self.front_row.append(member)
            elif len(self.back_row) < self.max_back_row:
                self.back_row.append(member)
            elif len(self.front_row) < self.max_front_row:
                self.front_row.append(member)

    def set_formation(
        self,
        front_row: Sequence[PlayerCombatant],
        back_row: Sequence[PlayerCombatant],
    ) -> FormationResult:
        """Replace the formation wholesale."""
        if len(front_row) > self.max_front_row or len(back_row) > self.max_back_row:
            return FormationResult(success=False, reason="Too many members in row")
        self.front_row = list(front_row)
        self.back_row = list(back_row)
        return FormationResult(success=True)

    def move_character(self, character: PlayerCombatant, target_row: FormationRow) -> FormationResult:
        """Move a character to another row if it has room."""
        original = self.get_position(character)
        self.remove(character)

        row = self.front_row if target_row is FormationRow.FRONT else self.back_row
        capacity = self.max_front_row if target_row is FormationRow.FRONT else self.max_back_row
        if len(row) < capacity:
            row.append(character)
            return FormationResult(success=True)

        # Put them back where they were
        if original is not None:
            previous = self.front_row if original.row is FormationRow.FRONT else self.back_row
            previous.insert(original.index, character)
        return FormationResult(success=False, reason="Target row is full")

    def remove(self, character: AnyCombatant) -> None:
        self.front_row = [m for m in self.front_row if m.id != character.id]
        self.back_row = [m for m in self.back_row if m.id != character.id]

    def get_position(self, character: AnyCombatant) -> FormationPosition | None:
        """Row and index of a combatant. Enemies always count as front row."""
        if not character.is_player:
            return FormationPosition(row=FormationRow.FRONT, index=0)
        for index, member in enumerate(self.front_row):
            if member.id == character.id:
                return FormationPosition(row=FormationRow.FRONT, index=index)
        for index, member in enumerate(self.back_row):
            if member.id == character.id:
                return FormationPosition(row=FormationRow.BACK, index=index)
        return None

    def can_attack_from_position(
        self,
        attacker: AnyCombatant,
        target: AnyCombatant,
        attack_type: AttackType = AttackType.MELEE,
    ) -> bool:
        """Whether the attacker's row allows this kind of attack."""
        attacker_position = self.get_position(attacker)
        target_position = self.get_position(target)
        if attacker_position is None or target_position is None:
            return False

        match attack_type:
            case AttackType.MELEE:
                if attacker_position.row is FormationRow.FRONT:
                    return True
                return len(self.front_row) == 0 or self.has_reach_weapon(attacker)
            case AttackType.RANGED | AttackType.REACH | AttackType.SPELL:
                return True
            case _:
                return False

    @staticmethod
    def has_reach_weapon(character: AnyCombatant) -> bool:
        weapon = character.equipment.weapon
        return weapon is not None and weapon.is_reach

    def get_target_priority(self) -> list[TargetPriority]:
        """Living party members in the order enemies should pick them.

        The back row only becomes targetable once the front row is down.
        """
        targets: list[TargetPriority] = []
        for index, character in enumerate(self.front_row):
            if character.is_alive:
                targets.append(TargetPriority(character, 10 + (3 - index), FormationRow.FRONT, index))

        if not any(c.is_alive for c in self.front_row):
            for index, character in enumerate(self.back_row):
                if character.is_alive:
                    targets.append(TargetPriority(character, 5 + (3 - index), FormationRow.BACK, index))

        return sorted(targets, key=lambda t: t.priority, reverse=True)

    def apply_formation_effects(
        self,
        character: AnyCombatant,
        attack_type: AttackType = AttackType.MELEE,
    ) -> FormationEffects:
        """Modifiers for a combatant based on its row."""
        position = self.get_position(character)
        if position is None or position.row is FormationRow.FRONT:
            return FormationEffects()
        return FormationEffects(
            damage_bonus=-1 if attack_type is AttackType.MELEE else 0,
            accuracy_bonus=1 if attack_type is AttackType.RANGED else -1,
            damage_taken_multiplier=0.75,
            targeting_priority="low",
        )

    def validate_formation(self) -> FormationValidation:
        issues: list[str] = []

        if len(self.front_row) + len(self.back_row) == 0:
            issues.append("Formation cannot be empty")
        if len(self.front_row) > self.max_front_row:
            issues.append(f"Too many characters in front row (max {self.max_front_row})")
        if len(self.back_row) > self.max_back_row:
            issues.append(f"Too many characters in back row (max {self.max_back_row})")

        members = self.front_row + self.back_row
        if len({m.id for m in members}) != len(members):
            issues.append("Character cannot be in multiple positions")

        return FormationValidation(valid=not issues, issues=issues)

    def _row_stats(self, row: list[PlayerCombatant]) -> RowStats:
        return RowStats(
            count=len(row),
            classes=[m.character_class for m in row],
            total_hp=sum(m.current_hp for m in row),
            average_ac=sum(base_armor_class(m) for m in row) / len(row) if row else 0.0,
        )

    def calculate_balance(self) -> float:
        """0-100 score, 100 when the rows are evenly split."""
        total = len(self.front_row) + len(self.back_row)
        if total == 0:
            return 0.0
        deviation = abs(len(self.front_row) / total - 0.5)
        return max(0.0, 100 - deviation * 200)

    def get_formation_stats(self) -> FormationStats:
        total = len(self.front_row) + len(self.back_row)
        return FormationStats(
            front_row=self._row_stats(self.front_row),
            back_row=self._row_stats(self.back_row),
            total_members=total,
            front_row_ratio=len(self.front_row) / total if total else 0.0,
            balance_score=self.calculate_balance(),
        )

    def suggest_improvements(self) -> list[str]:
        suggestions: list[str] = []
        stats = self.get_formation_stats()

        if stats.front_row.count == 0:
            suggestions.append("Consider moving a fighter or tough character to the front row for protection")
        if stats.back_row.count == 0 and stats.total_members > 3:
            suggestions.append("Consider moving spellcasters to the back row for protection")
        if stats.balance_score < 50:
            suggestions.append("Formation is unbalanced - consider redistributing characters between rows")
        if any(m.character_class in SPELLCASTER_CLASSES for m in self.front_row):
            suggestions.append("Consider moving spellcasters to the back row for better protection")
        if sum(1 for m in self.back_row if m.character_class in HEAVY_FIGHTER_CLASSES) > 1:
            suggestions.append("Consider moving some fighters to the front row for better offense")

        return suggestions

    @staticmethod
    def front_row_priority(character: PlayerCombatant) -> float:
        priority = float(FRONT_ROW_PRIORITY.get(character.character_class, 5))
        priority += (character.current_hp / character.max_hp) * 2 if character.max_hp else 0
        priority += max(0, 15 - base_armor_class(character))
        return priority

    def optimize_formation(self) -> None:
        """Re-place current members, sturdiest front-liners first."""
        members = sorted(self.front_row + self.back_row, key=self.front_row_priority, reverse=True)
        self.front_row = []
        self.back_row = []
        self._place(members)
