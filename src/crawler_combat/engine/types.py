"""Type definitions for the combat engine."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar

from ..db.models.enums import (
    ActionType,
    AttackType,
    CharacterClass,
    CombatantKind,
    CombatantStatus,
    CombatOutcome,
    ConditionType,
    Side,
    SpellEffectType,
    SpellSchool,
    TemporaryEffectType,
)

if TYPE_CHECKING:
    from .logging import CombatLog

# Weapons that let a back-row character melee over the front row
REACH_WEAPON_NAMES: frozenset[str] = frozenset({"Spear", "Halberd", "Pike", "Poleaxe"})


def attribute_modifier(score: int) -> int:
    """Standard (score - 10) / 2 modifier, rounded down."""
    return (score - 10) // 2


@dataclass
class Attributes:
    """The six core attributes."""

    strength: int = 10
    intelligence: int = 10
    piety: int = 10
    vitality: int = 10
    agility: int = 10
    luck: int = 10


@dataclass
class Weapon:
    """An equipped weapon."""

    name: str
    attack_bonus: int = 0
    damage_bonus: int = 0
    reach: bool = False

    @property
    def is_reach(self) -> bool:
        return self.reach or self.name in REACH_WEAPON_NAMES


@dataclass
class ArmorPiece:
    """Body armor or shield."""

    name: str
    ac_bonus: int = 0


@dataclass
class Equipment:
    """Equipment references relevant to combat."""

    weapon: Weapon | None = None
    armor: ArmorPiece | None = None
    shield: ArmorPiece | None = None


@dataclass
class Condition:
    """A persistent condition. duration -1 means until treated."""

    type: ConditionType
    name: str
    duration: int = -1
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "name": self.name, "duration": self.duration, "source": self.source}


@dataclass
class TemporaryEffect:
    """A magical effect applied by a spell."""

    type: TemporaryEffectType
    source: str
    bonus: int = 0
    duration: int | None = None
    effect: str | None = None


@dataclass
class DiceSpec:
    """NdS+B dice expression."""

    count: int
    sides: int
    bonus: int = 0


@dataclass
class Spell:
    """A spell definition. A memorized copy is one single-use charge."""

    name: str
    level: int
    school: SpellSchool
    effect: SpellEffectType
    dice: DiceSpec | None = None
    special: str | None = None  # death, near_death, full_heal, perfect, level_bonus
    bonus: int = 1
    ac_bonus: int = 2
    duration: int | None = None
    area_effect: bool = False


@dataclass
class Item:
    """A usable item. Its effect lives outside the combat core."""

    name: str
    kind: str = "consumable"


@dataclass(eq=False)
class Combatant:
    """State shared by every combatant.

    Records are owned by the party/roster for their whole lifetime. Combat
    only mutates hp, status, conditions and temporary effects.
    """

    kind: ClassVar[CombatantKind]
    side: ClassVar[Side]

    id: str
    name: str
    max_hp: int
    current_hp: int | None = None
    level: int = 1
    attributes: Attributes = field(default_factory=Attributes)
    equipment: Equipment = field(default_factory=Equipment)
    is_alive: bool = True
    status: CombatantStatus = CombatantStatus.OK
    conditions: list[Condition] = field(default_factory=list)
    temporary_effects: list[TemporaryEffect] = field(default_factory=list)

    # One-shot +2 AC, consumed by the next armor class computation
    is_defending: bool = False

    def __post_init__(self) -> None:
        if self.current_hp is None:
            self.current_hp = self.max_hp

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_player(self) -> bool:
        return self.kind is CombatantKind.PLAYER

    def has_condition(self, condition_type: ConditionType) -> bool:
        return any(c.type == condition_type for c in self.conditions)

    def add_condition(self, condition: Condition) -> None:
        self.conditions.append(condition)

    def add_temporary_effect(self, effect: TemporaryEffect) -> None:
        self.temporary_effects.append(effect)

    def magical_ac_bonus(self) -> int:
        """Sum of active protection-spell bonuses."""
        return sum(e.bonus for e in self.temporary_effects if e.type == TemporaryEffectType.AC_BONUS)

    def take_damage(self, amount: int) -> int:
        """Apply damage, clamping hp at 0. Returns hp actually removed.

        Overkill to -10 or beyond kills outright; anything else that reaches
        0 only knocks the combatant unconscious.
        """
        before = self.current_hp
        raw = before - amount
        self.current_hp = max(0, raw)
        if raw <= -10:
            self.is_alive = False
            self.status = CombatantStatus.DEAD
        elif raw <= 0:
            self.is_alive = False
            self.status = CombatantStatus.UNCONSCIOUS
        return before - self.current_hp

    def heal(self, amount: int) -> int:
        """Restore hp up to max. Returns hp actually restored."""
        before = self.current_hp
        self.current_hp = min(self.max_hp, self.current_hp + amount)
        return self.current_hp - before

    def slay(self) -> None:
        """Instant death - hp forced to 0."""
        self.current_hp = 0
        self.is_alive = False
        self.status = CombatantStatus.DEAD

    def knock_out(self) -> None:
        """Force hp to 0 and leave the combatant unconscious."""
        self.current_hp = 0
        self.is_alive = False
        self.status = CombatantStatus.UNCONSCIOUS


@dataclass(eq=False)
class PlayerCombatant(Combatant):
    """A party member."""

    kind: ClassVar[CombatantKind] = CombatantKind.PLAYER
    side: ClassVar[Side] = Side.PARTY

    character_class: CharacterClass = CharacterClass.FIGHTER
    memorized_spells: dict[SpellSchool, list[Spell]] = field(default_factory=dict)
    age: int = 20

    # Roster bookkeeping - hidden from active rosters but still a member
    is_phased_out: bool = False
    phase_out_reason: str | None = None
    phase_out_at: datetime | None = None

    def phase_out(self, reason: str) -> None:
        self.is_phased_out = True
        self.phase_out_reason = reason
        self.phase_out_at = datetime.now()

    def knows_spell(self, spell: Spell) -> bool:
        return any(s.name == spell.name for s in self.memorized_spells.get(spell.school, []))

    def consume_spell(self, spell: Spell) -> bool:
        """Remove one memorized charge of the spell. Returns False if none left."""
        spells = self.memorized_spells.get(spell.school, [])
        for index, memorized in enumerate(spells):
            if memorized.name == spell.name:
                del spells[index]
                return True
        return False


@dataclass(eq=False)
class MonsterCombatant(Combatant):
    """An enemy in a wave."""

    kind: ClassVar[CombatantKind] = CombatantKind.MONSTER
    side: ClassVar[Side] = Side.ENEMIES

    experience_value: int = 10


AnyCombatant = PlayerCombatant | MonsterCombatant


@dataclass
class TurnEntry:
    """One slot in the turn order. Rebuilt at the start of every wave."""

    combatant: AnyCombatant
    initiative: int
    side: Side

    @property
    def is_player(self) -> bool:
        return self.side is Side.PARTY


@dataclass(frozen=True)
class Wave:
    """One enemy group. The roster is fixed once combat starts."""

    index: int
    enemies: tuple[MonsterCombatant, ...]

    def living_enemies(self) -> list[MonsterCombatant]:
        return [e for e in self.enemies if e.is_alive]


# Actions


@dataclass
class AttackAction:
    actor: AnyCombatant
    target: AnyCombatant | None
    attack_type: AttackType = AttackType.MELEE

    type: ClassVar[ActionType] = ActionType.ATTACK


@dataclass
class SpellAction:
    actor: AnyCombatant
    spell: Spell | None
    target: AnyCombatant | None = None

    type: ClassVar[ActionType] = ActionType.SPELL


@dataclass
class DefendAction:
    actor: AnyCombatant

    type: ClassVar[ActionType] = ActionType.DEFEND


@dataclass
class ItemAction:
    actor: AnyCombatant
    item: Item | None
    target: AnyCombatant | None = None

    type: ClassVar[ActionType] = ActionType.ITEM


@dataclass
class EscapeAction:
    actor: AnyCombatant

    type: ClassVar[ActionType] = ActionType.ESCAPE


Action = AttackAction | SpellAction | DefendAction | ItemAction | EscapeAction


# Results


@dataclass
class SpellEffectResult:
    """Outcome of one spell effect variant."""

    message: str
    damage: int | None = None
    healing: int | None = None
    success: bool | None = None
    age_increase: int | None = None
    targets_affected: int | None = None
    effects_removed: int | None = None


@dataclass
class ActionResult:
    """Result of resolving (or rejecting) one action."""

    success: bool
    message: str = ""
    reason: str | None = None  # Set when the action was rejected by validation
    invalid: bool = False
    damage: int | None = None
    critical: bool = False
    instant: bool = False
    blocked: bool = False
    escaped: bool = False
    unconscious: bool = False
    attack_result: "ActionResult | None" = None
    spell_result: SpellEffectResult | None = None

    @classmethod
    def rejected(cls, reason: str) -> "ActionResult":
        return cls(success=False, message=reason, reason=reason, invalid=True)


@dataclass
class DisconnectRecord:
    """A combatant that escaped the encounter."""

    combatant: PlayerCombatant | MonsterCombatant
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class LootDrop:
    """A single reward item."""

    name: str
    kind: str
    value: int = 0
    level: int = 1


@dataclass
class CombatRewards:
    """Aggregate rewards for the whole encounter."""

    experience: int = 0
    gold: int = 0
    loot: list[LootDrop] = field(default_factory=list)


@dataclass
class CombatSummary:
    """Terminal result of an encounter."""

    outcome: CombatOutcome
    rewards: CombatRewards
    casualties: list[AnyCombatant]
    disconnected: list[DisconnectRecord]
    rounds: int
    waves_cleared: int
    combat_log: "CombatLog | None" = None

    @property
    def victory(self) -> bool:
        return self.outcome is CombatOutcome.VICTORY

    @property
    def winner(self) -> Side:
        return Side.PARTY if self.victory else Side.ENEMIES


@dataclass
class ProcessResult:
    """What process_action hands back to the caller."""

    result: ActionResult
    next_actor: TurnEntry | None = None
    combat_ended: bool = False
    winner: Side | None = None
    wave_advanced: bool = False
    summary: CombatSummary | None = None


@dataclass
class CombatContext:
    """Mutable roster state shared by the session and the action resolver."""

    combatants: list[AnyCombatant] = field(default_factory=list)
    turn_order: list[TurnEntry] = field(default_factory=list)
    disconnected: list[DisconnectRecord] = field(default_factory=list)
    round_number: int = 0

    def living(self, side: Side) -> list[AnyCombatant]:
        return [c for c in self.combatants if c.side is side and c.is_alive]

    def contains(self, combatant: AnyCombatant) -> bool:
        return any(c.id == combatant.id for c in self.combatants)

    def remove(self, combatant: AnyCombatant) -> None:
        """Drop a combatant from the active roster and the turn order."""
        self.combatants = [c for c in self.combatants if c.id != combatant.id]
        self.turn_order = [e for e in self.turn_order if e.combatant.id != combatant.id]
