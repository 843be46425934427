"""Enums for combat models."""

from enum import Enum


class Side(str, Enum):
    """Which side of the encounter a combatant fights for."""

    PARTY = "party"
    ENEMIES = "enemies"

    @property
    def opponent(self) -> "Side":
        return Side.ENEMIES if self is Side.PARTY else Side.PARTY


class CombatantKind(str, Enum):
    """Tag fixed at creation time - players and monsters never change kind."""

    PLAYER = "player"
    MONSTER = "monster"


class CombatantStatus(str, Enum):
    """Overall condition of a combatant."""

    OK = "ok"
    UNCONSCIOUS = "unconscious"
    DEAD = "dead"
    CONFUSED = "confused"
    ASHES = "ashes"  # Failed resurrection from dead
    LOST = "lost"  # Failed resurrection from ashes - gone for good


class CharacterClass(str, Enum):
    """Player character classes."""

    FIGHTER = "Fighter"  # Melee front-liner
    THIEF = "Thief"  # Rogue
    NINJA = "Ninja"  # Stealth specialist
    MAGE = "Mage"  # Arcane caster
    PRIEST = "Priest"  # Divine caster
    LORD = "Lord"  # Paladin hybrid
    SAMURAI = "Samurai"  # Elite warrior
    BISHOP = "Bishop"  # Elite hybrid caster


class ActionType(str, Enum):
    """Kinds of action a combatant can submit on its turn."""

    ATTACK = "attack"
    SPELL = "spell"
    DEFEND = "defend"
    ITEM = "item"
    ESCAPE = "escape"  # Covers both "flee" and "disconnect"


class AttackType(str, Enum):
    """How an attack reaches its target - governs formation legality."""

    MELEE = "melee"
    RANGED = "ranged"
    REACH = "reach"
    SPELL = "spell"


class FormationRow(str, Enum):
    """Formation rows."""

    FRONT = "front"
    BACK = "back"


class CombatPhase(str, Enum):
    """Phases of the combat state machine."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    SURPRISE_ROUND = "surprise_round"
    ACTION_SELECTION = "action_selection"
    RESOLUTION = "resolution"
    WAVE_CLEARED = "wave_cleared"
    ENDED = "ended"


class CombatOutcome(str, Enum):
    """Terminal classification of an encounter."""

    VICTORY = "victory"
    PARTIAL_DEFEAT = "partial_defeat"  # Some escaped, no one left standing
    TOTAL_DEFEAT = "total_defeat"  # No one escaped, no one left standing
    UNUSUAL = "unusual"  # Living party members on a non-victory end


class SpellSchool(str, Enum):
    """Spell schools - each has its own memorized list."""

    ARCANE = "arcane"
    DIVINE = "divine"


class SpellEffectType(str, Enum):
    """Effect variant a spell dispatches to on a successful cast."""

    DAMAGE = "damage"
    HEAL = "heal"
    BUFF = "buff"
    PROTECTION = "protection"
    CONTROL = "control"
    UTILITY = "utility"
    DISPEL = "dispel"
    CONCEALMENT = "concealment"
    RESURRECTION = "resurrection"


class ConditionType(str, Enum):
    """Persistent conditions carried between encounters."""

    CONFUSED = "confused"


class TemporaryEffectType(str, Enum):
    """Magical effects applied by spells."""

    BUFF = "buff"
    AC_BONUS = "ac_bonus"
    CONTROL = "control"
    CONCEALMENT = "concealment"


class CombatEvent(str, Enum):
    """Events published on the notification bus."""

    COMBAT_STARTED = "combat-started"
    CHARACTER_UPDATED = "character-updated"
    CHARACTER_DISCONNECTED = "character-disconnected"
    COMBAT_ENDED = "combat-ended"
    PARTY_DEFEATED = "party-defeated"
