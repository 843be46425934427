"""Spell effects - the default SpellEffectExecutor."""

from ..db.models.enums import CombatantStatus, SpellEffectType, SpellSchool, TemporaryEffectType
from .dice import Dice
from .types import AnyCombatant, PlayerCombatant, Spell, SpellEffectResult, TemporaryEffect


def clamp_chance(chance: float) -> float:
    """Clamp a percentage to the 5-95 band used by every magic roll."""
    return min(95, max(5, chance))


def primary_attribute(combatant: AnyCombatant, school: SpellSchool) -> int:
    """Intelligence drives arcane magic, piety drives divine magic."""
    if school is SpellSchool.ARCANE:
        return combatant.attributes.intelligence
    return combatant.attributes.piety


def spell_success_chance(caster: AnyCombatant, spell: Spell) -> float:
    """85 + 5 per caster level above the spell + (primary attribute - 10)."""
    level_difference = caster.level - spell.level
    attribute_bonus = primary_attribute(caster, spell.school) - 10
    return clamp_chance(85 + level_difference * 5 + attribute_bonus)


def save_chance(target: AnyCombatant, spell: Spell) -> float:
    """Target's chance to shrug off a hostile spell."""
    attribute_bonus = primary_attribute(target, spell.school) - 10
    return clamp_chance(50 + target.level * 5 + attribute_bonus)


class SpellBook:
    """Executes the nine spell effect variants."""

    def __init__(self, dice: Dice) -> None:
        self.dice = dice

    def execute(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        match spell.effect:
            case SpellEffectType.DAMAGE:
                return self._damage(spell, caster, target)
            case SpellEffectType.HEAL:
                return self._heal(spell, caster, target)
            case SpellEffectType.BUFF:
                return self._buff(spell, caster, target)
            case SpellEffectType.PROTECTION:
                return self._protection(spell, caster, target)
            case SpellEffectType.CONTROL:
                return self._control(spell, caster, target)
            case SpellEffectType.UTILITY:
                return SpellEffectResult(message=f"{spell.name} takes effect")
            case SpellEffectType.DISPEL:
                return self._dispel(spell, caster, target)
            case SpellEffectType.CONCEALMENT:
                return self._concealment(spell, caster, target)
            case SpellEffectType.RESURRECTION:
                return self._resurrection(spell, caster, target)
            case _:
                return SpellEffectResult(message="Spell effect unknown")

    def _damage(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        if target is None:
            return SpellEffectResult(message="No target for damage spell")

        damage = self.dice.roll(spell.dice) if spell.dice else 0
        if spell.special == "level_bonus":
            damage += caster.level // 2

        if spell.special == "death":
            if target.current_hp <= caster.level * 4:
                target.slay()
                return SpellEffectResult(message=f"{target.name} is slain by death magic!", success=True)
            return SpellEffectResult(message=f"{target.name} resists the death spell", success=False)

        if spell.special == "near_death":
            if not self.dice.percent(save_chance(target, spell)):
                target.current_hp = min(target.current_hp, 1)
                return SpellEffectResult(message=f"{target.name} is reduced to near death!", success=True)
            damage //= 2

        actual = min(target.current_hp, max(0, damage))
        target.current_hp -= actual
        if target.current_hp <= 0:
            target.slay()

        return SpellEffectResult(message=f"{target.name} takes {actual} damage", damage=actual)

    def _heal(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        if target is None:
            return SpellEffectResult(message="No target for healing spell")

        if spell.special == "full_heal":
            healed = target.heal(target.max_hp)
            target.temporary_effects = [
                e
                for e in target.temporary_effects
                if e.type in (TemporaryEffectType.BUFF, TemporaryEffectType.AC_BONUS)
            ]
            if target.is_alive and target.status is not CombatantStatus.OK:
                target.status = CombatantStatus.OK
            return SpellEffectResult(message=f"{target.name} is fully healed and cleansed!", healing=healed)

        amount = self.dice.roll(spell.dice) if spell.dice else 0
        healed = target.heal(amount)
        return SpellEffectResult(message=f"{target.name} heals {healed} hit points", healing=healed)

    def _buff(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        recipient = caster if spell.area_effect or target is None else target
        recipient.add_temporary_effect(
            TemporaryEffect(
                type=TemporaryEffectType.BUFF,
                source=spell.name,
                bonus=spell.bonus,
                duration=spell.duration,
            )
        )
        return SpellEffectResult(message=f"{spell.name} grants a bonus to 1 target(s)", targets_affected=1)

    def _protection(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        recipient = target or caster
        recipient.add_temporary_effect(
            TemporaryEffect(
                type=TemporaryEffectType.AC_BONUS,
                source=spell.name,
                bonus=spell.ac_bonus,
                duration=spell.duration,
            )
        )
        return SpellEffectResult(message=f"{recipient.name} gains magical protection", targets_affected=1)

    def _control(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        if target is None:
            return SpellEffectResult(message="No target for control spell")

        if self.dice.percent(save_chance(target, spell)):
            return SpellEffectResult(message=f"{target.name} resists the spell", success=False)

        target.add_temporary_effect(
            TemporaryEffect(
                type=TemporaryEffectType.CONTROL,
                source=spell.name,
                effect=spell.name.lower().replace(" ", "_"),
                duration=spell.duration,
            )
        )
        return SpellEffectResult(message=f"{target.name} is affected by {spell.name}", success=True)

    def _dispel(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        if target is None:
            return SpellEffectResult(message="No target for dispel spell")
        if not target.temporary_effects:
            return SpellEffectResult(message="No magical effects to dispel", effects_removed=0)

        removed = len(target.temporary_effects)
        target.temporary_effects = []
        return SpellEffectResult(
            message=f"{removed} magical effect(s) dispelled from {target.name}",
            effects_removed=removed,
        )

    def _concealment(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        recipient = caster if spell.area_effect or target is None else target
        recipient.add_temporary_effect(
            TemporaryEffect(
                type=TemporaryEffectType.CONCEALMENT,
                source=spell.name,
                effect="invisible",
                duration=spell.duration,
            )
        )
        return SpellEffectResult(message="1 target(s) become invisible", targets_affected=1)

    def _resurrection(self, spell: Spell, caster: AnyCombatant, target: AnyCombatant | None) -> SpellEffectResult:
        if target is None:
            return SpellEffectResult(message="No target for resurrection spell")
        if target.is_alive:
            return SpellEffectResult(message="Target is already alive", success=False)
        if target.status is CombatantStatus.LOST:
            return SpellEffectResult(message="Target is lost forever and cannot be resurrected", success=False)

        base_chance = 95 if spell.special == "perfect" else 75
        level_penalty = max(0, (target.level - caster.level) * 5)
        vitality_bonus = target.attributes.vitality - 10
        chance = clamp_chance(base_chance - level_penalty + vitality_bonus)

        if self.dice.percent(chance):
            target.is_alive = True
            target.status = CombatantStatus.OK
            target.current_hp = 1
            age_increase = 0
            if spell.special != "perfect":
                age_increase = self.dice.integer(1, 3)
                if isinstance(target, PlayerCombatant):
                    target.age += age_increase
            return SpellEffectResult(
                message=f"{target.name} is restored to life!",
                success=True,
                age_increase=age_increase,
            )

        if target.status is CombatantStatus.DEAD:
            target.status = CombatantStatus.ASHES
            return SpellEffectResult(message=f"Resurrection failed! {target.name} crumbles to ashes!", success=False)
        if target.status is CombatantStatus.ASHES:
            target.status = CombatantStatus.LOST
            return SpellEffectResult(message=f"Resurrection failed! {target.name} is lost forever!", success=False)
        return SpellEffectResult(message="Resurrection failed", success=False)
