"""Action resolver - applies submitted actions to combat state."""

import logging
from typing import Any

from ..db.models.enums import (
    ActionType,
    AttackType,
    CharacterClass,
    CombatantStatus,
    CombatEvent,
    ConditionType,
)
from .dice import Dice
from .formation import FormationEffects, Formation
from .interfaces import (
    ItemEffectHandler,
    NotificationBus,
    NullPersistenceSink,
    PersistenceSink,
    SpellEffectExecutor,
    TerminologyProvider,
)
from .logging import CombatLogger, LogEventType
from .spells import spell_success_chance
from .terminology import Terminology
from .types import (
    Action,
    ActionResult,
    AnyCombatant,
    AttackAction,
    CombatContext,
    Condition,
    DefendAction,
    DisconnectRecord,
    EscapeAction,
    Item,
    ItemAction,
    PlayerCombatant,
    Spell,
    SpellAction,
    attribute_modifier,
)

logger = logging.getLogger(__name__)

ESCAPE_CHANCE = 50
DEFEND_AC_BONUS = 2
CRITICAL_THRESHOLD = 20
CRITICAL_CONFIRM = 18
CRITICAL_MULTIPLIER = 2
INSTANT_KILL_CHANCE = 5

UNARMED_CLASS_BONUS: dict[CharacterClass, int] = {
    CharacterClass.FIGHTER: 2,
    CharacterClass.THIEF: 1,
    CharacterClass.SAMURAI: 3,
    CharacterClass.LORD: 2,
    CharacterClass.NINJA: 4,
    CharacterClass.MAGE: 0,
    CharacterClass.PRIEST: 0,
    CharacterClass.BISHOP: 1,
}


def unarmed_class_bonus(combatant: AnyCombatant) -> int:
    if isinstance(combatant, PlayerCombatant):
        return UNARMED_CLASS_BONUS.get(combatant.character_class, 0)
    return 0


def build_action(kind: str, actor: AnyCombatant, **payload: Any) -> Action:
    """Build an action from its type name.

    "flee" and "disconnect" are accepted as names for escape.
    """
    match kind:
        case "attack":
            return AttackAction(
                actor=actor,
                target=payload.get("target"),
                attack_type=payload.get("attack_type", AttackType.MELEE),
            )
        case "spell":
            return SpellAction(actor=actor, spell=payload.get("spell"), target=payload.get("target"))
        case "defend":
            return DefendAction(actor=actor)
        case "item":
            return ItemAction(actor=actor, item=payload.get("item"), target=payload.get("target"))
        case "escape" | "flee" | "disconnect":
            return EscapeAction(actor=actor)
        case _:
            raise ValueError(f"Unknown action type: {kind}")


class ActionResolver:
    """Resolves one action at a time against the shared combat context."""

    def __init__(
        self,
        dice: Dice,
        context: CombatContext,
        formation: Formation | None = None,
        persistence: PersistenceSink | None = None,
        bus: NotificationBus | None = None,
        spell_executor: SpellEffectExecutor | None = None,
        item_handler: ItemEffectHandler | None = None,
        terminology: TerminologyProvider | None = None,
        logger: CombatLogger | None = None,
    ) -> None:
        self.dice = dice
        self.context = context
        self.formation = formation or Formation()
        self.persistence = persistence or NullPersistenceSink()
        self.bus = bus
        self.spell_executor = spell_executor
        self.item_handler = item_handler
        self.terminology = terminology or Terminology()
        self.logger = logger or CombatLogger()

    # Validation

    def validate(self, action: Action) -> str | None:
        """Return the reason an action is illegal, or None when it may run.

        Validation never rolls dice or touches state.
        """
        actor = getattr(action, "actor", None)
        if actor is None:
            return "Action has no actor"
        if not actor.is_alive:
            return f"{actor.name} is unable to act"

        match action:
            case AttackAction(target=target, attack_type=attack_type):
                if target is None:
                    return "Attack has no target"
                if not target.is_alive:
                    return f"{target.name} is already down"
                if actor.is_player and self.formation.get_position(actor) is not None:
                    if not self.formation.can_attack_from_position(actor, target, attack_type):
                        return f"{actor.name} cannot make a {attack_type.value} attack from the back row"
            case SpellAction(spell=spell, target=target):
                if spell is None:
                    return "Spell action has no spell"
                if self.spell_executor is None:
                    return "Spell system is not available"
                if not isinstance(actor, PlayerCombatant) or not actor.knows_spell(spell):
                    return f"{actor.name} has not memorized {spell.name}"
            case ItemAction(item=item):
                if item is None:
                    return "Item action has no item"
            case EscapeAction() if not actor.is_player:
                return f"{actor.name} cannot escape"
            case DefendAction() | EscapeAction():
                pass
            case _:
                return "Invalid action type"
        return None

    async def resolve(self, action: Action) -> ActionResult:
        """Validate and execute an action."""
        reason = self.validate(action)
        if reason is not None:
            return ActionResult.rejected(reason)

        match action.type:
            case ActionType.ATTACK:
                return await self.attack(action.actor, action.target, action.attack_type)
            case ActionType.SPELL:
                return self.spell(action.actor, action.spell, action.target)
            case ActionType.DEFEND:
                return self.defend(action.actor)
            case ActionType.ITEM:
                return self.item(action.actor, action.item, action.target)
            case ActionType.ESCAPE:
                return await self.escape(action.actor)
            case _:
                return ActionResult.rejected("Invalid action type")

    # Attack

    def attack_bonus(self, combatant: AnyCombatant) -> int:
        """STR modifier + level + weapon bonus (or the unarmed substitute)."""
        bonus = attribute_modifier(combatant.attributes.strength) + combatant.level
        weapon = combatant.equipment.weapon
        if weapon is not None:
            bonus += weapon.attack_bonus
        else:
            bonus += (combatant.attributes.agility - 10) // 4 + unarmed_class_bonus(combatant) // 2
        return bonus

    def armor_class(self, combatant: AnyCombatant) -> int:
        """Lower is better. Consumes the defender's one-shot defend bonus."""
        ac = 10 - attribute_modifier(combatant.attributes.agility)
        if combatant.equipment.armor:
            ac -= combatant.equipment.armor.ac_bonus
        if combatant.equipment.shield:
            ac -= combatant.equipment.shield.ac_bonus
        ac -= combatant.magical_ac_bonus()
        if combatant.is_defending:
            ac -= DEFEND_AC_BONUS
            combatant.is_defending = False
        return ac

    def roll_damage(self, combatant: AnyCombatant) -> int:
        strength = attribute_modifier(combatant.attributes.strength)
        weapon = combatant.equipment.weapon
        if weapon is None:
            return max(1, 1 + strength + unarmed_class_bonus(combatant))
        return max(1, self.dice.die(6) + strength + weapon.damage_bonus)

    def check_critical(self, attack_roll: int) -> tuple[int, bool]:
        """Return (damage multiplier, instant kill) for a hit."""
        if attack_roll < CRITICAL_THRESHOLD:
            return 1, False
        confirm = self.dice.die(20)
        if confirm < CRITICAL_CONFIRM:
            return 1, False
        instant = confirm == 20 and self.dice.percent(INSTANT_KILL_CHANCE)
        return CRITICAL_MULTIPLIER, instant

    def _formation_effects(self, combatant: AnyCombatant, attack_type: AttackType) -> FormationEffects:
        if not combatant.is_player:
            return FormationEffects()
        return self.formation.apply_formation_effects(combatant, attack_type)

    async def attack(
        self,
        attacker: AnyCombatant,
        target: AnyCombatant | None,
        attack_type: AttackType = AttackType.MELEE,
    ) -> ActionResult:
        """Roll to hit, then apply critical or normal damage."""
        if target is None or not target.is_alive:
            self.logger.log(LogEventType.ATTACK, f"{attacker.name} swings wildly at nothing!", actor_id=attacker.id)
            return ActionResult.rejected(f"{attacker.name} attacks but target is invalid")

        weapon = attacker.equipment.weapon
        if weapon is None:
            self.logger.log(LogEventType.ATTACK, f"{attacker.name} throws a desperate punch!", actor_id=attacker.id)
        else:
            self.logger.log(
                LogEventType.ATTACK, f"{attacker.name} attacks with {weapon.name}!", actor_id=attacker.id
            )

        attacker_effects = self._formation_effects(attacker, attack_type)
        attack_roll = self.dice.die(20) + self.attack_bonus(attacker) + attacker_effects.accuracy_bonus
        target_ac = self.armor_class(target)
        self.logger.system(f"Attack roll: {attack_roll} vs AC {target_ac}")

        if attack_roll < target_ac:
            self.logger.log(
                LogEventType.MISS,
                f"{attacker.name} misses {target.name}!",
                actor_id=attacker.id,
                target_id=target.id,
            )
            return ActionResult(success=False, message=f"{attacker.name} misses {target.name}")

        multiplier, instant = self.check_critical(attack_roll)
        if instant:
            target.slay()
            self.logger.log(
                LogEventType.INSTANT_KILL,
                f"DEVASTATING BLOW! {target.name} is slain instantly!",
                actor_id=attacker.id,
                target_id=target.id,
            )
            await self._after_hp_change(target)
            return ActionResult(
                success=True,
                critical=True,
                instant=True,
                message=f"{attacker.name} delivers an INSTANT KILL!",
            )

        damage = self.roll_damage(attacker) + attacker_effects.damage_bonus
        if multiplier > 1:
            damage *= multiplier
            self.logger.log(
                LogEventType.CRITICAL,
                f"CRITICAL HIT! Damage multiplied by {multiplier}!",
                actor_id=attacker.id,
                target_id=target.id,
            )
        target_effects = self._formation_effects(target, attack_type)
        damage = max(1, int(damage * target_effects.damage_taken_multiplier))

        target.take_damage(damage)
        self.logger.log(
            LogEventType.HIT,
            f"{attacker.name} hits {target.name} for {damage} damage!",
            actor_id=attacker.id,
            target_id=target.id,
            value=damage,
        )
        self._log_downed(target)
        await self._after_hp_change(target)

        return ActionResult(
            success=True,
            damage=damage,
            critical=multiplier > 1,
            message=f"Hit for {damage} damage!",
        )

    def _log_downed(self, combatant: AnyCombatant) -> None:
        if combatant.is_alive:
            return
        if combatant.status is CombatantStatus.DEAD:
            self.logger.log(LogEventType.DEATH, f"{combatant.name} has been slain!", target_id=combatant.id)
        else:
            self.logger.log(LogEventType.UNCONSCIOUS, f"{combatant.name} falls unconscious!", target_id=combatant.id)

    # Spell, defend, item

    def spell(self, caster: AnyCombatant, spell: Spell, target: AnyCombatant | None) -> ActionResult:
        """Consume one memorized charge, then roll for the effect."""
        if self.spell_executor is None:
            return ActionResult.rejected("Spell system is not available")
        if not isinstance(caster, PlayerCombatant) or not caster.consume_spell(spell):
            return ActionResult.rejected(f"{caster.name} cannot cast {spell.name}")

        chance = spell_success_chance(caster, spell)
        if not self.dice.percent(chance):
            self.logger.log(
                LogEventType.SPELL_FAILED,
                f"{caster.name} fails to cast {spell.name}",
                actor_id=caster.id,
            )
            return ActionResult(success=False, message=f"{caster.name} fails to cast {spell.name}")

        effect = self.spell_executor.execute(spell, caster, target)
        self.logger.log(
            LogEventType.SPELL_CAST,
            f"{caster.name} casts {spell.name}: {effect.message}",
            actor_id=caster.id,
            target_id=target.id if target else None,
            value=effect.damage or effect.healing,
        )
        if target is not None:
            self._log_downed(target)
        return ActionResult(
            success=True,
            message=f"{caster.name} casts {spell.name}! {effect.message}",
            damage=effect.damage,
            spell_result=effect,
        )

    def defend(self, defender: AnyCombatant) -> ActionResult:
        defender.is_defending = True
        self.logger.log(LogEventType.DEFEND, f"{defender.name} takes a defensive stance", actor_id=defender.id)
        return ActionResult(success=True, message=f"{defender.name} defends (+{DEFEND_AC_BONUS} AC)")

    def item(self, user: AnyCombatant, item: Item, target: AnyCombatant | None = None) -> ActionResult:
        if self.item_handler is not None:
            message = self.item_handler.apply(user, item, target)
        else:
            message = f"{user.name} uses {item.name}"
        self.logger.log(LogEventType.ITEM, message, actor_id=user.id, target_id=target.id if target else None)
        return ActionResult(success=True, message=message)

    # Escape

    @staticmethod
    def escape_chance(character: AnyCombatant | None = None) -> int:
        """Fixed 50%. No attribute, formation or status modifies it."""
        return ESCAPE_CHANCE

    async def escape(self, character: AnyCombatant) -> ActionResult:
        """Try to leave the encounter. Never consumes the normal turn advance."""
        action_term = self.terminology.get_text("combat_disconnect", "Run")
        confused_term = self.terminology.get_text("character_status_confused", "Confused")

        if character.has_condition(ConditionType.CONFUSED):
            self.logger.log(
                LogEventType.ESCAPE_BLOCKED,
                f"{character.name} cannot {action_term.lower()} - they are too {confused_term.lower()}!",
                actor_id=character.id,
            )
            return ActionResult(
                success=False,
                blocked=True,
                message=f"{character.name} is too {confused_term.lower()} to escape!",
            )

        chance = self.escape_chance(character)
        self.logger.log(
            LogEventType.ESCAPE_ATTEMPT,
            f"{character.name} attempts to {action_term.lower()}! ({chance}%)",
            actor_id=character.id,
            value=chance,
        )
        if self.dice.percent(chance):
            return await self._escape_succeeded(character, confused_term)
        return await self._escape_failed(character)

    async def _escape_succeeded(self, character: AnyCombatant, confused_term: str) -> ActionResult:
        self.context.remove(character)
        self.formation.remove(character)

        if isinstance(character, PlayerCombatant):
            character.phase_out("combat_disconnect")
        character.status = CombatantStatus.CONFUSED
        character.add_condition(
            Condition(type=ConditionType.CONFUSED, name=confused_term, duration=-1, source="disconnect")
        )
        self.context.disconnected.append(DisconnectRecord(combatant=character, reason="successful_disconnect"))

        self.logger.log(
            LogEventType.ESCAPE_SUCCESS,
            f"{character.name} escapes from combat and is {confused_term.lower()} from the hasty retreat!",
            actor_id=character.id,
        )
        await self._persist(character)
        self._publish(CombatEvent.CHARACTER_DISCONNECTED, {"character": character, "reason": "successful_disconnect"})

        return ActionResult(
            success=True,
            escaped=True,
            message=f"{character.name} successfully escapes from combat!",
        )

    async def _escape_failed(self, character: AnyCombatant) -> ActionResult:
        self.logger.log(LogEventType.ESCAPE_FAILED, f"{character.name} fails to escape!", actor_id=character.id)

        opponents = self.context.living(character.side.opponent)
        if opponents:
            striker = self.dice.choice(opponents)
            self.logger.system(f"{striker.name} strikes at {character.name}!")
            attack_result = await self.attack(striker, character)
            return ActionResult(
                success=False,
                unconscious=not character.is_alive,
                message=f"{character.name} is struck down while trying to escape!",
                attack_result=attack_result,
            )

        character.knock_out()
        self.logger.log(
            LogEventType.UNCONSCIOUS,
            f"{character.name} is knocked unconscious!",
            target_id=character.id,
        )
        await self._after_hp_change(character)
        return ActionResult(
            success=False,
            unconscious=True,
            message=f"{character.name} is knocked unconscious trying to escape!",
        )

    # Side channels

    async def _after_hp_change(self, combatant: AnyCombatant) -> None:
        await self._persist(combatant)
        if combatant.is_player:
            self._publish(CombatEvent.CHARACTER_UPDATED, {"character": combatant})

    async def _persist(self, combatant: AnyCombatant) -> None:
        try:
            await self.persistence.persist(combatant)
        except Exception:
            logger.warning(f"Failed to persist {combatant.name} ({combatant.id})", exc_info=True)

    def _publish(self, event: CombatEvent, payload: dict[str, Any]) -> None:
        if self.bus is None:
            return
        try:
            self.bus.publish(event, payload)
        except Exception:
            logger.warning(f"Failed to publish {event.value}", exc_info=True)
