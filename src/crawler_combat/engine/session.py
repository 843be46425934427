"""Combat session - the state machine an external caller drives.

A session runs one encounter: a party against an ordered list of enemy
waves. The caller asks for the current actor, submits an action for it and
gets back either the next actor or the terminal outcome.
"""

import logging
from collections.abc import Sequence
from typing import Any, Literal

from ..db.models.enums import ActionType, CombatEvent, CombatOutcome, CombatPhase, Side
from .actions import ActionResolver
from .dice import Dice
from .errors import CombatStateError
from .formation import Formation
from .initiative import InitiativeEngine
from .interfaces import (
    ItemEffectHandler,
    LootGenerator,
    NotificationBus,
    PartyProvider,
    PersistenceSink,
    SpellEffectExecutor,
    TerminologyProvider,
)
from .logging import CombatLog, CombatLogger, LogEventType
from .types import (
    Action,
    ActionResult,
    AnyCombatant,
    AttackAction,
    CombatContext,
    CombatRewards,
    CombatSummary,
    DefendAction,
    DisconnectRecord,
    EscapeAction,
    ItemAction,
    MonsterCombatant,
    PlayerCombatant,
    ProcessResult,
    SpellAction,
    TurnEntry,
)
from .waves import WaveManager

logger = logging.getLogger(__name__)

ACTION_TYPES = (AttackAction, SpellAction, DefendAction, ItemAction, EscapeAction)

SurpriseOverride = Side | Literal[False] | None
EnemyWaves = Sequence[Sequence[MonsterCombatant] | MonsterCombatant]


class CombatSession:
    """Top-level combat state machine.

    Idle -> Initializing -> (SurpriseRound) -> ActionSelection <-> Resolution
    -> WaveCleared -> ActionSelection (next wave) or Ended -> Idle.
    """

    def __init__(
        self,
        dice: Dice | None = None,
        formation: Formation | None = None,
        persistence: PersistenceSink | None = None,
        bus: NotificationBus | None = None,
        loot_generator: LootGenerator | None = None,
        spell_executor: SpellEffectExecutor | None = None,
        item_handler: ItemEffectHandler | None = None,
        terminology: TerminologyProvider | None = None,
        default_experience_value: int = 10,
    ) -> None:
        self.dice = dice or Dice()
        self.initiative = InitiativeEngine(self.dice)
        self.formation = formation or Formation()
        self.persistence = persistence
        self.bus = bus
        self.loot_generator = loot_generator
        self.spell_executor = spell_executor
        self.item_handler = item_handler
        self.terminology = terminology
        self.default_experience_value = default_experience_value

        self.phase = CombatPhase.IDLE
        self.is_active = False
        self.context = CombatContext()
        self.turn_index = 0
        self.surprise_side: Side | None = None
        self.surprise_index = 0
        self.waves: WaveManager | None = None
        self.logger = CombatLogger()
        self.resolver = self._build_resolver()

        self.last_summary: CombatSummary | None = None
        self.last_rewards: CombatRewards | None = None

    def _build_resolver(self) -> ActionResolver:
        return ActionResolver(
            dice=self.dice,
            context=self.context,
            formation=self.formation,
            persistence=self.persistence,
            bus=self.bus,
            spell_executor=self.spell_executor,
            item_handler=self.item_handler,
            terminology=self.terminology,
            logger=self.logger,
        )

    @property
    def round_number(self) -> int:
        return self.context.round_number

    @property
    def turn_order(self) -> list[TurnEntry]:
        return self.context.turn_order

    @property
    def combatants(self) -> list[AnyCombatant]:
        return self.context.combatants

    # Lifecycle

    async def start(
        self,
        party: PartyProvider | Sequence[PlayerCombatant],
        enemy_waves: EnemyWaves,
        surprise_override: SurpriseOverride = None,
    ) -> TurnEntry | None:
        """Begin an encounter and return the first actor.

        surprise_override: a Side forces that side to surprise, False
        disables surprise, None rolls for it.
        """
        if self.is_active:
            raise CombatStateError("Combat is already in progress")

        members = self._living_members(party)
        if not members:
            raise CombatStateError("Cannot start combat without a living party member")
        if not enemy_waves:
            raise CombatStateError("Cannot start combat without enemies")

        self.phase = CombatPhase.INITIALIZING
        self.is_active = True
        self.logger = CombatLogger()
        self.context = CombatContext(round_number=1)
        self.resolver = self._build_resolver()
        self.logger.round_number = 1
        self.turn_index = 0
        self.surprise_index = 0
        self.last_summary = None

        self.formation.setup_from_party(members)
        self.waves = WaveManager(
            enemy_waves,
            dice=self.dice,
            loot_generator=self.loot_generator,
            default_experience_value=self.default_experience_value,
        )
        wave = self.waves.current_wave
        self.context.combatants = [*members, *wave.enemies]

        self.logger.log(
            LogEventType.COMBAT_START,
            f"Combat begins! {len(members)} heroes face {self.waves.total_waves} wave(s) of enemies",
            wave_number=1,
        )

        if surprise_override is None:
            self.surprise_side = self.initiative.check_surprise(members, wave.enemies)
        else:
            self.surprise_side = surprise_override or None

        self.context.turn_order = self.initiative.compute_turn_order(self.context.combatants)

        if self.surprise_side is not None:
            self.phase = CombatPhase.SURPRISE_ROUND
            who = "The party" if self.surprise_side is Side.PARTY else "The enemies"
            self.logger.log(LogEventType.SURPRISE, f"{who} gain a surprise round!")
        else:
            self.phase = CombatPhase.ACTION_SELECTION

        self._publish(
            CombatEvent.COMBAT_STARTED,
            {
                "party": members,
                "enemies": list(wave.enemies),
                "wave": 1,
                "total_waves": self.waves.total_waves,
                "surprise": self.surprise_side,
            },
        )
        return self.get_current_actor()

    @staticmethod
    def _living_members(party: PartyProvider | Sequence[PlayerCombatant]) -> list[PlayerCombatant]:
        if isinstance(party, PartyProvider):
            return list(party.alive_members)
        return [m for m in party if m.is_alive and not m.is_phased_out]

    # Turn order

    def get_current_actor(self) -> TurnEntry | None:
        """Whose turn it is. Repeated calls without an action return the same entry."""
        if not self.is_active or not self.turn_order:
            return None

        if self.surprise_side is not None:
            favored = [e for e in self.turn_order if e.side is self.surprise_side]
            while self.surprise_index < len(favored):
                entry = favored[self.surprise_index]
                if entry.combatant.is_alive:
                    return entry
                self.surprise_index += 1
            # Surprise round over, normal rotation starts from the top of a new round
            self.surprise_side = None
            self.surprise_index = 0
            self.turn_index = 0
            self._next_round()
            if self.phase is CombatPhase.SURPRISE_ROUND:
                self.phase = CombatPhase.ACTION_SELECTION

        for _ in range(len(self.turn_order)):
            if self.turn_index >= len(self.turn_order):
                self.turn_index = 0
                self._next_round()
            entry = self.turn_order[self.turn_index]
            if entry.combatant.is_alive:
                return entry
            self.turn_index += 1

        return None

    def _next_round(self) -> None:
        self.context.round_number += 1
        self.logger.round_number = self.context.round_number

    def _advance_turn(self) -> None:
        if self.surprise_side is not None:
            self.surprise_index += 1
        else:
            self.turn_index += 1

    def _turn_position(self, combatant: AnyCombatant) -> int | None:
        for index, entry in enumerate(self.turn_order):
            if entry.combatant.id == combatant.id:
                return index
        return None

    # Actions

    async def process_action(self, action: Action) -> ProcessResult:
        """Resolve one action and move the encounter forward."""
        if not self.is_active:
            return ProcessResult(result=ActionResult.rejected("Combat is not active"))
        if not isinstance(action, ACTION_TYPES):
            return ProcessResult(result=ActionResult.rejected("Invalid action type"))

        reason = self.resolver.validate(action) or self._roster_violation(action)
        if reason is not None:
            return ProcessResult(result=ActionResult.rejected(reason), next_actor=self.get_current_actor())

        position = self._turn_position(action.actor)
        self.phase = CombatPhase.RESOLUTION
        result = await self.resolver.resolve(action)

        if action.type is ActionType.ESCAPE:
            # An escapee ahead of the pointer shifts everyone after it down one
            if result.escaped and position is not None and position < self.turn_index:
                self.turn_index -= 1
        else:
            self._advance_turn()

        return await self._after_action(result)

    def _roster_violation(self, action: Action) -> str | None:
        """Reject actors and targets outside the active roster, and out-of-turn surprise actors."""
        if not self.context.contains(action.actor):
            return f"{action.actor.name} is not part of this combat"

        target = getattr(action, "target", None)
        if target is not None and not self.context.contains(target):
            return f"{target.name} is not part of this combat"

        current = self.get_current_actor()
        if self.surprise_side is not None and current is not None and current.combatant.id != action.actor.id:
            return f"Only {current.combatant.name} may act now in the surprise round"
        return None

    async def _after_action(self, result: ActionResult) -> ProcessResult:
        if not self.context.living(Side.PARTY):
            summary = await self.end_combat()
            return self._ended(result, summary)

        if self.waves.is_current_wave_defeated():
            self.phase = CombatPhase.WAVE_CLEARED
            self.logger.log(
                LogEventType.WAVE_CLEARED,
                f"Wave {self.waves.wave_number} of {self.waves.total_waves} cleared!",
                wave_number=self.waves.wave_number,
            )
            if await self.advance_wave():
                return ProcessResult(result=result, next_actor=self.get_current_actor(), wave_advanced=True)
            return self._ended(result, self.last_summary)

        self.phase = CombatPhase.SURPRISE_ROUND if self.surprise_side else CombatPhase.ACTION_SELECTION
        next_actor = self.get_current_actor()
        if next_actor is None:
            summary = await self.end_combat()
            return self._ended(result, summary)
        return ProcessResult(result=result, next_actor=next_actor)

    @staticmethod
    def _ended(result: ActionResult, summary: CombatSummary | None) -> ProcessResult:
        return ProcessResult(
            result=result,
            combat_ended=True,
            winner=summary.winner if summary else None,
            summary=summary,
        )

    async def next_turn(self) -> TurnEntry | None:
        """Announce the current actor. Ends combat when nobody can act."""
        if not self.is_active:
            return None
        entry = self.get_current_actor()
        if entry is None:
            await self.end_combat()
            return None
        self.logger.log(
            LogEventType.TURN,
            f"{entry.combatant.name}'s turn (initiative {entry.initiative})",
            actor_id=entry.combatant.id,
        )
        return entry

    # Waves

    async def advance_wave(self) -> bool:
        """Bring in the next wave. Returns False when the encounter ended instead."""
        if not self.is_active:
            raise CombatStateError("No combat in progress")

        wave = self.waves.advance()
        if wave is None:
            self.logger.log(LogEventType.SYSTEM, "All enemy waves defeated!")
            await self.end_combat()
            return False

        survivors = self.context.living(Side.PARTY)
        self.context.combatants = [*survivors, *wave.enemies]
        self.context.turn_order = self.initiative.compute_turn_order(self.context.combatants)
        self.turn_index = 0
        self.surprise_side = None
        self.surprise_index = 0
        self.phase = CombatPhase.ACTION_SELECTION

        names = ", ".join(e.name for e in wave.enemies)
        self.logger.log(
            LogEventType.WAVE_START,
            f"Wave {self.waves.wave_number} of {self.waves.total_waves} begins! New enemies: {names}",
            wave_number=self.waves.wave_number,
        )
        return True

    def get_wave_info(self) -> dict[str, Any]:
        if self.waves is None:
            return {"current_wave": 0, "total_waves": 0, "enemies": []}
        wave = self.waves.current_wave
        return {
            "current_wave": self.waves.wave_number,
            "total_waves": self.waves.total_waves,
            "enemies": list(wave.enemies) if wave else [],
        }

    # Ending

    def classify_outcome(self) -> CombatOutcome:
        party_standing = bool(self.context.living(Side.PARTY))
        enemies_standing = bool(self.context.living(Side.ENEMIES))
        escaped = bool(self.context.disconnected)

        if not enemies_standing:
            return CombatOutcome.VICTORY
        if not party_standing and escaped:
            return CombatOutcome.PARTIAL_DEFEAT
        if not party_standing:
            return CombatOutcome.TOTAL_DEFEAT
        return CombatOutcome.UNUSUAL

    async def end_combat(self) -> CombatSummary:
        """Compute rewards, classify the outcome, notify and go back to Idle."""
        if not self.is_active:
            raise CombatStateError("No combat in progress")

        self.phase = CombatPhase.ENDED
        rewards = await self.waves.calculate_rewards()
        outcome = self.classify_outcome()
        casualties = [c for c in self.context.combatants if c.is_player and not c.is_alive]
        disconnected = list(self.context.disconnected)

        message = {
            CombatOutcome.VICTORY: "The party stands victorious!",
            CombatOutcome.PARTIAL_DEFEAT: "The battle is lost, but some escaped...",
            CombatOutcome.TOTAL_DEFEAT: "The party has been utterly defeated!",
            CombatOutcome.UNUSUAL: "Combat ends in an unusual state...",
        }[outcome]
        self.logger.log(LogEventType.COMBAT_END, message, outcome=outcome)

        summary = CombatSummary(
            outcome=outcome,
            rewards=rewards,
            casualties=casualties,
            disconnected=disconnected,
            rounds=self.context.round_number,
            waves_cleared=sum(1 for w in self.waves.waves if not w.living_enemies()),
            combat_log=self.logger.get_log(),
        )
        self.last_summary = summary
        self.last_rewards = rewards
        logger.info(
            f"Combat ended: {outcome.value}, {len(casualties)} casualties, "
            f"{len(disconnected)} disconnected, {rewards.experience} xp"
        )

        self.is_active = False
        self.context.combatants = []
        self.context.turn_order = []
        self.surprise_side = None
        self.phase = CombatPhase.IDLE

        self._publish_outcome(summary)
        return summary

    def _publish_outcome(self, summary: CombatSummary) -> None:
        payload: dict[str, Any] = {
            "victory": summary.victory,
            "outcome": summary.outcome,
            "casualties": summary.casualties,
            "disconnected_characters": summary.disconnected,
        }
        if summary.victory:
            payload["rewards"] = summary.rewards
            self._publish(CombatEvent.COMBAT_ENDED, payload)
        else:
            payload["total_defeat"] = summary.outcome is CombatOutcome.TOTAL_DEFEAT
            self._publish(CombatEvent.PARTY_DEFEATED, payload)

    def _publish(self, event: CombatEvent, payload: dict[str, Any]) -> None:
        if self.bus is None:
            return
        try:
            self.bus.publish(event, payload)
        except Exception:
            logger.warning(f"Failed to publish {event.value}", exc_info=True)

    # Queries

    def get_combat_log(self) -> CombatLog:
        return self.logger.get_log()

    def get_disconnected_characters(self) -> list[DisconnectRecord]:
        return list(self.context.disconnected)

    def get_last_combat_rewards(self) -> CombatRewards | None:
        return self.last_rewards
