"""Combat logging system for tracking encounter output.

Provides an append-only structured log of everything that happens in an
encounter:
- Combat and wave lifecycle
- Turn announcements
- Attack, spell, defend, item and escape resolution
- Knockouts, deaths and the final outcome
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..db.models.enums import CombatOutcome


class LogEventType(str, Enum):
    """Types of log events."""

    # Encounter lifecycle
    COMBAT_START = "combat_start"
    COMBAT_END = "combat_end"
    WAVE_START = "wave_start"
    WAVE_CLEARED = "wave_cleared"
    SURPRISE = "surprise"

    # Turns
    TURN = "turn"

    # Action resolution
    ATTACK = "attack"
    HIT = "hit"
    MISS = "miss"
    CRITICAL = "critical"
    INSTANT_KILL = "instant_kill"
    SPELL_CAST = "spell_cast"
    SPELL_FAILED = "spell_failed"
    DEFEND = "defend"
    ITEM = "item"
    ESCAPE_ATTEMPT = "escape_attempt"
    ESCAPE_BLOCKED = "escape_blocked"
    ESCAPE_SUCCESS = "escape_success"
    ESCAPE_FAILED = "escape_failed"

    # Combatant state
    UNCONSCIOUS = "unconscious"
    DEATH = "death"

    # Anything else worth showing
    SYSTEM = "system"


@dataclass
class LogEntry:
    """A single log entry representing a combat event."""

    event_type: LogEventType
    round_number: int
    message: str
    timestamp_order: int = 0  # Order within the encounter for deterministic sorting

    actor_id: str | None = None
    target_id: str | None = None
    value: int | None = None
    wave_number: int | None = None
    outcome: CombatOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "event_type": self.event_type.value,
            "round_number": self.round_number,
            "message": self.message,
            "timestamp_order": self.timestamp_order,
        }

        if self.actor_id is not None:
            result["actor_id"] = self.actor_id
        if self.target_id is not None:
            result["target_id"] = self.target_id
        if self.value is not None:
            result["value"] = self.value
        if self.wave_number is not None:
            result["wave_number"] = self.wave_number
        if self.outcome is not None:
            result["outcome"] = self.outcome.value

        return result


@dataclass
class CombatLog:
    """Complete log of one encounter."""

    entries: list[LogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [entry.to_dict() for entry in self.entries]}

    def get_entries_by_type(self, event_type: LogEventType) -> list[LogEntry]:
        """Get all entries of a specific type."""
        return [e for e in self.entries if e.event_type == event_type]

    def get_entries_for_round(self, round_number: int) -> list[LogEntry]:
        """Get all entries for a specific round."""
        return [e for e in self.entries if e.round_number == round_number]

    def messages(self) -> list[str]:
        return [e.message for e in self.entries]

    def format_readable(self) -> str:
        """Format the log in a human-readable format."""
        lines: list[str] = ["=== Combat Log ==="]

        current_round = -1
        for entry in self.entries:
            if entry.round_number != current_round:
                current_round = entry.round_number
                lines.append(f"\n--- Round {current_round} ---")
            lines.append(self._format_entry(entry))

        return "\n".join(lines)

    def _format_entry(self, entry: LogEntry) -> str:
        match entry.event_type:
            case LogEventType.WAVE_START | LogEventType.WAVE_CLEARED:
                return f"  ~~ {entry.message} ~~"
            case LogEventType.CRITICAL | LogEventType.INSTANT_KILL:
                return f"  !! {entry.message}"
            case LogEventType.DEATH | LogEventType.UNCONSCIOUS:
                return f"  xx {entry.message}"
            case LogEventType.COMBAT_END:
                outcome = entry.outcome.value.upper() if entry.outcome else "?"
                return f"  *** {entry.message} [{outcome}] ***"
            case LogEventType.SYSTEM:
                return f"    {entry.message}"
            case _:
                return f"  {entry.message}"


class CombatLogger:
    """Logger for tracking combat events.

    Usage:
        logger = CombatLogger()
        logger.log(LogEventType.ATTACK, "Alda attacks with Longsword!", actor_id="p1")
        logger.advance_round()

        log = logger.get_log()
        print(log.format_readable())
    """

    def __init__(self) -> None:
        self._log = CombatLog()
        self._order_counter = 0
        self.round_number = 0

    def _next_order(self) -> int:
        self._order_counter += 1
        return self._order_counter

    def get_log(self) -> CombatLog:
        """Get the complete combat log."""
        return self._log

    def log(
        self,
        event_type: LogEventType,
        message: str,
        *,
        actor_id: str | None = None,
        target_id: str | None = None,
        value: int | None = None,
        wave_number: int | None = None,
        outcome: CombatOutcome | None = None,
    ) -> LogEntry:
        """Append an entry stamped with the current round."""
        entry = LogEntry(
            event_type=event_type,
            round_number=self.round_number,
            message=message,
            timestamp_order=self._next_order(),
            actor_id=actor_id,
            target_id=target_id,
            value=value,
            wave_number=wave_number,
            outcome=outcome,
        )
        self._log.entries.append(entry)
        return entry

    def system(self, message: str) -> LogEntry:
        return self.log(LogEventType.SYSTEM, message)
