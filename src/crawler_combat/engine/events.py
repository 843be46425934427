"""In-process notification bus."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

from ..db.models.enums import CombatEvent
from .interfaces import EventHandler

logger = logging.getLogger(__name__)


@dataclass
class PublishedEvent:
    """An event as it went out on the bus."""

    event: CombatEvent
    payload: dict[str, Any]


class EventBus:
    """Synchronous publish/subscribe bus with a history of published events.

    A failing subscriber is logged and skipped; it never interrupts combat or
    the other subscribers.
    """

    def __init__(self) -> None:
        self._handlers: dict[CombatEvent, list[EventHandler]] = defaultdict(list)
        self.history: list[PublishedEvent] = []

    def subscribe(self, event: CombatEvent, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: CombatEvent, handler: EventHandler) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def publish(self, event: CombatEvent, payload: dict[str, Any]) -> None:
        self.history.append(PublishedEvent(event=event, payload=payload))
        for handler in list(self._handlers[event]):
            try:
                handler(event, payload)
            except Exception:
                logger.exception(f"Subscriber failed while handling {event.value}")

    def events_of(self, event: CombatEvent) -> list[PublishedEvent]:
        return [e for e in self.history if e.event == event]
