"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus for configuration-run events
- Handlers subscribed to a base class receive every subclass event, so
  subscribing to DomainEvent observes everything
- Handler failures are logged and do not stop delivery to other handlers
"""

import logging
from typing import Callable, Awaitable
from webfleet.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            for event_type in type(event).__mro__:
                for handler in self._handlers.get(event_type, []):
                    try:
                        await handler(event)
                    except Exception:
                        logger.exception(
                            "Event handler %r failed for %s",
                            handler,
                            event.event_type,
                        )

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)


async def log_event(event: DomainEvent) -> None:
    """Handler that mirrors every event into the log."""
    payload = event.to_dict()
    payload.pop("aggregate_id", None)
    payload.pop("occurred_at", None)
    payload.pop("event_type", None)
    details = ", ".join(f"{k}={v}" for k, v in payload.items())
    logger.info("[%s] %s %s", event.aggregate_id, event.event_type, details)
