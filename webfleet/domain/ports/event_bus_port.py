"""
Event Bus Port

Architectural Intent:
- What a use case needs to hand recorded domain events to their observers
- ConfigureFleet publishes the events of a ConfigurationRun once it ends
"""

from typing import Awaitable, Callable, Protocol, Sequence, runtime_checkable

from webfleet.domain.events.event_base import DomainEvent

EventHandler = Callable[[DomainEvent], Awaitable[None]]


@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, events: Sequence[DomainEvent]) -> None:
        """Deliver events in order; a failing handler must not stop delivery."""
        ...

    def subscribe(self, event_type: type, handler: EventHandler) -> None: ...
