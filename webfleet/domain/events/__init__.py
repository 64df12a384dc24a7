"""
Domain Events Package

Architectural Intent:
- Base event type shared by every aggregate
- Concrete events live next to the aggregate that records them
"""

from webfleet.domain.events.event_base import DomainEvent

__all__ = ["DomainEvent"]
