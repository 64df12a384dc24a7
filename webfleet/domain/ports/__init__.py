"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from webfleet.domain.ports.cloud_provider_port import CloudProviderPort
from webfleet.domain.ports.remote_session_port import CommandResult, RemoteSessionPort
from webfleet.domain.ports.state_store_port import StateStorePort
from webfleet.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "CloudProviderPort",
    "CommandResult",
    "RemoteSessionPort",
    "StateStorePort",
    "EventBusPort",
]
