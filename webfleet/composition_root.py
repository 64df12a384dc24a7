"""
Composition Root

Architectural Intent:
- Dependency injection composition root for webfleet
- Single place where adapters, the state store and use cases are wired
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- A fresh FabricAdapter per configuration run (one SSH session each)
- Telemetry is only initialised when an endpoint is configured
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from webfleet.application.use_cases.apply_environment import ApplyEnvironment
from webfleet.application.use_cases.configure_fleet import ConfigureFleet
from webfleet.application.use_cases.destroy_environment import DestroyEnvironment
from webfleet.application.use_cases.plan_environment import PlanEnvironment
from webfleet.application.use_cases.verify_status_pages import VerifyStatusPages
from webfleet.domain.events.event_base import DomainEvent
from webfleet.domain.services.remote_plan import RemotePlanSettings
from webfleet.infrastructure.adapters.aws_adapter import AWSAdapter
from webfleet.infrastructure.adapters.fabric_adapter import FabricAdapter
from webfleet.infrastructure.adapters.http_adapter import HTTPAdapter
from webfleet.infrastructure.config import WebfleetConfig
from webfleet.infrastructure.event_bus import EventBus, log_event
from webfleet.infrastructure.repositories.sqlite_repository import SQLiteRepository
from webfleet.infrastructure.telemetry.otel_exporter import OTELExporter, create_exporter
from webfleet.resources import PLAYBOOK_DIR


@dataclass
class WebfleetContainer:
    """DI container holding all wired dependencies."""

    config: WebfleetConfig
    provider: AWSAdapter
    state_store: SQLiteRepository
    event_bus: EventBus
    telemetry: OTELExporter
    configure_fleet: ConfigureFleet
    plan: PlanEnvironment
    apply: ApplyEnvironment
    destroy: DestroyEnvironment
    verifier: Optional[VerifyStatusPages] = None

    def close(self) -> None:
        self.telemetry.shutdown()
        self.state_store.close()


def _expand(path: str) -> str:
    return str(Path(path).expanduser()) if path else ""


def create_container(config: WebfleetConfig) -> WebfleetContainer:
    """Create and wire all dependencies."""
    env = config.environment
    orchestration = config.orchestration
    private_key_path = _expand(config.ssh.private_key_path)

    provider = AWSAdapter(region=env.region, profile=env.profile or None)
    state_store = SQLiteRepository(config.state.db_path)
    state_store.connect()

    event_bus = EventBus()
    event_bus.subscribe(DomainEvent, log_event)

    telemetry = create_exporter(
        endpoint=config.telemetry.endpoint,
        environment=env.name,
        insecure=config.telemetry.insecure,
    )

    settings = RemotePlanSettings(
        remote_dir=orchestration.remote_dir,
        inventory_path=orchestration.inventory_path,
        playbook_dir=orchestration.playbook_dir or str(PLAYBOOK_DIR),
        private_key_path=private_key_path,
        managed_user=config.ssh.user,
    )
    configure_fleet = ConfigureFleet(
        session_factory=lambda: FabricAdapter(connect_timeout=config.ssh.connect_timeout),
        state_store=state_store,
        event_bus=event_bus,
        settings=settings,
        telemetry=telemetry,
    )

    verifier = None
    if orchestration.verify_status_pages:
        verifier = VerifyStatusPages(HTTPAdapter(timeout=orchestration.verify_timeout))

    plan = PlanEnvironment(provider, state_store)
    apply = ApplyEnvironment(
        provider,
        state_store,
        configure_fleet,
        inventory_path=orchestration.inventory_path,
        ssh_user=config.ssh.user,
        private_key_path=private_key_path,
        verifier=verifier,
        telemetry=telemetry,
    )
    destroy = DestroyEnvironment(provider, state_store, orchestration.inventory_path)

    return WebfleetContainer(
        config=config,
        provider=provider,
        state_store=state_store,
        event_bus=event_bus,
        telemetry=telemetry,
        configure_fleet=configure_fleet,
        plan=plan,
        apply=apply,
        destroy=destroy,
        verifier=verifier,
    )
