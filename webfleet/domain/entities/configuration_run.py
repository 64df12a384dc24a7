"""
Configuration Run Module

Architectural Intent:
- ConfigurationRun aggregate tracks one pass of the remote configuration step
- Lifecycle enforced by domain methods; every transition returns a new instance
- Domain events are accumulated for the event bus (logging, telemetry)

State Machine:
    PENDING -> CONNECTING -> STAGING -> CONFIGURING -> EXECUTING -> DONE
    PENDING -> SKIPPED                  (fingerprint unchanged)
    any non-terminal state -> FAILED

Domain Events:
- ConfigurationStartedEvent: fingerprint changed, run is connecting
- ConfigurationStageChangedEvent: run entered a new stage
- ConfigurationCompletedEvent: every remote step succeeded
- ConfigurationFailedEvent: a remote step or the connection failed
- ConfigurationSkippedEvent: nothing changed since the last successful run
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from webfleet.domain.events.event_base import DomainEvent
from webfleet.domain.value_objects.address_fingerprint import AddressFingerprint


class ConfigurationStatus(Enum):
    PENDING = auto()
    CONNECTING = auto()
    STAGING = auto()
    CONFIGURING = auto()
    EXECUTING = auto()
    DONE = auto()
    FAILED = auto()
    SKIPPED = auto()


TERMINAL_STATUSES = frozenset(
    {ConfigurationStatus.DONE, ConfigurationStatus.FAILED, ConfigurationStatus.SKIPPED}
)

_NEXT = {
    ConfigurationStatus.PENDING: ConfigurationStatus.CONNECTING,
    ConfigurationStatus.CONNECTING: ConfigurationStatus.STAGING,
    ConfigurationStatus.STAGING: ConfigurationStatus.CONFIGURING,
    ConfigurationStatus.CONFIGURING: ConfigurationStatus.EXECUTING,
    ConfigurationStatus.EXECUTING: ConfigurationStatus.DONE,
}


@dataclass(frozen=True)
class ConfigurationStartedEvent(DomainEvent):
    fingerprint: str = ""
    host_count: int = 0


@dataclass(frozen=True)
class ConfigurationStageChangedEvent(DomainEvent):
    stage: str = ""


@dataclass(frozen=True)
class ConfigurationCompletedEvent(DomainEvent):
    fingerprint: str = ""
    steps: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConfigurationFailedEvent(DomainEvent):
    stage: str = ""
    error_message: str = ""


@dataclass(frozen=True)
class ConfigurationSkippedEvent(DomainEvent):
    fingerprint: str = ""


class ConfigurationRun:
    __slots__ = (
        "_environment",
        "_fingerprint",
        "_host_count",
        "_status",
        "_completed_steps",
        "_error_message",
        "_domain_events",
    )

    def __init__(
        self,
        environment: str,
        fingerprint: AddressFingerprint,
        host_count: int = 0,
        status: ConfigurationStatus = ConfigurationStatus.PENDING,
        completed_steps: tuple[str, ...] = (),
        error_message: Optional[str] = None,
        domain_events: tuple = (),
    ):
        self._environment = environment
        self._fingerprint = fingerprint
        self._host_count = host_count
        self._status = status
        self._completed_steps = completed_steps
        self._error_message = error_message
        self._domain_events = domain_events

    @property
    def environment(self) -> str:
        return self._environment

    @property
    def fingerprint(self) -> AddressFingerprint:
        return self._fingerprint

    @property
    def host_count(self) -> int:
        return self._host_count

    @property
    def status(self) -> ConfigurationStatus:
        return self._status

    @property
    def completed_steps(self) -> tuple[str, ...]:
        return self._completed_steps

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def domain_events(self) -> tuple:
        return self._domain_events

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    def _evolve(self, event: Optional[DomainEvent] = None, **changes) -> "ConfigurationRun":
        state = {
            "environment": self._environment,
            "fingerprint": self._fingerprint,
            "host_count": self._host_count,
            "status": self._status,
            "completed_steps": self._completed_steps,
            "error_message": self._error_message,
            "domain_events": self._domain_events + ((event,) if event else ()),
        }
        state.update(changes)
        return ConfigurationRun(**state)

    def _advance(self, expected: ConfigurationStatus) -> "ConfigurationRun":
        if _NEXT.get(self._status) != expected:
            raise ValueError(
                f"Configuration run cannot move from {self._status.name} to {expected.name}"
            )
        if expected is ConfigurationStatus.CONNECTING:
            event: DomainEvent = ConfigurationStartedEvent(
                aggregate_id=self._environment,
                fingerprint=str(self._fingerprint),
                host_count=self._host_count,
            )
        elif expected is ConfigurationStatus.DONE:
            event = ConfigurationCompletedEvent(
                aggregate_id=self._environment,
                fingerprint=str(self._fingerprint),
                steps=self._completed_steps,
            )
        else:
            event = ConfigurationStageChangedEvent(
                aggregate_id=self._environment, stage=expected.name
            )
        return self._evolve(event, status=expected)

    def connect(self) -> "ConfigurationRun":
        return self._advance(ConfigurationStatus.CONNECTING)

    def stage(self) -> "ConfigurationRun":
        return self._advance(ConfigurationStatus.STAGING)

    def configure(self) -> "ConfigurationRun":
        return self._advance(ConfigurationStatus.CONFIGURING)

    def execute(self) -> "ConfigurationRun":
        return self._advance(ConfigurationStatus.EXECUTING)

    def complete(self) -> "ConfigurationRun":
        return self._advance(ConfigurationStatus.DONE)

    def skip(self) -> "ConfigurationRun":
        if self._status != ConfigurationStatus.PENDING:
            raise ValueError("Only a PENDING configuration run can be skipped")
        return self._evolve(
            ConfigurationSkippedEvent(
                aggregate_id=self._environment, fingerprint=str(self._fingerprint)
            ),
            status=ConfigurationStatus.SKIPPED,
        )

    def record_step(self, name: str) -> "ConfigurationRun":
        if self.is_terminal or self._status == ConfigurationStatus.PENDING:
            raise ValueError(f"Cannot record step '{name}' while {self._status.name}")
        return self._evolve(completed_steps=self._completed_steps + (name,))

    def fail(self, message: str) -> "ConfigurationRun":
        if self.is_terminal:
            raise ValueError(f"Configuration run already {self._status.name}")
        return self._evolve(
            ConfigurationFailedEvent(
                aggregate_id=self._environment,
                stage=self._status.name,
                error_message=message,
            ),
            status=ConfigurationStatus.FAILED,
            error_message=message,
        )

    def __repr__(self) -> str:
        return (
            f"ConfigurationRun(environment={self._environment}, "
            f"fingerprint={self._fingerprint.short}, status={self._status}, "
            f"steps={len(self._completed_steps)}, error_message={self._error_message})"
        )
