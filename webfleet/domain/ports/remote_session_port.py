"""
Remote Session Port

Architectural Intent:
- Port interface for a single SSH session to the control node
- Commands run one at a time; the caller decides what a non-zero exit means
- Implemented by the Fabric adapter
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from webfleet.domain.value_objects.node import Node


@dataclass(frozen=True)
class CommandResult:
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class RemoteSessionPort(ABC):
    """
    Port interface for executing commands on one remote host.
    """

    @abstractmethod
    async def open(self, node: Node) -> None:
        """
        Opens the session. Raises RemoteConnectionError when the host cannot
        be reached or rejects the credentials.
        """
        pass

    @abstractmethod
    async def run(self, command: str) -> CommandResult:
        """
        Runs a command and reports its exit status without raising on
        non-zero exits.
        """
        pass

    @abstractmethod
    async def upload(
        self, local_path: str, remote_path: str, mode: Optional[int] = None
    ) -> None:
        """
        Copies a local file to the remote host, optionally setting its mode.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
