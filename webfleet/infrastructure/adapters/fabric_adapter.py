"""
Fabric Adapter

Architectural Intent:
- Infrastructure adapter implementing RemoteSessionPort via Fabric/SSH
- Holds one Connection per session; commands run strictly one after another
- Blocking Fabric calls are pushed to the default executor

Security:
- Key-file authentication when the node carries a key path; agent and
  ~/.ssh key discovery are used only when it does not
- Bounded connect_timeout on every connection
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fabric import Connection
from paramiko.ssh_exception import SSHException

from webfleet.domain.errors import ConfigurationError, RemoteConnectionError
from webfleet.domain.ports.remote_session_port import CommandResult, RemoteSessionPort
from webfleet.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


class FabricAdapter(RemoteSessionPort):
    """Adapter implementing RemoteSessionPort via Fabric/SSH."""

    def __init__(self, connect_timeout: int = 30) -> None:
        self.connect_timeout = connect_timeout
        self._conn: Optional[Connection] = None
        self._node: Optional[Node] = None

    def _get_connection(self, node: Node) -> Connection:
        if node.key_filename:
            connect_kwargs = {
                "key_filename": str(Path(node.key_filename).expanduser()),
                "allow_agent": False,
                "look_for_keys": False,
            }
        else:
            connect_kwargs = {"allow_agent": True, "look_for_keys": True}
        return Connection(
            host=node.host,
            user=node.user,
            port=node.port,
            connect_timeout=self.connect_timeout,
            connect_kwargs=connect_kwargs,
        )

    def _require_connection(self) -> Connection:
        if self._conn is None:
            raise RuntimeError("Remote session is not open")
        return self._conn

    async def _call(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))
        except (SSHException, OSError) as e:
            host = self._node.host if self._node else "remote host"
            raise RemoteConnectionError(host, str(e) or type(e).__name__) from e

    async def open(self, node: Node) -> None:
        self._node = node
        self._conn = self._get_connection(node)
        logger.info("Opening SSH session to %s", node)
        await self._call(self._conn.open)

    async def run(self, command: str) -> CommandResult:
        conn = self._require_connection()
        logger.debug("Running on %s: %s", self._node, command)
        result = await self._call(conn.run, command, hide=True, warn=True)
        return CommandResult(
            command=command,
            exit_code=result.exited,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    async def upload(
        self, local_path: str, remote_path: str, mode: Optional[int] = None
    ) -> None:
        conn = self._require_connection()
        if not Path(local_path).is_file():
            raise ConfigurationError(f"Local file not found: {local_path}")

        logger.debug("Uploading %s to %s:%s", local_path, self._node, remote_path)
        await self._call(conn.put, local_path, remote=remote_path)
        if mode is not None:
            sftp = await self._call(conn.sftp)
            await self._call(sftp.chmod, remote_path, mode)

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            logger.debug("Closed SSH session to %s", self._node)
        self._conn = None
