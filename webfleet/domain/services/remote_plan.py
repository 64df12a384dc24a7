"""
Remote Plan Service

Architectural Intent:
- Turns orchestration settings into the ordered list of remote actions the
  configuration step performs on the control node
- Pure data: no SSH here, ConfigureFleet walks the plan and the session port
  executes it

Execution Model:
1. STAGING: wait for the first-boot script to settle, create the work
   directory (failure tolerated, it may already exist), then upload the
   inventory, both playbooks and the private key
2. CONFIGURING: disable ansible host-key checking for the remote user
3. EXECUTING: register host keys, ping every host (best-effort), install httpd

Tolerated Failures:
- The work-directory mkdir is the one continue-on-failure command of the
  original staging sequence
- Two more steps go beyond it: the first-boot wait (cloud-init may be absent
  or report a degraded boot while Ansible is already installed) and the
  reachability ping (the install playbook reports unreachable hosts itself)
- Every other non-zero exit fails the run

Security:
- Every path interpolated into a command goes through shlex.quote()
- The private key is uploaded with mode 0600
"""

from __future__ import annotations

import posixpath
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from webfleet.domain.entities.configuration_run import ConfigurationStatus

KNOWN_HOSTS_PLAYBOOK = "add_to_ssh_known_hosts.yml"
INSTALL_PLAYBOOK = "install_httpd.yml"
REMOTE_INVENTORY = "hosts"


@dataclass(frozen=True)
class RemoteCommand:
    """A shell command run on the control node.

    Attributes:
        name: Label used in logs, events and error messages.
        stage: Configuration stage the command belongs to.
        command: Shell command line.
        tolerate_failure: A non-zero exit is logged and the run continues.
    """

    name: str
    stage: ConfigurationStatus
    command: str
    tolerate_failure: bool = False


@dataclass(frozen=True)
class FileUpload:
    name: str
    stage: ConfigurationStatus
    local_path: str
    remote_path: str
    mode: Optional[int] = None


RemoteStep = Union[RemoteCommand, FileUpload]


@dataclass(frozen=True)
class RemotePlanSettings:
    remote_dir: str
    inventory_path: str
    playbook_dir: str
    private_key_path: str
    managed_user: str = "ec2-user"


@dataclass(frozen=True)
class RemotePlan:
    steps: tuple[RemoteStep, ...]

    def for_stage(self, stage: ConfigurationStatus) -> list[RemoteStep]:
        return [s for s in self.steps if s.stage == stage]

    @property
    def command_count(self) -> int:
        return sum(1 for s in self.steps if isinstance(s, RemoteCommand))


def build_remote_plan(settings: RemotePlanSettings) -> RemotePlan:
    remote_dir = settings.remote_dir.rstrip("/") or "/"
    key_name = Path(settings.private_key_path).name
    remote_key = posixpath.join(remote_dir, key_name)
    playbooks = Path(settings.playbook_dir)

    q_dir = shlex.quote(remote_dir)
    q_key = shlex.quote(remote_key)
    q_user = shlex.quote(settings.managed_user)
    ansible_args = f"-i {REMOTE_INVENTORY} -u {q_user} --private-key {q_key}"

    staging = ConfigurationStatus.STAGING
    configuring = ConfigurationStatus.CONFIGURING
    executing = ConfigurationStatus.EXECUTING

    steps: list[RemoteStep] = [
        RemoteCommand(
            name="wait-for-first-boot",
            stage=staging,
            command="cloud-init status --wait > /dev/null",
            tolerate_failure=True,
        ),
        RemoteCommand(
            name="create-work-dir",
            stage=staging,
            command=f"mkdir {q_dir}",
            tolerate_failure=True,
        ),
        FileUpload(
            name="upload-inventory",
            stage=staging,
            local_path=settings.inventory_path,
            remote_path=posixpath.join(remote_dir, REMOTE_INVENTORY),
        ),
        FileUpload(
            name="upload-known-hosts-playbook",
            stage=staging,
            local_path=str(playbooks / KNOWN_HOSTS_PLAYBOOK),
            remote_path=posixpath.join(remote_dir, KNOWN_HOSTS_PLAYBOOK),
        ),
        FileUpload(
            name="upload-install-playbook",
            stage=staging,
            local_path=str(playbooks / INSTALL_PLAYBOOK),
            remote_path=posixpath.join(remote_dir, INSTALL_PLAYBOOK),
        ),
        FileUpload(
            name="upload-private-key",
            stage=staging,
            local_path=settings.private_key_path,
            remote_path=remote_key,
            mode=0o600,
        ),
        RemoteCommand(
            name="disable-host-key-checking",
            stage=configuring,
            command=(
                "printf '%s\\n' '[defaults]' 'host_key_checking = False' "
                "> ~/.ansible.cfg"
            ),
        ),
        RemoteCommand(
            name="register-host-keys",
            stage=executing,
            command=(
                f"cd {q_dir} && ansible-playbook {ansible_args} {KNOWN_HOSTS_PLAYBOOK}"
            ),
        ),
        RemoteCommand(
            name="check-reachability",
            stage=executing,
            command=f"cd {q_dir} && ansible all {ansible_args} -m ping",
            tolerate_failure=True,
        ),
        RemoteCommand(
            name="install-web-server",
            stage=executing,
            command=f"cd {q_dir} && ansible-playbook {ansible_args} {INSTALL_PLAYBOOK}",
        ),
    ]
    return RemotePlan(tuple(steps))
