"""Tests for the remote step plan."""

from webfleet.domain.entities.configuration_run import ConfigurationStatus
from webfleet.domain.services.remote_plan import (
    FileUpload,
    RemoteCommand,
    RemotePlanSettings,
    build_remote_plan,
)

SETTINGS = RemotePlanSettings(
    remote_dir="/home/ec2-user/ansible/",
    inventory_path="build/hosts",
    playbook_dir="/opt/playbooks",
    private_key_path="/keys/deployer.pem",
)


class TestBuildRemotePlan:
    def test_step_order(self):
        plan = build_remote_plan(SETTINGS)
        assert [s.name for s in plan.steps] == [
            "wait-for-first-boot",
            "create-work-dir",
            "upload-inventory",
            "upload-known-hosts-playbook",
            "upload-install-playbook",
            "upload-private-key",
            "disable-host-key-checking",
            "register-host-keys",
            "check-reachability",
            "install-web-server",
        ]

    def test_stages(self):
        plan = build_remote_plan(SETTINGS)
        staging = plan.for_stage(ConfigurationStatus.STAGING)
        executing = plan.for_stage(ConfigurationStatus.EXECUTING)
        assert len(staging) == 6
        assert [s.name for s in plan.for_stage(ConfigurationStatus.CONFIGURING)] == [
            "disable-host-key-checking"
        ]
        assert [s.name for s in executing] == [
            "register-host-keys",
            "check-reachability",
            "install-web-server",
        ]

    def test_only_mkdir_first_boot_and_ping_are_tolerated(self):
        plan = build_remote_plan(SETTINGS)
        tolerated = {
            s.name for s in plan.steps if isinstance(s, RemoteCommand) and s.tolerate_failure
        }
        assert tolerated == {"wait-for-first-boot", "create-work-dir", "check-reachability"}

    def test_uploads_land_in_work_dir(self):
        plan = build_remote_plan(SETTINGS)
        uploads = {s.name: s for s in plan.steps if isinstance(s, FileUpload)}
        assert uploads["upload-inventory"].local_path == "build/hosts"
        assert uploads["upload-inventory"].remote_path == "/home/ec2-user/ansible/hosts"
        assert uploads["upload-install-playbook"].local_path == "/opt/playbooks/install_httpd.yml"
        assert uploads["upload-private-key"].remote_path == "/home/ec2-user/ansible/deployer.pem"
        assert uploads["upload-private-key"].mode == 0o600
        assert uploads["upload-inventory"].mode is None

    def test_playbook_commands(self):
        plan = build_remote_plan(SETTINGS)
        commands = {s.name: s.command for s in plan.steps if isinstance(s, RemoteCommand)}
        assert commands["create-work-dir"] == "mkdir /home/ec2-user/ansible"
        assert commands["register-host-keys"] == (
            "cd /home/ec2-user/ansible && ansible-playbook -i hosts -u ec2-user "
            "--private-key /home/ec2-user/ansible/deployer.pem add_to_ssh_known_hosts.yml"
        )
        assert commands["check-reachability"].endswith("-m ping")
        assert commands["install-web-server"].endswith("install_httpd.yml")
        assert "host_key_checking = False" in commands["disable-host-key-checking"]

    def test_paths_are_quoted(self):
        settings = RemotePlanSettings(
            remote_dir="/home/ec2-user/my dir",
            inventory_path="hosts",
            playbook_dir=".",
            private_key_path="key.pem",
        )
        plan = build_remote_plan(settings)
        mkdir = plan.steps[1]
        assert mkdir.command == "mkdir '/home/ec2-user/my dir'"

    def test_command_count(self):
        assert build_remote_plan(SETTINGS).command_count == 6
