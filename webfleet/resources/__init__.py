"""Files shipped with the package: playbooks and first-boot scripts."""

from pathlib import Path

RESOURCES_DIR = Path(__file__).resolve().parent
PLAYBOOK_DIR = RESOURCES_DIR / "ansible"
CONTROL_NODE_USER_DATA = RESOURCES_DIR / "cloud_init" / "control_node.sh"
