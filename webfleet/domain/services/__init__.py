"""
Domain Services Package

Architectural Intent:
- Pure functions over domain values: the remote step plan and the
  status-page checks
"""

from webfleet.domain.services.remote_plan import (
    FileUpload,
    RemoteCommand,
    RemotePlan,
    RemotePlanSettings,
    build_remote_plan,
)
from webfleet.domain.services.status_page import (
    InstanceMetadata,
    check_status_page,
    parse_status_page,
    render_status_page,
)

__all__ = [
    "FileUpload",
    "RemoteCommand",
    "RemotePlan",
    "RemotePlanSettings",
    "build_remote_plan",
    "InstanceMetadata",
    "check_status_page",
    "parse_status_page",
    "render_status_page",
]
