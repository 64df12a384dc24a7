"""
Status Page Service

Architectural Intent:
- Mirrors the landing page install_httpd.yml writes on every managed node
- Lets the apply pipeline check that each node serves its own metadata and
  not a neighbour's
"""

from __future__ import annotations

import html
from dataclasses import dataclass

from webfleet.domain.entities.instance import ProvisionedInstance

PAGE_TITLE = "EC2 Apache Webserver configured with Ansible!"

_FIELDS = (
    ("Instance ID", "instance_id"),
    ("AWS Availablity Zone", "availability_zone"),
    ("Public Hostname", "public_hostname"),
    ("Public IPv4", "public_ipv4"),
    ("Private Hostname", "private_hostname"),
    ("Private IPv4", "private_ipv4"),
)


@dataclass(frozen=True)
class InstanceMetadata:
    instance_id: str
    availability_zone: str = ""
    public_hostname: str = ""
    public_ipv4: str = ""
    private_hostname: str = ""
    private_ipv4: str = ""

    @classmethod
    def from_instance(cls, instance: ProvisionedInstance) -> "InstanceMetadata":
        return cls(
            instance_id=instance.instance_id,
            availability_zone=instance.availability_zone,
            public_hostname=instance.public_dns,
            public_ipv4=instance.public_ip,
            private_hostname=instance.private_dns,
            private_ipv4=instance.private_ip,
        )


def render_status_page(metadata: InstanceMetadata) -> str:
    lines = [
        '<font face = "Verdana" size = "5">',
        f"<center><h1>{PAGE_TITLE}</h1></center>",
        "<center> <b>EC2 Instance Metadata</b> </center>",
    ]
    for label, attr in _FIELDS:
        value = html.escape(getattr(metadata, attr))
        lines.append(f"<center> <b>{label}:</b> {value} </center>")
    lines.append("</font>")
    return "\n".join(lines) + "\n"


def parse_status_page(page: str) -> dict[str, str]:
    """Extract ``{attribute: value}`` from a rendered status page."""
    values: dict[str, str] = {}
    for line in page.splitlines():
        for label, attr in _FIELDS:
            marker = f"<b>{label}:</b>"
            if marker in line:
                value = line.split(marker, 1)[1].replace("</center>", "")
                values[attr] = html.unescape(value.strip())
    return values


def check_status_page(
    page: str,
    own: InstanceMetadata,
    others: list[InstanceMetadata],
) -> list[str]:
    """Return human-readable problems; an empty list means the page is right.

    Fields the provider did not report (empty strings) are not compared.
    """
    problems: list[str] = []
    served = parse_status_page(page)

    if not served:
        return [f"{own.instance_id}: page carries no instance metadata"]

    for label, attr in _FIELDS:
        expected = getattr(own, attr)
        if expected and served.get(attr) != expected:
            problems.append(
                f"{own.instance_id}: {label} is {served.get(attr)!r}, expected {expected!r}"
            )

    served_id = served.get("instance_id", "")
    for other in others:
        if other.instance_id and other.instance_id == served_id:
            problems.append(
                f"{own.instance_id}: page shows metadata of {other.instance_id}"
            )
    return problems
