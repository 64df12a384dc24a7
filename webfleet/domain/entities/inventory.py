"""
Inventory Module

Architectural Intent:
- Host list handed to ansible on the control node
- Rendered through a string.Template so the file layout stays configurable;
  the default template is just the newline-joined addresses
- Derived from provisioned instances, never edited by hand
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from string import Template
import logging

from webfleet.domain.errors import TemplateRenderError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "$hosts"


@dataclass(frozen=True)
class InventoryDocument:
    addresses: tuple[str, ...]

    def __post_init__(self) -> None:
        for address in self.addresses:
            if not address or any(c.isspace() for c in address):
                raise ValueError(f"Invalid inventory address: {address!r}")

    def __len__(self) -> int:
        return len(self.addresses)

    def render(self, template: str = DEFAULT_TEMPLATE) -> str:
        """Substitute ``$hosts`` (newline-joined addresses) and ``$count``."""
        try:
            return Template(template).substitute(
                hosts="\n".join(self.addresses),
                count=len(self.addresses),
            )
        except KeyError as e:
            raise TemplateRenderError(
                f"Inventory template references unknown variable {e.args[0]!r}"
            ) from e
        except ValueError as e:
            raise TemplateRenderError(f"Malformed inventory template: {e}") from e

    def write(self, path: str | Path, template: str = DEFAULT_TEMPLATE) -> Path:
        target = Path(path)
        content = self.render(template)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        logger.info("Wrote inventory with %d host(s) to %s", len(self), target)
        return target
