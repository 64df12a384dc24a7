"""
Centralized Logging

Architectural Intent:
- One place that configures the "webfleet" logger tree for CLI runs
- Human-readable lines by default, JSON lines with --json-logs
- Keeps boto and paramiko chatter out of the output unless --debug is set
"""

import json
import logging
import sys
from datetime import datetime, UTC

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_NOISY_LIBRARIES = ("botocore", "boto3", "urllib3", "paramiko", "invoke", "fabric")


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Anything passed through ``extra=`` (environment, step, host...) is copied
    into the entry next to the standard keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith("_"):
                log_entry[key] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
) -> logging.Handler:
    """Configure logging for webfleet and return the installed handler.

    Args:
        level: Logging level for the webfleet logger tree.
        json_format: Emit one JSON object per line instead of plain text.
    """
    root = logging.getLogger("webfleet")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    return handler
