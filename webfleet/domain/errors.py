"""
Domain Errors

Architectural Intent:
- Single exception hierarchy for everything a plan/apply/destroy run can hit
- Adapters translate library exceptions (botocore, paramiko, invoke) into these
- The CLI reports the failing step and exits; nothing here triggers rollback

Taxonomy:
- ProviderError: cloud API rejected a call (quota, permission, bad parameter)
- RemoteConnectionError: SSH session could not be opened (timeout, auth)
- RemoteCommandError: a remote command exited non-zero
- TemplateRenderError: a template referenced a value that was not supplied
- InvalidNetworkError: address ranges that cannot be partitioned
- ConfigurationError: missing or malformed settings
"""

from __future__ import annotations
from typing import Optional


class WebfleetError(Exception):
    """Base class for all webfleet failures."""


class ProviderError(WebfleetError):
    def __init__(self, operation: str, message: str, code: Optional[str] = None) -> None:
        self.operation = operation
        self.code = code
        detail = f"{code}: {message}" if code else message
        super().__init__(f"{operation} failed: {detail}")


class RemoteConnectionError(WebfleetError):
    def __init__(self, host: str, message: str) -> None:
        self.host = host
        super().__init__(f"Cannot reach {host}: {message}")


class RemoteCommandError(WebfleetError):
    def __init__(self, step: str, exit_code: int, stderr: str = "") -> None:
        self.step = step
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Step '{step}' exited with status {exit_code}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


class TemplateRenderError(WebfleetError):
    pass


class InvalidNetworkError(WebfleetError, ValueError):
    pass


class ConfigurationError(WebfleetError):
    pass
