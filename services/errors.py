"""
Error types raised by the integration services.

Routers translate these into HTTP answers; batch services catch them per
item and record a failure instead.
"""
from __future__ import annotations

from typing import Any, Optional


class CopilotError(Exception):
    """Base class for co-pilot service errors."""


class IntegrationNotConfigured(CopilotError):
    """Raised when a stage needs an integration whose credentials are missing."""

    def __init__(self, integration: str):
        self.integration = integration
        super().__init__(f"{integration} integration is not configured")


class UpstreamServiceError(CopilotError):
    """A remote API answered with an error or could not be reached."""

    def __init__(
        self,
        service: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        body: Any = None,
    ):
        self.service = service
        self.status_code = status_code
        self.code = code
        self.body = body
        prefix = f"{service} error"
        if status_code is not None:
            prefix = f"{prefix} ({status_code})"
        super().__init__(f"{prefix}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409 or self.code in ("DuplicateField", "ConcurrentModification")


class PlanningError(CopilotError):
    """The LLM did not return a usable campaign plan."""
