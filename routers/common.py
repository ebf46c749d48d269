"""
Shared helpers for the pipeline routers.
"""
from typing import Any, Dict, List, Optional
import logging

from starlette.responses import JSONResponse

from services.errors import IntegrationNotConfigured, UpstreamServiceError

logger = logging.getLogger(__name__)

NOT_CONFIGURED_SUGGESTIONS = {
    "commercetools": ["Set CTP_PROJECT_KEY, CTP_CLIENT_ID and CTP_CLIENT_SECRET"],
    "stripe": ["Set STRIPE_SECRET_KEY to enable checkout sessions"],
    "klaviyo": ["Set KLAVIYO_API_KEY and KLAVIYO_LIST_ID"],
    "openai": ["Set OPENAI_API_KEY"],
}


def elapsed_ms(start: float, now: float) -> int:
    return int((now - start) * 1000)


def error_response(
    error: str,
    exc: Exception,
    suggestions: Optional[List[str]] = None,
    status_code: int = 500,
) -> JSONResponse:
    """
    Failure answer for a critical (non-batched) step.

    A missing integration is a 503 with configuration hints; anything else
    uses ``status_code``.
    """
    if isinstance(exc, IntegrationNotConfigured):
        status_code = 503
        suggestions = NOT_CONFIGURED_SUGGESTIONS.get(exc.integration, []) + list(suggestions or [])

    content: Dict[str, Any] = {
        "error": error,
        "details": str(exc) or type(exc).__name__,
    }
    if suggestions:
        content["suggestions"] = suggestions
    return JSONResponse(status_code=status_code, content=content)


def upstream_status(exc: Exception, default: int = 500) -> int:
    """Relay an upstream HTTP error status when there is one."""
    if isinstance(exc, UpstreamServiceError) and exc.status_code and exc.status_code >= 400:
        return exc.status_code
    return default
