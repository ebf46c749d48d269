"""
Discounts Router
Cart discounts and discount codes per bundle, then optional Stripe checkout
sessions for the bundles that got a code.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
import logging
import time

from dependencies import ServiceContainer, get_services
from routers.common import elapsed_ms, error_response
from schemas.bundle_schemas import Bundle
from schemas.results import BatchResult

logger = logging.getLogger(__name__)
router = APIRouter()

DISCOUNT_SUGGESTIONS = [
    "Check commercetools API credentials and permissions",
    "Verify STRIPE_SECRET_KEY environment variable if using Stripe",
    "Ensure bundles have valid SKUs and pricing",
    "Check network connectivity",
]


class CreateDiscountsRequest(BaseModel):
    bundles: List[Bundle]
    campaignTheme: str
    createCheckoutSessions: bool = True
    successUrl: str = "/checkout/success"
    cancelUrl: str = "/checkout/cancel"


def _checkout_summary(outcome) -> Dict[str, Any]:
    payload = outcome.to_payload()
    return {"id": payload.get("id"), "url": payload.get("url"), "error": payload.get("error")}


def merge_checkout_sessions(discounts: BatchResult, checkouts: Optional[BatchResult]) -> Dict[str, Any]:
    """Discount payload whose items each carry their checkout session (or null)."""
    payload = discounts.to_payload()
    checkout_items = checkouts.items if checkouts is not None else []
    for index, item in enumerate(payload["items"]):
        item["checkoutSession"] = (
            _checkout_summary(checkout_items[index]) if index < len(checkout_items) else None
        )
    return payload


@router.post("/create-discounts")
async def create_discounts(request: CreateDiscountsRequest, services: ServiceContainer = Depends(get_services)):
    """Create discount codes and checkout sessions for bundles"""
    start = time.time()
    logger.info(f"🎫 Starting discount codes for {len(request.bundles)} bundles, theme={request.campaignTheme!r}")

    try:
        discounts = await services.discounts.create_bundle_discounts(request.bundles, request.campaignTheme)
    except Exception as e:
        logger.error(f"Discount creation failed: {e}", exc_info=True)
        return error_response(
            "Failed to create discount codes and checkout sessions", e, DISCOUNT_SUGGESTIONS
        )

    stripe_enabled = services.checkout.enabled
    checkouts: Optional[BatchResult] = None
    if request.createCheckoutSessions and stripe_enabled:
        checkouts = await services.checkout.create_checkout_sessions(
            discounts.items,
            request.successUrl,
            request.cancelUrl,
            request.campaignTheme,
        )
    else:
        reason = "disabled by request" if not request.createCheckoutSessions else "no STRIPE_SECRET_KEY"
        logger.info(f"⚠️ Stripe checkout sessions skipped: {reason}")

    total_time = elapsed_ms(start, time.time())
    logger.info(
        f"🎉 Discount codes completed in {total_time}ms - "
        f"{discounts.success_count}/{discounts.total_count} successful"
    )

    return {
        "success": True,
        "discountResult": merge_checkout_sessions(discounts, checkouts),
        "checkoutSessions": [session.to_payload() for session in checkouts.successes()] if checkouts else [],
        "meta": {
            "campaignTheme": request.campaignTheme,
            "bundlesProcessed": len(request.bundles),
            "successfulDiscounts": discounts.success_count,
            "failedDiscounts": discounts.failure_count,
            "successfulCheckouts": checkouts.success_count if checkouts else 0,
            "failedCheckouts": checkouts.failure_count if checkouts else 0,
            "totalTime": total_time,
            "stripeEnabled": stripe_enabled,
        },
    }


@router.get("/create-discounts")
async def create_discounts_usage(services: ServiceContainer = Depends(get_services)):
    settings = services.settings
    return {
        "message": "POST to this endpoint with bundles array to create discount codes and checkout sessions",
        "requiredFields": ["bundles", "campaignTheme"],
        "optionalFields": ["createCheckoutSessions", "successUrl", "cancelUrl"],
        "environment": {
            "commercetoolsConfigured": services.commerce.configured,
            "stripeConfigured": services.payments.configured,
            "baseUrl": settings.public_base_url,
        },
    }


@router.get("/checkout/sessions/{session_id}")
async def verify_checkout_session(session_id: str, services: ServiceContainer = Depends(get_services)):
    """Look up a checkout session, e.g. from the success page"""
    try:
        session = await services.checkout.verify_checkout_session(session_id)
    except Exception as e:
        logger.error(f"Checkout session lookup failed for {session_id}: {e}", exc_info=True)
        return error_response("Failed to retrieve checkout session", e, status_code=502)
    return {"success": True, "session": session}
