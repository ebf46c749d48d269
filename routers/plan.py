"""
Plan Router
Catalog sample -> AI campaign plan -> stored plan, in one call.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
import logging
import time

from dependencies import ServiceContainer, get_services
from routers.common import elapsed_ms, error_response
from services.commerce.plan_store import new_plan_id

logger = logging.getLogger(__name__)
router = APIRouter()

PLAN_SUGGESTIONS = [
    "Check commercetools API credentials and permissions",
    "Check OPENAI_API_KEY environment variable",
    "Check network connectivity",
]


class PlanRequest(BaseModel):
    theme: str = "Fall Essentials"
    productLimit: int = Field(40, ge=1, le=500)


@router.post("/plan")
async def create_plan(request: PlanRequest, services: ServiceContainer = Depends(get_services)):
    """Generate and store a bundle campaign plan for a theme."""
    start = time.time()
    logger.info(f"🚀 Starting campaign plan generation: theme={request.theme!r} productLimit={request.productLimit}")

    try:
        catalog = await services.catalog.fetch_catalog_sample(request.productLimit)
    except Exception as e:
        logger.error(f"Catalog fetch failed: {e}", exc_info=True)
        return error_response("Failed to generate campaign plan", e, PLAN_SUGGESTIONS)

    if not catalog:
        raise HTTPException(status_code=404, detail="No products found in catalog")

    try:
        plan = await services.planner.plan_campaign(request.theme, catalog)
        plan_id = new_plan_id()
        await services.plan_store.save(plan_id, plan, len(catalog))
    except Exception as e:
        logger.error(f"Campaign planning failed: {e}", exc_info=True)
        return error_response("Failed to generate campaign plan", e, PLAN_SUGGESTIONS)

    total_time = elapsed_ms(start, time.time())
    logger.info(f"🎉 Campaign plan {plan_id} completed in {total_time}ms - {len(plan.bundles)} bundles")

    return {
        "success": True,
        "planId": plan_id,
        "plan": plan.to_payload(),
        "products": {item.id: item.to_payload() for item in catalog},
        "meta": {
            "productsProcessed": len(catalog),
            "bundlesGenerated": len(plan.bundles),
            "totalTime": total_time,
        },
    }


@router.get("/plan")
async def plan_usage(services: ServiceContainer = Depends(get_services)):
    return {
        "message": 'POST to this endpoint with { "theme": "Your Campaign Theme" } to generate a plan',
        "optionalFields": ["theme", "productLimit"],
        "environment": services.integration_status(),
    }


@router.get("/plans/{plan_id}")
async def get_plan(plan_id: str, services: ServiceContainer = Depends(get_services)):
    """Read back a stored campaign plan."""
    try:
        plan = await services.plan_store.get(plan_id)
    except Exception as e:
        logger.error(f"Plan lookup failed for {plan_id}: {e}", exc_info=True)
        return error_response("Failed to load campaign plan", e)

    if plan is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return {"success": True, "planId": plan_id, "plan": plan}
