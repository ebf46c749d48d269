"""
Bundles Router
Creates catalog products for the bundles of a campaign plan
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional
import logging
import time

from dependencies import ServiceContainer, get_services
from routers.common import elapsed_ms, error_response
from schemas.bundle_schemas import Bundle

logger = logging.getLogger(__name__)
router = APIRouter()


class BundlePlan(BaseModel):
    theme: str
    bundles: List[Bundle]
    overallStrategy: Optional[str] = None
    targetAudience: Optional[str] = None


class CreateBundlesRequest(BaseModel):
    plan: BundlePlan


@router.post("/create-bundles")
async def create_bundles(request: CreateBundlesRequest, services: ServiceContainer = Depends(get_services)):
    """Create one commercetools product per bundle"""
    start = time.time()
    plan = request.plan
    logger.info(f"🏗️ Starting bundle products creation: theme={plan.theme!r} bundles={len(plan.bundles)}")

    for index, bundle in enumerate(plan.bundles, start=1):
        logger.debug(
            f"Bundle {index} {bundle.name!r}: image={bundle.bundle_image_url!r} "
            f"childImages={len(bundle.child_product_images)}"
        )

    try:
        batch = await services.products.create_bundle_products(plan.bundles, plan.theme)
    except Exception as e:
        logger.error(f"❌ Bundle product creation failed: {e}", exc_info=True)
        return error_response(
            "Failed to create bundle products",
            e,
            [
                "Check commercetools API credentials and permissions",
                "Verify the API client can manage product types and tax categories",
            ],
        )

    total_time = elapsed_ms(start, time.time())
    result = batch.result
    logger.info(
        f"🎉 Bundle products creation completed in {total_time}ms - "
        f"{result.success_count}/{result.total_count} successful"
    )

    return {
        "success": True,
        "bundleResult": batch.to_payload(),
        "meta": {
            "totalBundles": result.total_count,
            "successfulProducts": result.success_count,
            "failedProducts": result.failure_count,
            "totalTime": total_time,
        },
    }


@router.get("/create-bundles")
async def create_bundles_usage(services: ServiceContainer = Depends(get_services)):
    return {
        "message": 'POST to this endpoint with { "plan": { "theme": "...", "bundles": [...] } } '
                   "to create bundle products in commercetools",
        "requiredFields": ["plan.theme", "plan.bundles"],
        "environment": {"commercetoolsConfigured": services.commerce.configured},
    }
