"""
Campaigns Router
Publishes a bundle campaign to Klaviyo, with optional brand-voice polishing
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
import logging

from dependencies import ServiceContainer, get_services
from routers.common import error_response
from schemas.bundle_schemas import Bundle
from services.campaign_publisher import MOCK_WARNINGS, SUCCESS_INFO, campaign_preview

logger = logging.getLogger(__name__)
router = APIRouter()


class CampaignPlanPayload(BaseModel):
    theme: str
    bundles: List[Bundle]
    overallStrategy: Optional[str] = None
    targetAudience: Optional[str] = None
    customHtml: Optional[str] = None
    bundleCreationResult: Optional[Dict[str, Any]] = None


class PublishCampaignRequest(BaseModel):
    plan: CampaignPlanPayload
    brandVoice: Optional[str] = None


@router.post("/klaviyo")
async def publish_campaign(request: PublishCampaignRequest, services: ServiceContainer = Depends(get_services)):
    """Create a draft email campaign (or a mock when Klaviyo is unavailable)"""
    plan = request.plan
    logger.info(
        f"🎯 Creating campaign for {plan.theme!r} with {len(plan.bundles)} bundles "
        f"(customHtml={bool(plan.customHtml)}, brandVoice={bool(request.brandVoice)})"
    )

    try:
        bundles = plan.bundles
        if request.brandVoice:
            bundles = await services.copy_polisher.polish_bundles(bundles, request.brandVoice)

        campaign = await services.publisher.publish(
            bundles, plan.theme, plan.customHtml, plan.bundleCreationResult
        )
    except Exception as e:
        logger.error(f"Error creating campaign: {e}", exc_info=True)
        return error_response(
            "Failed to create Klaviyo campaign",
            e,
            [
                "Check KLAVIYO_API_KEY environment variable",
                "Verify Klaviyo API permissions",
                "Check network connectivity",
            ],
        )

    response: Dict[str, Any] = {
        "success": True,
        "campaign": campaign,
        "summary": {
            "theme": plan.theme,
            "bundleCount": len(bundles),
            "campaignId": campaign["id"],
            "status": campaign["status"],
            "brandVoiceApplied": bool(request.brandVoice),
        },
        "preview": campaign_preview(bundles, plan.theme),
    }
    if campaign["status"] == "mock_created":
        response["warnings"] = list(MOCK_WARNINGS)
    else:
        response["successInfo"] = list(SUCCESS_INFO)

    logger.info(f"Campaign created: {campaign['id']} ({campaign['status']})")
    return response


@router.get("/klaviyo")
async def publish_campaign_usage(services: ServiceContainer = Depends(get_services)):
    return {
        "message": "POST to this endpoint with a campaign plan to create a Klaviyo campaign",
        "requiredFields": ["plan.theme", "plan.bundles"],
        "optionalFields": ["plan.customHtml", "plan.bundleCreationResult", "brandVoice"],
        "environment": {"klaviyoConfigured": services.klaviyo.configured},
    }
