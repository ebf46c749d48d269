"""
Email Router
Campaign email preview and the external polish proxy
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
import logging

from dependencies import ServiceContainer, get_services
from routers.common import error_response, upstream_status
from schemas.bundle_schemas import Bundle
from services.email_templates import render_campaign_html
from services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)
router = APIRouter()


class PolishEmailRequest(BaseModel):
    html: str
    campaignText: str
    generateImage: bool = True
    bundles: List[Bundle] = []
    bundleCreationResult: Optional[Any] = None


class EmailPreviewPlan(BaseModel):
    theme: str
    bundles: List[Bundle]


class EmailPreviewRequest(BaseModel):
    plan: EmailPreviewPlan
    bundleCreationResult: Optional[Dict[str, Any]] = None


@router.post("/polish-email")
async def polish_email(request: PolishEmailRequest, services: ServiceContainer = Depends(get_services)):
    """Forward the campaign email to the polish service"""
    try:
        result = await services.polish_client.polish(
            request.html,
            request.campaignText,
            generate_image=request.generateImage,
            bundles=request.bundles,
            bundle_creation_result=request.bundleCreationResult,
        )
    except UpstreamServiceError as e:
        logger.error(f"❌ Polish API error: {e}")
        return error_response(
            "Email polish API failed to optimize email template",
            e,
            [
                "Check if the email polish service is running",
                "Verify the EMAIL_POLISH_URL endpoint is correct",
                "Try again in a few moments",
            ],
            status_code=upstream_status(e),
        )
    except Exception as e:
        logger.error(f"❌ Error polishing email: {e}", exc_info=True)
        return error_response(
            "Failed to polish email template",
            e,
            [
                "Check your network connection",
                "Verify the email HTML is valid",
                "Try again with a different campaign description",
            ],
        )

    return {"success": True, **result}


@router.get("/polish-email")
async def polish_email_usage(services: ServiceContainer = Depends(get_services)):
    return {
        "message": "POST to this endpoint to polish an email template with enhanced bundle data",
        "endpoint": services.settings.email_polish_url,
        "requiredFields": ["html", "campaignText"],
        "optionalFields": ["generateImage", "bundles", "bundleCreationResult"],
        "bundleFields": ["name", "skus", "targetPrice", "discountPercent", "emailBlurb", "bundleImageUrl", "rationale"],
    }


@router.post("/email-preview")
async def email_preview(request: EmailPreviewRequest, services: ServiceContainer = Depends(get_services)):
    """Render the static campaign email for a plan"""
    html = render_campaign_html(
        request.plan.bundles,
        request.plan.theme,
        request.bundleCreationResult,
        storefront_url=services.settings.storefront_url,
    )
    return {"html": html}
