"""
Images Router
On-demand bundle image generation
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import List
import logging
from pathlib import Path

from dependencies import ServiceContainer, get_services
from routers.common import error_response
from services.bundle_images import DEFAULT_STYLE, IMAGE_SUBDIR

logger = logging.getLogger(__name__)
router = APIRouter()


class GenerateImageRequest(BaseModel):
    bundleName: str
    theme: str
    productNames: List[str] = Field(default_factory=list)
    style: str = DEFAULT_STYLE


@router.post("/generate-bundle-image")
async def generate_bundle_image(request: GenerateImageRequest, services: ServiceContainer = Depends(get_services)):
    logger.info(f"🖼️ Generating image for bundle {request.bundleName!r}")
    try:
        image = await services.images.generate(
            request.bundleName, request.theme, request.productNames, request.style
        )
    except Exception as e:
        logger.error(f"Error generating bundle image: {e}", exc_info=True)
        return error_response(
            "Failed to generate bundle image",
            e,
            [
                "Check OPENAI_API_KEY environment variable",
                "Verify OpenAI API has image generation access",
                "Check network connectivity",
                "Ensure bundle name and products are provided",
            ],
        )

    return {
        "success": True,
        "imageUrl": image.image_url,
        "localPath": image.local_path,
        "prompt": image.prompt,
        "bundleName": request.bundleName,
        "theme": request.theme,
    }


@router.get("/generate-bundle-image")
async def generate_bundle_image_usage(services: ServiceContainer = Depends(get_services)):
    return {
        "message": "POST to this endpoint to generate a bundle image",
        "requiredFields": ["bundleName", "theme", "productNames"],
        "optionalFields": ["style"],
        "environment": {
            "openaiConfigured": services.integration_status()["openai"],
            "publicFolderExists": (Path(services.settings.static_dir) / IMAGE_SUBDIR).is_dir(),
        },
    }
