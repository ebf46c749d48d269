"""
Email polish proxy.

Forwards the rendered campaign HTML plus per-bundle metadata to the external
email optimisation service and relays its answer.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from schemas.bundle_schemas import Bundle
from services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "email-polish"
DEFAULT_MESSAGE = "Email template polished successfully"


def bundle_metadata(bundles: Sequence[Bundle]) -> List[Dict[str, Any]]:
    return [
        {
            "name": bundle.name,
            "skus": list(bundle.skus),
            "skuCount": len(bundle.skus),
            "price": bundle.target_price,
            "discount": bundle.discount_percent,
            "hasImage": bool(bundle.bundle_image_url),
            "imageUrl": bundle.bundle_image_url,
        }
        for bundle in bundles
    ]


class EmailPolishClient:
    def __init__(self, url: str, *, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        self.url = url
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def polish(
        self,
        html: str,
        campaign_text: str,
        *,
        generate_image: bool = True,
        bundles: Sequence[Bundle] = (),
        bundle_creation_result: Any = None,
    ) -> Dict[str, Any]:
        payload = {
            "html": html,
            "campaignText": campaign_text,
            "generateImage": generate_image,
            "bundles": [bundle.to_payload() for bundle in bundles],
            "bundleCreationResult": bundle_creation_result,
            "bundleMetadata": bundle_metadata(bundles),
        }
        logger.info(
            "🎨 Polish: Sending email for %r with %d bundles",
            campaign_text[:50],
            len(bundles),
        )

        try:
            response = await self._http.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(SERVICE_NAME, str(exc) or type(exc).__name__) from exc

        logger.info("📊 Polish: response status %d", response.status_code)
        if response.is_error:
            logger.error("❌ Polish: API error %d: %s", response.status_code, response.text[:500])
            raise UpstreamServiceError(
                SERVICE_NAME,
                f"API returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            result = response.json()
        except ValueError as exc:
            raise UpstreamServiceError(SERVICE_NAME, "response was not JSON", status_code=response.status_code) from exc

        logger.info("✅ Polish: Email template polished successfully")
        return {
            "optimizedHtml": result.get("optimizedHtml"),
            "headerImage": result.get("headerImage"),
            "message": result.get("message") or DEFAULT_MESSAGE,
        }
