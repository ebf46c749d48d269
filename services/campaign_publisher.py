"""
Campaign Publisher
Creates a draft email campaign in Klaviyo from the campaign HTML.

When Klaviyo is not configured, or any of its calls fails, a tagged mock
campaign is returned so the pipeline stays demonstrable offline.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx

from schemas.bundle_schemas import Bundle
from services.email_templates import render_campaign_html
from services.errors import IntegrationNotConfigured, UpstreamServiceError
from settings import KlaviyoSettings
from utils import now_ms

logger = logging.getLogger(__name__)

SERVICE_NAME = "klaviyo"
KLAVIYO_API_URL = "https://a.klaviyo.com/api"
JSON_API = "application/vnd.api+json"

MOCK_WARNINGS = [
    "✅ Demo mode: Campaign preview created successfully!",
    "For production, ensure Klaviyo API key has proper permissions",
    "Check server logs for detailed API call information",
]
SUCCESS_INFO = [
    "🎉 Real campaign created in your Klaviyo account!",
    "Check your Klaviyo dashboard to see the draft campaign",
    "You can edit and send the campaign from Klaviyo",
]


def campaign_subject(theme: str) -> str:
    return f"🔥 {theme} Bundles - Limited Time!"


def campaign_preview(bundles: Sequence[Bundle], theme: str) -> Dict[str, Any]:
    average = (
        round(sum(bundle.discount_percent for bundle in bundles) / len(bundles))
        if bundles else 0
    )
    return {
        "subject": campaign_subject(theme),
        "bundleNames": [bundle.name for bundle in bundles],
        "totalValue": sum(bundle.target_price for bundle in bundles),
        "averageDiscount": average,
    }


class KlaviyoClient:
    """Minimal Klaviyo JSON:API client for templates and campaigns."""

    def __init__(
        self,
        settings: KlaviyoSettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = KLAVIYO_API_URL,
        timeout: float = 30.0,
    ):
        self.settings = settings
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return self.settings.configured

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.configured:
            raise IntegrationNotConfigured(SERVICE_NAME)
        headers = {
            "Authorization": f"Klaviyo-API-Key {self.settings.api_key}",
            "revision": self.settings.revision,
            "accept": JSON_API,
            "content-type": JSON_API,
        }
        try:
            response = await self._http.post(f"{self.base_url}{path}", json={"data": data}, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(SERVICE_NAME, str(exc) or type(exc).__name__) from exc

        if response.is_error:
            detail = response.text
            try:
                payload = response.json()
            except ValueError:
                payload = None
            errors = payload.get("errors") if isinstance(payload, dict) else None
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                detail = errors[0].get("detail") or detail
            raise UpstreamServiceError(
                SERVICE_NAME, f"POST {path}: {detail}", status_code=response.status_code, body=response.text
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamServiceError(
                SERVICE_NAME, f"POST {path}: response is not JSON", status_code=response.status_code, body=response.text
            ) from exc

    @staticmethod
    def _data(body: Any, path: str) -> Dict[str, Any]:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise UpstreamServiceError(SERVICE_NAME, f"POST {path}: response has no data object")
        return data

    async def create_template(self, name: str, html: str) -> str:
        body = await self._post("/templates/", {
            "type": "template",
            "attributes": {"name": name, "editor_type": "CODE", "html": html},
        })
        return self._data(body, "/templates/")["id"]

    async def create_campaign(self, name: str, subject: str, preview_text: str) -> Dict[str, str]:
        send_at = datetime.now(timezone.utc) + timedelta(days=1)
        body = await self._post("/campaigns/", {
            "type": "campaign",
            "attributes": {
                "name": name,
                "audiences": {"included": [self.settings.list_id] if self.settings.list_id else [], "excluded": []},
                "send_strategy": {"method": "static", "datetime": send_at.isoformat()},
                "campaign-messages": {
                    "data": [{
                        "type": "campaign-message",
                        "attributes": {
                            "definition": {
                                "channel": "email",
                                "label": name,
                                "content": {
                                    "subject": subject,
                                    "preview_text": preview_text,
                                    "from_email": self.settings.from_email,
                                    "from_label": self.settings.from_label,
                                },
                            },
                        },
                    }],
                },
            },
        })
        data = self._data(body, "/campaigns/")
        messages = ((data.get("relationships") or {}).get("campaign-messages") or {}).get("data") or []
        if not messages:
            raise UpstreamServiceError(SERVICE_NAME, "campaign created without a message")
        return {"campaign_id": data["id"], "message_id": messages[0]["id"]}

    async def assign_template(self, message_id: str, template_id: str) -> None:
        await self._post("/campaign-message-assign-template/", {
            "type": "campaign-message",
            "id": message_id,
            "relationships": {"template": {"data": {"type": "template", "id": template_id}}},
        })


class CampaignPublisher:
    def __init__(self, klaviyo: KlaviyoClient, *, storefront_url: str):
        self.klaviyo = klaviyo
        self.storefront_url = storefront_url

    def mock_campaign(self, name: str, subject: str, reason: str) -> Dict[str, Any]:
        return {
            "id": f"mock_{now_ms()}",
            "status": "mock_created",
            "name": name,
            "subject": subject,
            "reason": reason,
        }

    async def publish(
        self,
        bundles: List[Bundle],
        theme: str,
        custom_html: Optional[str] = None,
        bundle_creation_result: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        name = f"{theme} Bundle Campaign - {datetime.now(timezone.utc).date().isoformat()}"
        subject = campaign_subject(theme)

        if not self.klaviyo.configured:
            logger.warning("⚠️ Klaviyo: API key not configured, returning mock campaign")
            return self.mock_campaign(name, subject, "Klaviyo API key not configured")

        html = custom_html or render_campaign_html(
            bundles, theme, bundle_creation_result, storefront_url=self.storefront_url
        )
        logger.info(
            "📧 Klaviyo: Creating campaign %r (%d bundles, custom HTML: %s)",
            name,
            len(bundles),
            bool(custom_html),
        )

        try:
            template_id = await self.klaviyo.create_template(f"{name} Template", html)
            logger.info("✅ Klaviyo: Template created: %s", template_id)
            created = await self.klaviyo.create_campaign(
                name, subject, f"{len(bundles)} exclusive bundles for a limited time"
            )
            logger.info("✅ Klaviyo: Campaign created: %s", created["campaign_id"])
            await self.klaviyo.assign_template(created["message_id"], template_id)
        except (UpstreamServiceError, KeyError, TypeError) as exc:
            logger.error("❌ Klaviyo: Campaign creation failed, returning mock: %s", exc, exc_info=True)
            return self.mock_campaign(name, subject, str(exc))

        return {
            "id": created["campaign_id"],
            "status": "draft",
            "name": name,
            "subject": subject,
            "campaign": {
                "message_id": created["message_id"],
                "template_id": template_id,
            },
        }
