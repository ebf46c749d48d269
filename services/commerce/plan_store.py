"""
Plan Store
Persists generated campaign plans as commercetools custom objects.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from schemas.bundle_schemas import CampaignPlan
from services.commerce.client import CommerceClient
from services.errors import UpstreamServiceError
from utils import now_ms, random_suffix

logger = logging.getLogger(__name__)

PLAN_CONTAINER = "ai-campaigns"


def new_plan_id() -> str:
    return f"plan_{now_ms()}_{random_suffix()}"


class PlanStore:
    def __init__(self, client: CommerceClient):
        self.client = client

    async def save(self, plan_id: str, plan: CampaignPlan, product_count: int) -> Dict[str, Any]:
        value = {
            **plan.to_payload(),
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "productCount": product_count,
        }
        logger.info("💾 CT: Saving campaign plan %s (%d bundles)", plan_id, len(plan.bundles))
        return await self.client.upsert_custom_object(PLAN_CONTAINER, plan_id, value)

    async def get(self, plan_id: str) -> Optional[Dict[str, Any]]:
        try:
            stored = await self.client.get_custom_object(PLAN_CONTAINER, plan_id)
        except UpstreamServiceError as exc:
            if exc.is_not_found:
                return None
            raise
        return stored.get("value")
