"""
Apply Router
Dry-run price changes for a campaign plan. Never mutates prices.
"""
from fastapi import APIRouter
from pydantic import BaseModel
from typing import List
import logging

from schemas.bundle_schemas import Bundle
from services.price_drafts import build_price_drafts

logger = logging.getLogger(__name__)
router = APIRouter()


class ApplyPlan(BaseModel):
    bundles: List[Bundle]


class ApplyRequest(BaseModel):
    plan: ApplyPlan
    dryRun: bool = True


@router.post("/apply")
async def apply_plan(request: ApplyRequest):
    logger.info(f"Processing {len(request.plan.bundles)} bundles for price changes (dry run: {request.dryRun})")
    result = build_price_drafts(request.plan.bundles, request.dryRun)
    logger.info("Price draft analysis complete")
    return result


@router.get("/apply")
async def apply_usage():
    return {"message": "POST to this endpoint with a campaign plan to preview/apply changes"}
