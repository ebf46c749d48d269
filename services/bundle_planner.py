"""
Bundle Planner
Turns a theme and a catalog sample into a CampaignPlan with the chat model,
then enriches each bundle with child product images and a hero image.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import List, Sequence

from openai import AsyncOpenAI
from pydantic import ValidationError

from schemas.bundle_schemas import Bundle, CampaignPlan, CatalogItem, child_images_for
from services.bundle_images import BundleImageService
from services.errors import PlanningError
from services.ml.llm_utils import LLMSettings

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = "Generated bundle campaign strategy"
DEFAULT_AUDIENCE = "General audience"

SYSTEM_PROMPT = """You are a senior e-commerce merchandiser with 15+ years of experience.
Given products with stock/price/tags, propose 3-5 bundles that are likely to convert this week.

Each bundle must include:
- name: Catchy bundle name
- rationale: Why this bundle will work (2-3 sentences)
- skus: Array of product IDs to include
- targetPrice: Suggested bundle price in cents
- discountPercent: Discount percentage to apply
- emailBlurb: Marketing copy for email (50-80 words)
- heroImageIdea: Description of ideal hero image for this bundle

Also provide:
- overallStrategy: 2-3 sentence strategy for the campaign
- targetAudience: Who should receive this campaign

Return valid JSON only with this exact structure:
{
  "theme": "string",
  "bundles": [Bundle],
  "overallStrategy": "string",
  "targetAudience": "string"
}"""


def build_user_prompt(theme: str, catalog: Sequence[CatalogItem]) -> str:
    lines = [f"Theme: {theme}", "", "Available Products:"]
    for item in catalog:
        lines.append(
            f"- {item.name} (ID: {item.id})\n"
            f"    Price: {item.price} cents\n"
            f"    Stock: {item.stock}\n"
            f"    Tags: {', '.join(item.tags)}\n"
            f"    Main Image: {item.main_image or 'No image available'}"
        )
    lines.append("")
    lines.append(
        "Create compelling bundles that maximize conversion and AOV. Consider product images "
        "when creating bundles - products with good images should be prioritized for visual "
        "marketing appeal."
    )
    return "\n".join(lines)


def default_blurb(bundle_name: str) -> str:
    return f"Discover amazing savings with this {bundle_name.lower()} collection."


def parse_plan(content: str) -> CampaignPlan:
    """Parse and validate the model's JSON answer."""
    try:
        raw = json.loads(content or "{}")
    except json.JSONDecodeError as exc:
        raise PlanningError(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise PlanningError("Model returned a non-object plan")
    try:
        return CampaignPlan.model_validate(raw)
    except ValidationError as exc:
        raise PlanningError(f"Model returned an invalid plan: {exc.error_count()} validation errors") from exc


class BundlePlanner:
    def __init__(self, client: AsyncOpenAI, settings: LLMSettings, images: BundleImageService):
        self.client = client
        self.settings = settings
        self.images = images

    async def _complete(self, theme: str, catalog: Sequence[CatalogItem]) -> str:
        response = await self.client.chat.completions.create(
            model=self.settings.completion_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(theme, catalog)},
            ],
            response_format={"type": "json_object"},
            temperature=self.settings.completion_temperature,
        )
        if not response.choices:
            return "{}"
        return response.choices[0].message.content or "{}"

    async def _enrich(self, index: int, bundle: Bundle, theme: str, catalog: Sequence[CatalogItem]) -> Bundle:
        name = bundle.name.strip() or f"{theme} Bundle {index}"
        blurb = bundle.email_blurb.strip() or default_blurb(name)
        child_images = child_images_for(bundle, list(catalog))
        hero = await self.images.image_for_bundle(name, theme, child_images, catalog)
        return bundle.model_copy(update={
            "name": name,
            "email_blurb": blurb,
            "child_product_images": child_images,
            "bundle_image_url": hero,
        })

    async def plan_campaign(self, theme: str, catalog: Sequence[CatalogItem]) -> CampaignPlan:
        """
        Plan a bundle campaign for ``theme``.

        Raises:
            PlanningError: the model call failed or its answer is not a valid
                plan. No partial plan is returned.
        """
        start = time.time()
        logger.info("🧠 AI: Starting campaign planning for theme %r with %d products", theme, len(catalog))

        try:
            content = await self._complete(theme, catalog)
        except Exception as exc:
            logger.error("❌ AI: Error generating campaign plan: %s", exc, exc_info=True)
            raise PlanningError("Failed to generate campaign plan") from exc

        plan = parse_plan(content)
        logger.info("📝 AI: Parsed %d bundles, enriching with images", len(plan.bundles))

        bundles: List[Bundle] = list(await asyncio.gather(*[
            self._enrich(index, bundle, theme, catalog)
            for index, bundle in enumerate(plan.bundles, start=1)
        ]))

        final = CampaignPlan(
            theme=plan.theme or theme,
            bundles=bundles,
            overall_strategy=plan.overall_strategy or DEFAULT_STRATEGY,
            target_audience=plan.target_audience or DEFAULT_AUDIENCE,
        )
        logger.info(
            "🎯 AI: Campaign plan generated in %dms - %d bundles",
            int((time.time() - start) * 1000),
            len(final.bundles),
        )
        return final
