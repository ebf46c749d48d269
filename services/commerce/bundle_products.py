"""
Bundle Product Creator
Creates one commercetools product per planned bundle.

Before the batch runs, the bundle product type and the standard tax category
are provisioned with get-or-create semantics. Provisioning failures fail the
request; per-bundle failures are recorded and the batch continues.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from schemas.bundle_schemas import Bundle
from schemas.results import BatchResult, BundleProductRecord
from services.batch import run_batch
from services.commerce.client import CommerceClient
from services.errors import UpstreamServiceError
from utils import now_ms, sanitize_text, slugify, to_absolute_url, unique_key

logger = logging.getLogger(__name__)

BUNDLE_PRODUCT_TYPE_KEY = "ai-bundle-product-type"
BUNDLE_PRODUCT_TYPE_NAME = "AI Bundle Product"
STANDARD_TAX_CATEGORY_KEY = "standard-tax-category"
STANDARD_TAX_CATEGORY_NAME = "Standard Tax"
LOCALES = ("en", "en-US", "en-GB")

BUNDLE_IMAGE_DIMENSIONS = {"w": 800, "h": 600}
CHILD_IMAGE_DIMENSIONS = {"w": 600, "h": 400}


def _attribute(name: str, label: str, type_: Dict[str, Any], input_hint: Optional[str] = "SingleLine") -> Dict[str, Any]:
    definition = {
        "name": name,
        "label": {"en": label},
        "type": type_,
        "attributeConstraint": "None",
        "isSearchable": True,
        "isRequired": False,
    }
    if input_hint:
        definition["inputHint"] = input_hint
    return definition


PRODUCT_TYPE_DRAFT: Dict[str, Any] = {
    "key": BUNDLE_PRODUCT_TYPE_KEY,
    "name": BUNDLE_PRODUCT_TYPE_NAME,
    "description": "Product type for AI-generated bundle products",
    "attributes": [
        _attribute("bundleSkus", "Bundle SKUs", {"name": "set", "elementType": {"name": "text"}}, "MultiLine"),
        _attribute("discountPercent", "Discount Percentage", {"name": "number"}),
        _attribute("campaignTheme", "Campaign Theme", {"name": "text"}),
        _attribute("aiGenerated", "AI Generated", {"name": "boolean"}, None),
    ],
}

TAX_CATEGORY_DRAFT: Dict[str, Any] = {
    "key": STANDARD_TAX_CATEGORY_KEY,
    "name": STANDARD_TAX_CATEGORY_NAME,
    "description": "Standard tax category for AI-generated bundle products",
    "rates": [
        {
            "name": "Standard Rate",
            "amount": 0.20,
            "includedInPrice": False,
            "country": "US",
            "state": "NY",
        }
    ],
}


async def ensure_resource(
    label: str,
    key: str,
    get: Callable[[str], Awaitable[Dict[str, Any]]],
    create: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]],
    draft: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Idempotent get-or-create keyed by ``key``.

    A create that loses a race to a concurrent caller answers with a conflict;
    in that case the winner's resource is read back instead of failing.
    """
    try:
        existing = await get(key)
        logger.info("✅ CT: %s already exists: %s", label, existing.get("id"))
        return existing
    except UpstreamServiceError as exc:
        if not exc.is_not_found:
            raise

    logger.info("🆕 CT: Creating %s %s...", label, key)
    try:
        created = await create(draft)
    except UpstreamServiceError as exc:
        if not exc.is_conflict:
            raise
        logger.warning("⚠️ CT: %s %s was created concurrently; re-reading", label, key)
        return await get(key)

    logger.info("✅ CT: %s created: %s", label, created.get("id"))
    return created


def _localized(text: str) -> Dict[str, str]:
    return {locale: text for locale in LOCALES}


@dataclass
class BundleProductBatch:
    """Outcome of a bundle product run plus the product type it used."""

    result: BatchResult[BundleProductRecord]
    product_type: Dict[str, Any]

    def to_payload(self) -> Dict[str, Any]:
        return self.result.to_payload(
            productType={
                "id": self.product_type.get("id"),
                "key": self.product_type.get("key"),
                "name": self.product_type.get("name"),
            }
        )


class BundleProductCreator:
    """Creates catalog products for bundles."""

    def __init__(self, client: CommerceClient, *, public_base_url: str, currency_code: str = "USD"):
        self.client = client
        self.public_base_url = public_base_url
        self.currency_code = currency_code

    async def ensure_bundle_product_type(self) -> Dict[str, Any]:
        return await ensure_resource(
            "bundle product type",
            BUNDLE_PRODUCT_TYPE_KEY,
            self.client.get_product_type_by_key,
            self.client.create_product_type,
            PRODUCT_TYPE_DRAFT,
        )

    async def ensure_standard_tax_category(self) -> Dict[str, Any]:
        return await ensure_resource(
            "standard tax category",
            STANDARD_TAX_CATEGORY_KEY,
            self.client.get_tax_category_by_key,
            self.client.create_tax_category,
            TAX_CATEGORY_DRAFT,
        )

    def _images(self, bundle: Bundle, bundle_name: str) -> List[Dict[str, Any]]:
        images: List[Dict[str, Any]] = []

        if bundle.bundle_image_url:
            url = to_absolute_url(bundle.bundle_image_url, self.public_base_url)
            if url:
                images.append({
                    "url": url,
                    "label": f"{bundle_name} - Bundle Image",
                    "dimensions": dict(BUNDLE_IMAGE_DIMENSIONS),
                })
            else:
                logger.warning("⚠️ CT: Skipping invalid bundle image URL for %r", bundle_name)

        for index, image_url in enumerate(bundle.child_product_images, start=1):
            url = to_absolute_url(image_url, self.public_base_url)
            if not url:
                logger.warning("  - Skipping invalid child image %d: %r", index, image_url)
                continue
            images.append({
                "url": url,
                "label": f"{bundle_name} - Product {index}",
                "dimensions": dict(CHILD_IMAGE_DIMENSIONS),
            })

        return images

    def build_product_draft(
        self,
        bundle: Bundle,
        product_type: Dict[str, Any],
        tax_category: Dict[str, Any],
        campaign_theme: str,
    ) -> Dict[str, Any]:
        """Assemble the ProductDraft body for one bundle."""
        bundle_name = sanitize_text(bundle.name) or f"{sanitize_text(campaign_theme)} Bundle {now_ms()}"
        description = sanitize_text(bundle.email_blurb) or f"AI-generated bundle for {sanitize_text(campaign_theme)} campaign"
        slug = slugify(bundle_name)
        images = self._images(bundle, bundle_name)

        variant: Dict[str, Any] = {
            "sku": unique_key("bundle"),
            "prices": [{
                "value": {
                    "currencyCode": self.currency_code,
                    "centAmount": int(round(bundle.target_price)),
                }
            }],
            "attributes": [
                {"name": "bundleSkus", "value": list(bundle.skus)},
                {"name": "discountPercent", "value": bundle.discount_percent},
                {"name": "campaignTheme", "value": sanitize_text(campaign_theme)},
                {"name": "aiGenerated", "value": True},
            ],
        }
        if images:
            variant["images"] = images

        return {
            "key": unique_key("bundle"),
            "productType": {"typeId": "product-type", "id": product_type["id"]},
            "taxCategory": {"typeId": "tax-category", "id": tax_category["id"]},
            "name": _localized(bundle_name),
            "description": _localized(description),
            "slug": _localized(slug),
            "masterVariant": variant,
        }

    async def create_bundle_product(
        self,
        bundle: Bundle,
        product_type: Dict[str, Any],
        tax_category: Dict[str, Any],
        campaign_theme: str,
    ) -> BundleProductRecord:
        draft = self.build_product_draft(bundle, product_type, tax_category, campaign_theme)
        logger.info(
            "🛍️ CT: Creating bundle product %r with %d images",
            draft["name"]["en"],
            len(draft["masterVariant"].get("images", [])),
        )
        product = await self.client.create_product(draft)

        current = (product.get("masterData") or {}).get("current") or {}
        variant = current.get("masterVariant") or {}
        logger.info("✅ CT: Bundle product created: %s", product.get("id"))
        return BundleProductRecord(
            bundle=bundle,
            product_id=product["id"],
            product_key=product.get("key"),
            sku=variant.get("sku"),
            slug=(current.get("slug") or {}).get("en"),
            product_images=variant.get("images") or [],
        )

    async def create_bundle_products(self, bundles: List[Bundle], campaign_theme: str) -> BundleProductBatch:
        logger.info("🎯 CT: Creating %d bundle products for campaign %r", len(bundles), campaign_theme)

        product_type = await self.ensure_bundle_product_type()
        tax_category = await self.ensure_standard_tax_category()

        async def _create(bundle: Bundle) -> BundleProductRecord:
            return await self.create_bundle_product(bundle, product_type, tax_category, campaign_theme)

        result = await run_batch(
            bundles,
            _create,
            label="bundle product",
            failure_prefix="Failed to create in commercetools",
            describe=lambda bundle: bundle.name or f"{campaign_theme} Bundle",
        )
        return BundleProductBatch(result=result, product_type=product_type)
