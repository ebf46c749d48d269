"""
Discount/Code Creator
Creates a conditional cart discount and a bound single-use discount code per
bundle, plus a storefront checkout link carrying the code.
"""
from __future__ import annotations

import logging
from typing import List
from urllib.parse import urlencode

from schemas.bundle_schemas import Bundle
from schemas.results import BatchResult, BundleDiscountRecord
from services.batch import run_batch
from services.commerce.client import CommerceClient
from utils import now_ms, unique_key

logger = logging.getLogger(__name__)

MAX_CODE_APPLICATIONS = 1000
MAX_APPLICATIONS_PER_CUSTOMER = 1
CART_DISCOUNT_SORT_ORDER = "0.9"


def estimate_original_price(target_price: int, discount_percent: float) -> int:
    """
    Back out the pre-discount price from the bundle's target price.

    An estimate, not a price lookup. A 100% (or larger) discount has no
    finite original price; the target price is returned unchanged.
    """
    if discount_percent >= 100:
        return target_price
    return int(round(target_price / (1 - discount_percent / 100)))


def _sku_list(skus: List[str]) -> str:
    return ", ".join(f'"{sku}"' for sku in skus)


def build_cart_predicate(skus: List[str]) -> str:
    """Predicate that holds only when every bundle SKU is in the cart."""
    sku_list = _sku_list(skus)
    return (
        f"lineItems(sku in ({sku_list})) and "
        f"lineItems(sku in ({sku_list})).count() = {len(skus)}"
    )


def build_discount_code(campaign_theme: str, bundle_name: str) -> str:
    theme_part = "".join(campaign_theme.split()).upper()
    name_part = "".join(bundle_name.split()).upper()
    return f"{theme_part}-{name_part}-{str(now_ms())[-4:]}"


def build_checkout_url(checkout_base: str, skus: List[str], discount_code: str) -> str:
    query = [("sku", sku) for sku in skus]
    query.extend([("discount", discount_code), ("bundle", "true")])
    return f"{checkout_base}?{urlencode(query)}"


class DiscountCreator:
    def __init__(self, client: CommerceClient, *, checkout_url: str, currency_code: str = "USD"):
        self.client = client
        self.checkout_url = checkout_url
        self.currency_code = currency_code

    def build_cart_discount_draft(self, bundle: Bundle, original_price: int, campaign_theme: str) -> dict:
        return {
            "key": unique_key("bundle-discount"),
            "name": {"en": f"{bundle.name} Bundle Discount"},
            "description": {"en": f"Auto-discount for {bundle.name} bundle in {campaign_theme} campaign"},
            "value": {
                "type": "absolute",
                "money": [{
                    "currencyCode": self.currency_code,
                    "centAmount": max(0, original_price - bundle.target_price),
                }],
            },
            "cartPredicate": build_cart_predicate(bundle.skus),
            "target": {
                "type": "lineItems",
                "predicate": f"sku in ({_sku_list(bundle.skus)})",
            },
            "isActive": True,
            "requiresDiscountCode": True,
            "sortOrder": CART_DISCOUNT_SORT_ORDER,
        }

    def build_discount_code_draft(self, bundle: Bundle, cart_discount_id: str, code: str) -> dict:
        return {
            "key": unique_key("bundle-code"),
            "name": {"en": f"{bundle.name} Bundle Code"},
            "description": {"en": f"Discount code for {bundle.name} bundle"},
            "code": code,
            "cartDiscounts": [{"typeId": "cart-discount", "id": cart_discount_id}],
            "isActive": True,
            "maxApplicationsPerCustomer": MAX_APPLICATIONS_PER_CUSTOMER,
            "maxApplications": MAX_CODE_APPLICATIONS,
        }

    async def create_bundle_discount(self, bundle: Bundle, campaign_theme: str) -> BundleDiscountRecord:
        original_price = estimate_original_price(bundle.target_price, bundle.discount_percent)

        logger.info("🎫 CT: Creating cart discount for bundle %r", bundle.name)
        cart_discount = await self.client.create_cart_discount(
            self.build_cart_discount_draft(bundle, original_price, campaign_theme)
        )

        code = build_discount_code(campaign_theme, bundle.name)
        logger.info("🔑 CT: Creating discount code %s for bundle %r", code, bundle.name)
        discount_code = await self.client.create_discount_code(
            self.build_discount_code_draft(bundle, cart_discount["id"], code)
        )

        return BundleDiscountRecord(
            bundle=bundle,
            original_price=original_price,
            cart_discount_id=cart_discount["id"],
            discount_code_id=discount_code["id"],
            discount_code=code,
            checkout_url=build_checkout_url(self.checkout_url, bundle.skus, code),
        )

    async def create_bundle_discounts(
        self, bundles: List[Bundle], campaign_theme: str
    ) -> BatchResult[BundleDiscountRecord]:
        logger.info(
            "🎯 CT: Creating discounts and codes for %d bundles in %r campaign",
            len(bundles),
            campaign_theme,
        )

        async def _create(bundle: Bundle) -> BundleDiscountRecord:
            return await self.create_bundle_discount(bundle, campaign_theme)

        return await run_batch(
            bundles,
            _create,
            label="bundle discount",
            failure_prefix="Failed to create discount code",
            describe=lambda bundle: bundle.name,
        )
