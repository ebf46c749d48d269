"""
Checkout Session Creator
Creates one Stripe checkout session per discounted bundle.

The output keeps one entry per input, in input order: bundles whose discount
step failed (and so have no code) become failures in place rather than being
dropped.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Sequence
from urllib.parse import quote

from schemas.results import (
    BatchResult,
    BundleDiscountRecord,
    CheckoutAttempt,
    CheckoutSession,
    ItemFailure,
    ItemSuccess,
    Outcome,
)
from services.payments.stripe_client import StripePaymentClient, stripe_field
from utils import join_base_url

logger = logging.getLogger(__name__)

MAX_COUPON_REDEMPTIONS = 1000
ALLOWED_SHIPPING_COUNTRIES = ["US", "CA", "GB", "AU", "DE", "FR"]
NO_DISCOUNT_CODE = "No discount code available"


def _with_query(url: str, query: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def split_unit_amounts(target_price: int, sku_count: int) -> List[int]:
    """
    Even per-SKU split of the bundle price.

    Each line is ``round(target / n)``; the remainder is not reconciled, so the
    lines may sum to a few cents more or less than the target price.
    """
    if sku_count <= 0:
        return []
    unit = int(round(target_price / sku_count))
    return [unit] * sku_count


class CheckoutCreator:
    def __init__(self, payments: StripePaymentClient, *, public_base_url: str, currency_code: str = "USD"):
        self.payments = payments
        self.public_base_url = public_base_url
        self.currency = currency_code.lower()

    @property
    def enabled(self) -> bool:
        return self.payments.configured

    def build_line_items(self, record: BundleDiscountRecord) -> List[Dict[str, Any]]:
        bundle = record.bundle
        amounts = split_unit_amounts(bundle.target_price, len(bundle.skus))
        return [
            {
                "price_data": {
                    "currency": self.currency,
                    "product_data": {
                        "name": f"{bundle.name} - Item {index}",
                        "description": f"Part of {bundle.name} bundle",
                        "metadata": {
                            "sku": sku,
                            "bundleName": bundle.name,
                            "discountCode": record.discount_code,
                        },
                    },
                    "unit_amount": amount,
                },
                "quantity": 1,
            }
            for index, (sku, amount) in enumerate(zip(bundle.skus, amounts), start=1)
        ]

    async def create_checkout_session(
        self,
        record: BundleDiscountRecord,
        success_url: str,
        cancel_url: str,
        campaign_theme: str,
    ) -> CheckoutSession:
        bundle = record.bundle
        code = record.discount_code
        logger.info("💳 Stripe: Creating checkout session for bundle %r", bundle.name)

        coupon = await self.payments.create_coupon(
            name=f"{bundle.name} Bundle Discount"[:40],
            percent_off=bundle.discount_percent,
            duration="once",
            max_redemptions=MAX_COUPON_REDEMPTIONS,
            metadata={
                "bundleName": bundle.name,
                "discountCode": code,
                "campaignTheme": campaign_theme or "AI Generated Campaign",
            },
        )

        success_url = join_base_url(success_url, self.public_base_url)
        cancel_url = join_base_url(cancel_url, self.public_base_url)
        name_q = quote(bundle.name, safe="")
        code_q = quote(code, safe="")
        session = await self.payments.create_checkout_session(
            payment_method_types=["card"],
            line_items=self.build_line_items(record),
            mode="payment",
            success_url=_with_query(
                success_url,
                f"session_id={{CHECKOUT_SESSION_ID}}&bundle_name={name_q}&discount_code={code_q}",
            ),
            cancel_url=_with_query(cancel_url, f"bundle_name={name_q}"),
            discounts=[{"coupon": stripe_field(coupon, "id")}],
            metadata={
                "bundleName": bundle.name,
                "discountCode": code,
                "skus": ",".join(bundle.skus),
                "originalPrice": str(record.original_price),
                "targetPrice": str(bundle.target_price),
                "discountPercent": f"{bundle.discount_percent:g}",
            },
            shipping_address_collection={"allowed_countries": ALLOWED_SHIPPING_COUNTRIES},
        )

        session_id = stripe_field(session, "id")
        logger.info("✅ Stripe: Checkout session created: %s", session_id)
        return CheckoutSession(
            id=session_id,
            url=stripe_field(session, "url"),
            bundle=bundle,
            discount_code=code,
        )

    async def create_checkout_sessions(
        self,
        discounts: Sequence[Outcome],
        success_url: str,
        cancel_url: str,
        campaign_theme: str,
    ) -> BatchResult[CheckoutSession]:
        """One checkout outcome per discount outcome, in the same order."""
        start = time.time()
        logger.info("🛒 Stripe: Creating checkout sessions for %d bundles", len(discounts))
        outcomes: List[Outcome] = []

        for discount in discounts:
            if not discount.ok:
                bundle = discount.item
                logger.warning("⚠️ Stripe: Skipping bundle %r - %s", bundle.name, NO_DISCOUNT_CODE)
                outcomes.append(ItemFailure(item=CheckoutAttempt(bundle=bundle), reason=NO_DISCOUNT_CODE))
                continue

            record: BundleDiscountRecord = discount.value
            attempt = CheckoutAttempt(bundle=record.bundle, discount_code=record.discount_code)
            try:
                session = await self.create_checkout_session(record, success_url, cancel_url, campaign_theme)
            except Exception as exc:
                logger.error(
                    "⚠️ Stripe: Failed to create checkout for bundle %r: %s",
                    record.bundle.name,
                    exc,
                    exc_info=True,
                )
                outcomes.append(ItemFailure(item=attempt, reason=str(exc) or type(exc).__name__))
            else:
                outcomes.append(ItemSuccess(session))

        result: BatchResult[CheckoutSession] = BatchResult(items=outcomes)
        logger.info(
            "✅ Stripe: Checkout sessions completed in %dms: %d/%d successful",
            int((time.time() - start) * 1000),
            result.success_count,
            result.total_count,
        )
        return result

    async def verify_checkout_session(self, session_id: str) -> Dict[str, Any]:
        session = await self.payments.retrieve_checkout_session(
            session_id, expand=["line_items", "payment_intent"]
        )
        logger.info(
            "✅ Stripe: Session verified: %s, status: %s",
            session_id,
            stripe_field(session, "payment_status"),
        )
        line_items = stripe_field(session, "line_items") or {}
        return {
            "id": stripe_field(session, "id"),
            "status": stripe_field(session, "status"),
            "paymentStatus": stripe_field(session, "payment_status"),
            "amountTotal": stripe_field(session, "amount_total"),
            "currency": stripe_field(session, "currency"),
            "metadata": dict(stripe_field(session, "metadata") or {}),
            "lineItemCount": len(stripe_field(line_items, "data") or []),
        }
