import pytest

from schemas.results import BundleDiscountRecord, ItemFailure, ItemSuccess
from services.payments.checkout import CheckoutCreator, split_unit_amounts

from conftest import FakePayments, make_bundle


def _record(bundle, code="FALL-COZY-1234"):
    return BundleDiscountRecord(
        bundle=bundle,
        original_price=6250,
        cart_discount_id="cd-1",
        discount_code_id="dc-1",
        discount_code=code,
        checkout_url="https://shop.example.com/checkout",
    )


def _creator(payments):
    return CheckoutCreator(payments, public_base_url="http://localhost:3000")


def test_split_unit_amounts_does_not_reconcile_remainder():
    assert split_unit_amounts(1000, 3) == [333, 333, 333]
    assert split_unit_amounts(1001, 2) == [500, 500]
    assert split_unit_amounts(1000, 0) == []


@pytest.mark.asyncio
async def test_bundle_without_code_fails_in_place(payments):
    first = make_bundle(name="First")
    broken = make_bundle(name="Broken")
    last = make_bundle(name="Last")
    outcomes = [
        ItemSuccess(_record(first)),
        ItemFailure(item=broken, reason="Failed to create discount code: boom"),
        ItemSuccess(_record(last)),
    ]

    result = await _creator(payments).create_checkout_sessions(outcomes, "/ok", "/cancel", "Fall")

    assert result.total_count == 3
    assert [outcome.ok for outcome in result.items] == [True, False, True]
    failed = result.items[1].to_payload()
    assert failed["id"] is None
    assert failed["status"] == "failed"
    assert failed["error"] == "No discount code available"
    assert failed["bundle"]["name"] == "Broken"
    assert [session.bundle.name for session in result.successes()] == ["First", "Last"]


@pytest.mark.asyncio
async def test_session_parameters(payments):
    bundle = make_bundle(name="Cozy Nights", skus=["a", "b", "c"], targetPrice=1000, discountPercent=20)
    result = await _creator(payments).create_checkout_sessions(
        [ItemSuccess(_record(bundle))], "/checkout/success", "https://shop.example.com/cancel", "Fall"
    )

    session = result.successes()[0]
    assert session.id == "cs_test_1"
    assert session.discount_code == "FALL-COZY-1234"

    coupon = payments.coupons[0]
    assert coupon["percent_off"] == 20
    assert coupon["duration"] == "once"
    assert coupon["max_redemptions"] == 1000
    assert coupon["metadata"]["campaignTheme"] == "Fall"

    params = payments.sessions[0]
    assert params["mode"] == "payment"
    assert params["payment_method_types"] == ["card"]
    assert params["discounts"] == [{"coupon": "coupon_1"}]
    assert [item["price_data"]["unit_amount"] for item in params["line_items"]] == [333, 333, 333]
    assert params["line_items"][0]["price_data"]["product_data"]["metadata"] == {
        "sku": "a", "bundleName": "Cozy Nights", "discountCode": "FALL-COZY-1234",
    }
    assert params["success_url"] == (
        "http://localhost:3000/checkout/success?session_id={CHECKOUT_SESSION_ID}"
        "&bundle_name=Cozy%20Nights&discount_code=FALL-COZY-1234"
    )
    assert params["cancel_url"] == "https://shop.example.com/cancel?bundle_name=Cozy%20Nights"
    assert params["shipping_address_collection"] == {"allowed_countries": ["US", "CA", "GB", "AU", "DE", "FR"]}
    assert params["metadata"]["skus"] == "a,b,c"
    assert params["metadata"]["originalPrice"] == "6250"


@pytest.mark.asyncio
async def test_provider_error_is_captured_per_bundle():
    payments = FakePayments(fail_bundles={"Declined"})
    outcomes = [ItemSuccess(_record(make_bundle(name="Declined"))), ItemSuccess(_record(make_bundle(name="Fine")))]

    result = await _creator(payments).create_checkout_sessions(outcomes, "/ok", "/cancel", "Fall")

    assert [outcome.ok for outcome in result.items] == [False, True]
    failed = result.items[0].to_payload()
    assert failed["id"] is None
    assert failed["discountCode"] == "FALL-COZY-1234"
    assert "card_declined" in failed["error"]


@pytest.mark.asyncio
async def test_verify_checkout_session(payments):
    summary = await _creator(payments).verify_checkout_session("cs_test_9")
    assert summary["id"] == "cs_test_9"
    assert summary["paymentStatus"] == "paid"
    assert summary["lineItemCount"] == 2
