import pytest
from pydantic import ValidationError

from schemas.bundle_schemas import Bundle, CampaignPlan, CatalogItem, child_images_for

from conftest import make_bundle


def test_bundle_accepts_wire_names_and_rounds_price():
    bundle = Bundle.model_validate({
        "name": "Cozy",
        "skus": ["a", " b ", ""],
        "targetPrice": 4999.6,
        "discountPercent": 15,
        "emailBlurb": None,
    })
    assert bundle.target_price == 5000
    assert bundle.skus == ["a", "b"]
    assert bundle.email_blurb == ""
    assert bundle.to_payload()["targetPrice"] == 5000


@pytest.mark.parametrize("overrides", [
    {"skus": []},
    {"skus": ["  "]},
    {"targetPrice": 0},
    {"discountPercent": 120},
])
def test_bundle_rejects_invalid_values(overrides):
    with pytest.raises(ValidationError):
        make_bundle(**overrides)


def test_catalog_item_payload_keeps_null_main_image():
    item = CatalogItem(id="x", name="X")
    assert item.to_payload()["mainImage"] is None


def test_child_images_follow_sku_order_and_skip_misses(catalog):
    bundle = make_bundle(skus=["sku-2", "missing", "sku-3", "sku-1"])
    assert child_images_for(bundle, catalog) == [
        "https://img.example.com/mug.jpg",
        "https://img.example.com/blanket.jpg",
    ]


def test_campaign_plan_defaults():
    plan = CampaignPlan.model_validate({"bundles": [], "overallStrategy": None})
    assert plan.theme == ""
    assert plan.overall_strategy == ""
