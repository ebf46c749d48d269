import json

import httpx
import pytest

from services.bundle_images import BundleImageService, placeholder_image
from services.bundle_planner import BundlePlanner, build_user_prompt
from services.errors import PlanningError

from conftest import FakeImages, FakeOpenAI, make_llm_settings


def _plan_json(**overrides):
    plan = {
        "theme": "Fall Essentials",
        "bundles": [
            {
                "name": "Cozy Nights",
                "rationale": "Warm",
                "skus": ["sku-1", "sku-2"],
                "targetPrice": 4000,
                "discountPercent": 20,
                "emailBlurb": "Stay warm.",
                "heroImageIdea": "Blanket",
            },
            {
                "name": "  ",
                "rationale": "Gift",
                "skus": ["sku-3"],
                "targetPrice": 2000,
                "discountPercent": 10,
                "emailBlurb": "",
                "heroImageIdea": "Card",
            },
        ],
        "overallStrategy": "Lean into comfort",
        "targetAudience": "Homebodies",
    }
    plan.update(overrides)
    return json.dumps(plan)


class _NoDownloadImages(BundleImageService):
    async def save_image_locally(self, image_url, bundle_name, theme):
        return f"/bundle-images/{bundle_name}.jpg"


def _planner(client, tmp_path):
    settings = make_llm_settings()
    images = _NoDownloadImages(client, settings, static_dir=str(tmp_path))
    return BundlePlanner(client, settings, images)


def test_user_prompt_lists_catalog(catalog):
    prompt = build_user_prompt("Fall", catalog)
    assert "- Wool Blanket (ID: sku-1)" in prompt
    assert "Price: 3000 cents" in prompt
    assert "Main Image: No image available" in prompt


@pytest.mark.asyncio
async def test_plan_campaign_end_to_end(catalog, tmp_path):
    client = FakeOpenAI(completions=[_plan_json()])
    plan = await _planner(client, tmp_path).plan_campaign("Fall Essentials", catalog)

    assert len(plan.bundles) == 2
    first, second = plan.bundles
    assert first.child_product_images == [
        "https://img.example.com/blanket.jpg",
        "https://img.example.com/mug.jpg",
    ]
    assert first.bundle_image_url == "/bundle-images/Cozy Nights.jpg"

    # synthesised name and blurb, no images -> placeholder without a model call
    assert second.name == "Fall Essentials Bundle 2"
    assert second.email_blurb == "Discover amazing savings with this fall essentials bundle 2 collection."
    assert second.child_product_images == []
    assert second.bundle_image_url == placeholder_image("Fall Essentials Bundle 2")
    assert len(client.images.calls) == 1

    call = client.chat.completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert call["temperature"] == 0.7


@pytest.mark.asyncio
async def test_plan_level_defaults(catalog, tmp_path):
    content = _plan_json(theme="", overallStrategy=None, targetAudience="")
    plan = await _planner(FakeOpenAI(completions=[content]), tmp_path).plan_campaign("Winter", catalog)
    assert plan.theme == "Winter"
    assert plan.overall_strategy == "Generated bundle campaign strategy"
    assert plan.target_audience == "General audience"


@pytest.mark.asyncio
async def test_image_failure_falls_back_to_first_child_image(catalog, tmp_path):
    client = FakeOpenAI(
        completions=[_plan_json()],
        images=FakeImages(error=RuntimeError("content policy")),
    )
    plan = await _planner(client, tmp_path).plan_campaign("Fall Essentials", catalog)
    assert plan.bundles[0].bundle_image_url == "https://img.example.com/blanket.jpg"


@pytest.mark.asyncio
async def test_empty_image_response_falls_back(catalog, tmp_path):
    client = FakeOpenAI(completions=[_plan_json()], images=FakeImages(url=None))
    plan = await _planner(client, tmp_path).plan_campaign("Fall Essentials", catalog)
    assert plan.bundles[0].bundle_image_url == "https://img.example.com/blanket.jpg"


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    "not json",
    "[]",
    json.dumps({"bundles": [{"name": "x", "skus": [], "targetPrice": 100, "discountPercent": 5}]}),
    json.dumps({"bundles": [{"name": "x", "skus": ["a"]}]}),
])
async def test_invalid_model_output_raises(catalog, tmp_path, content):
    with pytest.raises(PlanningError):
        await _planner(FakeOpenAI(completions=[content]), tmp_path).plan_campaign("Fall", catalog)


@pytest.mark.asyncio
async def test_model_error_raises_planning_error(catalog, tmp_path):
    client = FakeOpenAI(completions=[RuntimeError("rate limited")])
    with pytest.raises(PlanningError):
        await _planner(client, tmp_path).plan_campaign("Fall", catalog)


@pytest.mark.asyncio
async def test_download_crash_keeps_remote_image_url(catalog, tmp_path):
    def handler(request):
        raise RuntimeError("stream reset by peer")

    client = FakeOpenAI(completions=[_plan_json()])
    settings = make_llm_settings()
    download_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    images = BundleImageService(client, settings, static_dir=str(tmp_path), http_client=download_client)

    plan = await BundlePlanner(client, settings, images).plan_campaign("Fall Essentials", catalog)

    assert plan.bundles[0].bundle_image_url == "https://images.example.com/generated.png"
