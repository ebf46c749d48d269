import httpx
import pytest

from services.commerce.catalog import CatalogReader, to_catalog_item
from services.commerce.client import CommerceClient
from services.commerce.plan_store import PLAN_CONTAINER, PlanStore, new_plan_id
from services.errors import IntegrationNotConfigured, UpstreamServiceError
from schemas.bundle_schemas import CampaignPlan
from settings import CommerceSettings

from conftest import FakeCommerceClient, make_app_settings, make_bundle


def _client(handler, settings=None):
    settings = settings or make_app_settings().commerce
    return CommerceClient(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _product(**overrides):
    product = {
        "id": "p-1",
        "key": "blanket",
        "masterData": {"current": {
            "name": {"en": "Wool Blanket"},
            "categories": [{"id": "cat-home", "typeId": "category"}],
            "masterVariant": {
                "prices": [{"value": {"centAmount": 3000, "currencyCode": "USD"}}],
                "images": [{"url": "https://img/1.jpg"}, {"url": "https://img/2.jpg"}],
                "availability": {"availableQuantity": 7},
            },
        }},
    }
    product.update(overrides)
    return product


class TestCommerceClient:
    @pytest.mark.asyncio
    async def test_token_is_cached_between_calls(self):
        calls = {"token": 0, "api": 0}

        def handler(request):
            if request.url.path == "/oauth/token":
                calls["token"] += 1
                assert b"manage_project%3Ademo-project" in request.content
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            calls["api"] += 1
            assert request.headers["Authorization"] == "Bearer tok"
            assert request.url.path == "/demo-project/products"
            return httpx.Response(200, json={"results": [_product()]})

        client = _client(handler)
        await client.query_products(limit=5)
        products = await client.query_products(limit=5)

        assert calls == {"token": 1, "api": 2}
        assert products[0]["id"] == "p-1"

    @pytest.mark.asyncio
    async def test_error_mapping(self):
        def handler(request):
            if request.url.path == "/oauth/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(400, json={
                "statusCode": 400,
                "message": "A duplicate value exists",
                "errors": [{"code": "DuplicateField", "field": "key"}],
            })

        with pytest.raises(UpstreamServiceError) as exc_info:
            await _client(handler).create_product_type({"key": "x"})

        error = exc_info.value
        assert error.status_code == 400
        assert error.code == "DuplicateField"
        assert error.is_conflict
        assert "A duplicate value exists" in str(error)

    @pytest.mark.asyncio
    async def test_unconfigured_client_raises(self):
        settings = CommerceSettings(
            project_key=None, client_id=None, client_secret=None,
            auth_url="https://auth", api_url="https://api", scopes=None,
        )
        with pytest.raises(IntegrationNotConfigured):
            await _client(lambda request: httpx.Response(500), settings).query_products()


def test_to_catalog_item_maps_fields():
    item = to_catalog_item(_product())
    assert item.id == "p-1"
    assert item.name == "Wool Blanket"
    assert item.price == 3000
    assert item.stock == 7
    assert item.tags == ["cat-home"]
    assert item.images == ["https://img/1.jpg", "https://img/2.jpg"]
    assert item.main_image == "https://img/1.jpg"


def test_to_catalog_item_defaults():
    bare = {"id": "p-2", "key": "mystery", "masterData": {"current": {"masterVariant": {}}}}
    item = to_catalog_item(bare)
    assert item.name == "mystery"
    assert item.price == 0
    assert item.stock == 100
    assert item.main_image is None

    nameless = {"id": "p-3", "masterData": {"current": {}}}
    assert to_catalog_item(nameless).name == "Unnamed Product"


@pytest.mark.asyncio
async def test_catalog_reader_skips_malformed_products():
    reader = CatalogReader(FakeCommerceClient(products=[_product(), {"key": "no-id"}]))
    items = await reader.fetch_catalog_sample(limit=10)
    assert [item.id for item in items] == ["p-1"]


@pytest.mark.asyncio
async def test_plan_store_round_trip(commerce):
    store = PlanStore(commerce)
    plan_id = new_plan_id()
    plan = CampaignPlan(theme="Fall", bundles=[make_bundle()], overall_strategy="s", target_audience="a")

    await store.save(plan_id, plan, product_count=12)
    stored = await store.get(plan_id)

    assert (PLAN_CONTAINER, plan_id) in commerce.custom_objects
    assert stored["theme"] == "Fall"
    assert stored["productCount"] == 12
    assert stored["bundles"][0]["targetPrice"] == 5000
    assert "createdAt" in stored
    assert await store.get("plan_missing") is None


def test_plan_id_format():
    plan_id = new_plan_id()
    prefix, millis, suffix = plan_id.split("_")
    assert prefix == "plan"
    assert millis.isdigit()
    assert len(suffix) == 9
