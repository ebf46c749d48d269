"""
Shared fakes for the integration clients.

The fakes record every call so tests can assert on the payloads sent to
commercetools, Stripe, OpenAI and Klaviyo without any network access.
"""
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.bundle_schemas import Bundle, CatalogItem
from services.errors import UpstreamServiceError
from services.ml.llm_utils import LLMSettings
from settings import AppSettings, CommerceSettings, KlaviyoSettings


def make_bundle(**overrides: Any) -> Bundle:
    data = {
        "name": "Cozy Nights",
        "rationale": "Pairs well",
        "skus": ["sku-1", "sku-2"],
        "targetPrice": 5000,
        "discountPercent": 20,
        "emailBlurb": "Stay warm this fall.",
        "heroImageIdea": "Blanket and mug",
    }
    data.update(overrides)
    return Bundle.model_validate(data)


def make_catalog() -> List[CatalogItem]:
    return [
        CatalogItem(id="sku-1", name="Wool Blanket", price=3000, stock=5, tags=["home"],
                    images=["https://img.example.com/blanket.jpg"], main_image="https://img.example.com/blanket.jpg"),
        CatalogItem(id="sku-2", name="Ceramic Mug", price=1500, stock=12, tags=["kitchen"],
                    images=["https://img.example.com/mug.jpg"], main_image="https://img.example.com/mug.jpg"),
        CatalogItem(id="sku-3", name="Gift Card", price=2500, stock=100, tags=[], images=[], main_image=None),
    ]


def make_llm_settings(api_key: str = "sk-test") -> LLMSettings:
    return LLMSettings(
        api_key=api_key,
        completion_model="gpt-4o-mini",
        completion_temperature=0.7,
        polish_temperature=0.5,
        image_model="dall-e-3",
        image_size="1024x1024",
        image_quality="standard",
    )


def make_app_settings(tmp_path: Optional[Path] = None, stripe_key: Optional[str] = "sk_test_123") -> AppSettings:
    return AppSettings(
        commerce=CommerceSettings(
            project_key="demo-project",
            client_id="client",
            client_secret="secret",
            auth_url="https://auth.example.com",
            api_url="https://api.example.com",
            scopes=None,
        ),
        klaviyo=KlaviyoSettings(
            api_key=None,
            list_id=None,
            from_email="bundles@example.com",
            from_label="Co-Pilot",
            revision="2024-10-15",
        ),
        stripe_secret_key=stripe_key,
        email_polish_url="https://polish.example.com/optimize",
        public_base_url="http://localhost:3000",
        checkout_url="https://shop.example.com/checkout",
        storefront_url="https://shop.example.com",
        currency_code="USD",
        static_dir=str(tmp_path or "public"),
        image_download_timeout_s=5.0,
        cors_origins=("http://localhost:3000",),
    )


class FakeCommerceClient:
    """In-memory stand-in for CommerceClient."""

    configured = True
    project_key = "demo-project"

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None):
        self.products = products or []
        self.product_types: Dict[str, Dict[str, Any]] = {}
        self.tax_categories: Dict[str, Dict[str, Any]] = {}
        self.custom_objects: Dict[tuple, Dict[str, Any]] = {}
        self.created_products: List[Dict[str, Any]] = []
        self.cart_discounts: List[Dict[str, Any]] = []
        self.discount_codes: List[Dict[str, Any]] = []
        self.fail_product_names: set = set()
        self.fail_discount_names: set = set()

    async def aclose(self) -> None:
        pass

    async def query_products(self, limit: int = 40, expand=()):
        return self.products[:limit]

    async def get_product_type_by_key(self, key):
        if key not in self.product_types:
            raise UpstreamServiceError("commercetools", "not found", status_code=404)
        return self.product_types[key]

    async def create_product_type(self, draft):
        created = {"id": f"pt-{len(self.product_types) + 1}", **draft}
        self.product_types[draft["key"]] = created
        return created

    async def get_tax_category_by_key(self, key):
        if key not in self.tax_categories:
            raise UpstreamServiceError("commercetools", "not found", status_code=404)
        return self.tax_categories[key]

    async def create_tax_category(self, draft):
        created = {"id": f"tc-{len(self.tax_categories) + 1}", **draft}
        self.tax_categories[draft["key"]] = created
        return created

    async def create_product(self, draft):
        if draft["name"]["en"] in self.fail_product_names:
            raise UpstreamServiceError("commercetools", "InvalidInput", status_code=400)
        self.created_products.append(draft)
        return {
            "id": f"prod-{len(self.created_products)}",
            "key": draft["key"],
            "masterData": {"current": {
                "slug": draft["slug"],
                "masterVariant": draft["masterVariant"],
            }},
        }

    async def upsert_custom_object(self, container, key, value):
        stored = {"container": container, "key": key, "value": json.loads(json.dumps(value))}
        self.custom_objects[(container, key)] = stored
        return stored

    async def get_custom_object(self, container, key):
        if (container, key) not in self.custom_objects:
            raise UpstreamServiceError("commercetools", "not found", status_code=404)
        return self.custom_objects[(container, key)]

    async def create_cart_discount(self, draft):
        if draft["name"]["en"].replace(" Bundle Discount", "") in self.fail_discount_names:
            raise UpstreamServiceError("commercetools", "predicate rejected", status_code=400)
        self.cart_discounts.append(draft)
        return {"id": f"cd-{len(self.cart_discounts)}", **draft}

    async def create_discount_code(self, draft):
        self.discount_codes.append(draft)
        return {"id": f"dc-{len(self.discount_codes)}", **draft}


class FakePayments:
    """Stand-in for StripePaymentClient recording coupon and session calls."""

    def __init__(self, configured: bool = True, fail_bundles=()):
        self.configured = configured
        self.fail_bundles = set(fail_bundles)
        self.coupons: List[Dict[str, Any]] = []
        self.sessions: List[Dict[str, Any]] = []

    async def create_coupon(self, **params):
        self.coupons.append(params)
        return {"id": f"coupon_{len(self.coupons)}"}

    async def create_checkout_session(self, **params):
        if params["metadata"]["bundleName"] in self.fail_bundles:
            raise UpstreamServiceError("stripe", "card_declined", status_code=402)
        self.sessions.append(params)
        number = len(self.sessions)
        return {"id": f"cs_test_{number}", "url": f"https://checkout.stripe.com/c/pay/cs_test_{number}"}

    async def retrieve_checkout_session(self, session_id, expand=()):
        return {
            "id": session_id,
            "status": "complete",
            "payment_status": "paid",
            "amount_total": 4000,
            "currency": "usd",
            "metadata": {"bundleName": "Cozy Nights"},
            "line_items": {"data": [{"id": "li_1"}, {"id": "li_2"}]},
        }


class FakeCompletions:
    def __init__(self, contents: Optional[List[Any]] = None):
        self.contents = list(contents or [])
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **params):
        self.calls.append(params)
        content = self.contents.pop(0) if self.contents else None
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeImages:
    def __init__(self, url: Optional[str] = "https://images.example.com/generated.png", error: Optional[Exception] = None):
        self.url = url
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, **params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        data = [SimpleNamespace(url=self.url)] if self.url else []
        return SimpleNamespace(data=data)


class FakeOpenAI:
    def __init__(self, completions: Optional[List[Any]] = None, images: Optional[FakeImages] = None):
        self.chat = SimpleNamespace(completions=FakeCompletions(completions))
        self.images = images or FakeImages()

    async def close(self) -> None:
        pass


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def bundle():
    return make_bundle()


@pytest.fixture
def llm_settings():
    return make_llm_settings()


@pytest.fixture
def commerce():
    return FakeCommerceClient()


@pytest.fixture
def payments():
    return FakePayments()
