"""
Service container.

All remote clients and the services built on them are constructed once at
application startup and shared by every request. Routers receive the
container through ``Depends(get_services)``; tests override that dependency.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request
from openai import AsyncOpenAI

from services.ai_copy_generator import CopyPolisher
from services.bundle_images import BundleImageService
from services.bundle_planner import BundlePlanner
from services.campaign_publisher import CampaignPublisher, KlaviyoClient
from services.commerce.bundle_products import BundleProductCreator
from services.commerce.catalog import CatalogReader
from services.commerce.client import CommerceClient
from services.commerce.discounts import DiscountCreator
from services.commerce.plan_store import PlanStore
from services.email_polish import EmailPolishClient
from services.ml import llm_utils
from services.ml.llm_utils import LLMSettings
from services.payments.checkout import CheckoutCreator
from services.payments.stripe_client import StripePaymentClient
from settings import AppSettings

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: AppSettings
    llm_settings: LLMSettings
    commerce: CommerceClient
    openai_client: AsyncOpenAI
    payments: StripePaymentClient
    klaviyo: KlaviyoClient
    polish_client: EmailPolishClient
    download_client: httpx.AsyncClient
    catalog: CatalogReader
    planner: BundlePlanner
    images: BundleImageService
    plan_store: PlanStore
    products: BundleProductCreator
    discounts: DiscountCreator
    checkout: CheckoutCreator
    copy_polisher: CopyPolisher
    publisher: CampaignPublisher

    def integration_status(self) -> dict:
        return {
            "commercetools": self.commerce.configured,
            "openai": llm_utils.should_use_llm(self.llm_settings),
            "stripe": self.payments.configured,
            "klaviyo": self.klaviyo.configured,
        }

    async def aclose(self) -> None:
        for name, close in (
            ("commercetools", self.commerce.aclose),
            ("klaviyo", self.klaviyo.aclose),
            ("email polish", self.polish_client.aclose),
            ("image download", self.download_client.aclose),
            ("openai", self.openai_client.close),
        ):
            try:
                await close()
            except Exception as exc:
                logger.warning("Failed to close %s client: %s", name, exc)


def build_services(settings: AppSettings, llm_settings: Optional[LLMSettings] = None) -> ServiceContainer:
    llm_settings = llm_settings or llm_utils.load_settings()

    commerce = CommerceClient(settings.commerce)
    openai_client = llm_utils.build_async_client(llm_settings)
    payments = StripePaymentClient(settings.stripe_secret_key)
    klaviyo = KlaviyoClient(settings.klaviyo)
    polish_client = EmailPolishClient(settings.email_polish_url)
    download_client = httpx.AsyncClient(timeout=settings.image_download_timeout_s)

    images = BundleImageService(
        openai_client,
        llm_settings,
        static_dir=settings.static_dir,
        http_client=download_client,
        download_timeout_s=settings.image_download_timeout_s,
    )

    return ServiceContainer(
        settings=settings,
        llm_settings=llm_settings,
        commerce=commerce,
        openai_client=openai_client,
        payments=payments,
        klaviyo=klaviyo,
        polish_client=polish_client,
        download_client=download_client,
        catalog=CatalogReader(commerce),
        planner=BundlePlanner(openai_client, llm_settings, images),
        images=images,
        plan_store=PlanStore(commerce),
        products=BundleProductCreator(
            commerce, public_base_url=settings.public_base_url, currency_code=settings.currency_code
        ),
        discounts=DiscountCreator(
            commerce, checkout_url=settings.checkout_url, currency_code=settings.currency_code
        ),
        checkout=CheckoutCreator(
            payments, public_base_url=settings.public_base_url, currency_code=settings.currency_code
        ),
        copy_polisher=CopyPolisher(openai_client, llm_settings),
        publisher=CampaignPublisher(klaviyo, storefront_url=settings.storefront_url),
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services
