"""
Stripe client wrapper.

Holds the secret key for the process lifetime and passes it per call, so no
global ``stripe.api_key`` is mutated. The SDK is blocking; calls run in a
worker thread.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

import stripe

from services.errors import IntegrationNotConfigured, UpstreamServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "stripe"


def stripe_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a StripeObject (or a plain mapping)."""
    try:
        return obj[name]
    except (KeyError, TypeError):
        return getattr(obj, name, default)


class StripePaymentClient:
    def __init__(self, api_key: Optional[str]):
        self._api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def _call(self, operation: str, fn, *args, **params) -> Any:
        if not self.configured:
            raise IntegrationNotConfigured(SERVICE_NAME)
        try:
            return await asyncio.to_thread(fn, *args, api_key=self._api_key, **params)
        except stripe.StripeError as exc:
            raise UpstreamServiceError(
                SERVICE_NAME,
                f"{operation}: {exc.user_message or str(exc)}",
                status_code=exc.http_status,
                code=exc.code,
            ) from exc

    async def create_coupon(self, **params: Any) -> Any:
        return await self._call("create coupon", stripe.Coupon.create, **params)

    async def create_checkout_session(self, **params: Any) -> Any:
        return await self._call("create checkout session", stripe.checkout.Session.create, **params)

    async def retrieve_checkout_session(self, session_id: str, expand: Sequence[str] = ()) -> Any:
        return await self._call(
            "retrieve checkout session",
            stripe.checkout.Session.retrieve,
            session_id,
            expand=list(expand),
        )
