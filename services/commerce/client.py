"""
commercetools HTTP API client.

Thin async wrapper over the project REST endpoints the co-pilot needs:
products, product types, tax categories, custom objects, cart discounts and
discount codes. Authentication uses the client-credentials flow; the access
token is cached until shortly before it expires.

One instance is constructed at startup and shared by every request.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from services.errors import IntegrationNotConfigured, UpstreamServiceError
from settings import CommerceSettings

logger = logging.getLogger(__name__)

SERVICE_NAME = "commercetools"
TOKEN_EXPIRY_MARGIN_S = 60


class CommerceClient:
    """Async client for one commercetools project."""

    def __init__(
        self,
        settings: CommerceSettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self._settings = settings
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self._settings.configured

    @property
    def project_key(self) -> Optional[str]:
        return self._settings.project_key

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- Authentication ---

    async def _access_token(self) -> str:
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            scope = self._settings.scopes or f"manage_project:{self._settings.project_key}"
            url = f"{self._settings.auth_url.rstrip('/')}/oauth/token"
            try:
                response = await self._http.post(
                    url,
                    data={"grant_type": "client_credentials", "scope": scope},
                    auth=(self._settings.client_id, self._settings.client_secret),
                )
            except httpx.HTTPError as exc:
                raise UpstreamServiceError(SERVICE_NAME, f"token request failed: {exc}") from exc

            if response.is_error:
                raise UpstreamServiceError(
                    SERVICE_NAME,
                    f"token request rejected: {response.text[:200]}",
                    status_code=response.status_code,
                )

            payload = response.json()
            self._token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 172800))
            self._token_expires_at = time.monotonic() + max(0.0, expires_in - TOKEN_EXPIRY_MARGIN_S)
            logger.info("🔑 CT: Obtained access token (expires in %ds)", int(expires_in))
            return self._token

    # --- Transport ---

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Sequence[Tuple[str, Any]]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        if not self.configured:
            raise IntegrationNotConfigured(SERVICE_NAME)

        token = await self._access_token()
        url = f"{self._settings.api_url.rstrip('/')}/{self._settings.project_key}{path}"
        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(SERVICE_NAME, f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            # force a fresh token on the next call
            self._token = None

        if response.is_error:
            raise self._error_from_response(method, path, response)

        return response.json()

    @staticmethod
    def _error_from_response(method: str, path: str, response: httpx.Response) -> UpstreamServiceError:
        code = None
        message = response.text[:500]
        body: Any = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or message
            errors = body.get("errors") or []
            if errors and isinstance(errors[0], dict):
                code = errors[0].get("code")
        return UpstreamServiceError(
            SERVICE_NAME,
            f"{method} {path}: {message}",
            status_code=response.status_code,
            code=code,
            body=body,
        )

    # --- Products ---

    async def query_products(self, limit: int = 40, expand: Sequence[str] = ()) -> List[Dict[str, Any]]:
        params: List[Tuple[str, Any]] = [("limit", limit)]
        params.extend(("expand", path) for path in expand)
        body = await self._request("GET", "/products", params=params)
        return body.get("results", [])

    async def create_product(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/products", json=draft)

    # --- Product types / tax categories ---

    async def get_product_type_by_key(self, key: str) -> Dict[str, Any]:
        return await self._request("GET", f"/product-types/key={key}")

    async def create_product_type(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/product-types", json=draft)

    async def get_tax_category_by_key(self, key: str) -> Dict[str, Any]:
        return await self._request("GET", f"/tax-categories/key={key}")

    async def create_tax_category(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/tax-categories", json=draft)

    # --- Custom objects ---

    async def upsert_custom_object(self, container: str, key: str, value: Any) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/custom-objects",
            json={"container": container, "key": key, "value": value},
        )

    async def get_custom_object(self, container: str, key: str) -> Dict[str, Any]:
        return await self._request("GET", f"/custom-objects/{container}/{key}")

    # --- Discounts ---

    async def create_cart_discount(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/cart-discounts", json=draft)

    async def create_discount_code(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/discount-codes", json=draft)
