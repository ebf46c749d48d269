"""
Catalog Reader
Fetches a page of commercetools products and reshapes them into the
CatalogItem snapshots the planner consumes.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from schemas.bundle_schemas import CatalogItem
from services.commerce.client import CommerceClient

logger = logging.getLogger(__name__)

CATALOG_EXPAND = ("masterData.current.categories[*]",)
DEFAULT_STOCK = 100


def _localized(value: Optional[Dict[str, str]], locale: str = "en") -> Optional[str]:
    if not value:
        return None
    if value.get(locale):
        return value[locale]
    # any locale beats no name at all
    for text in value.values():
        if text:
            return text
    return None


def to_catalog_item(product: Dict[str, Any]) -> CatalogItem:
    """Reshape one raw commercetools product into a CatalogItem."""
    current = (product.get("masterData") or {}).get("current") or {}
    variant = current.get("masterVariant") or {}

    images = [image["url"] for image in variant.get("images") or [] if image.get("url")]
    prices = variant.get("prices") or []
    price = 0
    if prices:
        price = int(((prices[0] or {}).get("value") or {}).get("centAmount") or 0)

    availability = variant.get("availability") or {}
    stock = availability.get("availableQuantity")
    if stock is None:
        stock = DEFAULT_STOCK

    return CatalogItem(
        id=product["id"],
        name=_localized(current.get("name")) or product.get("key") or "Unnamed Product",
        price=price,
        stock=max(0, int(stock)),
        tags=[category["id"] for category in current.get("categories") or [] if category.get("id")],
        images=images,
        main_image=images[0] if images else None,
    )


class CatalogReader:
    """Reads catalog samples for campaign planning."""

    def __init__(self, client: CommerceClient):
        self.client = client

    async def fetch_catalog_sample(self, limit: int = 40) -> List[CatalogItem]:
        start = time.time()
        logger.info("🛒 CT: Fetching %d products for catalog sample...", limit)
        products = await self.client.query_products(limit=limit, expand=CATALOG_EXPAND)

        items: List[CatalogItem] = []
        for product in products:
            try:
                items.append(to_catalog_item(product))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("⚠️ CT: Skipping malformed product %s: %s", product.get("id"), exc)

        logger.info(
            "✅ CT: Catalog sample ready in %dms - %d products",
            int((time.time() - start) * 1000),
            len(items),
        )
        return items
