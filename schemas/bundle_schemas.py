"""
Standardized Bundle Schemas
===========================

Canonical data structures shared by every stage of the campaign pipeline.
Wire names are camelCase (the UI and stored plans use them); Python
attributes are snake_case.

CORE TYPES:
-----------
- CatalogItem:  read-only product snapshot handed to the planner
- Bundle:       one proposed grouping of catalog items with a price and discount
- CampaignPlan: the planner's root aggregate, stored verbatim per plan id

PRICES:
-------
All prices are integers in minor currency units (cents). ``targetPrice`` and
``discountPercent`` are plan-time estimates, never authoritative prices.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Base model accepting both wire (camelCase) and attribute names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CatalogItem(CamelModel):
    """Product snapshot used as LLM input."""

    id: str
    name: str
    price: int = 0
    stock: int = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    main_image: Optional[str] = Field(None, alias="mainImage")

    def to_payload(self) -> Dict[str, Any]:
        # mainImage is always present on the wire, null when there is no image
        return self.model_dump(by_alias=True)


class Bundle(CamelModel):
    """A proposed bundle of catalog items."""

    name: str = ""
    rationale: str = ""
    skus: List[str] = Field(..., min_length=1)
    target_price: int = Field(..., alias="targetPrice", gt=0)
    discount_percent: float = Field(..., alias="discountPercent", ge=0, le=100)
    email_blurb: str = Field("", alias="emailBlurb")
    hero_image_idea: str = Field("", alias="heroImageIdea")
    bundle_image_url: Optional[str] = Field(None, alias="bundleImageUrl")
    child_product_images: List[str] = Field(default_factory=list, alias="childProductImages")

    @field_validator("target_price", mode="before")
    @classmethod
    def _round_price(cls, value: Any) -> Any:
        # whole cents
        if isinstance(value, float):
            return int(round(value))
        return value

    @field_validator("skus")
    @classmethod
    def _clean_skus(cls, value: List[str]) -> List[str]:
        cleaned = [sku.strip() for sku in value if isinstance(sku, str) and sku.strip()]
        if not cleaned:
            raise ValueError("bundle must reference at least one SKU")
        return cleaned

    @field_validator("name", "rationale", "email_blurb", "hero_image_idea", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class CampaignPlan(CamelModel):
    """Root aggregate returned by the planner and persisted per plan id."""

    theme: str = ""
    bundles: List[Bundle] = Field(default_factory=list)
    overall_strategy: str = Field("", alias="overallStrategy")
    target_audience: str = Field("", alias="targetAudience")

    @field_validator("theme", "overall_strategy", "target_audience", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


def catalog_index(catalog: List[CatalogItem]) -> Dict[str, CatalogItem]:
    """Map catalog item id → item (first occurrence wins)."""
    index: Dict[str, CatalogItem] = {}
    for item in catalog:
        index.setdefault(item.id, item)
    return index


def child_images_for(bundle: Bundle, catalog: List[CatalogItem]) -> List[str]:
    """Main images of the bundle's SKUs, in SKU order, skipping misses."""
    index = catalog_index(catalog)
    images: List[str] = []
    for sku in bundle.skus:
        item = index.get(sku)
        if item is not None and item.main_image:
            images.append(item.main_image)
    return images
