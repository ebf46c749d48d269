"""
Per-item outcome types for the batch creation stages.

Every multi-item operation (bundle products, discounts, checkout sessions)
returns one outcome per input, in input order. An outcome is either an
``ItemSuccess`` wrapping the created record or an ``ItemFailure`` carrying the
original input and the reason. ``BatchResult`` derives its counts from the
outcome list, so ``success + failure == total == len(items)`` always holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from schemas.bundle_schemas import Bundle

T = TypeVar("T")


def _payload(value: Any) -> Dict[str, Any]:
    if hasattr(value, "to_payload"):
        return value.to_payload()
    if isinstance(value, dict):
        return dict(value)
    raise TypeError(f"Cannot render {type(value).__name__} as a payload")


@dataclass(frozen=True)
class ItemSuccess(Generic[T]):
    value: T

    ok = True

    def to_payload(self) -> Dict[str, Any]:
        return {**_payload(self.value), "status": "created"}


@dataclass(frozen=True)
class ItemFailure:
    item: Any
    reason: str

    ok = False

    def to_payload(self) -> Dict[str, Any]:
        return {**_payload(self.item), "status": "failed", "error": self.reason}


Outcome = Union[ItemSuccess[T], ItemFailure]


@dataclass
class BatchResult(Generic[T]):
    """Aggregate of per-item outcomes."""

    items: List[Outcome] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.items if outcome.ok)

    @property
    def failure_count(self) -> int:
        return sum(1 for outcome in self.items if not outcome.ok)

    def successes(self) -> List[T]:
        return [outcome.value for outcome in self.items if outcome.ok]

    def failures(self) -> List[ItemFailure]:
        return [outcome for outcome in self.items if not outcome.ok]

    def to_payload(self, **extra: Any) -> Dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "items": [outcome.to_payload() for outcome in self.items],
            **extra,
        }


@dataclass(frozen=True)
class BundleProductRecord:
    """A catalog product created for a bundle."""

    bundle: Bundle
    product_id: str
    product_key: Optional[str]
    sku: Optional[str]
    slug: Optional[str]
    product_images: List[Dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            **self.bundle.to_payload(),
            "productId": self.product_id,
            "productKey": self.product_key,
            "sku": self.sku,
            "slug": self.slug,
            "productImages": self.product_images,
        }


@dataclass(frozen=True)
class BundleDiscountRecord:
    """Cart discount plus discount code created for a bundle."""

    bundle: Bundle
    original_price: int
    cart_discount_id: str
    discount_code_id: str
    discount_code: str
    checkout_url: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            **self.bundle.to_payload(),
            "originalPrice": self.original_price,
            "cartDiscountId": self.cart_discount_id,
            "discountCodeId": self.discount_code_id,
            "discountCode": self.discount_code,
            "checkoutUrl": self.checkout_url,
        }


@dataclass(frozen=True)
class CheckoutSession:
    """A payment-provider checkout session for one bundle."""

    id: str
    url: Optional[str]
    bundle: Bundle
    discount_code: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "bundle": self.bundle.to_payload(),
            "discountCode": self.discount_code,
        }


@dataclass(frozen=True)
class CheckoutAttempt:
    """Input side of a checkout creation, rendered when the attempt fails."""

    bundle: Bundle
    discount_code: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": None,
            "url": None,
            "bundle": self.bundle.to_payload(),
            "discountCode": self.discount_code or "",
        }
