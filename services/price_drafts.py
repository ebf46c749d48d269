"""
Dry-run price drafts.

Computes the per-SKU price changes a bundle plan implies. Nothing is ever
written to the commerce backend, whatever ``dry_run`` says.
"""
from typing import Any, Dict, List, Sequence

from schemas.bundle_schemas import Bundle

APPLY_WARNINGS = [
    "This is a demo implementation - no actual price changes were made",
    "In production, this would create price tiers and bundle products in commercetools",
]


def item_price(bundle: Bundle) -> int:
    return int(round(bundle.target_price / max(len(bundle.skus), 1)))


def build_price_drafts(bundles: Sequence[Bundle], dry_run: bool = True) -> Dict[str, Any]:
    price_drafts: List[Dict[str, Any]] = []
    bundle_drafts: List[Dict[str, Any]] = []

    for bundle in bundles:
        new_price = item_price(bundle)
        for sku in bundle.skus:
            price_drafts.append({
                "sku": sku,
                "bundleName": bundle.name,
                "currentPrice": "TBD",
                "newPrice": new_price,
                "discountPercent": bundle.discount_percent,
                "bundlePrice": bundle.target_price,
            })
        bundle_drafts.append({
            "name": bundle.name,
            "skus": list(bundle.skus),
            "price": bundle.target_price,
            "discount": bundle.discount_percent,
            "status": "draft" if dry_run else "ready_to_apply",
        })

    return {
        "status": "dry_run_complete" if dry_run else "changes_applied",
        "summary": {
            "bundlesProcessed": len(bundles),
            "priceChanges": len(price_drafts),
            "totalBundles": len(bundle_drafts),
        },
        "priceDrafts": price_drafts,
        "bundleDrafts": bundle_drafts,
        "warnings": list(APPLY_WARNINGS),
    }
