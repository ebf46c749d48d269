"""
Campaign email HTML.

Renders the static bundle email server-side. All interpolated text is
HTML-escaped.
"""
from __future__ import annotations

from html import escape
from typing import Any, Dict, List, Optional, Sequence

from schemas.bundle_schemas import Bundle


def created_products(bundle_creation_result: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Successful product entries from a ``/create-bundles`` response.

    Accepts either the full response (``{"bundleResult": {...}}``) or the
    bundle result on its own.
    """
    if not isinstance(bundle_creation_result, dict):
        return []
    result = bundle_creation_result.get("bundleResult", bundle_creation_result)
    if not isinstance(result, dict):
        return []
    entries = result.get("items") or result.get("products") or []
    return [
        entry for entry in entries
        if isinstance(entry, dict) and entry.get("status", "created") == "created"
    ]


def _find_created(bundle: Bundle, products: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for product in products:
        if product.get("name") == bundle.name:
            return product
    return None


def format_price(cents: int) -> str:
    return f"${cents / 100:.2f}"


def format_discount(discount_percent: float) -> str:
    return f"{discount_percent:g}% OFF"


def _bundle_card(bundle: Bundle, created: Optional[Dict[str, Any]], storefront_url: str) -> str:
    slug = created.get("slug") if created else None
    product_url = f"{storefront_url}/products/{slug}" if slug else "#shop-bundle"

    if created:
        availability = (
            '<p style="font-size: 10px; color: #27ae60; margin: 5px 0;">'
            f"✅ Available in commercetools (SKU: {escape(str(created.get('sku') or ''))})</p>"
        )
        button_label = "Shop This Bundle"
    else:
        availability = (
            '<p style="font-size: 10px; color: #f39c12; margin: 5px 0;">'
            "⚠️ Bundle product not yet created</p>"
        )
        button_label = "Shop Now"

    return f"""
      <div style="margin: 20px 0; padding: 20px; border: 1px solid #ddd; border-radius: 8px;">
        <h2 style="color: #333; margin: 0 0 10px 0;">{escape(bundle.name)}</h2>
        <p style="color: #666; line-height: 1.6; margin: 10px 0;">{escape(bundle.email_blurb)}</p>
        <div style="margin: 15px 0;">
          <span style="font-size: 24px; font-weight: bold; color: #e74c3c;">{format_price(bundle.target_price)}</span>
          <span style="margin-left: 10px; color: #27ae60; font-weight: bold;">{format_discount(bundle.discount_percent)}</span>
        </div>
        <p style="font-style: italic; color: #888; font-size: 12px;">Bundle includes: {escape(', '.join(bundle.skus))}</p>
        {availability}
        <div style="margin-top: 15px;">
          <a href="{escape(product_url)}" style="background-color: #3498db; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; display: inline-block;">
            {button_label}
          </a>
        </div>
      </div>
    """


def render_campaign_html(
    bundles: Sequence[Bundle],
    theme: str,
    bundle_creation_result: Optional[Dict[str, Any]] = None,
    *,
    storefront_url: str = "https://your-store.com",
) -> str:
    products = created_products(bundle_creation_result)
    cards = "".join(
        _bundle_card(bundle, _find_created(bundle, products), storefront_url.rstrip("/"))
        for bundle in bundles
    )
    safe_theme = escape(theme)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{safe_theme} - Limited-Time Bundles</title>
  <style>
    body {{ font-family: 'Arial', sans-serif; max-width: 600px; margin: 0 auto; }}
  </style>
</head>
<body>
  <div style="text-align: center; padding: 20px; background-color: #f8f9fa;">
    <h1 style="color: #2c3e50; margin: 0;">{safe_theme}</h1>
    <p style="color: #7f8c8d; margin: 10px 0 0 0;">Exclusive Bundle Deals Just For You</p>
  </div>

  <div style="padding: 20px;">
    {cards}

    <div style="text-align: center; margin-top: 30px; padding: 20px; background-color: #ecf0f1; border-radius: 8px;">
      <p style="color: #34495e; margin: 0; font-size: 14px;">
        These exclusive bundles are available for a limited time only.
      </p>
    </div>
  </div>

  <div style="text-align: center; padding: 20px; background-color: #f8f9fa; color: #7f8c8d; font-size: 12px;">
    <p>Generated by AI Merchandising Co-Pilot</p>
  </div>
</body>
</html>
"""
