"""
Bundle hero images.

Generates one product-photography style image per bundle with the image model
and keeps a local copy under the static directory, so the URL stays valid
after the provider's signed link expires.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import quote

import httpx
from openai import AsyncOpenAI

from schemas.bundle_schemas import CatalogItem
from services.ml.llm_utils import LLMSettings, run_with_common_errors
from utils import now_ms, safe_file_token

logger = logging.getLogger(__name__)

IMAGE_SUBDIR = "bundle-images"
DEFAULT_STYLE = "professional product photography"
PLACEHOLDER_TEMPLATE = "https://via.placeholder.com/600x400/667eea/ffffff?text={text}"
DOWNLOAD_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; AI-Bundle-Generator/1.0)"}


def build_image_prompt(bundle_name: str, theme: str, product_names: Sequence[str], style: str = DEFAULT_STYLE) -> str:
    return (
        f'Create a {style} style image for an e-commerce bundle called "{bundle_name}". '
        f"Show these products artfully arranged together: {', '.join(product_names)}. "
        "Style: clean white background, professional lighting, attractive product arrangement, "
        "premium e-commerce photography style. "
        f"The image should look like a high-end product bundle photo for a {theme.lower()} campaign. "
        "Products should be clearly visible and attractively displayed together."
    )


def placeholder_image(bundle_name: str) -> str:
    return PLACEHOLDER_TEMPLATE.format(text=quote(bundle_name, safe=""))


def fallback_image(bundle_name: str, child_images: Sequence[str]) -> str:
    """First child product image, else a placeholder carrying the bundle name."""
    if child_images:
        return child_images[0]
    return placeholder_image(bundle_name)


def image_file_name(theme: str, bundle_name: str) -> str:
    return f"{safe_file_token(theme)}-{safe_file_token(bundle_name)}-{now_ms()}.jpg"


@dataclass(frozen=True)
class GeneratedImage:
    image_url: str
    local_path: str
    prompt: str


class ImageGenerationError(RuntimeError):
    """The image model returned no usable image."""


class BundleImageService:
    def __init__(
        self,
        client: AsyncOpenAI,
        settings: LLMSettings,
        *,
        static_dir: str,
        http_client: Optional[httpx.AsyncClient] = None,
        download_timeout_s: float = 30.0,
    ):
        self.client = client
        self.settings = settings
        self.static_dir = Path(static_dir)
        self.http_client = http_client
        self.download_timeout_s = download_timeout_s

    async def _generate_url(self, prompt: str) -> Optional[str]:
        response = await self.client.images.generate(
            model=self.settings.image_model,
            prompt=prompt,
            n=1,
            size=self.settings.image_size,
            quality=self.settings.image_quality,
            response_format="url",
        )
        data = getattr(response, "data", None) or []
        if not data:
            return None
        return getattr(data[0], "url", None) or None

    async def _download(self, image_url: str) -> bytes:
        if self.http_client is not None:
            response = await self.http_client.get(
                image_url, headers=DOWNLOAD_HEADERS, timeout=self.download_timeout_s
            )
            response.raise_for_status()
            return response.content
        async with httpx.AsyncClient(timeout=self.download_timeout_s) as client:
            response = await client.get(image_url, headers=DOWNLOAD_HEADERS)
            response.raise_for_status()
            return response.content

    async def save_image_locally(self, image_url: str, bundle_name: str, theme: str) -> str:
        """
        Download ``image_url`` into ``<static>/bundle-images/`` and return its
        public path. On any download or write failure the remote URL is
        returned instead.
        """
        file_name = image_file_name(theme, bundle_name)
        target = self.static_dir / IMAGE_SUBDIR / file_name
        logger.info("💾 Downloading image to %s", target)
        try:
            content = await self._download(image_url)
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, content)
        except Exception as exc:
            logger.error("❌ Error saving image locally: %s", exc)
            logger.info("🔄 Returning original URL as fallback")
            return image_url

        public_path = f"/{IMAGE_SUBDIR}/{file_name}"
        logger.info("✅ Image saved (%d bytes) at %s", len(content), public_path)
        return public_path

    async def image_for_bundle(
        self,
        bundle_name: str,
        theme: str,
        child_images: Sequence[str],
        catalog: Sequence[CatalogItem],
    ) -> str:
        """
        Hero image URL for a planned bundle. Never raises.

        Products named in the prompt are the catalog items whose main image is
        one of the bundle's child images. Without any, or when the model call
        fails or comes back empty, the fallback image is used.
        """
        fallback = fallback_image(bundle_name, child_images)
        product_names: List[str] = [
            item.name for item in catalog if item.main_image and item.main_image in child_images
        ]
        if not product_names:
            logger.info("⚠️ No product descriptions for bundle %r, using fallback image", bundle_name)
            return fallback

        prompt = build_image_prompt(bundle_name, theme, product_names)
        start = time.time()
        logger.info("🖼️ Generating image for bundle %r (%d products)", bundle_name, len(product_names))
        image_url = await run_with_common_errors(
            f"bundle hero image ({bundle_name})",
            lambda: self._generate_url(prompt),
        )
        if not image_url:
            logger.warning("⚠️ No image for bundle %r, using fallback %s", bundle_name, fallback)
            return fallback

        logger.info("✅ Image generated for %r in %dms", bundle_name, int((time.time() - start) * 1000))
        return await self.save_image_locally(image_url, bundle_name, theme)

    async def generate(
        self,
        bundle_name: str,
        theme: str,
        product_names: Sequence[str],
        style: str = DEFAULT_STYLE,
    ) -> GeneratedImage:
        """Always calls the image model; errors propagate to the caller."""
        prompt = build_image_prompt(bundle_name, theme, product_names, style or DEFAULT_STYLE)
        logger.info("🖼️ Generating image for bundle %r", bundle_name)
        image_url = await self._generate_url(prompt)
        if not image_url:
            raise ImageGenerationError("No image URL returned from image model")
        local_path = await self.save_image_locally(image_url, bundle_name, theme)
        return GeneratedImage(image_url=image_url, local_path=local_path, prompt=prompt)
