import re

import httpx
import pytest

from services.bundle_images import (
    BundleImageService,
    ImageGenerationError,
    build_image_prompt,
    fallback_image,
    image_file_name,
)

from conftest import FakeImages, FakeOpenAI, make_llm_settings


def _service(tmp_path, handler, images=None):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = FakeOpenAI(images=images)
    return BundleImageService(client, make_llm_settings(), static_dir=str(tmp_path), http_client=http_client), client


def test_image_file_name_is_safe():
    name = image_file_name("Fall Essentials!", "Cozy & Warm")
    assert re.fullmatch(r"fall-essentials--cozy---warm-\d+\.jpg", name)


def test_fallback_chain():
    assert fallback_image("Cozy", ["https://a/1.jpg", "https://a/2.jpg"]) == "https://a/1.jpg"
    assert fallback_image("Cozy Nights", []) == (
        "https://via.placeholder.com/600x400/667eea/ffffff?text=Cozy%20Nights"
    )


def test_prompt_mentions_products_and_theme():
    prompt = build_image_prompt("Cozy", "Fall Essentials", ["Blanket", "Mug"])
    assert 'bundle called "Cozy"' in prompt
    assert "Blanket, Mug" in prompt
    assert "fall essentials campaign" in prompt


@pytest.mark.asyncio
async def test_save_image_locally_writes_file(tmp_path):
    service, _ = _service(tmp_path, lambda request: httpx.Response(200, content=b"jpeg-bytes"))

    path = await service.save_image_locally("https://images.example.com/x.png", "Cozy Nights", "Fall")

    assert path.startswith("/bundle-images/fall-cozy-nights-")
    written = tmp_path / path.lstrip("/")
    assert written.read_bytes() == b"jpeg-bytes"


@pytest.mark.asyncio
async def test_save_image_locally_returns_remote_url_on_failure(tmp_path):
    service, _ = _service(tmp_path, lambda request: httpx.Response(403))
    url = "https://images.example.com/expired.png"
    assert await service.save_image_locally(url, "Cozy", "Fall") == url


@pytest.mark.asyncio
async def test_generate_returns_urls_and_prompt(tmp_path):
    service, client = _service(tmp_path, lambda request: httpx.Response(200, content=b"img"))
    image = await service.generate("Cozy", "Fall", ["Blanket"], style="watercolor")

    assert image.image_url == "https://images.example.com/generated.png"
    assert image.local_path.startswith("/bundle-images/")
    assert image.prompt.startswith("Create a watercolor style image")
    assert client.images.calls[0]["model"] == "dall-e-3"


@pytest.mark.asyncio
async def test_generate_raises_without_image(tmp_path):
    service, _ = _service(tmp_path, lambda request: httpx.Response(200), images=FakeImages(url=None))
    with pytest.raises(ImageGenerationError):
        await service.generate("Cozy", "Fall", ["Blanket"])
