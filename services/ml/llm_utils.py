"""
Shared helpers for working with OpenAI-powered LLM flows.

Environment variables:
    OPENAI_API_KEY                 → required for live calls
    LLM_COMPLETION_MODEL           → chat/completions model for planning and copy
    LLM_COMPLETION_TEMPERATURE     → sampling temperature for campaign planning
    LLM_POLISH_TEMPERATURE         → sampling temperature for brand-voice polishing
    LLM_IMAGE_MODEL / LLM_IMAGE_SIZE → image generation model + output size

Centralises configuration, client creation and logging so that every part of
the pipeline (planning, hero images, copy polishing) behaves consistently and
can be tuned from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Coroutine, Optional, TypeVar

from openai import AsyncOpenAI

from settings import env_float

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMSettings:
    """Resolved configuration for all LLM touchpoints."""

    api_key: str
    completion_model: str
    completion_temperature: float
    polish_temperature: float
    image_model: str
    image_size: str
    image_quality: str


@lru_cache(maxsize=1)
def load_settings() -> LLMSettings:
    """Load and cache LLM configuration from environment variables."""

    raw_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not raw_key:
        logger.warning("OPENAI_API_KEY not configured; LLM features will fallback")

    return LLMSettings(
        api_key=raw_key,
        completion_model=os.getenv("LLM_COMPLETION_MODEL", "gpt-4o-mini"),
        completion_temperature=env_float("LLM_COMPLETION_TEMPERATURE", 0.7),
        polish_temperature=env_float("LLM_POLISH_TEMPERATURE", 0.5),
        image_model=os.getenv("LLM_IMAGE_MODEL", "dall-e-3"),
        image_size=os.getenv("LLM_IMAGE_SIZE", "1024x1024"),
        image_quality=os.getenv("LLM_IMAGE_QUALITY", "standard"),
    )


def build_async_client(settings: Optional[LLMSettings] = None) -> AsyncOpenAI:
    """Construct the AsyncOpenAI client owned by the service container."""

    settings = settings or load_settings()
    # The SDK refuses to construct without a key; a placeholder keeps the
    # process bootable and every call then fails into its fallback path.
    return AsyncOpenAI(api_key=settings.api_key or "missing-openai-key")


def should_use_llm(settings: Optional[LLMSettings] = None) -> bool:
    """Quick check to see if we have an API key configured."""

    return bool((settings or load_settings()).api_key)


T = TypeVar("T")


async def run_with_common_errors(
    operation: str,
    coro_factory: Callable[[], Coroutine[None, None, T]],
    *,
    on_error: Optional[Callable[[Exception], Optional[T]]] = None,
) -> Optional[T]:
    """
    Await an OpenAI coroutine and capture/log failures consistently.

    Args:
        operation: High-level description (e.g. "bundle hero image").
        coro_factory: Callable returning the coroutine to await.
        on_error: Optional callback producing a fallback result.
    """

    try:
        return await coro_factory()
    except Exception as exc:
        logger.error("LLM %s failed: %s", operation, exc, exc_info=True)
        if on_error:
            try:
                return on_error(exc)
            except Exception as fallback_exc:  # pragma: no cover
                logger.error("LLM fallback for %s failed: %s", operation, fallback_exc, exc_info=True)
        return None
