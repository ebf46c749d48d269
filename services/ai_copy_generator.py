"""
AI Copy Generator Service
Polishes bundle email copy to a brand voice using OpenAI.

Polishing is best effort: any failure returns the input text unchanged.
"""
from typing import List, Optional
import logging
import asyncio
import time
import uuid

from openai import AsyncOpenAI

from schemas.bundle_schemas import Bundle
from services.ml.llm_utils import LLMSettings, run_with_common_errors, should_use_llm

logger = logging.getLogger(__name__)


def _generate_request_id() -> str:
    """Generate a short request ID for log correlation."""
    return str(uuid.uuid4())[:8]


def polish_system_prompt(brand_voice: str) -> str:
    return (
        f"You are a copywriter. Polish the given text to match this brand voice: {brand_voice}. "
        "Return only the polished text, no additional commentary."
    )


class CopyPolisher:
    """Brand-voice copy polisher"""

    def __init__(self, client: AsyncOpenAI, settings: LLMSettings):
        self._settings = settings
        self.client = client
        self.model = settings.completion_model
        self.temperature = settings.polish_temperature

    async def polish_copy(self, brand_voice: str, text: str, request_id: Optional[str] = None) -> str:
        """Return ``text`` rewritten in ``brand_voice``, or ``text`` itself on failure."""
        req_id = request_id or _generate_request_id()
        if not should_use_llm(self._settings):
            logger.warning(f"[{req_id}] ⚠️ OpenAI API key not found, keeping original copy")
            return text

        start_time = time.time()

        async def _call():
            return await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": polish_system_prompt(brand_voice)},
                    {"role": "user", "content": text},
                ],
                temperature=self.temperature,
            )

        response = await run_with_common_errors("copy polish", _call)
        duration = (time.time() - start_time) * 1000

        if response is None or not response.choices:
            logger.warning(f"[{req_id}] ⚠️ No polish result after {duration:.0f}ms, keeping original copy")
            return text

        content = response.choices[0].message.content
        if not content or not content.strip():
            logger.warning(f"[{req_id}] ⚠️ Empty content from OpenAI, keeping original copy")
            return text

        logger.info(f"[{req_id}] ✅ Copy polished in {duration:.0f}ms ({len(text)} → {len(content)} chars)")
        return content.strip()

    async def polish_bundles(self, bundles: List[Bundle], brand_voice: str) -> List[Bundle]:
        """Polish every bundle's email blurb concurrently, preserving order."""
        logger.info(f"✨ Polishing {len(bundles)} bundle blurbs")
        polished = await asyncio.gather(*[
            self.polish_copy(brand_voice, bundle.email_blurb) for bundle in bundles
        ])
        return [
            bundle.model_copy(update={"email_blurb": blurb})
            for bundle, blurb in zip(bundles, polished)
        ]
