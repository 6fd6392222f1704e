"""Knowledge engine: composes requests and runs the resilient extraction pipeline.

Pipeline per request:
- compose the prompt (keyword verbatim, or 1-2 sampled topics)
- call the backend through the retry controller
- decode the raw text exactly once, then validate its shape
- assign record ids

Decode and shape failures are retried with a fresh backend call only when
``decode_retries`` is positive.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, List, Optional

from .errors import ConfigError, DecodeError, ShapeError
from .json_utils import Decoded, decode, excerpt, strip_code_fences
from .llm_client import LLMClient
from .prompts import (
    build_generation_request,
    compose_knowledge_prompt,
    compose_trending_prompt,
)
from .retry import invoke_with_retry
from .topics import TopicSampler
from .validation import fallback_topics_from_text, validate_knowledge, validate_topics
from ..models.config import Settings
from ..models.knowledge import GenerationRequest, KnowledgeRecord, RawResponse, TrendingTopics

logger = logging.getLogger(__name__)


def _new_record_id() -> str:
    return uuid.uuid4().hex


class KnowledgeEngine:
    """Main entry point for generating knowledge records and trending topics."""

    def __init__(self, settings: Settings, invoker: Optional[LLMClient] = None,
                 sampler: Optional[TopicSampler] = None,
                 id_factory: Callable[[], str] = _new_record_id):
        self.settings = settings
        self.llm_config = settings.llm_config
        self.retry_config = settings.retry_config
        self.sampler = sampler or TopicSampler(settings.topic_pool)
        self.id_factory = id_factory
        self._invoker = invoker
        self.language = settings.response_language

    @property
    def invoker(self) -> LLMClient:
        """Backend client, created on first use so a missing key fails before any call."""
        if self._invoker is None:
            if not self.settings.has_credentials:
                raise ConfigError("API key not configured")
            self._invoker = LLMClient(self.llm_config)
        return self._invoker

    async def _call_backend(self, model_id: str, prompt: str,
                            cancel_event: Optional[asyncio.Event]) -> RawResponse:
        invoker = self.invoker
        return await invoke_with_retry(
            lambda: invoker.generate(model_id, prompt, self.llm_config.use_search_grounding),
            max_attempts=self.retry_config.max_attempts,
            base_delay_ms=self.retry_config.base_delay_ms,
            cancel_event=cancel_event,
        )

    def _decode(self, raw: RawResponse) -> Any:
        outcome = decode(raw.text)
        if isinstance(outcome, Decoded):
            return outcome.value
        logger.error(f"Failed to parse response: {outcome.raw_text_excerpt}")
        raise DecodeError("Failed to parse response", excerpt=outcome.raw_text_excerpt)

    def build_request(self, keywords: Optional[str] = None, count: Optional[int] = None) -> GenerationRequest:
        count = count if count is not None else self.settings.default_count
        if count < 1 or count > self.settings.max_count:
            raise ValueError(f"count must be between 1 and {self.settings.max_count}")
        return build_generation_request(keywords, count, self.sampler)

    async def generate_knowledge(self, keywords: Optional[str] = None, count: Optional[int] = None,
                                 cancel_event: Optional[asyncio.Event] = None) -> List[KnowledgeRecord]:
        """Generate, decode and validate a batch of knowledge records."""
        request = self.build_request(keywords, count)
        prompt = compose_knowledge_prompt(request, self.language)
        logger.info(f"Generating {request.item_count} items about: {request.topic_descriptor}")

        attempts = self.retry_config.decode_retries + 1
        attempt = 0
        while True:
            raw = await self._call_backend(self.llm_config.knowledge_model, prompt, cancel_event)
            try:
                items = validate_knowledge(self._decode(raw))
                break
            except (DecodeError, ShapeError) as e:
                attempt += 1
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"Unusable backend output (attempt {attempt}/{attempts}), requesting again: {e}")

        if raw.grounding_used:
            logger.debug("Response was grounded with web search")
        records = [KnowledgeRecord.from_item(item, self.id_factory()) for item in items]
        logger.info(f"Parsed {len(records)} knowledge items")
        return records

    async def fetch_trending(self, cancel_event: Optional[asyncio.Event] = None) -> TrendingTopics:
        """Trending keywords; falls back to a line heuristic when JSON decoding fails."""
        limit = self.settings.trending_limit
        prompt = compose_trending_prompt(self.settings.trending_region, limit)
        raw = await self._call_backend(self.llm_config.trending_model, prompt, cancel_event)

        outcome = decode(raw.text)
        if isinstance(outcome, Decoded):
            try:
                topics = validate_topics(outcome.value, limit)
                logger.info(f"Trending topics: {list(topics)}")
                return TrendingTopics(topics=topics)
            except ShapeError as e:
                logger.warning(f"Trending response had no usable topics list: {e}")

        topics = fallback_topics_from_text(
            strip_code_fences(raw.text), self.settings.trending_fallback_limit)
        if topics:
            logger.info(f"Trending topics recovered from plain text: {list(topics)}")
            return TrendingTopics(topics=topics, from_fallback=True)

        logger.error(f"Failed to parse trending: {excerpt(raw.text)}")
        raise DecodeError("Failed to parse response", excerpt=excerpt(raw.text))

    async def close(self) -> None:
        if self._invoker is not None:
            await self._invoker.close()
