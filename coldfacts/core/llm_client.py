"""Backend invoker over the OpenAI Responses API (OpenAI or Azure OpenAI)."""

import asyncio
import logging
from typing import Any, Dict

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from .errors import (
    AuthError,
    ColdFactsError,
    ConfigError,
    InvalidRequestError,
    TransientBackendError,
)
from ..models.config import LLMConfig
from ..models.knowledge import RawResponse

logger = logging.getLogger(__name__)

SEARCH_TOOL = {"type": "web_search_preview"}


def translate_sdk_error(error: Exception) -> ColdFactsError:
    """Map an OpenAI SDK exception onto the pipeline's error taxonomy."""
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthError(f"Backend rejected credentials: {error}")
    if isinstance(error, (openai.BadRequestError, openai.NotFoundError, openai.UnprocessableEntityError)):
        return InvalidRequestError(f"Invalid request: {error}")
    if isinstance(error, openai.APITimeoutError):
        return TransientBackendError(f"Backend timeout: {error}")
    if isinstance(error, openai.RateLimitError):
        return TransientBackendError(f"Rate limit hit: {error}")
    if isinstance(error, openai.APIConnectionError):
        return TransientBackendError(f"Connection issue: {error}")
    return TransientBackendError(f"Backend error: {error}")


def _extract_output_text(resp: Any) -> str:
    """Concatenate the output_text parts of a Responses API result."""
    chunks = []
    for item in getattr(resp, "output", None) or []:
        if getattr(item, "type", "") != "message":
            continue
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", "") == "output_text":
                chunks.append(getattr(part, "text", "") or "")
    if chunks:
        return "".join(chunks)
    text = getattr(resp, "output_text", "")
    return text if isinstance(text, str) else ""


def _used_search(resp: Any) -> bool:
    return any(getattr(item, "type", "") == "web_search_call"
               for item in getattr(resp, "output", None) or [])


class LLMClient:
    """Issues one backend call per ``generate`` and classifies its failures."""

    def __init__(self, config: LLMConfig):
        if not config.api_key:
            raise ConfigError("API key not configured")
        self.config = config
        if config.is_azure:
            self.client = AsyncAzureOpenAI(
                api_key=config.api_key,
                azure_endpoint=config.azure_endpoint,
                api_version=config.azure_api_version,
                max_retries=0,
            )
        else:
            # The retry controller owns retries
            self.client = AsyncOpenAI(api_key=config.api_key, max_retries=0)

    async def generate(self, model_id: str, prompt_text: str, use_search_grounding: bool = False) -> RawResponse:
        """Run one generation call and return its raw text."""
        request: Dict[str, Any] = {
            "model": model_id,
            "input": [{"role": "user", "content": prompt_text}],
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_output_tokens,
        }
        if use_search_grounding:
            request["tools"] = [SEARCH_TOOL]

        try:
            resp = await asyncio.wait_for(
                self.client.responses.create(**request),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Backend call to {model_id} timed out after {self.config.request_timeout}s")
            raise TransientBackendError(
                f"Backend timeout after {self.config.request_timeout}s")
        except openai.OpenAIError as e:
            raise translate_sdk_error(e) from e

        text = _extract_output_text(resp)
        logger.debug(f"Backend response from {model_id}: {text[:200]}")
        return RawResponse(text=text, grounding_used=use_search_grounding and _used_search(resp))

    async def close(self) -> None:
        await self.client.close()
