"""Anthropic messages-API provider."""

import logging
from typing import Any, Dict, Optional

import aiohttp

from .base import DEFAULT_TIMEOUT_SECONDS, HttpLLMProvider, as_count, dig
from .streaming import EventChannel, StreamGrammar
from ..models.llm import ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_ANTHROPIC_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_MAX_TOKENS = 1024


class AnthropicProvider(HttpLLMProvider):
    """x-api-key authenticated Anthropic backend with native streaming."""

    grammar = StreamGrammar.ANTHROPIC

    def __init__(self, api_key: str, model: str = DEFAULT_ANTHROPIC_MODEL,
                 max_tokens: int = DEFAULT_MAX_TOKENS,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(model, session=session, timeout=timeout)
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.base_url = ANTHROPIC_API_URL
        logger.info(f"AnthropicProvider initialized with model: {model}")

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _build_request_body(self, prompt: str, stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "user", "content": prompt}
            ],
            "stream": stream,
        }

    async def process(self, prompt: str) -> ProviderResponse:
        payload = await self._post_json(self.base_url, self._headers(),
                                        self._build_request_body(prompt, stream=False))

        text = dig(payload, "content", 0, "text")
        usage = payload.get("usage")
        token_usage = None
        if isinstance(usage, dict):
            input_tokens = as_count(usage.get("input_tokens"))
            output_tokens = as_count(usage.get("output_tokens"))
            token_usage = TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )
        return ProviderResponse(
            text=text if isinstance(text, str) else "",
            model=self.model,
            usage=token_usage,
        )

    async def process_stream(self, prompt: str, channel: EventChannel) -> None:
        await self._post_stream(self.base_url, self._headers(),
                                self._build_request_body(prompt, stream=True), channel)
