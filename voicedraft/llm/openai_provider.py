"""OpenAI chat-completions provider."""

import logging
from typing import Any, Dict, Optional

import aiohttp

from .base import DEFAULT_TIMEOUT_SECONDS, HttpLLMProvider, as_count, dig
from .streaming import EventChannel, StreamGrammar
from ..models.llm import ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAIProvider(HttpLLMProvider):
    """Bearer-token authenticated OpenAI backend with native streaming."""

    grammar = StreamGrammar.OPENAI

    def __init__(self, api_key: str, model: str = DEFAULT_OPENAI_MODEL,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(model, session=session, timeout=timeout)
        self.api_key = api_key
        self.base_url = OPENAI_API_URL
        logger.info(f"OpenAIProvider initialized with model: {model}")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_request_body(self, prompt: str, stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "user", "content": prompt}
            ],
            "stream": stream,
        }

    async def process(self, prompt: str) -> ProviderResponse:
        payload = await self._post_json(self.base_url, self._headers(),
                                        self._build_request_body(prompt, stream=False))

        text = dig(payload, "choices", 0, "message", "content")
        usage = payload.get("usage")
        return ProviderResponse(
            text=text if isinstance(text, str) else "",
            model=self.model,
            usage=TokenUsage(
                prompt_tokens=as_count(usage.get("prompt_tokens")),
                completion_tokens=as_count(usage.get("completion_tokens")),
                total_tokens=as_count(usage.get("total_tokens")),
            ) if isinstance(usage, dict) else None,
        )

    async def process_stream(self, prompt: str, channel: EventChannel) -> None:
        await self._post_stream(self.base_url, self._headers(),
                                self._build_request_body(prompt, stream=True), channel)
