"""Vertex AI Gemini provider.

Authenticates with an OAuth2 access token minted from Google application
default credentials. The generateContent endpoint is not streamed; a
streaming request is answered with a single terminal event carrying the
whole response.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import aiohttp
import google.auth
import google.auth.exceptions
import google.auth.transport.requests

from .base import DEFAULT_TIMEOUT_SECONDS, HttpLLMProvider, as_count, dig
from .streaming import EventChannel
from ..exceptions import ApiKeyMissingError, ProviderError, RequestFailedError
from ..models.llm import ProviderResponse, StreamEvent, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_VERTEX_MODEL = "gemini-2.0-flash"
DEFAULT_VERTEX_LOCATION = "us-central1"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

TokenProvider = Callable[[], str]


def application_default_token() -> str:
    """Mint an access token from Google application default credentials."""
    try:
        credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        credentials.refresh(google.auth.transport.requests.Request())
    except google.auth.exceptions.DefaultCredentialsError as e:
        raise ApiKeyMissingError(f"Google application default credentials: {e}") from e
    except google.auth.exceptions.RefreshError as e:
        raise ApiKeyMissingError(f"Google auth failed: {e}") from e
    except google.auth.exceptions.TransportError as e:
        raise RequestFailedError(f"Google auth transport error: {e}") from e
    return credentials.token


class VertexAIProvider(HttpLLMProvider):
    """Gemini on Vertex AI; no native streaming."""

    def __init__(self, project: str, location: str = DEFAULT_VERTEX_LOCATION,
                 model: str = DEFAULT_VERTEX_MODEL,
                 token_provider: Optional[TokenProvider] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(model, session=session, timeout=timeout)
        self.project = project
        self.location = location
        self.token_provider = token_provider or application_default_token
        logger.info(f"VertexAIProvider initialized: project={project}, "
                    f"location={location}, model={model}")

    @property
    def endpoint(self) -> str:
        return (f"https://{self.location}-aiplatform.googleapis.com/v1/projects/{self.project}"
                f"/locations/{self.location}/publishers/google/models/{self.model}:generateContent")

    async def _access_token(self) -> str:
        # google-auth refreshes synchronously
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.token_provider)

    def _build_request_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [
                {"role": "user", "parts": [{"text": prompt}]}
            ]
        }

    async def process(self, prompt: str) -> ProviderResponse:
        token = await self._access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        payload = await self._post_json(self.endpoint, headers, self._build_request_body(prompt))

        text = dig(payload, "candidates", 0, "content", "parts", 0, "text")
        usage = payload.get("usageMetadata")
        return ProviderResponse(
            text=text if isinstance(text, str) else "",
            model=self.model,
            usage=TokenUsage(
                prompt_tokens=as_count(usage.get("promptTokenCount")),
                completion_tokens=as_count(usage.get("candidatesTokenCount")),
                total_tokens=as_count(usage.get("totalTokenCount")),
            ) if isinstance(usage, dict) else None,
        )

    async def process_stream(self, prompt: str, channel: EventChannel) -> None:
        try:
            response = await self.process(prompt)
        except ProviderError as e:
            channel.fail(e)
            raise
        if not await channel.send(StreamEvent(content=response.text, done=True)):
            logger.debug("Stream consumer disconnected; dropping event")
