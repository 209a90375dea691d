"""Abstract LLM provider and the HTTP plumbing shared by its backends."""

import json
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from .streaming import EventChannel, StreamDecoder, StreamGrammar
from ..exceptions import (
    ProviderError,
    ProviderTimeoutError,
    RequestFailedError,
    ResponseParseError,
)
from ..models.llm import ProviderResponse
from ..net import DEFAULT_TIMEOUT_SECONDS, raise_for_status

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Text-completion backend used to post-process transcripts."""

    model: str

    @abstractmethod
    async def process(self, prompt: str) -> ProviderResponse:
        """Send a prompt and wait for the complete answer."""
        pass

    @abstractmethod
    async def process_stream(self, prompt: str, channel: EventChannel) -> None:
        """Send a prompt and forward the answer to channel as StreamEvents.

        On success the last event sent is always a terminal (done) event.
        """
        pass


class HttpLLMProvider(LLMProvider):
    """Base for providers talking JSON over HTTPS with aiohttp.

    Subclasses own request construction and response parsing; this class
    owns timeouts, status handling and the error mapping. Nothing is
    retried.
    """

    grammar: Optional[StreamGrammar] = None

    def __init__(self, model: str, session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """Initialize provider.

        Args:
            model: Model identifier sent to the vendor
            session: Shared aiohttp session; a short-lived one is created per call if None
            timeout: Total per-call timeout in seconds
        """
        self.model = model
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self.session is not None:
            yield self.session
            return
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            yield session

    async def _post_json(self, url: str, headers: Dict[str, str],
                         body: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug(f"{self.__class__.__name__}: POST {url} (model={self.model})")
        async with self._session_scope() as session:
            try:
                async with session.post(url, headers=headers, json=body,
                                        timeout=self.timeout) as response:
                    await raise_for_status(response)
                    raw = await response.read()
            except asyncio.TimeoutError as e:
                logger.error(f"{self.__class__.__name__}: request timed out")
                raise ProviderTimeoutError() from e
            except aiohttp.ClientError as e:
                logger.error(f"{self.__class__.__name__}: request failed: {e}")
                raise RequestFailedError(str(e)) from e

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseParseError(str(e)) from e
        if not isinstance(payload, dict):
            raise ResponseParseError(f"expected a JSON object, got {type(payload).__name__}")
        return payload

    async def _post_stream(self, url: str, headers: Dict[str, str], body: Dict[str, Any],
                           channel: EventChannel) -> str:
        decoder = StreamDecoder(self.grammar)
        logger.debug(f"{self.__class__.__name__}: streaming POST {url} (model={self.model})")
        try:
            async with self._session_scope() as session:
                try:
                    async with session.post(url, headers=headers, json=body,
                                            timeout=self.timeout) as response:
                        await raise_for_status(response)
                        text = await decoder.decode_stream(response.content.iter_any(), channel)
                except asyncio.TimeoutError as e:
                    logger.error(f"{self.__class__.__name__}: stream request timed out")
                    raise ProviderTimeoutError() from e
                except aiohttp.ClientError as e:
                    logger.error(f"{self.__class__.__name__}: stream request failed: {e}")
                    raise RequestFailedError(str(e)) from e
        except ProviderError as e:
            channel.fail(e)
            raise

        logger.debug(f"{self.__class__.__name__}: stream complete, {len(text)} chars")
        return text


def dig(payload: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None when any step is missing."""
    current = payload
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def as_count(value: Any) -> int:
    """Token counts missing from a usage block count as zero."""
    return value if isinstance(value, int) and not isinstance(value, bool) else 0
