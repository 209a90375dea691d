"""Decoder for SSE-style completion streams.

Vendors send newline-delimited ``data: `` frames, but network chunks do
not respect line boundaries, so decoding keeps a text buffer and only
parses complete lines. Two payload grammars are understood:

* OpenAI: ``choices[0].delta.content`` deltas, terminated by ``[DONE]``.
* Anthropic: ``{"type": ...}`` events; ``content_block_delta`` carries
  ``delta.text`` and ``message_stop`` terminates the stream.

Both are normalized to :class:`StreamEvent` values. A stream yields at
most one terminal event and nothing after it.
"""

import json
import codecs
import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, List, Optional

import aiohttp

from ..exceptions import ProviderTimeoutError, StreamError
from ..models.llm import StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DEFAULT_CHANNEL_SIZE = 32

_FAILED = object()


class StreamGrammar(Enum):
    """Wire grammar of a vendor's streaming payloads."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class EventChannel:
    """Bounded hand-off of stream events from a producer to one consumer.

    A full channel blocks the producer. Once the consumer calls close(),
    further sends are discarded and report False. A producer that fails
    calls fail(); the consumer then receives the events already queued
    followed by the error.
    """

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._error: Optional[BaseException] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    async def send(self, event: StreamEvent) -> bool:
        if self._closed or self._error is not None:
            return False
        await self._queue.put(event)
        if self._closed:
            self._drain()
            return False
        return True

    def fail(self, error: BaseException) -> None:
        """Producer side: end the stream with error once queued events are read."""
        if self._closed or self._error is not None:
            return
        self._error = error
        if not self._queue.full():
            self._queue.put_nowait(_FAILED)

    async def receive(self) -> StreamEvent:
        if self._error is not None and self._queue.empty():
            raise self._error
        item = await self._queue.get()
        if item is _FAILED:
            raise self._error
        return item

    def close(self) -> None:
        """Consumer side: stop accepting events and release a blocked producer."""
        self._closed = True
        self._drain()

    def _drain(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self.receive()
            yield event
            if event.done:
                return


class StreamDecoder:
    """Turns raw network chunks into an ordered StreamEvent sequence."""

    def __init__(self, grammar: StreamGrammar):
        self.grammar = grammar
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._parts: List[str] = []
        self._done = False

    @property
    def text(self) -> str:
        """All content deltas emitted so far, concatenated."""
        return "".join(self._parts)

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        """Consume one network chunk and return the events it completes."""
        if self._done:
            return []

        self._buffer += self._utf8.decode(chunk)
        events = []
        while not self._done:
            newline_pos = self._buffer.find("\n")
            if newline_pos < 0:
                break
            line = self._buffer[:newline_pos].strip()
            self._buffer = self._buffer[newline_pos + 1:]

            event = self._parse_line(line)
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> List[StreamEvent]:
        """Flush at end of transport, guaranteeing a terminal event."""
        if self._done:
            return []

        tail = (self._buffer + self._utf8.decode(b"", final=True)).strip()
        self._buffer = ""
        events = []
        event = self._parse_line(tail)
        if event is not None:
            events.append(event)
        if not self._done:
            logger.debug("Stream ended without a terminal frame; synthesizing one")
            self._done = True
            events.append(StreamEvent(content="", done=True))
        return events

    async def decode_stream(self, chunks: AsyncIterable[bytes], channel: EventChannel) -> str:
        """Decode a whole response body, forwarding events to channel in order.

        Returns:
            The concatenated text of all content deltas

        Raises:
            StreamError: If the transport fails mid-stream
            ProviderTimeoutError: If the response body times out

        Either error is also passed to channel.fail() so the consumer
        sees it after the events already delivered.
        """
        try:
            async for chunk in chunks:
                for event in self.feed(chunk):
                    await self._deliver(channel, event)
                if self._done:
                    break
        except asyncio.TimeoutError as e:
            error = ProviderTimeoutError()
            channel.fail(error)
            raise error from e
        except aiohttp.ClientError as e:
            error = StreamError(str(e))
            channel.fail(error)
            raise error from e

        for event in self.finish():
            await self._deliver(channel, event)
        return self.text

    async def _deliver(self, channel: EventChannel, event: StreamEvent) -> None:
        if not await channel.send(event):
            logger.debug("Stream consumer disconnected; dropping event")

    def _parse_line(self, line: str) -> Optional[StreamEvent]:
        if not line or not line.startswith(DATA_PREFIX):
            return None
        data = line[len(DATA_PREFIX):]

        if self.grammar is StreamGrammar.OPENAI:
            return self._parse_openai(data)
        return self._parse_anthropic(data)

    def _parse_openai(self, data: str) -> Optional[StreamEvent]:
        if data == DONE_SENTINEL:
            self._done = True
            return StreamEvent(content="", done=True)

        payload = self._load(data)
        if not isinstance(payload, dict):
            return None
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        if isinstance(content, str):
            return self._emit(content)
        return None

    def _parse_anthropic(self, data: str) -> Optional[StreamEvent]:
        payload = self._load(data)
        if not isinstance(payload, dict):
            return None

        event_type = payload.get("type")
        if event_type == "content_block_delta":
            delta = payload.get("delta")
            if isinstance(delta, dict) and isinstance(delta.get("text"), str):
                return self._emit(delta["text"])
        elif event_type == "message_stop":
            self._done = True
            return StreamEvent(content="", done=True)
        return None

    def _emit(self, content: str) -> StreamEvent:
        self._parts.append(content)
        return StreamEvent(content=content, done=False)

    @staticmethod
    def _load(data: str) -> Any:
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed stream frame: {data[:80]!r}")
            return None
