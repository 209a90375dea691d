"""Pytest configuration and fixtures for VoiceDraft tests."""

import json
import asyncio
import logging
import threading
from types import SimpleNamespace
from typing import Iterable, List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest

from voicedraft.audio.devices import InputDevice, InputStream
from voicedraft.models.audio import InputFormat, SampleFormat
from voicedraft.models.transcription import TranscriptionResult
from voicedraft.transcription.base import AbstractSpeechBackend


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: multi-component tests with fakes")


class FakeInputStream(InputStream):
    """Stream whose frames are pushed by the test instead of hardware."""

    def __init__(self, on_frames):
        self.on_frames = on_frames
        self.started = False
        self.stopped = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def close(self) -> None:
        self.closed = True


class FakeInputDevice(InputDevice):
    """Input device double; tests deliver frames with emit()."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1,
                 sample_format: SampleFormat = SampleFormat.FLOAT32,
                 open_error: Optional[Exception] = None,
                 block_open: bool = False):
        self.input_format = InputFormat(sample_rate, channels, sample_format)
        self.open_error = open_error
        self.block_open = block_open
        self.release_open = threading.Event()
        self.streams: List[FakeInputStream] = []
        self.opened = threading.Event()

    def default_input_format(self) -> InputFormat:
        return self.input_format

    def open_stream(self, input_format, on_frames) -> FakeInputStream:
        if self.block_open:
            self.release_open.wait(timeout=5.0)
        if self.open_error is not None:
            raise self.open_error
        stream = FakeInputStream(on_frames)
        self.streams.append(stream)
        self.opened.set()
        return stream

    def emit(self, data: bytes) -> None:
        """Deliver one hardware frame to the most recent stream."""
        self.streams[-1].on_frames(data)


class FakeSpeechBackend(AbstractSpeechBackend):
    """Backend returning scripted texts and recording every call."""

    service_name = "fake"

    def __init__(self, texts: Optional[Iterable[str]] = None, language: str = "en"):
        super().__init__(language)
        self.texts = list(texts) if texts is not None else []
        self.calls: List[bytes] = []
        self.languages: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cleaned_up = False

    async def transcribe(self, audio_wav: bytes, language: Optional[str] = None) -> TranscriptionResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            index = len(self.calls)
            self.calls.append(audio_wav)
            self.languages.append(language or self.language)
            text = self.texts[index] if index < len(self.texts) else f"chunk {index}"
            return TranscriptionResult(text=text, confidence=0.9, timestamp=1000 + index,
                                       service=self.service_name, language=language or self.language)
        finally:
            self.in_flight -= 1

    def cleanup(self) -> None:
        self.cleaned_up = True


class FakeContent:
    """Stands in for aiohttp's StreamReader."""

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None):
        self.chunks = list(chunks)
        self.error = error

    async def iter_any(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


class FakeResponse:
    """Async context manager mimicking aiohttp.ClientResponse."""

    def __init__(self, status: int = 200, body: bytes = b"", chunks: Iterable[bytes] = (),
                 stream_error: Optional[Exception] = None):
        self.status = status
        self.body = body
        self.content = FakeContent(chunks, stream_error)

    async def read(self) -> bytes:
        return self.body

    async def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records POSTs and answers with a prepared FakeResponse (or raises)."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None):
        self.response = response or FakeResponse()
        self.error = error
        self.requests: List[dict] = []

    def post(self, url, headers=None, json=None, data=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json,
                              "data": data, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def json_response(payload, status: int = 200) -> FakeResponse:
    return FakeResponse(status=status, body=json.dumps(payload).encode("utf-8"))


def sse_response(lines: Iterable[str]) -> FakeResponse:
    return FakeResponse(chunks=["".join(f"{line}\n" for line in lines).encode("utf-8")])


@pytest.fixture
def fake_device():
    return FakeInputDevice()


@pytest.fixture
def device_factory():
    """FakeInputDevice class, for tests needing a non-default device."""
    return FakeInputDevice


@pytest.fixture
def fake_backend():
    return FakeSpeechBackend()


@pytest.fixture
def backend_factory():
    return FakeSpeechBackend


@pytest.fixture
def http():
    """Builders for fake aiohttp sessions and responses."""
    return SimpleNamespace(
        session=FakeSession,
        response=FakeResponse,
        json=json_response,
        sse=sse_response,
    )


@pytest.fixture
def sample_audio():
    """One second of a 440Hz sine wave at 16kHz as float32."""
    t = np.linspace(0, 1.0, 16000, False)
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'name': 'Test Mic',
            'defaultSampleRate': 48000.0,
            'maxInputChannels': 2,
        }

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(tmp_path):
    """Write a YAML config and return its path."""
    def _write(content: str) -> str:
        path = tmp_path / "voicedraft.yaml"
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


BASE_CONFIG = """
audio:
  chunk_samples: 8000
transcription:
  backend: whisper
  language: ja
llm:
  provider: openai
  context_entries: 2
modes:
  - id: raw
    label: Raw
    ai_enabled: false
  - id: polish
    label: Polish
    ai_enabled: true
    ai_prompt: "Fix: {input} | ctx: {context}"
  - id: plain
    label: Plain
    ai_enabled: true
logging:
  level: DEBUG
  file_path: logs/voicedraft.log
"""


@pytest.fixture
def base_config_path(config_file):
    return config_file(BASE_CONFIG)
