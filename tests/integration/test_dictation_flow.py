"""Integration tests for the dictation flow: capture, chunked transcription, post-processing."""

import asyncio

import numpy as np
import pytest
from pubsub import pub

from voicedraft.audio import AudioCapture, encoder
from voicedraft.config import VoiceDraftConfig
from voicedraft.exceptions import ApiKeyMissingError, ConfigurationError, RequestFailedError
from voicedraft.llm import AnthropicProvider, EventChannel, OpenAIProvider
from voicedraft.services import DictationService
from voicedraft.transcription import INTERIM_TOPIC, WhisperApiBackend


def openai_answer(text):
    return {"choices": [{"message": {"content": text}}],
            "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}}


@pytest.fixture
def interim_results():
    results = []

    def listener(result):
        results.append(result)

    pub.subscribe(listener, INTERIM_TOPIC)
    yield results
    pub.unsubscribe(listener, INTERIM_TOPIC)


@pytest.fixture
def service_factory(base_config_path, fake_device):
    def _build(backend, provider=None, settings=None):
        return DictationService(
            VoiceDraftConfig(base_config_path),
            audio_capture=AudioCapture(device=fake_device),
            backend=backend,
            provider=provider,
            settings=settings if settings is not None else {},
        )
    return _build


@pytest.mark.integration
class TestDictationFlow:
    """End-to-end flow with fake hardware, backend and HTTP."""

    def test_long_recording_is_chunked(self, service_factory, fake_device, backend_factory,
                                       interim_results):
        """Test a long recording is split, published per chunk and joined."""
        backend = backend_factory(["first", "second", "third"])
        service = service_factory(backend)

        service.start_recording()
        fake_device.emit(np.full(20000, 0.2, dtype='<f4').tobytes())
        recording = service.stop_recording()
        result = asyncio.run(service.transcribe_recording(recording))

        assert recording.duration_ms == 1250
        assert len(backend.calls) == 3
        assert [len(encoder.decode(call)[0]) for call in backend.calls] == [8000, 8000, 4000]
        assert result.text == "first second third"
        assert [r.chunk_index for r in interim_results] == [0, 1, 2]
        assert [r.is_final for r in interim_results] == [False, False, True]
        assert backend.languages == ["ja", "ja", "ja"]

    def test_stereo_48k_recording_chunk_duration(self, base_config_path, device_factory,
                                                  backend_factory):
        """Test a 48kHz stereo recording is chunked by duration, not raw sample count."""
        device = device_factory(sample_rate=48000, channels=2)
        backend = backend_factory(["one", "two", "three"])
        service = DictationService(VoiceDraftConfig(base_config_path),
                                   audio_capture=AudioCapture(device=device),
                                   backend=backend, settings={})

        service.start_recording()
        device.emit(np.full(120000, 0.2, dtype='<f4').tobytes())
        recording = service.stop_recording()
        result = asyncio.run(service.transcribe_recording(recording))

        assert recording.duration_ms == 1250
        assert [len(encoder.decode(call)[0]) for call in backend.calls] == [48000, 48000, 24000]
        assert result.text == "one two three"

    def test_short_recording_single_call(self, service_factory, fake_device, backend_factory,
                                         interim_results):
        """Test a short recording is sent once, unchanged, without interim results."""
        backend = backend_factory(["short"])
        service = service_factory(backend)

        service.start_recording()
        fake_device.emit(np.full(4000, 0.2, dtype='<f4').tobytes())
        recording = service.stop_recording()
        result = asyncio.run(service.transcribe_recording(recording))

        assert result.text == "short"
        assert len(backend.calls) == 1
        assert backend.calls[0].endswith(recording.audio_data)
        assert interim_results == []

    def test_process_with_context(self, service_factory, fake_backend, http):
        """Test prompts are rendered with the rolling history."""
        session = http.session(http.json(openai_answer("Fixed.")))
        service = service_factory(fake_backend, provider=OpenAIProvider("k", session=session))

        first = asyncio.run(service.process("one", "polish"))
        asyncio.run(service.process("two", "polish"))

        assert first.text == "Fixed."
        prompts = [r["json"]["messages"][0]["content"] for r in session.requests]
        assert prompts == ["Fix: one | ctx: ", "Fix: two | ctx: [1] one"]

    def test_context_limit_from_config(self, service_factory, fake_backend, http):
        """Test llm.context_entries bounds the history."""
        session = http.session(http.json(openai_answer("ok")))
        service = service_factory(fake_backend, provider=OpenAIProvider("k", session=session))

        for text in ["a", "b", "c"]:
            asyncio.run(service.process(text, "polish"))

        assert service.context.get_context() == "[1] b\n[2] c"

    def test_mode_without_template(self, service_factory, fake_backend, http):
        """Test an AI mode without a prompt template sends the transcript as is."""
        session = http.session(http.json(openai_answer("ok")))
        service = service_factory(fake_backend, provider=OpenAIProvider("k", session=session))

        asyncio.run(service.process("verbatim", "plain"))

        assert session.requests[0]["json"]["messages"][0]["content"] == "verbatim"

    def test_raw_mode_skips_provider(self, service_factory, fake_backend):
        """Test modes without AI return the transcript and never build a provider."""
        service = service_factory(fake_backend)

        response = asyncio.run(service.process("keep me", "raw"))

        assert response.text == "keep me"
        assert response.model == "none"
        assert response.usage is None
        assert service.context.get_context() is None

    def test_unknown_mode(self, service_factory, fake_backend):
        """Test an unknown mode id is a configuration error."""
        service = service_factory(fake_backend)

        with pytest.raises(ConfigurationError):
            asyncio.run(service.process("x", "nope"))

    def test_stream_raw_mode(self, service_factory, fake_backend):
        """Test streaming a raw mode yields one terminal event with the text."""
        service = service_factory(fake_backend)

        async def run():
            channel = EventChannel()
            await service.process_stream("as spoken", "raw", channel)
            return [event async for event in channel]

        events = asyncio.run(run())

        assert len(events) == 1
        assert events[0].content == "as spoken"
        assert events[0].done is True

    def test_stream_polish_mode(self, service_factory, fake_backend, http):
        """Test streaming goes through the provider and records context."""
        session = http.session(http.sse([
            'data: {"choices": [{"delta": {"content": "Po"}}]}',
            'data: {"choices": [{"delta": {"content": "lished"}}]}',
            "data: [DONE]",
        ]))
        service = service_factory(fake_backend, provider=OpenAIProvider("k", session=session))

        async def run():
            channel = EventChannel()
            events = []

            async def consume():
                async for event in channel:
                    events.append(event)

            await asyncio.gather(service.process_stream("raw text", "polish", channel), consume())
            return events

        events = asyncio.run(run())

        assert "".join(e.content for e in events) == "Polished"
        assert events[-1].done is True
        assert service.context.get_context() == "[1] raw text"

    def test_stream_failure_reaches_consumer(self, service_factory, fake_backend, http):
        """Test a rejected streaming request ends the consumer with the same error."""
        session = http.session(http.response(status=500, body=b"boom"))
        service = service_factory(fake_backend, provider=OpenAIProvider("k", session=session))

        async def run():
            channel = EventChannel()
            consumer = asyncio.ensure_future(channel.receive())
            with pytest.raises(RequestFailedError):
                await service.process_stream("raw text", "polish", channel)
            await asyncio.wait_for(consumer, timeout=1.0)

        with pytest.raises(RequestFailedError, match="HTTP 500"):
            asyncio.run(run())
        assert service.context.get_context() is None

    def test_stream_unknown_mode_reaches_consumer(self, service_factory, fake_backend):
        """Test configuration errors while streaming are delivered to the consumer."""
        service = service_factory(fake_backend)

        async def run():
            channel = EventChannel()
            consumer = asyncio.ensure_future(channel.receive())
            with pytest.raises(ConfigurationError):
                await service.process_stream("x", "nope", channel)
            await asyncio.wait_for(consumer, timeout=1.0)

        with pytest.raises(ConfigurationError, match="nope"):
            asyncio.run(run())

    def test_close_releases_backend(self, service_factory, fake_backend):
        """Test closing the service cleans up the speech backend."""
        service = service_factory(fake_backend)

        service.close()

        assert fake_backend.cleaned_up is True

    def test_provider_built_lazily_from_settings(self, service_factory, fake_backend):
        """Test the configured provider is created on first use with AI_PROVIDER overriding."""
        service = service_factory(fake_backend, settings={
            "AI_PROVIDER": "anthropic",
            "ANTHROPIC_API_KEY": "ak",
        })

        assert isinstance(service.provider, AnthropicProvider)
        assert service.provider is service.provider

    def test_provider_missing_key(self, service_factory, fake_backend):
        """Test a missing credential surfaces when the provider is needed."""
        service = service_factory(fake_backend, settings={})

        with pytest.raises(ApiKeyMissingError, match="OPENAI_API_KEY"):
            service.provider

    def test_default_backend_from_config(self, base_config_path, fake_device):
        """Test the whisper backend is built from config and settings."""
        service = DictationService(
            VoiceDraftConfig(base_config_path),
            audio_capture=AudioCapture(device=fake_device),
            settings={"OPENAI_API_KEY": "sk"},
        )

        assert isinstance(service.backend, WhisperApiBackend)
        assert service.backend.language == "ja"
        assert service.pipeline.chunk_samples == 8000

    def test_unknown_backend(self, config_file, fake_device):
        """Test an unknown transcription backend is rejected."""
        config = VoiceDraftConfig(config_file("transcription:\n  backend: vosk\n"))

        with pytest.raises(ConfigurationError, match="vosk"):
            DictationService(config, audio_capture=AudioCapture(device=fake_device), settings={})
