"""Dictation service: capture, transcription and LLM post-processing."""

import os
import logging
from typing import Mapping, Optional

from ..audio import AudioCapture, encoder
from ..config import VoiceDraftConfig
from ..exceptions import ConfigurationError, VoiceDraftError
from ..llm import ContextManager, EventChannel, LLMProvider, create_provider, render_prompt
from ..llm.context import DEFAULT_MAX_ENTRIES
from ..models.audio import RecordingResult
from ..models.llm import ProviderResponse, StreamEvent
from ..models.transcription import TranscriptionResult
from ..transcription import (
    AbstractSpeechBackend,
    DEFAULT_CHUNK_SAMPLES,
    GoogleSpeechBackend,
    INTERIM_TOPIC,
    TranscriptionPipeline,
    TranscriptionPublisher,
    WhisperApiBackend,
)

logger = logging.getLogger(__name__)


class DictationService:
    """Glues the capture controller, transcription pipeline and LLM provider."""

    def __init__(self,
                 config: VoiceDraftConfig,
                 audio_capture: Optional[AudioCapture] = None,
                 backend: Optional[AbstractSpeechBackend] = None,
                 provider: Optional[LLMProvider] = None,
                 settings: Optional[Mapping[str, str]] = None):
        """Initialize dictation service.

        Args:
            config: Application configuration
            audio_capture: Capture controller (defaults to the host microphone)
            backend: Speech backend (defaults to the one named in config)
            provider: LLM provider (defaults to the one selected in config, built lazily)
            settings: Credential source; defaults to the process environment
        """
        self.config = config
        self.settings = os.environ if settings is None else settings
        self.audio_capture = audio_capture or AudioCapture()
        self.backend = backend or self._create_speech_backend()
        self.pipeline = TranscriptionPipeline(
            self.backend,
            language=config.get_language(),
            chunk_samples=int(config.get('audio.chunk_samples', DEFAULT_CHUNK_SAMPLES)),
        )
        self.publisher = TranscriptionPublisher(config.get('transcription.interim_topic', INTERIM_TOPIC))
        self.context = ContextManager(int(config.get('llm.context_entries', DEFAULT_MAX_ENTRIES)))
        self._provider = provider

    def _create_speech_backend(self) -> AbstractSpeechBackend:
        name = self.config.get('transcription.backend', 'whisper')
        language = self.config.get_language()
        logger.info(f"Initializing {name} speech backend (language={language})")

        if name == 'whisper':
            return WhisperApiBackend.from_settings(self.settings, language=language)
        if name == 'google':
            backend = GoogleSpeechBackend(
                credentials_path=self.config.get_google_credentials_path(),
                language=language,
            )
            backend.initialize()
            return backend
        raise ConfigurationError(f"Unknown transcription backend: '{name}'. Use whisper or google.")

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = create_provider(
                self.config.get_provider_type(self.settings),
                settings=self.settings,
                model=self.config.get('llm.model'),
            )
        return self._provider

    def start_recording(self) -> None:
        self.audio_capture.start()

    def stop_recording(self) -> RecordingResult:
        recording = self.audio_capture.stop()
        logger.info(f"Captured {recording.duration_ms}ms of audio")
        return recording

    async def transcribe_recording(self, recording: RecordingResult) -> TranscriptionResult:
        """Transcribe a finished recording, chunking it when it is long.

        Chunk results are published for live display as they arrive.
        """
        sample_count = len(recording.audio_data) // 2
        if not self.pipeline.needs_chunking(sample_count, recording.sample_rate,
                                            recording.channels):
            return await self.pipeline.transcribe(recording.audio_data,
                                                  recording.sample_rate, recording.channels)

        samples = encoder.pcm_to_float(recording.audio_data)
        return await self.pipeline.transcribe_chunked(
            samples,
            on_interim=self.publisher.get_callback(),
            sample_rate=recording.sample_rate,
            channels=recording.channels,
        )

    async def process(self, text: str, mode_id: str) -> ProviderResponse:
        """Post-process a transcript with the given mode's prompt.

        Modes without AI return the text unchanged.
        """
        mode = self.config.get_mode(mode_id)
        if not mode.ai_enabled:
            return ProviderResponse(text=text, model="none", usage=None)

        prompt = render_prompt(mode, text, self.context.get_context())
        response = await self.provider.process(prompt)
        self.context.add_entry(text)
        return response

    async def process_stream(self, text: str, mode_id: str, channel: EventChannel) -> None:
        """Streaming counterpart of process(); always ends with a terminal event.

        A failure is also delivered to the channel's consumer.
        """
        try:
            mode = self.config.get_mode(mode_id)
            if not mode.ai_enabled:
                await channel.send(StreamEvent(content=text, done=True))
                return

            prompt = render_prompt(mode, text, self.context.get_context())
            await self.provider.process_stream(prompt, channel)
        except VoiceDraftError as e:
            channel.fail(e)
            raise
        self.context.add_entry(text)

    def close(self) -> None:
        """Release the speech backend."""
        logger.info("Shutting down dictation service")
        self.backend.cleanup()
