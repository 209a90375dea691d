"""Google Speech-to-Text transcription backend."""

import time
import asyncio
import logging
from typing import Optional

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

from .base import AbstractSpeechBackend
from ..exceptions import ApiKeyMissingError, ProviderTimeoutError, RequestFailedError, StateError
from ..models.transcription import TranscriptionResult
from ..net import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class GoogleSpeechBackend(AbstractSpeechBackend):
    """Google Speech-to-Text API backend for transcription."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 enable_automatic_punctuation: bool = True,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'en-US', 'ja-JP')
            enable_automatic_punctuation: Enable automatic punctuation
            timeout: Per-request deadline in seconds
        """
        super().__init__(language)
        if not credentials_path:
            raise ApiKeyMissingError("google_credentials_path")
        self.credentials_path = credentials_path
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout = timeout
        self.client: Optional[speech.SpeechClient] = None
        self.project_id = None

    def initialize(self) -> bool:
        """Initialize Google Speech client from the service account file."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Google Speech-to-Text backend initialized (project: {self.project_id})")
        return True

    def cleanup(self) -> None:
        """Close the Speech client's transport."""
        if self.client is not None:
            self.client.transport.close()
            self.client = None
            logger.info("Google Speech-to-Text backend closed")

    def _recognition_config(self, language: str) -> speech.RecognitionConfig:
        # Sample rate and channel count come from the WAV header.
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            language_code=language,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            model="latest_short",
        )

    async def transcribe(self, audio_wav: bytes, language: Optional[str] = None) -> TranscriptionResult:
        """Transcribe WAV audio using Google Speech-to-Text."""
        if self.client is None:
            raise StateError("GoogleSpeechBackend.initialize() has not been called")
        language = language or self.language
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._recognize, audio_wav, language)

    def _recognize(self, audio_wav: bytes, language: str) -> TranscriptionResult:
        start_time = time.time()
        logger.debug(f"Audio size: {len(audio_wav)} bytes; Language: {language}")

        audio = speech.RecognitionAudio(content=audio_wav)
        try:
            response = self.client.recognize(config=self._recognition_config(language),
                                             audio=audio, timeout=self.timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise ProviderTimeoutError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT API call error: {e}")
            raise RequestFailedError(f"Google Speech API error: {e}",
                                     status=getattr(e, "code", None)) from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug("--- NO SPEECH DETECTED ---")
            return TranscriptionResult(
                text="",
                confidence=0.0,
                is_final=True,
                service=self.service_name,
                language=language,
            )

        transcript = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results if result.alternatives
        )
        confidence = response.results[0].alternatives[0].confidence if response.results[0].alternatives else 0.0
        logger.debug(f"Transcript='{transcript}' (conf={confidence:.2f}, "
                     f"processing_time={processing_time:.3f}s)")
        return TranscriptionResult(
            text=transcript,
            confidence=confidence,
            is_final=True,
            service=self.service_name,
            language=language,
        )

