"""Abstract base class for speech-recognition backends."""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class AbstractSpeechBackend(ABC):
    """Abstract base class for speech-to-text backends."""

    service_name = "unknown"

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    async def transcribe(self, audio_wav: bytes, language: Optional[str] = None) -> TranscriptionResult:
        """Transcribe a WAV container and return the result.

        Args:
            audio_wav: WAV file bytes (see voicedraft.audio.encoder)
            language: Language code overriding the backend default

        Returns:
            TranscriptionResult with transcription and metadata
        """
        pass

    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful
        """
        return True

    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
