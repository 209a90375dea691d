"""Transcription module for VoiceDraft."""

from .base import AbstractSpeechBackend
from .pipeline import TranscriptionPipeline, DEFAULT_CHUNK_SAMPLES
from .publisher import TranscriptionPublisher, INTERIM_TOPIC
from .whisper_backend import WhisperApiBackend
from .google_backend import GoogleSpeechBackend
from ..models.transcription import TranscriptionResult

__all__ = [
    "AbstractSpeechBackend",
    "TranscriptionPipeline",
    "DEFAULT_CHUNK_SAMPLES",
    "TranscriptionPublisher",
    "INTERIM_TOPIC",
    "WhisperApiBackend",
    "GoogleSpeechBackend",
    "TranscriptionResult",
]
