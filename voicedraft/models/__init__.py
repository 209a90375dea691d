"""Data models for the VoiceDraft application."""

from .audio import AudioStats, RecordingResult, InputFormat, SampleFormat
from .transcription import TranscriptionResult
from .llm import StreamEvent, TokenUsage, ProviderResponse
from .mode import ModeConfig

__all__ = [
    "AudioStats",
    "RecordingResult",
    "InputFormat",
    "SampleFormat",
    "TranscriptionResult",
    "StreamEvent",
    "TokenUsage",
    "ProviderResponse",
    "ModeConfig",
]
