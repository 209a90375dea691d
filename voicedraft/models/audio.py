"""Audio-related data models."""

from dataclasses import dataclass
from enum import Enum


class SampleFormat(Enum):
    """Sample formats an input device may deliver."""
    FLOAT32 = "f32"
    INT16 = "i16"
    INT24 = "i24"
    INT32 = "i32"
    UINT8 = "u8"


@dataclass(frozen=True)
class InputFormat:
    """Format negotiated with the input device for one session."""
    sample_rate: int
    channels: int
    sample_format: SampleFormat


@dataclass
class RecordingResult:
    """Audio drained from a finished recording session."""
    audio_data: bytes  # 16-bit little-endian PCM
    sample_rate: int
    channels: int
    duration_ms: int


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    buffered_samples: int
    sample_rate: int
    channels: int
    total_callbacks: int
