"""Canonical WAV encoding for captured and uploaded audio.

Every speech backend receives the same container layout: RIFF/WAVE,
16-bit signed little-endian PCM, with the sample rate and channel count
of the source audio.
"""

import io
import wave
import logging
from typing import Sequence, Tuple, Union

import numpy as np

from ..exceptions import FormatError

logger = logging.getLogger(__name__)

# Whisper's preferred input format
CANONICAL_SAMPLE_RATE = 16000
MONO_CHANNELS = 1
BITS_PER_SAMPLE = 16

SampleData = Union[Sequence[float], np.ndarray]


def _check_layout(sample_rate: int, channels: int) -> None:
    if sample_rate <= 0:
        raise FormatError(f"Sample rate must be positive, got {sample_rate}")
    if channels <= 0:
        raise FormatError(f"Channel count must be positive, got {channels}")


def quantize(samples: SampleData) -> np.ndarray:
    """Convert float samples to int16, clamping to [-1, 1] first.

    Out-of-range values are expected hardware jitter and are clipped
    silently.
    """
    floats = np.asarray(samples, dtype=np.float32)
    clamped = np.clip(floats, -1.0, 1.0)
    return (clamped * 32767.0).astype('<i2')


def _write_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    buffer = io.BytesIO()
    try:
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(BITS_PER_SAMPLE // 8)
            wf.setframerate(sample_rate)
            wf.writeframes(pcm)
    except wave.Error as e:
        raise FormatError(f"Failed to write WAV container: {e}") from e
    return buffer.getvalue()


def encode(samples: SampleData, sample_rate: int, channels: int) -> bytes:
    """Encode float PCM samples in [-1, 1] as a WAV container.

    Args:
        samples: Interleaved float samples
        sample_rate: Sampling rate in Hz
        channels: Number of interleaved channels

    Returns:
        WAV file bytes (starts with b"RIFF", b"WAVE" at offset 8)
    """
    _check_layout(sample_rate, channels)
    pcm = quantize(samples).tobytes()
    logger.debug(f"Encoding {len(pcm) // 2} samples at {sample_rate}Hz, {channels}ch")
    return _write_wav(pcm, sample_rate, channels)


def encode_raw(raw_bytes: bytes, sample_rate: int, channels: int) -> bytes:
    """Wrap raw little-endian 16-bit PCM bytes in a WAV container.

    Raises:
        FormatError: If the byte count is odd or the layout is invalid
    """
    if len(raw_bytes) % 2 != 0:
        raise FormatError("PCM byte data length must be even (16-bit samples)")
    _check_layout(sample_rate, channels)
    return _write_wav(bytes(raw_bytes), sample_rate, channels)


def pcm_to_float(raw_bytes: bytes) -> np.ndarray:
    """Interpret little-endian 16-bit PCM as float32 samples in [-1, 1)."""
    if len(raw_bytes) % 2 != 0:
        raise FormatError("PCM byte data length must be even (16-bit samples)")
    return np.frombuffer(raw_bytes, dtype='<i2').astype(np.float32) / 32768.0


def decode(wav_bytes: bytes) -> Tuple[np.ndarray, int, int]:
    """Read a 16-bit WAV container back into float samples.

    Returns:
        Tuple of (samples, sample_rate, channels)
    """
    try:
        with wave.open(io.BytesIO(wav_bytes), 'rb') as wf:
            if wf.getsampwidth() != BITS_PER_SAMPLE // 8:
                raise FormatError(f"Unsupported sample width: {wf.getsampwidth()} bytes")
            sample_rate = wf.getframerate()
            channels = wf.getnchannels()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as e:
        raise FormatError(f"Invalid WAV container: {e}") from e
    return pcm_to_float(frames), sample_rate, channels
