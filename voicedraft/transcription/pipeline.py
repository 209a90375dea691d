"""Chunked transcription pipeline driving a single speech backend."""

import asyncio
import logging
from typing import Callable, List, Optional

import numpy as np

from .base import AbstractSpeechBackend
from ..audio import encoder
from ..audio.encoder import CANONICAL_SAMPLE_RATE, MONO_CHANNELS, SampleData
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

# 16kHz x 5 seconds
DEFAULT_CHUNK_SAMPLES = 80_000

InterimCallback = Callable[[TranscriptionResult], None]


class TranscriptionPipeline:
    """Splits long audio into fixed-size chunks and transcribes them in order.

    Chunks are submitted strictly one after another, never concurrently,
    so results aggregate in submission order and the backend sees at most
    one in-flight request per pipeline.
    """

    def __init__(self,
                 backend: AbstractSpeechBackend,
                 language: str,
                 chunk_samples: int = DEFAULT_CHUNK_SAMPLES,
                 sample_rate: int = CANONICAL_SAMPLE_RATE,
                 channels: int = MONO_CHANNELS):
        """Initialize pipeline.

        Args:
            backend: Speech backend used for every chunk
            language: Language code passed to the backend
            chunk_samples: Interleaved samples per chunk at sample_rate and
                channels; other formats get a chunk of the same duration
            sample_rate: Sample rate of the float input
            channels: Channel count of the float input
        """
        if chunk_samples <= 0:
            raise ValueError(f"chunk_samples must be positive, got {chunk_samples}")
        if chunk_samples % channels:
            raise ValueError(f"chunk_samples must be a multiple of channels ({channels}), "
                             f"got {chunk_samples}")
        self.backend = backend
        self.language = language
        self.chunk_samples = chunk_samples
        self.sample_rate = sample_rate
        self.channels = channels
        self._in_flight = asyncio.Lock()

    def chunk_size(self, sample_rate: Optional[int] = None,
                   channels: Optional[int] = None) -> int:
        """Interleaved samples per chunk for audio in the given format.

        The chunk covers the same duration as chunk_samples does at the
        pipeline format, rounded down to whole frames.
        """
        sample_rate = sample_rate or self.sample_rate
        channels = channels or self.channels
        frames = self.chunk_samples // self.channels * sample_rate // self.sample_rate
        return max(frames, 1) * channels

    def needs_chunking(self, sample_count: int, sample_rate: Optional[int] = None,
                       channels: Optional[int] = None) -> bool:
        return sample_count > self.chunk_size(sample_rate, channels)

    async def _submit(self, audio_wav: bytes) -> TranscriptionResult:
        async with self._in_flight:
            return await self.backend.transcribe(audio_wav, self.language)

    async def _submit_sequence(self, wav_chunks: List[bytes],
                               on_result: Callable[[int, TranscriptionResult], None]) -> None:
        # One job holds the pipeline for all of its chunks.
        async with self._in_flight:
            for index, wav_data in enumerate(wav_chunks):
                on_result(index, await self.backend.transcribe(wav_data, self.language))

    async def transcribe_all(self, samples: SampleData, sample_rate: Optional[int] = None,
                             channels: Optional[int] = None) -> TranscriptionResult:
        """Transcribe short audio in a single backend call."""
        wav_data = encoder.encode(samples, sample_rate or self.sample_rate, channels or self.channels)
        return await self._submit(wav_data)

    async def transcribe_chunked(self, samples: SampleData,
                                 on_interim: Optional[InterimCallback] = None,
                                 sample_rate: Optional[int] = None,
                                 channels: Optional[int] = None) -> TranscriptionResult:
        """Transcribe long audio chunk by chunk and join the texts.

        Args:
            samples: Float samples in [-1, 1]
            on_interim: Called with each chunk's result, in order
            sample_rate: Overrides the pipeline sample rate for this call
            channels: Overrides the pipeline channel count for this call

        Returns:
            Combined final TranscriptionResult
        """
        sample_rate = sample_rate or self.sample_rate
        channels = channels or self.channels
        samples = np.asarray(samples, dtype=np.float32)
        size = self.chunk_size(sample_rate, channels)
        chunks: List[np.ndarray] = [samples[i:i + size] for i in range(0, len(samples), size)]
        total_chunks = len(chunks)
        logger.info(f"Transcribing {len(samples)} samples in {total_chunks} chunks")

        wav_chunks = [encoder.encode(chunk, sample_rate, channels) for chunk in chunks]
        texts: List[str] = []
        timestamps: List[int] = []

        def _on_result(index: int, result: TranscriptionResult) -> None:
            result.is_final = index == total_chunks - 1
            result.chunk_index = index
            texts.append(result.text)
            timestamps.append(result.timestamp)
            logger.debug(f"Chunk {index + 1}/{total_chunks}: '{result.text[:50]}'")
            if on_interim:
                on_interim(result)

        await self._submit_sequence(wav_chunks, _on_result)

        full_text = ""
        for text in texts:
            if full_text and text:
                full_text += " "
            full_text += text

        final = TranscriptionResult(
            text=full_text,
            confidence=1.0,
            is_final=True,
            service=self.backend.service_name,
            language=self.language,
        )
        if timestamps:
            final.timestamp = timestamps[-1]
        return final

    async def transcribe(self, audio_data: bytes, sample_rate: Optional[int] = None,
                         channels: Optional[int] = None) -> TranscriptionResult:
        """Transcribe raw 16-bit little-endian PCM as one payload."""
        wav_data = encoder.encode_raw(audio_data,
                                      sample_rate or self.sample_rate,
                                      channels or self.channels)
        return await self._submit(wav_data)
