"""Transcription-related data models."""

import time
from dataclasses import dataclass, field
from typing import Optional


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TranscriptionResult:
    """Result of a transcription operation."""
    text: str
    confidence: float
    is_final: bool = True
    timestamp: int = field(default_factory=_now_ms)  # ms since epoch
    service: str = ""
    language: str = ""
    chunk_index: Optional[int] = None
