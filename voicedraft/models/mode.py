"""Dictation mode models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ModeConfig:
    """A dictation mode and its post-processing prompt."""
    id: str
    label: str
    description: str = ""
    ai_enabled: bool = False
    ai_prompt: Optional[str] = None  # template with {input} / {context}
