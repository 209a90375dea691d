"""Models shared by the LLM providers."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StreamEvent:
    """One incremental piece of a streamed completion."""
    content: str
    done: bool = False


@dataclass
class TokenUsage:
    """Token accounting reported by a provider."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ProviderResponse:
    """Complete (non-streaming) provider answer."""
    text: str
    model: str
    usage: Optional[TokenUsage] = None
