"""LLM post-processing providers for VoiceDraft."""

from .base import LLMProvider, HttpLLMProvider
from .streaming import EventChannel, StreamDecoder, StreamGrammar
from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider
from .vertex_provider import VertexAIProvider
from .factory import ProviderType, create_provider, parse_provider_type
from .prompt import render_prompt
from .context import ContextManager

__all__ = [
    "LLMProvider",
    "HttpLLMProvider",
    "EventChannel",
    "StreamDecoder",
    "StreamGrammar",
    "OpenAIProvider",
    "AnthropicProvider",
    "VertexAIProvider",
    "ProviderType",
    "create_provider",
    "parse_provider_type",
    "render_prompt",
    "ContextManager",
]
