"""Selection of an LLM provider from external configuration."""

import os
import logging
from enum import Enum
from typing import Mapping, Optional

import aiohttp

from .base import LLMProvider
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .vertex_provider import DEFAULT_VERTEX_LOCATION, VertexAIProvider
from ..exceptions import ApiKeyMissingError, ConfigurationError

logger = logging.getLogger(__name__)


class ProviderType(Enum):
    """Supported LLM providers."""
    VERTEXAI = "vertexai"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


def parse_provider_type(value: Optional[str]) -> ProviderType:
    """Map a configured provider identifier to a ProviderType.

    Raises:
        ConfigurationError: If the identifier is missing or unknown
    """
    names = ", ".join(p.value for p in ProviderType)
    if not value:
        raise ConfigurationError(f"AI provider not set. Use one of: {names}")
    try:
        return ProviderType(value.strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown AI provider: '{value}'. Use one of: {names}") from None


def _require(settings: Mapping[str, str], key: str) -> str:
    value = settings.get(key)
    if not value:
        raise ApiKeyMissingError(key)
    return value


def create_provider(provider_type: ProviderType,
                    settings: Optional[Mapping[str, str]] = None,
                    model: Optional[str] = None,
                    session: Optional[aiohttp.ClientSession] = None) -> LLMProvider:
    """Build the provider for provider_type.

    Args:
        provider_type: Which backend to build
        settings: Credential source; defaults to the process environment
        model: Optional model override
        session: Optional shared aiohttp session

    Raises:
        ApiKeyMissingError: If a required credential variable is absent
    """
    settings = os.environ if settings is None else settings
    extra = {"model": model} if model else {}

    if provider_type is ProviderType.VERTEXAI:
        project = _require(settings, "GOOGLE_CLOUD_PROJECT")
        location = settings.get("GOOGLE_CLOUD_LOCATION") or DEFAULT_VERTEX_LOCATION
        provider: LLMProvider = VertexAIProvider(project, location=location, session=session, **extra)
    elif provider_type is ProviderType.OPENAI:
        provider = OpenAIProvider(_require(settings, "OPENAI_API_KEY"), session=session, **extra)
    elif provider_type is ProviderType.ANTHROPIC:
        provider = AnthropicProvider(_require(settings, "ANTHROPIC_API_KEY"), session=session, **extra)
    else:
        raise ConfigurationError(f"Unsupported provider type: {provider_type}")

    logger.info(f"Created {provider.__class__.__name__} (model={provider.model})")
    return provider
