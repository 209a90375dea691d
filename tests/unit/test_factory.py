"""Unit tests for provider selection."""

import pytest

from voicedraft.exceptions import ApiKeyMissingError, ConfigurationError
from voicedraft.llm import (
    AnthropicProvider,
    OpenAIProvider,
    ProviderType,
    VertexAIProvider,
    create_provider,
    parse_provider_type,
)


@pytest.mark.unit
class TestParseProviderType:
    """Test cases for parse_provider_type()."""

    @pytest.mark.parametrize("value,expected", [
        ("openai", ProviderType.OPENAI),
        ("anthropic", ProviderType.ANTHROPIC),
        ("vertexai", ProviderType.VERTEXAI),
        (" OpenAI ", ProviderType.OPENAI),
    ])
    def test_known_values(self, value, expected):
        """Test identifiers are matched case-insensitively."""
        assert parse_provider_type(value) is expected

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        """Test an unset provider is a configuration error."""
        with pytest.raises(ConfigurationError, match="not set"):
            parse_provider_type(value)

    def test_unknown(self):
        """Test an unknown provider lists the valid choices."""
        with pytest.raises(ConfigurationError, match="vertexai, openai, anthropic"):
            parse_provider_type("mistral")


@pytest.mark.unit
class TestCreateProvider:
    """Test cases for create_provider()."""

    def test_openai(self):
        """Test OPENAI_API_KEY builds an OpenAI provider."""
        provider = create_provider(ProviderType.OPENAI, {"OPENAI_API_KEY": "sk-1"})

        assert isinstance(provider, OpenAIProvider)
        assert provider.api_key == "sk-1"
        assert provider.model == "gpt-4o-mini"

    def test_anthropic(self):
        """Test ANTHROPIC_API_KEY builds an Anthropic provider."""
        provider = create_provider(ProviderType.ANTHROPIC, {"ANTHROPIC_API_KEY": "ak"})

        assert isinstance(provider, AnthropicProvider)
        assert provider.api_key == "ak"

    def test_vertex_default_location(self):
        """Test Vertex falls back to us-central1."""
        provider = create_provider(ProviderType.VERTEXAI, {"GOOGLE_CLOUD_PROJECT": "proj"})

        assert isinstance(provider, VertexAIProvider)
        assert provider.project == "proj"
        assert provider.location == "us-central1"

    def test_vertex_location_override(self):
        """Test GOOGLE_CLOUD_LOCATION selects the region."""
        provider = create_provider(ProviderType.VERTEXAI, {
            "GOOGLE_CLOUD_PROJECT": "proj",
            "GOOGLE_CLOUD_LOCATION": "asia-northeast1",
        })

        assert provider.location == "asia-northeast1"

    @pytest.mark.parametrize("provider_type,variable", [
        (ProviderType.OPENAI, "OPENAI_API_KEY"),
        (ProviderType.ANTHROPIC, "ANTHROPIC_API_KEY"),
        (ProviderType.VERTEXAI, "GOOGLE_CLOUD_PROJECT"),
    ])
    def test_missing_credentials(self, provider_type, variable):
        """Test each provider names the variable it needs."""
        with pytest.raises(ApiKeyMissingError) as exc_info:
            create_provider(provider_type, {})

        assert exc_info.value.which == variable
        assert variable in str(exc_info.value)

    def test_empty_credential_counts_as_missing(self):
        """Test an empty value is treated like an absent one."""
        with pytest.raises(ApiKeyMissingError):
            create_provider(ProviderType.OPENAI, {"OPENAI_API_KEY": ""})

    def test_model_override(self):
        """Test the model argument replaces the provider default."""
        provider = create_provider(ProviderType.ANTHROPIC, {"ANTHROPIC_API_KEY": "ak"},
                                   model="claude-sonnet-4-5")

        assert provider.model == "claude-sonnet-4-5"

    def test_defaults_to_environment(self, monkeypatch):
        """Test credentials are read from os.environ when no settings are given."""
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")

        provider = create_provider(ProviderType.OPENAI)

        assert provider.api_key == "from-env"
