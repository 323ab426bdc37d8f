import pytest

from toolgate.infrastructure.config.settings import merge_config
from toolgate.infrastructure.llm.anthropic_provider import AnthropicProvider
from toolgate.infrastructure.llm.ollama_provider import OllamaProvider
from toolgate.infrastructure.llm.openai_provider import OpenAIProvider
from toolgate.infrastructure.llm.provider_factory import NOT_CONFIGURED_MESSAGE, NoopProvider, create_provider


class TestCreateProvider:
    """Provider selection from configuration."""

    def test_default_config_uses_ollama(self, app_config):
        """Test that the defaults select the local ollama backend."""
        provider = create_provider(app_config)
        assert isinstance(provider, OllamaProvider)
        assert provider.model == "llama3.1"

    @pytest.mark.parametrize("name", ["openai", "gemini", "kimi"])
    def test_openai_compatible_backends(self, app_config, name):
        """Test that openai, gemini and kimi share the OpenAI adapter."""
        config = merge_config(app_config, {
            "agent": {"provider": name},
            "providers": {name: {"api_key": "k", "model": "m", "api_base": "http://localhost:1/v1"}},
        })
        provider = create_provider(config)
        assert isinstance(provider, OpenAIProvider)
        assert provider.name == name

    def test_anthropic_backend(self, app_config):
        """Test the anthropic selection."""
        config = merge_config(app_config, {
            "agent": {"provider": "anthropic"},
            "providers": {"anthropic": {"api_key": "k", "model": "claude"}},
        })
        assert isinstance(create_provider(config), AnthropicProvider)

    @pytest.mark.asyncio
    async def test_unconfigured_backend_is_noop(self, app_config):
        """Test that a selected but unconfigured provider answers with a notice."""
        provider = create_provider(merge_config(app_config, {"agent": {"provider": "openai"}}))

        assert isinstance(provider, NoopProvider)
        assert (await provider.complete([])).content == NOT_CONFIGURED_MESSAGE
