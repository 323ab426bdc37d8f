from typing import List, Optional

import structlog
from langchain_core.messages import BaseMessage

from toolgate.infrastructure.config.settings import AppConfig
from toolgate.infrastructure.llm.anthropic_provider import AnthropicProvider
from toolgate.infrastructure.llm.base_provider import BaseProvider, CompletionOptions, LLMResponse
from toolgate.infrastructure.llm.ollama_provider import OllamaProvider
from toolgate.infrastructure.llm.openai_provider import OpenAIProvider

logger = structlog.get_logger(__name__)

NOT_CONFIGURED_MESSAGE = "Provider is not configured. Please set API credentials in config."


class NoopProvider(BaseProvider):
    """Stand-in used when the selected provider has no settings"""

    name = "noop"
    supports_functions = False

    async def complete(
        self,
        messages: List[BaseMessage],
        options: Optional[CompletionOptions] = None
    ) -> LLMResponse:
        return LLMResponse(content=NOT_CONFIGURED_MESSAGE)


def create_provider(config: AppConfig) -> BaseProvider:
    """Build the adapter for ``config.agent.provider``"""

    provider = config.agent.provider
    providers = config.providers

    if provider in ("openai", "gemini", "kimi"):
        settings = getattr(providers, provider)
        if settings is None:
            logger.warning("Provider selected but not configured", provider=provider)
            return NoopProvider()
        return OpenAIProvider(
            api_key=settings.api_key,
            model=settings.model,
            api_base=settings.api_base,
            provider_name=provider,
            fallback_models=settings.fallback_models
        )

    if provider == "anthropic":
        if providers.anthropic is None:
            logger.warning("Provider selected but not configured", provider=provider)
            return NoopProvider()
        return AnthropicProvider(
            api_key=providers.anthropic.api_key,
            model=providers.anthropic.model,
            api_base=providers.anthropic.api_base
        )

    if providers.ollama is None:
        logger.warning("Provider selected but not configured", provider=provider)
        return NoopProvider()

    return OllamaProvider(model=providers.ollama.model, api_base=providers.ollama.api_base)
