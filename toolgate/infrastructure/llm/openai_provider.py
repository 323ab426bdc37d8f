"""
OpenAI-compatible chat completions adapter.

Also serves OpenAI-compatible backends (gemini, kimi) through ``api_base``.

Retry ladder: every candidate model (the configured one, then its fallbacks)
is tried with up to three compatibility modes, from the full request down to
a bare one. A not-found (404) answer skips to the next model; a bad-request
(400) answer steps down to the next mode and then to the next model. Any other
failure is final. No (model, mode) pair is attempted twice.
"""

from typing import Dict, Any, List, Optional, Tuple
import json

import structlog
from langchain_core.messages import AIMessage, BaseMessage, ToolMessage
from openai import AsyncOpenAI
from pydantic import BaseModel

from toolgate.domain.models.agent_state import ToolCall
from toolgate.errors import ProviderError
from toolgate.infrastructure.llm.base_provider import (
    BaseProvider, CompletionOptions, LLMResponse, Usage,
    message_role, message_text, render_tool_as_text
)

logger = structlog.get_logger(__name__)

GEMINI_FALLBACKS: Dict[str, str] = {
    "gemini-3-flash": "gemini-3-flash-preview",
    "gemini-3-pro": "gemini-3-pro-preview",
    "gemini-3-flash-preview": "gemini-2.5-flash",
    "gemini-3-pro-preview": "gemini-2.5-pro",
    "gemini-2.5-flash": "gemini-2.5-flash-latest",
    "gemini-2.5-pro": "gemini-2.5-pro-latest",
}


class CompatibilityMode(BaseModel):
    name: str
    include_tools: bool
    include_temperature: bool
    include_max_tokens: bool


FULL_MODE = CompatibilityMode(name="full", include_tools=True, include_temperature=True, include_max_tokens=True)
NO_TOOLS_MODE = CompatibilityMode(name="no_tools", include_tools=False, include_temperature=True, include_max_tokens=True)
BARE_MODE = CompatibilityMode(name="bare", include_tools=False, include_temperature=False, include_max_tokens=False)


def error_status(error: Exception) -> Optional[int]:
    """HTTP status carried by an SDK error, if any"""

    for attribute in ("status_code", "status"):
        value = getattr(error, attribute, None)
        if isinstance(value, int):
            return value
    return None


class OpenAIProvider(BaseProvider):
    supports_functions = True

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: Optional[str] = None,
        provider_name: str = "openai",
        fallback_models: Optional[List[str]] = None,
        client: Optional[Any] = None
    ):
        self.name = provider_name
        self.model = model
        self.fallback_models = list(fallback_models or [])
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=api_base)

    async def complete(
        self,
        messages: List[BaseMessage],
        options: Optional[CompletionOptions] = None
    ) -> LLMResponse:
        options = options or CompletionOptions()
        modes = self.get_compatibility_modes(options)
        attempts: List[Tuple[str, str]] = []
        last_error: Optional[Exception] = None

        for model in self.get_candidate_models():
            for mode in modes:
                attempts.append((model, mode.name))
                try:
                    return await self._complete_once(model, mode, messages, options)
                except Exception as e:
                    last_error = e
                    status = error_status(e)

                    if status == 404:
                        logger.warning("Model not found, trying fallback", provider=self.name, model=model)
                        break
                    if status == 400:
                        logger.warning(
                            "Request rejected, reducing features",
                            provider=self.name, model=model, mode=mode.name
                        )
                        continue

                    raise ProviderError(self.name, str(e), {"model": model, "mode": mode.name}) from e

        raise ProviderError(
            self.name,
            str(last_error) if last_error else "No completion attempt was made",
            {"attempts": attempts}
        ) from last_error

    def get_candidate_models(self) -> List[str]:
        """Configured model, then explicit fallbacks, then the built-in gemini chain"""

        models = [self.model]
        for fallback in self.fallback_models:
            if fallback not in models:
                models.append(fallback)

        if self.name == "gemini":
            next_model = GEMINI_FALLBACKS.get(models[-1])
            while next_model and next_model not in models:
                models.append(next_model)
                next_model = GEMINI_FALLBACKS.get(next_model)

        return models

    @staticmethod
    def get_compatibility_modes(options: CompletionOptions) -> List[CompatibilityMode]:
        if options.tools:
            return [FULL_MODE, NO_TOOLS_MODE, BARE_MODE]
        return [FULL_MODE, BARE_MODE]

    async def _complete_once(
        self,
        model: str,
        mode: CompatibilityMode,
        messages: List[BaseMessage],
        options: CompletionOptions
    ) -> LLMResponse:
        request: Dict[str, Any] = {
            "model": model,
            "messages": [self._to_openai_message(message, native_tools=mode.include_tools) for message in messages],
        }
        if mode.include_tools and options.tools:
            request["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in options.tools
            ]
        if mode.include_temperature and options.temperature is not None:
            request["temperature"] = options.temperature
        if mode.include_max_tokens and options.max_tokens is not None:
            request["max_tokens"] = options.max_tokens

        response = await self.client.chat.completions.create(**request)

        first_choice = response.choices[0].message if response.choices else None
        content = (first_choice.content if first_choice else None) or ""
        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=self.parse_json_arguments(call.function.arguments)
            )
            for call in (getattr(first_choice, "tool_calls", None) or [])
        ]

        usage = None
        if getattr(response, "usage", None):
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens
            )

        return LLMResponse(content=content, tool_calls=self.normalize_tool_calls(tool_calls), usage=usage)

    def _to_openai_message(self, message: BaseMessage, native_tools: bool) -> Dict[str, Any]:
        # Without native tools the transcript must not reference tool calls
        if isinstance(message, ToolMessage):
            if native_tools:
                return {"role": "tool", "content": message_text(message), "tool_call_id": message.tool_call_id}
            return {"role": "user", "content": render_tool_as_text(message)}

        payload: Dict[str, Any] = {"role": message_role(message), "content": message_text(message)}
        if native_tools and isinstance(message, AIMessage) and message.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": call["id"],
                    "type": "function",
                    "function": {"name": call["name"], "arguments": json.dumps(call["args"])},
                }
                for call in message.tool_calls
            ]
        return payload
