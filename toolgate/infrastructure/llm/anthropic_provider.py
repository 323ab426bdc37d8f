from typing import Dict, Any, List, Optional

import structlog
from anthropic import AsyncAnthropic
from langchain_core.messages import BaseMessage, ToolMessage

from toolgate.domain.models.agent_state import ToolCall
from toolgate.errors import ProviderError
from toolgate.infrastructure.llm.base_provider import (
    BaseProvider, CompletionOptions, LLMResponse, Usage,
    message_role, message_text, render_tool_as_text
)

logger = structlog.get_logger(__name__)

DEFAULT_MAX_TOKENS = 1024


class AnthropicProvider(BaseProvider):
    """Anthropic messages API adapter"""

    name = "anthropic"
    supports_functions = True

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: Optional[str] = None,
        client: Optional[Any] = None
    ):
        self.model = model
        self.client = client or AsyncAnthropic(api_key=api_key, base_url=api_base)

    async def complete(
        self,
        messages: List[BaseMessage],
        options: Optional[CompletionOptions] = None
    ) -> LLMResponse:
        options = options or CompletionOptions()

        system_parts = [message_text(m) for m in messages if m.type == "system"]
        conversation = [self._to_anthropic_message(m) for m in messages if m.type != "system"]

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": conversation,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)
        if options.temperature is not None:
            request["temperature"] = options.temperature
        if options.tools:
            request["tools"] = [
                {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}
                for tool in options.tools
            ]

        try:
            response = await self.client.messages.create(**request)
        except Exception as e:
            raise ProviderError(self.name, str(e), {"model": self.model}) from e

        content = "\n".join(block.text for block in response.content if block.type == "text")
        tool_calls = [
            ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
            for block in response.content
            if block.type == "tool_use"
        ]

        usage = None
        if getattr(response, "usage", None):
            usage = Usage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens
            )

        return LLMResponse(content=content, tool_calls=self.normalize_tool_calls(tool_calls), usage=usage)

    @staticmethod
    def _to_anthropic_message(message: BaseMessage) -> Dict[str, str]:
        if isinstance(message, ToolMessage):
            return {"role": "user", "content": render_tool_as_text(message)}
        role = "assistant" if message_role(message) == "assistant" else "user"
        return {"role": role, "content": message_text(message)}
