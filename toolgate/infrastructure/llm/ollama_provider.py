"""
Ollama adapter.

Ollama models are driven without native function calling: when tools are
offered, a system message asks the model to answer with a single JSON object
``{"toolCalls": [...], "content": "..."}``. Anything that does not parse as
such an object is treated as plain assistant text.
"""

from typing import Dict, Any, List, Optional
import json

import httpx
import structlog
from langchain_core.messages import BaseMessage

from toolgate.domain.models.agent_state import ToolCall
from toolgate.errors import ProviderError
from toolgate.infrastructure.llm.base_provider import (
    BaseProvider, CompletionOptions, LLMResponse, Usage, message_role, message_text
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_S = 120.0


class OllamaProvider(BaseProvider):
    name = "ollama"
    supports_functions = False

    def __init__(
        self,
        model: str,
        api_base: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout_s = timeout_s
        self.transport = transport

    async def complete(
        self,
        messages: List[BaseMessage],
        options: Optional[CompletionOptions] = None
    ) -> LLMResponse:
        options = options or CompletionOptions()
        payload_messages = self.inject_tool_prompt(
            [{"role": message_role(m), "content": message_text(m)} for m in messages],
            options
        )

        body = {
            "model": self.model,
            "stream": False,
            "messages": payload_messages,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_tokens,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                response = await client.post(f"{self.api_base}/api/chat", json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                self.name,
                f"Ollama request failed with status {e.response.status_code}",
                {"status": e.response.status_code}
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(self.name, str(e) or type(e).__name__) from e

        content = (payload.get("message") or {}).get("content") or ""
        parsed_content, tool_calls = self.parse_prompt_tool_calls(content)

        return LLMResponse(
            content=parsed_content,
            tool_calls=self.normalize_tool_calls(tool_calls),
            usage=Usage(
                prompt_tokens=payload.get("prompt_eval_count") or 0,
                completion_tokens=payload.get("eval_count") or 0
            )
        )

    @staticmethod
    def inject_tool_prompt(messages: List[Dict[str, str]], options: CompletionOptions) -> List[Dict[str, str]]:
        if not options.tools:
            return messages

        tool_prompt = "\n".join([
            "When you need a tool, respond ONLY with compact JSON using:",
            '{"toolCalls":[{"id":"call-id","name":"tool-name","arguments":{...}}],"content":"optional assistant text"}',
            "Available tools:",
            *[f"- {tool.name}: {tool.description}" for tool in options.tools],
        ])

        return [{"role": "system", "content": tool_prompt}, *messages]

    @staticmethod
    def parse_prompt_tool_calls(content: str):
        """Return ``(content, tool_calls)`` decoded from the textual tool protocol"""

        try:
            parsed = json.loads(content)
        except ValueError:
            return content, []

        if not isinstance(parsed, dict) or not isinstance(parsed.get("toolCalls"), list) or not parsed["toolCalls"]:
            return content, []

        tool_calls = []
        for index, raw_call in enumerate(parsed["toolCalls"]):
            if not isinstance(raw_call, dict) or not isinstance(raw_call.get("name"), str):
                logger.warning("Dropping malformed tool call", provider="ollama", index=index)
                continue
            arguments = raw_call.get("arguments")
            tool_calls.append(ToolCall(
                id=str(raw_call.get("id") or f"ollama-call-{index + 1}"),
                name=raw_call["name"],
                arguments=arguments if isinstance(arguments, dict) else {}
            ))

        if not tool_calls:
            return content, []

        return str(parsed.get("content") or ""), tool_calls
