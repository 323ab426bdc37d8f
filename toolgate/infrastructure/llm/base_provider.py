from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
import json

from langchain_core.messages import BaseMessage, ToolMessage
from pydantic import BaseModel, Field

from toolgate.domain.models.agent_state import ToolCall
from toolgate.domain.tool.base_tool import ToolSchema


class CompletionOptions(BaseModel):
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    tools: List[ToolSchema] = Field(default_factory=list)


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0


class LLMResponse(BaseModel):
    """Uniform completion result across model backends"""
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None
    usage: Optional[Usage] = None


class BaseProvider(ABC):
    """Uniform model-backend interface"""

    name: str = "base"
    supports_functions: bool = False

    @abstractmethod
    async def complete(
        self,
        messages: List[BaseMessage],
        options: Optional[CompletionOptions] = None
    ) -> LLMResponse:
        """
        Send the context to the model.

        Raises:
            ProviderError: transport or protocol failure, after any retries
        """
        pass

    @staticmethod
    def parse_json_arguments(value: str) -> Dict[str, Any]:
        """Decode a JSON arguments string; undecodable input is kept under ``raw``"""

        try:
            parsed = json.loads(value) if value else {}
        except ValueError:
            return {"raw": value}
        return parsed if isinstance(parsed, dict) else {"raw": value}

    @staticmethod
    def normalize_tool_calls(tool_calls: Optional[List[ToolCall]]) -> Optional[List[ToolCall]]:
        return tool_calls or None


def message_role(message: BaseMessage) -> str:
    """Map a langchain message onto the system/user/assistant/tool role vocabulary"""

    return {"human": "user", "ai": "assistant"}.get(message.type, message.type)


def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Multi-part content: keep the text parts only
    return "\n".join(
        part if isinstance(part, str) else str(part.get("text", ""))
        for part in content
    )


def render_tool_as_text(message: ToolMessage) -> str:
    return f"[tool:{message.name or 'tool'}] {message_text(message)}"
