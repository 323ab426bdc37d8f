from typing import List, Optional
import json

import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from toolgate.domain.context.memory.base_memory import MemoryEntry
from toolgate.domain.models.agent_state import Message, MessageRole, ToolCall, ToolCallResult
from toolgate.domain.tool.base_tool import ToolSchema

logger = structlog.get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
TOOL_REQUEST_PLACEHOLDER = "Tool execution requested."


def build_system_prompt(system_prompt: Optional[str], tools: List[ToolSchema]) -> str:
    prefix = system_prompt or DEFAULT_SYSTEM_PROMPT

    if not tools:
        return prefix

    tool_lines = "\n".join(f"- {tool.name}: {tool.description}" for tool in tools)
    return f"{prefix}\n\nAvailable tools:\n{tool_lines}\n\nUse tools when needed."


def format_memory(memory: List[MemoryEntry]) -> str:
    return "\n".join(f"- [{entry.timestamp}] {entry.content}" for entry in memory)


def _as_tool_call_dicts(tool_calls: List[ToolCall]) -> List[dict]:
    return [{"name": call.name, "args": call.arguments, "id": call.id} for call in tool_calls]


def _history_message(message: Message) -> BaseMessage:
    if message.role == MessageRole.SYSTEM:
        return SystemMessage(content=message.content)
    if message.role == MessageRole.USER:
        return HumanMessage(content=message.content)
    if message.role == MessageRole.ASSISTANT:
        return AIMessage(content=message.content, tool_calls=_as_tool_call_dicts(message.tool_calls or []))

    result = message.tool_results[0] if message.tool_results else None
    return ToolMessage(
        content=message.content,
        tool_call_id=result.tool_call_id if result else "",
        name=result.name if result else None
    )


def build_context(
    user_message: str,
    history: List[Message],
    memory: List[MemoryEntry],
    available_tools: List[ToolSchema],
    system_prompt: Optional[str] = None
) -> List[BaseMessage]:
    """
    Assemble the ordered message list for the model.

    Order: persona (with tool catalogue), optional memory digest, prior
    history verbatim, then the new user message last.
    """

    messages: List[BaseMessage] = [SystemMessage(content=build_system_prompt(system_prompt, available_tools))]

    if memory:
        messages.append(SystemMessage(content=f"Relevant memory:\n{format_memory(memory)}"))

    messages.extend(_history_message(message) for message in history)
    messages.append(HumanMessage(content=user_message))

    return messages


def append_tool_results(
    context: List[BaseMessage],
    assistant_content: str,
    tool_calls: List[ToolCall],
    tool_results: List[ToolCallResult]
) -> List[BaseMessage]:
    """Fold one turn of tool calls and their results into a new context list"""

    next_context = list(context)
    next_context.append(AIMessage(
        content=assistant_content or TOOL_REQUEST_PLACEHOLDER,
        tool_calls=_as_tool_call_dicts(tool_calls)
    ))

    calls_by_id = {call.id: call for call in tool_calls}
    for tool_result in tool_results:
        original_call = calls_by_id.get(tool_result.tool_call_id)
        if original_call is None:
            logger.warning("Unresolved tool call id", tool_call_id=tool_result.tool_call_id)

        next_context.append(ToolMessage(
            content=json.dumps(tool_result.result, default=str),
            tool_call_id=tool_result.tool_call_id,
            name=original_call.name if original_call else None
        ))

    return next_context
