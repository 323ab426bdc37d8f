from typing import AsyncIterator, List, Optional, Union
import json

import structlog
from langchain_core.messages import BaseMessage

from toolgate.domain.context.context_builder import append_tool_results, build_context
from toolgate.domain.context.memory.base_memory import MemoryStore
from toolgate.domain.context.state.state_manager import StateManager
from toolgate.domain.models.agent_state import (
    AgentRunInput, AgentRunResult, LoopState, MessageRole, ToolCallResult
)
from toolgate.domain.streaming.events import (
    AgentStreamEvent, DoneEvent, TokenEvent, ToolCallEvent, ToolResultEvent
)
from toolgate.domain.tool.tool_executor import ToolExecutor
from toolgate.domain.tool.tool_registry import ToolRegistry
from toolgate.errors import MaxIterationsError
from toolgate.infrastructure.llm.base_provider import BaseProvider, CompletionOptions
from toolgate.infrastructure.observability.logging import agent_logger

logger = structlog.get_logger(__name__)

EXECUTING_TOOLS_PLACEHOLDER = "Executing tools."


class AgentLoop:
    """
    Drives one conversation turn to completion.

    The loop asks the provider, executes any requested tools in the order the
    model listed them, folds the results back into the context and asks
    again, until the model answers without tool calls or ``max_iterations``
    provider calls have been made.
    """

    def __init__(
        self,
        provider: BaseProvider,
        registry: ToolRegistry,
        memory: MemoryStore,
        state: StateManager,
        executor: ToolExecutor,
        max_iterations: int = 10,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
        memory_retrieval_limit: int = 10
    ):
        self.provider = provider
        self.registry = registry
        self.memory = memory
        self.state = state
        self.executor = executor
        self.max_iterations = max_iterations
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.memory_retrieval_limit = memory_retrieval_limit

    async def run(self, input: AgentRunInput) -> AgentRunResult:
        """Drain the event stream and return the final result"""

        result: Optional[AgentRunResult] = None
        async for step in self._drive(input):
            if isinstance(step, AgentRunResult):
                result = step
        return result

    async def stream(self, input: AgentRunInput) -> AsyncIterator[AgentStreamEvent]:
        async for step in self._drive(input):
            if not isinstance(step, AgentRunResult):
                yield step

    async def _drive(self, input: AgentRunInput) -> AsyncIterator[Union[AgentStreamEvent, AgentRunResult]]:
        conversation_id = input.conversation_id
        structlog.contextvars.bind_contextvars(conversation_id=conversation_id)
        try:
            async for step in self._loop(input):
                yield step
        finally:
            structlog.contextvars.unbind_contextvars("conversation_id")

    async def _loop(self, input: AgentRunInput) -> AsyncIterator[Union[AgentStreamEvent, AgentRunResult]]:
        conversation_id = input.conversation_id
        state = LoopState.BUILD_CONTEXT

        await self.state.ensure_conversation(conversation_id)
        history = await self.state.get_conversation_messages(conversation_id)
        await self.state.append_message(conversation_id, MessageRole.USER, input.message)

        memory_entries = await self.memory.retrieve(input.message, self.memory_retrieval_limit)
        tool_schemas = self.registry.get_schemas()

        context: List[BaseMessage] = build_context(
            user_message=input.message,
            history=history,
            memory=memory_entries,
            available_tools=tool_schemas,
            system_prompt=self.system_prompt
        )
        agent_logger.log_agent_event(
            "run_started", conversation_id, {"history": len(history), "memory": len(memory_entries)}
        )

        all_results: List[ToolCallResult] = []
        iterations = 0

        while iterations < self.max_iterations:
            iterations += 1
            state = self._transition(conversation_id, state, LoopState.AWAITING_MODEL, iterations)

            response = await self.provider.complete(
                context,
                CompletionOptions(
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    tools=tool_schemas
                )
            )
            tool_calls = response.tool_calls or []

            if not tool_calls:
                state = self._transition(conversation_id, state, LoopState.HAS_FINAL_ANSWER, iterations)
                final_response = response.content

                await self.state.append_message(conversation_id, MessageRole.ASSISTANT, final_response)
                await self.memory.store(input.message, final_response)

                yield TokenEvent(content=final_response)
                yield DoneEvent(content=final_response)

                agent_logger.log_agent_event(
                    "run_completed", conversation_id, {"iterations": iterations, "tool_calls": len(all_results)}
                )
                yield AgentRunResult(
                    response=final_response,
                    tool_calls=all_results,
                    iterations=iterations,
                    conversation_id=conversation_id
                )
                return

            state = self._transition(conversation_id, state, LoopState.EXECUTING_TOOLS, iterations)
            assistant_message = await self.state.append_message(
                conversation_id,
                MessageRole.ASSISTANT,
                response.content or EXECUTING_TOOLS_PLACEHOLDER,
                tool_calls=tool_calls
            )

            turn_results: List[ToolCallResult] = []
            for call in tool_calls:
                yield ToolCallEvent(name=call.name, arguments=call.arguments)

                result = await self.executor.execute(call, assistant_message.id)
                all_results.append(result)
                turn_results.append(result)

                yield ToolResultEvent(name=result.name, result=result.result)

                await self.state.append_message(
                    conversation_id,
                    MessageRole.TOOL,
                    json.dumps(result.result, default=str),
                    tool_results=[result]
                )

            context = append_tool_results(context, response.content, tool_calls, turn_results)

        self._transition(conversation_id, state, LoopState.ITERATION_EXHAUSTED, iterations)
        raise MaxIterationsError(self.max_iterations)

    @staticmethod
    def _transition(conversation_id: str, current: LoopState, target: LoopState, iteration: int) -> LoopState:
        agent_logger.log_workflow_transition(
            conversation_id=conversation_id,
            from_state=current.value,
            to_state=target.value,
            iteration=iteration
        )
        return target
