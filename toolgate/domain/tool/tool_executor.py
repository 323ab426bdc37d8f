"""
Execution boundary between the agent loop and tool bodies.

``ToolExecutor.execute`` never raises for tool-level problems. Consent
denials, sandbox violations, validation errors, timeouts and exceptions from
the tool body all become an ``ExecutionOutcome`` failure, a failed TaskRecord,
an audit entry, and a ToolCallResult with ``error=True`` that the model can
react to.
"""

from typing import Dict, Any, Optional, Set
import asyncio
import time

import structlog
from pydantic import BaseModel

from toolgate.domain.context.state.state_manager import StateManager
from toolgate.domain.models.agent_state import TaskType, ToolCall, ToolCallResult
from toolgate.domain.tool.base_tool import ToolRuntimeContext
from toolgate.domain.tool.tool_registry import ToolRegistry
from toolgate.errors import ConsentDeniedError
from toolgate.infrastructure.observability.logging import agent_logger
from toolgate.infrastructure.security.audit_logger import AuditLogger
from toolgate.infrastructure.security.consent import ConsentHandler

logger = structlog.get_logger(__name__)
tool_logger = structlog.get_logger("toolgate.tool")

# Strong references to executions whose caller may already be gone
_in_flight: Set[asyncio.Future] = set()


class ExecutionOutcome(BaseModel):
    """Success or failure of one tool invocation"""
    ok: bool
    result: Dict[str, Any] = {}
    error: Optional[str] = None

    @classmethod
    def success(cls, result: Dict[str, Any]) -> "ExecutionOutcome":
        return cls(ok=True, result=result)

    @classmethod
    def failure(cls, error: str) -> "ExecutionOutcome":
        return cls(ok=False, error=error)

    def to_tool_call_result(self, call: ToolCall) -> ToolCallResult:
        if self.ok:
            return ToolCallResult(tool_call_id=call.id, name=call.name, result=self.result, error=False)
        return ToolCallResult(tool_call_id=call.id, name=call.name, result={"error": self.error}, error=True)


class ToolExecutor:
    """Applies consent, sandboxed execution and timeout around a single tool call"""

    def __init__(
        self,
        agent_id: str,
        state: StateManager,
        registry: ToolRegistry,
        runtime_context: ToolRuntimeContext,
        audit_logger: AuditLogger,
        consent_handler: Optional[ConsentHandler] = None
    ):
        self.agent_id = agent_id
        self.state = state
        self.registry = registry
        self.runtime_context = runtime_context
        self.audit_logger = audit_logger
        self.consent_handler = consent_handler

    async def execute(self, call: ToolCall, message_id: Optional[str] = None) -> ToolCallResult:
        """Run ``call`` to a settled task record; cancelling the caller does not interrupt it"""

        settling = asyncio.ensure_future(self._execute(call, message_id))
        _in_flight.add(settling)
        settling.add_done_callback(_in_flight.discard)
        return await asyncio.shield(settling)

    async def _execute(self, call: ToolCall, message_id: Optional[str]) -> ToolCallResult:
        declared_type = self.registry.get_type(call.name) if self.registry.has(call.name) else None
        task = await self.state.create_task(
            agent_id=self.agent_id,
            message_id=message_id,
            type=TaskType.normalize(declared_type),
            payload={"name": call.name, "arguments": call.arguments}
        )
        await self.state.mark_task_running(task.id)

        started = time.perf_counter()
        outcome = await self._invoke(call)
        duration_ms = (time.perf_counter() - started) * 1000

        if outcome.ok:
            await self.state.mark_task_completed(task.id, outcome.result)
            await self._audit(call, True, {"task_id": task.id, "message_id": message_id})
        else:
            await self.state.mark_task_failed(task.id, outcome.error or "")
            await self._audit(
                call, False, {"task_id": task.id, "message_id": message_id, "error": outcome.error}
            )

        agent_logger.log_tool_execution(
            tool_name=call.name,
            task_id=task.id,
            input_data=call.arguments,
            output_data=outcome.result if outcome.ok else None,
            duration_ms=round(duration_ms, 2),
            success=outcome.ok,
            error=outcome.error
        )

        return outcome.to_tool_call_result(call)

    async def _invoke(self, call: ToolCall) -> ExecutionOutcome:
        """Run consent and the tool body, converting every failure into an outcome"""

        try:
            if self.consent_handler is not None and self.registry.requires_consent(call.name):
                approved = await self.consent_handler.request_consent(call)
                if not approved:
                    raise ConsentDeniedError(call.name)

            context = self.runtime_context.model_copy(update={"logger": tool_logger.bind(tool=call.name)})
            result = await self.registry.execute(call.name, call.arguments, context)
            return ExecutionOutcome.success(result)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.warning("Tool execution failed", tool=call.name, error=message)
            return ExecutionOutcome.failure(message)

    async def _audit(self, call: ToolCall, success: bool, metadata: Dict[str, Any]) -> None:
        # Audit and task state are not transactional; a failed audit write is logged only
        try:
            await self.audit_logger.log(action=f"tool:{call.name}", success=success, metadata=metadata)
        except OSError:
            logger.exception("Audit write failed", tool=call.name, task_id=metadata.get("task_id"))
