from typing import Dict, Any, List, Optional

import pytest
from langchain_core.messages import BaseMessage
from pydantic import BaseModel

from toolgate.domain.context.state.state_manager import StateManager
from toolgate.domain.models.agent_state import ToolCall
from toolgate.domain.tool.base_tool import FunctionTool, ToolRuntimeContext
from toolgate.domain.tool.tool_executor import ToolExecutor
from toolgate.domain.tool.tool_registry import ToolRegistry
from toolgate.infrastructure.config.settings import AppConfig, load_config, merge_config
from toolgate.infrastructure.llm.base_provider import BaseProvider, CompletionOptions, LLMResponse
from toolgate.infrastructure.security.audit_logger import AuditLogger
from toolgate.infrastructure.security.sandbox import SandboxConfig


class ScriptedProvider(BaseProvider):
    """Replays canned responses; the last one repeats once the script runs out"""

    name = "scripted"
    supports_functions = True

    def __init__(self, responses: List[LLMResponse]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        messages: List[BaseMessage],
        options: Optional[CompletionOptions] = None
    ) -> LLMResponse:
        self.calls.append({"messages": list(messages), "options": options})
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class EchoArgs(BaseModel):
    text: str


async def _echo(args: EchoArgs, context: ToolRuntimeContext) -> Dict[str, Any]:
    return {"echoed": args.text}


def tool_call_response(name: str, arguments: Dict[str, Any], call_id: str = "call-1", content: str = "") -> LLMResponse:
    return LLMResponse(content=content, tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)])


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def tool_call_factory():
    return tool_call_response


@pytest.fixture
def workspace(tmp_path) -> str:
    root = tmp_path / "workspace"
    root.mkdir()
    return str(root)


@pytest.fixture
def sandbox_config(workspace) -> SandboxConfig:
    return SandboxConfig(
        workspace_root=workspace,
        blocked_commands=[r"(^|\s)sudo(\s|$)", r"rm\s+-rf\s+/", "shutdown", "reboot"],
        blocked_paths=[".git", ".env"]
    )


@pytest.fixture
def runtime_context(workspace, sandbox_config) -> ToolRuntimeContext:
    return ToolRuntimeContext(workspace_root=workspace, sandbox_config=sandbox_config, command_timeout_ms=5000)


@pytest.fixture
def echo_tool() -> FunctionTool:
    return FunctionTool(name="echo", description="Echoes text back", parameters=EchoArgs, handler=_echo)


@pytest.fixture
def state() -> StateManager:
    return StateManager()


@pytest.fixture
def registry(echo_tool) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(echo_tool)
    return registry


@pytest.fixture
def audit_logger(tmp_path) -> AuditLogger:
    return AuditLogger(enabled=True, log_path=str(tmp_path / "audit.log"))


@pytest.fixture
def executor(state, registry, runtime_context, audit_logger) -> ToolExecutor:
    return ToolExecutor(
        agent_id="agent-test",
        state=state,
        registry=registry,
        runtime_context=runtime_context,
        audit_logger=audit_logger
    )


@pytest.fixture
def app_config(tmp_path, workspace) -> AppConfig:
    defaults = load_config(str(tmp_path / "absent.config.json"))
    return merge_config(defaults, {
        "tools": {"workspace_root": workspace},
        "memory": {"enabled": False},
        "audit": {"path": str(tmp_path / "audit.log")},
    })
