from typing import Dict, Any, AsyncIterator, List, Optional
import os
import uuid

import structlog

from toolgate.domain.context.context_builder import DEFAULT_SYSTEM_PROMPT
from toolgate.domain.context.memory.base_memory import DisabledMemoryStore, MemoryStore
from toolgate.domain.context.memory.file_memory_store import FileMemoryStore
from toolgate.domain.context.state.state_manager import StateManager
from toolgate.domain.models.agent_state import (
    AgentRunInput, AgentRunResult, AgentStatus, Conversation, Message, TaskRecord
)
from toolgate.domain.orchestration.core.main_agent import AgentLoop
from toolgate.domain.orchestration.subagent.subagent_manager import SubagentManager
from toolgate.domain.streaming.events import AgentStreamEvent
from toolgate.domain.tool.base_tool import BaseTool, ToolRuntimeContext
from toolgate.domain.tool.builtin import BUILTIN_TOOLS
from toolgate.domain.tool.tool_executor import ToolExecutor
from toolgate.domain.tool.tool_registry import ToolRegistry
from toolgate.infrastructure.config.settings import AppConfig, merge_config
from toolgate.infrastructure.llm.base_provider import BaseProvider
from toolgate.infrastructure.llm.provider_factory import create_provider
from toolgate.infrastructure.security.audit_logger import AuditLogger
from toolgate.infrastructure.security.consent import AutoApproveConsent, ConsentHandler
from toolgate.infrastructure.security.sandbox import SandboxConfig

logger = structlog.get_logger(__name__)

VERSION = "1.0.0"


class AgentRunner:
    """Wires configuration into a ready-to-run agent and exposes its queries"""

    def __init__(
        self,
        config: AppConfig,
        provider: Optional[BaseProvider] = None,
        consent_handler: Optional[ConsentHandler] = None,
        memory: Optional[MemoryStore] = None,
        subagent_manager: Optional[SubagentManager] = None
    ):
        self.id = str(uuid.uuid4())
        self.status = AgentStatus.INITIALIZING
        self.config = config

        self.provider = provider or create_provider(config)
        self.state = StateManager()
        self.registry = ToolRegistry()
        self.memory = memory or self._create_memory(config)
        self.audit_logger = AuditLogger(config.audit.enabled, config.audit.path)
        self.consent_handler = consent_handler or AutoApproveConsent()
        self.subagent_manager = subagent_manager or SubagentManager()
        self.skill_instructions: List[str] = []

        self._register_builtin_tools(config)
        self.status = AgentStatus.READY
        logger.info("Agent initialized", agent_id=self.id, provider=self.provider.name, tools=len(self.registry.list()))

    @staticmethod
    def _create_memory(config: AppConfig) -> MemoryStore:
        if not config.memory.enabled:
            return DisabledMemoryStore()
        return FileMemoryStore(config.memory.path, config.memory.max_entries)

    def _register_builtin_tools(self, config: AppConfig):
        for tool_name in config.tools.enabled_tools:
            factory = BUILTIN_TOOLS.get(tool_name)
            if factory:
                self.registry.register(factory())

    def register_tool(self, tool: BaseTool):
        self.registry.register(tool)

    def _create_executor(self) -> ToolExecutor:
        tools = self.config.tools
        workspace_root = os.path.abspath(tools.workspace_root)

        return ToolExecutor(
            agent_id=self.id,
            state=self.state,
            registry=self.registry,
            runtime_context=ToolRuntimeContext(
                workspace_root=workspace_root,
                sandbox_config=SandboxConfig(
                    workspace_root=workspace_root,
                    restrict_to_workspace=tools.restrict_to_workspace,
                    blocked_commands=tools.blocked_commands,
                    blocked_paths=tools.blocked_paths
                ),
                command_timeout_ms=tools.command_timeout_ms,
                logger=logger,
                subagent_manager=self.subagent_manager
            ),
            audit_logger=self.audit_logger,
            consent_handler=self.consent_handler
        )

    def _system_prompt(self) -> Optional[str]:
        if not self.skill_instructions:
            return self.config.agent.system_prompt
        sections = [self.config.agent.system_prompt or DEFAULT_SYSTEM_PROMPT] + self.skill_instructions
        return "\n\n".join(sections)

    def _create_loop(self) -> AgentLoop:
        agent = self.config.agent
        return AgentLoop(
            provider=self.provider,
            registry=self.registry,
            memory=self.memory,
            state=self.state,
            executor=self._create_executor(),
            max_iterations=agent.max_iterations,
            temperature=agent.temperature,
            max_tokens=agent.max_tokens,
            system_prompt=self._system_prompt(),
            memory_retrieval_limit=self.config.memory.retrieval_limit
        )

    async def run(self, input: AgentRunInput) -> AgentRunResult:
        self.status = AgentStatus.BUSY
        structlog.contextvars.bind_contextvars(agent_id=self.id)
        try:
            result = await self._create_loop().run(input)
        except Exception as e:
            self.status = AgentStatus.ERROR
            logger.error("Agent run failed", conversation_id=input.conversation_id, error=str(e))
            raise
        finally:
            structlog.contextvars.unbind_contextvars("agent_id")
            self._settle_status()

        return result

    async def stream(self, input: AgentRunInput) -> AsyncIterator[AgentStreamEvent]:
        self.status = AgentStatus.BUSY
        try:
            async for event in self._create_loop().stream(input):
                yield event
        except Exception as e:
            self.status = AgentStatus.ERROR
            logger.error("Agent loop failed", conversation_id=input.conversation_id, error=str(e))
            raise
        finally:
            # An abandoned stream ends here without an error
            self._settle_status()

    def _settle_status(self):
        if self.status == AgentStatus.BUSY:
            self.status = AgentStatus.READY

    def get_status(self) -> AgentStatus:
        return self.status

    def get_version(self) -> str:
        return VERSION

    async def list_conversations(self) -> List[Conversation]:
        return await self.state.list_conversations()

    async def get_conversation_messages(self, conversation_id: str) -> List[Message]:
        return await self.state.get_conversation_messages(conversation_id)

    async def list_tasks(self) -> List[TaskRecord]:
        return await self.state.list_tasks()

    async def get_task(self, task_id: str) -> TaskRecord:
        return await self.state.get_task(task_id)

    def update_config(self, patch: Dict[str, Any]) -> AppConfig:
        """Merge ``patch`` into the config and rebuild the provider"""

        self.config = merge_config(self.config, patch)
        self.provider = create_provider(self.config)
        logger.info("Configuration updated", provider=self.provider.name, keys=sorted(patch))
        return self.config

    def get_config(self) -> AppConfig:
        return self.config
