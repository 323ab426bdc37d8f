"""
Contract every tool implementation must satisfy.

Tools are registered explicitly with a ToolRegistry. Arguments are validated
against the tool's pydantic ``parameters`` model before ``execute`` runs, so a
tool body only ever sees a validated model instance.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Awaitable, Callable, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from toolgate.infrastructure.security.sandbox import SandboxConfig


class ToolSchema(BaseModel):
    """Model-facing description of a tool"""
    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object"})


class ToolRuntimeContext(BaseModel):
    """Everything a tool body may rely on at execution time"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    workspace_root: str
    sandbox_config: SandboxConfig
    command_timeout_ms: int = 30000
    logger: Any = None
    subagent_manager: Optional[Any] = Field(None, description="SubagentManager, when delegation is enabled")


class BaseTool(ABC):
    """Base class for tools the model may request"""

    name: str = ""
    type: str = "background"
    description: str = ""
    parameters: Type[BaseModel] = BaseModel
    requires_consent: bool = False

    @abstractmethod
    async def execute(self, args: BaseModel, context: ToolRuntimeContext) -> Dict[str, Any]:
        """Run the tool with validated arguments and return a JSON-able mapping"""
        pass

    def get_schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=self.parameters.model_json_schema() or {"type": "object"}
        )


ToolHandler = Callable[[Any, ToolRuntimeContext], Awaitable[Dict[str, Any]]]


class FunctionTool(BaseTool):
    """Adapts a plain coroutine function to the tool contract"""

    def __init__(
        self,
        name: str,
        description: str,
        parameters: Type[BaseModel],
        handler: ToolHandler,
        type: str = "background",
        requires_consent: bool = False
    ):
        self.name = name
        self.description = description
        self.parameters = parameters
        self.handler = handler
        self.type = type
        self.requires_consent = requires_consent

    async def execute(self, args: BaseModel, context: ToolRuntimeContext) -> Dict[str, Any]:
        return await self.handler(args, context)
