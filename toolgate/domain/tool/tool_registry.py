from typing import Dict, List, Any
import asyncio

import structlog

from toolgate.domain.tool.base_tool import BaseTool, ToolRuntimeContext, ToolSchema
from toolgate.domain.tool.tool_validator import ToolParameterValidator
from toolgate.errors import ToolExecutionError, ToolNotFoundError, ToolgateError

logger = structlog.get_logger(__name__)


class ToolRegistry:
    """Registry for managing available tools"""

    def __init__(self):
        self.tools: Dict[str, BaseTool] = {}

    def register(self, tool: BaseTool):
        """Register a tool; a later registration under the same name replaces the earlier one"""

        if not tool.name:
            raise ValueError("Tool name must not be empty")

        if tool.name in self.tools:
            logger.warning("Replacing registered tool", tool=tool.name)

        self.tools[tool.name] = tool

    def list(self) -> List[BaseTool]:
        return list(self.tools.values())

    def has(self, name: str) -> bool:
        return name in self.tools

    def get(self, name: str) -> BaseTool:
        tool = self.tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def requires_consent(self, name: str) -> bool:
        return self.get(name).requires_consent

    def get_type(self, name: str) -> str:
        return self.get(name).type

    def get_schemas(self) -> List[ToolSchema]:
        return [tool.get_schema() for tool in self.tools.values()]

    async def execute(self, name: str, arguments: Dict[str, Any], context: ToolRuntimeContext) -> Dict[str, Any]:
        """
        Validate arguments and run the tool under the command timeout.

        Raises:
            ToolNotFoundError: unknown tool
            ToolExecutionError: validation failure, timeout or any error from the tool body
        """

        tool = self.get(name)
        timeout_s = context.command_timeout_ms / 1000

        try:
            validated = ToolParameterValidator.validate_tool_call(tool, arguments)
            result = await asyncio.wait_for(tool.execute(validated, context), timeout=timeout_s)
        except asyncio.TimeoutError as e:
            raise ToolExecutionError(
                name,
                f"tool:{name} timed out after {context.command_timeout_ms}ms",
                {"cause": "TimeoutError"}
            ) from e
        except ToolgateError as e:
            raise ToolExecutionError(name, e.message, {"cause": type(e).__name__, "code": e.code}) from e
        except Exception as e:
            raise ToolExecutionError(name, str(e) or type(e).__name__, {"cause": type(e).__name__}) from e

        if not isinstance(result, dict):
            raise ToolExecutionError(name, "Tool returned a non-mapping result", {"cause": "TypeError"})

        return result
