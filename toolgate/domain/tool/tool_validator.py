# Parameter validation
from typing import Dict, Any

import pydantic

from toolgate.domain.tool.base_tool import BaseTool
from toolgate.errors import ValidationError


class ToolParameterValidator:
    @staticmethod
    def validate_tool_call(tool: BaseTool, arguments: Dict[str, Any]) -> pydantic.BaseModel:
        """Validate raw model arguments against the tool's parameter model"""

        if not isinstance(arguments, dict):
            raise ValidationError(
                f"Arguments for {tool.name} must be an object",
                {"tool_name": tool.name}
            )

        try:
            return tool.parameters.model_validate(arguments)
        except pydantic.ValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ValidationError(
                f"Invalid arguments for {tool.name}: {'; '.join(problems)}",
                {"tool_name": tool.name, "issues": problems}
            ) from e
