from typing import Dict, Any

from pydantic import BaseModel, Field

from toolgate.domain.tool.base_tool import BaseTool, ToolRuntimeContext


class SpawnToolArgs(BaseModel):
    task: str = Field(min_length=1)
    background: bool = True


class SpawnTool(BaseTool):
    name = "spawn"
    type = "background"
    description = "Spawn background subagent work"
    parameters = SpawnToolArgs
    requires_consent = False

    async def execute(self, args: SpawnToolArgs, context: ToolRuntimeContext) -> Dict[str, Any]:
        manager = context.subagent_manager
        if manager is None:
            return {"status": "failed", "error": "subagent manager not configured"}

        if args.background:
            return {"subagent_id": manager.spawn(args.task), "status": "spawned"}

        result = await manager.run_inline(args.task)
        return {"subagent_id": "inline", "status": "completed", "result": result}
