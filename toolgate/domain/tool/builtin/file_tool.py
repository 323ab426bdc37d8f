from typing import Dict, Any, Literal, Optional
import asyncio
import os
import shutil

from pydantic import BaseModel, Field

from toolgate.domain.tool.base_tool import BaseTool, ToolRuntimeContext
from toolgate.infrastructure.security.sandbox import assert_within_workspace, resolve_path_inside_workspace


class FileToolArgs(BaseModel):
    action: Literal["read", "write", "list", "delete"]
    path: str = Field(min_length=1)
    content: Optional[str] = None


class FileTool(BaseTool):
    name = "file"
    type = "file"
    description = "Read, write, list, or delete files inside the workspace"
    parameters = FileToolArgs
    requires_consent = True

    async def execute(self, args: FileToolArgs, context: ToolRuntimeContext) -> Dict[str, Any]:
        absolute_path = resolve_path_inside_workspace(args.path, context.sandbox_config)
        assert_within_workspace(args.path, context.sandbox_config)
        return await asyncio.to_thread(self._run, args, absolute_path)

    @staticmethod
    def _run(args: FileToolArgs, absolute_path: str) -> Dict[str, Any]:
        if args.action == "read":
            with open(absolute_path, "r", encoding="utf-8") as handle:
                return {"path": absolute_path, "content": handle.read()}

        if args.action == "write":
            os.makedirs(os.path.dirname(absolute_path), exist_ok=True)
            with open(absolute_path, "w", encoding="utf-8") as handle:
                handle.write(args.content or "")
            return {"path": absolute_path, "success": True}

        if args.action == "list":
            with os.scandir(absolute_path) as entries:
                files = [
                    {"name": entry.name, "type": "dir" if entry.is_dir() else "file"}
                    for entry in sorted(entries, key=lambda e: e.name)
                ]
            return {"path": absolute_path, "files": files}

        if os.path.isdir(absolute_path):
            shutil.rmtree(absolute_path)
        else:
            os.unlink(absolute_path)
        return {"path": absolute_path, "success": True}
