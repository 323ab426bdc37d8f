from typing import Dict, Any, Optional
import asyncio
import os

from pydantic import BaseModel, Field

from toolgate.domain.tool.base_tool import BaseTool, ToolRuntimeContext
from toolgate.infrastructure.security.sandbox import assert_command_allowed, sanitize_cwd


class ShellToolArgs(BaseModel):
    command: str = Field(min_length=1)
    cwd: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, gt=0, le=120000)


class ShellTool(BaseTool):
    name = "shell"
    type = "shell"
    description = "Execute shell commands within the workspace sandbox"
    parameters = ShellToolArgs
    requires_consent = True

    async def execute(self, args: ShellToolArgs, context: ToolRuntimeContext) -> Dict[str, Any]:
        assert_command_allowed(args.command, context.sandbox_config)
        cwd = sanitize_cwd(args.cwd, context.sandbox_config)
        timeout_ms = args.timeout_ms or context.command_timeout_ms

        process = await asyncio.create_subprocess_exec(
            "sh", "-lc", args.command,
            cwd=cwd,
            env=dict(os.environ),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )

        timed_out = False
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            timed_out = True
            process.kill()
            stdout, stderr = await process.communicate()

        if context.logger is not None:
            context.logger.debug("Shell command finished", exit_code=process.returncode, timed_out=timed_out)

        return {
            "exit_code": -1 if timed_out else process.returncode,
            "stdout": stdout.decode("utf-8", errors="replace"),
            "stderr": stderr.decode("utf-8", errors="replace"),
            "timed_out": timed_out,
            "cwd": cwd,
        }
