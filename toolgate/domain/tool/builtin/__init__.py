from typing import Dict, Callable

from toolgate.domain.tool.base_tool import BaseTool
from .browser_tool import BrowserTool
from .file_tool import FileTool
from .shell_tool import ShellTool
from .spawn_tool import SpawnTool

BUILTIN_TOOLS: Dict[str, Callable[[], BaseTool]] = {
    "file": FileTool,
    "shell": ShellTool,
    "browser": BrowserTool,
    "spawn": SpawnTool,
}

__all__ = ["BUILTIN_TOOLS", "BrowserTool", "FileTool", "ShellTool", "SpawnTool"]
