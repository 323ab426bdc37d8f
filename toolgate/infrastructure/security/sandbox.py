"""
Workspace sandbox policy.

Every filesystem- or process-touching tool must route its paths and commands
through these checks before acting. The functions are pure: they only inspect
strings and never touch the disk.
"""

from typing import List, Optional
import os
import re

from pydantic import BaseModel, Field

from toolgate.errors import SandboxViolationError


class SandboxConfig(BaseModel):
    """Confinement rules for tool side effects"""
    workspace_root: str
    restrict_to_workspace: bool = True
    blocked_commands: List[str] = Field(default_factory=list, description="Case-insensitive regex patterns")
    blocked_paths: List[str] = Field(default_factory=list, description="Forbidden path substrings")


def _workspace_root(config: SandboxConfig) -> str:
    return os.path.normpath(os.path.abspath(config.workspace_root))


def _is_inside(path: str, root: str) -> bool:
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def resolve_path_inside_workspace(target_path: str, config: SandboxConfig) -> str:
    """Resolve ``target_path`` against the workspace root and enforce the policy"""

    workspace_root = _workspace_root(config)
    resolved_path = os.path.normpath(os.path.join(workspace_root, target_path))

    if config.restrict_to_workspace and not _is_inside(resolved_path, workspace_root):
        raise SandboxViolationError(
            f'Path "{target_path}" resolves outside workspace',
            {"workspace_root": workspace_root, "resolved_path": resolved_path}
        )

    for blocked in config.blocked_paths:
        if blocked and blocked in resolved_path:
            raise SandboxViolationError(
                f'Path "{target_path}" includes blocked segment "{blocked}"',
                {"resolved_path": resolved_path, "blocked": blocked}
            )

    return resolved_path


def assert_within_workspace(target_path: str, config: SandboxConfig) -> None:
    """Like ``resolve_path_inside_workspace``, but also follows symlinks on disk"""

    resolved_path = resolve_path_inside_workspace(target_path, config)
    if not config.restrict_to_workspace:
        return

    real_root = os.path.realpath(_workspace_root(config))
    real_path = os.path.realpath(resolved_path)
    if not _is_inside(real_path, real_root):
        raise SandboxViolationError(
            f'Path "{target_path}" resolves outside workspace through a symlink',
            {"workspace_root": real_root, "resolved_path": real_path}
        )


def assert_command_allowed(command: str, config: SandboxConfig) -> None:
    """Reject ``command`` if any blocked pattern matches anywhere in it"""

    for pattern in config.blocked_commands:
        if re.search(pattern, command, re.IGNORECASE):
            raise SandboxViolationError(
                f"Command blocked by policy: {pattern}",
                {"command": command, "pattern": pattern}
            )


def sanitize_cwd(cwd: Optional[str], config: SandboxConfig) -> str:
    """Working directory for a process: the workspace root unless a checked path is given"""

    if not cwd:
        return _workspace_root(config)

    return resolve_path_inside_workspace(cwd, config)
