"""
Error taxonomy shared by every layer.

Each error carries a stable ``code`` for transport layers and a ``metadata``
dict with the identifiers needed to act on it.
"""

from typing import Dict, Any, Optional


class ToolgateError(Exception):
    """Base class for all toolgate errors"""

    code = "TOOLGATE_ERROR"

    def __init__(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "metadata": self.metadata}


class ConfigError(ToolgateError):
    code = "CONFIG_ERROR"


class ValidationError(ToolgateError):
    code = "VALIDATION_ERROR"


class ToolNotFoundError(ToolgateError):
    code = "TOOL_NOT_FOUND"

    def __init__(self, tool_name: str):
        super().__init__(f'Tool "{tool_name}" is not registered', {"tool_name": tool_name})
        self.tool_name = tool_name


class ToolExecutionError(ToolgateError):
    code = "TOOL_EXECUTION_ERROR"

    def __init__(self, tool_name: str, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(f"[{tool_name}] {message}", metadata)
        self.tool_name = tool_name


class MaxIterationsError(ToolgateError):
    code = "MAX_ITERATIONS"

    def __init__(self, max_iterations: int):
        super().__init__(
            f"Reached max iterations ({max_iterations})",
            {"max_iterations": max_iterations}
        )
        self.max_iterations = max_iterations


class ProviderError(ToolgateError):
    code = "PROVIDER_ERROR"

    def __init__(self, provider: str, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(f"[{provider}] {message}", metadata)
        self.provider = provider


class SandboxViolationError(ToolgateError):
    code = "SANDBOX_VIOLATION"


class ConsentDeniedError(ToolgateError):
    code = "CONSENT_DENIED"

    def __init__(self, tool_name: str):
        super().__init__(f'Consent denied for tool "{tool_name}"', {"tool_name": tool_name})
        self.tool_name = tool_name


class ConversationNotFoundError(ToolgateError):
    code = "CONVERSATION_NOT_FOUND"

    def __init__(self, conversation_id: str):
        super().__init__(
            f'Conversation "{conversation_id}" was not found',
            {"conversation_id": conversation_id}
        )
        self.conversation_id = conversation_id


class TaskNotFoundError(ToolgateError):
    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str):
        super().__init__(f'Task "{task_id}" was not found', {"task_id": task_id})
        self.task_id = task_id


class InvalidTaskTransitionError(ToolgateError):
    code = "INVALID_TASK_TRANSITION"

    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(
            f'Task "{task_id}" cannot move from {current} to {requested}',
            {"task_id": task_id, "current": current, "requested": requested}
        )
