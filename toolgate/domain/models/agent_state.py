from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AgentStatus(str, Enum):
    """Agent lifecycle status"""
    INITIALIZING = "initializing"
    READY = "ready"
    BUSY = "busy"
    ERROR = "error"
    STOPPED = "stopped"


class LoopState(str, Enum):
    """States of a single agent run"""
    BUILD_CONTEXT = "build_context"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    HAS_FINAL_ANSWER = "has_final_answer"
    ITERATION_EXHAUSTED = "iteration_exhausted"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class TaskType(str, Enum):
    """Category of the capability a task invoked"""
    FILE = "file"
    SHELL = "shell"
    BROWSER = "browser"
    BACKGROUND = "background"

    @classmethod
    def normalize(cls, value: Optional[str]) -> "TaskType":
        """Map a declared tool type onto a known category, defaulting to background"""
        try:
            return cls(value)
        except ValueError:
            return cls.BACKGROUND


class TaskStatus(str, Enum):
    """Task execution status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ToolCall(BaseModel):
    """One model-requested tool invocation"""
    id: str = Field(description="Call identifier assigned by the model backend")
    name: str = Field(description="Registered tool name")
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolCallResult(BaseModel):
    """Outcome of a tool call, matched to its ToolCall by id"""
    tool_call_id: str
    name: str
    result: Dict[str, Any] = Field(default_factory=dict)
    error: bool = False


class Conversation(BaseModel):
    id: str
    title: str = "New Conversation"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Message(BaseModel):
    """A single entry of a conversation transcript"""
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    tool_results: Optional[List[ToolCallResult]] = None
    created_at: datetime = Field(default_factory=utc_now)


class TaskRecord(BaseModel):
    """Per tool call state machine: pending -> running -> completed | failed"""
    id: str = Field(description="Unique task identifier")
    agent_id: str = Field(description="Agent that owns this task")
    message_id: Optional[str] = Field(None, description="Assistant message that requested the call")
    type: TaskType = Field(default=TaskType.BACKGROUND)
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    result: Optional[Dict[str, Any]] = Field(None, description="Task execution result")
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)


class AgentRunInput(BaseModel):
    conversation_id: str = Field(min_length=1)
    message: str = Field(min_length=1)


class AgentRunResult(BaseModel):
    """Final outcome of a successful agent run"""
    response: str
    tool_calls: List[ToolCallResult] = Field(default_factory=list)
    iterations: int
    conversation_id: str
