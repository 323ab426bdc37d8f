from typing import Annotated, Dict, Any, Literal, Union
from pydantic import BaseModel, Field
from enum import Enum


class EventType(str, Enum):
    """Agent stream event types"""
    TOKEN = "token"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    DONE = "done"


class TokenEvent(BaseModel):
    """Text produced by the model"""
    type: Literal[EventType.TOKEN] = EventType.TOKEN
    content: str


class ToolCallEvent(BaseModel):
    """Emitted right before a tool is executed"""
    type: Literal[EventType.TOOL_CALL] = EventType.TOOL_CALL
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseModel):
    """Emitted once a tool call has finished, successfully or not"""
    type: Literal[EventType.TOOL_RESULT] = EventType.TOOL_RESULT
    name: str
    result: Dict[str, Any] = Field(default_factory=dict)


class DoneEvent(BaseModel):
    """Terminal event carrying the final text"""
    type: Literal[EventType.DONE] = EventType.DONE
    content: str


AgentStreamEvent = Annotated[
    Union[TokenEvent, ToolCallEvent, ToolResultEvent, DoneEvent],
    Field(discriminator="type"),
]
