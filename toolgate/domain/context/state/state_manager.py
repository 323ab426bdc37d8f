from typing import Dict, Any, List, Optional
import asyncio
import uuid
from datetime import timedelta

import structlog

from toolgate.domain.models.agent_state import (
    Conversation, Message, MessageRole, TaskRecord, TaskStatus, TaskType,
    ToolCall, ToolCallResult, utc_now
)
from toolgate.errors import (
    ConversationNotFoundError, InvalidTaskTransitionError, TaskNotFoundError
)

logger = structlog.get_logger(__name__)

_ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.RUNNING, TaskStatus.FAILED},
    TaskStatus.RUNNING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}


def _newest_first(records, timestamp):
    """Sort by timestamp descending; ties go to the later inserted record"""
    indexed = sorted(enumerate(records), key=lambda item: (timestamp(item[1]), item[0]), reverse=True)
    return [record for _, record in indexed]


class StateManager:
    """Authoritative in-process store of conversations, messages and task records"""

    def __init__(self):
        self.conversations: Dict[str, Conversation] = {}
        self.messages: Dict[str, List[Message]] = {}
        self.tasks: Dict[str, TaskRecord] = {}
        self._lock = asyncio.Lock()

    async def ensure_conversation(self, conversation_id: str) -> Conversation:
        """Return the conversation, creating it on first reference"""

        async with self._lock:
            return self._ensure(conversation_id).model_copy(deep=True)

    def _ensure(self, conversation_id: str) -> Conversation:
        existing = self.conversations.get(conversation_id)
        if existing:
            return existing

        conversation = Conversation(id=conversation_id)
        self.conversations[conversation_id] = conversation
        self.messages[conversation_id] = []
        logger.info("Conversation created", conversation_id=conversation_id)
        return conversation

    async def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        tool_calls: Optional[List[ToolCall]] = None,
        tool_results: Optional[List[ToolCallResult]] = None
    ) -> Message:
        """Append a message and bump the conversation's updated_at"""

        async with self._lock:
            conversation = self._ensure(conversation_id)
            transcript = self.messages[conversation_id]

            created_at = utc_now()
            # created_at must strictly increase within a conversation
            if transcript and created_at <= transcript[-1].created_at:
                created_at = transcript[-1].created_at + timedelta(microseconds=1)

            message = Message(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                role=role,
                content=content,
                tool_calls=[call.model_copy(deep=True) for call in tool_calls] if tool_calls else None,
                tool_results=[res.model_copy(deep=True) for res in tool_results] if tool_results else None,
                created_at=created_at
            )
            transcript.append(message)
            conversation.updated_at = max(conversation.updated_at, created_at)

            return message.model_copy(deep=True)

    async def get_conversation_messages(self, conversation_id: str) -> List[Message]:
        """Messages in insertion order"""

        async with self._lock:
            transcript = self.messages.get(conversation_id)
            if transcript is None:
                raise ConversationNotFoundError(conversation_id)
            return [message.model_copy(deep=True) for message in transcript]

    async def list_conversations(self) -> List[Conversation]:
        """Conversations, most recently updated first"""

        async with self._lock:
            ordered = _newest_first(self.conversations.values(), lambda c: c.updated_at)
            return [conversation.model_copy(deep=True) for conversation in ordered]

    async def create_task(
        self,
        agent_id: str,
        type: TaskType,
        payload: Dict[str, Any],
        message_id: Optional[str] = None
    ) -> TaskRecord:
        async with self._lock:
            task = TaskRecord(
                id=str(uuid.uuid4()),
                agent_id=agent_id,
                message_id=message_id,
                type=type,
                payload=payload
            )
            self.tasks[task.id] = task
            return task.model_copy(deep=True)

    async def update_task_status(self, task_id: str, status: TaskStatus, **patch: Any) -> TaskRecord:
        """Move a task forward; backwards or repeated transitions are rejected"""

        async with self._lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            if status not in _ALLOWED_TRANSITIONS[task.status]:
                raise InvalidTaskTransitionError(task_id, task.status.value, status.value)

            updated = task.model_copy(update={**patch, "status": status}, deep=True)
            self.tasks[task_id] = updated
            return updated.model_copy(deep=True)

    async def mark_task_running(self, task_id: str) -> TaskRecord:
        return await self.update_task_status(task_id, TaskStatus.RUNNING, started_at=utc_now())

    async def mark_task_completed(self, task_id: str, result: Dict[str, Any]) -> TaskRecord:
        return await self.update_task_status(
            task_id, TaskStatus.COMPLETED, result=result, completed_at=utc_now()
        )

    async def mark_task_failed(self, task_id: str, error: str) -> TaskRecord:
        return await self.update_task_status(
            task_id, TaskStatus.FAILED, error=error, completed_at=utc_now()
        )

    async def list_tasks(self) -> List[TaskRecord]:
        """Tasks, newest first"""

        async with self._lock:
            ordered = _newest_first(self.tasks.values(), lambda t: t.created_at)
            return [task.model_copy(deep=True) for task in ordered]

    async def get_task(self, task_id: str) -> TaskRecord:
        async with self._lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            return task.model_copy(deep=True)
