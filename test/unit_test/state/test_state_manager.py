import asyncio

import pytest

from toolgate.domain.context.state.state_manager import StateManager
from toolgate.domain.models.agent_state import MessageRole, TaskStatus, TaskType, ToolCall
from toolgate.errors import ConversationNotFoundError, InvalidTaskTransitionError, TaskNotFoundError


class TestConversations:
    """Conversation and message bookkeeping."""

    @pytest.mark.asyncio
    async def test_ensure_conversation_is_idempotent(self):
        """Test that ensuring twice yields the same single conversation."""
        state = StateManager()
        first = await state.ensure_conversation("conv-1")
        second = await state.ensure_conversation("conv-1")

        assert first.id == second.id == "conv-1"
        assert first.title == "New Conversation"
        assert len(await state.list_conversations()) == 1
        assert await state.get_conversation_messages("conv-1") == []

    @pytest.mark.asyncio
    async def test_messages_keep_insertion_order(self):
        """Test that messages come back in append order with increasing timestamps."""
        state = StateManager()
        for index in range(5):
            await state.append_message("conv-1", MessageRole.USER, f"message {index}")

        messages = await state.get_conversation_messages("conv-1")
        assert [m.content for m in messages] == [f"message {i}" for i in range(5)]
        assert all(a.created_at < b.created_at for a, b in zip(messages, messages[1:]))

    @pytest.mark.asyncio
    async def test_concurrent_writers_keep_each_transcript_ordered(self):
        """Test that interleaved appends to several conversations keep per-conversation order."""
        state = StateManager()
        conversation_ids = [f"conv-{n}" for n in range(4)]

        async def writer(conversation_id):
            for index in range(20):
                await state.append_message(conversation_id, MessageRole.USER, f"{conversation_id} #{index}")
                await asyncio.sleep(0)

        await asyncio.gather(*(writer(conversation_id) for conversation_id in conversation_ids))

        for conversation_id in conversation_ids:
            messages = await state.get_conversation_messages(conversation_id)
            assert [m.content for m in messages] == [f"{conversation_id} #{i}" for i in range(20)]
            assert all(a.created_at < b.created_at for a, b in zip(messages, messages[1:]))
        assert len(await state.list_conversations()) == 4

    @pytest.mark.asyncio
    async def test_append_bumps_updated_at(self):
        """Test that updated_at tracks the newest message."""
        state = StateManager()
        await state.ensure_conversation("conv-1")
        message = await state.append_message("conv-1", MessageRole.USER, "hi")

        conversation = (await state.list_conversations())[0]
        assert conversation.updated_at >= message.created_at

    @pytest.mark.asyncio
    async def test_unknown_conversation_raises(self):
        """Test that reading an unknown conversation raises a not-found error."""
        with pytest.raises(ConversationNotFoundError):
            await StateManager().get_conversation_messages("missing")

    @pytest.mark.asyncio
    async def test_returned_messages_are_copies(self):
        """Test that callers cannot mutate stored tool calls."""
        state = StateManager()
        await state.append_message(
            "conv-1", MessageRole.ASSISTANT, "Executing tools.",
            tool_calls=[ToolCall(id="c1", name="echo", arguments={"text": "a"})]
        )

        first = (await state.get_conversation_messages("conv-1"))[0]
        first.tool_calls[0].arguments["text"] = "mutated"

        again = (await state.get_conversation_messages("conv-1"))[0]
        assert again.tool_calls[0].arguments == {"text": "a"}

    @pytest.mark.asyncio
    async def test_conversations_ordered_by_recent_activity(self):
        """Test that the most recently updated conversation is listed first."""
        state = StateManager()
        await state.append_message("old", MessageRole.USER, "a")
        await state.append_message("new", MessageRole.USER, "b")
        await state.append_message("old", MessageRole.USER, "c")

        assert [c.id for c in await state.list_conversations()] == ["old", "new"]


class TestTasks:
    """Task records move forward only."""

    @pytest.mark.asyncio
    async def test_task_lifecycle(self):
        """Test pending, running, completed with timestamps."""
        state = StateManager()
        task = await state.create_task("agent-1", TaskType.SHELL, {"name": "shell"}, message_id="m1")
        assert task.status == TaskStatus.PENDING

        running = await state.mark_task_running(task.id)
        assert running.status == TaskStatus.RUNNING and running.started_at is not None

        done = await state.mark_task_completed(task.id, {"stdout": "ok"})
        assert done.status == TaskStatus.COMPLETED
        assert done.result == {"stdout": "ok"}
        assert done.completed_at is not None
        assert (await state.get_task(task.id)).message_id == "m1"

    @pytest.mark.asyncio
    async def test_completed_task_cannot_reopen(self):
        """Test that a terminal task rejects further transitions."""
        state = StateManager()
        task = await state.create_task("agent-1", TaskType.FILE, {})
        await state.mark_task_running(task.id)
        await state.mark_task_failed(task.id, "boom")

        with pytest.raises(InvalidTaskTransitionError):
            await state.mark_task_running(task.id)

    @pytest.mark.asyncio
    async def test_pending_cannot_complete_directly(self):
        """Test that completion requires the running state first."""
        state = StateManager()
        task = await state.create_task("agent-1", TaskType.FILE, {})

        with pytest.raises(InvalidTaskTransitionError):
            await state.mark_task_completed(task.id, {})

    @pytest.mark.asyncio
    async def test_unknown_task_raises(self):
        """Test that lookups and updates of unknown tasks raise not-found."""
        state = StateManager()
        with pytest.raises(TaskNotFoundError):
            await state.get_task("missing")
        with pytest.raises(TaskNotFoundError):
            await state.mark_task_running("missing")

    @pytest.mark.asyncio
    async def test_tasks_listed_newest_first(self):
        """Test list_tasks ordering."""
        state = StateManager()
        first = await state.create_task("agent-1", TaskType.FILE, {})
        second = await state.create_task("agent-1", TaskType.SHELL, {})

        listed = await state.list_tasks()
        assert [t.id for t in listed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_timestamp_ties_list_latest_inserted_first(self):
        """Test that tasks and conversations sharing a timestamp come back newest-inserted first."""
        state = StateManager()
        first = await state.create_task("agent-1", TaskType.FILE, {})
        second = await state.create_task("agent-1", TaskType.SHELL, {})
        await state.ensure_conversation("older")
        await state.ensure_conversation("newer")

        tied = state.tasks[first.id].created_at
        state.tasks[second.id] = state.tasks[second.id].model_copy(update={"created_at": tied})
        state.conversations["newer"].updated_at = state.conversations["older"].updated_at

        assert [t.id for t in await state.list_tasks()] == [second.id, first.id]
        assert [c.id for c in await state.list_conversations()] == ["newer", "older"]
