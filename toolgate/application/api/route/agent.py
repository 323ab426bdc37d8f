from typing import Annotated, Dict, Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import AliasChoices, BaseModel, Field

from toolgate.domain.models.agent_state import AgentRunInput
from toolgate.domain.orchestration.core.runner import AgentRunner
from toolgate.domain.streaming.streaming_handler import StreamingHandler

router = APIRouter()
streaming_handler = StreamingHandler()


class ChatRequest(BaseModel):
    conversation_id: str = Field(min_length=1, validation_alias=AliasChoices("conversation_id", "conversationId"))
    message: str = Field(min_length=1)
    stream: bool = False


class ChatResponse(BaseModel):
    content: str
    conversation_id: str
    iterations: int


def get_runner(request: Request) -> AgentRunner:
    return request.app.state.runner


Runner = Annotated[AgentRunner, Depends(get_runner)]


@router.get("/health")
async def health(runner: Runner):
    return {"status": runner.get_status().value, "version": runner.get_version()}


# Plain JSON reply, or server-sent events when stream=true
@router.post("/chat")
async def chat(request: ChatRequest, runner: Runner):
    run_input = AgentRunInput(conversation_id=request.conversation_id, message=request.message)

    if request.stream:
        frames = streaming_handler.stream_events(runner.stream(run_input), session_id=request.conversation_id)
        return StreamingResponse(frames, media_type=streaming_handler.media_type, headers=streaming_handler.headers)

    result = await runner.run(run_input)
    return ChatResponse(content=result.response, conversation_id=result.conversation_id, iterations=result.iterations)


@router.get("/conversations")
async def list_conversations(runner: Runner):
    conversations = await runner.list_conversations()
    return {"conversations": [conversation.model_dump(mode="json") for conversation in conversations]}


@router.get("/conversations/{conversation_id}/messages")
async def get_conversation_messages(conversation_id: str, runner: Runner):
    messages = await runner.get_conversation_messages(conversation_id)
    return {"messages": [message.model_dump(mode="json") for message in messages]}


@router.get("/tasks")
async def list_tasks(runner: Runner):
    tasks = await runner.list_tasks()
    return {"tasks": [task.model_dump(mode="json") for task in tasks]}


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, runner: Runner):
    task = await runner.get_task(task_id)
    return {"task": task.model_dump(mode="json")}


@router.put("/config")
async def update_config(runner: Runner, patch: Dict[str, Any] = Body(...)):
    runner.update_config(patch)
    return {"success": True}
