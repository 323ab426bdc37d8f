"""
Tracking of detached background work.

Each spawned task owns one asyncio task and one record. The asyncio task's
completion is the only thing that writes the record's terminal state, so
records never share mutable state and the caller of ``spawn`` never waits.
"""

from typing import Dict, Any, List, Optional
from enum import Enum
import asyncio
import uuid
from datetime import datetime

import structlog
from pydantic import BaseModel, Field

from toolgate.domain.models.agent_state import utc_now
from toolgate.domain.orchestration.subagent.base_subagent import BaseSubAgent, SummarySubAgent

logger = structlog.get_logger(__name__)


class SubagentStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SubagentTaskRecord(BaseModel):
    id: str
    task: str
    status: SubagentStatus = SubagentStatus.RUNNING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class SubagentManager:
    """Starts subagent work in the background and records its outcome"""

    def __init__(self, worker: Optional[BaseSubAgent] = None):
        self.worker = worker or SummarySubAgent()
        self.records: Dict[str, SubagentTaskRecord] = {}
        self._running: Dict[str, asyncio.Task] = {}

    def spawn(self, task: str) -> str:
        """Start ``task`` detached and return its id immediately; needs a running event loop"""

        subagent_id = str(uuid.uuid4())
        self.records[subagent_id] = SubagentTaskRecord(id=subagent_id, task=task)

        running = asyncio.create_task(self.worker.process(task), name=f"subagent-{subagent_id}")
        self._running[subagent_id] = running
        running.add_done_callback(lambda finished: self._on_finished(subagent_id, finished))

        logger.info("Subagent spawned", subagent_id=subagent_id, worker=self.worker.name)
        return subagent_id

    def _on_finished(self, subagent_id: str, finished: asyncio.Task) -> None:
        self._running.pop(subagent_id, None)
        record = self.records[subagent_id]

        if finished.cancelled():
            update = {"status": SubagentStatus.FAILED, "error": "cancelled"}
        elif finished.exception() is not None:
            error = finished.exception()
            update = {"status": SubagentStatus.FAILED, "error": str(error) or type(error).__name__}
        else:
            update = {"status": SubagentStatus.COMPLETED, "result": dict(finished.result() or {})}

        self.records[subagent_id] = record.model_copy(update={**update, "updated_at": utc_now()})
        logger.info("Subagent finished", subagent_id=subagent_id, status=update["status"].value)

    async def run_inline(self, task: str) -> Dict[str, Any]:
        """Run ``task`` on the caller's flow without tracking it"""
        return await self.worker.process(task)

    async def wait(self, subagent_id: str) -> SubagentTaskRecord:
        """Wait for a spawned task to settle and return its final record"""

        running = self._running.get(subagent_id)
        if running is not None:
            await asyncio.wait({running})
        return self.get_task(subagent_id)

    def get_task(self, subagent_id: str) -> Optional[SubagentTaskRecord]:
        record = self.records.get(subagent_id)
        return record.model_copy(deep=True) if record else None

    def list_tasks(self) -> List[SubagentTaskRecord]:
        ordered = sorted(self.records.values(), key=lambda r: r.created_at, reverse=True)
        return [record.model_copy(deep=True) for record in ordered]
