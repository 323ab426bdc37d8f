from typing import AsyncIterator
import json

import structlog
from pydantic import BaseModel

from toolgate.domain.streaming.events import DoneEvent

logger = structlog.get_logger(__name__)


class StreamingHandler:
    """Renders agent stream events as server-sent event frames"""

    media_type = "text/event-stream"
    headers = {
        "Cache-Control": "no-cache, no-transform",
        "Connection": "keep-alive",
    }

    @staticmethod
    def format_event(event: BaseModel) -> str:
        return f"data: {json.dumps(event.model_dump(mode='json'))}\n\n"

    async def stream_events(self, events: AsyncIterator[BaseModel], session_id: str) -> AsyncIterator[str]:
        """
        Forward events as SSE frames.

        A failure while producing events ends the stream with a single
        ``done`` frame whose content is ``Error: <message>``.
        """

        try:
            async for event in events:
                yield self.format_event(event)
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            logger.error("Streaming run failed", session_id=session_id, error=message)
            yield self.format_event(DoneEvent(content=f"Error: {message}"))
