from abc import ABC, abstractmethod
from typing import Dict, Any

from toolgate.domain.models.agent_state import utc_now


class BaseSubAgent(ABC):
    """Base class for workers that carry out delegated background tasks"""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.created_at = utc_now()
        self.last_active = utc_now()

    @abstractmethod
    async def process(self, task: str) -> Dict[str, Any]:
        """Carry out ``task`` and return a JSON-able result"""
        pass

    def update_activity(self):
        """Update last activity timestamp"""
        self.last_active = utc_now()



class SummarySubAgent(BaseSubAgent):
    """Default worker that acknowledges the delegated task"""

    def __init__(self):
        super().__init__("summary", "Summarizes delegated tasks")

    async def process(self, task: str) -> Dict[str, Any]:
        self.update_activity()
        return {"summary": f"Subagent completed: {task}"}
