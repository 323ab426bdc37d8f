from abc import ABC, abstractmethod
from typing import Dict, List, Any
import uuid

from pydantic import BaseModel, Field

from toolgate.domain.models.agent_state import utc_now


class MemoryEntry(BaseModel):
    """One remembered exchange"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MemoryStore(ABC):
    """Best-effort recall store used to augment the model context"""

    @abstractmethod
    async def store(self, input: str, response: str) -> None:
        pass

    @abstractmethod
    async def retrieve(self, query: str, limit: int = 10) -> List[MemoryEntry]:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass


class DisabledMemoryStore(MemoryStore):
    """Memory that remembers nothing"""

    async def store(self, input: str, response: str) -> None:
        return None

    async def retrieve(self, query: str, limit: int = 10) -> List[MemoryEntry]:
        return []

    async def clear(self) -> None:
        return None


def format_exchange(input: str, response: str) -> MemoryEntry:
    return MemoryEntry(content=f"User: {input}\nAssistant: {response}")


def rank_entries(entries: List[MemoryEntry], query: str, limit: int) -> List[MemoryEntry]:
    """
    Keyword relevance ranking.

    Query tokens longer than two characters score one point each when they
    occur in an entry. Ties go to the newer entry. When nothing matches, the
    most recent ``limit`` entries are returned instead.
    """

    tokens = [token for token in query.lower().split() if len(token) > 2]

    scored = []
    for entry in entries:
        content = entry.content.lower()
        score = sum(1 for token in tokens if token in content)
        if score > 0:
            scored.append((score, entry.timestamp, entry))

    scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
    ranked = [entry for _, _, entry in scored[:limit]]

    if ranked:
        return ranked

    return entries[-limit:] if limit > 0 else []
