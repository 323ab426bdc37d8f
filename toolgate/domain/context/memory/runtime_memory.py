from typing import List
import asyncio

from .base_memory import MemoryEntry, MemoryStore, format_exchange, rank_entries


class RuntimeMemoryStore(MemoryStore):
    """Process-local memory, lost on restart"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self.entries: List[MemoryEntry] = []
        self._lock = asyncio.Lock()

    async def store(self, input: str, response: str) -> None:
        """Remember one user/assistant exchange"""

        async with self._lock:
            self.entries.append(format_exchange(input, response))

            # Keep only the newest max_entries
            if len(self.entries) > self.max_entries:
                self.entries = self.entries[-self.max_entries:]

    async def retrieve(self, query: str, limit: int = 10) -> List[MemoryEntry]:
        async with self._lock:
            ranked = rank_entries(self.entries, query, limit)
            return [entry.model_copy(deep=True) for entry in ranked]

    async def clear(self) -> None:
        async with self._lock:
            self.entries = []
