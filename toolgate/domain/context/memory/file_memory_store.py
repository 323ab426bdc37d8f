from typing import List
import asyncio
import json
import os

import structlog

from .base_memory import MemoryEntry, MemoryStore, format_exchange, rank_entries

logger = structlog.get_logger(__name__)


class FileMemoryStore(MemoryStore):
    """Memory persisted as a JSON array on disk"""

    def __init__(self, memory_path: str, max_entries: int = 1000):
        self.memory_path = os.path.abspath(memory_path)
        self.max_entries = max_entries
        self._lock = asyncio.Lock()

    async def store(self, input: str, response: str) -> None:
        async with self._lock:
            entries = await asyncio.to_thread(self._load)
            entries.append(format_exchange(input, response))

            if len(entries) > self.max_entries:
                entries = entries[-self.max_entries:]

            await asyncio.to_thread(self._save, entries)

    async def retrieve(self, query: str, limit: int = 10) -> List[MemoryEntry]:
        async with self._lock:
            entries = await asyncio.to_thread(self._load)
        return rank_entries(entries, query, limit)

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._save, [])

    def _load(self) -> List[MemoryEntry]:
        try:
            with open(self.memory_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return []
        except ValueError:
            logger.warning("Ignoring unreadable memory file", path=self.memory_path)
            return []

        if not isinstance(data, list):
            logger.warning("Ignoring malformed memory file", path=self.memory_path)
            return []

        return [MemoryEntry.model_validate(item) for item in data]

    def _save(self, entries: List[MemoryEntry]) -> None:
        os.makedirs(os.path.dirname(self.memory_path), exist_ok=True)
        with open(self.memory_path, "w", encoding="utf-8") as handle:
            json.dump([entry.model_dump() for entry in entries], handle, indent=2)
