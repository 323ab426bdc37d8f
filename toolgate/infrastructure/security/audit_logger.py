from typing import Dict, Any, Optional
import asyncio
import json
import os

import structlog

from toolgate.domain.models.agent_state import utc_now

logger = structlog.get_logger(__name__)


class AuditLogger:
    """Append-only JSON-lines record of tool invocation outcomes"""

    def __init__(self, enabled: bool, log_path: str):
        self.enabled = enabled
        self.log_path = os.path.abspath(log_path)
        self._lock = asyncio.Lock()

    async def log(self, action: str, success: bool, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Append one audit entry; a no-op when auditing is disabled"""

        if not self.enabled:
            return

        entry = {
            "timestamp": utc_now().isoformat(),
            "action": action,
            "success": success,
            "metadata": metadata or {},
        }
        line = json.dumps(entry, default=str) + "\n"

        async with self._lock:
            await asyncio.to_thread(self._append, line)

        logger.debug("Audit entry written", action=action, success=success)

    def _append(self, line: str) -> None:
        os.makedirs(os.path.dirname(self.log_path), exist_ok=True)
        with open(self.log_path, "a", encoding="utf-8") as handle:
            handle.write(line)
