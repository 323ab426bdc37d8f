from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Union
import inspect

import structlog

from toolgate.domain.models.agent_state import ToolCall

logger = structlog.get_logger(__name__)

ConsentCallback = Callable[[ToolCall], Union[bool, Awaitable[bool]]]


class ConsentHandler(ABC):
    """Approval gate for tools that declare requires_consent"""

    @abstractmethod
    async def request_consent(self, tool_call: ToolCall) -> bool:
        """Return True to let the call proceed"""
        pass


class AutoApproveConsent(ConsentHandler):

    async def request_consent(self, tool_call: ToolCall) -> bool:
        logger.debug("Consent auto-approved", tool=tool_call.name, call_id=tool_call.id)
        return True


class DenyAllConsent(ConsentHandler):

    async def request_consent(self, tool_call: ToolCall) -> bool:
        logger.info("Consent denied by policy", tool=tool_call.name, call_id=tool_call.id)
        return False


class CallbackConsent(ConsentHandler):
    """Delegates the decision to a host callback (sync or async)"""

    def __init__(self, callback: ConsentCallback):
        self.callback = callback

    async def request_consent(self, tool_call: ToolCall) -> bool:
        decision = self.callback(tool_call)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)
