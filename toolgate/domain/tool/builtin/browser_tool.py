from typing import Dict, Any, Literal, Optional
import html
import re

import httpx
from pydantic import BaseModel, Field, field_validator

from toolgate.domain.tool.base_tool import BaseTool, ToolRuntimeContext

_TITLE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_NOISE = re.compile(r"<(script|style|noscript)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_SPACE = re.compile(r"\s+")


class BrowserToolArgs(BaseModel):
    action: Literal["navigate", "extract"]
    url: str
    max_chars: int = Field(default=20000, gt=0)

    @field_validator("url")
    @classmethod
    def check_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must be an http(s) URL")
        return value


def page_title(markup: str) -> Optional[str]:
    match = _TITLE.search(markup)
    return html.unescape(match.group(1)).strip() if match else None


def page_text(markup: str) -> str:
    text = _TAG.sub(" ", _NOISE.sub(" ", markup))
    return _SPACE.sub(" ", html.unescape(text)).strip()


class BrowserTool(BaseTool):
    """Fetches web pages over HTTP; pages are not rendered"""

    name = "browser"
    type = "browser"
    description = "Fetch a web page to read its title or extract its text"
    parameters = BrowserToolArgs
    requires_consent = True

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def execute(self, args: BrowserToolArgs, context: ToolRuntimeContext) -> Dict[str, Any]:
        timeout_s = context.command_timeout_ms / 1000
        async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True, transport=self.transport) as client:
            response = await client.get(args.url)
            response.raise_for_status()

        markup = response.text
        if args.action == "navigate":
            return {"url": str(response.url), "status": response.status_code, "title": page_title(markup)}

        return {"url": str(response.url), "content": page_text(markup)[:args.max_chars]}
