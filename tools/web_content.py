"""
Web page fetching tool.
"""

import re
import string
from typing import Any

from models.tool_result import WebContentResult
from utils.logger import get_logger

from .base import Tool
from .errors import ToolError
from .web_fetcher import WebFetcher

logger = get_logger(__name__)

_URL_RE = re.compile(
    rf"\bhttps?://[^\s()<>]+(?:\(\w+\)|[^{re.escape(string.punctuation)}\s]|/)",
    re.IGNORECASE,
)

PREVIEW_LENGTH = 200


def extract_url(message: str) -> str:
    """First well-formed http(s) URL in the message, or ""."""
    match = _URL_RE.search(message or "")
    return match.group(0) if match else ""


def strip_urls(message: str) -> str:
    """The message with every http(s) URL removed."""
    return _URL_RE.sub(" ", message or "")


class WebContentFetcherTool(Tool):
    """Fetch a web page and return its readable text."""

    name = "web_content"

    def __init__(self, fetcher: WebFetcher):
        self.fetcher = fetcher

    def _resolve_url(self, message: str, context: dict[str, Any]) -> str:
        explicit = (context or {}).get("url")
        if explicit:
            return str(explicit).strip()
        return extract_url(message)

    def execute(self, message: str, context: dict[str, Any]) -> WebContentResult:
        url = self._resolve_url(message, context)
        if not url:
            return self._missing_url()

        try:
            content = self.fetcher.fetch_content(url)
        except ToolError as e:
            return self._failure(url, e)

        return self._success(url, content)

    async def aexecute(self, message: str, context: dict[str, Any]) -> WebContentResult:
        url = self._resolve_url(message, context)
        if not url:
            return self._missing_url()

        try:
            content = await self.fetcher.afetch_content(url)
        except ToolError as e:
            return self._failure(url, e)

        return self._success(url, content)

    def _missing_url(self) -> WebContentResult:
        return WebContentResult(
            error="No URL provided",
            message="Please provide a URL to fetch content from.",
        )

    def _failure(self, url: str, exc: Exception) -> WebContentResult:
        logger.error(
            f"Web content fetch failed: {exc}",
            extra={"extra_fields": {"url": url, "error_type": type(exc).__name__}},
        )
        return WebContentResult(
            url=url,
            content="",
            error=f"Failed to fetch content: {exc}",
            message=f"Sorry, I encountered an error while fetching the content: {exc}",
        )

    def _success(self, url: str, content: str) -> WebContentResult:
        return WebContentResult(url=url, content=content, message=self.format_response(url, content))

    def format_response(self, url: str, content: str) -> str:
        preview = content[:PREVIEW_LENGTH]
        if len(content) > PREVIEW_LENGTH:
            preview += "..."
        return f"Fetched content from {url} ({len(content)} characters):\n\n{preview}"

    def get_description(self) -> str:
        return "Fetch and extract readable content from web pages"

    def get_schema(self) -> dict[str, Any]:
        return {
            "name": "fetch_web_content",
            "description": "Fetch and extract the main text content from a web page URL",
            "parameters": {
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "The URL of the web page to fetch content from",
                    }
                },
                "required": ["url"],
            },
        }
