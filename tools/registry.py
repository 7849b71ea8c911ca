"""
Name -> Tool lookup used by the router.
"""

from api.base_client import BaseAIClient
from config.config import ToolSettings
from utils.logger import get_logger

from .base import Tool
from .conversation import ConversationTool
from .search_answer import SearchAndAnswerTool
from .search_engine import SearchEngineTool
from .search_provider import SerpApiSearchProvider
from .web_content import WebContentFetcherTool
from .web_fetcher import WebFetcher

logger = get_logger(__name__)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool, name: str | None = None) -> None:
        """Register ``tool`` under ``name`` (defaults to ``tool.name``); re-registering replaces."""
        key = name or tool.name
        if not key:
            raise ValueError(f"Tool {type(tool).__name__} has no name")
        if key in self._tools:
            logger.warning(f"Replacing registered tool '{key}'")
        self._tools[key] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools)


def build_default_registry(
    settings: ToolSettings,
    ai_client: BaseAIClient | None = None,
    *,
    search_transport=None,
    fetch_transport=None,
) -> ToolRegistry:
    """
    Register the built-in tools: conversation, search, web_content and search_and_answer.

    Expense and database tools live outside this package; register them on
    the returned registry under ``expense`` / ``database``.
    """
    provider = SerpApiSearchProvider(
        api_key=settings.serp_api_key,
        engine=settings.search_engine,
        timeout=settings.search_timeout_seconds,
        transport=search_transport,
    )
    fetcher = WebFetcher(
        timeout=settings.fetch_timeout_seconds,
        max_content_length=settings.max_content_length,
        user_agent=settings.user_agent,
        transport=fetch_transport,
    )
    search_tool = SearchEngineTool(provider, max_results=settings.max_search_results)

    registry = ToolRegistry()
    registry.register(ConversationTool(ai_client))
    registry.register(search_tool)
    registry.register(WebContentFetcherTool(fetcher))
    registry.register(
        SearchAndAnswerTool(
            search_tool,
            fetcher,
            ai_client=ai_client,
            max_sources=settings.max_sources,
            fetch_timeout=settings.fetch_timeout_seconds,
        )
    )

    logger.info(
        "Tool registry built",
        extra={"extra_fields": {"tools": registry.names(), "ai_enabled": ai_client is not None}},
    )
    return registry
