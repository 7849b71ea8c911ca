"""Tools the chat router dispatches to."""

from .base import Tool
from .conversation import ConversationTool
from .registry import ToolRegistry, build_default_registry
from .search_answer import SearchAndAnswerTool
from .search_engine import SearchEngineTool
from .web_content import WebContentFetcherTool

__all__ = [
    "ConversationTool",
    "SearchAndAnswerTool",
    "SearchEngineTool",
    "Tool",
    "ToolRegistry",
    "WebContentFetcherTool",
    "build_default_registry",
]
