"""
Models package: AI backend responses, tool results and pipeline containers.
"""

from .chat import ChatRequest, PipelineResult
from .tool_result import (
    AnswerResult,
    CombinedResult,
    ConversationResult,
    DatabaseResult,
    ErrorResult,
    ExpenseResult,
    ResultType,
    SearchHit,
    SearchResult,
    Source,
    ToolResult,
    WebContentResult,
)
from .unified_response import ErrorCode, NormalizedError, TokenUsage, UnifiedResponse

__all__ = [
    "AnswerResult",
    "ChatRequest",
    "CombinedResult",
    "ConversationResult",
    "DatabaseResult",
    "ErrorCode",
    "ErrorResult",
    "ExpenseResult",
    "NormalizedError",
    "PipelineResult",
    "ResultType",
    "SearchHit",
    "SearchResult",
    "Source",
    "TokenUsage",
    "ToolResult",
    "UnifiedResponse",
    "WebContentResult",
]
