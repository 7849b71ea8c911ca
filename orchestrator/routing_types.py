from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from models.tool_result import ToolResult


class IntentSource(str, Enum):
    CONTEXT_URL = "context_url"
    KEYWORD = "keyword"
    AI = "ai"
    DEFAULT = "default"


class ToolName(str, Enum):
    CONVERSATION = "conversation"
    SEARCH = "search"
    SEARCH_AND_ANSWER = "search_and_answer"
    WEB_CONTENT = "web_content"
    EXPENSE = "expense"
    DATABASE = "database"


@dataclass(frozen=True)
class IntentDecision:
    tools: list[str]
    source: IntentSource
    confidence: float = 1.0
    reasoning: str = ""

    @property
    def is_combined(self) -> bool:
        return len(self.tools) > 1


@dataclass(frozen=True)
class ToolRun:
    tool: str
    result: ToolResult
    fallback: bool = False
    error: str | None = None


@dataclass(frozen=True)
class RouteOutcome:
    decision: IntentDecision
    result: ToolResult
    runs: list[ToolRun] = field(default_factory=list)

    @property
    def tools_used(self) -> list[str]:
        return [run.tool for run in self.runs]

    @property
    def fallback(self) -> bool:
        return any(run.fallback for run in self.runs)

    @property
    def error(self) -> str | None:
        errors = [run.error for run in self.runs if run.error]
        return "; ".join(errors) if errors else None

    def metadata(self) -> dict[str, Any]:
        return {
            "intent_source": self.decision.source.value,
            "intent_confidence": self.decision.confidence,
            "intent_reasoning": self.decision.reasoning,
        }
