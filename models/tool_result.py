"""
ToolResult - the normalized output of every tool.

A closed set of result types, one frozen dataclass per type. ``to_dict()``
produces the wire form that the formatter, the HTTP layer and external
persistence consume; it always carries ``type``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class ResultType(str, Enum):
    CONVERSATION = "conversation"
    SEARCH = "search"
    WEB_CONTENT = "web_content"
    ANSWER = "answer"
    EXPENSE = "expense"
    DATABASE = "database"
    COMBINED = "combined"
    ERROR = "error"


@dataclass(frozen=True)
class Source:
    """A search hit cited by a synthesized answer."""

    title: str
    link: str
    snippet: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "link": self.link, "snippet": self.snippet}


@dataclass(frozen=True)
class SearchHit:
    """One normalized search result, in SERP order."""

    title: str
    link: str
    snippet: str = ""
    displayed_link: str = ""
    position: int = 0
    featured: bool = False

    def to_source(self) -> Source:
        return Source(title=self.title, link=self.link, snippet=self.snippet)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "link": self.link,
            "snippet": self.snippet,
            "displayed_link": self.displayed_link,
            "position": self.position,
        }
        if self.featured:
            data["featured"] = True
        return data


@dataclass(frozen=True)
class ToolResult:
    type: ClassVar[ResultType]

    message: str = ""
    error: str | None = None

    @property
    def failed(self) -> bool:
        return bool(self.error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value}
        if self.message:
            data["message"] = self.message
        data.update(self._payload())
        if self.error:
            data["error"] = self.error
        return data

    def _payload(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class ConversationResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.CONVERSATION

    response: str = ""
    confidence: float = 0.0
    fallback: bool = False

    def _payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {"response": self.response, "confidence": self.confidence}
        if self.fallback:
            data["fallback"] = True
        return data


@dataclass(frozen=True)
class SearchResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.SEARCH

    query: str = ""
    engine: str = ""
    results: tuple[SearchHit, ...] = ()

    @property
    def count(self) -> int:
        return len(self.results)

    def _payload(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "engine": self.engine,
            "results": [hit.to_dict() for hit in self.results],
            "count": self.count,
        }


@dataclass(frozen=True)
class WebContentResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.WEB_CONTENT

    url: str = ""
    content: str = ""

    @property
    def length(self) -> int:
        return len(self.content)

    def _payload(self) -> dict[str, Any]:
        return {"url": self.url, "content": self.content, "length": self.length}


@dataclass(frozen=True)
class AnswerResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.ANSWER

    query: str = ""
    answer: str = ""
    sources: tuple[Source, ...] = ()
    source_count: int = 0

    def _payload(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "answer": self.answer,
            "sources": [source.to_dict() for source in self.sources],
            "source_count": self.source_count,
        }


@dataclass(frozen=True)
class ExpenseResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.EXPENSE

    action: str = ""
    expense: dict[str, Any] = field(default_factory=dict)
    expenses: tuple[dict[str, Any], ...] = ()
    count: int = 0
    total: float = 0.0

    def _payload(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "expense": dict(self.expense),
            "expenses": [dict(item) for item in self.expenses],
            "count": self.count,
            "total": self.total,
        }


@dataclass(frozen=True)
class DatabaseResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.DATABASE

    records: tuple[dict[str, Any], ...] = ()
    count: int | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            "result": [dict(record) for record in self.records],
            "count": self.count if self.count is not None else len(self.records),
        }


@dataclass(frozen=True)
class CombinedResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.COMBINED

    results: dict[str, ToolResult] = field(default_factory=dict)
    summary: str = ""

    def _payload(self) -> dict[str, Any]:
        return {
            "results": {name: result.to_dict() for name, result in self.results.items()},
            "summary": self.summary,
        }


@dataclass(frozen=True)
class ErrorResult(ToolResult):
    type: ClassVar[ResultType] = ResultType.ERROR

    response: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"response": self.response} if self.response else {}
