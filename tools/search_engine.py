"""
Internet search tool backed by SerpAPI.
"""

import re
from typing import Any

from models.tool_result import SearchHit, SearchResult
from utils.logger import get_logger

from .base import Tool
from .content_extractor import truncate_snippet
from .search_provider import SerpApiSearchProvider

logger = get_logger(__name__)

# Applied in order, each to the output of the previous one
QUERY_PREFIX_PATTERNS = [
    re.compile(r"^search\s+for\s+", re.IGNORECASE),
    re.compile(r"^search\s+", re.IGNORECASE),
    re.compile(r"^find\s+information\s+about\s+", re.IGNORECASE),
    re.compile(r"^find\s+", re.IGNORECASE),
    re.compile(r"^look\s+for\s+", re.IGNORECASE),
    re.compile(r"^google\s+", re.IGNORECASE),
    re.compile(r"^what\s+is\s+", re.IGNORECASE),
    re.compile(r"^who\s+is\s+", re.IGNORECASE),
    re.compile(r"^where\s+is\s+", re.IGNORECASE),
    re.compile(r"^when\s+", re.IGNORECASE),
    re.compile(r"^how\s+to\s+", re.IGNORECASE),
]

_QUOTED_RE = re.compile(r"^[\"'](.+)[\"']$", re.DOTALL)

PREVIEW_LIMIT = 5
SNIPPET_LENGTH = 150


def extract_query(message: str) -> str:
    """
    Strip command-style prefixes and unwrap a fully quoted query.

    >>> extract_query("search for cats")
    'cats'
    >>> extract_query('"exact phrase"')
    'exact phrase'
    """
    query = (message or "").strip()
    for pattern in QUERY_PREFIX_PATTERNS:
        query = pattern.sub("", query)

    match = _QUOTED_RE.match(query)
    if match:
        query = match.group(1)

    return query.strip()


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


class SearchEngineTool(Tool):
    """Search the internet and list the top hits."""

    name = "search"

    def __init__(
        self,
        provider: SerpApiSearchProvider,
        max_results: int = 10,
        engine: str | None = None,
    ):
        self.provider = provider
        self.max_results = max_results
        self.engine = engine or provider.engine

    def execute(self, message: str, context: dict[str, Any]) -> SearchResult:
        query = extract_query(message)

        if not query:
            return SearchResult(query="", engine=self.engine, message="Please provide a search query.")

        try:
            hits = self.perform_search(query)
        except Exception as e:
            logger.error(
                f"Search failed: {e}",
                exc_info=True,
                extra={"extra_fields": {"query": query, "engine": self.engine}},
            )
            return SearchResult(
                query=query,
                engine=self.engine,
                error=f"Failed to perform search: {e}",
                message=f"Sorry, I encountered an error while searching: {e}",
            )

        return SearchResult(
            query=query,
            engine=self.engine,
            results=tuple(hits),
            message=self.format_response(query, hits),
        )

    def perform_search(self, query: str) -> list[SearchHit]:
        """
        Run the search and normalize the hits.

        Raises:
            SearchProviderError: backend failure or missing configuration
        """
        data = self.provider.search(query, num_results=self.max_results, engine=self.engine)
        hits = self.parse_results(data)
        logger.info(
            f"Search returned {len(hits)} hits",
            extra={"extra_fields": {"query": query, "engine": self.engine, "count": len(hits)}},
        )
        return hits

    def parse_results(self, data: dict[str, Any]) -> list[SearchHit]:
        """
        Normalize SerpAPI JSON into SearchHits.

        Organic results keep SERP order (capped at ``max_results``); an answer
        box goes first as a featured hit; a knowledge graph entry is only used
        when nothing else was found.
        """
        hits: list[SearchHit] = []

        organic = data.get("organic_results")
        if isinstance(organic, list):
            for item in organic:
                if len(hits) >= self.max_results:
                    break
                if not isinstance(item, dict):
                    continue
                link = item.get("link") or ""
                hits.append(
                    SearchHit(
                        title=item.get("title") or "",
                        link=link,
                        snippet=item.get("snippet") or "",
                        displayed_link=item.get("displayed_link") or link,
                        position=int(item.get("position") or 0),
                    )
                )

        answer_box = data.get("answer_box")
        if isinstance(answer_box, dict):
            hits.insert(
                0,
                SearchHit(
                    title=answer_box.get("title") or "Answer",
                    link=answer_box.get("link") or "",
                    snippet=answer_box.get("answer") or answer_box.get("snippet") or "",
                    displayed_link=answer_box.get("displayed_link") or "",
                    position=0,
                    featured=True,
                ),
            )

        knowledge_graph = data.get("knowledge_graph")
        if isinstance(knowledge_graph, dict) and not hits:
            website = knowledge_graph.get("website") or ""
            hits.append(
                SearchHit(
                    title=knowledge_graph.get("title") or "Knowledge Graph",
                    link=website,
                    snippet=knowledge_graph.get("description") or "",
                    displayed_link=website,
                    position=0,
                    featured=True,
                )
            )

        return hits

    def format_response(self, query: str, hits: list[SearchHit]) -> str:
        if not hits:
            return f"No results found for '{query}'."

        count = len(hits)
        lines = [f"Found {count} {_plural(count, 'result')} for '{query}':", ""]

        for num, hit in enumerate(hits[:PREVIEW_LIMIT], start=1):
            marker = " ⭐" if hit.featured else ""
            lines.append(f"{num}. {hit.title}{marker}")
            lines.append(f"   {hit.link}")
            if hit.snippet:
                lines.append(f"   {truncate_snippet(hit.snippet, SNIPPET_LENGTH)}")
            lines.append("")

        if count > PREVIEW_LIMIT:
            remaining = count - PREVIEW_LIMIT
            lines.append(f"...and {remaining} more {_plural(remaining, 'result')}.")

        return "\n".join(lines).strip()

    def get_description(self) -> str:
        return f"Search the internet for information using {self.engine}"

    def get_schema(self) -> dict[str, Any]:
        return {
            "name": "search_internet",
            "description": "Search the internet for current information, news, documentation, or any web content",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search query to look up on the internet",
                    }
                },
                "required": ["query"],
            },
        }
