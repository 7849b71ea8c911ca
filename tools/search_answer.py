"""
SearchAndAnswerTool - search, read the top pages, synthesize one grounded answer.

Flow:
    search -> (no hits: deterministic "couldn't find" answer, no AI call)
           -> fetch top ``max_sources`` pages concurrently (bounded, each with
              its own timeout, failures isolated)
           -> build prompt from page contents, or from snippets when every
              fetch failed
           -> one AI call -> (AI failure: concatenated snippets)
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from api.base_client import BaseAIClient
from models.tool_result import AnswerResult, SearchHit
from utils.async_utils import run_sync
from utils.logger import get_logger

from .base import Tool
from .search_engine import SearchEngineTool, extract_query
from .web_fetcher import WebFetcher

logger = get_logger(__name__)

SOURCES_SYSTEM_PROMPT = "You are a helpful assistant that answers questions based on provided sources."
SNIPPETS_SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on search result snippets."
)

SNIPPET_LIMIT = 5


@dataclass(frozen=True)
class FetchedPage:
    title: str
    url: str
    content: str


class SearchAndAnswerTool(Tool):
    """Search the internet and answer the question with source citations."""

    name = "search_and_answer"

    def __init__(
        self,
        search_tool: SearchEngineTool,
        fetcher: WebFetcher,
        ai_client: BaseAIClient | None = None,
        max_sources: int = 3,
        fetch_timeout: float | None = None,
    ):
        """
        Args:
            search_tool: Performs the search and result parsing
            fetcher: Fetches the top pages
            ai_client: Synthesizes the answer; None means snippets only
            max_sources: Fan-out cap and maximum number of cited sources
            fetch_timeout: Per-fetch bound in seconds (defaults to the fetcher's timeout)
        """
        self.search_tool = search_tool
        self.fetcher = fetcher
        self.ai_client = ai_client
        self.max_sources = max(1, max_sources)
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else fetcher.timeout

    def execute(self, message: str, context: dict[str, Any]) -> AnswerResult:
        return run_sync(self.aexecute(message, context))

    async def aexecute(self, message: str, context: dict[str, Any]) -> AnswerResult:
        query = extract_query(message)
        if not query:
            return AnswerResult(message="Please provide a question to search for.")

        logger.info("Starting search", extra={"extra_fields": {"query": query}})
        try:
            hits = await asyncio.to_thread(self.search_tool.perform_search, query)
        except Exception as e:
            logger.error(
                f"Search for answer failed: {e}",
                exc_info=True,
                extra={"extra_fields": {"query": query}},
            )
            return AnswerResult(
                query=query,
                error=f"Failed to generate answer: {e}",
                message=f"Sorry, I encountered an error while generating the answer: {e}",
            )

        if not hits:
            return AnswerResult(
                query=query,
                answer=(
                    f"I couldn't find any information about '{query}'. "
                    "Please try rephrasing your question."
                ),
                message=f"I couldn't find any information about '{query}'.",
            )

        top_hits = hits[: self.max_sources]
        pages = await self.fetch_pages(top_hits)

        if pages:
            prompt, system_prompt = self._build_sources_prompt(query, pages), SOURCES_SYSTEM_PROMPT
        else:
            logger.warning(
                "No content fetched, using snippets only",
                extra={"extra_fields": {"query": query, "hit_count": len(hits)}},
            )
            prompt, system_prompt = self._build_snippets_prompt(query, hits), SNIPPETS_SYSTEM_PROMPT

        answer = await self._synthesize(prompt, system_prompt, hits)

        return AnswerResult(
            query=query,
            answer=answer,
            sources=tuple(hit.to_source() for hit in top_hits),
            source_count=len(pages),
            message=answer,
        )

    async def fetch_pages(self, hits: list[SearchHit]) -> list[FetchedPage]:
        """
        Fetch the pages behind ``hits`` concurrently.

        At most ``max_sources`` fetches are in flight; each is bounded by
        ``fetch_timeout``. Failed fetches are logged and dropped; the result
        keeps the order of ``hits``. Cancelling the caller cancels every
        outstanding fetch.
        """
        semaphore = asyncio.Semaphore(self.max_sources)

        async def fetch_one(hit: SearchHit) -> FetchedPage | None:
            if not hit.link:
                return None
            async with semaphore:
                try:
                    content = await asyncio.wait_for(
                        self.fetcher.afetch_content(hit.link), timeout=self.fetch_timeout
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        f"Fetch timed out after {self.fetch_timeout:g}s",
                        extra={"extra_fields": {"url": hit.link}},
                    )
                    return None
                except Exception as e:
                    logger.warning(
                        f"Failed to fetch content: {e}",
                        extra={"extra_fields": {"url": hit.link, "error_type": type(e).__name__}},
                    )
                    return None

            if not content:
                return None
            return FetchedPage(title=hit.title, url=hit.link, content=content)

        results = await asyncio.gather(*(fetch_one(hit) for hit in hits))
        pages = [page for page in results if page is not None]

        logger.info(
            f"Fetched {len(pages)} of {len(hits)} pages",
            extra={"extra_fields": {"fetched": len(pages), "attempted": len(hits)}},
        )
        return pages

    def _build_sources_prompt(self, query: str, pages: list[FetchedPage]) -> str:
        parts = [
            f"Source {num}: {page.title}\nURL: {page.url}\nContent: {page.content}\n"
            for num, page in enumerate(pages, start=1)
        ]
        context = "\n---\n\n".join(parts)

        return f"""Question: {query}

I have searched the internet and found the following information:

{context}

Please provide a comprehensive, accurate, and well-structured answer to the question based on the sources above.

Guidelines:
1. Synthesize information from multiple sources when relevant
2. Be concise but thorough
3. Use natural, conversational language
4. If sources contradict each other, mention both perspectives
5. If sources don't fully answer the question, acknowledge what is covered and what isn't
6. Do not make up information not present in the sources
7. You may reference sources by their title or number (e.g., "According to Source 1...")

Answer:"""

    def _build_snippets_prompt(self, query: str, hits: list[SearchHit]) -> str:
        snippets = [
            f"{num}. {hit.title}\n   {hit.snippet}\n   Source: {hit.link}"
            for num, hit in enumerate(hits[:SNIPPET_LIMIT], start=1)
            if hit.snippet
        ]
        context = "\n\n".join(snippets)

        return f"""Question: {query}

Here are the top search result snippets:

{context}

Please provide a helpful answer based on these snippets. Be concise and acknowledge that this is based on limited information from search results.

Answer:"""

    async def _synthesize(self, prompt: str, system_prompt: str, hits: list[SearchHit]) -> str:
        if self.ai_client is not None:
            response = await asyncio.to_thread(
                self.ai_client.get_completion, prompt, system_prompt=system_prompt
            )
            if response.has_text:
                return response.text.strip()
            logger.warning(
                "Answer synthesis failed, falling back to snippets",
                extra={
                    "extra_fields": {
                        "error_code": response.error.code if response.error else None,
                    }
                },
            )

        return self.snippet_answer(hits)

    def snippet_answer(self, hits: list[SearchHit]) -> str:
        """Deterministic answer built from the top snippets."""
        parts = [
            f"{hit.title}: {hit.snippet}" if hit.title else hit.snippet
            for hit in hits[:SNIPPET_LIMIT]
            if hit.snippet
        ]
        if not parts:
            parts = [hit.title for hit in hits[:SNIPPET_LIMIT] if hit.title]
        if not parts:
            return "I found some search results but could not summarize them."
        return "Here is what I found:\n\n" + "\n\n".join(parts)

    def get_description(self) -> str:
        return "Search the internet and provide AI-synthesized answers with source citations"

    def get_schema(self) -> dict[str, Any]:
        return {
            "name": "search_and_answer",
            "description": "Search the internet for information and synthesize a comprehensive answer to the user's question",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The question or search query to find information about and answer",
                    }
                },
                "required": ["query"],
            },
        }
