"""Tests for search -> fetch -> synthesize answers."""

import asyncio

import httpx
import pytest

from conftest import FakeAIClient, organic, page_transport, serp_transport
from tools.search_answer import SNIPPETS_SYSTEM_PROMPT, SOURCES_SYSTEM_PROMPT, SearchAndAnswerTool
from tools.search_engine import SearchEngineTool
from tools.search_provider import SerpApiSearchProvider
from tools.web_fetcher import WebFetcher


def page(n):
    return f"<html><body><main><p>Page {n} body text.</p></main></body></html>"


def make_tool(
    payload,
    pages=None,
    ai_client=None,
    status_code=200,
    fetched=None,
    fetch_transport=None,
    fetch_timeout=None,
    searched=None,
):
    provider = SerpApiSearchProvider(
        api_key="k", transport=serp_transport(payload, status_code, seen=searched)
    )
    fetcher = WebFetcher(transport=fetch_transport or page_transport(pages or {}, fetched))
    return SearchAndAnswerTool(
        SearchEngineTool(provider),
        fetcher,
        ai_client=ai_client,
        max_sources=3,
        fetch_timeout=fetch_timeout,
    )


def all_pages(count):
    return {f"https://site{n}.example.com/": (200, page(n)) for n in range(1, count + 1)}


def test_zero_hits_answers_without_ai():
    ai = FakeAIClient()
    tool = make_tool({"organic_results": []}, ai_client=ai)

    result = tool.execute("search for zzqx", {})

    assert result.error is None
    assert result.answer == (
        "I couldn't find any information about 'zzqx'. Please try rephrasing your question."
    )
    assert result.sources == ()
    assert ai.calls == []


def test_fetches_only_top_sources_and_cites_them():
    fetched = []
    ai = FakeAIClient(reply="Synthesized answer.")
    tool = make_tool({"organic_results": organic(10)}, all_pages(10), ai, fetched=fetched)

    result = tool.execute("search for python asyncio", {})

    assert result.query == "python asyncio"
    assert result.answer == "Synthesized answer."
    assert result.message == result.answer
    assert len(result.sources) == 3
    assert result.source_count == 3
    assert sorted(fetched) == [f"https://site{n}.example.com/" for n in (1, 2, 3)]
    assert len(ai.calls) == 1
    assert ai.calls[0]["system_prompt"] == SOURCES_SYSTEM_PROMPT
    assert "Source 1: Result 1" in ai.calls[0]["prompt"]
    assert "Page 1 body text." in ai.calls[0]["prompt"]


def test_failed_fetches_are_dropped():
    ai = FakeAIClient(reply="Partial answer.")
    pages = {"https://site2.example.com/": (200, page(2))}
    tool = make_tool({"organic_results": organic(5)}, pages, ai)

    result = tool.execute("search for things", {})

    assert result.source_count == 1
    assert len(result.sources) == 3
    assert "Source 1: Result 2" in ai.calls[0]["prompt"]


def test_all_fetches_failing_uses_snippet_prompt():
    ai = FakeAIClient(reply="Snippet-based answer.")
    tool = make_tool({"organic_results": organic(4)}, {}, ai)

    result = tool.execute("search for things", {})

    assert result.answer == "Snippet-based answer."
    assert result.source_count == 0
    assert ai.calls[0]["system_prompt"] == SNIPPETS_SYSTEM_PROMPT
    assert "Snippet number 1." in ai.calls[0]["prompt"]


def test_ai_failure_falls_back_to_snippets():
    ai = FakeAIClient(fail=True)
    tool = make_tool({"organic_results": organic(3)}, all_pages(3), ai)

    result = tool.execute("search for things", {})

    assert result.error is None
    assert result.answer.startswith("Here is what I found:")
    assert "Result 1: Snippet number 1." in result.answer
    assert len(result.sources) == 3


def test_without_ai_client_answers_from_snippets():
    tool = make_tool({"organic_results": organic(2)}, all_pages(2))

    result = tool.execute("search for things", {})

    assert result.answer.startswith("Here is what I found:")


def test_search_failure_is_reported():
    tool = make_tool({}, status_code=500, ai_client=FakeAIClient())

    result = tool.execute("search for things", {})

    assert result.error.startswith("Failed to generate answer:")
    assert "500" in result.error
    assert result.message.startswith("Sorry, I encountered an error while generating the answer:")


def test_slow_fetch_is_bounded_by_timeout():
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200, text=page(1))

    ai = FakeAIClient(reply="From snippets.")
    tool = make_tool(
        {"organic_results": organic(2)},
        ai_client=ai,
        fetch_transport=httpx.MockTransport(slow),
        fetch_timeout=0.05,
    )

    result = asyncio.run(tool.aexecute("search for slow pages", {}))

    assert result.source_count == 0
    assert result.answer == "From snippets."


def test_execute_works_inside_running_loop():
    tool = make_tool({"organic_results": organic(1)}, all_pages(1), FakeAIClient(reply="Done."))

    async def call_sync_from_async():
        return tool.execute("search for things", {})

    result = asyncio.run(call_sync_from_async())

    assert result.answer == "Done."


def test_empty_question():
    result = make_tool({}).execute("   ", {})

    assert result.message == "Please provide a question to search for."
    assert result.error is None


def test_query_empty_after_prefix_stripping_makes_no_search():
    searched = []
    ai = FakeAIClient()
    tool = make_tool({"organic_results": organic(3)}, ai_client=ai, searched=searched)

    result = tool.execute('search for "  "', {})

    assert result.message == "Please provide a question to search for."
    assert searched == []
    assert ai.calls == []


def test_cancellation_stops_outstanding_fetches():
    started, finished = [], []

    async def hanging(request):
        started.append(str(request.url))
        await asyncio.sleep(5)
        finished.append(str(request.url))
        return httpx.Response(200, text=page(1))

    tool = make_tool(
        {"organic_results": organic(5)},
        ai_client=FakeAIClient(),
        fetch_transport=httpx.MockTransport(hanging),
    )

    async def cancel_mid_fan_out():
        task = asyncio.create_task(tool.aexecute("search for cats", {}))
        for _ in range(500):
            if len(started) == 3:
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.05)

    asyncio.run(cancel_mid_fan_out())

    assert len(started) == 3
    assert finished == []
