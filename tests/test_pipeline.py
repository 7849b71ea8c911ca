"""End-to-end tests for ChatPipeline with fake backends."""

import asyncio
import threading
import time
from dataclasses import replace

import pytest

from conftest import FakeAIClient, organic, page_transport, serp_transport
from config.config import Config
from models.chat import ChatRequest
from models.tool_result import ErrorResult
from orchestrator.core import ChatPipeline, build_pipeline, clean_message
from orchestrator.formatter import PROCESSED_FALLBACK, ResultFormatter
from orchestrator.router import APOLOGY, Router
from tools.registry import build_default_registry


def make_pipeline(settings, ai_client=None, payload=None, pages=None, seen=None):
    registry = build_default_registry(
        settings,
        ai_client,
        search_transport=serp_transport(payload or {"organic_results": organic(3)}, seen=seen),
        fetch_transport=page_transport(pages or {}),
    )
    return build_pipeline(Config(), settings=settings, ai_client=ai_client, registry=registry)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  Hello   <b>world</b>  ", "Hello world"),
        ("<script>", ""),
        ("a < b and c > d", "a < b and c > d"),
        ("x<y and z>w", "x<y and z>w"),
        ("<!-- note -->Hi <div class='a'>there</div><br/>", "Hi there"),
        (None, ""),
    ],
)
def test_clean_message(raw, expected):
    assert clean_message(raw) == expected


def test_hello_with_ai(settings):
    pipeline = make_pipeline(settings, FakeAIClient(reply="Hi Ada!"))

    result = pipeline.process(ChatRequest(message="Hello", context={"user": {"name": "Ada"}}))

    assert result.response == "Hi Ada!"
    assert result.tools_used == ["conversation"]
    assert result.structured_data.confidence == 0.95
    assert "fallback" not in result.metadata


def test_hello_without_ai(settings):
    pipeline = make_pipeline(settings, FakeAIClient(fail=True))

    result = pipeline.process("Hello")

    assert result.tools_used == ["conversation"]
    assert result.structured_data.confidence == 0.5
    assert result.structured_data.fallback is True
    assert result.response.startswith("Hello!")


def test_fetch_404_reports_error(settings):
    pipeline = make_pipeline(settings, FakeAIClient())

    result = pipeline.process("fetch https://example.com/missing")

    data = result.structured_data.to_dict()
    assert result.tools_used == ["web_content"]
    assert data["type"] == "web_content"
    assert "404" in data["error"]
    assert data["content"] == ""
    assert result.response.startswith("I encountered an issue: Failed to fetch content:")


def test_fetch_url_with_query_string_runs_only_web_content(settings):
    serp_requests = []
    url = "https://example.com/page?id=1"
    pipeline = make_pipeline(
        settings,
        FakeAIClient(),
        pages={url: (200, "<main><p>Page body</p></main>")},
        seen=serp_requests,
    )

    result = pipeline.process(f"fetch {url}")

    assert result.tools_used == ["web_content"]
    assert result.structured_data.content == "Page body"
    assert serp_requests == []


def test_search_question_answered_with_sources(settings):
    pages = {f"https://site{n}.example.com/": (200, f"<p>Page {n}</p>") for n in (1, 2, 3)}
    pipeline = make_pipeline(settings, FakeAIClient(reply="Python is a language."), pages=pages)

    result = pipeline.process("search for python")

    assert result.tools_used == ["search_and_answer"]
    assert result.response.startswith("Python is a language.\n\nSources:\n1. Result 1 - ")
    assert result.structured_data.source_count == 3


def test_plain_search_without_ai_answer(settings):
    pipeline = make_pipeline(replace(settings, use_ai_answer=False))

    result = pipeline.process("search for python")

    assert result.tools_used == ["search"]
    assert result.response.startswith("Found 3 results for your search.")


def test_empty_message(settings):
    result = make_pipeline(settings).process("   <br>  ")

    assert isinstance(result.structured_data, ErrorResult)
    assert result.structured_data.error == "Message cannot be empty"
    assert result.tools_used == []
    assert result.metadata["error"] == "Message cannot be empty"
    assert result.response.startswith("I encountered an issue: Message cannot be empty.")


def test_metadata(settings):
    request = ChatRequest(message="Hello", conversation_id="conv-1")

    result = make_pipeline(settings).process(request)

    assert result.metadata["request_id"] == request.request_id
    assert result.metadata["conversation_id"] == "conv-1"
    assert result.metadata["intent_source"] == "default"
    assert result.metadata["execution_time"] >= 0
    assert result.metadata["timestamp"].endswith("Z")


def test_progress_callback(settings):
    steps = []

    make_pipeline(settings).process("Hello", steps.append)

    assert steps[0] == "Analyzing intent..."
    assert steps[-1] == "Processing results..."


def test_routing_crash_returns_apology(settings):
    class CrashingRouter(Router):
        async def aroute(self, message, context=None, progress=None):
            raise RuntimeError("router bug")

    base = make_pipeline(settings)
    pipeline = ChatPipeline(CrashingRouter(base.router.registry, settings), base.formatter)

    result = pipeline.process("Hello")

    assert result.response == APOLOGY
    assert result.tools_used == []
    assert result.metadata["error"] == "router bug"


def test_formatter_crash_keeps_structured_data(settings):
    class CrashingFormatter(ResultFormatter):
        def format(self, result):
            raise RuntimeError("formatter bug")

    base = make_pipeline(settings)
    pipeline = ChatPipeline(base.router, CrashingFormatter())

    result = pipeline.process("Hello")

    assert result.response == PROCESSED_FALLBACK
    assert result.tools_used == ["conversation"]
    assert result.structured_data.response


def test_aprocess(settings):
    result = asyncio.run(make_pipeline(settings).aprocess("Hello"))

    assert result.tools_used == ["conversation"]


def test_to_record(settings):
    record = make_pipeline(settings).process("Hello").to_record()

    assert set(record) == {"response", "structured_data", "tools_used", "metadata"}
    assert record["structured_data"]["type"] == "conversation"


def test_build_pipeline_formatter_ai_toggle(settings):
    ai = FakeAIClient()

    with_ai = build_pipeline(Config(), settings=replace(settings, use_ai_formatter=True), ai_client=ai)
    without_ai = build_pipeline(Config(), settings=settings, ai_client=ai)

    assert with_ai.formatter.ai_client is ai
    assert without_ai.formatter.ai_client is None


def test_ai_intent_call_does_not_block_event_loop(settings):
    def slow_reply(prompt, system_prompt):
        time.sleep(0.5)
        return '{"tools": ["conversation"], "confidence": 0.9}'

    pipeline = make_pipeline(
        replace(settings, use_ai_intent=True), FakeAIClient(reply=slow_reply)
    )

    async def process_with_ticker():
        gaps, done = [], []

        async def ticker():
            last = time.perf_counter()
            while not done:
                await asyncio.sleep(0.01)
                now = time.perf_counter()
                gaps.append(now - last)
                last = now

        task = asyncio.create_task(ticker())
        result = await pipeline.aprocess("tell me about Paris")
        done.append(True)
        await task
        return result, max(gaps)

    result, longest_gap = asyncio.run(process_with_ticker())

    assert result.metadata["intent_source"] == "ai"
    assert longest_gap < 0.3


def test_formatting_runs_off_the_event_loop_thread(settings, monkeypatch):
    pipeline = make_pipeline(settings, FakeAIClient(reply="Hi!"))
    format_threads = []

    def recording_format(result):
        format_threads.append(threading.get_ident())
        return "formatted"

    monkeypatch.setattr(pipeline.formatter, "format", recording_format)

    async def process_and_note_loop_thread():
        return await pipeline.aprocess("Hello"), threading.get_ident()

    result, loop_thread = asyncio.run(process_and_note_loop_thread())

    assert result.response == "formatted"
    assert format_threads and format_threads[0] != loop_thread
