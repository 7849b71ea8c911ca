"""
Test Suite: FastAPI Contract & Guardrail Validation

Purpose
-------
Validates the public HTTP contract of the chat API WITHOUT calling real AI
backends, SerpAPI or any web page.

What This Test Suite Covers
---------------------------
1. API Health & Availability (`/health`)
2. Input Validation
   - Empty, blank and oversized messages are rejected with 422
   - Oversized message history is rejected with 400
3. Context Mapping
   - user_name, message_history and url reach the pipeline as its context mapping
   - History is trimmed to the most recent messages
4. DTO Contract Stability
   - ChatResponseDTO maps from PipelineResult
5. Request Correlation
   - X-Request-ID is echoed and becomes the pipeline request id
6. Error Normalization
   - SDK exceptions map onto NormalizedError codes and retryability

How These Tests Work
--------------------
- A FakePipeline (or a pipeline wired with fake backends) is injected using
  FastAPI dependency overrides
- No network calls are made
"""

import pytest
from fastapi.testclient import TestClient

from api.base_client import BaseAIClient
from conftest import FakeAIClient
from models.chat import ChatRequest, PipelineResult
from models.tool_result import ConversationResult
from models.unified_response import NormalizedError
from orchestrator.core import ChatPipeline
from orchestrator.formatter import ResultFormatter
from orchestrator.router import Router
from server.app import create_app
from server.schemas.responses import ChatResponseDTO
from server.utils import MAX_CONTEXT_MESSAGES
from tools.conversation import ConversationTool
from tools.registry import ToolRegistry

pytestmark = pytest.mark.integration


# -------------------------------------------------------------------
# Fake pipeline (keeps tests offline & deterministic)
# -------------------------------------------------------------------


class FakePipeline:
    def __init__(self):
        self.requests: list[ChatRequest] = []

    async def aprocess(self, request, progress_callback=None) -> PipelineResult:
        self.requests.append(request)
        return PipelineResult(
            response="OK",
            structured_data=ConversationResult(response="OK", confidence=0.95),
            tools_used=["conversation"],
            metadata={"request_id": request.request_id},
        )


# -------------------------------------------------------------------
# Dummy client to access BaseAIClient helpers
# -------------------------------------------------------------------


class DummyClient(BaseAIClient):
    provider_name = "test"

    def __init__(self):
        super().__init__(api_key="unused")

    def get_completion(self, *args, **kwargs):
        raise NotImplementedError


# -------------------------------------------------------------------
# Pytest fixtures
# -------------------------------------------------------------------


@pytest.fixture()
def pipeline():
    return FakePipeline()


@pytest.fixture()
def app(pipeline):
    """
    Build FastAPI app and override get_pipeline dependency.
    """
    app = create_app()

    from server import dependencies as deps

    # Clear singleton cache to avoid cross-test leakage
    if hasattr(deps.get_pipeline, "_instance"):
        delattr(deps.get_pipeline, "_instance")

    app.dependency_overrides[deps.get_pipeline] = lambda: pipeline
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


# -------------------------------------------------------------------
# Tests
# -------------------------------------------------------------------


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/json")
    assert r.json()["status"] == "healthy"


def test_health_reports_missing_keys(client, monkeypatch):
    monkeypatch.setenv("MODEL_TYPE", "openai")
    monkeypatch.setenv("SERP_API_KEY", "k")

    body = client.get("/health").json()

    assert body["search_configured"] is True
    assert body["ai_backend"].startswith("OpenAI")
    assert any("OPENAI_API_KEY" in w for w in body["warnings"])


def test_chat_returns_pipeline_result(client):
    r = client.post("/v1/chat", json={"message": "Hello"})
    assert r.status_code == 200

    body = r.json()
    assert body["response"] == "OK"
    assert body["tools_used"] == ["conversation"]
    assert body["structured_data"]["type"] == "conversation"
    assert body["structured_data"]["confidence"] == 0.95


@pytest.mark.parametrize("message", ["", "   ", "x" * 8001])
def test_chat_rejects_bad_message(client, message):
    r = client.post("/v1/chat", json={"message": message})
    assert r.status_code == 422


def test_chat_requires_message(client):
    r = client.post("/v1/chat", json={})
    assert r.status_code == 422


def test_chat_rejects_unknown_history_role(client):
    payload = {
        "message": "hi",
        "context": {"message_history": [{"role": "robot", "content": "beep"}]},
    }
    r = client.post("/v1/chat", json=payload)
    assert r.status_code == 422


def test_context_passed_to_pipeline(client, pipeline):
    payload = {
        "conversation_id": "conv-7",
        "message": "What does it say?",
        "context": {
            "user_name": "Ada",
            "url": "https://example.com/page",
            "message_history": [
                {"role": "user", "content": f"message {n}"} for n in range(MAX_CONTEXT_MESSAGES + 2)
            ],
        },
    }
    r = client.post("/v1/chat", json=payload)
    assert r.status_code == 200

    request = pipeline.requests[0]
    assert request.conversation_id == "conv-7"
    assert request.context["user"] == {"name": "Ada"}
    assert request.context["url"] == "https://example.com/page"
    assert len(request.context["message_history"]) == MAX_CONTEXT_MESSAGES
    assert request.context["message_history"][0]["content"] == "message 2"


def test_oversized_history_rejected(client):
    payload = {
        "message": "hi",
        "context": {"message_history": [{"role": "user", "content": "x" * 9000}]},
    }
    r = client.post("/v1/chat", json=payload)
    assert r.status_code == 400


def test_request_id_round_trip(client, pipeline):
    r = client.post("/v1/chat", json={"message": "Hello"}, headers={"X-Request-ID": "req-abc"})
    assert r.headers["X-Request-ID"] == "req-abc"
    assert pipeline.requests[0].request_id == "req-abc"
    assert r.json()["metadata"]["request_id"] == "req-abc"


def test_request_id_generated(client):
    r = client.get("/health")
    assert r.headers.get("X-Request-ID")


def test_chat_with_real_pipeline_never_returns_500(app):
    from server import dependencies as deps

    registry = ToolRegistry()
    registry.register(ConversationTool(FakeAIClient(fail=True)))
    real_pipeline = ChatPipeline(Router(registry), ResultFormatter())
    app.dependency_overrides[deps.get_pipeline] = lambda: real_pipeline

    r = TestClient(app).post("/v1/chat", json={"message": "<b>Hello</b>"})
    assert r.status_code == 200
    assert r.json()["structured_data"]["fallback"] is True
    assert r.json()["metadata"]["intent_source"] == "default"


@pytest.mark.parametrize(
    "exc, expected_code, expected_retryable",
    [
        (TimeoutError("timed out"), "timeout", True),
        (Exception("401 Unauthorized"), "auth", False),
        (Exception("429 Too Many Requests"), "rate_limit", True),
        (Exception("400 Bad Request"), "bad_request", False),
        (Exception("503 Service Unavailable"), "provider_error", True),
        (ValueError("something odd"), "unknown", False),
    ],
)
def test_error_normalization(exc, expected_code, expected_retryable):
    dummy = DummyClient()
    err: NormalizedError = dummy._normalize_error(exc)
    assert err.code == expected_code
    assert err.retryable == expected_retryable
    assert err.provider == "test"


def test_chat_dto_mapping_smoke():
    result = PipelineResult(
        response="Hi",
        structured_data=ConversationResult(response="Hi", confidence=0.5, fallback=True),
        tools_used=["conversation"],
        metadata={"execution_time": 0.01},
    )

    dto = ChatResponseDTO.from_pipeline_result(result)
    assert dto.response == "Hi"
    assert dto.structured_data["fallback"] is True
    assert dto.metadata["execution_time"] == 0.01
