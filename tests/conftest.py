from collections.abc import Callable

import httpx
import pytest

from api.base_client import BaseAIClient
from config.config import ToolSettings
from models.unified_response import ErrorCode, NormalizedError, TokenUsage, UnifiedResponse

PIPELINE_ENV_VARS = [
    "OPENAI_API_KEY",
    "GOOGLE_GEMINI_API_KEY",
    "MODEL_TYPE",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_GEMINI_MODEL",
    "SERP_API_KEY",
    "SERP_ENGINE",
    "MAX_SEARCH_RESULTS",
    "SEARCH_TIMEOUT_SECONDS",
    "FETCH_TIMEOUT_SECONDS",
    "MAX_CONTENT_LENGTH",
    "MAX_SOURCES",
    "FETCH_USER_AGENT",
    "USE_AI_ANSWER",
    "USE_AI_INTENT",
    "INTENT_HYBRID_MODE",
    "INTENT_CONFIDENCE_THRESHOLD",
    "INTENT_LOG_DECISIONS",
    "USE_AI_FORMATTER",
    "COMBINED_MODE",
]


class FakeAIClient(BaseAIClient):
    """
    In-memory AI backend.

    ``reply`` is either a fixed string or a callable ``(prompt, system_prompt) -> str``.
    With ``fail=True`` every call returns a provider error.
    """

    provider_name = "fake"

    def __init__(self, reply: str | Callable[[str, str | None], str] = "ok", fail: bool = False):
        super().__init__(api_key="test-key", model_name="fake-model")
        self.reply = reply
        self.fail = fail
        self.calls: list[dict] = []

    def get_completion(self, prompt, *, system_prompt=None, **kwargs):
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, **kwargs})

        if self.fail:
            return self._create_error_response(
                request_id="req_fake",
                error=NormalizedError.from_code(
                    ErrorCode.PROVIDER_ERROR, "backend down", self.provider_name
                ),
                latency_ms=1,
                model=self.model_name,
            )

        text = self.reply(prompt, system_prompt) if callable(self.reply) else self.reply
        return UnifiedResponse(
            request_id="req_fake",
            text=text,
            provider=self.provider_name,
            model=self.model_name,
            latency_ms=1,
            token_usage=TokenUsage(prompt_tokens=5, completion_tokens=5),
            finish_reason="stop",
        )


def serp_transport(payload: dict | None = None, status_code: int = 200, seen: list | None = None):
    """MockTransport answering every SerpAPI call with ``payload``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload if payload is not None else {})

    return httpx.MockTransport(handler)


def page_transport(pages: dict[str, tuple[int, str]], seen: list | None = None):
    """MockTransport serving ``url -> (status, html)``; unknown urls are 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(str(request.url))
        status, html = pages.get(str(request.url), (404, "<html><body>Not found</body></html>"))
        return httpx.Response(status, text=html, headers={"Content-Type": "text/html"})

    return httpx.MockTransport(handler)


def organic(count: int, prefix: str = "https://site{n}.example.com/") -> list[dict]:
    return [
        {
            "position": n,
            "title": f"Result {n}",
            "link": prefix.format(n=n),
            "snippet": f"Snippet number {n}.",
        }
        for n in range(1, count + 1)
    ]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep pipeline settings independent of the developer's environment."""
    for name in PIPELINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("config.config.load_dotenv", lambda *args, **kwargs: False)


@pytest.fixture
def settings():
    return ToolSettings(serp_api_key="test-serp-key", use_ai_formatter=False)


@pytest.fixture
def fake_ai():
    return FakeAIClient(reply="Hello from the assistant")
