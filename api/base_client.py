import time
import uuid
from abc import ABC, abstractmethod
from typing import Any

from models.unified_response import ErrorCode, NormalizedError, UnifiedResponse


class BaseAIClient(ABC):
    """
    Abstract base class for AI backend clients.

    Subclasses implement ``get_completion`` and MUST NOT raise from it: every
    failure is returned as a UnifiedResponse with ``error`` set, so callers
    can fall back without exception handling of their own.
    """

    provider_name: str = "unknown"

    @abstractmethod
    def __init__(self, api_key: str, **kwargs):
        """
        Initialize the AI client.

        Args:
            api_key: API key for the AI service
            **kwargs: Additional model-specific parameters
        """
        self.api_key = api_key
        self.model_name = kwargs.get('model_name')

    @abstractmethod
    def get_completion(
        self, prompt: str, *, system_prompt: str | None = None, **kwargs
    ) -> UnifiedResponse:
        """
        Get a completion from the AI model.

        Args:
            prompt: The user prompt
            system_prompt: Optional system instructions
            **kwargs: temperature, max_tokens, model overrides

        Returns:
            UnifiedResponse; ``error`` is set on failure
        """

    # ---------- helpers shared by concrete clients ----------

    def _generate_request_id(self) -> str:
        return f"req_{uuid.uuid4().hex[:16]}"

    def _measure_latency(self, start_time: float) -> int:
        return int((time.time() - start_time) * 1000)

    def _build_messages(self, prompt: str, system_prompt: str | None) -> list[dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _normalize_finish_reason(self, reason: Any) -> str | None:
        if reason is None:
            return None
        value = str(getattr(reason, "name", reason)).lower()
        if value in {"stop", "end_turn", "finish_reason_stop"}:
            return "stop"
        if value in {"length", "max_tokens"}:
            return "length"
        if value in {"content_filter", "safety"}:
            return "content_filter"
        return value

    def _normalize_error(self, exc: Exception) -> NormalizedError:
        """Map an SDK exception onto the shared error codes."""
        name = type(exc).__name__.lower()
        message = str(exc) or type(exc).__name__
        lowered = message.lower()

        if "timeout" in name or "timed out" in lowered:
            code = ErrorCode.TIMEOUT
        elif "ratelimit" in name or "rate limit" in lowered or "429" in lowered:
            code = ErrorCode.RATE_LIMIT
        elif "authentication" in name or "permission" in name or "api key" in lowered or "401" in lowered:
            code = ErrorCode.AUTH
        elif "badrequest" in name or "invalid" in name or "400" in lowered:
            code = ErrorCode.BAD_REQUEST
        elif (
            "apierror" in name
            or "connection" in name
            or "server" in name
            or any(marker in lowered for marker in ("500", "502", "503", "504", "unavailable"))
        ):
            code = ErrorCode.PROVIDER_ERROR
        else:
            code = ErrorCode.UNKNOWN

        return NormalizedError.from_code(
            code, message, self.provider_name, exception_type=type(exc).__name__
        )

    def _create_error_response(
        self, *, request_id: str, error: NormalizedError, latency_ms: int, model: str | None
    ) -> UnifiedResponse:
        return UnifiedResponse.failure(
            request_id=request_id,
            provider=self.provider_name,
            model=model or self.model_name or "unknown",
            latency_ms=latency_ms,
            error=error,
        )
