"""
UnifiedResponse - the one shape every AI backend client returns.

Clients never raise from ``get_completion``: a failed call comes back with
``error`` set and empty ``text``, and each caller picks its own fallback.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

FinishReason = Optional[Literal["stop", "length", "content_filter", "error"]]
FINISH_REASONS = {"stop", "length", "content_filter", "error", None}

TEXT_PREVIEW_LENGTH = 200


class ErrorCode(str, Enum):
    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    BAD_REQUEST = "bad_request"
    PROVIDER_ERROR = "provider_error"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in (ErrorCode.TIMEOUT, ErrorCode.RATE_LIMIT, ErrorCode.PROVIDER_ERROR)


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if not self.total_tokens:
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)


@dataclass(frozen=True)
class NormalizedError:
    """A backend failure mapped onto ``ErrorCode``; unknown codes become ``unknown``."""

    code: str
    message: str
    provider: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        try:
            code = ErrorCode(self.code)
        except ValueError:
            code = ErrorCode.UNKNOWN
        object.__setattr__(self, "code", code.value)

    @classmethod
    def from_code(
        cls, code: ErrorCode, message: str, provider: str, **details: Any
    ) -> "NormalizedError":
        return cls(
            code=code.value,
            message=message,
            provider=provider,
            retryable=code.retryable,
            details=details,
        )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class UnifiedResponse:
    request_id: str
    text: str
    provider: str
    model: str
    latency_ms: int
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: FinishReason = None
    error: NormalizedError | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_timestamp)

    def __post_init__(self):
        if self.finish_reason not in FINISH_REASONS:
            # unrecognized provider reasons are kept in metadata
            metadata = {**self.metadata, "provider_finish_reason": self.finish_reason}
            object.__setattr__(self, "metadata", metadata)
            object.__setattr__(self, "finish_reason", None)

    @classmethod
    def failure(
        cls,
        *,
        request_id: str,
        provider: str,
        model: str,
        latency_ms: int,
        error: NormalizedError,
    ) -> "UnifiedResponse":
        return cls(
            request_id=request_id,
            text="",
            provider=provider,
            model=model,
            latency_ms=latency_ms,
            finish_reason="error",
            error=error,
        )

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def has_text(self) -> bool:
        """Successful and non-blank; the check every caller makes before using ``text``."""
        return self.is_success and bool((self.text or "").strip())

    def to_dict(self) -> dict[str, Any]:
        """Log-friendly form; long text is cut to a preview."""
        data = asdict(self)
        if len(self.text) > TEXT_PREVIEW_LENGTH:
            data["text"] = self.text[:TEXT_PREVIEW_LENGTH] + "..."
        return data
