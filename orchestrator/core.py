"""
ChatPipeline - input cleaning -> routing -> formatting, for one message.

Key guarantees:
- CLI/API layers stay thin (no tool or provider imports there)
- No exceptions bubble up from process() / aprocess()
- Structured data and metadata survive a formatting failure
"""

import asyncio
import re
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from api.base_client import BaseAIClient
from api.factory import create_ai_client
from config.config import Config, ToolSettings
from models.chat import ChatRequest, PipelineResult
from models.tool_result import ErrorResult
from orchestrator.formatter import PROCESSED_FALLBACK, ResultFormatter
from orchestrator.router import APOLOGY, Router
from tools.registry import ToolRegistry, build_default_registry
from utils.async_utils import run_sync
from utils.logger import bind_request_id, get_logger, reset_request_id

logger = get_logger(__name__)

HTML_TAG_NAMES = (
    "a|abbr|address|article|aside|audio|b|blockquote|body|br|button|canvas|caption|center|"
    "code|dd|div|dl|dt|em|footer|font|form|h[1-6]|head|header|hr|html|i|iframe|img|input|"
    "label|li|link|main|meta|nav|noscript|ol|option|p|pre|s|script|section|select|small|"
    "source|span|strong|style|sub|sup|svg|table|tbody|td|template|textarea|tfoot|th|thead|"
    "title|tr|u|ul|video"
)
_TAG_RE = re.compile(
    rf"<!--.*?-->|<!doctype[^>]*>|</?(?:{HTML_TAG_NAMES})(?:\s[^<>]*)?/?>",
    re.IGNORECASE | re.DOTALL,
)
_WS_RE = re.compile(r"\s+")

EMPTY_MESSAGE_ERROR = "Message cannot be empty"


def clean_message(message: str | None) -> str:
    """Strip markup and normalize whitespace."""
    text = _TAG_RE.sub("", message or "")
    return _WS_RE.sub(" ", text).strip()


class ChatPipeline:
    def __init__(self, router: Router, formatter: ResultFormatter):
        self.router = router
        self.formatter = formatter

    def _metadata(self, request: ChatRequest, start_time: float, **extra: Any) -> dict[str, Any]:
        metadata = {
            "request_id": request.request_id,
            "conversation_id": request.conversation_id,
            "execution_time": round(time.time() - start_time, 3),
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        metadata.update({k: v for k, v in extra.items() if v is not None})
        return metadata

    async def aprocess(
        self,
        request: ChatRequest | str,
        progress_callback: Callable[[str], Any] | None = None,
    ) -> PipelineResult:
        """
        Handle one message end to end.

        Cancelling the awaiting task cancels any outstanding page fetches.
        """
        if isinstance(request, str):
            request = ChatRequest(message=request)

        token = bind_request_id(request.request_id)
        try:
            return await self._process(request, progress_callback)
        finally:
            reset_request_id(token)

    async def _process(
        self, request: ChatRequest, progress_callback: Callable[[str], Any] | None
    ) -> PipelineResult:
        start_time = time.time()
        message = clean_message(request.message)

        if not message:
            error = ErrorResult(error=EMPTY_MESSAGE_ERROR)
            return PipelineResult(
                response=self.formatter.format(error),
                structured_data=error,
                tools_used=[],
                metadata=self._metadata(request, start_time, error=EMPTY_MESSAGE_ERROR),
            )

        try:
            outcome = await self.router.aroute(message, dict(request.context), progress_callback)
        except Exception as e:
            logger.exception("Routing failed")
            error = ErrorResult(response=APOLOGY)
            return PipelineResult(
                response=APOLOGY,
                structured_data=error,
                tools_used=[],
                metadata=self._metadata(request, start_time, error=str(e)),
            )

        try:
            response = await asyncio.to_thread(self.formatter.format, outcome.result)
        except Exception as e:
            logger.error(f"Formatter raised: {e}", exc_info=True)
            response = PROCESSED_FALLBACK

        metadata = self._metadata(
            request,
            start_time,
            fallback=outcome.fallback or None,
            error=outcome.error,
            **outcome.metadata(),
        )

        logger.info(
            "Message processed",
            extra={
                "extra_fields": {
                    "request_id": request.request_id,
                    "conversation_id": request.conversation_id,
                    "tools_used": outcome.tools_used,
                    "result_type": outcome.result.type.value,
                    "execution_time": metadata["execution_time"],
                }
            },
        )

        return PipelineResult(
            response=response,
            structured_data=outcome.result,
            tools_used=outcome.tools_used,
            metadata=metadata,
        )

    def process(
        self,
        request: ChatRequest | str,
        progress_callback: Callable[[str], Any] | None = None,
    ) -> PipelineResult:
        """Synchronous wrapper for aprocess; safe to call from inside a running loop."""
        return run_sync(self.aprocess(request, progress_callback))


def build_pipeline(
    config: Config | None = None,
    *,
    settings: ToolSettings | None = None,
    ai_client: BaseAIClient | None = None,
    registry: ToolRegistry | None = None,
) -> ChatPipeline:
    """
    Wire a pipeline from configuration.

    ``ai_client`` and ``registry`` override what the configuration would
    build; tests use them to inject fakes.
    """
    config = config or Config()
    settings = settings or config.tool_settings()

    for problem in config.validate():
        logger.warning(problem)

    if ai_client is None:
        ai_client = create_ai_client(config)

    if registry is None:
        registry = build_default_registry(settings, ai_client)

    router = Router(registry, settings, ai_client=ai_client)
    formatter = ResultFormatter(ai_client if settings.use_ai_formatter else None)
    return ChatPipeline(router, formatter)
