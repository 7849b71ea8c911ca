"""
Request/response containers for one pass through the chat pipeline.

Both are request-scoped: created at pipeline entry, discarded at exit.
Storing a PipelineResult is up to the caller (see ``to_record``).
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from models.tool_result import ToolResult


@dataclass(frozen=True)
class ChatRequest:
    """
    One inbound user message.

    Attributes:
        message: Raw user text
        context: Read-only request context. Known keys:
            - ``user``: object with ``.name`` or mapping with ``"name"``
            - ``message_history``: list of ``{"role", "content"}``, most recent last
            - ``url``: explicit URL to fetch, bypasses intent classification
        conversation_id: Caller's conversation identifier, echoed in metadata
    """

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    conversation_id: str | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class PipelineResult:
    response: str
    structured_data: ToolResult
    tools_used: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Shape handed to conversation persistence."""
        return {
            "response": self.response,
            "structured_data": self.structured_data.to_dict(),
            "tools_used": list(self.tools_used),
            "metadata": dict(self.metadata),
        }
