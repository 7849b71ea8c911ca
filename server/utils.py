"""Shared utilities for FastAPI routes."""

from typing import Any

from fastapi import HTTPException, status

MAX_CONTEXT_MESSAGES = 10
MAX_CONTEXT_CHARS = 8000


def validate_and_trim_context(context_req):
    """Validate and trim message history to keep prompts bounded."""
    if not context_req or not context_req.message_history:
        return context_req

    history = context_req.message_history

    # Trim to last N messages
    if len(history) > MAX_CONTEXT_MESSAGES:
        history = history[-MAX_CONTEXT_MESSAGES:]

    total_chars = sum(len(item.content) for item in history)
    if total_chars > MAX_CONTEXT_CHARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message history exceeds {MAX_CONTEXT_CHARS} characters",
        )

    context_req.message_history = history
    return context_req


def build_pipeline_context(context_req) -> dict[str, Any]:
    """Convert the request context into the pipeline's context mapping."""
    if not context_req:
        return {}

    context: dict[str, Any] = {}
    if context_req.user_name:
        context["user"] = {"name": context_req.user_name}
    if context_req.message_history:
        context["message_history"] = [
            {"role": item.role, "content": item.content} for item in context_req.message_history
        ]
    if context_req.url:
        context["url"] = context_req.url
    return context
