"""Pydantic request models for FastAPI endpoints."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ConversationHistoryItem(BaseModel):
    role: str = Field(..., pattern="^(user|assistant|system)$")
    content: str


class ChatContextRequest(BaseModel):
    user_name: Optional[str] = Field(None, max_length=200)
    message_history: list[ConversationHistoryItem] | None = None
    url: Optional[str] = Field(None, max_length=2048)


class ChatRequest(BaseModel):
    conversation_id: Optional[str] = Field(None, max_length=128)
    message: str = Field(..., min_length=1, max_length=8000)
    context: Optional[ChatContextRequest] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value
