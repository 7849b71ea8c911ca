"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ChatResponseDTO(BaseModel):
    response: str
    structured_data: dict[str, Any]
    tools_used: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_pipeline_result(cls, result):
        """Convert PipelineResult to DTO."""
        record = result.to_record()
        return cls(
            response=record["response"],
            structured_data=record["structured_data"],
            tools_used=record["tools_used"],
            metadata=record["metadata"],
        )


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"
    ai_backend: str = "Unknown"
    search_configured: bool = False
    warnings: list[str] = Field(default_factory=list)
