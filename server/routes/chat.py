"""Chat endpoint: one message through the pipeline."""

from fastapi import APIRouter, Depends, Request

from models.chat import ChatRequest as PipelineRequest
from orchestrator.core import ChatPipeline
from server.dependencies import get_pipeline
from server.schemas.requests import ChatRequest
from server.schemas.responses import ChatResponseDTO
from server.utils import build_pipeline_context, validate_and_trim_context
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Chat"])


@router.post("/chat", response_model=ChatResponseDTO)
async def chat(
    request: ChatRequest,
    http_request: Request,
    pipeline: ChatPipeline = Depends(get_pipeline),
):
    """Route a message to the right tools and return the formatted reply."""
    request.context = validate_and_trim_context(request.context)
    request_id = getattr(http_request.state, "request_id", None)

    pipeline_request = PipelineRequest(
        message=request.message,
        context=build_pipeline_context(request.context),
        conversation_id=request.conversation_id,
        **({"request_id": request_id} if request_id else {}),
    )

    result = await pipeline.aprocess(pipeline_request)

    logger.info(
        "Chat request handled",
        extra={
            "extra_fields": {
                "request_id": pipeline_request.request_id,
                "tools_used": result.tools_used,
            }
        },
    )
    return ChatResponseDTO.from_pipeline_result(result)
