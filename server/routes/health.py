"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from config.config import Config
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check():
    """
    Liveness plus backend configuration.

    The service stays "healthy" without keys; ``warnings`` lists what will
    fall back (no AI backend) or fail (no search key).
    """
    config = Config()
    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        ai_backend=config.get_model_info(),
        search_configured=bool(config.SERP_API_KEY),
        warnings=config.validate(),
    )
