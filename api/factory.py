"""
Builds the AI client the pipeline shares across tools.
"""

from config.config import Config, ModelType
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


def create_ai_client(config: Config) -> BaseAIClient | None:
    """
    Create the configured AI backend client.

    Returns None when the backend has no API key or fails to initialize;
    every component that takes a client treats None as "use the
    deterministic fallback".
    """
    model_type = (config.MODEL_TYPE or "").lower().strip()

    try:
        if model_type == ModelType.OPENAI.value:
            if not config.OPENAI_API_KEY:
                logger.warning("OPENAI_API_KEY not set; AI features disabled")
                return None
            from api.openai_client import OpenAIClient

            client = OpenAIClient(api_key=config.OPENAI_API_KEY, model_name=config.DEFAULT_MODEL)

        elif model_type == ModelType.GEMINI.value:
            if not config.GOOGLE_GEMINI_API_KEY:
                logger.warning("GOOGLE_GEMINI_API_KEY not set; AI features disabled")
                return None
            from api.google_gemini_client import GeminiClient

            client = GeminiClient(
                api_key=config.GOOGLE_GEMINI_API_KEY, model_name=config.DEFAULT_MODEL
            )

        else:
            logger.error(f"Unsupported MODEL_TYPE: {model_type}")
            return None

    except Exception as e:
        logger.warning(
            f"AI client initialization failed: {e}",
            extra={"extra_fields": {"provider": model_type, "error_type": type(e).__name__}},
        )
        return None

    logger.info(
        "Initialized client",
        extra={"extra_fields": {"provider": model_type, "model": client.model_name}},
    )
    return client
