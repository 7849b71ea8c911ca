"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.config import Config
from server.middleware import RequestIDMiddleware
from server.routes import chat, health
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the backend configuration on startup."""
    config = Config()
    logger.info(
        "Chat pipeline server starting up",
        extra={"extra_fields": {"ai_backend": config.get_model_info()}},
    )
    for problem in config.validate():
        logger.warning(problem)

    yield

    logger.info("Chat pipeline server shutting down")


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="Chat Pipeline API",
        description="Intent routing, tool execution and response formatting for chat messages",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(chat.router)

    return app
