#!/usr/bin/env python3
"""FastAPI server entry point for the chat pipeline."""

import argparse
import os

import uvicorn
from dotenv import load_dotenv

from utils.logger import configure_logging

load_dotenv()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat Pipeline FastAPI Server")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"), help="Host to bind to")
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind to"
    )
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Uvicorn log level",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    configure_logging(level=args.log_level)

    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )
