"""FastAPI dependencies."""

from orchestrator.core import ChatPipeline, build_pipeline


def get_pipeline() -> ChatPipeline:
    """Dependency to get the pipeline instance (singleton pattern)."""
    if not hasattr(get_pipeline, "_instance"):
        get_pipeline._instance = build_pipeline()
    return get_pipeline._instance
