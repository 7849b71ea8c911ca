import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv


class ModelType(Enum):
    """Supported AI backends."""
    OPENAI = "openai"
    GEMINI = "gemini"


class CombinedMode(Enum):
    """When the router may run more than one tool for a single message."""
    OFF = "off"
    URL_QUESTION = "url_question"
    ALL_MATCHES = "all_matches"


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ChatPipeline/1.0)"


@dataclass(frozen=True)
class ToolSettings:
    """Everything the tools, router and formatter read at construction time."""

    max_search_results: int = 10
    search_timeout_seconds: float = 30.0
    fetch_timeout_seconds: float = 30.0
    max_content_length: int = 10000
    max_sources: int = 3
    search_engine: str = "google"
    serp_api_key: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    use_ai_answer: bool = True
    use_ai_intent: bool = False
    intent_hybrid_mode: bool = True
    intent_confidence_threshold: float = 0.5
    intent_log_decisions: bool = False
    use_ai_formatter: bool = True
    combined_mode: CombinedMode = CombinedMode.URL_QUESTION


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    """Configuration management for the application."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # AI backend
        self.OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
        self.GOOGLE_GEMINI_API_KEY = os.getenv('GOOGLE_GEMINI_API_KEY')
        self.MODEL_TYPE = os.getenv('MODEL_TYPE', ModelType.OPENAI.value).lower()
        self.DEFAULT_OPENAI_MODEL = os.getenv('DEFAULT_OPENAI_MODEL', 'gpt-4o-mini')
        self.DEFAULT_GEMINI_MODEL = os.getenv('DEFAULT_GEMINI_MODEL', 'gemini-2.5-flash-lite')

        if self.MODEL_TYPE == ModelType.GEMINI.value:
            self.DEFAULT_MODEL = self.DEFAULT_GEMINI_MODEL
        else:
            self.DEFAULT_MODEL = self.DEFAULT_OPENAI_MODEL

        # Search backend
        self.SERP_API_KEY = os.getenv('SERP_API_KEY', '')
        self.SERP_ENGINE = os.getenv('SERP_ENGINE', 'google')
        self.MAX_SEARCH_RESULTS = _env_int('MAX_SEARCH_RESULTS', 10)
        self.SEARCH_TIMEOUT_SECONDS = _env_float('SEARCH_TIMEOUT_SECONDS', 30.0)

        # Web fetching
        self.FETCH_TIMEOUT_SECONDS = _env_float('FETCH_TIMEOUT_SECONDS', 30.0)
        self.MAX_CONTENT_LENGTH = _env_int('MAX_CONTENT_LENGTH', 10000)
        self.MAX_SOURCES = _env_int('MAX_SOURCES', 3)
        self.FETCH_USER_AGENT = os.getenv('FETCH_USER_AGENT', DEFAULT_USER_AGENT)

        # Routing and formatting
        self.USE_AI_ANSWER = _env_bool('USE_AI_ANSWER', True)
        self.USE_AI_INTENT = _env_bool('USE_AI_INTENT', False)
        self.INTENT_HYBRID_MODE = _env_bool('INTENT_HYBRID_MODE', True)
        self.INTENT_CONFIDENCE_THRESHOLD = _env_float('INTENT_CONFIDENCE_THRESHOLD', 0.5)
        self.INTENT_LOG_DECISIONS = _env_bool('INTENT_LOG_DECISIONS', False)
        self.USE_AI_FORMATTER = _env_bool('USE_AI_FORMATTER', True)
        self.COMBINED_MODE = os.getenv('COMBINED_MODE', CombinedMode.URL_QUESTION.value).lower()

    def validate(self) -> list[str]:
        """
        Check the configuration for problems.

        Returns:
            list[str]: Human-readable problems; empty when everything is set.
            A missing AI key is not fatal (deterministic fallbacks are used),
            but it is reported so the caller can warn about it.
        """
        problems = []
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            if not self.OPENAI_API_KEY:
                problems.append("OPENAI_API_KEY is not set; AI responses will use fallbacks")
        elif self.MODEL_TYPE == ModelType.GEMINI.value:
            if not self.GOOGLE_GEMINI_API_KEY:
                problems.append("GOOGLE_GEMINI_API_KEY is not set; AI responses will use fallbacks")
        else:
            problems.append(
                f"Unknown MODEL_TYPE '{self.MODEL_TYPE}'. Must be one of: {', '.join([e.value for e in ModelType])}"
            )

        if not self.SERP_API_KEY:
            problems.append("SERP_API_KEY is not set; internet search is unavailable")

        if self.COMBINED_MODE not in {m.value for m in CombinedMode}:
            problems.append(f"Unknown COMBINED_MODE '{self.COMBINED_MODE}'")

        return problems

    def get_model_info(self) -> str:
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            return f"OpenAI ({self.DEFAULT_MODEL})"
        elif self.MODEL_TYPE == ModelType.GEMINI.value:
            return f"Google Gemini ({self.DEFAULT_MODEL})"
        return "Unknown"

    def tool_settings(self) -> ToolSettings:
        """Collect the pipeline settings into one immutable struct."""
        try:
            combined_mode = CombinedMode(self.COMBINED_MODE)
        except ValueError:
            combined_mode = CombinedMode.URL_QUESTION

        return ToolSettings(
            max_search_results=max(1, self.MAX_SEARCH_RESULTS),
            search_timeout_seconds=self.SEARCH_TIMEOUT_SECONDS,
            fetch_timeout_seconds=self.FETCH_TIMEOUT_SECONDS,
            max_content_length=max(1, self.MAX_CONTENT_LENGTH),
            max_sources=max(1, self.MAX_SOURCES),
            search_engine=self.SERP_ENGINE,
            serp_api_key=self.SERP_API_KEY,
            user_agent=self.FETCH_USER_AGENT,
            use_ai_answer=self.USE_AI_ANSWER,
            use_ai_intent=self.USE_AI_INTENT,
            intent_hybrid_mode=self.INTENT_HYBRID_MODE,
            intent_confidence_threshold=self.INTENT_CONFIDENCE_THRESHOLD,
            intent_log_decisions=self.INTENT_LOG_DECISIONS,
            use_ai_formatter=self.USE_AI_FORMATTER,
            combined_mode=combined_mode,
        )
