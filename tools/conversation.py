"""
General conversation tool: greetings, help requests and general questions.
"""

import re
from typing import Any

from api.base_client import BaseAIClient
from models.tool_result import ConversationResult
from orchestrator.fallback_manager import FallbackChain, FallbackStrategy
from utils.logger import get_logger

from .base import Tool

logger = get_logger(__name__)

AI_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.5
HISTORY_TURNS = 5
HISTORY_CONTENT_LENGTH = 200

FALLBACK_RESPONSES = {
    "greeting": "Hello! I'm here to help you with your tasks and questions. What can I assist you with today?",
    "help": (
        "I can help you with:\n"
        "• Searching the internet and answering questions\n"
        "• Reading web pages\n"
        "• General questions about the application\n\n"
        "What would you like to know more about?"
    ),
    "error": (
        "I apologize, but I'm having trouble processing your request at the moment. "
        "Please try again in a few moments."
    ),
    "default": "I understand you need help. Could you please provide more details about what you're looking for?",
}

# Checked in order; first match wins
FALLBACK_RULES = [
    ("greeting", re.compile(r"\b(hello|hi|hey|greet)\b", re.IGNORECASE)),
    ("help", re.compile(r"\b(help|how|what|guide)\b", re.IGNORECASE)),
    ("error", re.compile(r"\b(error|problem|issue|wrong)\b", re.IGNORECASE)),
]


def keyword_fallback(message: str) -> ConversationResult:
    """Deterministic reply used when the AI backend is unavailable."""
    key = "default"
    for name, pattern in FALLBACK_RULES:
        if pattern.search(message or ""):
            key = name
            break

    return ConversationResult(
        response=FALLBACK_RESPONSES[key],
        confidence=FALLBACK_CONFIDENCE,
        fallback=True,
    )


def user_name(context: dict[str, Any]) -> str:
    user = (context or {}).get("user")
    if user is None:
        return "User"
    if isinstance(user, dict):
        return user.get("name") or "User"
    return getattr(user, "name", None) or "User"


class ConversationTool(Tool):
    """Chat replies from the AI backend, with a keyword fallback."""

    name = "conversation"

    def __init__(self, ai_client: BaseAIClient | None = None):
        self.ai_client = ai_client
        self._chain: FallbackChain[ConversationResult] = FallbackChain(
            "conversation",
            [
                FallbackStrategy("ai", self._ai_reply),
                FallbackStrategy("keyword", lambda message, context: (keyword_fallback(message), True)),
            ],
        )

    def execute(self, message: str, context: dict[str, Any]) -> ConversationResult:
        outcome = self._chain.run(message, context or {})
        return outcome.value if outcome.value is not None else keyword_fallback(message)

    def fallback_response(self, message: str) -> ConversationResult:
        return keyword_fallback(message)

    def _ai_reply(self, message: str, context: dict[str, Any]) -> tuple[ConversationResult | None, bool]:
        if self.ai_client is None:
            return None, False

        response = self.ai_client.get_completion(
            self.build_contextual_message(message, context),
            system_prompt=self.build_system_prompt(context),
        )
        if not response.has_text:
            logger.warning(
                "Conversation AI reply failed",
                extra={
                    "extra_fields": {
                        "error_code": response.error.code if response.error else "empty_response",
                    }
                },
            )
            return None, False

        return ConversationResult(response=response.text.strip(), confidence=AI_CONFIDENCE), True

    def build_contextual_message(self, message: str, context: dict[str, Any]) -> str:
        """Prefix the message with the last few history turns, if any."""
        history = (context or {}).get("message_history") or []
        if not history:
            return message

        lines = ["Previous conversation:"]
        for turn in history[-HISTORY_TURNS:]:
            role = str(turn.get("role", "")).capitalize()
            content = str(turn.get("content", ""))[:HISTORY_CONTENT_LENGTH]
            lines.append(f"{role}: {content}")

        return "\n".join(lines) + "\n\nCurrent message: " + message

    def build_system_prompt(self, context: dict[str, Any]) -> str:
        return f"""You are a helpful AI assistant for a business application.
You are currently assisting {user_name(context)}.

Your capabilities include:
- Answering general questions
- Searching the internet and summarizing web pages
- Providing guidance on using the application
- Offering general business advice

Be friendly, professional, and concise in your responses.
If asked about specific data or actions, guide the user on how to perform those actions.
Always maintain a helpful and supportive tone."""

    def get_description(self) -> str:
        return (
            "General conversation and questions about the application, greetings, "
            "help requests, and general inquiries"
        )
