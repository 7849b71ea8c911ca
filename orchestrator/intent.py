"""
Intent classification for the router.

Two classifiers:
- KeywordIntentClassifier: ordered regex rules, deterministic, no I/O
- AIIntentClassifier: asks the AI backend for a JSON tool selection

Both return intent names (``conversation``, ``search``, ``web_content``,
``expense``, ``database``); the router maps intents onto registered tools.
"""

import json
import re
from collections.abc import Iterable
from typing import Any

from api.base_client import BaseAIClient
from config.config import CombinedMode
from orchestrator.routing_types import IntentDecision, IntentSource, ToolName
from tools.web_content import extract_url, strip_urls
from utils.logger import get_logger

logger = get_logger(__name__)

INTENT_RULES: list[tuple[str, re.Pattern]] = [
    (
        ToolName.SEARCH.value,
        re.compile(r"\b(search|find|look\s+for|look\s+up|latest|news|serch|finde)\b", re.IGNORECASE),
    ),
    (
        ToolName.EXPENSE.value,
        re.compile(
            r"\b(expenses?|spend|spent|cost|pay|paid|bills?|receipts?|dollars?)\b|[$€£]\s?\d",
            re.IGNORECASE,
        ),
    ),
    (
        ToolName.DATABASE.value,
        re.compile(
            r"\b(show\s+(me\s+)?all|list\s+(all|my)|display\s+|users?|data|records?|get\s+(all|my))\b",
            re.IGNORECASE,
        ),
    ),
    (
        ToolName.CONVERSATION.value,
        re.compile(r"\b(email|send|report|notify|message)\b", re.IGNORECASE),
    ),
]

# Messages clear enough that hybrid mode skips the AI call
OBVIOUS_PATTERNS = [
    re.compile(r"^\$\d+"),
    re.compile(r"^add expense", re.IGNORECASE),
    re.compile(r"^create expense", re.IGNORECASE),
    re.compile(r"\b(search|find|look up|latest news|search for|look for|serch|finde)\b", re.IGNORECASE),
    re.compile(r"^show (me )?all", re.IGNORECASE),
    re.compile(r"^list (all|my)", re.IGNORECASE),
]

_QUESTION_START_RE = re.compile(
    r"^(what|who|whom|whose|why|how|when|where|which|can|could|would|does|do|did|is|are|should)\b",
    re.IGNORECASE,
)

INTENT_EXAMPLES: dict[str, list[str]] = {
    ToolName.EXPENSE.value: [
        "Add expense $15 for coffee",
        "I spent $50 on groceries",
        "Show me my expenses",
    ],
    ToolName.DATABASE.value: [
        "Show me all users",
        "Get all records",
        "List all settings",
    ],
    ToolName.SEARCH.value: [
        "Search for Python docs",
        "Find information about AI",
        "latest news about technology",
    ],
    ToolName.WEB_CONTENT.value: [
        "Fetch https://example.com",
        "Summarize https://example.com/article",
    ],
    ToolName.CONVERSATION.value: [
        "Hello!",
        "What can you help with?",
        "How do I get started?",
    ],
}


def is_question(message: str) -> bool:
    # a "?" inside a URL query string does not make a question
    text = strip_urls(message).strip()
    return "?" in text or bool(_QUESTION_START_RE.match(text))


def has_obvious_intent(message: str) -> bool:
    """True when a keyword rule is reliable enough to skip AI classification."""
    text = (message or "").strip()
    if extract_url(text):
        return True
    return any(pattern.search(text) for pattern in OBVIOUS_PATTERNS)


class KeywordIntentClassifier:
    """
    Ordered keyword rules.

    A URL in the message selects ``web_content``; otherwise the first rule
    whose intent is available wins, and nothing matching means
    ``conversation``. The combined policy decides when several intents run:

    - ``off``: never
    - ``url_question``: a URL together with a question adds ``search``
    - ``all_matches``: every matching rule contributes its intent
    """

    def __init__(self, combined_mode: CombinedMode = CombinedMode.URL_QUESTION):
        self.combined_mode = combined_mode

    def matches(self, message: str) -> list[str]:
        """All intents whose rule matches, in rule order."""
        found = []
        if extract_url(message):
            found.append(ToolName.WEB_CONTENT.value)
        for intent, pattern in INTENT_RULES:
            if pattern.search(message):
                found.append(intent)
        return found

    def classify(self, message: str, available: Iterable[str]) -> IntentDecision:
        available = set(available)
        matched = [intent for intent in self.matches(message) if intent in available]
        has_url = ToolName.WEB_CONTENT.value in matched

        if not matched:
            return IntentDecision(
                tools=[ToolName.CONVERSATION.value],
                source=IntentSource.DEFAULT,
                reasoning="No keyword rule matched",
            )

        if self.combined_mode == CombinedMode.ALL_MATCHES:
            return IntentDecision(
                tools=matched,
                source=IntentSource.KEYWORD,
                reasoning=f"Matched rules: {', '.join(matched)}",
            )

        if (
            self.combined_mode == CombinedMode.URL_QUESTION
            and has_url
            and is_question(message)
            and ToolName.SEARCH.value in available
        ):
            return IntentDecision(
                tools=[ToolName.WEB_CONTENT.value, ToolName.SEARCH.value],
                source=IntentSource.KEYWORD,
                reasoning="URL together with a question",
            )

        return IntentDecision(
            tools=[matched[0]],
            source=IntentSource.KEYWORD,
            reasoning=f"Matched rule: {matched[0]}",
        )


class AIIntentClassifier:
    """
    Intent classification by the AI backend.

    ``classify`` returns None whenever the answer cannot be used (backend
    error, unparseable JSON, wrong shape) so the caller can fall back to
    keyword rules.
    """

    SYSTEM_PROMPT = (
        "You are an intelligent router that analyzes user messages and determines "
        "which tools should be used to handle the request. "
        "Always answer with a single JSON object."
    )

    def __init__(
        self,
        ai_client: BaseAIClient,
        confidence_threshold: float = 0.5,
        log_decisions: bool = False,
    ):
        self.ai_client = ai_client
        self.confidence_threshold = confidence_threshold
        self.log_decisions = log_decisions

    def build_prompt(self, message: str, tool_descriptions: dict[str, str]) -> str:
        tools = {
            name: {
                "name": name,
                "description": description,
                "examples": INTENT_EXAMPLES.get(name, []),
            }
            for name, description in tool_descriptions.items()
        }
        tools_json = json.dumps(tools, indent=2, ensure_ascii=False)

        return f"""You are an intent classifier for a chat system that HAS REAL INTERNET SEARCH and web page fetching.

Available Tools:
{tools_json}

User Message: "{message}"

Respond with ONLY a JSON object, no markdown formatting:
{{
    "tools": ["tool1", "tool2"],
    "reasoning": "Why these tools were selected",
    "confidence": 0.95
}}

Guidelines:
1. For expense-related actions (adding, listing, tracking spending), use "expense"
2. For database queries (show users, display records, list settings), use "database"
3. For ANY search request (search, look up, find, latest news), use "search", never "conversation"
4. For a message containing a URL to read, use "web_content"
5. For general conversation, greetings, or questions about the system itself, use "conversation"
6. You can select multiple tools if the request requires it
7. Confidence should be between 0 and 1

Now analyze the user's message and respond with ONLY the JSON object."""

    @staticmethod
    def extract_json(text: str) -> str:
        """Pull the JSON object out of a reply, with or without markdown fences."""
        fenced = re.search(r"```(?:json)?\s*(\{.*\})\s*```", text, re.DOTALL)
        if fenced:
            return fenced.group(1)
        bare = re.search(r"\{.*\}", text, re.DOTALL)
        if bare:
            return bare.group(0)
        return text

    def classify(self, message: str, tool_descriptions: dict[str, str]) -> IntentDecision | None:
        response = self.ai_client.get_completion(
            self.build_prompt(message, tool_descriptions),
            system_prompt=self.SYSTEM_PROMPT,
            temperature=0.0,
        )
        if not response.has_text:
            logger.warning(
                "AI intent classification unavailable",
                extra={
                    "extra_fields": {"error_code": response.error.code if response.error else None}
                },
            )
            return None

        try:
            selection = json.loads(self.extract_json(response.text))
        except ValueError as e:
            logger.warning(f"Invalid JSON from AI intent classifier: {e}")
            return None

        return self.validate(message, selection, tool_descriptions.keys())

    def validate(
        self, message: str, selection: Any, available: Iterable[str]
    ) -> IntentDecision | None:
        if not isinstance(selection, dict) or not isinstance(selection.get("tools"), list):
            logger.warning("Invalid tool selection format from AI intent classifier")
            return None

        available = set(available)
        reasoning = str(selection.get("reasoning") or "")
        try:
            confidence = float(selection.get("confidence", 1.0))
        except (TypeError, ValueError):
            confidence = 0.0

        if confidence < self.confidence_threshold:
            logger.warning(
                "AI intent confidence below threshold",
                extra={
                    "extra_fields": {
                        "confidence": confidence,
                        "threshold": self.confidence_threshold,
                        "tools": selection["tools"],
                    }
                },
            )
            tools = [ToolName.CONVERSATION.value]
        else:
            tools = []
            for name in selection["tools"]:
                if name in available and name not in tools:
                    tools.append(name)
                else:
                    logger.warning(f"AI selected unavailable tool: {name}")
            if not tools:
                tools = [ToolName.CONVERSATION.value]

        if self.log_decisions:
            logger.info(
                "AI intent classification",
                extra={
                    "extra_fields": {
                        "user_message": message,
                        "selected_tools": selection["tools"],
                        "reasoning": reasoning,
                        "confidence": confidence,
                        "validated_tools": tools,
                    }
                },
            )

        return IntentDecision(
            tools=tools, source=IntentSource.AI, confidence=confidence, reasoning=reasoning
        )
