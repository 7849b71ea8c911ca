"""
Router - picks the tool(s) for a message, runs them, normalizes the outcome.

Key guarantees:
- Only registered tools are selected; nothing matched means ``conversation``
- A tool exception never escapes: the conversation keyword reply replaces it
- Several tools produce one ``combined`` result keyed by tool name
"""

import asyncio
from collections.abc import Callable
from typing import Any

from api.base_client import BaseAIClient
from config.config import ToolSettings
from models.tool_result import CombinedResult, ErrorResult, ToolResult
from orchestrator.fallback_manager import FallbackChain, FallbackStrategy
from orchestrator.intent import AIIntentClassifier, KeywordIntentClassifier, has_obvious_intent
from orchestrator.routing_types import (
    IntentDecision,
    IntentSource,
    RouteOutcome,
    ToolName,
    ToolRun,
)
from tools.conversation import ConversationTool, keyword_fallback
from tools.registry import ToolRegistry
from utils.async_utils import run_sync
from utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[str], Any]

APOLOGY = (
    "I apologize, but I encountered an error processing your request. "
    "Please try again or contact support if the issue persists."
)


class Router:
    def __init__(
        self,
        registry: ToolRegistry,
        settings: ToolSettings | None = None,
        ai_client: BaseAIClient | None = None,
    ):
        self.registry = registry
        self.settings = settings or ToolSettings()
        self.keyword_classifier = KeywordIntentClassifier(self.settings.combined_mode)
        self.ai_classifier: AIIntentClassifier | None = None
        if ai_client is not None and self.settings.use_ai_intent:
            self.ai_classifier = AIIntentClassifier(
                ai_client,
                confidence_threshold=self.settings.intent_confidence_threshold,
                log_decisions=self.settings.intent_log_decisions,
            )

        self._intent_chain: FallbackChain[IntentDecision] = FallbackChain(
            "intent",
            [
                FallbackStrategy("ai", self._classify_with_ai),
                FallbackStrategy("keyword", self._classify_with_keywords),
            ],
        )

    # ---------- intent -> tools ----------

    def _tool_for_intent(self, intent: str) -> str | None:
        if intent == ToolName.SEARCH.value:
            if self.settings.use_ai_answer and ToolName.SEARCH_AND_ANSWER.value in self.registry:
                return ToolName.SEARCH_AND_ANSWER.value
            return ToolName.SEARCH.value if ToolName.SEARCH.value in self.registry else None
        return intent if intent in self.registry else None

    def _available_intents(self) -> dict[str, str]:
        """Intent name -> description of the tool that serves it."""
        intents = {}
        for intent in ToolName:
            if intent == ToolName.SEARCH_AND_ANSWER:
                continue
            tool_name = self._tool_for_intent(intent.value)
            if tool_name is not None:
                intents[intent.value] = self.registry.get(tool_name).get_description()
        return intents

    def _classify_with_ai(self, message: str, available: dict[str, str]):
        if self.ai_classifier is None:
            return None, False
        if self.settings.intent_hybrid_mode and has_obvious_intent(message):
            return None, False
        decision = self.ai_classifier.classify(message, available)
        return decision, decision is not None

    def _classify_with_keywords(self, message: str, available: dict[str, str]):
        return self.keyword_classifier.classify(message, available.keys()), True

    def select_tools(self, message: str, context: dict[str, Any] | None = None) -> IntentDecision:
        """
        Decide which tools handle ``message``.

        An explicit ``url`` in context selects ``web_content`` outright.
        The returned decision lists registered tool names, never empty.
        """
        context = context or {}

        if context.get("url") and ToolName.WEB_CONTENT.value in self.registry:
            return IntentDecision(
                tools=[ToolName.WEB_CONTENT.value],
                source=IntentSource.CONTEXT_URL,
                reasoning="Explicit URL in context",
            )

        available = self._available_intents()
        outcome = self._intent_chain.run(message, available)
        decision = outcome.value or IntentDecision(
            tools=[ToolName.CONVERSATION.value], source=IntentSource.DEFAULT
        )

        tools = []
        for intent in decision.tools:
            tool_name = self._tool_for_intent(intent)
            if tool_name is not None and tool_name not in tools:
                tools.append(tool_name)
        if not tools:
            tools = [ToolName.CONVERSATION.value]

        return IntentDecision(
            tools=tools,
            source=decision.source,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
        )

    # ---------- execution ----------

    async def aroute(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        progress: ProgressCallback | None = None,
    ) -> RouteOutcome:
        context = context or {}

        self._emit(progress, "Analyzing intent...")
        try:
            # AI classification blocks on the backend call
            decision = await asyncio.to_thread(self.select_tools, message, context)
        except Exception as e:
            logger.error(f"Intent selection failed: {e}", exc_info=True)
            decision = IntentDecision(
                tools=[ToolName.CONVERSATION.value],
                source=IntentSource.DEFAULT,
                reasoning=f"Intent selection failed: {e}",
            )

        logger.info(
            f"Routing to {', '.join(decision.tools)}",
            extra={
                "extra_fields": {
                    "tools": decision.tools,
                    "intent_source": decision.source.value,
                    "confidence": decision.confidence,
                }
            },
        )
        self._emit(progress, f"Using tools: {', '.join(decision.tools)}")

        runs = []
        for tool_name in decision.tools:
            self._emit(progress, f"Executing {tool_name.replace('_', ' ').capitalize()} tool...")
            runs.append(await self._run_tool(tool_name, message, context))

        self._emit(progress, "Processing results...")
        return RouteOutcome(decision=decision, result=self.combine(runs), runs=runs)

    def route(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        progress: ProgressCallback | None = None,
    ) -> RouteOutcome:
        return run_sync(self.aroute(message, context, progress))

    async def _run_tool(self, tool_name: str, message: str, context: dict[str, Any]) -> ToolRun:
        tool = self.registry.get(tool_name)
        try:
            if tool is None:
                raise LookupError(f"Tool '{tool_name}' is not registered")
            result = await tool.aexecute(message, context)
            if not isinstance(result, ToolResult):
                raise TypeError(f"Tool '{tool_name}' returned {type(result).__name__}")
            if result.failed:
                logger.warning(
                    f"Tool {tool_name} reported an error: {result.error}",
                    extra={"extra_fields": {"tool": tool_name}},
                )
            return ToolRun(tool=tool_name, result=result)
        except Exception as e:
            logger.error(
                f"Error executing tool {tool_name}: {e}",
                exc_info=True,
                extra={"extra_fields": {"tool": tool_name, "error_type": type(e).__name__}},
            )
            return ToolRun(
                tool=tool_name,
                result=self.fallback_result(message),
                fallback=True,
                error=f"Failed to execute {tool_name} tool: {e}",
            )

    def fallback_result(self, message: str) -> ToolResult:
        """Reply used in place of a failed tool."""
        conversation = self.registry.get(ToolName.CONVERSATION.value)
        if conversation is None:
            return ErrorResult(response=APOLOGY)
        if isinstance(conversation, ConversationTool):
            return conversation.fallback_response(message)
        return keyword_fallback(message)

    @staticmethod
    def combine(runs: list[ToolRun]) -> ToolResult:
        if not runs:
            return ErrorResult(response=APOLOGY)
        if len(runs) == 1:
            return runs[0].result

        results = {run.tool: run.result for run in runs}
        summary_parts = []
        for result in results.values():
            text = result.message or getattr(result, "response", "")
            if text:
                summary_parts.append(text)

        return CombinedResult(results=results, summary=" ".join(summary_parts))

    @staticmethod
    def _emit(progress: ProgressCallback | None, message: str) -> None:
        if progress is None:
            return
        try:
            progress(message)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
