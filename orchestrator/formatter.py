"""
ResultFormatter - turns a ToolResult into the text shown to the user.

Dispatch is by result type; every ResultType has a handler. Anything
unrecognized goes through AI rephrasing (when configured) and then a plain
pass-through. Formatting is pure: the input is never modified.
"""

import json
from collections.abc import Mapping
from typing import Any

from api.base_client import BaseAIClient
from models.tool_result import ResultType, ToolResult
from tools.content_extractor import truncate_snippet
from utils.logger import get_logger

logger = get_logger(__name__)

PREVIEW_LIMIT = 5
SNIPPET_LENGTH = 150
RECORD_FIELDS = ("name", "title", "email", "amount", "description", "status")

PROCESSED_FALLBACK = "I processed your request successfully."

FORMATTER_SYSTEM_PROMPT = """You are a response formatter that converts structured JSON data
into natural, conversational responses.

Guidelines:
- Be friendly and professional
- Explain technical details in simple terms
- If there were errors, explain them clearly
- If multiple tools were used, summarize all results coherently
- Format lists and data in a readable way
- For expenses, use currency formatting and clear descriptions
- Keep responses concise but informative
- Use appropriate emoji sparingly for clarity (✅ for success, 📊 for data, etc.)"""


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, ToolResult):
        return value.to_dict()
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


class ResultFormatter:
    HANDLERS: dict[ResultType, str] = {
        ResultType.CONVERSATION: "_format_conversation",
        ResultType.SEARCH: "_format_search",
        ResultType.WEB_CONTENT: "_format_web_content",
        ResultType.ANSWER: "_format_answer",
        ResultType.EXPENSE: "_format_expense",
        ResultType.DATABASE: "_format_database",
        ResultType.COMBINED: "_format_combined",
        ResultType.ERROR: "_format_error_result",
    }

    def __init__(self, ai_client: BaseAIClient | None = None):
        self.ai_client = ai_client

    def format(self, result: ToolResult | Mapping[str, Any] | Any) -> str:
        """
        Render ``result`` as natural language.

        Accepts a ToolResult or its dict form. Never raises; always returns
        a non-empty string.
        """
        try:
            text = self._format(_as_dict(result))
        except Exception as e:
            logger.error(f"Formatting failed: {e}", exc_info=True)
            return PROCESSED_FALLBACK
        return text if text and text.strip() else PROCESSED_FALLBACK

    def _format(self, data: dict[str, Any]) -> str:
        if data.get("error"):
            return self._format_error(data["error"])

        try:
            result_type = ResultType(data.get("type"))
        except ValueError:
            return self._format_unknown(data)

        handler = getattr(self, self.HANDLERS[result_type])
        return handler(data)

    # ---------- per-type handlers ----------

    def _format_error(self, error: Any) -> str:
        return (
            f"I encountered an issue: {error}. Please try rephrasing your request "
            "or contact support if the issue persists."
        )

    def _format_error_result(self, data: dict[str, Any]) -> str:
        return data.get("response") or data.get("message") or (
            "I apologize, but I encountered an error processing your request. "
            "Please try again or contact support if the issue persists."
        )

    def _format_conversation(self, data: dict[str, Any]) -> str:
        return data.get("response") or "I understand your request. How can I help you further?"

    def _format_web_content(self, data: dict[str, Any]) -> str:
        if data.get("message"):
            return data["message"]
        if data.get("content"):
            return f"Here is the content from {data.get('url') or 'the page'}:\n\n{data['content']}"
        return "I couldn't find any readable content on that page."

    def _format_answer(self, data: dict[str, Any]) -> str:
        answer = data.get("answer") or data.get("message")
        if not answer:
            return "I couldn't find an answer to your question."

        sources = [s for s in data.get("sources") or [] if isinstance(s, Mapping)]
        if not sources:
            return answer

        lines = [answer, "", "Sources:"]
        for num, source in enumerate(sources, start=1):
            title = source.get("title") or source.get("link") or "Untitled"
            link = source.get("link")
            lines.append(f"{num}. {title} - {link}" if link and link != title else f"{num}. {title}")
        return "\n".join(lines)

    def _format_search(self, data: dict[str, Any]) -> str:
        results = [item for item in data.get("results") or [] if isinstance(item, Mapping)]
        count = _to_int(data.get("count"), len(results))

        if count <= 0:
            return data.get("message") or "No results found for your search."

        response = f"Found {count} result{'s' if count != 1 else ''} for your search."
        if results:
            response += "\n\nTop results:"
            for item in results[:PREVIEW_LIMIT]:
                title = item.get("title") or item.get("name") or "Untitled"
                marker = " ⭐" if item.get("featured") else ""
                snippet = str(item.get("snippet") or item.get("description") or "")
                response += f"\n\n📄 {title}{marker}"
                if snippet:
                    response += "\n" + truncate_snippet(snippet, SNIPPET_LENGTH)
        return response

    def _format_expense(self, data: dict[str, Any]) -> str:
        action = data.get("action") or ""

        if action == "added":
            expense = data.get("expense") if isinstance(data.get("expense"), Mapping) else {}
            return (
                f"✅ I've added an expense of ${_to_float(expense.get('amount')):.2f} "
                f"for {expense.get('description') or 'your purchase'} "
                f"in the {expense.get('category') or 'general'} category."
            )

        if action == "list":
            count = _to_int(data.get("count"))
            if count == 0:
                return "You don't have any expenses recorded yet."

            response = (
                "Here's a summary of your expenses:\n\n"
                f"📊 Total: ${_to_float(data.get('total')):.2f}\n"
                f"📝 Number of expenses: {count}"
            )
            expenses = [e for e in data.get("expenses") or [] if isinstance(e, Mapping)]
            if expenses:
                response += "\n\nRecent expenses:"
                for expense in expenses[:PREVIEW_LIMIT]:
                    response += (
                        f"\n• ${_to_float(expense.get('amount')):.2f} - "
                        f"{expense.get('description') or 'N/A'} ({expense.get('date') or 'N/A'})"
                    )
            return response

        if action == "deleted":
            return "✅ The expense has been deleted successfully."

        if action == "updated":
            return "✅ The expense has been updated successfully."

        return data.get("message") or "Expense operation completed."

    def _format_database(self, data: dict[str, Any]) -> str:
        records = data.get("result") if isinstance(data.get("result"), list) else []
        count = _to_int(data.get("records_affected", data.get("count")), len(records))

        if count <= 0:
            return "No records found matching your query."

        response = f"Found {count} record{'s' if count != 1 else ''}."
        if records:
            response += "\n\nHere are the results:"
            for record in records[:PREVIEW_LIMIT]:
                response += "\n• " + self.format_record(record)
        return response

    def format_record(self, record: Any) -> str:
        if not isinstance(record, Mapping):
            return _dump(record)
        parts = [str(record[key]) for key in RECORD_FIELDS if record.get(key) is not None]
        return " - ".join(parts) if parts else _dump(record)

    def _format_combined(self, data: dict[str, Any]) -> str:
        if data.get("summary"):
            return data["summary"]

        responses = []
        results = data.get("results")
        if isinstance(results, Mapping):
            for sub_result in results.values():
                if isinstance(sub_result, Mapping):
                    formatted = self._format(dict(sub_result))
                    if formatted:
                        responses.append(formatted)

        return "\n\n".join(responses) or "I've processed your request using multiple tools."

    # ---------- unknown types ----------

    def _format_unknown(self, data: dict[str, Any]) -> str:
        if self.ai_client is not None:
            rephrased = self._format_with_ai(data)
            if rephrased:
                return rephrased
        return self._format_simple(data)

    def _format_with_ai(self, data: dict[str, Any]) -> str | None:
        prompt = (
            "Convert this JSON response to natural, friendly language:\n"
            f"{json.dumps(data, indent=2, ensure_ascii=False, default=str)}\n"
            "Make it conversational and helpful. If it's expense data, format it nicely."
        )
        response = self.ai_client.get_completion(prompt, system_prompt=FORMATTER_SYSTEM_PROMPT)
        if response.has_text:
            return response.text.strip()

        logger.warning(
            "AI formatting failed, using fallback",
            extra={"extra_fields": {"error_code": response.error.code if response.error else None}},
        )
        return None

    def _format_simple(self, data: dict[str, Any]) -> str:
        if data.get("response"):
            return str(data["response"])
        if data.get("message"):
            return str(data["message"])
        return "I've processed your request. " + _dump(data)
