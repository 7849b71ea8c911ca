"""
Tool contract shared by every capability the router can dispatch to.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from models.tool_result import ToolResult


class Tool(ABC):
    """
    One capability (search, fetch, converse, ...).

    ``execute`` must not raise for expected failures: upstream and input
    errors are reported through ``ToolResult.error``. The router still
    guards against unexpected exceptions.
    """

    name: str = ""

    @abstractmethod
    def execute(self, message: str, context: dict[str, Any]) -> ToolResult:
        """
        Run the tool.

        Args:
            message: The user's message
            context: Request context (user, message_history, url)

        Returns:
            ToolResult of this tool's result type
        """

    async def aexecute(self, message: str, context: dict[str, Any]) -> ToolResult:
        """Async entry point; tools with native async I/O override this."""
        return await asyncio.to_thread(self.execute, message, context)

    @abstractmethod
    def get_description(self) -> str:
        """A brief description of the tool's purpose."""

    def get_schema(self) -> dict[str, Any] | None:
        """Function-calling schema ``{name, description, parameters}``, if any."""
        return None
