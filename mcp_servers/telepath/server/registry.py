"""
Tool registry with dispatch table for the MCP server.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .types import ToolResult

if TYPE_CHECKING:
    from ..service import TelepathService

logger = logging.getLogger("mcp.telepath.registry")

HandlerFunc = Callable[["TelepathService", dict[str, Any]], ToolResult]


class ToolRegistry:
    """Registry for tool handlers with a credentials gate."""

    def __init__(self) -> None:
        # name -> (handler, requires_credentials)
        self._handlers: dict[str, tuple[HandlerFunc, bool]] = {}

    def register_many(self, handlers: dict[str, tuple[HandlerFunc, bool]]) -> None:
        self._handlers.update(handlers)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def dispatch(self, name: str, service: TelepathService, arguments: dict[str, Any]) -> ToolResult:
        """
        Dispatch a tool call to its handler.

        Raises:
            KeyError: If tool not found
            ConfigError: If the tool needs credentials and none are configured
        """
        handler_info = self._handlers.get(name)
        if handler_info is None:
            raise KeyError(f"Unknown tool: {name}")

        handler, requires_credentials = handler_info
        if requires_credentials:
            service.config.require_credentials()
        return handler(service, arguments)


def create_default_registry() -> ToolRegistry:
    from .handlers import TELEPATH_HANDLERS

    registry = ToolRegistry()
    registry.register_many(TELEPATH_HANDLERS)
    return registry


__all__ = ["HandlerFunc", "ToolRegistry", "create_default_registry"]
