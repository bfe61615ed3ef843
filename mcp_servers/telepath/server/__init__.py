"""MCP tool layer for the Telepath softphone server."""

from __future__ import annotations

from .registry import ToolRegistry, create_default_registry

__all__ = ["ToolRegistry", "create_default_registry"]
