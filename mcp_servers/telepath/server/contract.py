"""Protocol and tool contract definitions.

Single source of truth for supported MCP protocol versions, server identity,
advertised capabilities and the tool list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .definitions import SETUP_HELP_TOOL, build_tool_definitions

if TYPE_CHECKING:
    from ..service import TelepathService

SERVER_INFO: dict[str, str] = {"name": "telepath", "version": "0.1.0"}

SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2024-11-05"]
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]
DEFAULT_PROTOCOL_VERSION = LATEST_PROTOCOL_VERSION

CAPABILITIES: dict[str, Any] = {
    "logging": {},
    "tools": {"listChanged": True},
}

INSTRUCTIONS = (
    "Drives Telepath WebRTC softphones. List phones first, dial only from idle lines, "
    "and check call status before hanging up."
)


def select_protocol(requested: Any) -> str:
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return DEFAULT_PROTOCOL_VERSION


def initialize_result(protocol: str) -> dict[str, Any]:
    return {
        "protocolVersion": protocol,
        "serverInfo": SERVER_INFO,
        "capabilities": CAPABILITIES,
        "instructions": INSTRUCTIONS,
    }


def tools_list(service: TelepathService) -> list[dict[str, Any]]:
    if not service.config.is_configured:
        return [SETUP_HELP_TOOL]
    numbers = [line["number"] for line in service.cached_lines if line.get("number")]
    return build_tool_definitions(numbers, service.is_running)


__all__ = [
    "CAPABILITIES",
    "DEFAULT_PROTOCOL_VERSION",
    "LATEST_PROTOCOL_VERSION",
    "SERVER_INFO",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "initialize_result",
    "select_protocol",
    "tools_list",
]
