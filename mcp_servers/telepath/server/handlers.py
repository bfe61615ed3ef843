"""Tool handlers: thin adapters from MCP arguments to ``TelepathService``."""

from __future__ import annotations

from typing import Any

from ..errors import ConfigError
from ..models import LineSpec
from ..service import TelepathService
from .definitions import SETUP_HELP_TEXT
from .types import ToolResult


def _required(args: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = args.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    raise ConfigError(f"Missing required argument: {keys[0]}", details={"argument": keys[0]})


def handle_setup_help(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    return ToolResult.text(SETUP_HELP_TEXT)


def handle_list_phones(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(service.list_lines())


def handle_add_phone(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(service.add_line(LineSpec.from_arguments(args)))


def handle_delete_phone(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(service.delete_line(_required(args, "phoneId", "phone_id", "id")))


def handle_make_call(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    from_number = _required(args, "fromNumber", "from_number", "from")
    to_number = _required(args, "toNumber", "to_number", "to")
    return ToolResult.json(service.make_call(from_number, to_number))


def handle_hangup(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(service.hangup())


def handle_call_status(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    lines = service.get_statuses()
    call = service.get_call_status()
    return ToolResult.json({**lines, "call": call})


def handle_list_calls(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    line_id = _required(args, "phoneId", "phone_id", "id")
    return ToolResult.json({"phoneId": line_id, "calls": service.list_calls(line_id)})


def handle_sip_info(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    line_id = _required(args, "phoneId", "phone_id", "id")
    return ToolResult.json({"phoneId": line_id, "sipInfo": service.line_sip_info(line_id)})


def handle_start_browser(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    headless = args.get("headless")
    return ToolResult.json(service.start_session(headless if isinstance(headless, bool) else None))


def handle_stop_browser(service: TelepathService, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(service.stop_session())


# name -> (handler, requires_credentials)
TELEPATH_HANDLERS: dict[str, tuple[Any, bool]] = {
    "telepath_setup_help": (handle_setup_help, False),
    "telepath_list_phones": (handle_list_phones, True),
    "telepath_add_phone": (handle_add_phone, True),
    "telepath_delete_phone": (handle_delete_phone, True),
    "telepath_make_call": (handle_make_call, True),
    "telepath_hangup": (handle_hangup, True),
    "telepath_call_status": (handle_call_status, True),
    "telepath_list_calls": (handle_list_calls, True),
    "telepath_sip_info": (handle_sip_info, True),
    "telepath_start_browser": (handle_start_browser, True),
    "telepath_stop_browser": (handle_stop_browser, True),
}
