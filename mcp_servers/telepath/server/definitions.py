"""Tool schema definitions.

Descriptions of the call tools embed the cached phone list and the browser
state, so the list is rebuilt on every ``tools/list``.
"""

from __future__ import annotations

from typing import Any

_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}

SETUP_HELP_TOOL: dict[str, Any] = {
    "name": "telepath_setup_help",
    "description": """Telepath is not configured. Set these environment variables:
- TELEPATH_USERNAME: your Telepath username
- TELEPATH_PASSWORD: your Telepath password
Add them to the "env" block of this MCP server's configuration, then restart the client.""",
    "inputSchema": _EMPTY_SCHEMA,
}

SETUP_HELP_TEXT = """Telepath MCP needs credentials.

Add them to your MCP client configuration:

{
  "mcpServers": {
    "telepath": {
      "command": "telepath-mcp",
      "env": {
        "TELEPATH_USERNAME": "your-username",
        "TELEPATH_PASSWORD": "your-password"
      }
    }
  }
}

Optional: TELEPATH_ENV_NAME (default XMR-UP-XMN), TELEPATH_URL, TELEPATH_BOARD_ID,
TELEPATH_USER_ID, TELEPATH_BROWSER_BINARY, TELEPATH_HEADLESS.
Restart the client after saving."""


def build_tool_definitions(phone_numbers: list[str], browser_running: bool) -> list[dict[str, Any]]:
    phones = f"available: {', '.join(phone_numbers)}" if phone_numbers else "phone list is fetched on first use"
    browser = "browser running" if browser_running else "browser stopped"
    return [
        {
            "name": "telepath_make_call",
            "description": f"""Place a call from one of the board's lines ({phones}).
BEFORE CALLING:
1. Call telepath_list_phones; if there are no lines, ask the user whether to add one
2. Make sure fromNumber has status=idle
3. Lines with status in_call/ringing/registering cannot dial
Starts the browser automatically if needed.""",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "fromNumber": {"type": "string", "description": "Calling line (must have status=idle)"},
                    "toNumber": {"type": "string", "description": "Number to dial, e.g. +12128881843"},
                },
                "required": ["fromNumber", "toNumber"],
            },
        },
        {
            "name": "telepath_hangup",
            "description": "Hang up the current call. Fails when the browser is not running.",
            "inputSchema": _EMPTY_SCHEMA,
        },
        {
            "name": "telepath_list_phones",
            "description": f"""List the board's phone lines with live status ({browser}).
Call this before dialing:
- check that a usable line exists (ask the user to add one if not)
- pick a line with status=idle""",
            "inputSchema": _EMPTY_SCHEMA,
        },
        {
            "name": "telepath_call_status",
            "description": "Live state of every line (idle/in_call/ringing/registering) plus the board's overall call state.",
            "inputSchema": _EMPTY_SCHEMA,
        },
        {
            "name": "telepath_list_calls",
            "description": "Call history of one line.",
            "inputSchema": {
                "type": "object",
                "properties": {"phoneId": {"type": "string", "description": "Phone ID from telepath_list_phones"}},
                "required": ["phoneId"],
            },
        },
        {
            "name": "telepath_add_phone",
            "description": """Add a PSTN line to the board. A running browser is restarted so the line can register.
A board registers at most 3 lines.""",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "phoneNumber": {
                        "type": "string",
                        "description": "Phone number (optional, defaults to a random +1209888xxxx)",
                    },
                    "label": {"type": "string", "description": 'Label (optional, default "New Phone")'},
                    "envName": {
                        "type": "string",
                        "description": 'Environment (optional, default "XMR-UP-XMN"; other environments may not register)',
                    },
                    "trunk": {"type": "string", "description": 'Trunk type (optional, default "rc")'},
                },
                "required": [],
            },
        },
        {
            "name": "telepath_delete_phone",
            "description": "Delete a phone line from the board.",
            "inputSchema": {
                "type": "object",
                "properties": {"phoneId": {"type": "string", "description": "Phone ID (required)"}},
                "required": ["phoneId"],
            },
        },
        {
            "name": "telepath_sip_info",
            "description": "SIP credentials of a line linked to a RingCentral device (null when it has none).",
            "inputSchema": {
                "type": "object",
                "properties": {"phoneId": {"type": "string", "description": "Phone ID from telepath_list_phones"}},
                "required": ["phoneId"],
            },
        },
        {
            "name": "telepath_start_browser",
            "description": "Start the browser, sign in and open the board. Usually unnecessary: make_call starts it.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "headless": {"type": "boolean", "description": "Run Chrome headless (default from TELEPATH_HEADLESS)"}
                },
            },
        },
        {
            "name": "telepath_stop_browser",
            "description": "Stop the browser session. Lines unregister until it starts again.",
            "inputSchema": _EMPTY_SCHEMA,
        },
    ]


__all__ = ["SETUP_HELP_TEXT", "SETUP_HELP_TOOL", "build_tool_definitions"]
