from __future__ import annotations

import json
import time
from typing import Any

from .http_client import HttpClientError
from .session_cdp import CdpConnection


class BrowserSession:
    """
    High-level browser session for a specific tab.

    Wraps CdpConnection with the handful of page operations the softphone needs.
    """

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._page_enabled = False
        self._runtime_enabled = False
        self._lifecycle_enabled = False

    def close(self):
        """Close the session connection."""
        self.conn.close()

    def enable_domains(self, *, page: bool = False, runtime: bool = False, lifecycle: bool = False) -> None:
        """Idempotently enable the CDP domains this session relies on."""
        if page and not self._page_enabled:
            self.conn.send("Page.enable", {})
            self._page_enabled = True
        if runtime and not self._runtime_enabled:
            self.conn.send("Runtime.enable", {})
            self._runtime_enabled = True
        if lifecycle and not self._lifecycle_enabled:
            self.enable_domains(page=True)
            self.conn.send("Page.setLifecycleEventsEnabled", {"enabled": True})
            self._lifecycle_enabled = True

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, url: str, *, timeout: float = 30.0) -> bool:
        """Navigate to URL and wait until the network goes quiet."""
        self.enable_domains(lifecycle=True)
        self.conn.send("Page.navigate", {"url": url})
        self.tab_url = url
        return self.wait_network_idle(timeout)

    def reload(self, *, timeout: float = 30.0) -> bool:
        self.enable_domains(lifecycle=True)
        self.conn.send("Page.reload", {"ignoreCache": False})
        return self.wait_network_idle(timeout)

    def wait_network_idle(self, timeout: float = 30.0, *, event_name: str = "networkAlmostIdle") -> bool:
        """Wait for a ``Page.lifecycleEvent`` with the given name (at most two requests in flight)."""
        deadline = time.time() + timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                return False
            params = self.conn.wait_for_event("Page.lifecycleEvent", timeout=remaining)
            if params is None:
                return False
            if params.get("name") == event_name:
                return True

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    def eval_js(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate JavaScript and return its value (awaiting promises)."""
        self.enable_domains(runtime=True)

        old_timeout: float | None = None
        if timeout is not None:
            old_timeout = float(self.conn.timeout)
            self.conn.timeout = float(timeout)
        try:
            result = self.conn.send(
                "Runtime.evaluate",
                {"expression": expression, "returnByValue": True, "awaitPromise": True},
            )
        finally:
            if old_timeout is not None:
                self.conn.timeout = old_timeout

        exc_details = result.get("exceptionDetails")
        if isinstance(exc_details, dict):
            exc = exc_details.get("exception") or {}
            text = exc.get("description") or exc_details.get("text") or "script error"
            raise HttpClientError(f"Page script failed: {text}")

        if "result" not in result:
            return None
        value = result["result"]
        # CDP reports undefined/null without a "value" field; normalise both to None.
        if isinstance(value, dict) and value.get("type") == "undefined":
            return None
        if isinstance(value, dict) and value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value", value) if isinstance(value, dict) else value

    def call_function(self, source: str, *args: Any, timeout: float | None = None) -> Any:
        """Apply a JS function source to JSON-serialised arguments."""
        rendered = ", ".join(json.dumps(arg) for arg in args)
        return self.eval_js(f"({source})({rendered})", timeout=timeout)


__all__ = ["BrowserSession"]
