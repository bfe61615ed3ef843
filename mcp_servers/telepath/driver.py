"""
Interactive Session Driver.

Owns one Chrome process and one tab pointed at the Telepath console. The rest
of the core only sees ``evaluate`` and ``close``.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import Any

from .browser_session import BrowserSession
from .config import TelepathConfig
from .errors import BrowserLaunchError
from .http_client import HttpClientError
from .launcher import BrowserLauncher
from .page_scripts import LOGIN_JS
from .session_cdp import CdpConnection

logger = logging.getLogger("mcp.telepath.driver")


class InteractiveSessionDriver:
    def __init__(self, config: TelepathConfig, launcher: BrowserLauncher | None = None) -> None:
        self.config = config
        self.launcher = launcher or BrowserLauncher(config)
        self.session: BrowserSession | None = None

    @property
    def is_open(self) -> bool:
        return self.session is not None

    def start(self, headless: bool = True) -> dict[str, Any]:
        """Launch Chrome, open the console and sign in inside the page.

        Returns the in-page signin outcome ``{success, userId, token, error}``.
        """
        username, password = self.config.require_credentials()
        launch = self.launcher.ensure_running(headless=headless, timeout=self.config.timeouts.page_load)
        if not launch.started and not self.launcher.cdp_ready():
            raise BrowserLaunchError(
                f"Chrome did not start: {launch.message}",
                suggestion="Set TELEPATH_BROWSER_BINARY to a Chrome/Chromium executable",
                details={"command": launch.command},
            )

        try:
            self.session = self._open_tab()
            self.session.conn.set_event_sink(self._on_event)

            logger.info("navigating to %s", self.config.base_url)
            if not self.session.navigate(self.config.base_url, timeout=self.config.timeouts.page_load):
                logger.warning("network did not go idle within %ss; continuing", self.config.timeouts.page_load)

            login = self.evaluate(LOGIN_JS, username, password, self.config.base_url) or {}
            if login.get("success"):
                logger.info("page signin ok user_id=%s", login.get("userId"))
                self.session.reload(timeout=self.config.timeouts.page_load)
            else:
                logger.warning("page signin failed: %s", login.get("error"))
            return login
        except Exception:
            self.close()
            raise

    def _open_tab(self) -> BrowserSession:
        browser = CdpConnection(self.launcher.browser_ws_url(), timeout=5.0)
        try:
            tab_id = browser.send("Target.createTarget", {"url": "about:blank"}).get("targetId")
        finally:
            browser.close()
        if not tab_id:
            raise HttpClientError("Failed to create browser tab")
        ws_url = self.launcher.tab_ws_url(tab_id)
        if not ws_url:
            raise HttpClientError("Failed to get tab WebSocket URL")
        session = BrowserSession(CdpConnection(ws_url, timeout=self.config.timeouts.page_load), tab_id)
        session.enable_domains(page=True, runtime=True, lifecycle=True)
        return session

    @staticmethod
    def _on_event(event: dict[str, Any]) -> None:
        if event.get("method") != "Runtime.consoleAPICalled":
            return
        params = event.get("params") or {}
        if params.get("type") != "error":
            return
        parts = [str(arg.get("value", arg.get("description", ""))) for arg in params.get("args") or []]
        logger.warning("page console error: %s", " ".join(p for p in parts if p))

    def evaluate(self, script: str, *args: Any) -> Any:
        if self.session is None:
            raise HttpClientError("Browser session is not open")
        return self.session.call_function(script, *args)

    def close(self) -> None:
        session, self.session = self.session, None
        if session is not None:
            with suppress(Exception):
                session.close()
        self.launcher.stop()


__all__ = ["InteractiveSessionDriver"]
