from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import suppress
from typing import Any, Protocol

from .errors import AuthError, SessionNotRunning
from .models import SessionState

logger = logging.getLogger("mcp.telepath.lifecycle")


class PageDriver(Protocol):
    def start(self, headless: bool = True) -> dict[str, Any]: ...

    def evaluate(self, script: str, *args: Any) -> Any: ...

    def close(self) -> None: ...


class SessionLifecycle:
    """
    The single live browser session and the flags tied to it.

    ``board_entered`` records that the board was opened and the one-time
    registration wait ran; it is cleared whenever the session stops.
    """

    def __init__(self, driver_factory: Callable[[], PageDriver]) -> None:
        self._driver_factory = driver_factory
        self._driver: PageDriver | None = None
        self._stop_listeners: list[Callable[[], None]] = []
        self.state = SessionState.STOPPED
        self.board_entered = False

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    def add_stop_listener(self, listener: Callable[[], None]) -> None:
        self._stop_listeners.append(listener)

    def page(self) -> PageDriver:
        if self._driver is None or not self.is_running:
            raise SessionNotRunning(
                "Browser session is not running",
                suggestion="Start it with telepath_start_browser or place a call (which starts it)",
            )
        return self._driver

    def start(self, headless: bool = True) -> dict[str, Any] | None:
        """Start the session; returns the page signin outcome, or None if already running."""
        if self.state is not SessionState.STOPPED:
            return None
        self.state = SessionState.STARTING
        driver = self._driver_factory()
        try:
            login = driver.start(headless=headless) or {}
            if not login.get("success"):
                raise AuthError(f"Signin inside the browser failed: {login.get('error')}", status=login.get("status"))
        except Exception:
            with suppress(Exception):
                driver.close()
            self.state = SessionState.STOPPED
            raise
        self._driver = driver
        self.board_entered = False
        self.state = SessionState.RUNNING
        logger.info("browser session running")
        return login

    def stop(self) -> bool:
        """Tear the session down; returns False if nothing was running."""
        driver, self._driver = self._driver, None
        was_running = self.state is not SessionState.STOPPED or driver is not None
        self.state = SessionState.STOPPED
        self.board_entered = False
        if driver is not None:
            try:
                driver.close()
            except Exception:  # noqa: BLE001
                logger.exception("browser close failed")
        if was_running:
            logger.info("browser session stopped")
            for listener in self._stop_listeners:
                listener()
        return was_running


__all__ = ["PageDriver", "SessionLifecycle"]
