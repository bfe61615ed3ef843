from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from .config import TelepathConfig
from .heuristics import classify_call, classify_lines
from .models import CallStatus, LineState, LineStatus
from .polling import wait_until
from .registration import RegistrationPoller

logger = logging.getLogger("mcp.telepath.call_state")


class CallStateEngine:
    """Point-in-time and awaited call-state queries over the live board."""

    def __init__(self, poller: RegistrationPoller, config: TelepathConfig) -> None:
        self.poller = poller
        self.config = config

    def get_line_statuses(self) -> list[LineStatus]:
        self.poller.ensure_on_board()
        time.sleep(self.config.timeouts.ui_stable)
        return classify_lines(self.poller.snapshot())

    def get_call_status(self) -> CallStatus:
        return classify_call(self.poller.snapshot())

    def line_status(self, number: str) -> LineStatus:
        for status in classify_lines(self.poller.snapshot()):
            if status.number == number:
                return status
        return LineStatus(number, LineState.UNKNOWN)

    def wait_for_line_state(
        self, number: str, states: Iterable[LineState], timeout: float | None = None
    ) -> LineStatus:
        """Poll until ``number`` reaches one of ``states``; returns the last status seen."""
        wanted = frozenset(states)
        timeout = self.config.timeouts.registration if timeout is None else timeout
        self.poller.ensure_on_board()
        result = wait_until(
            lambda: self.line_status(number),
            timeout=timeout,
            interval=self.config.timeouts.ui_stable,
            done=lambda status: status.status in wanted,
        )
        if not result.ok:
            logger.info("%s still %s after %ss", number, result.value.status.value if result.value else "?", timeout)
        return result.value or LineStatus(number, LineState.UNKNOWN)


__all__ = ["CallStateEngine"]
