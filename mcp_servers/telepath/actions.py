"""
Call control actions: dial and hang up by driving the console UI.

Both locate their controls from a fresh snapshot first and only then mutate
the page, so a failed lookup leaves the page untouched.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from .config import TelepathConfig
from .errors import ElementNotFound, NoActiveCall, RegistrationTimeout
from .heuristics import HANGUP_STRATEGIES, HangupStrategy, hangup_candidates, locate_dial_target
from .page_scripts import CLICK_BUTTON_JS, DIAL_JS
from .registration import RegistrationPoller

logger = logging.getLogger("mcp.telepath.actions")

_DIAL_FAILURES = {
    "number": "Phone number {number} not found on the board",
    "input": "Dial input not found for {number}",
    "button": "Dial button not found next to the input of {number}",
}


class CallControl:
    def __init__(
        self,
        poller: RegistrationPoller,
        config: TelepathConfig,
        hangup_strategies: tuple[HangupStrategy, ...] = HANGUP_STRATEGIES,
    ) -> None:
        self.poller = poller
        self.config = config
        self.hangup_strategies = hangup_strategies

    def dial(self, from_number: str, to_number: str) -> dict[str, Any]:
        logger.info("dial %s -> %s", from_number, to_number)
        timeouts = self.config.timeouts

        self.poller.ensure_on_board()
        time.sleep(timeouts.call_establish)

        registered, seen = self.poller.await_registration(from_number)
        if not registered:
            if not seen:
                raise ElementNotFound(
                    f"Phone number {from_number} not found on the board",
                    suggestion="Check telepath_list_phones for the numbers on this board",
                    details={"number": from_number},
                )
            raise RegistrationTimeout(from_number, timeouts.registration)
        time.sleep(timeouts.ui_stable)

        target = locate_dial_target(self.poller.snapshot(), from_number)
        result = self.poller.lifecycle.page().evaluate(DIAL_JS, from_number, to_number, target.depth) or {}
        if not result.get("ok"):
            template = _DIAL_FAILURES.get(str(result.get("reason")), "Dial controls for {number} disappeared")
            raise ElementNotFound(template.format(number=from_number), details={"number": from_number})

        time.sleep(timeouts.call_establish)
        return {"success": True, "from": from_number, "to": to_number}

    def hangup(self) -> dict[str, Any]:
        snapshot = self.poller.snapshot()
        page = self.poller.lifecycle.page()
        for strategy, button in hangup_candidates(snapshot, self.hangup_strategies):
            if page.evaluate(CLICK_BUTTON_JS, button.index, button.text):
                logger.info("hangup via %s (button #%d)", strategy.name, button.index)
                return {"success": True, "method": strategy.name}
            logger.info("hangup candidate from %s went stale", strategy.name)
        raise NoActiveCall(
            "No active call or hangup control not found",
            suggestion="Check telepath_call_status; the call may already have ended",
        )


__all__ = ["CallControl"]
