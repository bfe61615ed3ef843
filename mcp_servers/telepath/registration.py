"""
Registration polling.

Lines register over SIP only while the board is displayed; the console shows a
line's dial input once registration completes.
"""

from __future__ import annotations

import logging
import time

from .config import TelepathConfig
from .heuristics import PageSnapshot, is_board_displayed, is_line_ready
from .lifecycle import SessionLifecycle
from .page_scripts import CLICK_TEXT_JS, MAX_ANCESTOR_DEPTH, SNAPSHOT_JS
from .polling import wait_until

logger = logging.getLogger("mcp.telepath.registration")


class RegistrationPoller:
    def __init__(self, lifecycle: SessionLifecycle, config: TelepathConfig) -> None:
        self.lifecycle = lifecycle
        self.config = config

    def snapshot(self) -> PageSnapshot:
        raw = self.lifecycle.page().evaluate(SNAPSHOT_JS, MAX_ANCESTOR_DEPTH)
        return PageSnapshot.from_dict(raw)

    def ensure_on_board(self) -> bool:
        if self.lifecycle.board_entered and is_board_displayed(self.snapshot()):
            return True

        board = self.config.board_label
        logger.info("opening board %s", board)
        if not self.lifecycle.page().evaluate(CLICK_TEXT_JS, board):
            logger.warning("no element with text %r found; board may already be open", board)
        time.sleep(self.config.timeouts.navigation)

        if not self.lifecycle.board_entered:
            logger.info("first board entry; waiting for all lines to register")
            self.wait_for_all_lines_ready()
            self.lifecycle.board_entered = True
        return True

    def wait_for_all_lines_ready(self, timeout: float | None = None) -> bool:
        timeout = self.config.timeouts.all_lines_ready if timeout is None else timeout

        def _all_ready(snap: PageSnapshot) -> bool:
            return bool(snap.lines) and all(is_line_ready(line) for line in snap.lines)

        def _progress(snap: PageSnapshot, _attempt: int) -> None:
            ready = sum(1 for line in snap.lines if is_line_ready(line))
            logger.info("registering... %d/%d lines ready", ready, len(snap.lines))

        result = wait_until(
            self.snapshot,
            timeout=timeout,
            interval=self.config.timeouts.ui_stable,
            done=_all_ready,
            on_miss=_progress,
        )
        snap = result.value or PageSnapshot()
        ready = sum(1 for line in snap.lines if is_line_ready(line))
        if result.ok:
            logger.info("all lines registered (%d/%d)", ready, len(snap.lines))
        else:
            logger.warning("registration wait timed out; %d/%d lines ready", ready, len(snap.lines))
        return result.ok

    def wait_for_registration(self, number: str, timeout: float | None = None) -> bool:
        return self.await_registration(number, timeout)[0]

    def await_registration(self, number: str, timeout: float | None = None) -> tuple[bool, bool]:
        """Wait for one line; returns ``(registered, number_seen)``."""
        timeout = self.config.timeouts.registration if timeout is None else timeout
        seen = False

        def _ready(snap: PageSnapshot) -> bool:
            nonlocal seen
            line = snap.find_line(number)
            if line is None:
                return False
            seen = True
            return is_line_ready(line)

        logger.info("waiting for %s to register", number)
        result = wait_until(self.snapshot, timeout=timeout, interval=self.config.timeouts.ui_stable, done=_ready)
        if result.ok:
            logger.info("%s registered", number)
        else:
            logger.warning("%s did not register within %ss", number, timeout)
        return result.ok, seen


__all__ = ["RegistrationPoller"]
