"""
Orchestration facade.

Composes the REST client and the live-session components into the operations
the MCP tools expose. Every operation that touches the browser session runs
under one re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .actions import CallControl
from .api_client import TelepathApiClient
from .call_state import CallStateEngine
from .config import TelepathConfig
from .driver import InteractiveSessionDriver
from .errors import ResourceNotFound, TelepathError
from .http_client import HttpClientError
from .lifecycle import PageDriver, SessionLifecycle
from .models import CallState, CallStatus, LineSpec, LineState, LineStatus, format_line
from .registration import RegistrationPoller

logger = logging.getLogger("mcp.telepath.service")


class TelepathService:
    def __init__(
        self,
        config: TelepathConfig,
        *,
        driver_factory: Callable[[], PageDriver] | None = None,
        api: TelepathApiClient | None = None,
    ) -> None:
        self.config = config
        self.lifecycle = SessionLifecycle(driver_factory or (lambda: InteractiveSessionDriver(config)))
        self.api = api or TelepathApiClient(config, self.lifecycle)
        if self.api.lifecycle is None:
            self.api.lifecycle = self.lifecycle
        self.poller = RegistrationPoller(self.lifecycle, config)
        self.call_state = CallStateEngine(self.poller, config)
        self.control = CallControl(self.poller, config)
        self.cached_lines: list[dict[str, Any]] = []
        self._lock = threading.RLock()
        self._state_listeners: list[Callable[[bool], None]] = []
        self.lifecycle.add_stop_listener(self.api.discard_token)
        self.lifecycle.add_stop_listener(lambda: self._notify(False))

    @property
    def is_running(self) -> bool:
        return self.lifecycle.is_running

    def add_state_listener(self, listener: Callable[[bool], None]) -> None:
        """``listener(running)`` fires whenever the session starts or stops."""
        self._state_listeners.append(listener)

    def _notify(self, running: bool) -> None:
        for listener in self._state_listeners:
            try:
                listener(running)
            except Exception:  # noqa: BLE001
                logger.exception("state listener failed")

    # ─────────────────────────────────────────────────────────────────────────
    # Session lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start_session(self, headless: bool | None = None) -> dict[str, Any]:
        with self._lock:
            if self.lifecycle.is_running:
                return {"started": False, "alreadyRunning": True, "phones": self.cached_lines}
            headless = self.config.headless if headless is None else headless
            login = self.lifecycle.start(headless=headless) or {}
            self.api.adopt_session(login.get("token"), login.get("userId"))
            try:
                self._refresh_lines()
            except (TelepathError, HttpClientError) as exc:
                logger.warning("phone list unavailable after start: %s", exc)
            self._notify(True)
            return {"started": True, "alreadyRunning": False, "phones": self.cached_lines}

    def stop_session(self) -> dict[str, Any]:
        with self._lock:
            stopped = self.lifecycle.stop()
            return {"stopped": stopped, "message": "Browser stopped" if stopped else "Browser was not running"}

    def _ensure_started(self) -> None:
        if not self.lifecycle.is_running:
            logger.info("browser session not running; starting it")
            self.start_session()

    # ─────────────────────────────────────────────────────────────────────────
    # Lines (REST)
    # ─────────────────────────────────────────────────────────────────────────

    def _refresh_lines(self) -> list[dict[str, Any]]:
        self.cached_lines = [format_line(raw) for raw in self.api.list_lines()]
        return self.cached_lines

    def list_lines(self) -> dict[str, Any]:
        with self._lock:
            lines = [dict(line) for line in self._refresh_lines()]
            result: dict[str, Any] = {"phones": lines, "count": len(lines), "browserRunning": self.is_running}
            if not self.is_running:
                return result
            try:
                statuses = {s.number: s for s in self.call_state.get_line_statuses()}
            except (TelepathError, HttpClientError) as exc:
                logger.warning("live status unavailable: %s", exc)
                result["statusError"] = str(exc)
                return result
            for line in lines:
                status = statuses.get(line["number"])
                if status is not None:
                    line.update(status.to_dict())
            busy = [p for p in lines if p.get("status") and not p.get("canReceiveCall")]
            result["summary"] = {
                "idle": [p["number"] for p in lines if p.get("canReceiveCall")],
                "busy": [f"{p['number']}({p['status']})" for p in busy],
                "unregistered": [p["number"] for p in lines if not p.get("status")],
            }
            return result

    def add_line(self, spec: LineSpec | None = None) -> dict[str, Any]:
        with self._lock:
            was_running = self.is_running
            result = self.api.create_line(spec)
            try:
                self._refresh_lines()
            except (TelepathError, HttpClientError) as exc:
                logger.warning("phone list refresh failed: %s", exc)
            if was_running and not self.is_running:
                result["browserStopped"] = True
            return result

    def delete_line(self, line_id: str) -> dict[str, Any]:
        with self._lock:
            result = self.api.delete_line(line_id)
            self.cached_lines = [line for line in self.cached_lines if line.get("id") != line_id]
            return result

    def list_calls(self, line_id: str) -> Any:
        with self._lock:
            return self.api.list_calls(line_id)

    def line_sip_info(self, line_id: str) -> dict[str, Any] | None:
        with self._lock:
            for raw in self.api.list_lines():
                if str(raw.get("_id") or raw.get("id")) == line_id:
                    return self.api.sip_info(raw)
            raise ResourceNotFound(f"Phone {line_id} not found", details={"phoneId": line_id})

    # ─────────────────────────────────────────────────────────────────────────
    # Live call control
    # ─────────────────────────────────────────────────────────────────────────

    def make_call(self, from_number: str, to_number: str) -> dict[str, Any]:
        with self._lock:
            self._ensure_started()
            return self.control.dial(from_number, to_number)

    def hangup(self) -> dict[str, Any]:
        with self._lock:
            self.lifecycle.page()
            return self.control.hangup()

    def get_statuses(self) -> dict[str, Any]:
        with self._lock:
            if not self.is_running:
                return {
                    "browserRunning": False,
                    "phones": [LineStatus(line["number"], LineState.UNKNOWN).to_dict() for line in self.cached_lines],
                    "message": "Browser not running; live status unavailable",
                }
            statuses = self.call_state.get_line_statuses()
            return {
                "browserRunning": True,
                "phones": [s.to_dict() for s in statuses],
                "idle": [s.number for s in statuses if s.can_receive_call],
                "busy": [f"{s.number}({s.status.value})" for s in statuses if not s.can_receive_call],
            }

    def get_call_status(self) -> dict[str, Any]:
        with self._lock:
            if not self.is_running:
                return {**CallStatus(CallState.UNKNOWN).to_dict(), "browserRunning": False}
            return {**self.call_state.get_call_status().to_dict(), "browserRunning": True}


__all__ = ["TelepathService"]
