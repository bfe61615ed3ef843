"""
Shared fakes for the Telepath tests.

- ``FakeClock``: patched over ``time.monotonic``/``time.sleep`` so waits run instantly
- ``FakePage``/``FakeDriver``: stand in for Chrome, answering the page scripts by identity
- ``FakeTelepath``: a local ``http.server`` speaking the Telepath REST API
"""

from __future__ import annotations

import json
import re
import socket
import time
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Thread
from typing import Any

import pytest

from mcp_servers.telepath.config import TelepathConfig, Timeouts
from mcp_servers.telepath.page_scripts import CLICK_BUTTON_JS, CLICK_TEXT_JS, DIAL_JS, LOGIN_JS, SNAPSHOT_JS

# ═══════════════════════════════════════════════════════════════════════════════
# CLOCK
# ═══════════════════════════════════════════════════════════════════════════════


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.start = start
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    @property
    def elapsed(self) -> float:
        return self.now - self.start


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    clock = FakeClock()
    monkeypatch.setattr(time, "monotonic", clock.monotonic)
    monkeypatch.setattr(time, "sleep", clock.sleep)
    return clock


# ═══════════════════════════════════════════════════════════════════════════════
# PAGE SNAPSHOTS
# ═══════════════════════════════════════════════════════════════════════════════


def line(number: str, text: str = "", *, ready: bool = True, buttons: int = 1, depth: int = 3) -> dict[str, Any]:
    """One phone cell whose card (with the dial input) sits ``depth`` levels up."""
    chain: list[dict[str, Any]] = [{"depth": i, "text": number, "input": None} for i in range(1, depth)]
    size = 200 if ready else 0
    chain.append(
        {
            "depth": depth,
            "text": f"{number} {text}".strip(),
            "input": {"width": size, "height": 30 if ready else 0, "buttons": buttons},
        }
    )
    return {"number": number, "chain": chain}


def snapshot(
    *lines: dict[str, Any],
    buttons: list[str] | None = None,
    body_text: str = "",
    text_inputs: int | None = None,
) -> dict[str, Any]:
    return {
        "lines": list(lines),
        "buttons": [{"index": i, "text": t} for i, t in enumerate(buttons or [])],
        "bodyText": body_text,
        "textInputs": (3 if lines else 0) if text_inputs is None else text_inputs,
    }


SCRIPT_NAMES = {
    SNAPSHOT_JS: "snapshot",
    CLICK_TEXT_JS: "click_text",
    CLICK_BUTTON_JS: "click_button",
    DIAL_JS: "dial",
    LOGIN_JS: "login",
}


class FakePage:
    """Answers page scripts from canned values; the last snapshot repeats."""

    def __init__(
        self,
        snapshots: list[dict[str, Any]] | None = None,
        *,
        click_text: bool = True,
        dial: dict[str, Any] | None = None,
        click_button: bool | list[bool] = True,
    ) -> None:
        self.snapshots = list(snapshots or [snapshot()])
        self.click_text = click_text
        self.dial = {"ok": True} if dial is None else dial
        self.click_button = click_button
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def set_snapshots(self, *snaps: dict[str, Any]) -> None:
        self.snapshots = list(snaps)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def evaluate(self, script: str, *args: Any) -> Any:
        name = SCRIPT_NAMES[script]
        self.calls.append((name, args))
        if name == "snapshot":
            return self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        if name == "click_text":
            return self.click_text
        if name == "dial":
            return self.dial
        if name == "click_button":
            if isinstance(self.click_button, list):
                return self.click_button.pop(0)
            return self.click_button
        raise AssertionError(f"unexpected script {name}")


@dataclass
class FakeDriver:
    page: FakePage
    login: dict[str, Any] = field(default_factory=lambda: {"success": True, "token": "page-token", "userId": "u1"})
    fail_with: Exception | None = None
    started: int = 0
    closed: int = 0

    def start(self, headless: bool = True) -> dict[str, Any]:
        self.started += 1
        if self.fail_with is not None:
            raise self.fail_with
        return self.login

    def evaluate(self, script: str, *args: Any) -> Any:
        return self.page.evaluate(script, *args)

    def close(self) -> None:
        self.closed += 1


def fast_config(**overrides: Any) -> TelepathConfig:
    values: dict[str, Any] = {
        "username": "alice",
        "password": "secret",
        "timeouts": Timeouts(registration=5.0, page_load=5.0, ui_stable=1.0, call_establish=2.0, navigation=1.5),
    }
    values.update(overrides)
    return TelepathConfig(**values)


# ═══════════════════════════════════════════════════════════════════════════════
# FAKE TELEPATH REST API
# ═══════════════════════════════════════════════════════════════════════════════


def _free_port() -> int:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeTelepath:
    USER_ID = "u1"

    def __init__(self) -> None:
        self.tokens = {"tok-1", "page-token"}
        self.boards: list[dict[str, Any]] = [
            {"_id": "b-other", "label": "Sandbox"},
            {"_id": "b1", "label": "XMN-UP"},
        ]
        self.phones: dict[str, list[dict[str, Any]]] = {"b1": [], "b-other": []}
        self.calls: dict[str, list[dict[str, Any]]] = {}
        self.sip_info: dict[str, Any] = {"username": "1209888", "password": "pw", "domain": "sip.example"}
        self.max_lines = 3
        self.requests: list[dict[str, Any]] = []
        self.url = ""
        self._server: HTTPServer | None = None
        self._thread: Thread | None = None

    def add_phone(self, board: str, phone_id: str, number: str, label: str = "Line", **extra: Any) -> dict[str, Any]:
        doc = {"_id": phone_id, "label": label, "sipAccounts": [{"username": number, "label": "trunk: rc"}], **extra}
        self.phones.setdefault(board, []).append(doc)
        return doc

    def count(self, method: str, pattern: str) -> int:
        return sum(1 for r in self.requests if r["method"] == method and re.fullmatch(pattern, r["path"]))

    def handle(self, method: str, path: str, token: str | None, body: Any) -> tuple[int, Any]:
        self.requests.append({"method": method, "path": path, "token": token, "body": body})
        if method == "POST" and path == "/api/auth/signin":
            if body == {"username": "alice", "password": "secret"}:
                return 200, {"id": self.USER_ID, "username": "alice", "accessToken": "tok-1"}
            return 401, {"message": "Invalid Password!"}

        if token not in self.tokens:
            return 401, {"message": "Unauthorized!"}

        if m := re.fullmatch(r"/api/users/(\w+)/phoneBoards", path):
            return 200, self.boards
        if m := re.fullmatch(r"/api/users/\w+/phoneBoards/([\w-]+)/phones", path):
            board = m.group(1)
            if method == "GET":
                return 200, self.phones.get(board, [])
            if len(self.phones.get(board, [])) >= self.max_lines:
                return 400, {"message": "Board line limit reached"}
            doc = dict(body, _id=f"p{len(self.requests)}")
            self.phones.setdefault(board, []).append(doc)
            return 200, doc
        if m := re.fullmatch(r"/api/users/\w+/phoneBoards/([\w-]+)/phones/([\w-]+)", path):
            board, phone_id = m.groups()
            before = len(self.phones.get(board, []))
            self.phones[board] = [p for p in self.phones.get(board, []) if p["_id"] != phone_id]
            return (200, {}) if len(self.phones[board]) < before else (404, {"message": "Not found"})
        if m := re.fullmatch(r"/api/users/\w+/phoneBoards/[\w-]+/phones/([\w-]+)/phoneCalls", path):
            return 200, self.calls.get(m.group(1), [])
        if re.fullmatch(r"/api/environments/[\w-]+/accounts/\w+/devices/\w+/sipInfo", path):
            return 200, self.sip_info
        return 404, {"message": f"no route {path}"}

    def start(self) -> None:
        api = self

        class Handler(BaseHTTPRequestHandler):
            def _serve(self) -> None:
                length = int(self.headers.get("Content-Length") or 0)
                raw = self.rfile.read(length) if length else b""
                body = json.loads(raw) if raw else None
                status, payload = api.handle(self.command, self.path, self.headers.get("x-access-token"), body)
                data = json.dumps(payload).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            do_GET = do_POST = do_DELETE = _serve  # noqa: N815

            def log_message(self, format: str, *args: object) -> None:  # noqa: A002
                return

        port = _free_port()
        self._server = HTTPServer(("127.0.0.1", port), Handler)
        self._thread = Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        self.url = f"http://127.0.0.1:{port}"

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=1)


@pytest.fixture
def telepath_api() -> Iterator[FakeTelepath]:
    api = FakeTelepath()
    api.start()
    try:
        yield api
    finally:
        api.stop()
