from __future__ import annotations

import contextlib
import json
import logging
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.error import URLError
from urllib.request import Request, urlopen

from .config import TelepathConfig, expand_path
from .http_client import HttpClientError

logger = logging.getLogger("mcp.telepath.launcher")

# WebRTC needs a microphone; these make Chrome grant it and synthesise the audio.
MEDIA_FLAGS: list[str] = [
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str


class BrowserLauncher:
    def __init__(self, config: TelepathConfig) -> None:
        self.config = config
        self.process: subprocess.Popen | None = None
        self.cdp_port = int(config.cdp_port) or self.find_free_port()

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if the CDP HTTP endpoint responds."""
        return self._cdp_ready(timeout=timeout)

    def _cdp_ready(self, timeout: float = 0.4) -> bool:
        endpoint = f"http://127.0.0.1:{self.cdp_port}/json/version"
        try:
            with urlopen(endpoint, timeout=timeout) as resp:
                return resp.status == 200
        except (OSError, TimeoutError, URLError):
            return False

    def build_launch_command(self, *, headless: bool = True) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.cdp_port}",
            f"--user-data-dir={expand_path(self.config.profile_path)}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
            *MEDIA_FLAGS,
        ]
        if headless:
            flags.append("--headless=new")
        else:
            flags.append("--window-size=1280,900")
        flags.extend(self.config.extra_flags)
        return [self.config.binary_path, *flags]

    def ensure_running(self, *, headless: bool = True, timeout: float = 10.0) -> LaunchResult:
        if self._cdp_ready():
            return LaunchResult([], False, "Chrome already listening on CDP port")

        with contextlib.suppress(Exception):
            Path(expand_path(self.config.profile_path)).mkdir(parents=True, exist_ok=True)

        cmd = self.build_launch_command(headless=headless)
        try:
            self.process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            return LaunchResult(cmd, False, str(exc))

        deadline = time.time() + timeout
        while time.time() < deadline:
            if self._cdp_ready():
                logger.info("chrome launched port=%s headless=%s", self.cdp_port, headless)
                return LaunchResult(cmd, True, "Chrome launched")
            time.sleep(0.1)
        return LaunchResult(cmd, False, "Chrome launch timed out")

    def stop(self, *, timeout: float = 2.0) -> bool:
        """Best-effort stop of the launcher-owned Chrome process."""
        proc = self.process
        if proc is None:
            return False
        self.process = None
        try:
            if proc.poll() is not None:
                return True
        except Exception:  # noqa: BLE001
            pass

        with contextlib.suppress(Exception):
            proc.terminate()

        deadline = time.time() + max(0.1, float(timeout))
        while time.time() < deadline:
            try:
                if proc.poll() is not None:
                    return True
            except Exception:  # noqa: BLE001
                break
            time.sleep(0.05)

        # Escalate to kill.
        with contextlib.suppress(Exception):
            proc.kill()
        return True

    @staticmethod
    def find_free_port() -> int:
        with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
            s.bind(("127.0.0.1", 0))
            return s.getsockname()[1]

    def _get_json(self, path: str, timeout: float = 2.0) -> object:
        endpoint = f"http://127.0.0.1:{self.cdp_port}{path}"
        try:
            req = Request(endpoint, headers={"User-Agent": "telepath-mcp"})
            with urlopen(req, timeout=timeout) as resp:
                return json.loads(resp.read().decode())
        except (URLError, OSError, json.JSONDecodeError) as exc:
            raise HttpClientError(f"CDP not reachable on port {self.cdp_port}: {exc}") from exc

    def browser_ws_url(self) -> str:
        version = self._get_json("/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise HttpClientError("CDP browser WebSocket URL not found")
        return str(ws_url)

    def list_targets(self) -> list[dict]:
        try:
            targets = self._get_json("/json/list", timeout=0.5)
        except HttpClientError:
            return []
        return targets if isinstance(targets, list) else []

    def tab_ws_url(self, tab_id: str) -> str | None:
        for target in self.list_targets():
            if target.get("id") == tab_id:
                return target.get("webSocketDebuggerUrl")
        return None


__all__ = ["BrowserLauncher", "LaunchResult", "MEDIA_FLAGS"]
