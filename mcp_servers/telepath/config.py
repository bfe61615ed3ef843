from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

DEFAULT_TELEPATH_URL = "https://telepath.int.rclabenv.com"
DEFAULT_ENV_NAME = "XMR-UP-XMN"
DEFAULT_BOARD_LABEL = "XMN-UP"
DEFAULT_BOARD_PATTERN = "XMN"

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # Prefer Chromium; snap builds ignore --user-data-dir so they go last.
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    "/snap/bin/chromium",
]


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Timeouts:
    """Wait budgets in seconds."""

    registration: float = 30.0
    page_load: float = 30.0
    ui_stable: float = 1.0
    call_establish: float = 2.0
    navigation: float = 1.5

    @property
    def all_lines_ready(self) -> float:
        return self.registration * 2


@dataclass
class TelepathConfig:
    username: str | None = None
    password: str | None = None
    user_id: str | None = None
    board_id: str | None = None
    env_name: str = DEFAULT_ENV_NAME
    base_url: str = DEFAULT_TELEPATH_URL
    board_label: str = DEFAULT_BOARD_LABEL
    board_pattern: str = DEFAULT_BOARD_PATTERN
    binary_path: str = "google-chrome"
    profile_path: str = "~/.telepath/browser-profile"
    cdp_port: int = 0
    headless: bool = True
    extra_flags: list[str] = field(default_factory=list)
    http_timeout: float = 15.0
    timeouts: Timeouts = field(default_factory=Timeouts)

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password)

    def require_credentials(self) -> tuple[str, str]:
        if not self.is_configured:
            missing = [
                name
                for name, value in (("TELEPATH_USERNAME", self.username), ("TELEPATH_PASSWORD", self.password))
                if not value
            ]
            raise ConfigError(
                f"Missing required environment variable(s): {', '.join(missing)}",
                suggestion="Set TELEPATH_USERNAME and TELEPATH_PASSWORD in the MCP server env and restart it",
            )
        return str(self.username), str(self.password)

    def api_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("TELEPATH_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "google-chrome"

    @classmethod
    def from_env(cls) -> TelepathConfig:
        flags_raw = os.environ.get("TELEPATH_BROWSER_FLAGS", "")
        timeouts = Timeouts(
            registration=_env_float("TELEPATH_REGISTRATION_TIMEOUT", 30.0),
            page_load=_env_float("TELEPATH_PAGE_LOAD_TIMEOUT", 30.0),
        )
        return cls(
            username=os.environ.get("TELEPATH_USERNAME") or None,
            password=os.environ.get("TELEPATH_PASSWORD") or None,
            user_id=os.environ.get("TELEPATH_USER_ID") or None,
            board_id=os.environ.get("TELEPATH_BOARD_ID") or None,
            env_name=os.environ.get("TELEPATH_ENV_NAME") or DEFAULT_ENV_NAME,
            base_url=(os.environ.get("TELEPATH_URL") or DEFAULT_TELEPATH_URL).rstrip("/"),
            binary_path=cls.detect_binary(),
            profile_path=expand_path(os.environ.get("TELEPATH_BROWSER_PROFILE", "~/.telepath/browser-profile")),
            cdp_port=int(os.environ.get("TELEPATH_BROWSER_PORT", "0") or 0),
            headless=os.environ.get("TELEPATH_HEADLESS", "1") != "0",
            extra_flags=[flag.strip() for flag in flags_raw.split(",") if flag.strip()],
            http_timeout=_env_float("TELEPATH_HTTP_TIMEOUT", 15.0),
            timeouts=timeouts,
        )
