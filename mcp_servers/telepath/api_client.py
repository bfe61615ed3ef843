"""
REST channel to the Telepath backend.

Covers signin, board discovery and phone-line CRUD. Tokens and the resolved
account context are cached on the client instance; nothing is retried.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .config import TelepathConfig
from .errors import AuthError, ConfigError, HttpError, ResourceNotFound
from .http_client import HttpResponse, http_request
from .models import LineSpec

if TYPE_CHECKING:
    from .lifecycle import SessionLifecycle

logger = logging.getLogger("mcp.telepath.api")

PHONE_NUMBER_PREFIX = "+1209888"
DEFAULT_LINE_LABEL = "New Phone"
DEFAULT_TRUNK = "rc"

# Registration fails when the domain carries a port, so none of these may have one.
SIP_DOMAINS: dict[str, str] = {
    "XMN-UP": "siptel-xmnup.int.rclabenv.com",
    "XMR-UP-XMN": "siptel-xmrupxmn.int.rclabenv.com",
    "AI-DEM-AMS": "siptel-aidemams.int.rclabenv.com",
}

CODECS: list[dict[str, Any]] = [
    {"code": 111, "name": "OPUS"},
    {"code": 63, "name": "RED"},
    {"code": 9, "name": "G722"},
    {"code": 0, "name": "PCMU"},
    {"code": 8, "name": "PCMA"},
    {"code": 13, "name": "CN"},
    {"code": 110, "name": "telephone-event"},
    {"code": 126, "name": "telephone-event"},
]


def generate_phone_number(rng: random.Random | None = None) -> str:
    """Return ``+1209888`` followed by a random suffix in 1000..9999."""
    rng = rng or random
    return f"{PHONE_NUMBER_PREFIX}{rng.randint(1000, 9999)}"


def sip_domain_for(env_name: str) -> str:
    if env_name in SIP_DOMAINS:
        return SIP_DOMAINS[env_name]
    slug = re.sub(r"[^a-z0-9]", "", env_name.lower())
    return f"siptel-{slug}.int.rclabenv.com"


def build_line_descriptor(
    *,
    user_id: str,
    board_id: str,
    phone_number: str,
    label: str,
    env_name: str,
    trunk: str,
) -> dict[str, Any]:
    """Full phone document accepted by ``POST .../phones``."""
    return {
        "label": label,
        "user": user_id,
        "board": board_id,
        "column": 0,
        "rank": 0,
        "color": "#ff7300",
        "envName": env_name,
        "configType": "manual",
        "provisioning": {"vendor": "", "model": "", "link": "", "serialNumber": "", "interval": 0, "fw": ""},
        "sipAccounts": [
            {
                "label": f"trunk: {trunk}",
                "username": phone_number,
                "domain": sip_domain_for(env_name),
                "outboundProxy": "",
                "authId": "",
                "password": "",
                "bca": {"numAppearances": 0, "extensionId": "", "ringDelay": 0},
                "integration": {"type": "", "inboundEdgeId": ""},
            }
        ],
        "phoneLines": [],
        "rcIds": {"accountId": "", "extensionId": ""},
        "phoneFeatures": {
            "isEnabledDnd": False,
            "customHeaders": [],
            "cffp": {"target": "", "always": False, "noAnswer": False, "busy": False},
            "showPai": False,
            "isEnabled183Response": False,
            "holdOnTransfer": True,
        },
        "codecs": {"enabled": [dict(c) for c in CODECS], "disabled": []},
    }


@dataclass
class AccountContext:
    user_id: str | None = None
    board_id: str | None = None
    board_label: str | None = None


class TelepathApiClient:
    """Authenticated REST client; one instance per process."""

    def __init__(self, config: TelepathConfig, lifecycle: SessionLifecycle | None = None) -> None:
        self.config = config
        self.lifecycle = lifecycle
        self.account = AccountContext(user_id=config.user_id, board_id=config.board_id)
        self.access_token: str | None = None

    # ─────────────────────────────────────────────────────────────────────────
    # Auth & account context
    # ─────────────────────────────────────────────────────────────────────────

    def authenticate(self) -> dict[str, Any]:
        username, password = self.config.require_credentials()
        resp = http_request(
            "POST",
            self.config.api_url("/api/auth/signin"),
            json_body={"username": username, "password": password},
            timeout=self.config.http_timeout,
        )
        if not resp.ok:
            raise AuthError(f"Signin failed: HTTP {resp.status}", status=resp.status)
        data = resp.json() or {}
        self.adopt_session(data.get("accessToken"), data.get("id") or data.get("_id"))
        logger.info("authenticated user_id=%s", self.account.user_id)
        return data

    def adopt_session(self, token: str | None, user_id: str | None) -> None:
        """Take over a token obtained elsewhere (e.g. the in-page signin)."""
        if token:
            self.access_token = token
        if user_id:
            self.account.user_id = str(user_id)

    def discard_token(self) -> None:
        self.access_token = None

    def _ensure_token(self) -> str:
        if not self.access_token:
            self.authenticate()
        if not self.access_token:
            raise AuthError("Signin response did not contain an access token")
        return self.access_token

    def resolve_board(self) -> str:
        if self.account.board_id:
            return self.account.board_id
        user_id = self.account.user_id
        if not user_id:
            raise ConfigError("Must authenticate first (user id unknown)")

        boards = self._get_json(f"/api/users/{user_id}/phoneBoards") or []
        board = _select_board(boards, self.config.board_label, self.config.board_pattern)
        if board is None:
            raise ResourceNotFound("No board available", suggestion="Create a phone board in the Telepath console")
        self.account.board_id = str(board.get("_id") or board.get("id"))
        self.account.board_label = board.get("label")
        logger.info("resolved board label=%s id=%s", self.account.board_label, self.account.board_id)
        return self.account.board_id

    def _board_path(self) -> str:
        self._ensure_token()
        board_id = self.resolve_board()
        return f"/api/users/{self.account.user_id}/phoneBoards/{board_id}/phones"

    # ─────────────────────────────────────────────────────────────────────────
    # Lines
    # ─────────────────────────────────────────────────────────────────────────

    def list_lines(self) -> list[dict[str, Any]]:
        return self._get_json(self._board_path()) or []

    def list_calls(self, line_id: str) -> Any:
        return self._get_json(f"{self._board_path()}/{line_id}/phoneCalls")

    def create_line(self, spec: LineSpec | None = None) -> dict[str, Any]:
        spec = spec or LineSpec()
        path = self._board_path()
        phone_number = spec.phone_number or generate_phone_number()
        label = spec.label or DEFAULT_LINE_LABEL
        env_name = spec.env_name or self.config.env_name
        trunk = spec.trunk or DEFAULT_TRUNK

        descriptor = build_line_descriptor(
            user_id=str(self.account.user_id),
            board_id=str(self.account.board_id),
            phone_number=phone_number,
            label=label,
            env_name=env_name,
            trunk=trunk,
        )
        resp = self._request("POST", path, json_body=descriptor)
        if not resp.ok:
            raise HttpError(
                resp.status,
                f"Create phone failed: HTTP {resp.status}",
                body=resp.body,
                suggestion="A board registers at most 3 lines; delete an unused line and retry",
            )
        result = resp.json() or {}

        # New SIP registrations only happen when the page initialises.
        needs_restart = self.lifecycle is not None and self.lifecycle.is_running
        if needs_restart:
            logger.info("browser session running; stopping it so %s can register", phone_number)
            self.lifecycle.stop()  # type: ignore[union-attr]

        return {
            "id": result.get("id") or result.get("_id"),
            "phoneNumber": phone_number,
            "label": label,
            "envName": env_name,
            "trunk": trunk,
            "needsRestart": needs_restart,
            "message": (
                "New line created; the browser session was stopped and will restart and wait for registration on next use."
                if needs_restart
                else "New line created; it registers once the browser session starts and enters the board."
            ),
        }

    def delete_line(self, line_id: str) -> dict[str, Any]:
        resp = self._request("DELETE", f"{self._board_path()}/{line_id}")
        if not resp.ok:
            raise HttpError(resp.status, body=resp.body)
        return {"success": True, "phoneId": line_id}

    def sip_info(self, line: dict[str, Any]) -> dict[str, Any] | None:
        """SIP credentials for a line linked to a RingCentral device, else None."""
        rc_ids = line.get("rcIds") or {}
        account_id = rc_ids.get("accountId")
        accounts = line.get("sipAccounts") or []
        device_id = accounts[0].get("deviceId") if accounts and isinstance(accounts[0], dict) else None
        if not account_id or not device_id:
            return None
        self._ensure_token()
        env_name = line.get("envName") or self.config.env_name
        return self._get_json(f"/api/environments/{env_name}/accounts/{account_id}/devices/{device_id}/sipInfo")

    # ─────────────────────────────────────────────────────────────────────────
    # Plumbing
    # ─────────────────────────────────────────────────────────────────────────

    def _request(self, method: str, path: str, json_body: Any | None = None) -> HttpResponse:
        token = self._ensure_token()
        return http_request(
            method,
            self.config.api_url(path),
            headers={"x-access-token": token},
            json_body=json_body,
            timeout=self.config.http_timeout,
        )

    def _get_json(self, path: str) -> Any:
        resp = self._request("GET", path)
        if not resp.ok:
            raise HttpError(resp.status, body=resp.body)
        return resp.json()


def _select_board(boards: list[dict[str, Any]], label: str, pattern: str) -> dict[str, Any] | None:
    candidates = [b for b in boards if isinstance(b, dict)]
    for board in candidates:
        if board.get("label") == label:
            return board
    for board in candidates:
        if pattern and pattern in str(board.get("label") or ""):
            return board
    return candidates[0] if candidates else None


__all__ = [
    "AccountContext",
    "CODECS",
    "PHONE_NUMBER_PREFIX",
    "SIP_DOMAINS",
    "TelepathApiClient",
    "build_line_descriptor",
    "generate_phone_number",
    "sip_domain_for",
]
