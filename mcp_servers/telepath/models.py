"""Plain value types shared by the core and the tool layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class RegistrationState(str, Enum):
    REGISTERING = "registering"
    IDLE = "idle"
    UNKNOWN = "unknown"


class LineState(str, Enum):
    IDLE = "idle"
    RINGING = "ringing"
    CALLING = "calling"
    IN_CALL = "in_call"
    REGISTERING = "registering"
    UNKNOWN = "unknown"


class CallState(str, Enum):
    IDLE = "idle"
    RINGING = "ringing"
    CALLING = "calling"
    HOLD = "hold"
    CONNECTED = "connected"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LineSpec:
    """Optional overrides for a new phone line."""

    phone_number: str | None = None
    label: str | None = None
    env_name: str | None = None
    trunk: str | None = None

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any] | None) -> LineSpec:
        args = arguments or {}

        def _opt(*keys: str) -> str | None:
            for key in keys:
                value = args.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
            return None

        return cls(
            phone_number=_opt("phoneNumber", "phone_number", "number"),
            label=_opt("label"),
            env_name=_opt("envName", "env_name"),
            trunk=_opt("trunk"),
        )


@dataclass(frozen=True)
class LineStatus:
    number: str
    status: LineState

    @property
    def can_receive_call(self) -> bool:
        return self.status is LineState.IDLE

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "status": self.status.value, "canReceiveCall": self.can_receive_call}


@dataclass(frozen=True)
class CallStatus:
    status: CallState

    @property
    def in_call(self) -> bool:
        return self.status not in (CallState.IDLE, CallState.UNKNOWN)

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "inCall": self.in_call}


def format_line(raw: dict[str, Any]) -> dict[str, Any]:
    """Project a raw API phone document onto the tool boundary shape."""
    accounts = raw.get("sipAccounts") or []
    first = accounts[0] if accounts and isinstance(accounts[0], dict) else {}
    return {
        "id": raw.get("_id") or raw.get("id"),
        "number": first.get("username") or "N/A",
        "label": raw.get("label"),
        "trunk": first.get("label") or "unknown",
    }


__all__ = [
    "CallState",
    "CallStatus",
    "LineSpec",
    "LineState",
    "LineStatus",
    "RegistrationState",
    "SessionState",
    "format_line",
]
