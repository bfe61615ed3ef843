"""
Typed failures surfaced to the tool layer.

Every error carries a stable ``code`` plus an optional suggestion so the agent
on the other side of the MCP channel can decide whether to retry.
"""

from __future__ import annotations

from typing import Any


class TelepathError(Exception):
    """Base class for all Telepath core failures."""

    code = "telepath_error"

    def __init__(self, message: str, *, suggestion: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": False, "code": self.code, "error": self.message}
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigError(TelepathError):
    code = "config_error"


class AuthError(TelepathError):
    code = "auth_error"

    def __init__(self, message: str, *, status: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status = status
        if status is not None:
            self.details.setdefault("status", status)


class ResourceNotFound(TelepathError):
    code = "not_found"


class HttpError(TelepathError):
    code = "http_error"

    def __init__(self, status: int, message: str | None = None, *, body: str = "", **kwargs: Any) -> None:
        super().__init__(message or f"HTTP {status}", **kwargs)
        self.status = status
        self.body = body
        self.details.setdefault("status", status)
        if body:
            self.details.setdefault("body", body[:500])


class RegistrationTimeout(TelepathError):
    code = "registration_timeout"

    def __init__(self, number: str, timeout: float, **kwargs: Any) -> None:
        kwargs.setdefault("suggestion", "Wait a little and retry; a board registers at most 3 lines at once")
        super().__init__(f"Line {number} did not register within {timeout:g}s", **kwargs)
        self.number = number
        self.details.setdefault("number", number)


class ElementNotFound(TelepathError):
    code = "element_not_found"


class NoActiveCall(TelepathError):
    code = "no_active_call"


class SessionNotRunning(TelepathError):
    code = "session_not_running"


class BrowserLaunchError(TelepathError):
    code = "browser_launch_error"


__all__ = [
    "AuthError",
    "BrowserLaunchError",
    "ConfigError",
    "ElementNotFound",
    "HttpError",
    "NoActiveCall",
    "RegistrationTimeout",
    "ResourceNotFound",
    "SessionNotRunning",
    "TelepathError",
]
