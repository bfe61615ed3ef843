from __future__ import annotations

import http.client
import json
import ssl
import urllib.parse
from dataclasses import dataclass, field
from typing import Any
from urllib.error import HTTPError
from urllib.request import HTTPSHandler, Request, build_opener

USER_AGENT = "telepath-mcp/1.0"


class HttpClientError(Exception):
    """Transport-level failure (DNS, socket, TLS, timeout, CDP)."""


@dataclass
class HttpResponse:
    status: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as exc:
            raise HttpClientError(f"Invalid JSON response (HTTP {self.status})") from exc


def http_request(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    json_body: Any | None = None,
    timeout: float = 15.0,
) -> HttpResponse:
    """Issue one HTTP request; non-2xx statuses are returned, not raised."""
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise HttpClientError("Only http/https are supported")

    req_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    req_headers.update(headers or {})
    data: bytes | None = None
    if json_body is not None:
        data = json.dumps(json_body).encode()
        req_headers["Content-Type"] = "application/json"

    req = Request(url, data=data, headers=req_headers, method=method.upper())
    opener = build_opener(HTTPSHandler(context=ssl.create_default_context()))
    try:
        with opener.open(req, timeout=timeout) as resp:
            return HttpResponse(
                status=resp.status,
                body=resp.read().decode(errors="replace"),
                headers=dict(resp.headers),
            )
    except HTTPError as exc:
        # urllib raises for non-2xx; callers map the status to typed errors.
        try:
            body = exc.read().decode(errors="replace")
        except Exception:  # noqa: BLE001
            body = ""
        return HttpResponse(status=exc.code, body=body, headers=dict(exc.headers or {}))
    except (OSError, http.client.HTTPException) as exc:
        # URLError, timeouts, resets and dropped connections
        raise HttpClientError(str(exc) or type(exc).__name__) from exc


__all__ = ["HttpClientError", "HttpResponse", "http_request"]
