"""
Facade tests: fake REST API plus a fake browser driver, with the clock faked.
"""

from __future__ import annotations

from typing import Any

import pytest
from conftest import FakeClock, FakeDriver, FakePage, FakeTelepath, fast_config, line, snapshot

from mcp_servers.telepath.errors import ResourceNotFound, SessionNotRunning
from mcp_servers.telepath.http_client import HttpClientError
from mcp_servers.telepath.models import LineSpec
from mcp_servers.telepath.service import TelepathService

A = "+12098881001"
B = "+12098881002"
TARGET = "+12128881843"


@pytest.fixture
def page() -> FakePage:
    return FakePage([snapshot(line(A), line(B, "00:00:12"))])


@pytest.fixture
def drivers() -> list[FakeDriver]:
    return []


@pytest.fixture
def service(telepath_api: FakeTelepath, page: FakePage, drivers: list[FakeDriver]) -> TelepathService:
    telepath_api.add_phone("b1", "p-a", A, label="Alpha")
    telepath_api.add_phone("b1", "p-b", B, label="Bravo")

    def make() -> FakeDriver:
        driver = FakeDriver(page)
        drivers.append(driver)
        return driver

    return TelepathService(fast_config(base_url=telepath_api.url), driver_factory=make)


def test_make_call_starts_session_on_demand(
    service: TelepathService, page: FakePage, drivers: list[FakeDriver], telepath_api: FakeTelepath, fake_clock: FakeClock
) -> None:
    result = service.make_call(A, TARGET)

    assert result == {"success": True, "from": A, "to": TARGET}
    assert len(drivers) == 1
    assert service.is_running
    assert service.api.access_token == "page-token"
    assert telepath_api.count("POST", r"/api/auth/signin") == 0
    assert [ln["number"] for ln in service.cached_lines] == [A, B]
    assert ("dial", (A, TARGET, 3)) in page.calls


def test_start_session_twice_is_noop(service: TelepathService, drivers: list[FakeDriver]) -> None:
    assert service.start_session()["started"] is True
    second = service.start_session()
    assert second["alreadyRunning"] is True
    assert len(drivers) == 1


def test_hangup_requires_running_session(service: TelepathService) -> None:
    with pytest.raises(SessionNotRunning):
        service.hangup()


def test_statuses_degrade_when_stopped(service: TelepathService, page: FakePage) -> None:
    service.list_lines()
    statuses = service.get_statuses()
    assert statuses["browserRunning"] is False
    assert {p["status"] for p in statuses["phones"]} == {"unknown"}
    assert service.get_call_status() == {"status": "unknown", "inCall": False, "browserRunning": False}
    assert page.calls == []


def test_list_lines_merges_live_status(service: TelepathService, fake_clock: FakeClock) -> None:
    service.start_session()
    result = service.list_lines()

    by_number = {p["number"]: p for p in result["phones"]}
    assert by_number[A]["status"] == "idle"
    assert by_number[A]["canReceiveCall"] is True
    assert by_number[B]["status"] == "in_call"
    assert by_number[A]["label"] == "Alpha"
    assert result["summary"] == {"idle": [A], "busy": [f"{B}(in_call)"], "unregistered": []}


def test_list_lines_reports_unregistered(
    service: TelepathService, page: FakePage, telepath_api: FakeTelepath, fake_clock: FakeClock
) -> None:
    telepath_api.add_phone("b1", "p-c", "+12098881003")
    service.start_session()
    result = service.list_lines()
    assert result["summary"]["unregistered"] == ["+12098881003"]


def test_get_statuses_when_running(service: TelepathService, fake_clock: FakeClock) -> None:
    service.start_session()
    statuses = service.get_statuses()
    assert statuses["idle"] == [A]
    assert statuses["busy"] == [f"{B}(in_call)"]
    assert service.get_call_status()["browserRunning"] is True


def test_add_line_while_running_restarts_session(
    service: TelepathService, telepath_api: FakeTelepath, drivers: list[FakeDriver], fake_clock: FakeClock
) -> None:
    service.start_session()
    result = service.add_line(LineSpec(phone_number="+12098887777"))

    assert result["needsRestart"] is True
    assert result["browserStopped"] is True
    assert not service.is_running
    assert drivers[0].closed == 1
    # The page token died with the session; the follow-up list signs in again.
    assert telepath_api.count("POST", r"/api/auth/signin") == 1
    assert "+12098887777" in [ln["number"] for ln in service.cached_lines]

    service.make_call(A, TARGET)
    assert len(drivers) == 2


def test_stop_session_is_idempotent(service: TelepathService, drivers: list[FakeDriver]) -> None:
    assert service.stop_session()["stopped"] is False
    service.start_session()
    assert service.stop_session()["stopped"] is True
    assert service.stop_session()["stopped"] is False
    assert drivers[0].closed == 1
    assert service.api.access_token is None


def test_state_listeners_fire_on_start_and_stop(service: TelepathService) -> None:
    events: list[bool] = []
    service.add_state_listener(events.append)
    service.start_session()
    service.stop_session()
    service.stop_session()
    assert events == [True, False]


def test_delete_line_updates_cache(service: TelepathService, telepath_api: FakeTelepath) -> None:
    service.list_lines()
    service.delete_line("p-a")
    assert [ln["id"] for ln in service.cached_lines] == ["p-b"]
    assert [p["_id"] for p in telepath_api.phones["b1"]] == ["p-b"]


def test_list_calls(service: TelepathService, telepath_api: FakeTelepath) -> None:
    telepath_api.calls["p-a"] = [{"to": TARGET}]
    assert service.list_calls("p-a") == [{"to": TARGET}]


def test_sip_info_lookup(service: TelepathService, telepath_api: FakeTelepath) -> None:
    telepath_api.add_phone("b1", "p-rc", "+12098885555", rcIds={"accountId": "acc1"})
    telepath_api.phones["b1"][-1]["sipAccounts"][0]["deviceId"] = "dev1"
    assert service.line_sip_info("p-rc") == telepath_api.sip_info
    assert service.line_sip_info("p-a") is None
    with pytest.raises(ResourceNotFound):
        service.line_sip_info("p-missing")


class BrokenScriptPage(FakePage):
    def evaluate(self, script: str, *args: Any) -> Any:
        raise HttpClientError("Page script failed: TypeError: Cannot read properties of null")


def test_list_lines_survives_page_script_failure(
    telepath_api: FakeTelepath, fake_clock: FakeClock, caplog: pytest.LogCaptureFixture
) -> None:
    telepath_api.add_phone("b1", "p-a", A, label="Alpha")
    telepath_api.add_phone("b1", "p-b", B, label="Bravo")
    svc = TelepathService(fast_config(base_url=telepath_api.url), driver_factory=lambda: FakeDriver(BrokenScriptPage()))
    svc.start_session()

    with caplog.at_level("WARNING", logger="mcp.telepath.service"):
        result = svc.list_lines()

    assert [p["number"] for p in result["phones"]] == [A, B]
    assert result["browserRunning"] is True
    assert "Page script failed" in result["statusError"]
    assert "summary" not in result
    assert "live status unavailable" in caplog.text
