from __future__ import annotations

import pytest
from conftest import FakeDriver, FakePage

from mcp_servers.telepath.errors import AuthError, BrowserLaunchError, SessionNotRunning
from mcp_servers.telepath.lifecycle import SessionLifecycle
from mcp_servers.telepath.models import SessionState


def _factory(*drivers: FakeDriver):
    queue = list(drivers)
    made: list[FakeDriver] = []

    def make() -> FakeDriver:
        driver = queue.pop(0)
        made.append(driver)
        return driver

    return make, made


def test_start_is_noop_when_running() -> None:
    make, made = _factory(FakeDriver(FakePage()), FakeDriver(FakePage()))
    lifecycle = SessionLifecycle(make)
    login = lifecycle.start()
    assert login is not None and login["token"] == "page-token"
    assert lifecycle.state is SessionState.RUNNING
    assert lifecycle.start() is None
    assert len(made) == 1


def test_failed_page_signin_stops_and_raises() -> None:
    driver = FakeDriver(FakePage(), login={"success": False, "status": 401, "error": "HTTP 401"})
    lifecycle = SessionLifecycle(lambda: driver)
    with pytest.raises(AuthError) as err:
        lifecycle.start()
    assert err.value.status == 401
    assert lifecycle.state is SessionState.STOPPED
    assert driver.closed == 1


def test_driver_failure_resets_state() -> None:
    driver = FakeDriver(FakePage(), fail_with=BrowserLaunchError("Chrome did not start"))
    lifecycle = SessionLifecycle(lambda: driver)
    with pytest.raises(BrowserLaunchError):
        lifecycle.start()
    assert lifecycle.state is SessionState.STOPPED
    assert driver.closed == 1
    with pytest.raises(SessionNotRunning):
        lifecycle.page()


def test_stop_is_idempotent_and_resets_flags() -> None:
    driver = FakeDriver(FakePage())
    lifecycle = SessionLifecycle(lambda: driver)
    stops: list[int] = []
    lifecycle.add_stop_listener(lambda: stops.append(1))

    assert lifecycle.stop() is False
    lifecycle.start()
    lifecycle.board_entered = True
    assert lifecycle.stop() is True
    assert lifecycle.stop() is False

    assert lifecycle.board_entered is False
    assert driver.closed == 1
    assert stops == [1]


def test_stop_survives_close_errors() -> None:
    class BrokenDriver(FakeDriver):
        def close(self) -> None:
            raise RuntimeError("socket already gone")

    lifecycle = SessionLifecycle(lambda: BrokenDriver(FakePage()))
    lifecycle.start()
    assert lifecycle.stop() is True
    assert lifecycle.state is SessionState.STOPPED


def test_restart_after_stop_uses_fresh_driver() -> None:
    make, made = _factory(FakeDriver(FakePage()), FakeDriver(FakePage()))
    lifecycle = SessionLifecycle(make)
    lifecycle.start()
    lifecycle.stop()
    lifecycle.start()
    assert len(made) == 2
    assert lifecycle.page() is made[1]
