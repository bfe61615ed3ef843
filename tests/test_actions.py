from __future__ import annotations

import pytest
from conftest import FakeClock, FakeDriver, FakePage, fast_config, line, snapshot

from mcp_servers.telepath.actions import CallControl
from mcp_servers.telepath.errors import ElementNotFound, NoActiveCall, RegistrationTimeout
from mcp_servers.telepath.lifecycle import SessionLifecycle
from mcp_servers.telepath.registration import RegistrationPoller

A = "+12098881001"
B = "+12098881002"
TARGET = "+12128881843"


def _control(page: FakePage) -> CallControl:
    lifecycle = SessionLifecycle(lambda: FakeDriver(page))
    lifecycle.start()
    lifecycle.board_entered = True
    config = fast_config()
    return CallControl(RegistrationPoller(lifecycle, config), config)


# ═══════════════════════════════════════════════════════════════════════════════
# DIAL
# ═══════════════════════════════════════════════════════════════════════════════


def test_dial_fills_the_line_input(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(A, depth=4), line(B))])
    result = _control(page).dial(A, TARGET)
    assert result == {"success": True, "from": A, "to": TARGET}
    assert ("dial", (A, TARGET, 4)) in page.calls
    assert fake_clock.sleeps[0] == 2.0
    assert fake_clock.sleeps[-1] == 2.0


def test_dial_unknown_number_leaves_page_untouched(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(B))])
    with pytest.raises(ElementNotFound) as err:
        _control(page).dial(A, TARGET)
    assert A in err.value.message
    assert "dial" not in page.names()
    assert "click_button" not in page.names()


def test_dial_waits_out_registration(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(A, "Registering..."))])
    with pytest.raises(RegistrationTimeout) as err:
        _control(page).dial(A, TARGET)
    assert err.value.number == A
    assert "dial" not in page.names()


def test_dial_without_button_is_element_not_found(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(A, buttons=0))])
    with pytest.raises(ElementNotFound, match="Dial button"):
        _control(page).dial(A, TARGET)
    assert "dial" not in page.names()


def test_dial_script_failure_maps_reason(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(A))], dial={"ok": False, "reason": "input"})
    with pytest.raises(ElementNotFound, match="Dial input"):
        _control(page).dial(A, TARGET)


# ═══════════════════════════════════════════════════════════════════════════════
# HANGUP
# ═══════════════════════════════════════════════════════════════════════════════


def test_hangup_clicks_button_before_add_new_call(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(A, "00:00:07"), buttons=["", "Hold", "", "Add New Call"], body_text="00:00:07")])
    assert _control(page).hangup() == {"success": True, "method": "button-before-add-new-call"}
    assert page.calls[-1] == ("click_button", (2, ""))


def test_hangup_falls_back_when_click_goes_stale(fake_clock: FakeClock) -> None:
    page = FakePage(
        [snapshot(buttons=["Mute", "", "Add New Call", "", "x", ""], body_text="00:00:07")],
        click_button=[False, True],
    )
    assert _control(page).hangup() == {"success": True, "method": "last-empty-button"}
    assert [args for name, args in page.calls if name == "click_button"] == [(1, ""), (5, "")]


def test_hangup_without_call_raises(fake_clock: FakeClock) -> None:
    page = FakePage([snapshot(line(A), buttons=["Settings", ""])])
    with pytest.raises(NoActiveCall):
        _control(page).hangup()
    assert "click_button" not in page.names()
