"""
Heuristic classifiers over a structural snapshot of the Telepath page.

The console exposes no status API, so registration and call state are read
from unlabeled markup. Everything here is a pure function of ``PageSnapshot``
and can be exercised without a browser.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import ElementNotFound
from .models import CallState, CallStatus, LineState, LineStatus, RegistrationState
from .page_scripts import PHONE_CELL_PATTERN

CALL_TIMER_RE = re.compile(r"\d{2}:\d{2}:\d{2}")
PHONE_CELL_RE = re.compile(PHONE_CELL_PATTERN)

REGISTERING_MARKER = "registering"
RINGING_MARKERS = ("Ringing", "Incoming")
IN_CALL_MARKERS = ("Calling", "Add New Call")
ADD_NEW_CALL = "Add New Call"
CALL_CONTROL_BUTTONS = frozenset({"Transfer", "Hold", "Park", "Dialpad", ADD_NEW_CALL})
HANGUP_LOOKBACK = 3
MIN_BOARD_TEXT_INPUTS = 3


@dataclass(frozen=True)
class InputInfo:
    width: float = 0.0
    height: float = 0.0
    buttons: int = 0

    @property
    def visible(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class Ancestor:
    depth: int
    text: str = ""
    input: InputInfo | None = None


@dataclass(frozen=True)
class LineCard:
    """A phone-number cell plus its ancestor chain up to the first input."""

    number: str
    chain: tuple[Ancestor, ...] = ()

    @property
    def card(self) -> Ancestor | None:
        """Nearest ancestor holding an input, else the outermost one walked."""
        for ancestor in self.chain:
            if ancestor.input is not None:
                return ancestor
        return self.chain[-1] if self.chain else None

    @property
    def input(self) -> InputInfo | None:
        card = self.card
        return card.input if card is not None else None


@dataclass(frozen=True)
class Button:
    index: int
    text: str = ""


@dataclass(frozen=True)
class PageSnapshot:
    lines: tuple[LineCard, ...] = ()
    buttons: tuple[Button, ...] = ()
    body_text: str = ""
    text_inputs: int = 0

    @classmethod
    def from_dict(cls, raw: Any) -> PageSnapshot:
        if not isinstance(raw, dict):
            return cls()
        lines: list[LineCard] = []
        for item in raw.get("lines") or []:
            if not isinstance(item, dict):
                continue
            number = str(item.get("number") or "").strip()
            if not PHONE_CELL_RE.match(number):
                continue
            chain = tuple(_parse_ancestor(a) for a in item.get("chain") or [] if isinstance(a, dict))
            lines.append(LineCard(number=number, chain=chain))
        buttons = tuple(
            Button(index=int(b.get("index", i)), text=str(b.get("text") or "").strip())
            for i, b in enumerate(raw.get("buttons") or [])
            if isinstance(b, dict)
        )
        return cls(
            lines=tuple(lines),
            buttons=buttons,
            body_text=str(raw.get("bodyText") or ""),
            text_inputs=int(raw.get("textInputs") or 0),
        )

    def find_line(self, number: str) -> LineCard | None:
        for line in self.lines:
            if line.number == number:
                return line
        return None


def _parse_ancestor(raw: dict[str, Any]) -> Ancestor:
    inp = raw.get("input")
    info = None
    if isinstance(inp, dict):
        info = InputInfo(
            width=float(inp.get("width") or 0),
            height=float(inp.get("height") or 0),
            buttons=int(inp.get("buttons") or 0),
        )
    return Ancestor(depth=int(raw.get("depth") or 0), text=str(raw.get("text") or ""), input=info)


# ─────────────────────────────────────────────────────────────────────────────
# Registration & line state
# ─────────────────────────────────────────────────────────────────────────────


def is_board_displayed(snapshot: PageSnapshot) -> bool:
    return snapshot.text_inputs >= MIN_BOARD_TEXT_INPUTS


def registration_state(line: LineCard) -> RegistrationState:
    card = line.card
    if card is None:
        return RegistrationState.UNKNOWN
    registering = REGISTERING_MARKER in card.text.lower()
    if card.input is not None and card.input.visible and not registering:
        return RegistrationState.IDLE
    return RegistrationState.REGISTERING


def is_line_ready(line: LineCard) -> bool:
    return registration_state(line) is RegistrationState.IDLE


def classify_line(line: LineCard) -> LineStatus:
    card = line.card
    if card is None:
        return LineStatus(line.number, LineState.UNKNOWN)
    text = card.text
    if any(marker in text for marker in RINGING_MARKERS):
        state = LineState.RINGING
    elif any(marker in text for marker in IN_CALL_MARKERS) or CALL_TIMER_RE.search(text):
        state = LineState.IN_CALL
    elif card.input is not None and card.input.visible:
        state = LineState.IDLE
    else:
        state = LineState.REGISTERING
    return LineStatus(line.number, state)


def classify_lines(snapshot: PageSnapshot) -> list[LineStatus]:
    return [classify_line(line) for line in snapshot.lines]


def classify_call(snapshot: PageSnapshot) -> CallStatus:
    if not any(b.text in CALL_CONTROL_BUTTONS for b in snapshot.buttons):
        return CallStatus(CallState.IDLE)
    text = snapshot.body_text
    if "Ringing" in text:
        return CallStatus(CallState.RINGING)
    if "Calling" in text:
        return CallStatus(CallState.CALLING)
    if "On Hold" in text:
        return CallStatus(CallState.HOLD)
    return CallStatus(CallState.CONNECTED)


# ─────────────────────────────────────────────────────────────────────────────
# Dial target
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DialTarget:
    number: str
    depth: int


def locate_dial_target(snapshot: PageSnapshot, number: str) -> DialTarget:
    """Find the ancestor depth of the dial input for ``number``."""
    line = snapshot.find_line(number)
    if line is None:
        raise ElementNotFound(f"Phone number {number} not found on the board", details={"number": number})
    for ancestor in line.chain:
        if ancestor.input is None:
            continue
        if ancestor.input.buttons <= 0:
            raise ElementNotFound(
                f"Dial button not found next to the input of {number}", details={"number": number}
            )
        return DialTarget(number=number, depth=ancestor.depth)
    raise ElementNotFound(f"Dial input not found for {number}", details={"number": number})


# ─────────────────────────────────────────────────────────────────────────────
# Hangup strategies
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HangupStrategy:
    name: str
    locate: Callable[[PageSnapshot], Button | None] = field(repr=False)


def _button_before_add_new_call(snapshot: PageSnapshot) -> Button | None:
    buttons = snapshot.buttons
    anchor = next((i for i, b in enumerate(buttons) if b.text == ADD_NEW_CALL), -1)
    if anchor <= 0:
        return None
    for i in range(anchor - 1, max(-1, anchor - 1 - HANGUP_LOOKBACK), -1):
        if not buttons[i].text:
            return buttons[i]
    return None


def _last_empty_button(snapshot: PageSnapshot) -> Button | None:
    if not CALL_TIMER_RE.search(snapshot.body_text):
        return None
    empty = [b for b in snapshot.buttons if not b.text]
    return empty[-1] if empty else None


HANGUP_STRATEGIES: tuple[HangupStrategy, ...] = (
    HangupStrategy("button-before-add-new-call", _button_before_add_new_call),
    HangupStrategy("last-empty-button", _last_empty_button),
)


def hangup_candidates(
    snapshot: PageSnapshot, strategies: tuple[HangupStrategy, ...] = HANGUP_STRATEGIES
) -> list[tuple[HangupStrategy, Button]]:
    """Buttons each strategy picks, in strategy order; strategies that find nothing are skipped."""
    found = []
    for strategy in strategies:
        button = strategy.locate(snapshot)
        if button is not None:
            found.append((strategy, button))
    return found


__all__ = [
    "HANGUP_STRATEGIES",
    "Ancestor",
    "Button",
    "DialTarget",
    "HangupStrategy",
    "InputInfo",
    "LineCard",
    "PageSnapshot",
    "classify_call",
    "classify_line",
    "classify_lines",
    "hangup_candidates",
    "is_board_displayed",
    "is_line_ready",
    "locate_dial_target",
    "registration_state",
]
