"""Bounded polling shared by every wait in the softphone core."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class PollResult(Generic[T]):
    ok: bool
    value: T | None
    attempts: int
    elapsed: float


def wait_until(
    probe: Callable[[], T],
    *,
    timeout: float,
    interval: float,
    done: Callable[[T], bool] = bool,
    on_miss: Callable[[T, int], Any] | None = None,
) -> PollResult[T]:
    """
    Call ``probe`` until ``done(value)`` holds or ``timeout`` elapses.

    The probe always runs at least once. ``on_miss`` sees each unsatisfied
    value (for progress logging) before the loop sleeps ``interval``.
    """
    start = time.monotonic()
    attempts = 0
    value: T | None = None
    while True:
        attempts += 1
        value = probe()
        if done(value):
            return PollResult(True, value, attempts, time.monotonic() - start)
        if on_miss is not None:
            on_miss(value, attempts)
        if time.monotonic() - start + interval > timeout:
            return PollResult(False, value, attempts, time.monotonic() - start)
        time.sleep(interval)


__all__ = ["PollResult", "wait_until"]
