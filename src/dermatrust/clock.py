"""Logical clock — host-supplied, monotonically non-decreasing time.

The registry never reads wall-clock time. Hosts inject any object with a
now() -> int method (a block height, a sequence number, epoch seconds).
ManualClock is the in-process implementation used by embedding hosts
and tests.
"""

from __future__ import annotations

from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class ManualClock:
    """A clock advanced explicitly by its owner.

    Usage:
        clock = ManualClock(start=100)
        clock.advance()      # 101
        clock.set(150)
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError(f"Clock start must be non-negative, got {start}")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, ticks: int = 1) -> int:
        if ticks < 0:
            raise ValueError(f"Clock cannot move backwards (ticks={ticks})")
        self._now += ticks
        return self._now

    def set(self, value: int) -> None:
        if value < self._now:
            raise ValueError(f"Clock cannot move backwards: {value} < {self._now}")
        self._now = value
