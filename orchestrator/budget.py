"""Wall-clock budget for one invocation."""

from __future__ import annotations

import time
from typing import Callable, Optional


def within_budget(start: float, ceiling: float, now: float) -> bool:
    return (now - start) < ceiling


class TimeBudget:
    """Elapsed-time check against a soft ceiling set below the host's hard limit."""

    def __init__(self, ceiling_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ceiling_seconds = float(ceiling_seconds)
        self._clock = clock
        self._started: Optional[float] = None

    def start(self) -> float:
        self._started = self._clock()
        return self._started

    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return max(0.0, self._clock() - self._started)

    def remaining(self) -> float:
        return max(0.0, self.ceiling_seconds - self.elapsed())

    def within(self) -> bool:
        if self._started is None:
            return True
        return within_budget(self._started, self.ceiling_seconds, self._clock())
