"""Wall clock abstraction so time-dependent logic can be tested."""

from __future__ import annotations

import time
from datetime import date
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current time in epoch milliseconds."""
        ...

    def today(self) -> date:
        ...


class SystemClock:
    def now(self) -> int:
        return time.time_ns() // 1_000_000

    def today(self) -> date:
        return date.today()
