from __future__ import annotations

import time


def now_ms() -> int:
    """Current UNIX time in milliseconds (int)."""
    return int(time.time() * 1000)


class ManualClock:
    """Settable millisecond clock shared by the vault and simulated backends."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def __call__(self) -> int:
        return self._now

    def set(self, ts_ms: int) -> int:
        if ts_ms < self._now:
            raise ValueError(f"clock cannot move backwards ({ts_ms} < {self._now})")
        self._now = int(ts_ms)
        return self._now

    def advance(self, delta_ms: int) -> int:
        return self.set(self._now + int(delta_ms))


__all__ = ["now_ms", "ManualClock"]
