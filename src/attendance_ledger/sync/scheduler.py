from __future__ import annotations

import threading
from typing import Callable, Protocol


class ScheduledCall(Protocol):
    def cancel(self) -> None:
        raise NotImplementedError


class Scheduler(Protocol):
    """Runs a callback after a delay; injectable so tests control the clock."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    """Background timers on daemon threads (`threading.Timer`)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        timer = threading.Timer(max(0.0, float(delay)), callback)
        timer.daemon = True
        timer.start()
        return timer
