"""Cooperative timers used by the render loop and the scanner.

Hosts supply a Scheduler: the Qt window uses QTimer, the HTTP server uses the
asyncio loop. Every callback runs on the host's event thread.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        # Without a pinned loop, timers go to the loop running the caller.
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay_s)), callback)
