"""Cancellable scheduled tasks for the flush timer."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Protocol


logger = logging.getLogger(__name__)


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay; the returned task can be cancelled."""

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledTask: ...


@dataclass
class AsyncioScheduler:
    """
    Schedules callbacks on an asyncio event loop.

    Uses the running loop at call time when no loop is given, so trackers
    created outside a coroutine still pick up the loop they are used from.
    """
    loop: asyncio.AbstractEventLoop | None = None

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(delay_seconds, callback)


class ThreadScheduler:
    """Schedules callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        return timer


def default_scheduler() -> AsyncioScheduler | ThreadScheduler:
    """Bind to the running event loop if there is one, else use timer threads."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop, using thread timers")
        return ThreadScheduler()
    return AsyncioScheduler(loop=loop)
