"""Test doubles for the tracker's injected collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from event_tracker.transport import OutboundRequest


@dataclass
class FakeTask:
    """A scheduled callback that only runs when the test fires it."""
    delay: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler that records timers instead of running them."""

    def __init__(self):
        self.tasks: list[FakeTask] = []

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> FakeTask:
        task = FakeTask(delay_seconds, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[FakeTask]:
        return [t for t in self.tasks if not t.cancelled and not t.fired]

    def fire_pending(self) -> None:
        """Run every armed, uncancelled timer (as if its delay elapsed)."""
        for task in self.pending:
            task.fired = True
            task.callback()


class RecordingTransport:
    """Transport that keeps every request it is handed."""

    def __init__(self):
        self.requests: list[OutboundRequest] = []

    def __call__(self, request: OutboundRequest) -> None:
        self.requests.append(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def fake_hash(secret: str, message: str) -> str:
    """Deterministic stand-in for an HMAC, with characters that need URL encoding."""
    return f"{secret}/{len(message)}+sig="
