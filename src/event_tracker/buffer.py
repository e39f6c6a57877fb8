"""Event buffer with length- and timer-driven flushing."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .envelope import EventEnvelope
from .scheduling import ScheduledTask, Scheduler, ThreadScheduler


logger = logging.getLogger(__name__)


Batch = tuple[EventEnvelope, ...]


class BufferState(str, Enum):
    EMPTY = "empty"                   # Nothing buffered, no timer
    ACCUMULATING = "accumulating"     # Events buffered, no timer armed
    FLUSH_PENDING = "flush_pending"   # Events buffered, flush timer armed


class FlushReason(str, Enum):
    LENGTH = "length"
    TIMER = "timer"
    MANUAL = "manual"
    IMMEDIATE = "immediate"   # buffer_timeout_ms == 0
    CLOSED = "closed"         # append after close()


@dataclass
class EventBuffer:
    """
    Accumulates envelopes and hands them to ``on_flush`` in batches.

    A batch is flushed when:
    - the buffer reaches ``buffer_length`` (checked on every append)
    - ``buffer_timeout_ms`` has elapsed since the buffer became non-empty
    - ``flush()`` is called

    ``buffer_timeout_ms == 0`` flushes every append as a batch of one and
    never arms a timer. A flush takes exactly what is buffered at that moment
    and cancels the timer; the next append into the empty buffer re-arms it.
    """
    buffer_length: int = 40
    buffer_timeout_ms: int = 100

    # Receives each batch; errors propagate to the flushing caller
    on_flush: Callable[[Batch], None] | None = None

    scheduler: Scheduler = field(default_factory=ThreadScheduler)

    # Internal state
    _buffer: list[EventEnvelope] = field(default_factory=list, init=False)
    _timer: ScheduledTask | None = field(default=None, init=False)
    _timer_generation: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _closed: bool = field(default=False, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "batches_flushed": 0,
            "events_flushed": 0,
            "length_flushes": 0,
            "timer_flushes": 0,
            "manual_flushes": 0,
            "immediate_flushes": 0,
            "closed_flushes": 0,
        }

    def append(self, envelope: EventEnvelope) -> None:
        """Add an envelope, flushing synchronously if a threshold is reached."""
        with self._lock:
            self._buffer.append(envelope)

            if self._closed:
                self._flush_locked(FlushReason.CLOSED)
            elif len(self._buffer) >= self.buffer_length:
                self._flush_locked(FlushReason.LENGTH)
            elif self.buffer_timeout_ms == 0:
                self._flush_locked(FlushReason.IMMEDIATE)
            elif len(self._buffer) == 1:
                self._arm_timer()

    def flush(self) -> Batch:
        """Flush everything buffered now. No-op on an empty buffer."""
        with self._lock:
            return self._flush_locked(FlushReason.MANUAL)

    def close(self) -> Batch:
        """Flush remaining envelopes; later appends flush immediately."""
        with self._lock:
            self._closed = True
            batch = self._flush_locked(FlushReason.MANUAL)
        logger.debug(f"Event buffer closed. Stats: {self._stats}")
        return batch

    def _flush_locked(self, reason: FlushReason) -> Batch:
        """Flush while holding the lock."""
        if not self._buffer:
            return ()

        batch = tuple(self._buffer)
        self._buffer = []
        self._cancel_timer()

        self._stats["batches_flushed"] += 1
        self._stats["events_flushed"] += len(batch)
        self._stats[f"{reason.value}_flushes"] += 1
        logger.debug(f"Flushing {len(batch)} event(s) ({reason.value})")

        if self.on_flush is None:
            logger.warning("No flush handler configured, discarding batch")
        else:
            self.on_flush(batch)
        return batch

    def _arm_timer(self) -> None:
        self._cancel_timer()
        generation = self._timer_generation

        def fire() -> None:
            self._on_timer(generation)

        self._timer = self.scheduler.call_later(self.buffer_timeout_ms / 1000.0, fire)

    def _cancel_timer(self) -> None:
        # Bumping the generation also disarms a thread timer that already fired
        # and is waiting on the lock.
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation:
                return
            self._timer = None
            try:
                self._flush_locked(FlushReason.TIMER)
            except Exception:
                logger.exception("Timed flush of event buffer failed")

    @property
    def state(self) -> BufferState:
        with self._lock:
            if not self._buffer:
                return BufferState.EMPTY
            if self._timer is not None:
                return BufferState.FLUSH_PENDING
            return BufferState.ACCUMULATING

    @property
    def size(self) -> int:
        """Current number of buffered envelopes."""
        return len(self._buffer)

    @property
    def pending(self) -> Batch:
        """Snapshot of the buffered envelopes."""
        with self._lock:
            return tuple(self._buffer)

    @property
    def stats(self) -> dict:
        """Get buffer statistics."""
        return {
            **self._stats,
            "buffer_size": self.size,
            "state": self.state.value,
        }
