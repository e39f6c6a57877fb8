"""Builds signed collector requests from batches and hands them to the transport."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from .config import TrackerConfig
from .envelope import EventEnvelope
from .signing import HashFunction, sign_url
from .transport import CompletionCallback, OutboundRequest, Transport


logger = logging.getLogger(__name__)


# text/plain keeps the POST a "simple" cross-origin request; collectors expect it
CONTENT_TYPE = "text/plain"


def serialize_batch(batch: Sequence[EventEnvelope]) -> str:
    """JSON array of wire-format envelopes."""
    return json.dumps(
        [envelope.to_dict() for envelope in batch],
        separators=(",", ":"),
        default=str,
    )


@dataclass
class Dispatcher:
    """
    Signs batches and passes them to the injected transport.

    The HMAC is computed over the serialized body with the client secret;
    the key and signature travel in the URL query. Fire-and-forget: no
    retries, and completion is only observable through ``on_complete``.

    In debug mode the transport is never called; the batch is logged.
    """
    config: TrackerConfig
    transport: Transport
    calculate_hash: HashFunction
    on_complete: CompletionCallback | None = None

    # Keeps scheduled transport coroutines alive until they finish
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "batches_sent": 0,
            "events_sent": 0,
            "batches_logged": 0,
        }

    def dispatch(self, batch: Sequence[EventEnvelope]) -> OutboundRequest | None:
        """Send (or, in debug mode, log) a batch. Returns the request handed off."""
        if not batch:
            return None

        if self.config.debug_mode:
            self._log_batch(batch)
            return None

        request = self.build_request(batch)
        result = self.transport(request)
        if inspect.isawaitable(result):
            self._schedule(result)

        self._stats["batches_sent"] += 1
        self._stats["events_sent"] += len(batch)
        return request

    def build_request(self, batch: Sequence[EventEnvelope]) -> OutboundRequest:
        """Serialize, sign and address a batch."""
        body = serialize_batch(batch)
        signature = self.calculate_hash(self.config.client_secret, body)
        return OutboundRequest(
            url=sign_url(self.config.endpoint, self.config.client_key, signature),
            body=body,
            headers={"Content-Type": CONTENT_TYPE},
            on_complete=self.on_complete,
        )

    def _schedule(self, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to hand it to: run the transport to completion here
            asyncio.run(_await(awaitable))
            return

        task = loop.create_task(_await(awaitable))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Event batch transport failed: {task.exception()}")

    def _log_batch(self, batch: Sequence[EventEnvelope]) -> None:
        topics = sorted({envelope.topic for envelope in batch})
        dump = json.dumps([envelope.to_dict() for envelope in batch], indent=2, default=str)
        logger.info(
            f"[debug] would send {len(batch)} event(s), topics: {', '.join(topics)}\n{dump}"
        )
        self._stats["batches_logged"] += 1

    @property
    def pending_tasks(self) -> int:
        """Transport coroutines still in flight."""
        return len(self._tasks)

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "pending_tasks": self.pending_tasks,
        }


async def _await(awaitable: Any) -> Any:
    return await awaitable
