"""Tracker facade: validates configuration and wires builder, buffer and dispatcher."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .buffer import EventBuffer
from .config import TrackerConfig, environment_snapshot, resolve_config
from .context import ContextProvider
from .dispatcher import Dispatcher
from .envelope import EnvelopeBuilder, EventEnvelope
from .errors import ConfigurationError
from .ids import IdGenerator, generate_id
from .scheduling import Scheduler, default_scheduler
from .signing import HashFunction
from .transport import CompletionCallback, Transport


logger = logging.getLogger(__name__)


class Tracker:
    """
    Buffered, signed event tracker.

    Usage:
        tracker = Tracker(
            client_key="ab42sdfsafsc",
            client_secret="s3cret",
            endpoint="https://collector.example/v1",
            client_name="mweb",
            debug_mode=False,
            transport=HttpxTransport(),
            calculate_hash=hmac_sha256_hex,
        )
        tracker.track("mod_events", "ban", {"subreddit": "pics"})

        # Before shutdown
        tracker.send()

    ``transport`` and ``calculate_hash`` are required. Missing credentials
    (key, secret, endpoint, client name) put the tracker in debug mode,
    where batches are logged instead of sent.
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        transport: Transport | None = None,
        calculate_hash: HashFunction | None = None,
        context_provider: ContextProvider | None = None,
        scheduler: Scheduler | None = None,
        id_generator: IdGenerator | None = None,
        on_complete: CompletionCallback | None = None,
        environ: Mapping[str, str] | None = None,
        **options: Any,
    ):
        # camelCase option names for the two collaborators; the snake_case
        # argument wins when both are given
        post_data = options.pop("postData", None)
        hash_alias = options.pop("calculateHash", None)
        transport = transport or post_data
        calculate_hash = calculate_hash or hash_alias

        if transport is None:
            raise ConfigurationError("Missing transport; pass the function that POSTs batches")
        if calculate_hash is None:
            raise ConfigurationError("Missing calculate_hash; pass an HMAC function (secret, message) -> str")

        if config is None:
            if environ is None:
                environ = environment_snapshot()
            config = resolve_config(
                options, environ, has_context_provider=context_provider is not None
            )
        elif options:
            raise ConfigurationError(
                f"Pass either a TrackerConfig or options, not both: {sorted(options)}"
            )

        self.config = config

        self._builder = EnvelopeBuilder(
            client_name=config.client_name or "",
            append_client_context=config.append_client_context,
            context_provider=context_provider,
            id_generator=id_generator or generate_id,
        )
        self._dispatcher = Dispatcher(
            config=config,
            transport=transport,
            calculate_hash=calculate_hash,
            on_complete=on_complete,
        )
        self._buffer = EventBuffer(
            buffer_length=config.buffer_length,
            buffer_timeout_ms=config.buffer_timeout_ms,
            on_flush=self._dispatcher.dispatch,
            scheduler=scheduler or default_scheduler(),
        )

        if config.debug_mode:
            logger.info(f"Event tracker {config.client_name or '<unnamed>'} running in debug mode")

    def track(
        self,
        topic: str,
        type: str,
        payload: Mapping[str, Any] | None = None,
    ) -> EventEnvelope:
        """
        Record an event.

        Args:
            topic: Event topic, e.g. "mod_events"
            type: Event type within the topic, e.g. "ban"
            payload: Extra data; "id"/"uuid" keys set the event id

        Returns:
            The envelope that was buffered
        """
        envelope = self._builder.build(topic, type, payload)
        self._buffer.append(envelope)
        return envelope

    def send(self) -> None:
        """Flush the buffer now, regardless of thresholds."""
        self._buffer.flush()

    def close(self) -> None:
        """Flush remaining events and stop the flush timer."""
        self._buffer.close()
        logger.debug(f"Event tracker closed. Stats: {self.stats}")

    def __enter__(self) -> Tracker:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def debug_mode(self) -> bool:
        return self.config.debug_mode

    @property
    def buffer(self) -> tuple[EventEnvelope, ...]:
        """Events waiting to be flushed."""
        return self._buffer.pending

    @property
    def stats(self) -> dict:
        """Buffer and dispatcher statistics."""
        return {
            **self._buffer.stats,
            **self._dispatcher.stats,
        }
