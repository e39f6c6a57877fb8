"""Event envelopes and the builder that produces them."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from .context import ContextProvider, coerce_context
from .ids import IdGenerator, generate_id


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EventEnvelope:
    """
    A single formatted event, ready for transmission.

    ``timestamp`` is wall-clock epoch seconds (fractional). ``type`` already
    carries the client name prefix ("mweb.ban").
    """
    topic: str
    type: str
    timestamp: float
    id: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation of the envelope."""
        return {
            "event_topic": self.topic,
            "event_type": self.type,
            "event_ts": self.timestamp,
            "uuid": self.id,
            "payload": self.payload,
        }


def utc_offset_minutes(now: float) -> int:
    """Offset of the local clock from UTC in minutes east of UTC (CET -> 60)."""
    offset = datetime.fromtimestamp(now).astimezone().utcoffset()
    if offset is None:
        return 0
    return int(offset.total_seconds() // 60)


@dataclass
class EnvelopeBuilder:
    """
    Turns (topic, type, payload) into an EventEnvelope.

    Enrichment:
    - id: ``payload["id"]``, then ``payload["uuid"]``, else generated
    - timestamp: wall clock at build time
    - ``payload["utc_offset"]``: local offset from UTC in minutes
    - client context fields nested under payload, when enabled

    Keys the caller put in the payload always win over derived fields.
    """
    client_name: str
    append_client_context: bool = False
    context_provider: ContextProvider | None = None
    id_generator: IdGenerator = generate_id
    clock: Callable[[], float] = time.time

    def build(
        self,
        topic: str,
        type: str,
        payload: Mapping[str, Any] | None = None,
    ) -> EventEnvelope:
        data = dict(payload or {})
        now = self.clock()

        event_id = data.get("id") or data.get("uuid") or self.id_generator()
        data.setdefault("utc_offset", utc_offset_minutes(now))

        if self.append_client_context:
            for key, value in self._client_context().items():
                data.setdefault(key, value)

        return EventEnvelope(
            topic=topic,
            type=f"{self.client_name}.{type}",
            timestamp=now,
            id=event_id,
            payload=data,
        )

    def _client_context(self) -> dict[str, str]:
        if self.context_provider is None:
            logger.debug("Client context enabled but no provider configured")
            return {}
        return coerce_context(self.context_provider()).to_payload()
