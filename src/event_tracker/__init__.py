"""
Event Tracker - buffered, signed event telemetry for client applications.

Application code reports discrete events (topic + type + payload); the
tracker enriches them, batches them and ships each batch to a collector
with an HMAC-signed URL.

Usage:
    from event_tracker import Tracker, HttpxTransport, hmac_sha256_hex

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
    tracker.send()
"""

from .buffer import BufferState, EventBuffer
from .config import TrackerConfig, resolve_config
from .context import (
    ClientContext,
    NullContextProvider,
    RequestContextProvider,
    StaticContextProvider,
)
from .dispatcher import Dispatcher
from .envelope import EnvelopeBuilder, EventEnvelope
from .errors import ConfigurationError, TrackerError
from .ids import generate_id
from .scheduling import AsyncioScheduler, ThreadScheduler, default_scheduler
from .signing import hmac_sha256_hex, sign_url
from .tracker import Tracker
from .transport import AsyncHttpxTransport, HttpxTransport, OutboundRequest

__version__ = "0.1.0"

__all__ = [
    # Facade
    "Tracker",
    "TrackerConfig",
    "resolve_config",
    # Core
    "EventEnvelope",
    "EnvelopeBuilder",
    "EventBuffer",
    "BufferState",
    "Dispatcher",
    # Collaborators
    "ClientContext",
    "NullContextProvider",
    "StaticContextProvider",
    "RequestContextProvider",
    "OutboundRequest",
    "HttpxTransport",
    "AsyncHttpxTransport",
    "AsyncioScheduler",
    "ThreadScheduler",
    "default_scheduler",
    "generate_id",
    "hmac_sha256_hex",
    "sign_url",
    # Exceptions
    "TrackerError",
    "ConfigurationError",
]
