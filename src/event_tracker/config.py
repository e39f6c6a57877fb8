"""Tracker configuration."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import asdict, dataclass
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_BUFFER_TIMEOUT_MS = 100
DEFAULT_BUFFER_LENGTH = 40

# Client names are letters and digits only
CLIENT_NAME_PATTERN = re.compile(r"[A-Za-z0-9]+")

ENV_PREFIX = "EVENT_TRACKER_"

CREDENTIAL_FIELDS = ("client_key", "client_secret", "endpoint", "client_name")

# Accepted option spellings -> field name
OPTION_ALIASES = {
    "client_key": "client_key",
    "clientKey": "client_key",
    "key": "client_key",
    "client_secret": "client_secret",
    "clientSecret": "client_secret",
    "secret": "client_secret",
    "endpoint": "endpoint",
    "url": "endpoint",
    "client_name": "client_name",
    "clientName": "client_name",
    "buffer_timeout_ms": "buffer_timeout_ms",
    "bufferTimeoutMs": "buffer_timeout_ms",
    "bufferTimeout": "buffer_timeout_ms",
    "buffer_length": "buffer_length",
    "bufferLength": "buffer_length",
    "append_client_context": "append_client_context",
    "appendClientContext": "append_client_context",
    "debug_mode": "debug_mode",
    "debugMode": "debug_mode",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class TrackerConfig:
    """
    Resolved, immutable tracker configuration.

    ``resolve_config`` (or ``from_dict``/``from_yaml``) applies aliases and the
    environment; direct construction gets the same validation. Numeric
    credentials become strings, and missing credentials force debug mode.
    """
    client_key: str | None = None
    client_secret: str | None = None
    endpoint: str | None = None
    client_name: str | None = None

    # 0 = flush on every track call
    buffer_timeout_ms: int = DEFAULT_BUFFER_TIMEOUT_MS
    buffer_length: int = DEFAULT_BUFFER_LENGTH

    append_client_context: bool = False

    # Log batches instead of sending them
    debug_mode: bool = True

    def __post_init__(self):
        for name in CREDENTIAL_FIELDS:
            object.__setattr__(self, name, _as_credential(getattr(self, name), name))

        if self.client_name is not None and not CLIENT_NAME_PATTERN.fullmatch(self.client_name):
            raise ConfigurationError(
                f"Invalid client name {self.client_name!r}, please use only letters or numbers"
            )

        if isinstance(self.buffer_timeout_ms, bool) or not isinstance(self.buffer_timeout_ms, int):
            raise ConfigurationError(f"buffer_timeout_ms must be an integer, got {self.buffer_timeout_ms!r}")
        if self.buffer_timeout_ms < 0:
            raise ConfigurationError(f"buffer_timeout_ms must be >= 0, got {self.buffer_timeout_ms}")

        if isinstance(self.buffer_length, bool) or not isinstance(self.buffer_length, int):
            raise ConfigurationError(f"buffer_length must be an integer, got {self.buffer_length!r}")
        if self.buffer_length < 1:
            raise ConfigurationError(f"buffer_length must be >= 1, got {self.buffer_length}")

        missing = self.missing_fields
        if missing and not self.debug_mode:
            logger.warning(
                f"Missing {', '.join(missing)}; forcing debug mode, events will be logged, not sent"
            )
            object.__setattr__(self, "debug_mode", True)

    @property
    def missing_fields(self) -> tuple[str, ...]:
        """Credential fields that are not set."""
        return tuple(name for name in CREDENTIAL_FIELDS if not getattr(self, name))

    @property
    def buffer_timeout_seconds(self) -> float:
        return self.buffer_timeout_ms / 1000.0

    def to_dict(self) -> dict[str, Any]:
        """Dictionary form with the secret masked."""
        data = asdict(self)
        if data["client_secret"]:
            data["client_secret"] = "***"
        return data

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        environ: Mapping[str, str] | None = None,
        has_context_provider: bool = False,
    ) -> TrackerConfig:
        """Create config from a dictionary of options."""
        return resolve_config(data, environ, has_context_provider=has_context_provider)

    @classmethod
    def from_yaml(cls, path: str, environ: Mapping[str, str] | None = None) -> TrackerConfig:
        """Load config from YAML file."""
        return cls.from_dict(load_options_file(path), _environ_or_process(environ))

    @classmethod
    def from_json(cls, path: str, environ: Mapping[str, str] | None = None) -> TrackerConfig:
        """Load config from JSON file."""
        return cls.from_dict(load_options_file(path), _environ_or_process(environ))


def load_options_file(path: str) -> dict[str, Any]:
    """Raw tracker options from a YAML or JSON file (by extension)."""
    with open(path, "r") as f:
        if path.endswith(".json"):
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Tracker config file {path} must contain a mapping")
    return data


def environment_snapshot() -> dict[str, str]:
    """The EVENT_TRACKER_* variables of the current process."""
    return {k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)}


def _environ_or_process(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return environ if environ is not None else environment_snapshot()


def resolve_config(
    options: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    has_context_provider: bool = False,
) -> TrackerConfig:
    """
    Resolve explicit options and an environment snapshot into a TrackerConfig.

    Pure: only ``options`` and ``environ`` are consulted, and explicit
    options win over the environment. ``has_context_provider`` stands in for
    "running in a host that can report client context" and makes
    ``append_client_context`` default to True.

    Missing credentials force debug mode with a warning; malformed values
    raise ConfigurationError.
    """
    explicit = normalize_options(options or {})
    env = environ or {}

    def option(name: str) -> Any:
        if name in explicit:
            return explicit[name]
        return env.get(ENV_PREFIX + name.upper())

    buffer_timeout_ms = _as_int(option("buffer_timeout_ms"), "buffer_timeout_ms", DEFAULT_BUFFER_TIMEOUT_MS)
    buffer_length = _as_int(option("buffer_length"), "buffer_length", DEFAULT_BUFFER_LENGTH)

    append_client_context = _as_bool(
        option("append_client_context"), "append_client_context", has_context_provider
    )

    # Validation and the degrade-to-debug rule live in TrackerConfig.__post_init__
    return TrackerConfig(
        client_key=option("client_key"),
        client_secret=option("client_secret"),
        endpoint=option("endpoint"),
        client_name=option("client_name"),
        buffer_timeout_ms=buffer_timeout_ms,
        buffer_length=buffer_length,
        append_client_context=append_client_context,
        debug_mode=_resolve_debug_mode(explicit, env),
    )


def normalize_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Map accepted option spellings to field names, dropping None values."""
    normalized: dict[str, Any] = {}
    for key, value in options.items():
        name = OPTION_ALIASES.get(key)
        if name is None:
            raise ConfigurationError(f"Unknown tracker option: {key!r}")
        if value is not None:
            normalized[name] = value
    return normalized


def _resolve_debug_mode(explicit: Mapping[str, Any], env: Mapping[str, str]) -> bool:
    """Debug unless told otherwise: explicit option, EVENT_TRACKER_DEBUG, or ENV=production."""
    if "debug_mode" in explicit:
        return _as_bool(explicit["debug_mode"], "debug_mode", True)
    if env.get(ENV_PREFIX + "DEBUG") is not None:
        return _as_bool(env[ENV_PREFIX + "DEBUG"], "debug_mode", True)
    return env.get(ENV_PREFIX + "ENV", "").strip().lower() != "production"


def _as_int(value: Any, name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _as_bool(value: Any, name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _as_credential(value: Any, name: str) -> str | None:
    """Credentials are strings; numbers (e.g. a numeric YAML secret) are converted."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ConfigurationError(f"{name} must be a string, got {type(value).__name__}")
