"""Client context providers.

A context provider is a zero-argument callable returning the ambient facts
about the client an event came from: user agent, host, current path and,
when known, the referrer and preferred language. The envelope builder calls
it once per event when client context is enabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

from starlette.requests import Request


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientContext:
    """
    Ambient facts about the client.

    Any field may be empty in hosts that cannot supply it.
    """
    user_agent: str = ""
    host: str = ""
    # Path plus query string, e.g. "/r/pics?sort=new"
    path: str = ""
    # Full URL including fragment
    base_url: str | None = None
    referrer_host: str | None = None
    referrer_url: str | None = None
    language: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ClientContext:
        """Build from a plain mapping (camelCase or snake_case keys)."""
        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        return cls(
            user_agent=pick("user_agent", "userAgent") or "",
            host=pick("host", "domain") or "",
            path=pick("path") or "",
            base_url=pick("base_url", "baseUrl"),
            referrer_host=pick("referrer_host", "referrerHost"),
            referrer_url=pick("referrer_url", "referrerUrl"),
            language=pick("language"),
        )

    def to_payload(self) -> dict[str, str]:
        """Payload fields for this context; optional fields only when set."""
        fields = {
            "user_agent": self.user_agent,
            "domain": self.host,
            "path": self.path,
        }
        optional = {
            "base_url": self.base_url,
            "referrer_domain": self.referrer_host,
            "referrer_url": self.referrer_url,
            "language": self.language,
        }
        fields.update({k: v for k, v in optional.items() if v})
        return fields


ContextProvider = Callable[[], "ClientContext | Mapping[str, Any]"]


def coerce_context(value: ClientContext | Mapping[str, Any] | None) -> ClientContext:
    """Normalize whatever a provider returned into a ClientContext."""
    if value is None:
        return ClientContext()
    if isinstance(value, ClientContext):
        return value
    return ClientContext.from_mapping(value)


class NullContextProvider:
    """Provider for hosts with no client context (workers, batch jobs)."""

    def __call__(self) -> ClientContext:
        return ClientContext()


@dataclass(frozen=True)
class StaticContextProvider:
    """Provider that always reports the same context."""
    context: ClientContext

    def __call__(self) -> ClientContext:
        return self.context


@dataclass
class RequestContextProvider:
    """
    Extracts client context from the HTTP request currently being served.

    The request is looked up through ``get_request`` on every call so one
    provider can serve a whole application (e.g. backed by a contextvar set
    in middleware). Returns an empty context when no request is active.
    """
    get_request: Callable[[], Request | None]

    # Header names
    user_agent_header: str = "user-agent"
    referrer_header: str = "referer"
    language_header: str = "accept-language"

    def __call__(self) -> ClientContext:
        request = self.get_request()
        if request is None:
            logger.debug("No active request, reporting empty client context")
            return ClientContext()
        return self.extract(request)

    def extract(self, request: Request) -> ClientContext:
        """Build a ClientContext from a Starlette request."""
        url = request.url
        path = url.path
        if url.query:
            path = f"{path}?{url.query}"

        referrer_url = request.headers.get(self.referrer_header) or None
        referrer_host = None
        if referrer_url:
            referrer_host = urlsplit(referrer_url).netloc or None

        return ClientContext(
            user_agent=request.headers.get(self.user_agent_header, ""),
            host=request.headers.get("host") or url.netloc,
            path=path,
            base_url=str(url),
            referrer_host=referrer_host,
            referrer_url=referrer_url,
            language=self._primary_language(request.headers.get(self.language_header)),
        )

    @staticmethod
    def _primary_language(header: str | None) -> str | None:
        """First language tag of an Accept-Language header ("en-US,en;q=0.9" -> "en-US")."""
        if not header:
            return None
        first = header.split(",", 1)[0].split(";", 1)[0].strip()
        return first or None
