"""Outbound request type and HTTP transports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import httpx


logger = logging.getLogger(__name__)


# Called with (response, None) on completion or (None, error) on failure
CompletionCallback = Callable[["httpx.Response | None", "Exception | None"], None]


@dataclass(frozen=True)
class OutboundRequest:
    """A signed batch ready to be POSTed to the collector."""
    url: str
    body: str
    headers: Mapping[str, str] = field(default_factory=dict)
    on_complete: CompletionCallback | None = None


# Performs the POST; the return value is never interpreted
Transport = Callable[[OutboundRequest], Any]


@dataclass
class HttpxTransport:
    """
    Synchronous transport built on ``httpx.Client``.

    Usage:
        tracker = Tracker(..., transport=HttpxTransport(timeout=2.0))
    """
    timeout: float = 5.0

    # Reuse an existing client (connection pooling, test mocks)
    client: httpx.Client | None = None

    def __call__(self, request: OutboundRequest) -> None:
        try:
            if self.client is not None:
                response = self._post(self.client, request)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = self._post(client, request)
        except httpx.HTTPError as e:
            _complete(request, None, e)
            return

        _complete(request, response, None)

    @staticmethod
    def _post(client: httpx.Client, request: OutboundRequest) -> httpx.Response:
        return client.post(request.url, content=request.body, headers=dict(request.headers))


@dataclass
class AsyncHttpxTransport:
    """
    Asynchronous transport built on ``httpx.AsyncClient``.

    Calling it returns a coroutine; the dispatcher schedules it on the
    running loop without awaiting it.
    """
    timeout: float = 5.0
    client: httpx.AsyncClient | None = None

    async def __call__(self, request: OutboundRequest) -> None:
        try:
            if self.client is not None:
                response = await self._post(self.client, request)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, request)
        except httpx.HTTPError as e:
            _complete(request, None, e)
            return

        _complete(request, response, None)

    @staticmethod
    async def _post(client: httpx.AsyncClient, request: OutboundRequest) -> httpx.Response:
        return await client.post(request.url, content=request.body, headers=dict(request.headers))


def _complete(
    request: OutboundRequest,
    response: httpx.Response | None,
    error: Exception | None,
) -> None:
    if request.on_complete is not None:
        request.on_complete(response, error)
    elif error is not None:
        logger.error(f"Failed to send event batch to {request.url}: {error}")
    elif response is not None and response.is_error:
        logger.warning(f"Collector rejected event batch: HTTP {response.status_code}")
