"""Transport boundary -- performs one network call per request.

The orchestrator only depends on the :class:`Transport` protocol: any
object with a ``get_response`` method that takes a
:class:`~apiquery.models.TransportRequest` and returns a
:class:`~apiquery.models.TransportResponse` (directly or as an awaitable)
will do.

:class:`HttpxTransport` is the default implementation, backed by
:class:`httpx.AsyncClient`.  It makes exactly one attempt per call: no
retries and no backoff.  Connection and timeout errors raised by httpx
propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, Optional, Protocol, Union, runtime_checkable

import httpx

from apiquery.client.response import parse_response_body
from apiquery.models import TransportRequest, TransportResponse

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Anything that can execute a prepared request."""

    def get_response(
        self, request: TransportRequest
    ) -> Union[TransportResponse, Awaitable[TransportResponse]]:
        ...


class HttpxTransport:
    """Single-attempt transport backed by :class:`httpx.AsyncClient`.

    Args:
        timeout: Request timeout in seconds.
        verify_ssl: Verify SSL certificates.
        follow_redirects: Follow HTTP redirects.
        client: An existing client to use instead of creating one.  A
            client passed in here is not closed by :meth:`aclose`.

    Example::

        async with HttpxTransport(timeout=10) as transport:
            response = await transport.get_response(
                TransportRequest(method="GET", url="https://api.example.com/users")
            )
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        follow_redirects: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._follow_redirects = follow_redirects
        self._client = client
        self._owns_client = client is None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Transport protocol
    # ------------------------------------------------------------------ #

    async def get_response(self, request: TransportRequest) -> TransportResponse:
        """Send *request* and parse the response body.

        Returns:
            The status code and body resolved by
            :func:`~apiquery.client.response.parse_response_body`.

        Raises:
            httpx.HTTPError: On network-level failures.
            TypeError: If ``request.response_type`` is not a known kind.
        """
        client = self._ensure_client()
        kwargs: dict[str, Any] = {
            "method": request.method.value,
            "url": request.url,
            "headers": request.headers,
        }
        if request.body is not None:
            kwargs["content"] = request.body

        logger.debug("%s %s", request.method.value, request.url)
        response = await client.request(**kwargs)
        logger.debug("%s %s -> %d", request.method.value, request.url, response.status_code)
        return parse_response_body(response, request.response_type)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify_ssl,
                follow_redirects=self._follow_redirects,
            )
            self._owns_client = True
        return self._client
