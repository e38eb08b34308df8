"""The :class:`Api` facade -- fetch policies on top of cache and network.

:class:`Api` is what application code (or a UI binding layer) talks to.
Each call to :meth:`Api.request` picks one of three outcomes according to
its :class:`~apiquery.models.FetchPolicy`:

* serve the cached body (``cache-first``, ``cache-only``),
* go to the network (``no-cache``, ``fetch-first``, or a cache miss), or
* both: serve the cached body and refresh it in the background
  (``cache-and-fetch``).

``cache-only`` with nothing cached fails with
:class:`~apiquery.exceptions.ApiCacheMissError`.

:meth:`Api.request` returns an :class:`asyncio.Future`.  Concurrent
deduplicated calls for the same request return the *same* future object.
Network failures reject the returned future and are also broadcast to
:meth:`Api.subscribe_to_errors` listeners; failures of a background
``cache-and-fetch`` refresh are only visible there.

Example::

    from apiquery import Api, ApiConfig

    async with Api(ApiConfig(base_url="https://api.example.com")) as api:
        api.set_default_header("Authorization", "Bearer token")
        users = await api.request({"url": "/users"}, fetch_policy="cache-first")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional, Union

from apiquery.cache import ResponseCache
from apiquery.channels import Unsubscribe
from apiquery.client.request_manager import ParseResponseJson, RequestManager, SerializeRequestJson
from apiquery.client.transport import HttpxTransport, Transport
from apiquery.config import resolve_config
from apiquery.exceptions import ApiCacheMissError
from apiquery.keys import request_key
from apiquery.models import (
    READ_CACHE_POLICIES,
    ApiConfig,
    DescriptorLike,
    FetchPolicy,
    RequestOptions,
    as_descriptor,
)

logger = logging.getLogger(__name__)


def _consume_background_result(future: asyncio.Future[Any]) -> None:
    """Mark a background refresh's exception as retrieved.

    The failure has already been broadcast on the error channel.
    """
    if not future.cancelled():
        future.exception()


class Api:
    """Request orchestrator with a response cache and in-flight deduplication.

    Args:
        config: Base URL, default fetch policy, default headers and
            transport settings.  Defaults to ``ApiConfig()``.
        transport: Transport used for network calls.  When omitted, an
            :class:`~apiquery.client.transport.HttpxTransport` is created
            from *config* and closed by :meth:`aclose`.
        serialize_request_json: Optional ``(body, descriptor) -> body`` hook
            applied to structured request bodies before JSON encoding.
        parse_response_json: Optional ``(body, descriptor) -> body`` hook
            applied to JSON response bodies before classification.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        *,
        transport: Optional[Transport] = None,
        serialize_request_json: Optional[SerializeRequestJson] = None,
        parse_response_json: Optional[ParseResponseJson] = None,
    ) -> None:
        self._config = config or ApiConfig()
        self._owns_transport = transport is None
        if transport is None:
            transport = HttpxTransport(
                timeout=self._config.timeout,
                verify_ssl=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
            )
        self._transport = transport
        self._cache = ResponseCache()
        self._manager = RequestManager(
            self._cache,
            transport,
            base_url=self._config.base_url,
            default_fetch_policy=self._config.default_fetch_policy,
            default_headers=self._config.default_headers,
            serialize_request_json=serialize_request_json,
            parse_response_json=parse_response_json,
        )

    @classmethod
    def from_config(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        *,
        base_url: Optional[str] = None,
        fetch_policy: Optional[Union[str, FetchPolicy]] = None,
        **kwargs: Any,
    ) -> Api:
        """Build an Api from :func:`~apiquery.config.resolve_config`.

        Extra keyword arguments are forwarded to the constructor.
        """
        config = resolve_config(config_path, base_url=base_url, fetch_policy=fetch_policy)
        return cls(config, **kwargs)

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Api:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this Api created it."""
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.aclose()

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> ApiConfig:
        return self._config

    @property
    def default_fetch_policy(self) -> FetchPolicy:
        """Policy used by calls that don't pass one."""
        return self._manager.default_fetch_policy

    @default_fetch_policy.setter
    def default_fetch_policy(self, policy: Union[str, FetchPolicy]) -> None:
        self._manager.default_fetch_policy = FetchPolicy(policy)

    @property
    def default_headers(self) -> dict[str, str]:
        """A copy of the headers sent with every request."""
        return self._manager.default_headers

    def set_default_header(self, name: str, value: str) -> None:
        """Set a header sent with every request.

        Useful for setting an authentication token.  Per-request headers
        with the same name take precedence.
        """
        self._manager.set_default_header(name, value)

    def build_url(self, path: str) -> str:
        """Return the base URL concatenated with *path*."""
        return f"{self._manager.base_url}{path}"

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def request(
        self,
        descriptor: DescriptorLike,
        options: Optional[RequestOptions] = None,
        *,
        fetch_policy: Optional[Union[str, FetchPolicy]] = None,
        deduplicate: Optional[bool] = None,
    ) -> asyncio.Future[Any]:
        """Make an API request according to its fetch policy.

        Must be called from a running event loop; the returned future is
        awaited for the response body.

        Args:
            descriptor: A :class:`~apiquery.models.RequestDescriptor` or a
                mapping accepted by it.
            options: Per-call options.  Keyword arguments override it.
            fetch_policy: Overrides ``options.fetch_policy``.
            deduplicate: Overrides ``options.deduplicate``.

        Returns:
            A future resolving to the response body.  It fails with
            :class:`~apiquery.exceptions.ApiCacheMissError`,
            :class:`~apiquery.exceptions.ApiError` or whatever the transport
            raised.  An invalid descriptor or fetch policy also fails the
            future (with :class:`pydantic.ValidationError` or
            :class:`ValueError`) instead of raising.

        Raises:
            RuntimeError: If no event loop is running.
        """
        opts = options or RequestOptions()
        try:
            desc = as_descriptor(descriptor)
            policy = FetchPolicy(fetch_policy or opts.fetch_policy or self.default_fetch_policy)
        except ValueError as exc:
            return self._settled(error=exc)
        if deduplicate is None:
            deduplicate = opts.deduplicate

        if policy not in READ_CACHE_POLICIES:
            return self._manager.get_response_body(desc, policy, deduplicate)

        key = request_key(desc)
        if self._cache.has(key):
            logger.debug("Cache hit (%s): %s %s", policy.value, desc.method.value, desc.url)
            cached = self._cache.get(key)
            if policy is FetchPolicy.CACHE_AND_FETCH:
                refresh = self._manager.get_response_body(desc, policy, deduplicate)
                refresh.add_done_callback(_consume_background_result)
            return self._settled(result=cached)

        if policy is FetchPolicy.CACHE_ONLY:
            return self._settled(error=ApiCacheMissError(f"Cache miss: {desc.url}"))

        return self._manager.get_response_body(desc, policy, deduplicate)

    def request_in_progress(self, descriptor: DescriptorLike) -> bool:
        """Return ``True`` if a request matching *descriptor* is in flight."""
        return self._manager.request_in_progress(as_descriptor(descriptor))

    # ------------------------------------------------------------------ #
    # Cache access
    # ------------------------------------------------------------------ #

    def read_cached_response(self, descriptor: DescriptorLike) -> Any:
        """Read a response directly from the cache.

        Unlike :meth:`request` with a cache policy this runs synchronously.
        Returns ``None`` on a cache miss.
        """
        return self._cache.get(request_key(descriptor))

    def write_cached_response(self, descriptor: DescriptorLike, body: Any) -> None:
        """Save *body* directly to the cache and notify subscribers."""
        self._cache.set(request_key(descriptor), body)

    def delete_cached_response(self, descriptor: DescriptorLike) -> None:
        """Drop the cached response for *descriptor*, if any."""
        self._cache.delete(request_key(descriptor))

    def subscribe_to_cache_updates(
        self, descriptor: DescriptorLike, listener: Callable[[Any], Any]
    ) -> Unsubscribe:
        """Call *listener* with the new body whenever *descriptor*'s entry is written."""
        return self._cache.subscribe(request_key(descriptor), listener)

    def subscribe_to_errors(self, listener: Callable[[Exception], Any]) -> Unsubscribe:
        """Call *listener* with every error raised on the network path.

        Includes failures of background ``cache-and-fetch`` refreshes.
        """
        return self._manager.subscribe_to_errors(listener)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _settled(result: Any = None, error: Optional[BaseException] = None) -> asyncio.Future[Any]:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
        return future
