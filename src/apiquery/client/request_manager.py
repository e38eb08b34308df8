"""Network path of the orchestrator: deduplication, preparation, write-back.

:class:`RequestManager` is responsible for everything that happens once a
request has been sent to the network:

1. **Deduplication** -- concurrent requests with the same key share one
   :class:`asyncio.Task` when deduplication is on.
2. **Header merge** -- default headers overlaid with per-request headers,
   names lower-cased, per-request values win.
3. **Body serialisation** -- structured bodies are run through the
   ``serialize_request_json`` hook and sent as JSON with an
   ``application/json`` content type.
4. **Transport call** -- exactly one call per task, sync or async.
5. **Classification** -- JSON bodies go through ``parse_response_json``,
   then :func:`~apiquery.client.response.classify_response`.
6. **Write-back** -- successful bodies are written to the
   :class:`~apiquery.cache.ResponseCache` unless the policy is
   ``no-cache``.
7. **Error broadcast** -- every failure is emitted on the error channel
   before it propagates to the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel

from apiquery.cache import InFlightRegistry, ResponseCache
from apiquery.channels import Channel, Unsubscribe
from apiquery.client.response import classify_response
from apiquery.client.transport import Transport
from apiquery.keys import normalize_headers, request_key
from apiquery.models import (
    BODY_METHODS,
    DEFAULT_FETCH_POLICY,
    READ_METHODS,
    FetchPolicy,
    RequestDescriptor,
    ResponseType,
    TransportRequest,
    TransportResponse,
)

logger = logging.getLogger(__name__)

SerializeRequestJson = Callable[[Any, RequestDescriptor], Any]
ParseResponseJson = Callable[[Any, RequestDescriptor], Any]

_RAW_BODY_TYPES = (str, bytes, bytearray, memoryview)


class RequestManager:
    """Executes and deduplicates network requests.

    Args:
        cache: Cache that successful responses are written to.
        transport: The :class:`~apiquery.client.transport.Transport` used
            for every call.
        base_url: Prefix prepended to each descriptor URL.
        default_fetch_policy: Policy assumed when none is passed to
            :meth:`get_response_body`.
        default_headers: Initial default headers.
        serialize_request_json: Optional ``(body, descriptor) -> body``
            transformation applied to structured request bodies.
        parse_response_json: Optional ``(body, descriptor) -> body``
            transformation applied to JSON response bodies, error bodies
            included.
    """

    def __init__(
        self,
        cache: ResponseCache,
        transport: Transport,
        base_url: str = "",
        default_fetch_policy: FetchPolicy = DEFAULT_FETCH_POLICY,
        default_headers: Optional[Mapping[str, str]] = None,
        serialize_request_json: Optional[SerializeRequestJson] = None,
        parse_response_json: Optional[ParseResponseJson] = None,
    ) -> None:
        self.base_url = base_url
        self.default_fetch_policy = default_fetch_policy
        self._cache = cache
        self._transport = transport
        self._serialize_request_json = serialize_request_json
        self._parse_response_json = parse_response_json
        self._default_headers: dict[str, str] = normalize_headers(default_headers)
        self._in_flight = InFlightRegistry()
        self._errors: Channel[Exception] = Channel("errors")

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get_response_body(
        self,
        descriptor: RequestDescriptor,
        fetch_policy: Optional[FetchPolicy] = None,
        deduplicate: Optional[bool] = None,
    ) -> asyncio.Future[Any]:
        """Return a future resolving to the response body.

        If *deduplicate* is on and a request with the same key is in
        flight, that request's future is returned as-is.  Otherwise a new
        task is started and becomes the in-flight owner of the key.

        Must be called from a running event loop.

        Args:
            descriptor: The request to perform.
            fetch_policy: Decides whether the result is written to the
                cache (anything but ``no-cache``).
            deduplicate: Defaults to ``True`` for read-like methods and
                ``False`` otherwise.
        """
        loop = asyncio.get_running_loop()
        key = request_key(descriptor)
        if deduplicate is None:
            deduplicate = descriptor.method in READ_METHODS

        entry = self._in_flight.get(key)
        if entry is not None and deduplicate:
            logger.debug("Joining in-flight request: %s %s", descriptor.method.value, descriptor.url)
            return entry.future

        policy = FetchPolicy(fetch_policy or self.default_fetch_policy)
        task = loop.create_task(self._fetch_response_body(descriptor, key, policy))
        identity = self._in_flight.register(key, task)
        task.add_done_callback(lambda _task: self._in_flight.deregister(key, identity))
        return task

    def request_in_progress(self, descriptor: RequestDescriptor) -> bool:
        """Return ``True`` if a request with the same key is in flight."""
        return self._in_flight.is_in_progress(request_key(descriptor))

    @property
    def default_headers(self) -> dict[str, str]:
        """A copy of the current default headers (lower-cased names)."""
        return dict(self._default_headers)

    def set_default_header(self, name: str, value: str) -> None:
        """Set a header sent with every request, e.g. an auth token."""
        # Replaced, never mutated in place.
        self._default_headers = {**self._default_headers, name.lower(): value}

    def subscribe_to_errors(self, listener: Callable[[Exception], Any]) -> Unsubscribe:
        """Call *listener* with every exception raised on the network path."""
        return self._errors.subscribe(listener)

    def build_transport_request(self, descriptor: RequestDescriptor) -> TransportRequest:
        """Prepare the :class:`~apiquery.models.TransportRequest` for *descriptor*.

        Headers are the default headers overlaid with the descriptor's own
        headers.  Bodies are only sent for POST, PUT, PATCH and DELETE.
        """
        headers = {**self._default_headers, **normalize_headers(descriptor.headers)}
        body: Optional[Union[str, bytes]] = None
        if descriptor.method in BODY_METHODS and descriptor.body is not None:
            body = self._prepare_body(descriptor, headers)

        return TransportRequest(
            method=descriptor.method,
            url=f"{self.base_url}{descriptor.url}",
            headers=headers,
            body=body,
            response_type=descriptor.response_type,
            success_codes=descriptor.success_codes,
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _fetch_response_body(
        self,
        descriptor: RequestDescriptor,
        key: str,
        fetch_policy: FetchPolicy,
    ) -> Any:
        try:
            request = self.build_transport_request(descriptor)
            response = self._transport.get_response(request)
            if inspect.isawaitable(response):
                response = await response

            response = self._parse_response(descriptor, response)
            body = classify_response(descriptor, response)

            if fetch_policy is not FetchPolicy.NO_CACHE:
                self._cache.set(key, body)
            return body
        except Exception as exc:
            logger.debug("Request failed: %s %s: %r", descriptor.method.value, descriptor.url, exc)
            self._errors.emit(exc)
            raise

    def _parse_response(
        self, descriptor: RequestDescriptor, response: TransportResponse
    ) -> TransportResponse:
        if self._parse_response_json is None or response.body_type is not ResponseType.JSON:
            return response
        body = self._parse_response_json(response.body, descriptor)
        return response.model_copy(update={"body": body})

    def _prepare_body(
        self, descriptor: RequestDescriptor, headers: dict[str, str]
    ) -> Union[str, bytes]:
        """Return the wire body, adding a JSON content type for structured bodies."""
        body = descriptor.body
        if isinstance(body, str):
            return body
        if isinstance(body, _RAW_BODY_TYPES):
            return bytes(body)

        if self._serialize_request_json is not None:
            body = self._serialize_request_json(body, descriptor)
        if isinstance(body, BaseModel):
            body = body.model_dump(mode="json")
        headers["content-type"] = "application/json"
        return json.dumps(body)
