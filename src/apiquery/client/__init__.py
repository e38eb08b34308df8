"""Network side of apiquery.

Provides the transport boundary and the request manager that drives it:

    :class:`Transport` -- protocol any transport must satisfy.
    :class:`HttpxTransport` -- default single-attempt transport backed by
        :class:`httpx.AsyncClient`.
    :class:`RequestManager` -- deduplicates, prepares, sends and classifies
        requests, writing successful bodies to the response cache.

Example::

    from apiquery.client import HttpxTransport

    async with HttpxTransport(timeout=10) as transport:
        ...
"""

from apiquery.client.request_manager import RequestManager
from apiquery.client.transport import HttpxTransport, Transport

__all__ = ["HttpxTransport", "RequestManager", "Transport"]
