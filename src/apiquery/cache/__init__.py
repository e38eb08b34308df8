"""In-memory state shared by concurrent requests.

This package provides the two stores the orchestrator consults before
touching the network:

* :class:`ResponseCache` -- response bodies keyed by request key, with
  per-key update subscriptions.
* :class:`InFlightRegistry` -- the pending future for each request key,
  guarded by identity tokens so that a stale cleanup never evicts a newer
  request.

Both are consumed by :class:`~apiquery.api.Api` and
:class:`~apiquery.client.request_manager.RequestManager`.
"""

from apiquery.cache.cache import ResponseCache
from apiquery.cache.inflight import InFlightEntry, InFlightRegistry

__all__ = ["ResponseCache", "InFlightEntry", "InFlightRegistry"]
