"""In-memory response cache with per-key update notifications.

Stores response bodies keyed by :func:`~apiquery.keys.request_key`.  There
is no TTL and no eviction: an entry lives until it is overwritten, deleted,
or the process exits.  Only successful responses are ever written by the
orchestrator; errors never create entries.

Every :meth:`ResponseCache.set` fires the listeners subscribed to that key,
whether the write came from the network or from a manual
:meth:`~apiquery.api.Api.write_cached_response`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

from apiquery.channels import KeyedChannels, Unsubscribe

logger = logging.getLogger(__name__)


class ResponseCache:
    """Process-local key -> response body store.

    Example::

        from apiquery.cache import ResponseCache

        cache = ResponseCache()
        unsubscribe = cache.subscribe(key, print)
        cache.set(key, {"id": 1})   # prints {'id': 1}
        hit = cache.get(key)
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._listeners: KeyedChannels[Any] = KeyedChannels()

    def has(self, key: str) -> bool:
        """Return ``True`` if an entry exists for *key* (even a ``None`` body)."""
        return key in self._values

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return the cached body for *key*, or *default* on a miss."""
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, overwriting any existing entry.

        Listeners of *key* are called synchronously after the write, in the
        order they subscribed.
        """
        self._values[key] = value
        logger.debug("Cache write: %s", key)
        self._listeners.emit(key, value)

    def delete(self, key: str) -> None:
        """Remove the entry for *key*.  Missing keys are ignored."""
        self._values.pop(key, None)

    def clear(self) -> None:
        """Remove all entries.  Subscriptions are kept."""
        self._values.clear()

    def subscribe(self, key: str, listener: Callable[[Any], Any]) -> Unsubscribe:
        """Call *listener* with the new body whenever *key* is written.

        Returns:
            A callable that removes the subscription.
        """
        return self._listeners.subscribe(key, listener)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size`` (number of entries).
        """
        return {"size": len(self._values)}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)
