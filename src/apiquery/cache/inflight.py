"""Registry of in-flight network requests, keyed by request key.

Each entry pairs the pending :class:`asyncio.Future` with an *identity*
token drawn from a monotonically increasing counter.  A request removes its
own entry when it settles, but only while it still owns the key: if a newer
request for the same key has replaced it in the meantime, the late cleanup
is a no-op and the newer entry survives.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InFlightEntry:
    """The current owner of a request key.

    Attributes:
        identity: Token identifying the request that registered the entry.
        future: The pending result shared with deduplicated callers.
    """

    identity: int
    future: asyncio.Future[Any]


class InFlightRegistry:
    """Tracks the currently executing fetch for each request key."""

    def __init__(self) -> None:
        self._entries: dict[str, InFlightEntry] = {}
        self._counter = itertools.count(1)

    def register(self, key: str, future: asyncio.Future[Any]) -> int:
        """Make *future* the in-flight request for *key*.

        Any previous owner is replaced; it keeps running but can no longer
        remove the entry.

        Returns:
            The identity token to pass to :meth:`deregister`.
        """
        identity = next(self._counter)
        self._entries[key] = InFlightEntry(identity=identity, future=future)
        return identity

    def get(self, key: str) -> Optional[InFlightEntry]:
        """Return the current entry for *key*, or ``None``."""
        return self._entries.get(key)

    def deregister(self, key: str, identity: int) -> bool:
        """Remove the entry for *key* if *identity* still owns it.

        Returns:
            ``True`` if the entry was removed.
        """
        entry = self._entries.get(key)
        if entry is None or entry.identity != identity:
            logger.debug("Skipping stale in-flight cleanup for %s (identity %d)", key, identity)
            return False
        del self._entries[key]
        return True

    def is_in_progress(self, key: str) -> bool:
        """Return ``True`` while a request for *key* is registered."""
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
