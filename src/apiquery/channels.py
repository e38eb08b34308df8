"""Broadcast channels for cache updates and errors.

A :class:`Channel` holds an ordered list of listeners and calls each of them
synchronously, in registration order, every time :meth:`Channel.emit` is
called.  :class:`KeyedChannels` keeps one channel per cache key so that
subscribers only hear about the responses they care about.

Subscribing returns an *unsubscribe* callable.  Calling it more than once is
harmless.

A listener that raises does not prevent the remaining listeners from
running; the failure is logged instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Channel(Generic[T]):
    """Fan-out broadcast of values of type ``T`` to registered listeners."""

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._listeners: list[Callable[[T], Any]] = []

    def subscribe(self, listener: Callable[[T], Any]) -> Unsubscribe:
        """Register *listener* and return a callable that removes it."""
        self._listeners.append(listener)
        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def emit(self, value: T) -> None:
        """Call every listener with *value*.

        Listeners added or removed during emission take effect from the
        next call.
        """
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener %r on channel '%s' failed", listener, self._name)

    def __len__(self) -> int:
        return len(self._listeners)


class KeyedChannels(Generic[T]):
    """A lazily created :class:`Channel` per string key."""

    def __init__(self) -> None:
        self._channels: dict[str, Channel[T]] = {}

    def subscribe(self, key: str, listener: Callable[[T], Any]) -> Unsubscribe:
        """Register *listener* on the channel for *key*."""
        channel = self._channels.get(key)
        if channel is None:
            channel = self._channels[key] = Channel(key)
        inner = channel.subscribe(listener)

        def unsubscribe() -> None:
            inner()
            # Empty channels are dropped.
            if not len(channel) and self._channels.get(key) is channel:
                del self._channels[key]

        return unsubscribe

    def emit(self, key: str, value: T) -> None:
        """Broadcast *value* to the listeners of *key*, if any."""
        channel = self._channels.get(key)
        if channel is not None:
            channel.emit(value)

    def listener_count(self, key: str) -> int:
        channel = self._channels.get(key)
        return len(channel) if channel is not None else 0
