"""Tests for broadcast channels."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

from apiquery.channels import Channel, KeyedChannels


class TestChannel:
    def test_emit_to_all_listeners(self) -> None:
        channel: Channel[int] = Channel("test")
        a, b = MagicMock(), MagicMock()
        channel.subscribe(a)
        channel.subscribe(b)
        channel.emit(7)
        a.assert_called_once_with(7)
        b.assert_called_once_with(7)

    def test_unsubscribe_during_emit(self) -> None:
        channel: Channel[int] = Channel()
        seen = []
        unsubscribe = None

        def first(value: int) -> None:
            seen.append(("first", value))
            unsubscribe()

        unsubscribe = channel.subscribe(first)
        channel.subscribe(lambda value: seen.append(("second", value)))
        channel.emit(1)
        channel.emit(2)
        assert seen == [("first", 1), ("second", 1), ("second", 2)]

    def test_same_listener_twice(self) -> None:
        channel: Channel[int] = Channel()
        listener = MagicMock()
        first = channel.subscribe(listener)
        channel.subscribe(listener)
        first()
        channel.emit(1)
        listener.assert_called_once_with(1)

    def test_listener_error_logged(self, caplog) -> None:
        channel: Channel[int] = Channel("errors")
        channel.subscribe(MagicMock(side_effect=ValueError("bad")))
        with caplog.at_level(logging.ERROR, logger="apiquery.channels"):
            channel.emit(1)
        assert "errors" in caplog.text


class TestKeyedChannels:
    def test_emit_only_to_key(self) -> None:
        channels: KeyedChannels[str] = KeyedChannels()
        a, b = MagicMock(), MagicMock()
        channels.subscribe("a", a)
        channels.subscribe("b", b)
        channels.emit("a", "value")
        a.assert_called_once_with("value")
        b.assert_not_called()

    def test_emit_without_listeners(self) -> None:
        KeyedChannels().emit("nobody", 1)

    def test_empty_channel_dropped(self) -> None:
        channels: KeyedChannels[int] = KeyedChannels()
        unsubscribe = channels.subscribe("k", MagicMock())
        assert channels.listener_count("k") == 1
        unsubscribe()
        assert channels.listener_count("k") == 0
        assert "k" not in channels._channels
