"""Shared test fixtures for apiquery.

Provides a scriptable in-memory transport, a ready-made :class:`Api` wired
to it, and an isolated configuration environment.  These fixtures are
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional, Union

import pytest

from apiquery import Api, ApiConfig
from apiquery.models import ResponseType, TransportRequest, TransportResponse


# ---------------------------------------------------------------------------
# Stub transport
# ---------------------------------------------------------------------------


class StubTransport:
    """Transport that replays queued responses and records every request.

    Responses are consumed in order; the last one is repeated once the
    queue runs dry.  Queued exceptions are raised instead of returned.
    Calling :meth:`hold` makes every call wait until :meth:`release`.
    """

    def __init__(self) -> None:
        self.requests: list[TransportRequest] = []
        self._responses: list[Union[TransportResponse, Exception]] = []
        self._gate: Optional[asyncio.Event] = None

    def queue(
        self,
        body: Any = None,
        status: int = 200,
        body_type: Optional[ResponseType] = ResponseType.JSON,
    ) -> StubTransport:
        self._responses.append(TransportResponse(status=status, body=body, body_type=body_type))
        return self

    def queue_error(self, exc: Exception) -> StubTransport:
        self._responses.append(exc)
        return self

    def hold(self) -> None:
        """Block calls until :meth:`release`.  Call from inside the event loop."""
        self._gate = asyncio.Event()

    def release(self) -> None:
        assert self._gate is not None
        self._gate.set()

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def get_response(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        if self._gate is not None:
            await self._gate.wait()
        if not self._responses:
            raise AssertionError(f"No response queued for {request.method.value} {request.url}")
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class GatedTransport:
    """Transport where each call waits on its own event.

    ``calls[i]`` is ``(request, event, response)``; set the event to let
    call *i* finish with its response.
    """

    def __init__(self, *bodies: Any) -> None:
        self._bodies = list(bodies)
        self.calls: list[tuple[TransportRequest, asyncio.Event, TransportResponse]] = []

    async def get_response(self, request: TransportRequest) -> TransportResponse:
        event = asyncio.Event()
        body = self._bodies[len(self.calls)]
        response = TransportResponse(status=200, body=body, body_type=ResponseType.JSON)
        self.calls.append((request, event, response))
        await event.wait()
        return response


async def settle() -> None:
    """Let pending tasks and their done-callbacks run."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def api(transport: StubTransport) -> Api:
    """An Api with no base URL backed by :class:`StubTransport`."""
    return Api(ApiConfig(), transport=transport)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME into tmp_path, clears all APIQUERY_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setattr("apiquery.config._is_xdg_platform", lambda: True)
    for var in [
        "APIQUERY_CONFIG",
        "APIQUERY_BASE_URL",
        "APIQUERY_FETCH_POLICY",
        "APIQUERY_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path
