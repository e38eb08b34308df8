"""Exception hierarchy for apiquery.

All exceptions raised by the orchestration core inherit from
:class:`ApiQueryError`.  Exceptions raised by a transport (for example
:class:`httpx.ConnectError`) are *not* wrapped: they propagate unchanged
through the returned future and the error channel.

Subclass hierarchy::

    ApiQueryError
    +-- ApiError            (response failed the success-code contract)
    +-- ApiCacheMissError   (cache-only request with no cached entry)
    +-- ConfigError         (invalid or unreadable configuration)
"""

from __future__ import annotations

from typing import Any, Optional


class ApiQueryError(Exception):
    """Base exception for all apiquery errors."""


class ApiError(ApiQueryError):
    """Raised when a completed response fails the success-code contract.

    The response body is preserved exactly as the transport (and the
    ``parse_response_json`` hook, for JSON bodies) produced it so callers can
    discriminate on it.

    Args:
        method: HTTP method of the failed request.
        url: Request URL as given in the descriptor (without base URL).
        status: HTTP status code returned by the server.
        response_body: The parsed response body, or ``None``.
        response_type: Body kind of *response_body* (``json``, ``text``,
            ``blob``) or ``None`` when it could not be determined.
    """

    def __init__(
        self,
        method: str,
        url: str,
        status: int,
        response_body: Any = None,
        response_type: Optional[str] = None,
    ) -> None:
        super().__init__(f"API Error: {status}")
        self.method = method
        self.url = url
        self.status = status
        self.response_body = response_body
        self.response_type = response_type

    def __repr__(self) -> str:
        return (
            f"ApiError(method={self.method!r}, url={self.url!r}, "
            f"status={self.status!r})"
        )


class ApiCacheMissError(ApiQueryError):
    """Raised for a ``cache-only`` request when nothing is cached for it."""


class ConfigError(ApiQueryError):
    """Raised for configuration problems (invalid JSON, failed validation)."""
