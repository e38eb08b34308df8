"""Response body parsing and success classification.

This module sits on both sides of the transport boundary:

* :func:`infer_response_type` and :func:`parse_response_body` turn an
  :class:`httpx.Response` into a :class:`~apiquery.models.TransportResponse`
  whose body is resolved once into a JSON value, ``str``, ``bytes`` or
  ``None``.
* :func:`is_success` and :func:`classify_response` decide whether a
  transport response satisfies the descriptor's success codes, raising
  :class:`~apiquery.exceptions.ApiError` when it does not.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

import httpx

from apiquery.exceptions import ApiError
from apiquery.models import RequestDescriptor, ResponseType, TransportResponse

_BLOB_PREFIXES = ("application/", "image/", "video/")


def infer_response_type(content_type: Optional[str]) -> Optional[ResponseType]:
    """Infer the body kind from a ``Content-Type`` header value.

    Args:
        content_type: Raw header value, e.g. ``"application/json; charset=utf-8"``.

    Returns:
        ``JSON`` for any ``application/json`` type, ``TEXT`` for ``text/*``,
        ``BLOB`` for other ``application/*``, ``image/*`` and ``video/*``
        types, and ``None`` for anything else (including a missing header).
    """
    if not content_type:
        return None
    value = content_type.strip().lower()
    if "application/json" in value:
        return ResponseType.JSON
    if value.startswith("text/"):
        return ResponseType.TEXT
    if value.startswith(_BLOB_PREFIXES):
        return ResponseType.BLOB
    return None


def parse_response_body(
    response: httpx.Response,
    response_type: Optional[ResponseType] = None,
) -> TransportResponse:
    """Extract the body from a read :class:`httpx.Response`.

    When *response_type* is ``None`` it is inferred from the response's
    ``Content-Type``.  If no kind can be inferred the body is ``None``.  An
    empty JSON body also parses to ``None``.

    Raises:
        TypeError: If *response_type* is not a known :class:`ResponseType`.
        json.JSONDecodeError: If a JSON body is malformed.
    """
    if response_type is not None and not isinstance(response_type, ResponseType):
        try:
            response_type = ResponseType(response_type)
        except ValueError:
            raise TypeError(f"'{response_type}' is not a valid response type") from None

    body_type = response_type or infer_response_type(response.headers.get("content-type"))
    if body_type is None:
        return TransportResponse(status=response.status_code, body=None, body_type=None)

    body: Any
    if body_type is ResponseType.JSON:
        body = response.json() if response.content else None
    elif body_type is ResponseType.TEXT:
        body = response.text
    else:
        body = response.content

    return TransportResponse(status=response.status_code, body=body, body_type=body_type)


def is_success(status: int, success_codes: Optional[Iterable[int]] = None) -> bool:
    """Return ``True`` if *status* counts as a success.

    With explicit *success_codes*, success is exact membership; otherwise
    any 2xx status succeeds.
    """
    if success_codes is not None:
        return status in set(success_codes)
    return 200 <= status <= 299


def classify_response(descriptor: RequestDescriptor, response: TransportResponse) -> Any:
    """Return the response body, or raise if the status is not a success.

    The body is passed through untouched: any transformation has to happen
    before classification.

    Raises:
        ApiError: When ``response.status`` fails the descriptor's success
            codes (or the 2xx range when none are given).
    """
    if is_success(response.status, descriptor.success_codes):
        return response.body
    raise ApiError(
        descriptor.method.value,
        descriptor.url,
        response.status,
        response.body,
        response.body_type.value if response.body_type else None,
    )
