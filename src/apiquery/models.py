"""Canonical Pydantic models shared across all apiquery modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Request models** -- supplied by callers:
    :class:`RequestDescriptor` and :class:`RequestOptions`, together with the
    :class:`HTTPMethod`, :class:`ResponseType` and :class:`FetchPolicy`
    enumerations.

**Transport models** -- exchanged with the transport boundary:
    :class:`TransportRequest` and :class:`TransportResponse`.

**Configuration models** -- loaded by :mod:`apiquery.config`:
    :class:`ApiConfig`.

Request descriptors are frozen: the core never mutates what a caller hands
it.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HTTPMethod(str, enum.Enum):
    """HTTP methods accepted in a :class:`RequestDescriptor`.

    Lookup is case-insensitive, so ``HTTPMethod("get")`` resolves to
    :attr:`GET`.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def _missing_(cls, value: object) -> Optional[HTTPMethod]:
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None


# Methods deduplicated by default and never carrying a request body.
READ_METHODS = frozenset({HTTPMethod.GET, HTTPMethod.HEAD, HTTPMethod.OPTIONS})

# Methods whose descriptor body is sent to the transport.
BODY_METHODS = frozenset(
    {HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH, HTTPMethod.DELETE}
)


class ResponseType(str, enum.Enum):
    """Kinds of response body the transport can produce.

    * ``json`` -- a decoded JSON value (``dict``, ``list``, scalar).
    * ``text`` -- a ``str``.
    * ``blob`` -- raw ``bytes``.
    """

    JSON = "json"
    TEXT = "text"
    BLOB = "blob"


class FetchPolicy(str, enum.Enum):
    """How a single request interacts with the response cache."""

    NO_CACHE = "no-cache"
    """Only fetch from the server, never reading from or writing to the cache."""

    CACHE_FIRST = "cache-first"
    """Return the cached value if present, otherwise fetch and cache."""

    FETCH_FIRST = "fetch-first"
    """Always fetch, then write the response to the cache."""

    CACHE_ONLY = "cache-only"
    """Only read from the cache; raise :class:`~apiquery.exceptions.ApiCacheMissError` on a miss."""

    CACHE_AND_FETCH = "cache-and-fetch"
    """Return the cached value immediately and refresh it in the background."""


READ_CACHE_POLICIES = frozenset(
    {FetchPolicy.CACHE_FIRST, FetchPolicy.CACHE_ONLY, FetchPolicy.CACHE_AND_FETCH}
)

DEFAULT_FETCH_POLICY = FetchPolicy.NO_CACHE

DEFAULT_REQUEST_METHOD = HTTPMethod.GET


# --- Request models ---


class RequestDescriptor(BaseModel):
    """Declarative description of one logical HTTP call.

    Two descriptors that differ only in ``body`` share a cache entry; pass
    a distinct ``extra_key`` to keep per-body responses apart.

    Example::

        RequestDescriptor(
            method="POST",
            url="/search",
            body={"query": "shoes"},
            extra_key="shoes",
        )

    Mappings may use the camelCase names ``responseType``, ``successCodes``
    and ``extraKey``.  Unknown keys are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    url: str
    method: HTTPMethod = DEFAULT_REQUEST_METHOD
    headers: Optional[dict[str, str]] = None
    body: Any = None
    response_type: Optional[ResponseType] = Field(default=None, alias="responseType")
    success_codes: Optional[list[int]] = Field(default=None, alias="successCodes")
    extra_key: Optional[str] = Field(default=None, alias="extraKey")

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_REQUEST_METHOD
        if isinstance(value, str):
            return value.upper()
        return value


DescriptorLike = Union[RequestDescriptor, Mapping[str, Any]]


def as_descriptor(value: DescriptorLike) -> RequestDescriptor:
    """Coerce a mapping into a :class:`RequestDescriptor`.

    Descriptors are returned as-is so that identity is preserved.
    """
    if isinstance(value, RequestDescriptor):
        return value
    return RequestDescriptor.model_validate(dict(value))


class RequestOptions(BaseModel):
    """Per-call options for :meth:`~apiquery.api.Api.request`.

    ``None`` values fall back to the Api's defaults: the configured default
    fetch policy, and deduplication only for read-like methods.
    """

    fetch_policy: Optional[FetchPolicy] = None
    deduplicate: Optional[bool] = None


# --- Transport models ---


class TransportRequest(BaseModel):
    """A fully prepared request handed to a transport.

    ``url`` already carries the base URL, ``headers`` are the merged and
    lower-cased request headers, and ``body`` is either already serialised
    or raw bytes.
    """

    model_config = ConfigDict(frozen=True)

    method: HTTPMethod
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    response_type: Optional[ResponseType] = None
    success_codes: Optional[list[int]] = None


class TransportResponse(BaseModel):
    """Outcome of a single network call as reported by a transport."""

    status: int
    body: Any = None
    body_type: Optional[ResponseType] = None


# --- Configuration ---


class ApiConfig(BaseModel):
    """Construction parameters for :class:`~apiquery.api.Api`.

    Loaded and saved by :func:`~apiquery.config.load_config` and
    :func:`~apiquery.config.save_config`; see
    :func:`~apiquery.config.resolve_config` for the precedence chain.
    """

    base_url: str = Field(default="", description="Prefix applied to every request URL")
    default_fetch_policy: FetchPolicy = Field(
        default=DEFAULT_FETCH_POLICY,
        description="Fetch policy used when a call does not specify one",
    )
    default_headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = True
