"""apiquery -- cached, deduplicated requests against an HTTP API.

Given a declarative request descriptor (URL, method, headers, body, expected
response type), apiquery decides whether to serve a previously fetched
response, issue a network call, or both, and keeps an in-memory response
cache consistent across concurrent and successive calls for equivalent
requests.

Typical use::

    from apiquery import Api, ApiConfig

    async with Api(ApiConfig(base_url="https://api.example.com")) as api:
        user = await api.request({"url": "/me"}, fetch_policy="cache-first")

Modules:
    api: The :class:`Api` facade implementing fetch policies.
    keys: Canonical request keys.
    cache: Response cache and in-flight registry.
    client: Transport boundary and request manager.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration with precedence resolution.
    exceptions: Exception hierarchy.
"""

from apiquery.api import Api
from apiquery.exceptions import ApiCacheMissError, ApiError, ApiQueryError, ConfigError
from apiquery.keys import request_key
from apiquery.models import (
    ApiConfig,
    FetchPolicy,
    HTTPMethod,
    RequestDescriptor,
    RequestOptions,
    ResponseType,
    TransportRequest,
    TransportResponse,
)

__version__ = "0.1.0"

__all__ = [
    "Api",
    "ApiCacheMissError",
    "ApiConfig",
    "ApiError",
    "ApiQueryError",
    "ConfigError",
    "FetchPolicy",
    "HTTPMethod",
    "RequestDescriptor",
    "RequestOptions",
    "ResponseType",
    "TransportRequest",
    "TransportResponse",
    "request_key",
]
