"""Canonical request keys for caching and in-flight deduplication.

A request key identifies a :class:`~apiquery.models.RequestDescriptor` for
caching purposes.  It is derived from the method, URL, response type,
headers, ``extra_key`` and success codes; the body is left
out.  Header names are lower-cased and sorted, and success codes are
de-duplicated and sorted, so that descriptors which differ only in header
casing, header order or success-code order share one key.

Keys are SHA-256 hex digests of a compact JSON payload.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from apiquery.models import DescriptorLike, as_descriptor


def normalize_headers(headers: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Return *headers* with lower-cased names.

    When two names differ only in case, the one that comes last wins.
    """
    if not headers:
        return {}
    return {str(name).lower(): str(value) for name, value in headers.items()}


def serialize_headers(headers: Optional[Mapping[str, str]]) -> str:
    """Serialise *headers* into an order- and case-insensitive string."""
    if not headers:
        return ""
    pairs = sorted(
        f"{name}:{value.strip()};" for name, value in normalize_headers(headers).items()
    )
    return "".join(pairs)


def serialize_success_codes(success_codes: Optional[Iterable[Any]]) -> str:
    """Serialise success codes as a sorted, de-duplicated JSON array.

    Anything that is not an integer is dropped (booleans included).
    """
    if success_codes is None:
        return ""
    codes = sorted(
        {code for code in success_codes if isinstance(code, int) and not isinstance(code, bool)}
    )
    return json.dumps(codes)


def request_key(descriptor: DescriptorLike) -> str:
    """Return the canonical cache key for *descriptor*.

    Args:
        descriptor: A :class:`~apiquery.models.RequestDescriptor` or a
            mapping accepted by it.

    Returns:
        A 64-character hex digest.
    """
    desc = as_descriptor(descriptor)
    payload = [
        desc.method.value,
        desc.url,
        desc.response_type.value if desc.response_type else "",
        serialize_headers(desc.headers),
        desc.extra_key,
        serialize_success_codes(desc.success_codes),
    ]
    raw = json.dumps(payload, separators=(",", ":"))
    return hashlib.sha256(raw.encode()).hexdigest()
