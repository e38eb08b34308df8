"""Tests for body-kind inference, body parsing and success classification."""

from __future__ import annotations

import httpx
import pytest

from apiquery.client.response import (
    classify_response,
    infer_response_type,
    is_success,
    parse_response_body,
)
from apiquery.exceptions import ApiError
from apiquery.models import RequestDescriptor, ResponseType, TransportResponse


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_response(
    status_code: int = 200,
    content: bytes = b"",
    content_type: str | None = None,
) -> httpx.Response:
    headers = {"content-type": content_type} if content_type else {}
    return httpx.Response(
        status_code=status_code,
        content=content,
        headers=headers,
        request=httpx.Request("GET", "https://api.example.com/test"),
    )


# ---------------------------------------------------------------------------
# infer_response_type
# ---------------------------------------------------------------------------


class TestInferResponseType:
    @pytest.mark.parametrize(
        "content_type, expected",
        [
            ("application/json", ResponseType.JSON),
            ("application/json; charset=utf-8", ResponseType.JSON),
            ("application/vnd.api+json", ResponseType.BLOB),
            ("text/plain", ResponseType.TEXT),
            ("text/html; charset=utf-8", ResponseType.TEXT),
            ("application/pdf", ResponseType.BLOB),
            ("application/octet-stream", ResponseType.BLOB),
            ("image/png", ResponseType.BLOB),
            ("video/mp4", ResponseType.BLOB),
            ("Application/JSON", ResponseType.JSON),
            ("multipart/form-data", None),
            ("", None),
            (None, None),
        ],
    )
    def test_inference(self, content_type: str | None, expected: ResponseType | None) -> None:
        assert infer_response_type(content_type) is expected


# ---------------------------------------------------------------------------
# parse_response_body
# ---------------------------------------------------------------------------


class TestParseResponseBody:
    def test_json(self) -> None:
        response = _make_response(content=b'{"test": "data"}', content_type="application/json")
        result = parse_response_body(response)
        assert result == TransportResponse(status=200, body={"test": "data"}, body_type=ResponseType.JSON)

    def test_empty_json_is_none(self) -> None:
        response = _make_response(status_code=204, content_type="application/json")
        result = parse_response_body(response)
        assert result.body is None
        assert result.body_type is ResponseType.JSON

    def test_text(self) -> None:
        response = _make_response(content=b"hello", content_type="text/plain")
        result = parse_response_body(response)
        assert result.body == "hello"
        assert result.body_type is ResponseType.TEXT

    def test_blob(self) -> None:
        response = _make_response(content=b"\x89PNG", content_type="image/png")
        result = parse_response_body(response)
        assert result.body == b"\x89PNG"
        assert result.body_type is ResponseType.BLOB

    def test_unknown_content_type(self) -> None:
        response = _make_response(content=b"???", content_type="multipart/mixed")
        result = parse_response_body(response)
        assert result.body is None
        assert result.body_type is None

    def test_explicit_type_overrides_header(self) -> None:
        response = _make_response(content=b'{"a": 1}', content_type="application/json")
        result = parse_response_body(response, ResponseType.TEXT)
        assert result.body == '{"a": 1}'
        assert result.body_type is ResponseType.TEXT

    def test_explicit_type_as_string(self) -> None:
        response = _make_response(content=b"abc")
        assert parse_response_body(response, "blob").body == b"abc"

    def test_invalid_type_raises(self) -> None:
        response = _make_response(content=b"abc")
        with pytest.raises(TypeError, match="'xml' is not a valid response type"):
            parse_response_body(response, "xml")

    def test_status_preserved(self) -> None:
        response = _make_response(status_code=404, content=b"missing", content_type="text/plain")
        assert parse_response_body(response).status == 404


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestIsSuccess:
    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_2xx_success(self, status: int) -> None:
        assert is_success(status)

    @pytest.mark.parametrize("status", [199, 300, 304, 400, 500])
    def test_non_2xx_failure(self, status: int) -> None:
        assert not is_success(status)

    def test_explicit_codes_exact_membership(self) -> None:
        assert is_success(400, [400, 401])
        assert not is_success(200, [400, 401])

    def test_empty_codes_never_succeed(self) -> None:
        assert not is_success(200, [])


class TestClassifyResponse:
    def test_success_returns_body(self) -> None:
        desc = RequestDescriptor(url="/endpoint")
        body = {"test": "data"}
        response = TransportResponse(status=200, body=body, body_type=ResponseType.JSON)
        assert classify_response(desc, response) is body

    def test_success_code_override_accepts_400(self) -> None:
        desc = RequestDescriptor(url="/endpoint", success_codes=[400, 401])
        response = TransportResponse(status=400, body={"e": 1}, body_type=ResponseType.JSON)
        assert classify_response(desc, response) == {"e": 1}

    def test_success_code_override_rejects_200(self) -> None:
        desc = RequestDescriptor(url="/endpoint", success_codes=[400, 401])
        response = TransportResponse(status=200, body={"ok": True}, body_type=ResponseType.JSON)
        with pytest.raises(ApiError) as exc_info:
            classify_response(desc, response)
        assert exc_info.value.status == 200

    def test_error_carries_context(self) -> None:
        desc = RequestDescriptor(url="/items", method="DELETE")
        response = TransportResponse(status=500, body="oops", body_type=ResponseType.TEXT)
        with pytest.raises(ApiError) as exc_info:
            classify_response(desc, response)

        err = exc_info.value
        assert err.method == "DELETE"
        assert err.url == "/items"
        assert err.status == 500
        assert err.response_body == "oops"
        assert err.response_type == "text"
        assert str(err) == "API Error: 500"

    def test_error_with_unknown_body_type(self) -> None:
        desc = RequestDescriptor(url="/items")
        response = TransportResponse(status=502)
        with pytest.raises(ApiError) as exc_info:
            classify_response(desc, response)
        assert exc_info.value.response_body is None
        assert exc_info.value.response_type is None
