"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timezone

import pytest

from userserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    ok,
    created,
    error,
    not_found,
    bad_request,
    method_not_allowed,
    internal_error,
    format_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_layout(self):
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: userserver/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_leaves_headers_untouched(self):
        response = HTTPResponse(body=b"hello")
        response.to_bytes()
        assert response.headers == {}

    def test_to_bytes_server_name(self):
        assert b"Server: custom/2\r\n" in HTTPResponse().to_bytes("custom/2")

    def test_set_header_chaining(self):
        response = HTTPResponse().set_header("X-One", "1").set_header("X-Two", "2")
        assert response.headers == {"X-One": "1", "X-Two": "2"}

    def test_to_bytes_without_body(self):
        response = HTTPResponse(body=b'{"id":1}')

        result = response.to_bytes(include_body=False)

        assert b"Content-Length: 8\r\n" in result
        assert result.endswith(b"\r\n\r\n")
        assert b'{"id":1}' not in result


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_defaults(self):
        response = ResponseBuilder().build()
        assert response.status == HTTPStatus.OK
        assert response.body == b""

    def test_json_is_compact(self):
        response = ResponseBuilder().json({"id": 1, "username": "Alice", "age": 30}).build()

        assert response.body == b'{"id":1,"username":"Alice","age":30}'
        assert response.headers["Content-Type"] == "application/json"

    def test_json_keeps_non_ascii(self):
        response = ResponseBuilder().json({"username": "Zoë"}).build()
        assert json.loads(response.body) == {"username": "Zoë"}
        assert "Zoë".encode("utf-8") in response.body

    def test_json_rejects_unserializable(self):
        builder = ResponseBuilder()

        with pytest.raises(TypeError):
            builder.json({"when": object()})

        assert builder.build().body == b""

    def test_text(self):
        response = ResponseBuilder().text("User not found").build()

        assert response.body == b"User not found"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_method_chaining(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("X-Request-ID", "abc")
            .text("done")
            .build())

        assert response.status == HTTPStatus.CREATED
        assert response.headers == {
            "X-Request-ID": "abc",
            "Content-Type": "text/plain; charset=utf-8",
        }
        assert response.body == b"done"


class TestConvenienceFunctions:
    """Tests for the response helpers."""

    def test_ok_is_json(self):
        response = ok({"id": 1})

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "application/json"
        assert response.body == b'{"id":1}'

    def test_created_is_text(self):
        response = created("User added successfully")

        assert response.status == HTTPStatus.CREATED
        assert response.text == "User added successfully"
        assert response.headers["Content-Type"].startswith("text/plain")
        assert "Location" not in response.headers

    def test_error_bodies_are_plain_text(self):
        for response, status, message in [
            (bad_request("Invalid ID"), HTTPStatus.BAD_REQUEST, "Invalid ID"),
            (not_found("User not found"), HTTPStatus.NOT_FOUND, "User not found"),
            (internal_error("boom"), HTTPStatus.INTERNAL_SERVER_ERROR, "boom"),
            (error(HTTPStatus.REQUEST_TIMEOUT, "late"), HTTPStatus.REQUEST_TIMEOUT, "late"),
        ]:
            assert response.status == status
            assert response.text == message
            assert response.headers["Content-Type"].startswith("text/plain")

    def test_method_not_allowed(self):
        response = method_not_allowed(["POST"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "POST"
        assert response.text == "Method Not Allowed"

    def test_method_not_allowed_lists_all(self):
        assert method_not_allowed(["GET", "POST"]).headers["Allow"] == "GET, POST"


class TestHTTPStatus:
    """Tests for HTTPStatus."""

    def test_phrases(self):
        assert HTTPStatus.CREATED.phrase == "Created"
        assert HTTPStatus.PAYLOAD_TOO_LARGE.phrase == "Payload Too Large"
        assert HTTPStatus.HTTP_VERSION_NOT_SUPPORTED.phrase == "HTTP Version Not Supported"

    def test_categories(self):
        assert HTTPStatus.CREATED.is_success
        assert not HTTPStatus.CREATED.is_error
        assert HTTPStatus.BAD_REQUEST.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error

    def test_compares_as_int(self):
        assert HTTPStatus.NOT_FOUND == 404
        assert HTTPStatus(405) is HTTPStatus.METHOD_NOT_ALLOWED


class TestFormatHTTPDate:
    def test_format(self):
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
