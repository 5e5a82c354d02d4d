"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    HTTP/1.1 200 OK\r\n                          ← status line
    Content-Type: application/json\r\n           ← headers
    Content-Length: 38\r\n
    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n
    Server: userserver/1.0\r\n
    \r\n                                         ← separator
    {"id":1,"username":"Alice","age":30}         ← body

=============================================================================
BODY CONVENTIONS
=============================================================================

    Successful lookups       application/json, compact encoding
    Confirmations            text/plain
    Every error              text/plain, one human-readable sentence

Error bodies carry only the message: "User not found", "Invalid ID", or
the remote store's own error text on a failed insert.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any
import json

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "userserver/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Handlers normally get one from ResponseBuilder or one of the helper
    functions at the bottom of this module instead of building it by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """E.g. ``HTTP/1.1 404 Not Found``."""
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (convenience for tests and logging)."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME, include_body: bool = True) -> bytes:
        """
        Serialize to wire format.

        Content-Length, Date and Server are filled in when the handler did
        not set them. The response's own headers dict is left untouched.

        With ``include_body=False`` (answers to HEAD) the headers, including
        Content-Length, are the ones GET would get, but no body follows.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body if include_body else header_bytes


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .text("User added successfully")
            .build())

    Every method except build() returns the builder itself.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Serialize ``data`` as compact JSON.

        Raises:
            TypeError / ValueError: If ``data`` is not JSON-serializable.
                                    Nothing is changed on the builder then.
        """
        encoded = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        self._body = encoded.encode("utf-8")
        self._headers["Content-Type"] = "application/json"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    ``Mon, 19 Oct 2026 12:00:00 GMT``. Built by hand because
    ``strftime("%a")`` follows the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(data: Any) -> HTTPResponse:
    """200 OK with a JSON body."""
    return ResponseBuilder().status(HTTPStatus.OK).json(data).build()


def created(message: str) -> HTTPResponse:
    """201 Created with a plain-text confirmation."""
    return ResponseBuilder().status(HTTPStatus.CREATED).text(message).build()


def error(status: HTTPStatus, message: str) -> HTTPResponse:
    """Any error status with a plain-text message body."""
    return ResponseBuilder().status(status).text(message).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text("Method Not Allowed")
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return error(HTTPStatus.INTERNAL_SERVER_ERROR, message)
