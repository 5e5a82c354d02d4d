"""
HTTP/1.1 protocol layer: request parsing, response building, routing.

    request.py       raw bytes   → HTTPRequest
    response.py      HTTPResponse → raw bytes, plus ok()/not_found()/... helpers
    router.py        (method, path) → handler
    status_codes.py  HTTPStatus enum with reason phrases
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 JSON
    created,             # 201 text
    error,               # any status, text
    bad_request,         # 400
    not_found,           # 404
    method_not_allowed,  # 405 + Allow
    internal_error,      # 500
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "error",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "Router",
    "Route",
    "RouteMatch",
    "HTTPStatus",
]
