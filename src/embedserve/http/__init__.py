"""
=============================================================================
HTTP MESSAGE LAYER
=============================================================================

The request/response abstraction every asset handler is written against.
It is transport-neutral: the dev server fills it from a socket, the ASGI
adapter from a scope dict, tests build it by hand.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py        HTTPRequest, RequestParser, HTTPParseError        │
    │ response.py       HTTPResponse, ResponseBuilder, HTTP dates         │
    │ conditional.py    is_not_modified() (If-Modified-Since)             │
    │ status_codes.py   HTTPStatus                                        │
    │ mime_types.py     get_mime_type(), validate_header_value()          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .status_codes import HTTPStatus
from .mime_types import DEFAULT_MIME_TYPE, get_mime_type, validate_header_value
from .request import HTTPRequest, HTTPParseError, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    parse_http_date,
    not_found,
    not_modified,
    error_response,
    internal_error,
)
from .conditional import is_not_modified

__all__ = [
    "HTTPStatus",
    "DEFAULT_MIME_TYPE",
    "get_mime_type",
    "validate_header_value",
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "parse_http_date",
    "not_found",
    "not_modified",
    "error_response",
    "internal_error",
    "is_not_modified",
]
