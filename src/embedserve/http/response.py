"""
=============================================================================
HTTP RESPONSE MODEL
=============================================================================

HTTPResponse pairs a status and headers with a body that is either a
small bytes object (error pages) or a ByteStreamBody (assets).

=============================================================================
HEAD FIRST, THEN CHUNKS
=============================================================================

An asset response is never serialized as one big buffer. A transport
writes the head, then pulls the body one chunk at a time:

    head_bytes()                     iter_body()
    ┌────────────────────────────┐   ┌─────────┐ ┌─────────┐ ┌─────┐
    │ HTTP/1.1 200 OK\\r\\n        │   │ chunk 1 │ │ chunk 2 │ │ ... │
    │ Content-Type: text/html    │ → │ 64 KiB  │ │ 64 KiB  │ │     │
    │ Content-Length: 183042     │   └─────────┘ └─────────┘ └─────┘
    │ Date / Server              │
    │ \\r\\n                       │
    └────────────────────────────┘

Content-Length is known up front from the body's size_hint, so no
chunked transfer-encoding is needed and the body is never drained
just to measure it.

Responses whose status forbids a body (204, 304) get no automatic
Content-Length.

=============================================================================
HTTP DATES
=============================================================================

Last-Modified and If-Modified-Since use the RFC 7231 HTTP-date:

    Sun, 06 Nov 1994 08:49:37 GMT      IMF-fixdate (what we send)
    Sunday, 06-Nov-94 08:49:37 GMT     RFC 850     (accepted)
    Sun Nov  6 08:49:37 1994           asctime     (accepted)

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Dict, Any, Iterator, Union
import json

from ..body import ByteStreamBody
from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "embedserve"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written by a transport.

    ``body`` may be a ByteStreamBody; transports should go through
    iter_body() / content_length instead of touching it directly.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[bytes, ByteStreamBody] = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def is_streaming(self) -> bool:
        return isinstance(self.body, ByteStreamBody)

    @property
    def content_length(self) -> int:
        """Total body size in bytes, without consuming a streamed body."""
        if isinstance(self.body, ByteStreamBody):
            return self.body.size_hint
        return len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    # =========================================================================
    # BODY ACCESS
    # =========================================================================

    def iter_body(self) -> Iterator[bytes]:
        """Yield the body chunks in order. A bytes body is one chunk."""
        if isinstance(self.body, ByteStreamBody):
            yield from self.body
        elif self.body:
            yield self.body

    def read_body(self) -> bytes:
        """Drain the whole body. Meant for tests and small responses."""
        return b"".join(self.iter_body())

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

        Adds Content-Length (when the status allows a body), Date and
        Server unless the handler already set them.
        """
        response_headers = dict(self.headers)

        if self.status.allows_body and not self.has_header("Content-Length"):
            response_headers["Content-Length"] = str(self.content_length)

        if not self.has_header("Date"):
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if not self.has_header("Server"):
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("utf-8") + b"\r\n"

    def iter_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        include_body: bool = True
    ) -> Iterator[bytes]:
        """
        Yield the head, then each body chunk.

        Pass include_body=False for HEAD requests: the head still
        announces the full Content-Length.
        """
        yield self.head_bytes(server_name)
        if include_body and self.status.allows_body:
            yield from self.iter_body()

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """Whole response in one buffer. Drains a streamed body."""
        return b"".join(self.iter_bytes(server_name))


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css")
            .stream(file.contents, chunk_size=65536)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Union[bytes, ByteStreamBody] = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def stream(self, source: bytes, chunk_size: Optional[int] = None) -> "ResponseBuilder":
        """Set a chunked ByteStreamBody over source."""
        if chunk_size is None:
            self._body = ByteStreamBody(source)
        else:
            self._body = ByteStreamBody(source, chunk_size)
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        self._body = json.dumps(data).encode("utf-8")
        return self.content_type("application/json")

    def redirect(
        self,
        location: str,
        status: HTTPStatus = HTTPStatus.TEMPORARY_REDIRECT
    ) -> "ResponseBuilder":
        """
        Redirect to location.

        307 by default: unlike 302, the client must repeat the same
        method against the new location.
        """
        self._status = status
        self._headers["Location"] = location
        return self

    def last_modified(self, modified: datetime) -> "ResponseBuilder":
        return self.header("Last-Modified", format_http_date(modified))

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# HTTP DATES
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate: "Wed, 01 Jan 2026 12:00:00 GMT".

    Aware datetimes are converted to UTC first; naive ones are taken
    to be UTC already.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse any of the three RFC 7231 HTTP-date forms into an aware UTC datetime.

    Returns None for anything unparseable; a bad If-Modified-Since
    header is ignored rather than treated as an error.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def empty_body_response(status: HTTPStatus, headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
    """Response with the given status, only the given headers and no body."""
    return HTTPResponse(status=status, headers=dict(headers or {}), body=b"")


def not_found() -> HTTPResponse:
    return empty_body_response(HTTPStatus.NOT_FOUND)


def not_modified() -> HTTPResponse:
    return empty_body_response(HTTPStatus.NOT_MODIFIED)


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """JSON error body, used by the dev server for transport-level failures."""
    status = HTTPStatus(status)
    return ResponseBuilder().status(status).json({"error": message or status.phrase}).build()


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
