"""
=============================================================================
HTTP REQUEST MODEL AND PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects (RFC 7230).

=============================================================================
THE REQUEST-TARGET IS KEPT RAW
=============================================================================

    GET /docs/caf%C3%A9.html?lang=fr HTTP/1.1\r\n
        ─────────────┬──────────────
                     │
           target (stored verbatim)
                     │
          ┌──────────┴───────────┐
          │                      │
        path                   query
    /docs/caf%C3%A9.html      lang=fr

The parser does NOT percent-decode the path and does NOT reject "..".
Both are the asset handler's job: it must see the undecoded path to
apply its own sanitizing rules, and it must know whether the client
typed a trailing "/" before any normalization happened.

=============================================================================
TARGET FORMS (RFC 7230 section 5.3)
=============================================================================

    origin-form      /index.html?x=1              (what browsers send)
    absolute-form    http://example.com/index.html (what proxies get)
    asterisk-form    *                             (OPTIONS only)

For the absolute form, scheme and authority come from the target
itself. They are used when an asset handler rebuilds the URI for a
redirect.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code the server should answer with:

        400 Bad Request                 - Malformed request syntax
        405 Method Not Allowed          - Unknown method
        413 Payload Too Large           - Request exceeds size limit
        505 HTTP Version Not Supported  - Not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         "GET", "HEAD", ...
        target:         Raw request-target exactly as received
                        ("/a%20b/?x=1"), never decoded
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header name → value, names lower-cased
        body:           Raw body bytes (ignored by asset handlers)
        client_address: (ip, port) of the peer, for logging

    Derived, read-only:

        path, query, scheme, authority, uri, query_params

    =========================================================================
    """

    method: str = "GET"
    target: str = "/"
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        # Header names are case-insensitive; store them lower-cased so
        # callers building requests by hand get the same lookups as the parser.
        if any(name != name.lower() for name in self.headers):
            self.headers = {name.lower(): value for name, value in self.headers.items()}

    # =========================================================================
    # URI COMPONENTS
    # =========================================================================

    @property
    def is_absolute_form(self) -> bool:
        return "://" in self.target

    @property
    def path(self) -> str:
        """
        Raw (still percent-encoded) path component, "/" when empty.

            "/a/b?x=1"                 → "/a/b"
            "http://h.example/a?x=1"   → "/a"
            "http://h.example"         → "/"
        """
        if self.is_absolute_form:
            path = urlsplit(self.target).path
        else:
            path = self.target.partition("?")[0]
        return path or "/"

    @property
    def query(self) -> Optional[str]:
        """
        Raw query string without "?", or None when the target has no "?".

        "?" with nothing after it gives "" (not None), so a rebuilt URI
        can reproduce it.
        """
        if "?" not in self.target:
            return None
        rest = self.target.split("?", 1)[1]
        return rest.partition("#")[0]

    @property
    def scheme(self) -> Optional[str]:
        """Scheme of an absolute-form target, otherwise None."""
        if self.is_absolute_form:
            return urlsplit(self.target).scheme or None
        return None

    @property
    def authority(self) -> Optional[str]:
        """Authority ("host:port") of an absolute-form target, otherwise None."""
        if self.is_absolute_form:
            return urlsplit(self.target).netloc or None
        return None

    @property
    def uri(self) -> str:
        return self.target

    @property
    def query_params(self) -> Dict[str, list[str]]:
        """Decoded query parameters: "?a=1&a=2" → {"a": ["1", "2"]}."""
        return parse_qs(self.query or "", keep_blank_values=True)

    # =========================================================================
    # HEADER ACCESSORS
    # =========================================================================

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after the response.

            HTTP/1.1: keep alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSING STEPS
    ==========================================================================

        1. Size check                   too large?  → 413
        2. Find "\\r\\n\\r\\n"          missing?    → 400
        3. Request line                 bad syntax → 400
           METHOD SP TARGET SP VERSION  bad method → 405
                                        bad version → 505
        4. Headers                      lower-cased names, duplicates joined
        5. Body                         exactly Content-Length bytes

    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # surrogateescape never fails, and encoding back with the same
        # error handler restores the exact bytes the client sent.
        header_section = data[:header_end].decode("utf-8", errors="surrogateescape")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        if not lines[0]:
            raise HTTPParseError("Empty request")

        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(
                f"Invalid Content-Length: {headers['content-length']!r}"
            ) from None
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            target=target,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "METHOD SP TARGET SP VERSION" into its three parts.

        The target is validated for shape only; it is returned undecoded.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        if not (target.startswith("/") or target == "*" or "://" in target):
            raise HTTPParseError(f"Invalid request target: {target!r}")

        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines.

        Names are lower-cased, values stripped. A line starting with
        whitespace continues the previous header (obsolete line folding).
        A repeated header is joined with ", " (RFC 7230 section 3.2.2).
        Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
