"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

The status codes an asset handler or the development server can emit,
with their reason phrases.

=============================================================================
WHICH CODES DOES AN ASSET HANDLER USE?
=============================================================================

    ┌────────┬────────────────────────┬──────────────────────────────────┐
    │ Status │ Name                   │ When                             │
    ├────────┼────────────────────────┼──────────────────────────────────┤
    │  200   │ OK                     │ File found, bytes are streamed   │
    │  304   │ Not Modified           │ If-Modified-Since still current  │
    │  307   │ Temporary Redirect     │ Directory requested without "/"  │
    │  404   │ Not Found              │ Missing asset OR malformed path  │
    ├────────┼────────────────────────┼──────────────────────────────────┤
    │  400   │ Bad Request            │ Dev server: unparseable request  │
    │  405   │ Method Not Allowed     │ Dev server: unknown method       │
    │  408   │ Request Timeout        │ Dev server: client too slow      │
    │  413   │ Payload Too Large      │ Dev server: request over limit   │
    │  500   │ Internal Server Error  │ Dev server: handler raised       │
    │  505   │ HTTP Version Not Supp. │ Dev server: not HTTP/1.0 or 1.1  │
    └────────┴────────────────────────┴──────────────────────────────────┘

307 (not 302) is used for the trailing-slash redirect because 307
guarantees the client repeats the request with the same method.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.TEMPORARY_REDIRECT.phrase
        'Temporary Redirect'
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    NOT_MODIFIED = 304            # Cached copy is still valid, no body
    TEMPORARY_REDIRECT = 307      # Like 302 but preserves the HTTP method

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line ("HTTP/1.1 404 Not Found")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        """4xx or 5xx."""
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a message body.

        RFC 7230 section 3.3: 1xx, 204 and 304 responses never have one,
        so they also never get an automatic Content-Length header.
        """
        return not (self < 200 or self in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
