"""
Conditional GET support (RFC 7232, If-Modified-Since only).

    client cache has copy from T        asset modified at M
                 │                              │
                 ▼                              ▼
    If-Modified-Since: T   ──────►   M <= T ?  ──yes──►  304, empty body
                                           │
                                           no
                                           ▼
                                      200 + full body

HTTP dates have one-second resolution, so M is truncated to whole
seconds before comparing; otherwise a file modified at 12:00:00.5 would
never match the "12:00:00" the client echoes back.

If-None-Match takes precedence over If-Modified-Since (RFC 7232
section 6). Entity tags are not generated, so when a client sends
If-None-Match the date check is skipped and the full body is served.
"""

from datetime import datetime, timezone
from typing import Optional

from .request import HTTPRequest
from .response import parse_http_date


CONDITIONAL_METHODS = ("GET", "HEAD")


def is_not_modified(request: HTTPRequest, modified: Optional[datetime]) -> bool:
    """
    Return True when the request's If-Modified-Since makes a 304 appropriate.

    Args:
        request: The incoming request.
        modified: Last modification time of the asset, or None when
                  unknown (then the answer is always False).
    """
    if modified is None:
        return False
    if request.method not in CONDITIONAL_METHODS:
        return False
    if "if-none-match" in request.headers:
        return False

    since = parse_http_date(request.get_header("if-modified-since"))
    if since is None:
        return False

    if modified.tzinfo is None:
        modified = modified.replace(tzinfo=timezone.utc)

    return modified.replace(microsecond=0) <= since
