"""
=============================================================================
ASGI ADAPTER
=============================================================================

Runs an asset handler under any ASGI 3 server (uvicorn, hypercorn, ...):

    # app.py
    from embedserve import include_dir, new_directory_handler
    from embedserve.asgi import ASGIAdapter

    app = ASGIAdapter(new_directory_handler(include_dir("site")))

    $ uvicorn app:app

=============================================================================
MESSAGE FLOW
=============================================================================

    scope (type="http")
        │   raw_path + query_string → HTTPRequest(target=...)
        ▼
    handler(request) → HTTPResponse
        │
        ├─► {"type": "http.response.start", status, headers}
        │
        ├─► {"type": "http.response.body", body: chunk 1, more_body: True}
        ├─► {"type": "http.response.body", body: chunk 2, more_body: True}
        │        ...  one message per ByteStreamBody chunk; each await
        │             send() is where the server applies backpressure
        │
        └─► {"type": "http.response.body", body: b"", more_body: False}

HEAD responses announce Content-Length but send only the final empty
body message. If the client disconnects, the server makes send() raise
and the rest of the body is never pulled.

The handler itself is synchronous and never blocks: resolution is
dictionary lookups over an in-memory tree.

=============================================================================
"""

import logging
from typing import Callable, Dict, List, Tuple
from urllib.parse import quote

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


class ASGIAdapter:
    """Expose a ``HTTPRequest -> HTTPResponse`` callable as an ASGI application."""

    def __init__(self, handler: Handler, server_name: str = ""):
        """
        Args:
            handler: Asset handler (optionally wrapped in middleware).
            server_name: Value for a Server header; none is added when empty,
                         since ASGI servers usually set their own.
        """
        self.handler = handler
        self.server_name = server_name

    async def __call__(self, scope, receive, send):
        scope_type = scope["type"]

        if scope_type == "http":
            await self._handle_http(scope, send)
        elif scope_type == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope_type == "websocket":
            # nothing to upgrade to; refuse the handshake
            message = await receive()
            if message["type"] == "websocket.connect":
                await send({"type": "websocket.close", "code": 1000})
        else:
            logger.debug(f"Ignoring unsupported ASGI scope type {scope_type!r}")

    async def _handle_lifespan(self, receive, send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_http(self, scope, send):
        request = build_request(scope)
        response = self.handler(request)

        await send({
            "type": "http.response.start",
            "status": int(response.status),
            "headers": self._encode_headers(response),
        })

        if request.method != "HEAD" and response.status.allows_body:
            async for chunk in _aiter_body(response):
                await send({
                    "type": "http.response.body",
                    "body": chunk,
                    "more_body": True,
                })

        await send({"type": "http.response.body", "body": b"", "more_body": False})

    def _encode_headers(self, response: HTTPResponse) -> List[Tuple[bytes, bytes]]:
        headers = dict(response.headers)

        if response.status.allows_body and not response.has_header("Content-Length"):
            headers["Content-Length"] = str(response.content_length)
        if self.server_name and not response.has_header("Server"):
            headers["Server"] = self.server_name

        return [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]


async def _aiter_body(response: HTTPResponse):
    if response.is_streaming:
        async for chunk in response.body:
            yield chunk
    elif response.body:
        yield response.body


def build_request(scope) -> HTTPRequest:
    """
    Translate an ASGI HTTP scope into an HTTPRequest.

    The target is rebuilt from ``raw_path`` (still percent-encoded) when
    the server provides it, otherwise by re-quoting ``path``.
    """
    raw_path = scope.get("raw_path")
    if raw_path:
        target = raw_path.decode("utf-8", errors="surrogateescape")
    else:
        target = quote(scope.get("path", "/"), safe="/:@!$&'()*+,;=-._~")

    query_string = scope.get("query_string", b"")
    if query_string:
        target = f"{target}?{query_string.decode('utf-8', errors='surrogateescape')}"

    headers: Dict[str, str] = {}
    for name, value in scope.get("headers", []):
        key = name.decode("latin-1").lower()
        text = value.decode("latin-1")
        headers[key] = f"{headers[key]}, {text}" if key in headers else text

    client = scope.get("client") or ("", 0)

    return HTTPRequest(
        method=scope.get("method", "GET"),
        target=target,
        version=f"HTTP/{scope.get('http_version', '1.1')}",
        headers=headers,
        client_address=(client[0], client[1]),
    )
