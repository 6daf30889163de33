"""
Unit tests for the ASGI adapter.
"""

import asyncio

import pytest

from embedserve.asgi import ASGIAdapter, build_request
from embedserve.handlers import new_directory_handler


def http_scope(path="/", method="GET", raw_path=None, query_string=b"", headers=None):
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": headers or [],
        "client": ("127.0.0.1", 40000),
    }
    if raw_path is not None:
        scope["raw_path"] = raw_path
    return scope


def run_app(app, scope, incoming=None):
    """Run one ASGI call and return every message the app sent."""
    sent = []
    queue = list(incoming or [{"type": "http.request", "body": b"", "more_body": False}])

    async def receive():
        return queue.pop(0)

    async def send(message):
        sent.append(message)

    asyncio.run(app(scope, receive, send))
    return sent


@pytest.fixture
def app(site_tree):
    return ASGIAdapter(new_directory_handler(site_tree, chunk_size=5))


class TestASGIAdapter:
    """Tests for ASGIAdapter message flow."""

    def test_streams_file_in_chunks(self, app):
        """Test start message, one message per chunk, then the end marker."""
        sent = run_app(app, http_scope("/app.js"))

        start = sent[0]
        headers = dict(start["headers"])
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        assert headers[b"content-type"] == b"text/javascript"
        assert headers[b"content-length"] == b"18"
        assert headers[b"last-modified"] == b"Thu, 01 Jan 2026 12:00:00 GMT"

        chunks = [m["body"] for m in sent[1:-1]]
        assert chunks == [b"conso", b"le.lo", b"g('hi", b"');"]
        assert all(m["more_body"] for m in sent[1:-1])
        assert sent[-1] == {"type": "http.response.body", "body": b"", "more_body": False}

    def test_head_sends_no_body(self, app):
        """Test that HEAD announces the length but sends no chunks."""
        sent = run_app(app, http_scope("/app.js", method="HEAD"))

        assert dict(sent[0]["headers"])[b"content-length"] == b"18"
        assert len(sent) == 2
        assert sent[1]["body"] == b""

    def test_redirect_keeps_query(self, app):
        """Test the trailing-slash redirect through ASGI."""
        sent = run_app(app, http_scope("/docs", raw_path=b"/docs", query_string=b"a=1"))

        assert sent[0]["status"] == 307
        assert dict(sent[0]["headers"])[b"location"] == b"/docs/?a=1"

    def test_redirect_with_raw_bytes_in_query(self, app):
        """Test non-UTF-8 query bytes come back percent-encoded."""
        sent = run_app(app, http_scope("/docs", raw_path=b"/docs", query_string=b"q=\xff"))

        assert sent[0]["status"] == 307
        assert dict(sent[0]["headers"])[b"location"] == b"/docs/?q=%FF"

    def test_not_modified(self, app):
        """Test a 304 has no Content-Length and no body."""
        scope = http_scope(
            "/app.js",
            headers=[(b"if-modified-since", b"Thu, 01 Jan 2026 12:00:00 GMT")],
        )

        sent = run_app(app, scope)

        assert sent[0]["status"] == 304
        assert b"content-length" not in dict(sent[0]["headers"])
        assert len(sent) == 2

    def test_traversal_is_404(self, app):
        """Test that an encoded traversal in raw_path is rejected."""
        sent = run_app(app, http_scope("/../index.html", raw_path=b"/%2e%2e/index.html"))

        assert sent[0]["status"] == 404

    def test_server_header(self, site_tree):
        """Test the optional Server header."""
        app = ASGIAdapter(new_directory_handler(site_tree), server_name="embedserve")

        sent = run_app(app, http_scope("/app.js"))

        assert dict(sent[0]["headers"])[b"server"] == b"embedserve"

    def test_lifespan(self, app):
        """Test that startup and shutdown are acknowledged."""
        sent = run_app(app, {"type": "lifespan"}, [
            {"type": "lifespan.startup"},
            {"type": "lifespan.shutdown"},
        ])

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    def test_websocket_is_refused(self, app):
        """Test that a websocket handshake is closed."""
        sent = run_app(app, {"type": "websocket"}, [{"type": "websocket.connect"}])

        assert sent == [{"type": "websocket.close", "code": 1000}]


class TestBuildRequest:
    """Tests for scope → HTTPRequest translation."""

    def test_raw_path_preferred(self):
        """Test that the still-encoded raw_path becomes the target."""
        request = build_request(http_scope("/a b", raw_path=b"/a%20b", query_string=b"x=1"))

        assert request.target == "/a%20b?x=1"
        assert request.path == "/a%20b"

    def test_path_is_requoted_without_raw_path(self):
        """Test re-encoding of the decoded path."""
        request = build_request(http_scope("/你好 world.txt"))

        assert request.path == "/%E4%BD%A0%E5%A5%BD%20world.txt"

    def test_headers_and_client(self):
        """Test header joining and client address."""
        request = build_request(http_scope(headers=[
            (b"Accept", b"text/html"),
            (b"accept", b"text/css"),
            (b"user-agent", b"pytest"),
        ]))

        assert request.headers["accept"] == "text/html, text/css"
        assert request.user_agent == "pytest"
        assert request.client_address == ("127.0.0.1", 40000)
        assert request.version == "HTTP/1.1"
