"""
Tests for the development server over real sockets.
"""

import json
import logging
import socket

from embedserve.handlers import new_single_file_handler
from embedserve.embed import include_file
from embedserve.http import HTTPResponse, HTTPStatus


def split_response(data: bytes):
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


class TestDevServer:
    """End-to-end tests against a running DevServer."""

    def test_get_file(self, running_server):
        """Test a GET streamed in small chunks arrives whole."""
        data = running_server.request(
            b"GET /subfolder/data.json HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n"
        )

        status, headers, body = split_response(data)
        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "application/json"
        assert headers["content-length"] == str(len(body))
        assert headers["connection"] == "close"
        assert headers["server"] == "embedserve"
        assert json.loads(body)["name"] == "data"

    def test_head(self, running_server):
        """Test HEAD gets headers with the full length and no body."""
        data = running_server.request(
            b"HEAD /text.txt HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n"
        )

        status, headers, body = split_response(data)
        assert status == "HTTP/1.1 200 OK"
        assert headers["content-length"] == "6"
        assert body == b""

    def test_redirect(self, running_server):
        """Test the directory redirect over the wire."""
        data = running_server.request(
            b"GET /subfolder?x=1 HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n"
        )

        status, headers, body = split_response(data)
        assert status == "HTTP/1.1 307 Temporary Redirect"
        assert headers["location"] == "/subfolder/?x=1"
        assert headers["content-length"] == "0"

    def test_redirect_with_raw_bytes_in_query(self, running_server):
        """Test a non-UTF-8 query byte still gets a 307 with an encoded Location."""
        data = running_server.request(
            b"GET /subfolder?q=\xff HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n"
        )

        status, headers, _ = split_response(data)
        assert status == "HTTP/1.1 307 Temporary Redirect"
        assert headers["location"] == "/subfolder/?q=%FF"

    def test_raw_utf8_path(self, running_server):
        """Test a non-encoded UTF-8 path from a lenient client."""
        data = running_server.request(
            "GET /你好世界.txt HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n".encode("utf-8")
        )

        status, _, body = split_response(data)
        assert status == "HTTP/1.1 200 OK"
        assert body == "你好世界\n".encode("utf-8")

    def test_traversal(self, running_server):
        """Test a traversal attempt is a plain 404."""
        data = running_server.request(
            b"GET /%2e%2e/%2e%2e/etc/passwd HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n"
        )

        status, _, body = split_response(data)
        assert status == "HTTP/1.1 404 Not Found"
        assert body == b""

    def test_bad_request(self, running_server):
        """Test an unparseable request line gets a 400 and the connection closes."""
        data = running_server.request(b"NONSENSE\r\n\r\n")

        status, headers, body = split_response(data)
        assert status == "HTTP/1.1 400 Bad Request"
        assert headers["connection"] == "close"
        assert "error" in json.loads(body)

    def test_unsupported_version(self, running_server):
        """Test HTTP/2.0 in the request line is answered with 505."""
        data = running_server.request(b"GET / HTTP/2.0\r\nHost: t\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 505 ")

    def test_keep_alive_pipelined(self, running_server):
        """Test two requests answered on one connection."""
        data = running_server.request(
            b"GET /text.txt HTTP/1.1\r\nHost: t\r\n\r\n"
            b"GET /text.txt HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n"
        )

        assert data.count(b"HTTP/1.1 200 OK") == 2
        assert data.count(b"hello\n") == 2
        assert b"Connection: keep-alive" in data

    def test_address_and_running(self, running_server):
        """Test the bound ephemeral port is exposed."""
        host, port = running_server.server.address

        assert host == "127.0.0.1"
        assert port > 0
        assert running_server.server.is_running is True


class TestDevServerLifecycle:
    """Tests for starting and stopping."""

    def test_stop(self, assets_dir, start_server):
        """Test that stop() makes run() return and frees the port."""
        handler = new_single_file_handler(include_file(assets_dir / "text.txt"))
        running = start_server(handler)
        port = running.port

        running.stop()

        assert running.server.is_running is False
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(1.0)
            assert sock.connect_ex(("127.0.0.1", port)) != 0

    def test_handler_error_is_500(self, start_server):
        """Test that an exception in the handler becomes a 500."""
        def broken(request):
            raise RuntimeError("boom")

        running = start_server(broken)
        data = running.request(b"GET / HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n")

        status, _, body = split_response(data)
        assert status == f"HTTP/1.1 {int(HTTPStatus.INTERNAL_SERVER_ERROR)} Internal Server Error"
        assert json.loads(body) == {"error": "Internal Server Error"}

    def test_unwritable_response_is_logged(self, start_server, caplog):
        """Test a response that cannot be encoded closes the connection and is logged."""
        def bad_header(request):
            return HTTPResponse(status=HTTPStatus.OK, headers={"X-Bad": "\udcff"}, body=b"")

        running = start_server(bad_header)
        with caplog.at_level(logging.ERROR, logger="embedserve"):
            data = running.request(b"GET / HTTP/1.1\r\nHost: t\r\nConnection: close\r\n\r\n")

        assert data == b""
        assert "Failed to write 200 response" in caplog.text
