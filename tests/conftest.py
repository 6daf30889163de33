"""
pytest configuration and fixtures.
"""

import socket
import threading
from datetime import datetime, timezone
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from embedserve import DevServer, ServerConfig, include_dir, new_directory_handler
from embedserve.embed import EmbeddedDirectory
from embedserve.http import HTTPRequest


ASSETS_DIR = Path(__file__).parent / "assets"


@pytest.fixture
def assets_dir() -> Path:
    """Path of the on-disk test assets."""
    return ASSETS_DIR


@pytest.fixture
def assets_tree() -> EmbeddedDirectory:
    """The test assets snapshotted with metadata."""
    return include_dir(ASSETS_DIR)


@pytest.fixture
def modified_at() -> datetime:
    """Fixed modification time for in-memory trees."""
    return datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)


@pytest.fixture
def site_tree(modified_at: datetime) -> EmbeddedDirectory:
    """Small in-memory site with nested directories."""
    return EmbeddedDirectory.from_mapping({
        "index.html": "<h1>root</h1>",
        "app.js": "console.log('hi');",
        "docs/index.html": "<h1>docs</h1>",
        "docs/guide.md": "# Guide",
        "docs v2/index.html": "<h1>v2</h1>",
        "empty/readme.txt": "no index here",
        "blob": b"\x00\x01\x02",
    }, modified=modified_at)


@pytest.fixture
def make_request():
    """Factory for hand-built requests: make_request("/a", method="HEAD", **headers)."""
    def factory(target: str = "/", method: str = "GET", **headers: str) -> HTTPRequest:
        return HTTPRequest(
            method=method,
            target=target,
            headers={name.replace("_", "-"): value for name, value in headers.items()},
        )
    return factory


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for an asset."""
    return (
        b"GET /css/site.css?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/css\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


class RunningServer:
    """DevServer on a background thread, bound to an OS-chosen port."""

    def __init__(self, server: DevServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw request bytes on a fresh connection and read until close."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                data = sock.recv(65536)
                if not data:
                    break
                chunks.append(data)
        return b"".join(chunks)


@pytest.fixture
def start_server():
    """Factory that starts a DevServer for any handler on port 0."""
    started = []

    def factory(handler) -> RunningServer:
        server = DevServer(handler, ServerConfig(port=0, timeout=5.0, log_level="WARNING"))
        running = RunningServer(server)
        running.start()
        started.append(running)
        return running

    yield factory

    for running in started:
        running.stop()


@pytest.fixture
def running_server(assets_tree: EmbeddedDirectory) -> Generator[RunningServer, None, None]:
    """Dev server serving the test assets with small chunks."""
    handler = new_directory_handler(assets_tree, chunk_size=4)
    server = DevServer(handler, ServerConfig(
        host="127.0.0.1",
        port=0,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=0.5,
        log_level="WARNING",
    ))

    running = RunningServer(server)
    running.start()

    yield running

    running.stop()
