"""
=============================================================================
TCP ACCEPT LOOP
=============================================================================

Owns the listening socket and hands every accepted client to a
callback as a Connection. Knows nothing about HTTP.

    SocketServer.start(on_connection)
        │
        ├── socket.create_server()      SO_REUSEADDR, port 0 → OS picks
        ├── TCP_NODELAY                 small heads go out immediately
        ├── SIGINT/SIGTERM → shutdown() (main thread only)
        │
        └── accept loop ─────────► on_connection(Connection)
              (short accept timeout so shutdown() is noticed promptly)

=============================================================================
"""

import contextlib
import logging
import signal
import socket
import threading
from typing import Callable, Iterator, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

# How often the accept loop wakes up to check for shutdown, in seconds.
ACCEPT_POLL_INTERVAL = 0.5


class SocketServer:
    """
    Listening socket plus accept loop.

        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()

    From another thread:

        server.wait_until_ready(5)
        host, port = server.address
        server.shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._bound: Optional[Tuple[str, int]] = None
        self._ready = threading.Event()
        self._stopping = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._ready.is_set() and not self._stopping.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening, even for port 0."""
        return self._bound or (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)

    def shutdown(self):
        """Stop accepting. Safe to call more than once, from any thread."""
        if not self._stopping.is_set():
            logger.info("Stopping accept loop...")
        self._stopping.set()

    # =========================================================================
    # SERVING
    # =========================================================================

    def start(self, on_connection: Callable[[Connection], None]):
        """
        Listen and accept until shutdown() is called.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._stopping.clear()
        try:
            listener = socket.create_server(
                (self.config.host, self.config.port),
                backlog=self.config.backlog,
            )
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.config.port}: {e}")
            raise

        with listener, self._signals_trigger_shutdown():
            listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            listener.settimeout(ACCEPT_POLL_INTERVAL)
            self._listener = listener
            self._bound = listener.getsockname()[:2]

            logger.info(f"Listening on http://{self._bound[0]}:{self._bound[1]}/")
            self._ready.set()
            try:
                self._accept_until_stopped(on_connection)
            finally:
                self._ready.clear()
                self._listener = None

        logger.info("Listener closed")

    def _accept_until_stopped(self, on_connection: Callable[[Connection], None]):
        while not self._stopping.is_set():
            try:
                client, client_address = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stopping.is_set():
                    logger.error(f"Accept failed: {e}")
                return

            logger.debug(f"Accepted {client_address[0]}:{client_address[1]}")
            on_connection(Connection(
                client,
                client_address[:2],
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
                server_name=self.config.server_name,
            ))

    @contextlib.contextmanager
    def _signals_trigger_shutdown(self) -> Iterator[None]:
        """Route SIGINT/SIGTERM to shutdown() while serving, then restore."""
        if threading.current_thread() is not threading.main_thread():
            # signal.signal() only works on the main thread
            yield
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
