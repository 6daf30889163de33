"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket for the lifetime of a (possibly kept-alive)
HTTP conversation: framing requests out of the byte stream, writing
streamed responses, and closing cleanly.

=============================================================================
REQUEST FRAMING
=============================================================================

    recv() ──► inbox (bytearray)
                 │
                 ├── until b"\r\n\r\n"         head complete
                 ├── Content-Length from head  (0 when absent/garbled)
                 └── until head + body present
                 │
                 ▼
    one request's bytes handed to RequestParser; anything after it stays
    in the inbox for the next call (pipelining)

The first request must arrive within ``timeout``. Later requests on a
kept-alive connection get ``keep_alive_timeout``; running out of that
is a normal end of conversation, not an error.

=============================================================================
WRITING A STREAMED RESPONSE
=============================================================================

    send_response(response)
          │
          ├── sendall(head)              status line + headers
          └── sendall(chunk) ...         one ByteStreamBody chunk at a time

sendall() blocks while the client's receive window is full, which is
the backpressure. If it fails the client is gone: the rest of the body
is never pulled, and nothing else needs releasing.

=============================================================================
"""

import logging
import re
import socket
import uuid
from enum import Enum
from typing import Optional, Tuple

from ..http.request import HTTPParseError
from ..http.response import HTTPResponse, DEFAULT_SERVER_NAME


logger = logging.getLogger(__name__)

_HEAD_END = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*$", re.IGNORECASE | re.MULTILINE)


class ConnectionState(Enum):
    OPEN = "open"
    READING = "reading"
    WRITING = "writing"
    IDLE = "idle"            # between keep-alive requests
    CLOSED = "closed"


class Connection:
    """
    One client connection.

        with Connection(sock, addr, timeout=30.0) as conn:
            while (raw := conn.read_request()) is not None:
                ...
                conn.send_response(response)
    """

    def __init__(
        self,
        sock: socket.socket,
        address: Tuple[str, int],
        *,
        buffer_size: int = 8192,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 1024 * 1024,
        server_name: str = DEFAULT_SERVER_NAME,
    ):
        self.socket = sock
        self.address = address
        self.id = uuid.uuid4().hex[:8]
        self.state = ConnectionState.OPEN

        self.buffer_size = buffer_size
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size
        self.server_name = server_name

        self.requests_handled = 0
        self.bytes_sent = 0
        self._inbox = bytearray()

        self.socket.settimeout(timeout)

    def __repr__(self) -> str:
        return f"Connection({self.id}, {self.address[0]}:{self.address[1]}, {self.state.value})"

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Return the bytes of the next complete request.

        Returns:
            The request (head plus Content-Length body), or None when the
            client closed the connection or went quiet between requests.

        Raises:
            TimeoutError: The first request did not arrive in time.
            HTTPParseError: The request exceeds max_request_size (413).
        """
        self.state = ConnectionState.READING
        waiting_for_next = self.requests_handled > 0
        if waiting_for_next:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            head_end = self._fill_until(lambda: self._inbox.find(_HEAD_END))
            if head_end is None:
                return None

            request_end = head_end + len(_HEAD_END) + self._content_length(head_end)
            if self._fill_until(lambda: request_end if len(self._inbox) >= request_end else -1) is None:
                # truncated body: hand over what arrived, the parser rejects it
                request_end = len(self._inbox)
        except socket.timeout:
            if waiting_for_next:
                logger.debug(f"[{self.id}] Idle keep-alive connection timed out")
                return None
            raise TimeoutError(f"No complete request within {self.timeout}s") from None
        finally:
            self.socket.settimeout(self.timeout)

        data = bytes(self._inbox[:request_end])
        del self._inbox[:request_end]
        self.requests_handled += 1
        return data

    def _fill_until(self, probe) -> Optional[int]:
        """recv() until probe() is non-negative; None if the peer closed first."""
        while (position := probe()) < 0:
            try:
                data = self.socket.recv(self.buffer_size)
            except (ConnectionResetError, BrokenPipeError):
                data = b""
            if not data:
                return None
            self._inbox += data
            if len(self._inbox) > self.max_request_size:
                raise HTTPParseError(
                    f"Request too large: more than {self.max_request_size} bytes",
                    status_code=413
                )
        return position

    def _content_length(self, head_end: int) -> int:
        # Only framing needs this; RequestParser validates the value properly.
        match = _CONTENT_LENGTH.search(bytes(self._inbox[:head_end]).replace(b"\r\n", b"\n"))
        return int(match.group(1)) if match else 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """sendall() one buffer. False if the client is gone."""
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    def send_response(self, response: HTTPResponse, include_body: bool = True) -> bool:
        """
        Write the head, then the body one chunk at a time.

        Args:
            response: Response to send.
            include_body: False for HEAD requests.

        Returns:
            True if everything was written, False if the client went away.
        """
        self.state = ConnectionState.WRITING

        for data in response.iter_bytes(self.server_name, include_body=include_body):
            if not self.send(data):
                logger.warning(
                    f"[{self.id}] Client disconnected during "
                    f"{int(response.status)} response"
                )
                return False
        return True

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def set_keep_alive(self):
        self.state = ConnectionState.IDLE

    def close(self):
        """Half-close, give the client a moment to finish, then release the socket."""
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            # peer already gone, or it kept talking past the grace period
            pass
        finally:
            self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed after {self.requests_handled} requests, "
            f"{self.bytes_sent} bytes sent"
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
