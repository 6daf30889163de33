"""
=============================================================================
STREAMING RESPONSE BODY
=============================================================================

ByteStreamBody turns an in-memory byte string into a pull-based sequence
of chunks, so a response can be written to the socket piece by piece.

=============================================================================
WHY CHUNK AN IN-MEMORY BUFFER AT ALL?
=============================================================================

The asset is already resident in memory, so "reading" it is free. What
is NOT free is pushing it to a slow client: the transport writes one
chunk, waits for the socket buffer to drain (backpressure), then asks
for the next. Chunking keeps the per-request working set at ONE chunk
no matter how large the asset is.

    source (embedded, shared, never copied up front)
    ┌──────────────────────────────────────────────────────────────┐
    │ b"................................................."         │
    └──────────────────────────────────────────────────────────────┘
      ▲            ▲            ▲            ▲
      │ chunk 1    │ chunk 2    │ chunk 3    │ chunk 4 (short)
      offset=0     offset=N     offset=2N    offset=3N

    next_chunk()  → bytes copy of [offset, offset + N), cursor advances
    exhausted     → None, forever (safe to call again)

=============================================================================
CURSOR, NOT PRE-SLICING
=============================================================================

The body keeps a memoryview of the source plus an integer offset.
Slicing a memoryview is zero-copy; only the chunk being handed out is
copied into its own bytes object. Each request builds its own
ByteStreamBody, so concurrent responses for the same asset never share
cursor state.

If the consumer stops pulling (client disconnected), nothing needs to
be released: there is no file descriptor and no lock, just an abandoned
offset.

=============================================================================
"""

from typing import Iterator, AsyncIterator, Optional, Union


# 64 KiB - a good balance between syscall count and per-request memory
DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteStreamBody:
    """
    Lazily chunked view over a fixed byte source.

    =========================================================================
    USAGE
    =========================================================================

        body = ByteStreamBody(file.contents, chunk_size=32 * 1024)

        # explicit pull
        while (chunk := body.next_chunk()) is not None:
            sock.sendall(chunk)

        # or as an iterator
        for chunk in body:
            sock.sendall(chunk)

        # or from async code (ASGI)
        async for chunk in body:
            await send({"type": "http.response.body", "body": chunk, ...})

    All three drive the SAME cursor; a body is single-use.

    =========================================================================
    """

    __slots__ = ("_view", "_offset", "_chunk_size")

    def __init__(
        self,
        source: Union[bytes, bytearray, memoryview] = b"",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Args:
            source: The bytes to stream. Mutable buffers are copied once
                    so the body cannot observe later writes.
            chunk_size: Maximum size of every chunk, in bytes.

        Raises:
            ValueError: If chunk_size is not a positive integer.
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

        if not isinstance(source, bytes):
            source = bytes(source)

        self._view = memoryview(source)
        self._offset = 0
        self._chunk_size = chunk_size

    @classmethod
    def empty(cls) -> "ByteStreamBody":
        """Body that is exhausted from the start (redirects, 404, 304)."""
        return cls(b"")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def size_hint(self) -> int:
        """Total size of the source in bytes, used for Content-Length."""
        return len(self._view)

    @property
    def remaining(self) -> int:
        """Bytes not yet handed out."""
        return len(self._view) - self._offset

    @property
    def is_end_stream(self) -> bool:
        return self._offset >= len(self._view)

    # =========================================================================
    # PULLING CHUNKS
    # =========================================================================

    def next_chunk(self) -> Optional[bytes]:
        """
        Return the next up-to-chunk_size bytes, or None once exhausted.

        Calling again after exhaustion keeps returning None. Empty chunks
        are never produced.
        """
        if self._offset >= len(self._view):
            return None

        end = min(self._offset + self._chunk_size, len(self._view))
        chunk = self._view[self._offset:end].tobytes()
        self._offset = end
        return chunk

    def read_all(self) -> bytes:
        """Drain every remaining chunk into one bytes object."""
        return b"".join(self)

    # =========================================================================
    # ITERATOR PROTOCOLS
    # =========================================================================

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        chunk = self.next_chunk()
        if chunk is None:
            raise StopIteration
        return chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        # Producing a chunk never blocks; the await point for backpressure
        # is the consumer's send().
        chunk = self.next_chunk()
        if chunk is None:
            raise StopAsyncIteration
        return chunk

    def __repr__(self) -> str:
        return (
            f"ByteStreamBody(size={self.size_hint}, "
            f"remaining={self.remaining}, chunk_size={self._chunk_size})"
        )
