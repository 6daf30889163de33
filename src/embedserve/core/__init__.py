"""
Socket-level building blocks of the development server.

    socket_server.py   listening socket and accept loop
    connection.py      per-client reading, streamed writing, close
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = ["Connection", "ConnectionState", "SocketServer"]
