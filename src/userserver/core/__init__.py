"""
Networking core: the listening socket and per-client connections.

    socket_server.py   accept loop, signal handling, graceful shutdown
    connection.py      buffered request reads, keep-alive timeouts
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
]
