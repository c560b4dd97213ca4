"""
=============================================================================
NETWORKING CORE
=============================================================================

    SocketServer   accept loop on a listening TCP socket
    Connection     one client socket, framed into whole requests
    ThreadPool     bounded pool of workers serving connections

    Client ──TCP──► SocketServer.accept() ──► ThreadPool.submit(conn)
                                                   │
                                                   ▼
                                   worker: Connection.read_request()
                                           HTTPServer.handle(request)
                                           Connection.send_response()

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
