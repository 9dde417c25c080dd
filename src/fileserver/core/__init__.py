"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the file server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER (Listener)                                           │
    │  • Creates, binds and listens on the TCP socket                     │
    │  • Runs the accept() loop, hands each connection off, never waits   │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL (Supervisor)                                           │
    │  • One worker thread per live connection, up to max_workers         │
    │  • Bounded wait queue beyond that; rejects instead of blocking      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION                                                         │
    │  • Wraps the client socket: bounded request reads, sends, close     │
    │  • Tracks the protocol state of the keep-alive loop                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer, AcceptError
from .connection import Connection, ConnectionState, RequestTooLargeError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "AcceptError",
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "ThreadPool",
]
