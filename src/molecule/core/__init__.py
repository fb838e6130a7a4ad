"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The low-level networking and synchronization building blocks.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Creates the TCP listening socket, binds, listens                 │
    │  • Runs the accept() loop                                           │
    │  • Stops on shutdown() or SIGTERM/SIGINT                            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One thread per accepted connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Wraps a client socket                                            │
    │  • Buffered line reading (TCP is a stream, not messages!)          │
    │  • Tracks state (NEW → HANDSHAKE → READING → PROCESSING → ...)      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        READ/WRITE LOCK                               │
    │  • Shared by every handshake that validates credentials             │
    │  • Many readers at once, one writer alone                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .rwlock import ReadWriteLock

__all__ = [
    "SocketServer",     # Main TCP server - accepts connections
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
    "ReadWriteLock",    # Shared/exclusive lock for the credential slot
]
