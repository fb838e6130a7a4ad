"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module implements the TCP socket server that handles the basic
socket lifecycle: it listens for incoming connections, accepts them, and
hands each one to a callback.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
    3. listen()    Mark socket as a "listening" socket
    4. accept()    Wait for and accept an incoming connection
                   └─ Returns a NEW socket just for that client
    5. close()     Release the socket resources

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   (Server Socket)     │     Bound to 0.0.0.0:80
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        │                       │                       │
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Rebind immediately after a restart instead of waiting out TIME_WAIT.

TCP_NODELAY:
    Disable Nagle's algorithm. The handshake is a ping-pong of tiny
    lines; Nagle would hold each one back waiting for more data.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM stop the accept loop. Python only allows
installing signal handlers from the main thread, so when the server runs
in a background thread (tests, or next to the interactive shell) the
handlers are skipped and shutdown() must be called explicitly.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket() + setsockopt()              │
    │        ├──► bind()             Bind to IP:PORT                       │
    │        ├──► listen()           Start accepting queue                 │
    │        ├──► _setup_signals()   SIGTERM/SIGINT (main thread only)    │
    │        └──► _accept_loop()     while running: accept → handler(conn)│
    │                                                                      │
    │    shutdown()                  _running = False, wake waiters       │
    │    _cleanup()                  restore signals, close socket        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Note: This does NOT create the socket; start() does.
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set while the socket is listening
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (IP, port) the server listens on.

        After start() this is the real bound address, so port 0 in the
        config resolves to the port the OS picked.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second so the loop can notice shutdown
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """Install SIGTERM/SIGINT handlers (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        on_ready: Optional[Callable[[Tuple[str, int]], None]] = None,
    ):
        """
        Start accepting connections.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with every accepted Connection. It
                                must return quickly (the server starts a
                                thread per connection inside it).
            on_ready: Called once with the bound (host, port) after the
                      socket is listening.

        Raises:
            OSError: If the address can't be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Database is running on tcp://{host}:{port}")
        self._ready_event.set()

        try:
            if on_ready is not None:
                on_ready(self._bound_address)

            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """Accept connections until shutdown() flips the running flag."""
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()

                logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    max_line_size=self.config.max_line_size,
                )

                connection_handler(conn)

            except socket.timeout:
                # Normal: lets us re-check self._running once a second
                continue

            except OSError as e:
                # Socket error - usually means we're shutting down
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

    def shutdown(self):
        """
        Initiate graceful shutdown.

        Safe to call from any thread, any number of times. The accept
        loop exits within one accept() timeout.
        """
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is bound and listening.

        Returns:
            True if the server is listening, False on timeout.
        """
        return self._ready_event.wait(timeout)

