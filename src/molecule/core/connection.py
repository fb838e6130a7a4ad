"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module handles individual client connections, wrapping the raw socket
with a line-oriented API for the molecule protocol.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    send("OK admin:secret\\n")

might arrive as any of:

    recv() → "OK admin:secret\\n"      (whole line)
    recv() → "OK adm"                  (partial)
    recv() → "in:secret\\n"             (rest)

and a client that sends its hello and its command back-to-back

    send("OK\\n")
    send("COLLECTIONS_LIST\\n")

might arrive as one chunk containing both lines.

So we buffer received bytes and split on the protocol delimiter:

    ┌─────────────────────────────────────────────────────────────────┐
    │                      LINE FRAMING                                │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   _buffer: b"OK\\nCOLLECTIONS_LI"                                 │
    │                │                                                 │
    │                └── read_line() → b"OK"                           │
    │                                                                  │
    │   _buffer: b"COLLECTIONS_LI"   ← kept for the next read_line()   │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

A trailing "\\r" is stripped too, so telnet/netcat clients work. If the
client closes without a final newline, the remaining bytes count as the
last line.

=============================================================================
ONE COMMAND PER CONNECTION
=============================================================================

The molecule protocol serves exactly one command after the handshake,
then the server closes the connection. Closing is how the client knows
the response payload is complete.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                # Just accepted, nothing exchanged yet
    HANDSHAKE = "handshake"    # INITCONN sent, waiting for the hello line
    READING = "reading"        # Reading the command line
    PROCESSING = "processing"  # Command parsed, dispatcher is executing
    WRITING = "writing"        # Sending response data
    CLOSING = "closing"        # About to close (shutdown sequence)
    CLOSED = "closed"          # Connection closed, socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED LINE READING                                            │
    │     └── Accumulate recv() chunks until a "\\n" arrives               │
    │     └── Leftover bytes stay buffered for the next line              │
    │                                                                      │
    │  2. SIZE LIMIT                                                       │
    │     └── A line longer than max_line_size is refused                  │
    │                                                                      │
    │  3. STATE TRACKING                                                   │
    │     └── Know what phase of the protocol we're in (for logs)          │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── Proper TCP shutdown sequence                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        last_activity: Timestamp of last activity.
        lines_read: Number of complete lines read so far.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    lines_read: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096
    timeout: Optional[float] = None
    max_line_size: int = 16 * 1024 * 1024

    # Internal state (not shown in repr for cleaner logs)
    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        """Configure socket after initialization."""
        # Accepted sockets inherit the listener's accept() timeout on
        # some platforms, so reset it explicitly.
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> Optional[bytes]:
        """
        Read one line from the socket, without its line terminator.

        Returns:
            The line bytes, or None if the client closed the connection
            before sending anything.

        Raises:
            TimeoutError: If a timeout is configured and the read stalls.
            ValueError: If the line exceeds max_line_size.
        """
        self.last_activity = time.time()

        try:
            while b"\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    # Client closed; whatever is left is the last line
                    if not self._buffer:
                        return None
                    line, self._buffer = self._buffer, b""
                    self.lines_read += 1
                    return line.rstrip(b"\r")

                self._buffer += chunk

                if len(self._buffer) > self.max_line_size:
                    raise ValueError(f"Line too long: {len(self._buffer)} bytes")

        except socket.timeout:
            raise TimeoutError("Line read timeout")

        line, _, self._buffer = self._buffer.partition(b"\n")
        self.lines_read += 1
        self.last_activity = time.time()
        return line.rstrip(b"\r")

    def _recv(self) -> bytes:
        """
        Receive data from socket with error handling.

        Returns:
            Received bytes, or empty bytes if connection closed.
        """
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so a large JSON payload is written completely.

        Returns:
            True if send succeeded, False if connection lost.
        """
        if not data:
            return True

        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN so the client sees end-of-response
        2. drain whatever the client still sent
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except (socket.timeout, OSError):
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with a 'with' statement:

            with conn:
                line = conn.read_line()
                conn.send_response(payload)
            # Connection automatically closed here
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
