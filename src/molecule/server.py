"""
=============================================================================
MOLECULE SERVER
=============================================================================

The orchestrator that ties all components together: socket server,
handshake, command parsing, dispatch, and the document store.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      MOLECULE ARCHITECTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                      ┌──────────────────┐                           │
    │                      │  MoleculeServer  │                           │
    │                      │  (Orchestrator)  │                           │
    │                      └────────┬─────────┘                           │
    │                               │                                      │
    │        ┌──────────────────────┼──────────────────────┐              │
    │        │                      │                      │              │
    │        ▼                      ▼                      ▼              │
    │  ┌────────────┐        ┌────────────┐        ┌──────────────┐       │
    │  │SocketServer│        │  AuthGate  │        │  Dispatcher  │       │
    │  │(Networking)│        │(Credential)│        │ + middleware │       │
    │  └─────┬──────┘        └─────┬──────┘        └──────┬───────┘       │
    │        │                     │                      │               │
    │        ▼                     ▼                      ▼               │
    │  ┌────────────┐        ┌────────────┐        ┌──────────────┐       │
    │  │ Connection │        │ auth.store │        │DocumentStore │       │
    │  │ (thread)   │        │            │        │ map.json ... │       │
    │  └────────────┘        └────────────┘        └──────────────┘       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    1. ACCEPT
       └── SocketServer accepts TCP connection, starts a thread for it

    2. HANDSHAKE
       └── INITCONN → OK[ user:pass] → READY | ERR <code>

    3. READ COMMAND
       └── Exactly one line

    4. PARSE
       └── parse_command(line, SOCKET) → typed request

    5. DISPATCH
       └── Middleware → Dispatcher → DocumentStore

    6. RESPOND AND CLOSE
       └── Payload bytes, then the connection is closed

There is no limit on concurrent connections and, by default, no timeout
on a stalled client. Each connection costs one thread for its lifetime.

=============================================================================
"""

import logging
import threading
import time
from typing import Callable, Optional, Set, Tuple

from .auth import AuthGate, parse_auth_string
from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .dispatcher import Dispatcher, Command
from .middleware import CommandLoggingMiddleware
from .protocol import (
    Handshake,
    InputSource,
    CommandParseError,
    CommandNotAvailable,
    ErrorCode,
    parse_command,
)
from .store import DocumentStore, StoreError


logger = logging.getLogger(__name__)


class MoleculeServer:
    """
    Networked document store server.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(host="127.0.0.1", port=7070, auth="admin:secret")
        server = MoleculeServer(config)
        server.run()   # blocks until Ctrl+C

    Or in the background (tests, interactive shell):

        server.start_background()
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        store: Optional[DocumentStore] = None,
        auth_gate: Optional[AuthGate] = None,
        dispatcher: Optional[Dispatcher] = None,
    ):
        """
        Initialize the server.

        Components not passed in are built from the config.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config)

        self.store = store or DocumentStore(
            self.config.data_path,
            meta_path=self.config.meta_path,
            collections_path=self.config.collections_path,
        )

        self.auth_gate = auth_gate or AuthGate(
            self.config.auth_path,
            rounds=self.config.bcrypt_rounds,
        )

        if dispatcher is None:
            dispatcher = Dispatcher(self.store)
            dispatcher.use(CommandLoggingMiddleware(log_format=self.config.log_format))
        self.dispatcher = dispatcher

        # ─────────────────────────────────────────────────────────────────
        # RUNTIME STATE
        # ─────────────────────────────────────────────────────────────────

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

        # Live connection threads, so shutdown can wait for them
        self._workers: Set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    @property
    def address(self):
        """(host, port) actually bound, once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def active_connections(self) -> int:
        with self._workers_lock:
            return len(self._workers)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.effective_log_level, logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("molecule").setLevel(level)

    def bootstrap(self):
        """
        Provision the data directory and activate credentials.

        With an auth string in the config, credentials are loaded or
        created; without one, an existing auth.store is still loaded.

        Raises:
            StoreError: If the data directory can't be provisioned.
            OSError, ValueError: If the credential file can't be set up.
        """
        self.store.initialize()

        if self.config.auth:
            username, password = parse_auth_string(self.config.auth)
            self.auth_gate.setup_credentials(username, password)
        elif self.auth_gate.load():
            logger.info("Using stored credentials")
        else:
            logger.info("No credentials configured, auth gate is open")

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, on_ready: Optional[Callable[[Tuple[str, int]], None]] = None):
        """
        Bootstrap and serve (blocking).

        Returns when shutdown() is called or SIGINT/SIGTERM arrives.

        Args:
            on_ready: Called with the bound (host, port) once the server
                      is listening.

        Raises:
            OSError: If the listening socket can't be bound.
        """
        self._setup_logging()
        self.bootstrap()
        self._running = True

        try:
            self._socket_server.start(self._handle_connection, on_ready)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def start_background(self, timeout: float = 5.0) -> "MoleculeServer":
        """
        Run the server in a daemon thread and wait until it listens.

        Raises:
            RuntimeError: If the server didn't start listening in time.
            Whatever run() raised (bind failure, bootstrap failure).
        """
        def target():
            try:
                self.run()
            except BaseException as e:
                self._error = e
                logger.exception(f"Server failed: {e}")

        self._thread = threading.Thread(target=target, name="molecule-server", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + timeout
        while not self._socket_server.wait_until_ready(0.05):
            if not self._thread.is_alive():
                if self._error is not None:
                    raise self._error
                raise RuntimeError("Server exited before listening")
            if time.monotonic() > deadline:
                raise RuntimeError("Server failed to start")

        return self

    def shutdown(self, timeout: Optional[float] = 5.0):
        """
        Stop accepting connections and wait for the accept loop to end.

        Safe to call from any thread, including a connection handler.
        """
        self._socket_server.shutdown()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    def _shutdown(self, timeout: float = 5.0):
        """Wait (briefly) for in-flight connections to finish."""
        logger.info("Shutting down server...")
        self._running = False

        with self._workers_lock:
            workers = list(self._workers)

        for worker in workers:
            worker.join(timeout=timeout)

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Start a handler thread for a new connection.

        Called by SocketServer for each accepted connection.
        """
        worker = threading.Thread(
            target=self._run_worker,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()

    def _run_worker(self, conn: Connection):
        try:
            self.process_connection(conn)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def process_connection(self, conn: Connection):
        """
        Serve one connection: handshake, one command, close.

        Any failure ends this connection only; the server keeps running.
        """
        with conn:
            try:
                self._serve(conn)
            except TimeoutError:
                logger.info(f"[{conn.id}] Client timed out")
            except ValueError as e:
                logger.warning(f"[{conn.id}] {e}")
            except StoreError as e:
                logger.exception(f"[{conn.id}] Store error: {e}")
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _serve(self, conn: Connection):
        # ─────────────────────────────────────────────────────────────────
        # HANDSHAKE
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.HANDSHAKE
        handshake = Handshake(self.auth_gate, require_auth=self.config.require_auth)
        if not handshake.run(conn):
            return

        # ─────────────────────────────────────────────────────────────────
        # READ COMMAND
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.READING
        raw = conn.read_line()
        if raw is None:
            logger.debug(f"[{conn.id}] Client left without a command")
            return

        # ─────────────────────────────────────────────────────────────────
        # PARSE
        # ─────────────────────────────────────────────────────────────────
        try:
            request = parse_command(raw.decode("utf-8"), InputSource.SOCKET)
        except UnicodeDecodeError:
            conn.send_response(ErrorCode.INVALID_INPUT.to_line())
            return
        except CommandNotAvailable as e:
            logger.info(f"[{conn.id}] {e}")
            conn.send_response(ErrorCode.CMD_NOT_AVAILABLE.to_line())
            return
        except CommandParseError as e:
            logger.info(f"[{conn.id}] {e}")
            conn.send_response(ErrorCode.INVALID_INPUT.to_line())
            return

        # ─────────────────────────────────────────────────────────────────
        # DISPATCH AND RESPOND
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.PROCESSING
        command = Command(request, source=InputSource.SOCKET, client=conn.id)
        response = self.dispatcher.handle(command)

        conn.send_response(response.to_bytes())


def create_server(config: Optional[ServerConfig] = None) -> MoleculeServer:
    """Factory for server instances."""
    return MoleculeServer(config)
