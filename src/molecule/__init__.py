"""
=============================================================================
MOLECULE - Networked JSON Document Store
=============================================================================

A small database served over raw TCP. Clients open a connection, pass a
line-based handshake, send one command and read one response. Data lives
on disk as plain JSON files.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      MOLECULE ARCHITECTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. TRANSPORT                                                       │
    │      - TCP accept loop, one thread per connection                   │
    │      - Buffered line framing                                        │
    │                                                                      │
    │   2. HANDSHAKE                                                       │
    │      - INITCONN → OK[ user:pass] → READY | ERR <code>               │
    │      - bcrypt-hashed credential behind a read/write lock            │
    │                                                                      │
    │   3. COMMANDS                                                        │
    │      - Keyword parser producing typed requests                      │
    │      - Dispatcher with a middleware pipeline                        │
    │                                                                      │
    │   4. STORAGE                                                         │
    │      - map.json for collection metadata                             │
    │      - collections/<id>.json for each collection's records          │
    │      - Per-file locks so concurrent writers don't lose updates      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    molecule/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m molecule)
    ├── server.py            # MoleculeServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── auth.py              # Credential file + AuthGate
    ├── dispatcher.py        # Request → store operation
    ├── shell.py             # Interactive REPL
    ├── core/                # Sockets, connections, locks
    ├── protocol/            # Handshake, commands, responses, error codes
    ├── middleware/          # Middleware around dispatch
    └── store/               # JSON file persistence

=============================================================================
QUICK START
=============================================================================

    from molecule import MoleculeServer, ServerConfig

    server = MoleculeServer(ServerConfig(host="127.0.0.1", port=7070))
    server.run()

    # another terminal
    $ printf 'OK\\nCLN_CREATE users\\n' | nc 127.0.0.1 7070
    INITCONN
    READY
    3f2b8c1e-...

=============================================================================
"""

__version__ = "1.0.0"

from .server import MoleculeServer, create_server
from .config import ServerConfig
from .auth import AuthGate
from .dispatcher import Dispatcher, Command
from .store import DocumentStore, StoreError

__all__ = [
    "AuthGate",
    "Command",
    "Dispatcher",
    "DocumentStore",
    "MoleculeServer",
    "ServerConfig",
    "StoreError",
    "create_server",
    "__version__",
]
