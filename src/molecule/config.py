"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the molecule server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m molecule --port 7070                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MOLECULE_PORT=7070 python -m molecule                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ON-DISK LAYOUT
=============================================================================

Everything the server persists lives under a single root directory:

    .molecule/
    ├── auth.store              # {"username": ..., "password": <bcrypt>}
    └── data/
        ├── map.json            # [{"collection_id": ..., "name": ...}, ...]
        └── collections/
            ├── <id>.json       # [{"_id": ..., ...}, ...]
            └── ...

The data directory can be moved elsewhere with --data; the credential
file always stays in the root directory.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_ROOT_DIR = ".molecule"
DEFAULT_ADDR = "0.0.0.0"
DEFAULT_PORT = 80

AUTH_FILE_NAME = "auth.store"
META_FILE_NAME = "map.json"
COLLECTIONS_DIR_NAME = "collections"


@dataclass
class ServerConfig:
    """
    Configuration for the molecule server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout, max_line_size

    STORAGE
    - root_dir, data_dir

    AUTH
    - auth, require_auth, bcrypt_rounds

    FRONT ENDS
    - cli

    LOGGING
    - enable_logging, log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = DEFAULT_ADDR
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = DEFAULT_PORT
    """The port number to listen on. 0 lets the OS pick one (tests)."""

    backlog: int = 128
    """Maximum number of queued connections."""

    buffer_size: int = 4096
    """Size of each recv() call in bytes."""

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = no timeout, a stalled client holds its thread until it
    disconnects.
    """

    max_line_size: int = 16 * 1024 * 1024  # 16 MB
    """
    Maximum length of a single protocol line.
    REC_CREATE carries a whole JSON document on one line.
    """

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = DEFAULT_ROOT_DIR
    """Directory holding the credential file and (by default) the data."""

    data_dir: Optional[str] = None
    """Data directory. Defaults to <root_dir>/data."""

    # ─────────────────────────────────────────────────────────────────────
    # AUTH
    # ─────────────────────────────────────────────────────────────────────

    auth: Optional[str] = None
    """
    Credentials as "username:password", used on first start only.
    An existing auth.store always wins over this value.
    """

    require_auth: bool = False
    """
    Reject handshakes that omit credentials while a credential is active.
    Off by default: a bare "OK" is accepted.
    """

    bcrypt_rounds: int = 12
    """bcrypt cost factor used when hashing a new password."""

    # ─────────────────────────────────────────────────────────────────────
    # FRONT ENDS
    # ─────────────────────────────────────────────────────────────────────

    cli: bool = False
    """Run the interactive shell alongside the socket server."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    enable_logging: bool = False
    """When False, only warnings and errors are logged."""

    log_level: str = "INFO"
    """Logging level used when enable_logging is set."""

    log_format: str = "text"
    """Command log format: 'json' or 'text'."""

    # ─────────────────────────────────────────────────────────────────────
    # DERIVED PATHS
    # ─────────────────────────────────────────────────────────────────────

    @property
    def data_path(self) -> Path:
        """Directory holding map.json and the collections directory."""
        if self.data_dir:
            return Path(self.data_dir)
        return Path(self.root_dir) / "data"

    @property
    def auth_path(self) -> Path:
        """Path of the persisted credential file."""
        return Path(self.root_dir) / AUTH_FILE_NAME

    @property
    def meta_path(self) -> Path:
        """Path of the collection metadata file."""
        return self.data_path / META_FILE_NAME

    @property
    def collections_path(self) -> Path:
        """Directory holding one record file per collection."""
        return self.data_path / COLLECTIONS_DIR_NAME

    @property
    def effective_log_level(self) -> str:
        """The level actually applied to the root logger."""
        return self.log_level.upper() if self.enable_logging else "WARNING"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MOLECULE_HOST       Server host (default: 0.0.0.0)
        MOLECULE_PORT       Server port (default: 80)
        MOLECULE_ROOT       Root directory (default: .molecule)
        MOLECULE_DATA       Data directory (default: <root>/data)
        MOLECULE_AUTH       "username:password" for first start
        MOLECULE_LOG_LEVEL  Logging level; setting it enables logging

        =====================================================================
        """
        log_level = os.getenv("MOLECULE_LOG_LEVEL")
        return cls(
            host=os.getenv("MOLECULE_HOST", DEFAULT_ADDR),
            port=int(os.getenv("MOLECULE_PORT", str(DEFAULT_PORT))),
            root_dir=os.getenv("MOLECULE_ROOT", DEFAULT_ROOT_DIR),
            data_dir=os.getenv("MOLECULE_DATA"),
            auth=os.getenv("MOLECULE_AUTH"),
            enable_logging=log_level is not None,
            log_level=log_level or "INFO",
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the socket
        is bound.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_line_size < self.buffer_size:
            raise ValueError("max_line_size must be >= buffer_size")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}")

        if self.auth is not None and ":" not in self.auth:
            raise ValueError("auth must be formatted as username:password")
