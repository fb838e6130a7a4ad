"""
=============================================================================
MOLECULE CLI ENTRY POINT
=============================================================================

This module provides the command-line interface for running the database.

=============================================================================
USAGE
=============================================================================

    # Run with defaults (0.0.0.0:80, data under .molecule/data)
    python -m molecule

    # Custom address and port
    python -m molecule --addr 127.0.0.1 --port 7070

    # Protect the server with a username and password
    python -m molecule --auth admin:secret

    # Keep the data somewhere else
    python -m molecule --data /var/lib/molecule

    # Interactive shell next to the socket server
    python -m molecule --cli

    # Log every command
    python -m molecule --enable-logging --log-level DEBUG

=============================================================================
CREDENTIALS
=============================================================================

--auth is only used the first time: it creates .molecule/auth.store. On
later starts the stored credential wins and the flag is ignored. Delete
the file to change the password.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .auth import parse_auth_string
from .config import ServerConfig, DEFAULT_ADDR, DEFAULT_PORT, DEFAULT_ROOT_DIR
from .server import MoleculeServer
from .shell import Shell


def announce(address):
    """Print the listening banner once the socket is bound."""
    host, port = address
    print(f"[INFO] Database is running on tcp://{host}:{port}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="molecule",
        description="Networked JSON document store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m molecule                          # Run with defaults
  python -m molecule --port 7070              # Custom port
  python -m molecule --auth admin:secret      # Require credentials
  python -m molecule --cli                    # Interactive shell
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--addr",
        default=DEFAULT_ADDR,
        help=f"Address to bind to (default: {DEFAULT_ADDR})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root",
        default=DEFAULT_ROOT_DIR,
        help=f"Root directory for credentials and data (default: {DEFAULT_ROOT_DIR})"
    )

    parser.add_argument(
        "--data",
        default=None,
        help="Data directory (default: <root>/data)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # AUTH ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--auth",
        default=None,
        metavar="USER:PASS",
        help="Credentials to create on first start"
    )

    parser.add_argument(
        "--require-auth",
        action="store_true",
        help="Reject clients that don't present credentials"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FRONT END / LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--cli",
        action="store_true",
        help="Start an interactive shell alongside the server"
    )

    parser.add_argument(
        "--enable-logging",
        action="store_true",
        help="Log connections and commands"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level when logging is enabled (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Command log format (default: text)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"molecule {__version__}"
    )

    return parser


def config_from_args(parser: argparse.ArgumentParser, argv=None) -> ServerConfig:
    """
    Parse argv into a ServerConfig, exiting with usage on bad input.

    MOLECULE_* environment variables replace the built-in defaults;
    explicit flags override both.
    """
    try:
        env = ServerConfig.from_env()
    except ValueError as e:
        parser.error(f"Invalid environment: {e}")

    parser.set_defaults(
        addr=env.host,
        port=env.port,
        root=env.root_dir,
        data=env.data_dir,
        auth=env.auth,
        enable_logging=env.enable_logging,
        log_level=env.log_level.upper(),
    )

    args = parser.parse_args(argv)

    if args.auth is not None:
        try:
            parse_auth_string(args.auth)
        except ValueError as e:
            parser.error(str(e))

    return ServerConfig(
        host=args.addr,
        port=args.port,
        root_dir=args.root,
        data_dir=args.data,
        auth=args.auth,
        require_auth=args.require_auth,
        cli=args.cli,
        enable_logging=args.enable_logging,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    config = config_from_args(parser, argv)

    try:
        server = MoleculeServer(config)

        if not config.cli:
            server.run(on_ready=announce)
            return

        # Socket server in the background, shell in the foreground
        server.start_background()
        shell = Shell(server.dispatcher, on_stop=server.shutdown)
        shell.banner(server.address)
        shell.run()

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    main()
