"""
pytest configuration and fixtures.
"""

import socket
from pathlib import Path
from typing import Generator, List
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from molecule import MoleculeServer, ServerConfig, DocumentStore, AuthGate


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    """Initialized document store in a temporary directory."""
    store = DocumentStore(tmp_path / "data")
    store.initialize()
    return store


@pytest.fixture
def auth_gate(tmp_path: Path) -> AuthGate:
    """Auth gate with a cheap bcrypt cost so tests stay fast."""
    return AuthGate(tmp_path / "auth.store", rounds=4)


@pytest.fixture
def config(tmp_path: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(tmp_path / ".molecule"),
        bcrypt_rounds=4,
        timeout=5.0,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class Client:
    """
    Minimal protocol client for tests.

    Sends every line up front and reads until the server closes, so one
    call covers handshake, command and response.
    """

    def __init__(self, port: int):
        self.port = port

    def exchange(self, *lines: bytes, timeout: float = 5.0) -> bytes:
        """Send raw lines, return everything the server wrote."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(b"".join(line + b"\n" for line in lines))

            chunks: List[bytes] = []
            while True:
                data = s.recv(4096)
                if not data:
                    break
                chunks.append(data)

        return b"".join(chunks)

    def command(self, line: str, hello: str = "OK") -> bytes:
        """
        Run one command after a successful handshake.

        Returns:
            The response payload, without the INITCONN/READY preamble.
        """
        raw = self.exchange(hello.encode(), line.encode())
        preamble = b"INITCONN\nREADY\n"
        assert raw.startswith(preamble), raw
        return raw[len(preamble):]


def _running_server(config: ServerConfig) -> Generator[MoleculeServer, None, None]:
    server = MoleculeServer(config)
    server.start_background()

    yield server

    server.shutdown()


@pytest.fixture
def server(config: ServerConfig) -> Generator[MoleculeServer, None, None]:
    """Running server with no credentials configured."""
    yield from _running_server(config)


@pytest.fixture
def auth_server(config: ServerConfig) -> Generator[MoleculeServer, None, None]:
    """Running server protected by admin:secret."""
    config.auth = "admin:secret"
    yield from _running_server(config)


@pytest.fixture
def client(server: MoleculeServer) -> Client:
    return Client(server.address[1])


@pytest.fixture
def auth_client(auth_server: MoleculeServer) -> Client:
    return Client(auth_server.address[1])
