"""
=============================================================================
AUTH GATE
=============================================================================

Holds the single credential pair the server accepts and checks the
credentials clients present during the handshake.

=============================================================================
LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CREDENTIAL SETUP (startup)                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   --auth user:pass                                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   auth.store exists? ──yes──► load it, ignore user:pass             │
    │        │                                                             │
    │        no                                                            │
    │        ▼                                                             │
    │   bcrypt(pass) ──► write {"username", "password"} ──► activate      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Stored credentials always win: restarting with a different --auth value
does NOT replace the account. Delete auth.store to reset it.

=============================================================================
CONCURRENCY
=============================================================================

Every handshake that carries credentials calls validate(). Those calls
only read the active slot, so they share a read lock and run in
parallel. setup_credentials() and load() replace the slot and take the
write lock.

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Tuple, Union

import bcrypt

from .core.rwlock import ReadWriteLock


logger = logging.getLogger(__name__)


DEFAULT_BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of a password and current
# releases refuse anything longer.
BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class AuthInfo:
    """
    The persisted credential pair.

    Attributes:
        username: Exact username clients must present.
        password: bcrypt hash of the password (never the plain text).
    """
    username: str
    password: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AuthInfo":
        return cls(username=data["username"], password=data["password"])


def parse_auth_string(value: str) -> Tuple[str, str]:
    """
    Split a "username:password" string on its first colon.

    The password may itself contain colons.

    Raises:
        ValueError: If there is no colon in the string.
    """
    username, sep, password = value.partition(":")
    if not sep:
        raise ValueError("Malformed auth string, expected username:password")
    return username, password


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a plain password with a fresh bcrypt salt."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a plain password against a bcrypt hash."""
    secret = password.encode("utf-8")
    if len(secret) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(secret, hashed.encode("utf-8"))


class AuthGate:
    """
    Process-wide credential slot with load-or-create semantics.

    The gate is created once at startup and passed explicitly to every
    connection handler that needs to validate a handshake.

    Usage:
        gate = AuthGate(Path(".molecule/auth.store"))
        gate.setup_credentials("admin", "secret")   # startup

        gate.validate("admin", "secret")   # True
        gate.validate("admin", "nope")     # False
    """

    def __init__(
        self,
        auth_path: Union[str, Path],
        rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        """
        Initialize an empty gate.

        Args:
            auth_path: Location of the persisted credential file.
            rounds: bcrypt cost factor for newly created credentials.
        """
        self.auth_path = Path(auth_path)
        self.rounds = rounds

        # The active credential, None until setup/load succeeds
        self._active: Optional[AuthInfo] = None
        self._lock = ReadWriteLock()

    @property
    def has_credentials(self) -> bool:
        """True once a credential pair is active."""
        with self._lock.read():
            return self._active is not None

    @property
    def username(self) -> Optional[str]:
        """Username of the active credential, if any."""
        with self._lock.read():
            return self._active.username if self._active else None

    def _read_file(self) -> AuthInfo:
        data = json.loads(self.auth_path.read_bytes())
        return AuthInfo.from_dict(data)

    def load(self) -> bool:
        """
        Activate the stored credential, if the file exists.

        Returns:
            True if a credential was loaded, False if there is no file.
        """
        if not self.auth_path.exists():
            return False

        auth_info = self._read_file()
        with self._lock.write():
            self._active = auth_info

        logger.info(f"Found existing user: {auth_info.username}")
        return True

    def setup_credentials(self, username: str, password: str) -> None:
        """
        Load the stored credential or create it from the given pair.

        If a credential file already exists it is activated as-is and the
        supplied username/password are ignored. Otherwise the password is
        hashed, the pair is written to disk and activated.

        Raises:
            OSError: If the credential file cannot be read or written.
            ValueError: If the stored file is not valid JSON, or the
                        password is longer than bcrypt accepts.
        """
        with self._lock.write():
            if self.auth_path.exists():
                self._active = self._read_file()
                logger.info(f"Found existing user: {self._active.username}")
                return

            if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
                raise ValueError(
                    f"Password longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes"
                )

            logger.info(f"Setting up user with username: {username}")
            auth_info = AuthInfo(
                username=username,
                password=hash_password(password, self.rounds),
            )

            self.auth_path.parent.mkdir(parents=True, exist_ok=True)
            self.auth_path.write_text(json.dumps(auth_info.to_dict()))
            logger.info("Auth store created for the current session.")

            self._active = auth_info

    def validate(self, username: str, password: str) -> bool:
        """
        Check presented credentials against the active pair.

        Returns:
            True only if a credential is active, the username matches
            exactly and the password verifies. False in every other case.
        """
        with self._lock.read():
            active = self._active
            if active is None:
                return False
            if active.username != username:
                return False
            return verify_password(password, active.password)
