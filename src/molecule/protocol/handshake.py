"""
=============================================================================
HANDSHAKE STATE MACHINE
=============================================================================

Every connection starts with a fixed three-message exchange before any
command is accepted.

    Server                                   Client
       │                                        │
       │   INITCONN\\n ───────────────────────►  │
       │                                        │
       │  ◄─────────────── OK[ user:pass]\\n     │
       │                                        │
       │   READY\\n  or  ERR <code>\\n ───────►   │
       │                                        │

=============================================================================
STATES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   AWAITING_HELLO ──(no credential)──────────────────► READY         │
    │        │                                                             │
    │        ├──(credential token)──► AUTH_CHECK ──(valid)──► READY       │
    │        │                            │                                │
    │        │                            └──(invalid)────► REJECTED      │
    │        │                                                             │
    │        └──(bad keyword / empty line)────────────────► REJECTED      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Checks run in this order, the first failure wins:

    1. no first token                     → malformed_request
    2. first token not a known keyword    → invalid_handshake_msg
    3. known keyword other than OK        → invalid_handshake
    4. credential token without ':'       → malformed_auth_str
    5. credential rejected by AuthGate    → incorrect_auth_info

A rejected connection gets exactly one ERR line and never reaches
command dispatch.

=============================================================================
"""

import logging
from enum import Enum
from typing import Optional

from ..auth import AuthGate, parse_auth_string
from .errors import ErrorCode


logger = logging.getLogger(__name__)


INITCONN_LINE = b"INITCONN\n"
READY_LINE = b"READY\n"


class HandshakeKeyword(Enum):
    """Keywords that may appear in the handshake exchange."""
    INITCONN = "INITCONN"
    OK = "OK"
    READY = "READY"
    ERR = "ERR"

    @classmethod
    def parse(cls, token: str) -> Optional["HandshakeKeyword"]:
        try:
            return cls(token)
        except ValueError:
            return None


class HandshakeState(Enum):
    AWAITING_HELLO = "awaiting_hello"
    AUTH_CHECK = "auth_check"
    READY = "ready"
    REJECTED = "rejected"


class HandshakeError(Exception):
    """
    Raised when a client's hello line is rejected.

    Carries the error code that is written back as "ERR <code>\\n".
    """

    def __init__(self, code: ErrorCode):
        super().__init__(f"Handshake rejected: {code.value}")
        self.code = code


class Handshake:
    """
    Runs the handshake for one connection.

    Usage:
        handshake = Handshake(auth_gate)
        if handshake.run(conn):
            ...  # read and dispatch the command
    """

    def __init__(self, auth_gate: AuthGate, require_auth: bool = False):
        """
        Args:
            auth_gate: Validates credentials presented by the client.
            require_auth: Reject a bare "OK" while a credential is active.
        """
        self.auth_gate = auth_gate
        self.require_auth = require_auth
        self.state = HandshakeState.AWAITING_HELLO

    def check_hello(self, line: str) -> None:
        """
        Validate the client's hello line.

        Advances the state to READY on success.

        Raises:
            HandshakeError: With the code of the first failed check.
        """
        # At most two tokens: the keyword, then everything else
        tokens = line.split(maxsplit=1)

        if not tokens:
            raise HandshakeError(ErrorCode.MALFORMED_REQUEST)

        keyword = HandshakeKeyword.parse(tokens[0])
        if keyword is None:
            raise HandshakeError(ErrorCode.INVALID_HANDSHAKE_MSG)
        if keyword is not HandshakeKeyword.OK:
            raise HandshakeError(ErrorCode.INVALID_HANDSHAKE)

        if len(tokens) > 1:
            self.state = HandshakeState.AUTH_CHECK
            try:
                username, password = parse_auth_string(tokens[1].strip())
            except ValueError:
                raise HandshakeError(ErrorCode.MALFORMED_AUTH_STR)

            if not self.auth_gate.validate(username, password):
                raise HandshakeError(ErrorCode.INCORRECT_AUTH_INFO)

        elif self.require_auth and self.auth_gate.has_credentials:
            raise HandshakeError(ErrorCode.INCORRECT_AUTH_INFO)

        self.state = HandshakeState.READY

    def run(self, conn) -> bool:
        """
        Perform the full exchange on a connection.

        Args:
            conn: A Connection (anything with send_response/read_line/id).

        Returns:
            True if the client is ready for a command. False if it was
            rejected or disconnected.
        """
        if not conn.send_response(INITCONN_LINE):
            self.state = HandshakeState.REJECTED
            return False

        raw = conn.read_line()
        if raw is None:
            logger.debug(f"[{conn.id}] Client left before handshake")
            self.state = HandshakeState.REJECTED
            return False

        try:
            self.check_hello(raw.decode("utf-8", errors="replace"))
        except HandshakeError as e:
            self.state = HandshakeState.REJECTED
            logger.info(f"[{conn.id}] Handshake rejected: {e.code.value}")
            conn.send_response(e.code.to_line())
            return False

        logger.debug(f"[{conn.id}] Handshake complete")
        return conn.send_response(READY_LINE)
