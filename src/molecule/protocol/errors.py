"""
=============================================================================
PROTOCOL ERROR CODES
=============================================================================

Every failure a socket client can see is a single line:

    ERR <code>\\n

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ERROR CODES                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HANDSHAKE (connection dropped afterwards)                         │
    │   malformed_request      empty hello line                           │
    │   invalid_handshake_msg  first token is not a handshake keyword     │
    │   invalid_handshake      a handshake keyword, but not OK            │
    │   malformed_auth_str     credential token has no ':'                │
    │   incorrect_auth_info    credentials rejected by the auth gate      │
    │                                                                      │
    │   COMMAND                                                            │
    │   invalid_input          unknown keyword, missing args, bad JSON    │
    │   cmd_not_available      command not allowed from the socket        │
    │   duplicate_record_id    REC_CREATE with an _id already in use      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes written after "ERR " on the wire."""

    # Handshake
    MALFORMED_REQUEST = "malformed_request"
    INVALID_HANDSHAKE_MSG = "invalid_handshake_msg"
    INVALID_HANDSHAKE = "invalid_handshake"
    MALFORMED_AUTH_STR = "malformed_auth_str"
    INCORRECT_AUTH_INFO = "incorrect_auth_info"

    # Command
    INVALID_INPUT = "invalid_input"
    CMD_NOT_AVAILABLE = "cmd_not_available"
    DUPLICATE_RECORD_ID = "duplicate_record_id"

    @property
    def is_handshake_error(self) -> bool:
        return self in _HANDSHAKE_CODES

    def to_line(self) -> bytes:
        """Encode as the terminal "ERR <code>\\n" line."""
        return f"ERR {self.value}\n".encode("utf-8")

    def __str__(self) -> str:
        return self.value


_HANDSHAKE_CODES = frozenset({
    ErrorCode.MALFORMED_REQUEST,
    ErrorCode.INVALID_HANDSHAKE_MSG,
    ErrorCode.INVALID_HANDSHAKE,
    ErrorCode.MALFORMED_AUTH_STR,
    ErrorCode.INCORRECT_AUTH_INFO,
})
