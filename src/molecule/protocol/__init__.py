"""
=============================================================================
WIRE PROTOCOL
=============================================================================

Everything that turns bytes on the socket into meaning and back:

    handshake.py   INITCONN / OK / READY exchange and its error codes
    commands.py    command line → typed request
    response.py    typed response → bytes
    errors.py      the ERR <code> vocabulary

None of these modules touch sockets directly, so each can be tested
with plain strings.

=============================================================================
"""

from .commands import (
    InputSource,
    CommandParseError,
    CommandNotAvailable,
    Request,
    parse_command,
    usage_text,
)
from .errors import ErrorCode
from .handshake import Handshake, HandshakeError, HandshakeKeyword, HandshakeState
from .response import Response, ResponseKind

__all__ = [
    "CommandNotAvailable",
    "CommandParseError",
    "ErrorCode",
    "Handshake",
    "HandshakeError",
    "HandshakeKeyword",
    "HandshakeState",
    "InputSource",
    "Request",
    "Response",
    "ResponseKind",
    "parse_command",
    "usage_text",
]
