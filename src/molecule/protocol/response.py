"""
=============================================================================
RESPONSES
=============================================================================

The dispatcher's output is a typed Response. Front ends decide how to
render it: the socket writes raw bytes, the shell pretty-prints.

=============================================================================
WIRE ENCODING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   KIND          PAYLOAD                  BYTES ON THE SOCKET        │
    ├─────────────────────────────────────────────────────────────────────┤
    │   VALUE         [{"_id": "a"}]           [{"_id": "a"}]             │
    │   VALUE         None                     null                       │
    │   IDENTIFIER    "3f2b..."                3f2b...                    │
    │   IDENTIFIER    None                     null                       │
    │   TEXT          "usage..."               usage...                   │
    │   EMPTY         -                        (nothing)                  │
    │   ERROR         ErrorCode.INVALID_INPUT  ERR invalid_input\\n        │
    └─────────────────────────────────────────────────────────────────────┘

Payloads carry no trailing newline; the connection closes after the one
response, which is how clients know it is complete. Only ERR lines end
in "\\n".

=============================================================================
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .errors import ErrorCode


class ResponseKind(Enum):
    VALUE = "value"            # JSON-serializable lookup/list result
    IDENTIFIER = "identifier"  # generated or deleted id
    TEXT = "text"              # human-readable text (help)
    EMPTY = "empty"            # nothing to say (blank line)
    ERROR = "error"            # protocol-level error code


@dataclass
class Response:
    """
    Result of dispatching one request.

    Attributes:
        kind: How the payload should be interpreted.
        payload: JSON value, identifier string, text, or None.
        error: Error code, for ERROR responses only.
    """
    kind: ResponseKind
    payload: Any = None
    error: Optional[ErrorCode] = None

    @property
    def is_error(self) -> bool:
        return self.kind is ResponseKind.ERROR

    @property
    def is_absent(self) -> bool:
        """True for a lookup that found nothing."""
        return (
            self.kind in (ResponseKind.VALUE, ResponseKind.IDENTIFIER)
            and self.payload is None
        )

    def to_bytes(self) -> bytes:
        """Encode for the socket."""
        if self.kind is ResponseKind.ERROR:
            return self.error.to_line()

        if self.kind is ResponseKind.EMPTY:
            return b""

        if self.is_absent:
            return b"null"

        if self.kind is ResponseKind.VALUE:
            return json.dumps(self.payload).encode("utf-8")

        return str(self.payload).encode("utf-8")


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def value(payload: Any) -> Response:
    """A lookup or list result (None when nothing was found)."""
    return Response(ResponseKind.VALUE, payload)


def identifier(id_: Optional[str]) -> Response:
    """A generated or deleted identifier (None when nothing matched)."""
    return Response(ResponseKind.IDENTIFIER, id_)


def text(message: str) -> Response:
    return Response(ResponseKind.TEXT, message)


def empty() -> Response:
    return Response(ResponseKind.EMPTY)


def error(code: ErrorCode) -> Response:
    return Response(ResponseKind.ERROR, error=code)
