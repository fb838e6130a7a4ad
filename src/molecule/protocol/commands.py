"""
=============================================================================
COMMAND PARSING
=============================================================================

Turns one line of text into a typed request.

=============================================================================
COMMAND GRAMMAR
=============================================================================

A command is a keyword followed by whitespace-separated arguments:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   KEYWORD            ARGS                        REQUEST            │
    ├─────────────────────────────────────────────────────────────────────┤
    │   COLLECTIONS_LIST   -                           ListCollections    │
    │   COLLECTION         <id>                        GetCollectionName  │
    │   CLN_GET            <id>                        GetRecords         │
    │   REC_GET            <id> <record_id>            GetRecord          │
    │   CLN_CREATE         <name>                      CreateCollection   │
    │   REC_CREATE         <id> <json object...>       CreateRecord       │
    │   CLN_DELETE         <id>                        DeleteCollection   │
    │   REC_DELETE         <id> <record_id>            DeleteRecord       │
    │   stop               -              (shell only) Stop               │
    │   help               -              (shell only) Help               │
    │   (empty line)                                   NoOp               │
    └─────────────────────────────────────────────────────────────────────┘

REC_CREATE takes every token after the collection id, joins them back
with single spaces, and parses the result as a JSON object:

    REC_CREATE 3f2b {"name": "Ada",   "age": 36}
                    └──────────────┬───────────┘
                    '{"name": "Ada", "age": 36}'

=============================================================================
SOURCE-AWARE PARSING
=============================================================================

The same parser serves the interactive shell and the socket. Some
keywords only make sense locally: "stop" shuts the whole process down,
so a remote client sending it gets CommandNotAvailable instead.

=============================================================================
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union


class InputSource(Enum):
    """Where a command line came from."""
    INTERACTIVE = "interactive"
    SOCKET = "socket"


class CommandParseError(Exception):
    """
    Raised when a line can't be turned into a request.

    Carries the offending keyword and value so the shell can print a
    useful message; the socket only ever sees "ERR invalid_input".
    """

    def __init__(self, message: str, keyword: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.keyword = keyword
        self.value = value


class CommandNotAvailable(CommandParseError):
    """Raised when a valid keyword is not allowed from this input source."""


# =============================================================================
# REQUEST TYPES
# =============================================================================
#
# A closed set of frozen dataclasses. The dispatcher matches on the type,
# so adding a command means adding a class here, a table entry below, and
# a handler in the dispatcher.
#
# =============================================================================

@dataclass(frozen=True)
class NoOp:
    keyword = ""


@dataclass(frozen=True)
class Stop:
    keyword = "stop"


@dataclass(frozen=True)
class Help:
    keyword = "help"


@dataclass(frozen=True)
class ListCollections:
    keyword = "COLLECTIONS_LIST"


@dataclass(frozen=True)
class GetCollectionName:
    collection_id: str
    keyword = "COLLECTION"


@dataclass(frozen=True)
class GetRecords:
    collection_id: str
    keyword = "CLN_GET"


@dataclass(frozen=True)
class GetRecord:
    collection_id: str
    record_id: str
    keyword = "REC_GET"


@dataclass(frozen=True)
class CreateCollection:
    name: str
    keyword = "CLN_CREATE"


@dataclass(frozen=True)
class CreateRecord:
    collection_id: str
    contents: Dict[str, Any] = field(hash=False)
    keyword = "REC_CREATE"


@dataclass(frozen=True)
class DeleteCollection:
    collection_id: str
    keyword = "CLN_DELETE"


@dataclass(frozen=True)
class DeleteRecord:
    collection_id: str
    record_id: str
    keyword = "REC_DELETE"


Request = Union[
    NoOp, Stop, Help,
    ListCollections, GetCollectionName, GetRecords, GetRecord,
    CreateCollection, CreateRecord, DeleteCollection, DeleteRecord,
]


# =============================================================================
# PARSE TABLE
# =============================================================================

def _parse_json_body(keyword: str, tokens: List[str]) -> Dict[str, Any]:
    body = " ".join(tokens)
    try:
        value = json.loads(body)
    except json.JSONDecodeError as e:
        raise CommandParseError(
            f"Invalid JSON body for {keyword}: {e.msg}", keyword, body
        ) from e

    if not isinstance(value, dict):
        raise CommandParseError(
            f"{keyword} body must be a JSON object", keyword, body
        )

    if "_id" in value and not isinstance(value["_id"], str):
        raise CommandParseError(f"{keyword} _id must be a string", keyword, body)

    return value


@dataclass(frozen=True)
class CommandSpec:
    """
    One row of the parse table.

    Attributes:
        args: Names of the required positional arguments.
        build: Builds the request from the argument values (and, when
               takes_rest is set, the list of remaining tokens).
        takes_rest: Collect every token after `args` for the builder.
        interactive_only: Refuse the command when it arrives over the socket.
    """
    args: Tuple[str, ...]
    build: Callable[..., Request]
    takes_rest: bool = False
    interactive_only: bool = False
    usage: str = ""


COMMANDS: Dict[str, CommandSpec] = {
    "COLLECTIONS_LIST": CommandSpec(
        (), ListCollections,
        usage="list all collections",
    ),
    "COLLECTION": CommandSpec(
        ("collection_id",), GetCollectionName,
        usage="look up a collection's name",
    ),
    "CLN_GET": CommandSpec(
        ("collection_id",), GetRecords,
        usage="list the records in a collection",
    ),
    "REC_GET": CommandSpec(
        ("collection_id", "record_id"), GetRecord,
        usage="look up one record",
    ),
    "CLN_CREATE": CommandSpec(
        ("name",), CreateCollection,
        usage="create a collection",
    ),
    "REC_CREATE": CommandSpec(
        ("collection_id", "body"),
        lambda cid, rest: CreateRecord(cid, _parse_json_body("REC_CREATE", rest)),
        takes_rest=True,
        usage="create a record from a JSON object",
    ),
    "CLN_DELETE": CommandSpec(
        ("collection_id",), DeleteCollection,
        usage="delete a collection and its records",
    ),
    "REC_DELETE": CommandSpec(
        ("collection_id", "record_id"), DeleteRecord,
        usage="delete one record",
    ),
    "stop": CommandSpec(
        (), Stop, interactive_only=True,
        usage="shut down the server",
    ),
    "help": CommandSpec(
        (), Help, interactive_only=True,
        usage="show this help",
    ),
}


def usage_text() -> str:
    """Human-readable summary of the grammar, for the shell's help."""
    lines = []
    for keyword, spec in COMMANDS.items():
        args = " ".join(f"<{name}>" for name in spec.args)
        lines.append(f"  {f'{keyword} {args}'.strip():<42} {spec.usage}")
    return "\n".join(lines)


def parse_command(line: str, source: InputSource) -> Request:
    """
    Parse one line into a request.

    Args:
        line: Raw command line (trailing newline allowed).
        source: Where the line came from.

    Returns:
        A request instance. Blank lines give NoOp.

    Raises:
        CommandNotAvailable: Keyword not allowed from this source.
        CommandParseError: Unknown keyword, wrong arguments, or bad JSON.
    """
    tokens = line.split()
    if not tokens:
        return NoOp()

    keyword, args = tokens[0], tokens[1:]

    spec = COMMANDS.get(keyword)
    if spec is None:
        raise CommandParseError(f"Invalid input type: {keyword}", keyword, keyword)

    if spec.interactive_only and source is not InputSource.INTERACTIVE:
        raise CommandNotAvailable(
            f"{keyword} is not available from {source.value} input", keyword, keyword
        )

    if spec.takes_rest:
        fixed = len(spec.args) - 1
        if len(args) <= fixed:
            missing = spec.args[len(args)]
            raise CommandParseError(
                f"Missing argument <{missing}> for {keyword}", keyword, line.strip()
            )
        return spec.build(*args[:fixed], args[fixed:])

    if len(args) < len(spec.args):
        missing = spec.args[len(args)]
        raise CommandParseError(
            f"Missing argument <{missing}> for {keyword}", keyword, line.strip()
        )

    if len(args) > len(spec.args):
        extra = args[len(spec.args)]
        raise CommandParseError(
            f"Unexpected argument for {keyword}: {extra}", keyword, extra
        )

    return spec.build(*args)
