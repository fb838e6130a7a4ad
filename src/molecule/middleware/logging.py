"""
=============================================================================
COMMAND LOGGING MIDDLEWARE
=============================================================================

Logs every dispatched command with its outcome and timing.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 1a2b3c4d socket [9f8e7d6c] CLN_CREATE -> identifier 1.42ms          │
    │ ──────── ────── ────────── ────────── ────────────── ──────        │
    │ cmd id   source  client    keyword     outcome       duration     │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"command_id": "1a2b3c4d", "source": "socket", "client": "9f8e7d6c",│
    │  "keyword": "CLN_CREATE", "outcome": "identifier",                 │
    │  "duration_ms": 1.42}                                               │
    └─────────────────────────────────────────────────────────────────────┘

Record bodies and credentials are never logged; only the keyword.

=============================================================================
"""

import time
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .base import Middleware, NextHandler

if TYPE_CHECKING:
    from ..dispatcher import Command
    from ..protocol.response import Response


# Namespaced so command logs can be routed separately:
#   logging.getLogger("molecule.commands").addHandler(file_handler)
logger = logging.getLogger("molecule.commands")


@dataclass
class CommandLog:
    """Structured log entry for one dispatched command."""
    command_id: str
    source: str
    client: str
    keyword: str
    outcome: str
    duration_ms: float

    def to_dict(self) -> dict:
        return {
            "command_id": self.command_id,
            "source": self.source,
            "client": self.client,
            "keyword": self.keyword,
            "outcome": self.outcome,
            "duration_ms": round(self.duration_ms, 2),
        }

    def to_text(self) -> str:
        return (
            f"{self.command_id} {self.source} [{self.client}] "
            f"{self.keyword or '-'} -> {self.outcome} {self.duration_ms:.2f}ms"
        )


class CommandLoggingMiddleware(Middleware):
    """
    Command logging middleware.

    Should be added FIRST so failures raised by later middleware or the
    store are logged too.

    Usage:
        dispatcher.use(CommandLoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_noop: bool = True,
    ):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level used for successful commands.
            skip_noop: Don't log blank lines from the shell.
        """
        self.log_format = log_format
        self.log_level = log_level
        self.skip_noop = skip_noop

    def __call__(self, command: "Command", next: NextHandler) -> "Response":
        start_time = time.time()

        try:
            response = next(command)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Command failed: {command.keyword} [{command.client}] "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.skip_noop and not command.keyword:
            return response

        outcome = response.error.value if response.is_error else response.kind.value
        if response.is_absent:
            outcome = "absent"

        log_entry = CommandLog(
            command_id=command.id,
            source=command.source.value,
            client=command.client,
            keyword=command.keyword,
            outcome=outcome,
            duration_ms=duration_ms,
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
