"""
=============================================================================
INTERACTIVE SHELL
=============================================================================

A read-eval-print loop on stdin/stdout that drives the same dispatcher
as the socket. It is the only front end that can stop the server.

    [INFO] molecule
    [INFO] Database is running on tcp://0.0.0.0:80
    > CLN_CREATE users
    Created: 3f2b8c1e-...
    > COLLECTIONS_LIST
    [
      {
        "collection_id": "3f2b8c1e-...",
        "name": "users"
      }
    ]
    > REC_GET 3f2b8c1e-... nope
    No record found.
    > stop
    [INFO] Gracefully shutting down...

=============================================================================
ERRORS
=============================================================================

Parse errors print a message and the loop continues. Store errors do
too: a corrupt collection file fails that one command, not the whole
process.

=============================================================================
"""

import json
import logging
import sys
from typing import Callable, Optional, TextIO

from .dispatcher import Dispatcher, Command
from .protocol import commands as cmd
from .protocol import CommandParseError, InputSource, parse_command
from .protocol.response import Response, ResponseKind
from .store import StoreError


logger = logging.getLogger(__name__)


PROMPT = "> "

ABSENT_MESSAGES = {
    cmd.GetCollectionName: "No collection found.",
    cmd.GetRecord: "No record found.",
    cmd.DeleteCollection: "No collection found.",
    cmd.DeleteRecord: "No record found.",
}

CREATED_LABELS = {
    cmd.CreateCollection: "Created",
    cmd.CreateRecord: "Created",
    cmd.DeleteCollection: "Deleted",
    cmd.DeleteRecord: "Deleted",
}


def render(request: cmd.Request, response: Response) -> Optional[str]:
    """
    Turn a response into text for the terminal.

    Returns:
        The text to print, or None when there is nothing to show.
    """
    if response.is_error:
        return f"Error: {response.error.value}"

    if response.is_absent:
        return ABSENT_MESSAGES.get(type(request), "null")

    if response.kind is ResponseKind.EMPTY:
        return None

    if response.kind is ResponseKind.IDENTIFIER:
        label = CREATED_LABELS.get(type(request))
        return f"{label}: {response.payload}" if label else str(response.payload)

    if response.kind is ResponseKind.TEXT:
        return response.payload

    if isinstance(response.payload, str):
        return response.payload

    return json.dumps(response.payload, indent=2)


class Shell:
    """
    Line-mode front end for the dispatcher.

    Usage:
        shell = Shell(dispatcher, on_stop=server.shutdown)
        shell.run()   # returns after "stop" or end of input
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        on_stop: Optional[Callable[[], None]] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        self.dispatcher = dispatcher
        self.on_stop = on_stop
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def _print(self, text: str = "", end: str = "\n"):
        self.stdout.write(text + end)
        self.stdout.flush()

    def banner(self, address=None):
        self._print("[INFO] molecule")
        if address:
            host, port = address
            self._print(f"[INFO] Database is running on tcp://{host}:{port}")

    def execute(self, line: str) -> bool:
        """
        Run one line.

        Returns:
            False when the shell should stop, True otherwise.
        """
        try:
            request = parse_command(line, InputSource.INTERACTIVE)
        except CommandParseError as e:
            self._print(str(e))
            return True

        if isinstance(request, cmd.Stop):
            return False

        try:
            response = self.dispatcher.handle(
                Command(request, source=InputSource.INTERACTIVE, client="shell")
            )
        except StoreError as e:
            logger.debug(f"Store error in shell: {e}")
            self._print(f"Error: {e}")
            return True

        text = render(request, response)
        if text is not None:
            self._print(text)
        return True

    def run(self):
        """Read, evaluate, print until "stop" or end of input."""
        try:
            while True:
                self._print(PROMPT, end="")

                line = self.stdin.readline()
                if not line:
                    # EOF (Ctrl+D or closed pipe)
                    self._print()
                    break

                if not self.execute(line):
                    break
        except KeyboardInterrupt:
            self._print()

        self._print("[INFO] Gracefully shutting down...")
        if self.on_stop is not None:
            self.on_stop()
