"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the middleware protocol and the pipeline that chains middleware
around the dispatcher. Implements the Chain of Responsibility pattern.

    ┌─────────────────────────────────────────────────────────────────────┐
    │              CHAIN OF RESPONSIBILITY - COMMAND FLOW                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Command ─────────────────────────────────────────────►            │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────────────┐              │
    │   │  Logging │───►│   ...    │───►│    Dispatcher    │              │
    │   │    MW    │    │    MW    │    │ (store operation)│              │
    │   └──────────┘    └──────────┘    └──────────────────┘              │
    │                                                                      │
    │   ◄───────────────────────────────────────────── Response           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware can:
1. Inspect the command before it runs
2. Short-circuit with its own Response
3. Inspect (or replace) the Response on the way back

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, List
import logging

if TYPE_CHECKING:
    from ..dispatcher import Command
    from ..protocol.response import Response


logger = logging.getLogger(__name__)


# NextHandler is the signature for the next middleware or the dispatcher.
NextHandler = Callable[["Command"], "Response"]


class Middleware(ABC):
    """
    Abstract base class for dispatcher middleware.

    Every middleware implements:

        def __call__(self, command: Command, next: NextHandler) -> Response

    and MUST call next(command) unless it short-circuits.
    """

    @abstractmethod
    def __call__(self, command: "Command", next: NextHandler) -> "Response":
        """
        Process the command.

        Args:
            command: The command being dispatched.
            next: The next handler in the chain (call this to continue!)

        Returns:
            Response (either from next() or short-circuited)
        """
        pass

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains multiple middleware together with a final handler.

    First added = outermost:

        pipeline.add(CommandLoggingMiddleware())   # sees everything
        pipeline.add(OtherMiddleware())            # closest to dispatch

        handler = pipeline.wrap(dispatcher._dispatch_command)
        response = handler(command)
    """

    def __init__(self):
        """Initialize an empty middleware pipeline."""
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Add middleware to the pipeline.

        Returns:
            Self for method chaining
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware in the pipeline.

        Given [MW1, MW2] and handler, builds MW1 → MW2 → handler by
        wrapping in reverse order.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(command: "Command") -> "Response":
            return middleware(command, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)

