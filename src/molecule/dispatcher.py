"""
=============================================================================
COMMAND DISPATCHER
=============================================================================

Executes one parsed request against the document store and returns a
typed Response.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    DISPATCH TABLE                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ListCollections    → store.list_collections()   → VALUE [..]      │
    │   GetCollectionName  → store.get_collection_name()→ VALUE name|None │
    │   GetRecords         → store.get_records()        → VALUE [..]      │
    │   GetRecord          → store.get_record_by_id()   → VALUE rec|None  │
    │   CreateCollection   → store.create_collection()  → IDENTIFIER      │
    │   CreateRecord       → store.create_record()      → IDENTIFIER      │
    │   DeleteCollection   → store.delete_collection()  → IDENTIFIER|None │
    │   DeleteRecord       → store.delete_record()      → IDENTIFIER|None │
    │   NoOp               →                            → EMPTY           │
    │   Help               →                            → TEXT            │
    │   Stop               →                            → ERROR           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Stop never reaches the store: shutting down is the front end's job. The
shell intercepts it before dispatch; anything that still gets here is
answered with cmd_not_available.

Store errors (unreadable or corrupt files) propagate as StoreError. The
one store failure with a protocol code of its own is a duplicate _id.

=============================================================================
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .middleware import MiddlewarePipeline, Middleware
from .protocol import commands as cmd
from .protocol import response
from .protocol.commands import InputSource, Request
from .protocol.errors import ErrorCode
from .protocol.response import Response
from .store import DocumentStore, DuplicateRecordError


logger = logging.getLogger(__name__)


@dataclass
class Command:
    """
    A parsed request plus where it came from.

    Attributes:
        request: The typed request.
        source: Interactive shell or socket.
        client: Client label for logs (connection id or "shell").
        id: Unique id for correlating log lines.
    """
    request: Request
    source: InputSource = InputSource.SOCKET
    client: str = "-"
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    @property
    def keyword(self) -> str:
        return self.request.keyword


CommandHandler = Callable[[Command], Response]


class Dispatcher:
    """
    Maps each request type to a store operation.

    Usage:
        dispatcher = Dispatcher(store)
        dispatcher.use(CommandLoggingMiddleware())

        resp = dispatcher.handle(Command(ListCollections()))
        resp.to_bytes()   # b'[{"collection_id": ..., "name": ...}]'
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[CommandHandler] = None

        self._table: Dict[type, Callable[[Request], Response]] = {
            cmd.NoOp: lambda r: response.empty(),
            cmd.Help: lambda r: response.text(cmd.usage_text()),
            cmd.Stop: lambda r: response.error(ErrorCode.CMD_NOT_AVAILABLE),
            cmd.ListCollections: self._list_collections,
            cmd.GetCollectionName: self._get_collection_name,
            cmd.GetRecords: self._get_records,
            cmd.GetRecord: self._get_record,
            cmd.CreateCollection: self._create_collection,
            cmd.CreateRecord: self._create_record,
            cmd.DeleteCollection: self._delete_collection,
            cmd.DeleteRecord: self._delete_record,
        }

    def use(self, middleware: Middleware) -> "Dispatcher":
        """Add middleware around dispatch. Returns self for chaining."""
        self._middleware.add(middleware)
        self._handler = None  # rebuilt on next handle()
        return self

    def handle(self, command: Command) -> Response:
        """Run a command through the middleware pipeline and dispatch it."""
        if self._handler is None:
            self._handler = self._middleware.wrap(self._dispatch_command)
        return self._handler(command)

    def dispatch(self, request: Request, source: InputSource = InputSource.SOCKET) -> Response:
        """Shortcut for handle(Command(request, source))."""
        return self.handle(Command(request, source))

    def _dispatch_command(self, command: Command) -> Response:
        handler = self._table.get(type(command.request))
        if handler is None:
            raise TypeError(f"No handler for {type(command.request).__name__}")
        return handler(command.request)

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _list_collections(self, request: cmd.ListCollections) -> Response:
        collections = self.store.list_collections()
        return response.value([c.to_dict() for c in collections])

    def _get_collection_name(self, request: cmd.GetCollectionName) -> Response:
        return response.value(self.store.get_collection_name(request.collection_id))

    def _get_records(self, request: cmd.GetRecords) -> Response:
        return response.value(self.store.get_records(request.collection_id))

    def _get_record(self, request: cmd.GetRecord) -> Response:
        record = self.store.get_record_by_id(request.collection_id, request.record_id)
        return response.value(record)

    def _create_collection(self, request: cmd.CreateCollection) -> Response:
        return response.identifier(self.store.create_collection(request.name))

    def _create_record(self, request: cmd.CreateRecord) -> Response:
        try:
            record_id = self.store.create_record(request.collection_id, request.contents)
        except DuplicateRecordError as e:
            logger.info(f"Rejected duplicate record id {e.record_id!r}")
            return response.error(ErrorCode.DUPLICATE_RECORD_ID)
        return response.identifier(record_id)

    def _delete_collection(self, request: cmd.DeleteCollection) -> Response:
        return response.identifier(self.store.delete_collection(request.collection_id))

    def _delete_record(self, request: cmd.DeleteRecord) -> Response:
        deleted = self.store.delete_record(request.collection_id, request.record_id)
        return response.identifier(deleted)
