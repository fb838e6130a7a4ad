"""
=============================================================================
DOCUMENT STORE
=============================================================================

The storage engine behind every command: a collection registry plus one
record file per collection, all plain JSON rewritten in full.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         DocumentStore                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────────────────┐        ┌──────────────────────┐          │
    │   │   CollectionStore    │◄───────│     RecordStore      │          │
    │   │   (map.json)         │ paths  │ (collections/*.json) │          │
    │   └──────────┬───────────┘        └──────────┬───────────┘          │
    │              │                               │                       │
    │              └───────────┬───────────────────┘                       │
    │                          ▼                                           │
    │                   ┌─────────────┐                                    │
    │                   │ StoreLocks  │  meta lock + one lock per file    │
    │                   └─────────────┘                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY LOCKS?
=============================================================================

Connections run in parallel threads. Without locks, two CLN_CREATE
commands can both read map.json before either writes it back:

    Thread A: read  [x]
    Thread B: read  [x]
    Thread A: write [x, a]
    Thread B: write [x, b]      ← "a" is lost

Holding the file's lock for the whole read-modify-write makes the
second writer read [x, a] first.

=============================================================================
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from .collections import Collection, CollectionStore
from .errors import StoreError
from .files import write_array
from .locks import StoreLocks
from .records import Record, RecordStore


logger = logging.getLogger(__name__)


class DocumentStore:
    """
    File-backed document store.

    The caller must call initialize() (or provision the directory some
    other way) before serving commands: list_collections() on a missing
    map.json is a StoreError, not an empty list.

    Usage:
        store = DocumentStore(Path(".molecule/data"))
        store.initialize()

        cid = store.create_collection("users")
        rid = store.create_record(cid, {"name": "Ada"})
        store.get_record_by_id(cid, rid)   # {"name": "Ada", "_id": rid}
    """

    META_FILE_NAME = "map.json"
    COLLECTIONS_DIR_NAME = "collections"

    def __init__(
        self,
        data_path: Union[str, Path],
        meta_path: Optional[Path] = None,
        collections_path: Optional[Path] = None,
    ):
        self.data_path = Path(data_path)
        self.meta_path = meta_path or self.data_path / self.META_FILE_NAME
        self.collections_path = (
            collections_path or self.data_path / self.COLLECTIONS_DIR_NAME
        )

        self.locks = StoreLocks()
        self.collections = CollectionStore(self.meta_path, self.collections_path, self.locks)
        self.records = RecordStore(self.collections, self.locks)

    def initialize(self) -> None:
        """
        Provision the data directory layout.

        Creates the data and collections directories and an empty
        map.json if they don't exist yet. Existing data is left alone.

        Raises:
            StoreError: If the directories or metadata file can't be
                        created.
        """
        try:
            self.collections_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to create {self.collections_path}: {e}") from e

        with self.locks.meta:
            if not self.meta_path.exists():
                write_array(self.meta_path, [])
                logger.info(f"Initialized empty store at {self.data_path}")

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    def list_collections(self) -> List[Collection]:
        return self.collections.list_collections()

    def get_collection_name(self, collection_id: str) -> Optional[str]:
        return self.collections.get_collection_name(collection_id)

    def create_collection(self, name: str) -> str:
        return self.collections.create_collection(name)

    def delete_collection(self, collection_id: str) -> Optional[str]:
        return self.collections.delete_collection(collection_id)

    # =========================================================================
    # RECORDS
    # =========================================================================

    def get_records(self, collection_id: str) -> List[Record]:
        return self.records.get_records(collection_id)

    def get_record_by_id(self, collection_id: str, record_id: str) -> Optional[Record]:
        return self.records.get_record_by_id(collection_id, record_id)

    def create_record(self, collection_id: str, contents: Record) -> str:
        return self.records.create_record(collection_id, contents)

    def delete_record(self, collection_id: str, record_id: str) -> Optional[str]:
        return self.records.delete_record(collection_id, record_id)
