"""
=============================================================================
RECORD STORE
=============================================================================

Records of one collection live in one JSON array file:

    collections/<collection_id>.json
    ────────────────────────────────
    [
      {"_id": "c0ffee...", "name": "Ada"},
      {"_id": "custom", "name": "Grace"}
    ]

Every record carries a string "_id". Callers may supply their own; when
they don't, a UUID4 string is generated. A supplied "_id" that already
exists in the collection is rejected rather than duplicated.

=============================================================================
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from .collections import CollectionStore
from .errors import StoreError, DuplicateRecordError
from .files import read_array, write_array
from .locks import StoreLocks


logger = logging.getLogger(__name__)


Record = Dict[str, Any]

RECORD_ID_KEY = "_id"


def new_record_id() -> str:
    """Generate a fresh record identifier."""
    return str(uuid.uuid4())


def _matches(record: Record, record_id: str) -> bool:
    return isinstance(record, dict) and record.get(RECORD_ID_KEY) == record_id


class RecordStore:
    """
    Reads and rewrites per-collection record files.

    Shares the collection store's path logic so both agree on where a
    collection's records live.
    """

    def __init__(self, collections: CollectionStore, locks: StoreLocks):
        self._collections = collections
        self._locks = locks

    def get_records(self, collection_id: str) -> List[Record]:
        """
        Return every record in a collection, in insertion order.

        Raises:
            StoreError: If the collection file is missing or unreadable.
        """
        return read_array(self._collections.record_path(collection_id))

    def get_record_by_id(self, collection_id: str, record_id: str) -> Optional[Record]:
        """First record whose _id equals record_id, or None."""
        for record in self.get_records(collection_id):
            if _matches(record, record_id):
                return record
        return None

    def create_record(self, collection_id: str, contents: Record) -> str:
        """
        Append a record to a collection.

        Args:
            collection_id: Target collection.
            contents: Caller-supplied fields, copied into a new record.

        Returns:
            The record's _id (generated unless supplied).

        Raises:
            StoreError: If the collection file can't be read or written,
                        or the supplied _id is not a string.
            DuplicateRecordError: If the supplied _id already exists.
        """
        path = self._collections.record_path(collection_id)

        record: Record = dict(contents)
        if RECORD_ID_KEY not in record:
            record[RECORD_ID_KEY] = new_record_id()
        elif not isinstance(record[RECORD_ID_KEY], str):
            raise StoreError(f"{RECORD_ID_KEY} must be a string")

        record_id = record[RECORD_ID_KEY]

        with self._locks.collection(collection_id):
            records = read_array(path)
            if any(_matches(existing, record_id) for existing in records):
                raise DuplicateRecordError(collection_id, record_id)

            records.append(record)
            write_array(path, records)

        logger.debug(f"Created record {record_id} in {collection_id}")
        return record_id

    def delete_record(self, collection_id: str, record_id: str) -> Optional[str]:
        """
        Remove the first record with this _id.

        Returns:
            The deleted record_id, or None if nothing matched.

        Raises:
            StoreError: If the collection file can't be read or written.
        """
        path = self._collections.record_path(collection_id)

        with self._locks.collection(collection_id):
            records = read_array(path)
            for index, record in enumerate(records):
                if _matches(record, record_id):
                    del records[index]
                    break
            else:
                return None

            write_array(path, records)

        logger.debug(f"Deleted record {record_id} from {collection_id}")
        return record_id
