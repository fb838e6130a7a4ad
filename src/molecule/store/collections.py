"""
=============================================================================
COLLECTION STORE
=============================================================================

The registry of collections: one ordered JSON array in map.json.

    map.json
    ────────
    [
      {"collection_id": "3f2b...", "name": "users"},
      {"collection_id": "9a71...", "name": "orders"}
    ]

Each entry has a matching record file collections/<collection_id>.json.
Identifiers are generated UUID4 strings and never change. Names are not
required to be unique; lookups always go by identifier.

=============================================================================
"""

import logging
import uuid
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional

from .errors import StoreError
from .files import read_array, write_array
from .locks import StoreLocks


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Collection:
    """A named, identified group of records."""
    collection_id: str
    name: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Collection":
        try:
            return cls(collection_id=data["collection_id"], name=data["name"])
        except (KeyError, TypeError) as e:
            raise StoreError(f"Malformed collection entry: {data!r}") from e


def new_collection_id() -> str:
    """Generate a fresh collection identifier."""
    return str(uuid.uuid4())


def check_collection_id(collection_id: str) -> None:
    """
    Reject identifiers that cannot safely be used as a file name.

    Raises:
        StoreError: For empty ids or ids that could escape the
                    collections directory.
    """
    if (
        not collection_id
        or "/" in collection_id
        or "\\" in collection_id
        or "\x00" in collection_id
        or collection_id in (".", "..")
    ):
        raise StoreError(f"Invalid collection id: {collection_id!r}")


class CollectionStore:
    """
    Reads and rewrites the collection metadata file.

    All methods reload map.json from disk; nothing is cached in memory.
    """

    def __init__(self, meta_path: Path, collections_path: Path, locks: StoreLocks):
        self.meta_path = meta_path
        self.collections_path = collections_path
        self._locks = locks

    def record_path(self, collection_id: str) -> Path:
        """Path of the record file for a collection."""
        check_collection_id(collection_id)
        return self.collections_path / f"{collection_id}.json"

    def _load(self) -> List[Collection]:
        return [Collection.from_dict(entry) for entry in read_array(self.meta_path)]

    def _save(self, collections: List[Collection]) -> None:
        write_array(self.meta_path, [c.to_dict() for c in collections])

    def list_collections(self) -> List[Collection]:
        """
        Return every known collection, in creation order.

        Raises:
            StoreError: If map.json is missing or cannot be parsed.
        """
        return self._load()

    def get_collection_name(self, collection_id: str) -> Optional[str]:
        """Name of the first collection with this id, or None."""
        for collection in self._load():
            if collection.collection_id == collection_id:
                return collection.name
        return None

    def create_collection(self, name: str) -> str:
        """
        Register a new collection and create its empty record file.

        Returns:
            The generated collection_id.
        """
        with self._locks.meta:
            collections = self._load()

            collection = Collection(collection_id=new_collection_id(), name=name)
            write_array(self.record_path(collection.collection_id), [])

            collections.append(collection)
            self._save(collections)

        logger.info(f"Created collection {name!r} ({collection.collection_id})")
        return collection.collection_id

    def delete_collection(self, collection_id: str) -> Optional[str]:
        """
        Remove a collection and its record file.

        Returns:
            The deleted collection_id, or None if no collection had it.
        """
        path = self.record_path(collection_id)

        with self._locks.meta:
            collections = self._load()
            remaining = [c for c in collections if c.collection_id != collection_id]
            if len(remaining) == len(collections):
                return None

            self._save(remaining)

            with self._locks.collection(collection_id):
                try:
                    path.unlink()
                except FileNotFoundError:
                    logger.warning(f"Record file for {collection_id} was already gone")
                except OSError as e:
                    raise StoreError(f"Failed to delete {path}: {e}", path=path) from e

        logger.info(f"Deleted collection {collection_id}")
        return collection_id
