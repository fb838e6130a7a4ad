"""
Document store: collection metadata plus per-collection record files.
"""

from .collections import Collection, CollectionStore
from .document_store import DocumentStore
from .errors import StoreError, DuplicateRecordError
from .records import Record, RecordStore

__all__ = [
    "Collection",
    "CollectionStore",
    "DocumentStore",
    "DuplicateRecordError",
    "Record",
    "RecordStore",
    "StoreError",
]
