"""
Store-level exceptions.

Any failure reading, parsing, or writing the persisted JSON files
surfaces as a StoreError. The original OSError / JSONDecodeError is kept
as __cause__.
"""


class StoreError(Exception):
    """
    Raised when the document store cannot complete an operation.

    Aborts the single in-flight command; never fatal to the server.
    """

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path  # File involved, if any


class DuplicateRecordError(StoreError):
    """Raised when a caller-supplied _id already exists in the collection."""

    def __init__(self, collection_id: str, record_id: str):
        super().__init__(
            f"Record {record_id!r} already exists in collection {collection_id!r}"
        )
        self.collection_id = collection_id
        self.record_id = record_id
