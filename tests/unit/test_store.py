"""
Unit tests for the JSON document store.
"""

import json
import threading
import uuid

import pytest

from molecule.store import DocumentStore, DuplicateRecordError, StoreError


def read_json(path):
    return json.loads(path.read_text())


class TestInitialize:
    def test_creates_layout(self, tmp_path):
        store = DocumentStore(tmp_path / "data")
        store.initialize()

        assert store.collections_path.is_dir()
        assert read_json(store.meta_path) == []

    def test_keeps_existing_data(self, store: DocumentStore):
        collection_id = store.create_collection("users")

        store.initialize()

        assert [c.collection_id for c in store.list_collections()] == [collection_id]


class TestCollections:
    """Tests for collection metadata."""

    def test_create_collection(self, store: DocumentStore):
        collection_id = store.create_collection("users")

        assert read_json(store.meta_path) == [
            {"collection_id": collection_id, "name": "users"}
        ]
        assert read_json(store.collections_path / f"{collection_id}.json") == []

    def test_ids_are_unique(self, store: DocumentStore):
        first = store.create_collection("users")
        second = store.create_collection("users")

        assert first != second
        assert len(store.list_collections()) == 2

    def test_list_in_creation_order(self, store: DocumentStore):
        store.create_collection("a")
        store.create_collection("b")

        assert [c.name for c in store.list_collections()] == ["a", "b"]

    def test_get_collection_name(self, store: DocumentStore):
        collection_id = store.create_collection("users")

        assert store.get_collection_name(collection_id) == "users"
        assert store.get_collection_name("missing") is None

    def test_delete_collection(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        store.create_record(collection_id, {"name": "Ada"})

        assert store.delete_collection(collection_id) == collection_id
        assert store.list_collections() == []
        assert not (store.collections_path / f"{collection_id}.json").exists()

    def test_delete_unknown_collection(self, store: DocumentStore):
        assert store.delete_collection("missing") is None

    def test_missing_metadata_file(self, tmp_path):
        store = DocumentStore(tmp_path / "data")

        with pytest.raises(StoreError):
            store.list_collections()

    def test_corrupt_metadata_file(self, store: DocumentStore):
        store.meta_path.write_text("{not json")

        with pytest.raises(StoreError):
            store.list_collections()

    def test_metadata_must_be_array(self, store: DocumentStore):
        store.meta_path.write_text('{"a": 1}')

        with pytest.raises(StoreError):
            store.list_collections()

    @pytest.mark.parametrize("bad_id", ["", "..", "../etc", "a/b", "a\\b"])
    def test_unsafe_collection_ids(self, store: DocumentStore, bad_id):
        with pytest.raises(StoreError):
            store.get_records(bad_id)


class TestRecords:
    """Tests for records within a collection."""

    def test_create_generates_id(self, store: DocumentStore):
        collection_id = store.create_collection("users")

        record_id = store.create_record(collection_id, {"name": "Ada"})

        assert record_id
        assert store.get_records(collection_id) == [{"name": "Ada", "_id": record_id}]

    def test_create_keeps_supplied_id(self, store: DocumentStore):
        collection_id = store.create_collection("users")

        assert store.create_record(collection_id, {"_id": "ada"}) == "ada"
        assert store.get_record_by_id(collection_id, "ada") == {"_id": "ada"}

    def test_create_does_not_mutate_input(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        contents = {"name": "Ada"}

        store.create_record(collection_id, contents)

        assert contents == {"name": "Ada"}

    def test_duplicate_id(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        store.create_record(collection_id, {"_id": "ada"})

        with pytest.raises(DuplicateRecordError) as exc_info:
            store.create_record(collection_id, {"_id": "ada", "v": 2})

        assert exc_info.value.record_id == "ada"
        assert len(store.get_records(collection_id)) == 1

    def test_non_string_id(self, store: DocumentStore):
        collection_id = store.create_collection("users")

        with pytest.raises(StoreError):
            store.create_record(collection_id, {"_id": 7})
        with pytest.raises(StoreError):
            store.create_record(collection_id, {"_id": None})

    def test_insertion_order(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        for name in ("a", "b", "c"):
            store.create_record(collection_id, {"_id": name})

        assert [r["_id"] for r in store.get_records(collection_id)] == ["a", "b", "c"]

    def test_get_missing_record(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        assert store.get_record_by_id(collection_id, "nope") is None

    def test_unknown_collection(self, store: DocumentStore):
        with pytest.raises(StoreError):
            store.get_records("missing")
        with pytest.raises(StoreError):
            store.create_record("missing", {"a": 1})

    def test_delete_record(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        store.create_record(collection_id, {"_id": "a"})
        store.create_record(collection_id, {"_id": "b"})

        assert store.delete_record(collection_id, "a") == "a"
        assert store.get_records(collection_id) == [{"_id": "b"}]
        assert store.delete_record(collection_id, "a") is None

    def test_records_from_disk_without_id(self, store: DocumentStore):
        """Hand-edited files may hold entries that aren't objects."""
        collection_id = store.create_collection("users")
        path = store.collections_path / f"{collection_id}.json"
        path.write_text('[1, {"name": "x"}, {"_id": "a"}]')

        assert store.get_record_by_id(collection_id, "a") == {"_id": "a"}


class TestConcurrency:
    """Concurrent writers must not lose updates."""

    def test_concurrent_collection_creates(self, store: DocumentStore):
        count = 20
        threads = [
            threading.Thread(target=store.create_collection, args=(f"c{i}",))
            for i in range(count)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(store.list_collections()) == count

    def test_concurrent_record_creates(self, store: DocumentStore):
        collection_id = store.create_collection("users")
        count = 20
        threads = [
            threading.Thread(target=store.create_record, args=(collection_id, {"n": i}))
            for i in range(count)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        records = store.get_records(collection_id)
        assert sorted(r["n"] for r in records) == list(range(count))

    def test_locks_are_per_collection(self, store: DocumentStore):
        """Holding one collection's lock doesn't block another collection."""
        a = store.create_collection("a")
        b = store.create_collection("b")
        done = threading.Event()

        def write_b():
            store.create_record(b, {})
            done.set()

        with store.locks.collection(a):
            threading.Thread(target=write_b, daemon=True).start()
            assert done.wait(2.0)

    def test_same_collection_waits(self, store: DocumentStore):
        a = store.create_collection("a")
        done = threading.Event()

        def write_a():
            store.create_record(a, {})
            done.set()

        with store.locks.collection(a):
            threading.Thread(target=write_a, daemon=True).start()
            assert not done.wait(0.1)

        assert done.wait(2.0)
        assert len(store.get_records(a)) == 1


class TestLockRegistry:
    """The lock registry only tracks collections with a command in flight."""

    def test_unknown_collections_leave_no_locks(self, store: DocumentStore):
        for _ in range(50):
            with pytest.raises(StoreError):
                store.create_record(str(uuid.uuid4()), {"k": "v"})

        assert len(store.locks) == 0

    def test_unknown_collection_delete_record(self, store: DocumentStore):
        with pytest.raises(StoreError):
            store.delete_record("missing", "r")

        assert len(store.locks) == 0

    def test_deleted_collections_leave_no_locks(self, store: DocumentStore):
        for i in range(10):
            collection_id = store.create_collection(f"c{i}")
            store.create_record(collection_id, {})
            store.delete_collection(collection_id)

        assert len(store.locks) == 0

    def test_entry_held_while_in_use(self, store: DocumentStore):
        with store.locks.collection("a"):
            assert len(store.locks) == 1

        assert len(store.locks) == 0
