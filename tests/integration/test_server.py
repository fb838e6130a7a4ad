"""
End-to-end tests against a running server.
"""

import json
import threading

import pytest


class TestHandshake:
    """Handshake results seen by a real client."""

    def test_ready_then_payload(self, client):
        assert client.exchange(b"OK", b"COLLECTIONS_LIST") == b"INITCONN\nREADY\n[]"

    @pytest.mark.parametrize("hello, code", [
        (b"", b"malformed_request"),
        (b"HELLO", b"invalid_handshake_msg"),
        (b"READY", b"invalid_handshake"),
    ])
    def test_rejections(self, client, hello, code):
        raw = client.exchange(hello, b"COLLECTIONS_LIST")
        assert raw == b"INITCONN\nERR " + code + b"\n"

    def test_malformed_credentials(self, auth_client):
        raw = auth_client.exchange(b"OK adminsecret", b"COLLECTIONS_LIST")
        assert raw == b"INITCONN\nERR malformed_auth_str\n"

    def test_wrong_credentials(self, auth_client):
        raw = auth_client.exchange(b"OK admin:nope", b"COLLECTIONS_LIST")
        assert raw == b"INITCONN\nERR incorrect_auth_info\n"

    def test_correct_credentials(self, auth_client):
        assert auth_client.command("COLLECTIONS_LIST", hello="OK admin:secret") == b"[]"

    def test_credentials_persisted(self, auth_server):
        assert auth_server.auth_gate.auth_path.exists()


class TestCommands:
    """One command per connection."""

    def test_create_and_read_back(self, client):
        collection_id = client.command("CLN_CREATE users").decode()

        assert json.loads(client.command("COLLECTIONS_LIST")) == [
            {"collection_id": collection_id, "name": "users"}
        ]
        assert json.loads(client.command(f"COLLECTION {collection_id}")) == "users"

        record_id = client.command(f'REC_CREATE {collection_id} {{"name": "Ada"}}').decode()
        assert json.loads(client.command(f"REC_GET {collection_id} {record_id}")) == {
            "name": "Ada", "_id": record_id
        }

    def test_custom_and_duplicate_id(self, client):
        collection_id = client.command("CLN_CREATE users").decode()

        assert client.command(f'REC_CREATE {collection_id} {{"_id": "ada"}}') == b"ada"
        assert (
            client.command(f'REC_CREATE {collection_id} {{"_id": "ada"}}')
            == b"ERR duplicate_record_id\n"
        )

    def test_missing_lookups_are_null(self, client):
        collection_id = client.command("CLN_CREATE users").decode()

        assert client.command("COLLECTION nope") == b"null"
        assert client.command(f"REC_GET {collection_id} nope") == b"null"

    def test_invalid_input(self, client):
        assert client.command("DROP users") == b"ERR invalid_input\n"
        assert client.command("REC_GET onlyone") == b"ERR invalid_input\n"
        assert client.command("REC_CREATE abc not-json") == b"ERR invalid_input\n"

    def test_null_record_id(self, client):
        collection_id = client.command("CLN_CREATE users").decode()

        raw = client.command(f'REC_CREATE {collection_id} {{"_id": null}}')

        assert raw == b"ERR invalid_input\n"
        assert client.command(f"CLN_GET {collection_id}") == b"[]"

    def test_store_error_closes_without_payload(self, client):
        assert client.command("CLN_GET missing") == b""

    def test_stop_not_available_over_socket(self, server, client):
        assert client.command("stop") == b"ERR cmd_not_available\n"
        assert server.is_running
        assert client.command("COLLECTIONS_LIST") == b"[]"

    def test_blank_command(self, client):
        assert client.command("") == b""

    def test_deletes(self, client):
        collection_id = client.command("CLN_CREATE users").decode()
        client.command(f'REC_CREATE {collection_id} {{"_id": "a"}}')

        assert client.command(f"REC_DELETE {collection_id} a") == b"a"
        assert client.command(f"CLN_DELETE {collection_id}") == collection_id.encode()
        assert client.command("COLLECTIONS_LIST") == b"[]"


class TestConcurrency:
    def test_concurrent_collection_creates(self, client):
        count = 16
        ids = []
        lock = threading.Lock()

        def create(i):
            collection_id = client.command(f"CLN_CREATE c{i}").decode()
            with lock:
                ids.append(collection_id)

        threads = [threading.Thread(target=create, args=(i,)) for i in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=15)

        listed = json.loads(client.command("COLLECTIONS_LIST"))
        assert len(ids) == count
        assert sorted(c["collection_id"] for c in listed) == sorted(ids)

    def test_concurrent_record_creates(self, client):
        collection_id = client.command("CLN_CREATE users").decode()
        count = 16

        threads = [
            threading.Thread(
                target=client.command,
                args=(f'REC_CREATE {collection_id} {{"n": {i}}}',),
            )
            for i in range(count)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=15)

        records = json.loads(client.command(f"CLN_GET {collection_id}"))
        assert sorted(r["n"] for r in records) == list(range(count))


def test_shutdown_stops_listening(config):
    from molecule import MoleculeServer

    server = MoleculeServer(config).start_background()
    assert server.is_running

    server.shutdown()

    assert not server.is_running


def test_run_reports_bound_address(config):
    from molecule import MoleculeServer

    server = MoleculeServer(config)
    ready = threading.Event()
    seen = []

    def on_ready(address):
        seen.append(address)
        ready.set()

    thread = threading.Thread(target=server.run, kwargs={"on_ready": on_ready}, daemon=True)
    thread.start()

    assert ready.wait(timeout=5)
    assert seen == [server.address]
    assert seen[0][1] != 0

    server.shutdown()
    thread.join(timeout=5)
    assert not thread.is_alive()
