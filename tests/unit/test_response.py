"""
Unit tests for responses and error codes.
"""

from molecule.protocol import ErrorCode, Response, ResponseKind
from molecule.protocol import response


class TestToBytes:
    """Tests for Response.to_bytes()."""

    def test_value_is_json(self):
        resp = response.value([{"collection_id": "a", "name": "users"}])
        assert resp.to_bytes() == b'[{"collection_id": "a", "name": "users"}]'

    def test_plain_string_value_is_json(self):
        """A collection name goes out as a JSON string."""
        assert response.value("users").to_bytes() == b'"users"'

    def test_absent_value(self):
        assert response.value(None).to_bytes() == b"null"

    def test_identifier_is_raw(self):
        assert response.identifier("3f2b").to_bytes() == b"3f2b"

    def test_absent_identifier(self):
        assert response.identifier(None).to_bytes() == b"null"

    def test_empty(self):
        assert response.empty().to_bytes() == b""

    def test_error_line(self):
        resp = response.error(ErrorCode.INVALID_INPUT)
        assert resp.to_bytes() == b"ERR invalid_input\n"

    def test_no_trailing_newline_on_payloads(self):
        assert not response.value({"a": 1}).to_bytes().endswith(b"\n")


class TestResponseFlags:
    def test_is_error(self):
        assert response.error(ErrorCode.CMD_NOT_AVAILABLE).is_error
        assert not response.value([]).is_error

    def test_is_absent(self):
        assert response.value(None).is_absent
        assert response.identifier(None).is_absent
        assert not response.value([]).is_absent
        assert not response.empty().is_absent

    def test_constructors_set_kind(self):
        assert response.text("hi").kind is ResponseKind.TEXT
        assert Response(ResponseKind.VALUE, 1).payload == 1


class TestErrorCode:
    def test_wire_values(self):
        assert ErrorCode.MALFORMED_REQUEST.value == "malformed_request"
        assert ErrorCode.INVALID_HANDSHAKE_MSG.value == "invalid_handshake_msg"
        assert ErrorCode.INVALID_HANDSHAKE.value == "invalid_handshake"
        assert ErrorCode.MALFORMED_AUTH_STR.value == "malformed_auth_str"
        assert ErrorCode.INCORRECT_AUTH_INFO.value == "incorrect_auth_info"
        assert ErrorCode.INVALID_INPUT.value == "invalid_input"
        assert ErrorCode.CMD_NOT_AVAILABLE.value == "cmd_not_available"

    def test_handshake_codes(self):
        assert ErrorCode.MALFORMED_AUTH_STR.is_handshake_error
        assert not ErrorCode.INVALID_INPUT.is_handshake_error

    def test_str(self):
        assert str(ErrorCode.DUPLICATE_RECORD_ID) == "duplicate_record_id"
