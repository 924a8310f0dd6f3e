"""Tests for ResponseParser."""
import json

import pytest

from publisher.errors import InvalidServerResponse, ServerError
from publisher.models import ConfirmationFailure, ConfirmationSuccess
from publisher.services.response_parser import FieldDecode, ResponseParser


def _parser(payload) -> ResponseParser:
    return ResponseParser(json.dumps(payload).encode("utf-8"))


class TestParse:
    def test_parses_object(self):
        assert _parser({"a": 1}).parse() == {"a": 1}

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"",
            b"<Error>denied</Error>",
            b"[1, 2]",
            b'"text"',
            b"42",
            b"\xff\xfe",
            pytest.param(
                b'{"a":' + b"[" * 200000 + b"]" * 200000 + b"}", id="deeply-nested"
            ),
        ],
    )
    def test_invalid_bodies(self, body):
        with pytest.raises(InvalidServerResponse) as exc_info:
            ResponseParser(body).parse()
        assert str(exc_info.value).startswith("Invalid server response:\n")

    def test_error_carries_raw_body(self):
        with pytest.raises(InvalidServerResponse) as exc_info:
            ResponseParser(b"<html>oops</html>").parse()
        assert exc_info.value.raw_body == "<html>oops</html>"


class TestFields:
    def test_decode_field_success(self):
        decoded = ResponseParser.decode_field({"url": "x"}, "url", str)
        assert decoded == FieldDecode.success("x")
        assert decoded.ok is True

    def test_decode_field_missing(self):
        decoded = ResponseParser.decode_field({}, "url", str)
        assert decoded.ok is False
        assert "missing field 'url'" in decoded.reason

    def test_decode_field_wrong_type(self):
        decoded = ResponseParser.decode_field({"url": 3}, "url", str)
        assert decoded.ok is False
        assert "unexpected type int" in decoded.reason

    def test_decode_field_on_non_mapping(self):
        assert ResponseParser.decode_field(["url"], "url").ok is False

    def test_expect_field_returns_value(self):
        parser = _parser({})
        assert parser.expect_field({"fields": {}}, "fields") == {}

    def test_expect_field_missing(self):
        parser = _parser({"other": 1})
        with pytest.raises(InvalidServerResponse):
            parser.expect_field({"other": 1}, "url")


class TestExtractError:
    def test_raises_server_error(self):
        payload = {"error": {"message": "x"}}
        with pytest.raises(ServerError) as exc_info:
            _parser(payload).extract_error(payload)
        assert exc_info.value.message == "x"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"error": "x"},
            {"error": {}},
            {"error": {"message": 3}},
            {"error": ["message"]},
        ],
    )
    def test_malformed_error_is_invalid_response(self, payload):
        with pytest.raises(InvalidServerResponse):
            _parser(payload).extract_error(payload)


class TestDecodeTicket:
    def test_valid_ticket(self):
        payload = {"url": "https://blob/x", "fields": {"key": "v", "policy": "p"}}
        ticket = _parser(payload).decode_ticket(payload)
        assert ticket.upload_url == "https://blob/x"
        assert ticket.form_fields == {"key": "v", "policy": "p"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"fields": {}},
            {"url": "https://blob/x"},
            {"url": 1, "fields": {}},
            {"url": "https://blob/x", "fields": ["key"]},
            {"url": "https://blob/x", "fields": {"key": 1}},
            {"url": "https://blob/x", "fields": {"key": None}},
        ],
    )
    def test_invalid_ticket(self, payload):
        with pytest.raises(InvalidServerResponse):
            _parser(payload).decode_ticket(payload)


class TestDecodeConfirmation:
    def test_success(self):
        payload = {"success": {"message": "Published foo 1.0.0"}}
        assert _parser(payload).decode_confirmation(payload) == ConfirmationSuccess("Published foo 1.0.0")

    def test_failure(self):
        payload = {"error": {"message": "version exists"}}
        assert _parser(payload).decode_confirmation(payload) == ConfirmationFailure("version exists")

    def test_error_key_wins_over_success(self):
        payload = {"error": {"message": "nope"}, "success": {"message": "yes"}}
        assert _parser(payload).decode_confirmation(payload).succeeded is False

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"success": "Published"},
            {"success": {}},
            {"success": {"message": 1}},
            {"error": {"message": None}},
        ],
    )
    def test_invalid_confirmation(self, payload):
        with pytest.raises(InvalidServerResponse):
            _parser(payload).decode_confirmation(payload)
