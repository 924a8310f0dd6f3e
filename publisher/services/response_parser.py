"""
Response Parser - decodes untrusted JSON bodies from the registry.

Every field read from a server payload goes through ``decode_field``, so a
malformed response always ends up as ``InvalidServerResponse`` carrying the
raw body, never as a KeyError or TypeError deep in the workflow.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, NoReturn, Optional, Tuple, Type, Union

import httpx

from ..errors import InvalidServerResponse, ServerError
from ..models import ConfirmationFailure, ConfirmationSuccess, UploadConfirmation, UploadTicket

ExpectedType = Union[Type, Tuple[Type, ...], None]


@dataclass(frozen=True)
class FieldDecode:
    """Outcome of decoding one field: either a value or a failure reason."""
    ok: bool
    value: Any = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "FieldDecode":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> "FieldDecode":
        return cls(ok=False, reason=reason)


class ResponseParser:
    """
    Parser bound to one raw response body.

    Usage:
        parser = ResponseParser.from_response(response)
        payload = parser.parse()
        ticket = parser.decode_ticket(payload)
    """

    def __init__(self, body: Union[bytes, str]):
        self._body = body

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ResponseParser":
        return cls(response.content)

    @property
    def body(self) -> Union[bytes, str]:
        return self._body

    def invalid(self) -> InvalidServerResponse:
        return InvalidServerResponse(self._body)

    def parse(self) -> Dict[str, Any]:
        """
        Decode the body as a JSON object.

        Raises:
            InvalidServerResponse: If the body is not JSON or not an object
        """
        try:
            value = json.loads(self._body)
        except (ValueError, TypeError, RecursionError) as exc:
            raise self.invalid() from exc
        if not isinstance(value, dict):
            raise self.invalid()
        return value

    @staticmethod
    def decode_field(mapping: Any, key: str, expected_type: ExpectedType = None) -> FieldDecode:
        """Typed lookup of ``mapping[key]`` that never raises."""
        if not isinstance(mapping, dict):
            return FieldDecode.failure("payload is not an object")
        if key not in mapping:
            return FieldDecode.failure(f"missing field '{key}'")
        value = mapping[key]
        if expected_type is not None and not isinstance(value, expected_type):
            return FieldDecode.failure(
                f"field '{key}' has unexpected type {type(value).__name__}"
            )
        return FieldDecode.success(value)

    def expect_field(self, mapping: Any, key: str, expected_type: ExpectedType = None) -> Any:
        """
        Return ``mapping[key]``.

        Raises:
            InvalidServerResponse: If the key is absent or has the wrong type
        """
        decoded = self.decode_field(mapping, key, expected_type)
        if not decoded.ok:
            raise self.invalid()
        return decoded.value

    def error_message(self, mapping: Dict[str, Any]) -> str:
        """Read ``mapping["error"]["message"]``, validating every level."""
        error = self.expect_field(mapping, "error", dict)
        return self.expect_field(error, "message", str)

    def extract_error(self, mapping: Dict[str, Any]) -> NoReturn:
        """
        Raise the error the server reported.

        Raises:
            ServerError: With the server's message when the payload is well formed
            InvalidServerResponse: Otherwise
        """
        raise ServerError(self.error_message(mapping))

    def decode_ticket(self, mapping: Dict[str, Any]) -> UploadTicket:
        url = self.expect_field(mapping, "url", str)
        fields = self.expect_field(mapping, "fields", dict)
        form_fields: Dict[str, str] = {}
        for key, value in fields.items():
            if not isinstance(value, str):
                raise self.invalid()
            form_fields[key] = value
        return UploadTicket(upload_url=url, form_fields=form_fields)

    def decode_confirmation(self, mapping: Dict[str, Any]) -> UploadConfirmation:
        if "error" in mapping:
            return ConfirmationFailure(self.error_message(mapping))
        success = self.expect_field(mapping, "success", dict)
        return ConfirmationSuccess(self.expect_field(success, "message", str))
