"""
Error taxonomy for the publish workflow.

Every failure of a publish attempt is one of these kinds. Only
``AuthExpired`` is ever retried.
"""
from typing import Optional, Union


class PublishError(Exception):
    """Base class for all publish failures."""


class FileSystemError(PublishError):
    """Local file enumeration, git invocation or archiving failed."""


class InvalidServerResponse(PublishError):
    """A server payload was not valid JSON or had an unexpected shape."""

    def __init__(self, raw_body: Union[bytes, str, None]):
        if isinstance(raw_body, bytes):
            raw_body = raw_body.decode("utf-8", errors="replace")
        self.raw_body: str = raw_body or ""
        super().__init__(f"Invalid server response:\n{self.raw_body}")


class ServerError(PublishError):
    """Well-formed error reported by the registry."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UploadFailed(PublishError):
    """The blob store answered without a ``location`` header."""

    def __init__(self, message: str = "Failed to upload the package.", body: Optional[str] = None):
        self.body = body
        super().__init__(message)


class AuthExpired(PublishError):
    """The authorization token lapsed and cannot be refreshed silently."""


class AuthorizationRequired(PublishError):
    """No credentials are stored and no way to obtain them was configured."""
