"""
Protocols (Interfaces) for Dependency Inversion.

The orchestrator only sees these small interfaces, so tests and callers can
swap the HTTP client, file selection and archiving independently.
"""
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TypeVar, runtime_checkable

import httpx

from .models import FileList

T = TypeVar("T")


@runtime_checkable
class IHTTPClient(Protocol):
    """Interface for an already-authorized HTTP client."""

    async def get(self, url: str) -> httpx.Response:
        """GET request."""
        ...

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Any]] = None,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        """POST request, multipart when ``files`` is given."""
        ...


@runtime_checkable
class IFileSelector(Protocol):
    """Interface for choosing the package payload."""

    async def select(self) -> FileList:
        ...


@runtime_checkable
class IArchiveBuilder(Protocol):
    """Interface for turning a file list into archive bytes."""

    async def build(self, file_list: FileList) -> bytes:
        ...


@runtime_checkable
class IAuthorization(Protocol):
    """Interface for the authorization collaborator."""

    async def with_client(self, operation: Callable[[IHTTPClient], Awaitable[T]]) -> T:
        """Run ``operation`` with a freshly authorized client."""
        ...
