"""
Authorization collaborator - runs an operation with an authorized client.

Token acquisition and refresh are out of scope here: credentials come from
the credentials cache or from an optional ``authorize`` callback. What this
module guarantees is the contract the retry wrapper depends on: an expired
token always surfaces as ``AuthExpired`` and never as a transport error.
"""
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from ..errors import AuthExpired, AuthorizationRequired
from ..models import Credentials

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "publisher"
DEFAULT_CREDENTIALS_FILE = "credentials.json"

Authorize = Callable[[], Awaitable[Credentials]]


class CredentialsCache:
    """
    Local cache for OAuth2 credentials.

    Stores a single credentials JSON file. A corrupt file is treated as
    missing credentials.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize credentials cache.

        Args:
            path: Credentials file (default: ~/.cache/publisher/credentials.json)
        """
        self._path = Path(path) if path else DEFAULT_CACHE_DIR / DEFAULT_CREDENTIALS_FILE

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Credentials]:
        """Load credentials from disk, None if absent or unreadable."""
        if not self._path.exists():
            logger.debug("CredentialsCache: no credentials at %s", self._path)
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                return Credentials.from_dict(json.load(f))
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("CredentialsCache: failed to read %s: %s", self._path, e)
            return None

    def save(self, credentials: Credentials) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            f.write(credentials.to_json())
        logger.debug("CredentialsCache: saved credentials to %s", self._path)

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
            logger.info("CredentialsCache: cleared %s", self._path)


class AuthorizedClient:
    """
    HTTP client adapter carrying a bearer token.

    Implements IHTTPClient protocol. A 401 answer means the token is no
    longer accepted and is reported as ``AuthExpired``.
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    def _check(self, response: httpx.Response, method: str, url: str) -> httpx.Response:
        if response.status_code == 401:
            logger.warning("Authorization rejected on %s %s", method, url)
            raise AuthExpired("authorization to upload packages has expired")
        return response

    async def get(self, url: str) -> httpx.Response:
        response = await self._client.get(url)
        return self._check(response, "GET", url)

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Any]] = None,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        response = await self._client.post(
            url, data=data, files=files, follow_redirects=follow_redirects
        )
        return self._check(response, "POST", url)


class Authorization:
    """
    Provides freshly authorized clients to publish attempts.

    Usage:
        authorization = Authorization(CredentialsCache())
        result = await authorization.with_client(orchestrator.run)
    """

    def __init__(
        self,
        cache: CredentialsCache,
        authorize: Optional[Authorize] = None,
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            cache: Where credentials are stored
            authorize: Optional callback obtaining new credentials
            timeout: Transport timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self._cache = cache
        self._authorize = authorize
        self._timeout = timeout
        self._transport = transport

    async def _load_credentials(self) -> Credentials:
        credentials = self._cache.load()
        if credentials is None:
            if self._authorize is None:
                raise AuthorizationRequired(
                    f"no credentials found at {self._cache.path}; provide a token to authorize"
                )
            credentials = await self._authorize()
            self._cache.save(credentials)

        if credentials.is_expired:
            self._cache.clear()
            raise AuthExpired("stored credentials have expired")
        return credentials

    async def with_client(self, operation: Callable[[AuthorizedClient], Awaitable[T]]) -> T:
        """
        Run ``operation`` with an authorized client.

        The client is closed when the operation finishes.

        Raises:
            AuthExpired: When the token is (or becomes) invalid
            AuthorizationRequired: When there are no credentials to use
        """
        credentials = await self._load_credentials()
        headers = {"Authorization": f"Bearer {credentials.access_token}"}
        async with httpx.AsyncClient(
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as http:
            try:
                return await operation(AuthorizedClient(http))
            except AuthExpired:
                self._cache.clear()
                raise
