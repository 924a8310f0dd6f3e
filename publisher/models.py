"""
Models for publisher module.

Immutable dataclasses, created fresh for every publish attempt.
"""
import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

DEFAULT_SERVER = "https://pub.dartlang.org"
NEW_UPLOAD_PATH = "/packages/versions/new.json"
ARCHIVE_FILENAME = "package.tar.gz"


@dataclass(frozen=True)
class FileList:
    """Files that make up the package payload, relative to ``root``."""
    root: Path
    entries: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, entry: object) -> bool:
        return entry in self.entries

    def absolute_paths(self) -> List[Path]:
        return [self.root / entry for entry in self.entries]


@dataclass(frozen=True)
class UploadTicket:
    """Short-lived permission to upload one archive to the blob store."""
    upload_url: str
    form_fields: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ConfirmationSuccess:
    message: str

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class ConfirmationFailure:
    message: str

    @property
    def succeeded(self) -> bool:
        return False


UploadConfirmation = Union[ConfirmationSuccess, ConfirmationFailure]


class PublishStatus(Enum):
    """Terminal status of a publish run."""
    COMPLETED = "completed"
    AUTH_EXPIRED = "auth_expired"
    FAILED = "failed"


@dataclass(frozen=True)
class PublishResult:
    """Immutable result of a publish operation."""
    status: PublishStatus
    message: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == PublishStatus.COMPLETED

    @classmethod
    def completed(cls, message: str):
        return cls(status=PublishStatus.COMPLETED, message=message)

    @classmethod
    def expired(cls, error: str):
        return cls(status=PublishStatus.AUTH_EXPIRED, error=error)

    @classmethod
    def failed(cls, error: str):
        return cls(status=PublishStatus.FAILED, error=error)


@dataclass(frozen=True)
class Credentials:
    """OAuth2 credentials as stored in the credentials cache."""
    access_token: str
    refresh_token: Optional[str] = None
    expiration: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        if self.expiration is None:
            return False
        expiration = self.expiration
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return expiration <= datetime.now(timezone.utc)

    def to_json(self) -> str:
        return json.dumps({
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiration": self.expiration.isoformat() if self.expiration else None,
        }, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credentials":
        """
        Build credentials from their stored JSON form.

        Raises:
            ValueError: If the access token is missing or the expiration
                is not an ISO-8601 timestamp.
        """
        token = data.get("accessToken")
        if not isinstance(token, str) or not token:
            raise ValueError("credentials have no accessToken")
        expiration = data.get("expiration")
        return cls(
            access_token=token,
            refresh_token=data.get("refreshToken"),
            expiration=datetime.fromisoformat(expiration) if expiration else None,
        )


@dataclass(frozen=True)
class PublishConfig:
    """Immutable configuration for publish operations."""
    server: str = DEFAULT_SERVER
    package_dir: Path = field(default_factory=Path.cwd)
    new_upload_path: str = NEW_UPLOAD_PATH
    archive_filename: str = ARCHIVE_FILENAME
    timeout: float = 60.0
    credentials_path: Optional[Path] = None

    @property
    def new_upload_url(self) -> str:
        """Ticket endpoint, resolved against the server root."""
        return self.server.rstrip("/") + "/" + self.new_upload_path.lstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> "PublishConfig":
        """
        Build config from ``PUBLISHER_*`` environment variables.

        Explicit keyword overrides that are not None win over the environment.
        """
        values: Dict[str, Any] = {}
        server = os.getenv("PUBLISHER_SERVER")
        if server:
            values["server"] = server
        credentials = os.getenv("PUBLISHER_CREDENTIALS")
        if credentials:
            values["credentials_path"] = Path(credentials).expanduser()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
