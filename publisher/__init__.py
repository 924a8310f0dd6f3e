"""
Publisher - uploads a package directory to a package registry.

Pipeline:
- FileSelector: choose the files to publish (git-aware)
- ArchiveBuilder: tar.gz the selection in memory
- UploadOrchestrator: ticket -> blob store upload -> confirmation
- AuthRetryWrapper: one transparent retry when authorization expires

Usage:
    from publisher import Authorization, CredentialsCache, PublishConfig, PublishPackageUseCase

    config = PublishConfig(server="https://pub.dartlang.org", package_dir=Path("."))
    authorization = Authorization(CredentialsCache())
    result = await PublishPackageUseCase(config, authorization).execute()
    print(result.message if result.success else result.error)
"""
from .errors import (
    AuthExpired,
    AuthorizationRequired,
    FileSystemError,
    InvalidServerResponse,
    PublishError,
    ServerError,
    UploadFailed,
)
from .models import (
    ConfirmationFailure,
    ConfirmationSuccess,
    Credentials,
    FileList,
    PublishConfig,
    PublishResult,
    PublishStatus,
    UploadTicket,
)
from .orchestrator import AuthRetryWrapper, PublishState, UploadOrchestrator
from .services import (
    ArchiveBuilder,
    Authorization,
    CredentialsCache,
    FileSelector,
    ResponseParser,
)
from .use_cases import PublishPackageUseCase

__version__ = "0.1.0"
__all__ = [
    # Main
    "PublishPackageUseCase",
    "UploadOrchestrator",
    "AuthRetryWrapper",
    "PublishState",
    # Models
    "ConfirmationFailure",
    "ConfirmationSuccess",
    "Credentials",
    "FileList",
    "PublishConfig",
    "PublishResult",
    "PublishStatus",
    "UploadTicket",
    # Errors
    "AuthExpired",
    "AuthorizationRequired",
    "FileSystemError",
    "InvalidServerResponse",
    "PublishError",
    "ServerError",
    "UploadFailed",
    # Services
    "ArchiveBuilder",
    "Authorization",
    "CredentialsCache",
    "FileSelector",
    "ResponseParser",
]
