"""Services for publisher module."""
from .archive import ArchiveBuilder
from .authorization import Authorization, AuthorizedClient, CredentialsCache
from .file_selector import FileSelector
from .response_parser import FieldDecode, ResponseParser

__all__ = [
    "ArchiveBuilder",
    "Authorization",
    "AuthorizedClient",
    "CredentialsCache",
    "FileSelector",
    "FieldDecode",
    "ResponseParser",
]
