"""Application use cases for publisher workflows."""

from .publish import PublishPackageUseCase

__all__ = [
    "PublishPackageUseCase",
]
