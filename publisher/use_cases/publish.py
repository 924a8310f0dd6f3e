"""Use case for publishing a package directory."""
from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from publisher.errors import AuthExpired, PublishError
from publisher.models import PublishConfig, PublishResult
from publisher.orchestrator.core import UploadOrchestrator
from publisher.orchestrator.models import StateCallback
from publisher.orchestrator.retry import AuthRetryWrapper
from publisher.protocols import IArchiveBuilder, IAuthorization, IFileSelector

logger = logging.getLogger(__name__)


def _describe_exception(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return f"{type(exc).__name__}: {repr(exc)}"


class PublishPackageUseCase:
    """Execute the publish workflow and turn its outcome into a result."""

    def __init__(
        self,
        config: PublishConfig,
        authorization: IAuthorization,
        notify: Optional[Callable[[str], None]] = None,
        file_selector: Optional[IFileSelector] = None,
        archive_builder: Optional[IArchiveBuilder] = None,
    ):
        self._config = config
        self._orchestrator = UploadOrchestrator(config, file_selector, archive_builder)
        self._retry = AuthRetryWrapper(authorization, self._orchestrator, notify)

    async def execute(self, progress_callback: StateCallback = None) -> PublishResult:
        logger.debug(
            "Publish started: package_dir=%s server=%s",
            self._config.package_dir,
            self._config.server,
        )
        try:
            return await self._retry.run(progress_callback)
        except AuthExpired as exc:
            error_msg = _describe_exception(exc)
            logger.error("Authorization expired again after retry: %s", error_msg)
            return PublishResult.expired(error_msg)
        except (PublishError, httpx.HTTPError) as exc:
            error_msg = _describe_exception(exc)
            logger.error(
                "Publish of %s failed: %s",
                self._config.package_dir,
                error_msg,
                exc_info=True,
            )
            return PublishResult.failed(error_msg)
