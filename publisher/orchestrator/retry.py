"""Authorization retry - re-runs a publish attempt once after token expiry."""
import logging
import sys
from typing import Callable, Optional

from ..errors import AuthExpired
from ..models import PublishResult
from ..protocols import IAuthorization
from .core import UploadOrchestrator
from .models import StateCallback

logger = logging.getLogger(__name__)

RENEWAL_NOTICE = (
    "Authorization to upload packages has expired and can't be "
    "automatically refreshed."
)


def _print_notice(message: str) -> None:
    print(message, file=sys.stderr)


class AuthRetryWrapper:
    """
    Runs the orchestrator with a freshly authorized client.

    An ``AuthExpired`` from the first attempt prints a notice and starts the
    whole attempt again with a new client. A second expiry, and every other
    error, reaches the caller unchanged.
    """

    def __init__(
        self,
        authorization: IAuthorization,
        orchestrator: UploadOrchestrator,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self._authorization = authorization
        self._orchestrator = orchestrator
        self._notify = notify or _print_notice

    async def _attempt(self, progress_callback: StateCallback) -> PublishResult:
        async def operation(client) -> PublishResult:
            return await self._orchestrator.run(client, progress_callback)

        return await self._authorization.with_client(operation)

    async def run(self, progress_callback: StateCallback = None) -> PublishResult:
        try:
            return await self._attempt(progress_callback)
        except AuthExpired as exc:
            logger.warning("Authorization expired, retrying once: %s", exc)
            self._notify(RENEWAL_NOTICE)

        return await self._attempt(progress_callback)
