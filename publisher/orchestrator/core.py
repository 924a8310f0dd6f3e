"""Core orchestrator - drives the ticket -> upload -> confirm protocol."""
import asyncio
import logging
from typing import Optional, Tuple

import httpx

from ..errors import UploadFailed, ServerError
from ..models import PublishConfig, PublishResult, UploadTicket
from ..protocols import IArchiveBuilder, IFileSelector, IHTTPClient
from ..services.archive import ArchiveBuilder
from ..services.file_selector import FileSelector
from ..services.response_parser import ResponseParser
from .models import PublishState, StateCallback

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Publishes one package through the registry's ticketed upload protocol.

    1. Request an upload ticket while the archive is built
    2. POST the archive to the blob store named by the ticket
    3. Follow the blob store's ``location`` header to the confirmation

    One ``run`` is one attempt; nothing is kept between attempts, so a run
    can be repeated from scratch with a new client.

    Usage:
        orchestrator = UploadOrchestrator(config)
        result = await authorization.with_client(orchestrator.run)
    """

    def __init__(
        self,
        config: Optional[PublishConfig] = None,
        file_selector: Optional[IFileSelector] = None,
        archive_builder: Optional[IArchiveBuilder] = None,
    ):
        self._config = config or PublishConfig()
        self._file_selector = file_selector or FileSelector(self._config.package_dir)
        self._archive_builder = archive_builder or ArchiveBuilder()

    @property
    def config(self) -> PublishConfig:
        return self._config

    async def run(self, client: IHTTPClient, progress_callback: StateCallback = None) -> PublishResult:
        """
        Run one publish attempt.

        Returns:
            PublishResult.completed with the server's success message

        Raises:
            ServerError, InvalidServerResponse, UploadFailed, FileSystemError,
            AuthExpired: Propagated unchanged to the caller
        """
        state = PublishState.START

        def advance(new_state: PublishState) -> None:
            nonlocal state
            logger.debug("Publish state %s -> %s", state.value, new_state.value)
            state = new_state
            if progress_callback:
                progress_callback(new_state)

        try:
            advance(PublishState.TICKET_REQUESTED)
            ticket_response, package_bytes = await self._request_ticket_and_archive(client)
            ticket = self._parse_ticket(ticket_response)
            advance(PublishState.ARCHIVE_READY)

            upload_response = await self._upload(client, ticket, package_bytes)
            location = self._confirmation_location(upload_response, ticket)
            advance(PublishState.UPLOADED)

            message = await self._confirm(client, location)
            advance(PublishState.CONFIRMED)
        except Exception:
            advance(PublishState.FAILED)
            raise

        logger.info("Package published: %s", message)
        return PublishResult.completed(message)

    async def _build_archive(self) -> bytes:
        file_list = await self._file_selector.select()
        return await self._archive_builder.build(file_list)

    async def _request_ticket_and_archive(self, client: IHTTPClient) -> Tuple[httpx.Response, bytes]:
        """Fetch the ticket and build the archive concurrently, fail-fast."""
        ticket_task = asyncio.create_task(client.get(self._config.new_upload_url))
        archive_task = asyncio.create_task(self._build_archive())

        try:
            ticket_response, package_bytes = await asyncio.gather(ticket_task, archive_task)
            return ticket_response, package_bytes
        except Exception:
            for task in (ticket_task, archive_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(ticket_task, archive_task, return_exceptions=True)
            raise

    def _parse_ticket(self, response: httpx.Response) -> UploadTicket:
        parser = ResponseParser.from_response(response)
        payload = parser.parse()
        if response.status_code != 200:
            parser.extract_error(payload)
        ticket = parser.decode_ticket(payload)
        logger.debug(
            "Upload ticket: url=%s fields=%s", ticket.upload_url, sorted(ticket.form_fields)
        )
        return ticket

    async def _upload(self, client: IHTTPClient, ticket: UploadTicket, package_bytes: bytes) -> httpx.Response:
        logger.info("Uploading %d bytes to %s", len(package_bytes), ticket.upload_url)
        files = {
            "file": (self._config.archive_filename, package_bytes, "application/octet-stream"),
        }
        return await client.post(
            ticket.upload_url,
            data=dict(ticket.form_fields),
            files=files,
            follow_redirects=False,
        )

    @staticmethod
    def _confirmation_location(response: httpx.Response, ticket: UploadTicket) -> str:
        location = response.headers.get("location")
        if location is None:
            # The blob store may describe the failure in an XML body; it is
            # kept for diagnostics but not parsed.
            body = response.text
            logger.error(
                "Upload returned status %s without location header: %s",
                response.status_code,
                body,
            )
            raise UploadFailed(body=body)
        return str(httpx.URL(ticket.upload_url).join(location))

    async def _confirm(self, client: IHTTPClient, location: str) -> str:
        response = await client.get(location)
        parser = ResponseParser.from_response(response)
        confirmation = parser.decode_confirmation(parser.parse())
        if not confirmation.succeeded:
            raise ServerError(confirmation.message)
        return confirmation.message
