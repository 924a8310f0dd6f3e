"""Archive building - gzip-compressed tarball of the package files."""
import asyncio
import io
import logging
import tarfile

from ..errors import FileSystemError
from ..models import FileList

logger = logging.getLogger(__name__)


class ArchiveBuilder:
    """Builds the package tarball in memory."""

    async def build(self, file_list: FileList) -> bytes:
        """
        Archive exactly the files of ``file_list``.

        Compression runs in a thread pool to avoid blocking the event loop.

        Raises:
            FileSystemError: If a file cannot be read
        """
        return await asyncio.to_thread(self._build, file_list)

    def _build(self, file_list: FileList) -> bytes:
        buffer = io.BytesIO()
        try:
            with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
                for entry in file_list:
                    tar.add(str(file_list.root / entry), arcname=entry, recursive=False)
        except (OSError, tarfile.TarError) as exc:
            raise FileSystemError(f"could not archive package: {exc}") from exc

        data = buffer.getvalue()
        logger.info("Built archive: %d files, %d bytes", len(file_list), len(data))
        return data
