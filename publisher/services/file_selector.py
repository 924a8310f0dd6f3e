"""File selection for the package payload."""
import asyncio
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List

from ..errors import FileSystemError
from ..models import FileList

logger = logging.getLogger(__name__)

RESERVED_NAME = "packages"


def git_available() -> bool:
    """Check whether the git executable is on PATH."""
    return shutil.which("git") is not None


class FileSelector:
    """
    Decides which files under a package root are published.

    Inside a git checkout (with git installed) the tracked and untracked
    but not ignored files are used, so .gitignore is respected. Otherwise
    every regular file is collected.
    """

    def __init__(self, root: Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def uses_git(self) -> bool:
        return (self._root / ".git").is_dir() and git_available()

    async def select(self) -> FileList:
        """
        Collect the package files.

        Returns:
            FileList relative to the package root

        Raises:
            FileSystemError: If the root cannot be read or git fails
        """
        return await asyncio.to_thread(self._select)

    def _select(self) -> FileList:
        if not self._root.is_dir():
            raise FileSystemError(f"package directory does not exist: {self._root}")

        if self.uses_git():
            logger.debug("Listing files with git in %s", self._root)
            candidates = [
                entry for entry in self._git_ls_files()
                if (self._root / entry).is_file()
            ]
        else:
            logger.debug("Walking %s for package files", self._root)
            candidates = self._walk()

        entries = tuple(dict.fromkeys(filter_reserved(candidates)))
        logger.info("Selected %d files from %s", len(entries), self._root)
        return FileList(root=self._root, entries=entries)

    def _git_ls_files(self) -> List[str]:
        command = ["git", "ls-files", "--cached", "--others", "--exclude-standard", "-z"]
        try:
            result = subprocess.run(
                command,
                cwd=str(self._root),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise FileSystemError(f"could not run git: {exc}") from exc

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise FileSystemError(
                f"git ls-files failed with exit code {result.returncode}: {stderr}"
            )

        output = result.stdout.decode("utf-8", errors="surrogateescape")
        return [entry for entry in output.split("\0") if entry]

    def _walk(self) -> List[str]:
        files: List[str] = []

        def _raise(exc: OSError) -> None:
            raise FileSystemError(f"could not read {exc.filename}: {exc.strerror}") from exc

        for dirpath, dirnames, filenames in os.walk(self._root, onerror=_raise):
            current = Path(dirpath)
            if current == self._root:
                # Top-level packages directory is never part of the payload
                dirnames[:] = [name for name in dirnames if name != RESERVED_NAME]
            dirnames.sort()
            for name in sorted(filenames):
                path = current / name
                if path.is_file():
                    files.append(path.relative_to(self._root).as_posix())
        return files


def _is_reserved(entry: str) -> bool:
    parts = entry.strip("/").split("/")
    return parts[0] == RESERVED_NAME or parts[-1] == RESERVED_NAME


def filter_reserved(entries: Iterable[str]) -> List[str]:
    """Drop the top-level ``packages`` tree and anything named ``packages``."""
    return [entry for entry in entries if not _is_reserved(entry)]
