"""
Temporary Staging Area

Writes validated uploads to uniquely named files in a scratch directory so a
backend can consume a file reference, and guarantees those files are removed
before the request that created them finishes.
"""

import os
import asyncio
import secrets
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from pydantic import BaseModel, ConfigDict

from bgremoval.core.exceptions import StagingError
from bgremoval.core.logging import get_logger
from bgremoval.core.metrics import staged_files_active
from bgremoval.modules.upload.models import Upload

logger = get_logger(__name__)

TOKEN_BYTES = 8


class StagedFile(BaseModel):
    """An on-disk copy of an upload, owned by exactly one request."""
    model_config = ConfigDict(frozen=True)

    path: Path

    @property
    def url(self) -> str:
        """Equivalent file:// URL for backends that take URLs."""
        return self.path.resolve().as_uri()


class StagingArea:
    """Scratch directory for per-request staged uploads."""

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())
        # Paths staged here and not yet cleaned up
        self._active: set = set()

    def _unique_path(self, filename: str) -> Path:
        """Random hex token prefix keeps concurrent requests apart."""
        return self.directory / f"{secrets.token_hex(TOKEN_BYTES)}-{filename}"

    def _write(self, path: Path, data: bytes) -> None:
        # "xb" fails instead of overwriting, so a path is never reused
        try:
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError:
            # Someone else's file
            raise
        except OSError:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            raise

    async def _discard_after(self, write: asyncio.Future, path: Path) -> None:
        """Wait for an abandoned write to finish, then remove what it wrote."""
        try:
            await write
        except OSError:
            return
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            pass
        logger.debug("abandoned_stage_removed", path=str(path))

    async def stage(self, upload: Upload) -> StagedFile:
        """
        Persist the upload bytes to a fresh path.

        If the caller is cancelled mid-write, the file is removed once the
        worker thread finishes and the cancellation is re-raised.

        Raises:
            StagingError: the file could not be written completely.
        """
        path = self._unique_path(upload.filename)
        write = asyncio.ensure_future(asyncio.to_thread(self._write, path, upload.content))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted
            await asyncio.shield(self._discard_after(write, path))
            raise
        except OSError as e:
            logger.error("staging_failed", path=str(path), error=str(e), errno=e.errno)
            raise StagingError(
                "Failed to stage uploaded image.",
                details=e.strerror or str(e),
                name=type(e).__name__,
                cause=e,
            ) from e

        self._active.add(path)
        staged_files_active.inc()
        logger.debug("file_staged", path=str(path), size=upload.size)
        return StagedFile(path=path)

    def _release(self, path: Path) -> None:
        if path in self._active:
            self._active.discard(path)
            staged_files_active.dec()

    async def cleanup(self, staged: StagedFile) -> bool:
        """
        Remove a staged file.

        Returns True if a file was deleted, False if it was already gone or
        could not be deleted. Failures are logged, never raised.
        """
        try:
            await asyncio.to_thread(os.remove, staged.path)
        except FileNotFoundError:
            self._release(staged.path)
            return False
        except OSError as e:
            logger.error("staged_file_cleanup_failed", path=str(staged.path), error=str(e))
            return False

        self._release(staged.path)
        logger.debug("staged_file_removed", path=str(staged.path))
        return True

    @asynccontextmanager
    async def staged(self, upload: Upload) -> AsyncIterator[StagedFile]:
        """
        Stage an upload for the duration of a block.

        Usage:
            async with staging.staged(upload) as staged_file:
                await backend.remove(...)
        """
        staged_file = await self.stage(upload)
        try:
            yield staged_file
        finally:
            # Shielded so a cancelled request still removes its file
            await asyncio.shield(self.cleanup(staged_file))
