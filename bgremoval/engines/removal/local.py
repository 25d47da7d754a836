"""
In-process Background Removal (rembg)

Runs the rembg model inside the service process. The model reads the staged
upload from disk; inference runs in a worker thread so the event loop keeps
serving other requests.
"""

import asyncio
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from bgremoval.core.exceptions import RemovalError
from bgremoval.core.logging import get_logger
from bgremoval.engines.removal.base import (
    ProgressSink,
    RemovalBackend,
    emit_progress,
    log_progress,
)
from bgremoval.engines.removal.schemas import RemovalRequest, RemovalResult

logger = get_logger(__name__)

STAGE_FETCH = "fetch:model"
STAGE_COMPUTE = "compute:inference"


class LocalRembgBackend(RemovalBackend):
    """rembg model, loaded once per process and shared across requests."""

    name = "rembg"
    requires_staging = True

    def __init__(self, model_name: str = "u2net", progress: Optional[ProgressSink] = log_progress):
        self.model_name = model_name
        self.progress = progress
        self._session: Any = None
        self._lock = threading.Lock()

    def describe(self) -> str:
        return f"rembg ({self.model_name})"

    def _get_session(self) -> Any:
        """Create the rembg session on first use (downloads the model if needed)."""
        if self._session is not None:
            return self._session

        with self._lock:
            if self._session is None:
                # Lazy import keeps startup fast when the model is never used
                from rembg import new_session

                emit_progress(self.progress, STAGE_FETCH, 0, 1)
                start_time = datetime.now()
                self._session = new_session(self.model_name)
                load_ms = int((datetime.now() - start_time).total_seconds() * 1000)
                emit_progress(self.progress, STAGE_FETCH, 1, 1)
                logger.info("rembg_model_loaded", model=self.model_name, load_ms=load_ms)
        return self._session

    def _sync_remove(self, path: Path) -> bytes:
        from rembg import remove

        session = self._get_session()
        data = path.read_bytes()

        emit_progress(self.progress, STAGE_COMPUTE, 0, 1)
        output = remove(data, session=session)
        emit_progress(self.progress, STAGE_COMPUTE, 1, 1)
        return output

    async def warm(self) -> bool:
        """Load the model ahead of the first request."""
        try:
            await asyncio.to_thread(self._get_session)
            return True
        except Exception as e:
            logger.warning("rembg_preload_failed", model=self.model_name, error=str(e))
            return False

    async def remove(self, request: RemovalRequest) -> RemovalResult:
        if request.staged is None:
            raise RemovalError(
                "Failed to remove background.",
                details="No staged file was provided to the in-process model.",
            )

        logger.info(
            "rembg_starting",
            model=self.model_name,
            filename=request.upload.filename,
            input_size=request.upload.size,
        )

        try:
            output = await asyncio.to_thread(self._sync_remove, request.staged.path)
        except Exception as e:
            logger.error("rembg_failed", error=str(e), error_type=type(e).__name__)
            raise RemovalError(
                "Failed to remove background.",
                details=str(e),
                name=type(e).__name__,
                cause=e.__cause__,
            ) from e

        logger.info("rembg_completed", output_size=len(output))
        return RemovalResult(content=output, content_type="image/png")
