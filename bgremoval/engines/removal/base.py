"""
Background Removal Backend Interface

One capability with interchangeable implementations. Exactly one backend is
built at startup and shared by every request.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from bgremoval.core.logging import get_logger
from bgremoval.engines.removal.schemas import RemovalRequest, RemovalResult

logger = get_logger(__name__)

# (stage-name, amount-done, amount-total)
ProgressSink = Callable[[str, int, int], None]


def log_progress(stage: str, done: int, total: int) -> None:
    """Default progress sink: debug log only."""
    logger.debug("removal_progress", progress_stage=stage, done=done, total=total)


def emit_progress(sink: Optional[ProgressSink], stage: str, done: int, total: int) -> None:
    """
    Deliver a progress event without letting the sink affect the outcome.

    Sink errors are logged and dropped.
    """
    if sink is None:
        return
    try:
        sink(stage, done, total)
    except Exception as e:
        logger.warning("progress_sink_failed", progress_stage=stage, error=str(e))


class RemovalBackend(ABC):
    """Interface for background removal - remove background, return bytes + type."""

    name: str = "backend"

    # Backends that read a file reference need the upload staged on disk first
    requires_staging: bool = False

    @abstractmethod
    async def remove(self, request: RemovalRequest) -> RemovalResult:
        """
        Remove the background from one image.

        Args:
            request: Upload, optional staged file and resolution tier

        Returns:
            Processed image bytes and their content type
        """
        pass

    def describe(self) -> str:
        """Human readable backend label for banners and logs."""
        return self.name

    async def aclose(self) -> None:
        """Release backend resources at shutdown."""
        return None
