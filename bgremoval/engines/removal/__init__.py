"""
Background Removal Engines

Two interchangeable backends behind one interface:
1. rembg - in-process model reading a staged file
2. remove.bg - remote HTTP API
"""

from bgremoval.core.config import Settings
from bgremoval.engines.removal.base import ProgressSink, RemovalBackend
from bgremoval.engines.removal.local import LocalRembgBackend
from bgremoval.engines.removal.remote import RemoteRemoveBgBackend
from bgremoval.engines.removal.schemas import (
    DEFAULT_CONTENT_TYPE,
    RemovalRequest,
    RemovalResult,
    ResolutionTier,
)


def build_backend(settings: Settings) -> RemovalBackend:
    """Build the one backend selected by REMOVAL_BACKEND."""
    if settings.REMOVAL_BACKEND == "local":
        return LocalRembgBackend(model_name=settings.REMBG_MODEL)
    return RemoteRemoveBgBackend(
        api_key=settings.REMOVE_BG_API_KEY,
        api_url=settings.REMOVE_BG_API_URL,
        timeout=settings.REMOVE_BG_TIMEOUT_SECONDS,
    )


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "LocalRembgBackend",
    "ProgressSink",
    "RemoteRemoveBgBackend",
    "RemovalBackend",
    "RemovalRequest",
    "RemovalResult",
    "ResolutionTier",
    "build_backend",
]
