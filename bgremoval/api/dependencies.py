"""
FastAPI Dependencies

Settings, the removal backend and the staging area are built once at startup
and kept on app.state; these accessors hand them to route handlers.
"""

from fastapi import Request

from bgremoval.core.config import Settings
from bgremoval.core.staging import StagingArea
from bgremoval.engines.removal import RemovalBackend


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backend(request: Request) -> RemovalBackend:
    return request.app.state.backend


def get_staging(request: Request) -> StagingArea:
    return request.app.state.staging
