import io
from pathlib import Path
from typing import AsyncGenerator, Callable, List, Optional

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

from bgremoval.core.config import Settings
from bgremoval.core.staging import StagingArea
from bgremoval.engines.removal import RemovalBackend, RemovalRequest, RemovalResult
from bgremoval.main import create_app


class FakeBackend(RemovalBackend):
    """Records every call; returns a fixed result or raises a fixed error."""

    name = "fake"

    def __init__(
        self,
        requires_staging: bool = True,
        result: Optional[RemovalResult] = None,
        error: Optional[Exception] = None,
    ):
        self.requires_staging = requires_staging
        self.result = result or RemovalResult(content=b"\x89PNG\r\n\x1a\nfake", content_type="image/png")
        self.error = error
        self.calls: List[RemovalRequest] = []
        # Whether each staged file existed while the backend was running
        self.staged_existed: List[bool] = []

    async def remove(self, request: RemovalRequest) -> RemovalResult:
        self.calls.append(request)
        if request.staged is not None:
            self.staged_existed.append(request.staged.path.exists())
        if self.error is not None:
            raise self.error
        return self.result


def make_png(size=(50, 50), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def settings(staging_dir: Path) -> Settings:
    return Settings(
        REMOVAL_BACKEND="remote",
        REMOVE_BG_API_KEY=None,
        MAX_IMAGE_SIZE_BYTES=1024 * 1024,
        STAGING_DIR=staging_dir,
        LOG_FORMAT_JSON=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client_factory(settings: Settings, staging_dir: Path) -> Callable[..., AsyncClient]:
    """Build an AsyncClient around a fresh app with the given backend."""

    def factory(backend: RemovalBackend, raise_app_exceptions: bool = True, **overrides) -> AsyncClient:
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        app = create_app(settings=app_settings, backend=backend, staging=StagingArea(staging_dir))
        transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        return AsyncClient(transport=transport, base_url="http://test")

    return factory


@pytest.fixture
async def client(client_factory, fake_backend) -> AsyncGenerator[AsyncClient, None]:
    async with client_factory(fake_backend) as ac:
        yield ac


def mock_remote(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """httpx client whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
