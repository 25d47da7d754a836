import httpx
import pytest

from bgremoval.core.exceptions import (
    ConfigurationError,
    RemoteFailureKind,
    RemoteServiceError,
)
from bgremoval.engines.removal import RemoteRemoveBgBackend, RemovalRequest, ResolutionTier
from bgremoval.engines.removal.remote import DEFAULT_ERROR_DETAILS, extract_error_details
from bgremoval.modules.upload.models import Upload

from conftest import mock_remote

API_URL = "https://api.remove.bg/v1.0/removebg"


def make_request(resolution: ResolutionTier = ResolutionTier.PREVIEW) -> RemovalRequest:
    upload = Upload(content=b"png-bytes", filename="cat.png", content_type="image/png", size=9)
    return RemovalRequest(upload=upload, resolution=resolution)


@pytest.mark.asyncio
async def test_success_sends_multipart_with_key_and_size():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"\x89PNG-result", headers={"Content-Type": "image/png"})

    backend = RemoteRemoveBgBackend(api_key="secret", api_url=API_URL, client=mock_remote(handler))

    result = await backend.remove(make_request())

    assert result.content == b"\x89PNG-result"
    assert result.content_type == "image/png"
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == API_URL
    assert request.headers["X-Api-Key"] == "secret"
    body = request.read()
    assert b'name="image_file"; filename="cat.png"' in body
    assert b"png-bytes" in body
    assert b'name="size"\r\n\r\npreview' in body


@pytest.mark.asyncio
async def test_full_tier_requests_auto_size():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.read())
        return httpx.Response(200, content=b"ok")

    backend = RemoteRemoveBgBackend(api_key="secret", client=mock_remote(handler))

    await backend.remove(make_request(ResolutionTier.FULL))

    assert b'name="size"\r\n\r\nauto' in bodies[0]


@pytest.mark.asyncio
async def test_missing_key_fails_before_network_call():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    backend = RemoteRemoveBgBackend(api_key=None, client=mock_remote(handler))

    with pytest.raises(ConfigurationError) as exc_info:
        await backend.remove(make_request())

    assert exc_info.value.code == 500
    assert "not configured" in exc_info.value.message
    assert calls == []


@pytest.mark.asyncio
async def test_remote_error_status_and_title_propagate():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"errors": [{"title": "Insufficient credits"}]})

    backend = RemoteRemoveBgBackend(api_key="secret", client=mock_remote(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await backend.remove(make_request())

    error = exc_info.value
    assert error.kind is RemoteFailureKind.RESPONSE
    assert error.code == 403
    assert error.http_status == 403
    assert error.details == "Insufficient credits"
    assert error.message == "Failed to remove background via external API."


@pytest.mark.asyncio
async def test_remote_error_with_unparseable_body_uses_generic_details():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    backend = RemoteRemoveBgBackend(api_key="secret", client=mock_remote(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await backend.remove(make_request())

    assert exc_info.value.code == 502
    assert exc_info.value.details == DEFAULT_ERROR_DETAILS


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.RemoteProtocolError("server hung up"),
    ],
)
async def test_no_response_is_unreachable(error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    backend = RemoteRemoveBgBackend(api_key="secret", client=mock_remote(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await backend.remove(make_request())

    assert exc_info.value.kind is RemoteFailureKind.UNREACHABLE
    assert exc_info.value.code == 500
    assert exc_info.value.message == "No response from background removal service."


@pytest.mark.asyncio
async def test_request_setup_failure_is_distinct():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'.")

    backend = RemoteRemoveBgBackend(api_key="secret", client=mock_remote(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await backend.remove(make_request())

    assert exc_info.value.kind is RemoteFailureKind.SETUP
    assert exc_info.value.code == 500
    assert exc_info.value.message == "Error setting up API request."


@pytest.mark.asyncio
async def test_non_ascii_api_key_is_setup_failure():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    backend = RemoteRemoveBgBackend(api_key="cl\u00e9", client=mock_remote(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await backend.remove(make_request())

    assert exc_info.value.kind is RemoteFailureKind.SETUP
    assert exc_info.value.code == 500
    assert exc_info.value.message == "Error setting up API request."
    assert calls == []


@pytest.mark.asyncio
async def test_errors_object_body_keeps_remote_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"errors": {"title": "Insufficient credits"}})

    backend = RemoteRemoveBgBackend(api_key="secret", client=mock_remote(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await backend.remove(make_request())

    assert exc_info.value.code == 403
    assert exc_info.value.details == DEFAULT_ERROR_DETAILS


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"errors": [{"title": "Insufficient credits"}]}, "Insufficient credits"),
        ({"errors": [{"detail": "File too small"}]}, "File too small"),
        ({"errors": []}, DEFAULT_ERROR_DETAILS),
        ({"errors": {"title": "Insufficient credits"}}, DEFAULT_ERROR_DETAILS),
        ({"errors": "Insufficient credits"}, DEFAULT_ERROR_DETAILS),
        ({"message": "nope"}, DEFAULT_ERROR_DETAILS),
        (["unexpected"], DEFAULT_ERROR_DETAILS),
    ],
)
def test_extract_error_details(payload, expected):
    assert extract_error_details(httpx.Response(400, json=payload)) == expected
