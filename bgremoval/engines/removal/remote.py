"""
Remote Background Removal (remove.bg API)

Sends the raw upload to remove.bg in a single multipart call authenticated
with an API key header. remove.bg always answers with a PNG.
"""

from datetime import datetime
from typing import Optional

import httpx

from bgremoval.core.exceptions import (
    ConfigurationError,
    RemoteFailureKind,
    RemoteServiceError,
)
from bgremoval.core.logging import get_logger
from bgremoval.core.metrics import record_remote_api_call
from bgremoval.engines.removal.base import RemovalBackend
from bgremoval.engines.removal.schemas import RemovalRequest, RemovalResult

logger = get_logger(__name__)

DEFAULT_ERROR_DETAILS = "Failed to process image with Remove.bg."


def extract_error_details(response: httpx.Response) -> str:
    """
    Pull a readable message out of a remove.bg error body.

    remove.bg reports {"errors": [{"title": ..., "detail": ...}]}; anything
    else falls back to a generic message.
    """
    try:
        payload = response.json()
    except ValueError:
        logger.error("remove_bg_error_body_raw", body=response.text[:500])
        return DEFAULT_ERROR_DETAILS

    errors = payload.get("errors") if isinstance(payload, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        return first.get("title") or first.get("detail") or DEFAULT_ERROR_DETAILS
    return DEFAULT_ERROR_DETAILS


class RemoteRemoveBgBackend(RemovalBackend):
    """remove.bg HTTP API client."""

    name = "remove.bg"
    requires_staging = False

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.remove.bg/v1.0/removebg",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def describe(self) -> str:
        return "Remove.bg"

    async def aclose(self) -> None:
        await self._client.aclose()

    def _setup_failed(self, error: Exception) -> RemoteServiceError:
        logger.error("remove_bg_request_setup_failed", error=str(error), error_type=type(error).__name__)
        return RemoteServiceError(
            "Error setting up API request.",
            kind=RemoteFailureKind.SETUP,
            cause=error,
        )

    async def remove(self, request: RemovalRequest) -> RemovalResult:
        if not self.api_key:
            logger.error("remove_bg_api_key_missing")
            raise ConfigurationError("API Key for background removal service is not configured.")

        upload = request.upload
        logger.info(
            "remove_bg_starting",
            filename=upload.filename,
            resolution=request.resolution.value,
            input_size=upload.size,
        )
        start_time = datetime.now()

        try:
            outgoing = self._client.build_request(
                "POST",
                self.api_url,
                files={"image_file": (upload.filename, upload.content, upload.content_type)},
                data={"size": request.resolution.value},
                headers={"X-Api-Key": self.api_key},
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError) as e:
            # Bad URL, non-ASCII key, malformed form fields
            raise self._setup_failed(e) from e

        try:
            response = await self._client.send(outgoing)
        except (httpx.UnsupportedProtocol, httpx.LocalProtocolError) as e:
            raise self._setup_failed(e) from e
        except httpx.HTTPError as e:
            # Timeouts, connection and protocol errors: no usable response
            record_remote_api_call(status="unreachable", http_status=0)
            logger.error("remove_bg_no_response", error=str(e), error_type=type(e).__name__)
            raise RemoteServiceError(
                "No response from background removal service.",
                kind=RemoteFailureKind.UNREACHABLE,
                cause=e,
            ) from e

        duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)

        if not response.is_success:
            record_remote_api_call(status="error", http_status=response.status_code)
            details = extract_error_details(response)
            logger.error(
                "remove_bg_failed",
                http_status=response.status_code,
                details=details,
                duration_ms=duration_ms,
            )
            raise RemoteServiceError(
                "Failed to remove background via external API.",
                kind=RemoteFailureKind.RESPONSE,
                http_status=response.status_code,
                details=details,
            )

        record_remote_api_call(status="success", http_status=response.status_code)
        logger.info(
            "remove_bg_completed",
            duration_ms=duration_ms,
            output_size=len(response.content),
        )
        return RemovalResult(content=response.content, content_type="image/png")
