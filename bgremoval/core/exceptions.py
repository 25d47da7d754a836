"""
Global Exception Handling

Error taxonomy for the removal pipeline and the FastAPI handlers that turn
every failure into one structured JSON error response.
"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bgremoval.core.logging import get_logger, request_id_var

logger = get_logger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class BackgroundRemovalError(Exception):
    """Base exception for the background removal service."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        details: Optional[str] = None,
        name: Optional[str] = None,
        cause: Optional[Any] = None,
    ):
        self.message = message
        self.code = code
        self.details = details
        self.name = name
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """JSON error body; optional fields are only present when set."""
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        if self.name is not None:
            body["name"] = self.name
        if self.cause is not None:
            body["cause"] = str(self.cause)
        return body


class ValidationError(BackgroundRemovalError):
    """Raised when the upload is missing, of a disallowed type, or too large."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=400, **kwargs)


class ConfigurationError(BackgroundRemovalError):
    """Raised when a required credential is not configured."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=500, **kwargs)


class StagingError(BackgroundRemovalError):
    """Raised when an upload cannot be written to the scratch directory."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=500, **kwargs)


class RemovalError(BackgroundRemovalError):
    """Raised when the in-process model fails; name and cause are forwarded verbatim."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=500, **kwargs)


class RemoteFailureKind(str, Enum):
    RESPONSE = "response"        # remote answered with a non-success status
    UNREACHABLE = "unreachable"  # request sent, no response received
    SETUP = "setup"              # request could not be built or sent


class RemoteServiceError(BackgroundRemovalError):
    """Raised when the remote background removal API call fails."""

    def __init__(
        self,
        message: str,
        kind: RemoteFailureKind,
        http_status: Optional[int] = None,
        **kwargs
    ):
        # Only a real remote error answer carries its own status through to the client
        if kind is RemoteFailureKind.RESPONSE and http_status and http_status >= 400:
            code = http_status
        else:
            code = 500
        super().__init__(message, code=code, **kwargs)
        self.kind = kind
        self.http_status = http_status


# =============================================================================
# Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(BackgroundRemovalError)
    async def removal_exception_handler(request: Request, exc: BackgroundRemovalError):
        log = logger.warning if exc.code < 500 else logger.error
        log(
            "request_failed",
            error=exc.message,
            code=exc.code,
            error_type=type(exc).__name__,
            details=exc.details,
            path=str(request.url.path),
        )

        return JSONResponse(status_code=exc.code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def upload_shape_exception_handler(request: Request, exc: RequestValidationError):
        # Malformed multipart bodies and similar form parsing problems
        errors = exc.errors()
        reason = errors[0].get("msg", "invalid request") if errors else "invalid request"
        logger.warning("upload_rejected", error=reason, path=str(request.url.path))

        return JSONResponse(
            status_code=400,
            content={"error": f"File upload error: {reason}"}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 400:
            message = f"File upload error: {exc.detail}"
        else:
            message = str(exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            request_id=request_id_var.get(),
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected server error occurred."}
        )
