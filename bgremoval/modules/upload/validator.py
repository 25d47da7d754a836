"""
Upload Validator

Checks presence, declared MIME type and size of an uploaded image before any
processing starts. The declared MIME type governs acceptance, never the
filename extension.
"""

import re
from typing import Iterable, Optional

from fastapi import UploadFile

from bgremoval.core.exceptions import ValidationError
from bgremoval.core.logging import get_logger
from bgremoval.modules.upload.models import Upload

logger = get_logger(__name__)

DEFAULT_FILENAME = "upload"

_SEPARATORS = re.compile(r"[\\/]")


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a client-supplied filename to its base name.

    Directory components (either separator style) and NUL bytes are dropped so
    the name is safe to embed in a staged path.
    """
    if not filename:
        return DEFAULT_FILENAME
    base = _SEPARATORS.split(filename.replace("\x00", ""))[-1].strip()
    if base in ("", ".", ".."):
        return DEFAULT_FILENAME
    return base


async def validate_upload(
    file: Optional[UploadFile],
    max_bytes: int,
    allowed_types: Iterable[str],
) -> Upload:
    """
    Validate an uploaded file and buffer its bytes.

    Raises:
        ValidationError: missing file, disallowed content type, or oversize body.
    """
    if file is None:
        raise ValidationError("No image file uploaded.")

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type not in set(allowed_types):
        logger.info("upload_type_rejected", content_type=content_type, filename=file.filename)
        raise ValidationError("Invalid file type. Only JPEG, PNG, and WEBP images are allowed.")

    # The multipart parser has already spooled the part; read at most one byte
    # past the ceiling so an oversize body is never copied into memory
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        max_mb = max_bytes / (1024 * 1024)
        logger.info("upload_size_rejected", max_bytes=max_bytes, filename=file.filename)
        raise ValidationError(f"File too large. Maximum size is {max_mb:.0f}MB.")

    return Upload(
        content=content,
        filename=sanitize_filename(file.filename),
        content_type=content_type,
        size=len(content),
    )
