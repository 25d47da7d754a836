"""
Background Removal Endpoint

POST /remove-background - multipart upload (field "image"):
1. Validate the upload (type, size)
2. Stage it on disk when the backend reads files
3. Invoke the backend once
4. Return the processed image; the staged file is always removed
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from bgremoval.api.dependencies import get_backend, get_settings, get_staging
from bgremoval.api.responses import image_response
from bgremoval.core.config import Settings
from bgremoval.core.exceptions import BackgroundRemovalError
from bgremoval.core.logging import get_logger, LogContext
from bgremoval.core.metrics import record_removal_outcome, track_removal_latency
from bgremoval.core.staging import StagingArea
from bgremoval.engines.removal import (
    RemovalBackend,
    RemovalRequest,
    RemovalResult,
    ResolutionTier,
)
from bgremoval.modules.upload import Upload, validate_upload

logger = get_logger(__name__)
router = APIRouter()


async def _invoke(
    backend: RemovalBackend,
    staging: StagingArea,
    upload: Upload,
    resolution: ResolutionTier,
    ctx: LogContext,
) -> RemovalResult:
    """Run the backend once, staging the upload first if the backend needs a file."""
    with track_removal_latency(backend.name):
        if not backend.requires_staging:
            ctx.set_stage("invoke")
            return await backend.remove(RemovalRequest(upload=upload, resolution=resolution))

        ctx.set_stage("stage")
        async with staging.staged(upload) as staged:
            ctx.set_stage("invoke")
            return await backend.remove(
                RemovalRequest(upload=upload, staged=staged, resolution=resolution)
            )


@router.post("/remove-background")
async def remove_background(
    image: Optional[UploadFile] = File(None),
    resolution: Optional[str] = Query(None, description='"full" for full resolution, preview otherwise'),
    settings: Settings = Depends(get_settings),
    backend: RemovalBackend = Depends(get_backend),
    staging: StagingArea = Depends(get_staging),
):
    """
    Remove the background from an uploaded image.

    Returns the processed image inline. Upload problems answer 400; backend,
    configuration and staging failures answer 500 (or the remote API's own
    status when it rejected the image).
    """
    with LogContext(stage="validate") as ctx:
        upload = await validate_upload(
            image,
            max_bytes=settings.MAX_IMAGE_SIZE_BYTES,
            allowed_types=settings.allowed_content_types,
        )
        tier = ResolutionTier.from_query(resolution)

        logger.info(
            "removal_request_received",
            filename=upload.filename,
            content_type=upload.content_type,
            size=upload.size,
            resolution=tier.value,
            backend=backend.name,
        )

        try:
            result = await _invoke(backend, staging, upload, tier, ctx)
        except BackgroundRemovalError as e:
            record_removal_outcome(backend.name, type(e).__name__)
            raise

        record_removal_outcome(backend.name, "success")
        ctx.set_stage("respond")
        logger.info("removal_completed", output_size=len(result.content), content_type=result.content_type)
        return image_response(result)
