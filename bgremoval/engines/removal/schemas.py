from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bgremoval.core.staging import StagedFile
from bgremoval.modules.upload.models import Upload

DEFAULT_CONTENT_TYPE = "image/png"


class ResolutionTier(str, Enum):
    PREVIEW = "preview"  # fast, low-resolution output
    FULL = "auto"        # full resolution, remote picks the best size

    @classmethod
    def from_query(cls, value: Optional[str]) -> "ResolutionTier":
        """Only ``full`` selects the full tier; anything else is a preview."""
        return cls.FULL if value == "full" else cls.PREVIEW


class RemovalRequest(BaseModel):
    """Everything a backend may need to process one upload."""
    model_config = ConfigDict(frozen=True)

    upload: Upload
    staged: Optional[StagedFile] = None
    resolution: ResolutionTier = ResolutionTier.PREVIEW


class RemovalResult(BaseModel):
    """Processed image bytes, streamed back to the client and never stored."""
    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., repr=False)
    content_type: str = DEFAULT_CONTENT_TYPE

    @field_validator("content_type", mode="before")
    @classmethod
    def default_content_type(cls, v: Optional[str]) -> str:
        return v or DEFAULT_CONTENT_TYPE
