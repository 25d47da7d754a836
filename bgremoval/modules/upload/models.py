from pydantic import BaseModel, ConfigDict, Field


class Upload(BaseModel):
    """One request's image payload, buffered in memory for the request only."""
    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., repr=False)
    filename: str  # sanitized base name
    content_type: str
    size: int = Field(..., ge=0)
