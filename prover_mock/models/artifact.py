from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ArtifactInfo(BaseModel):
    """Metadata kept next to a stored blob."""

    digest: str
    size_bytes: int
    created_at: datetime


class UploadResponse(BaseModel):
    digest: str
    size_bytes: int
    # False when identical bytes were already stored
    created: bool
