"""
pkgvault Package & Artifact read shapes — Pydantic models.

PackageRecord: Container metadata.
ArtifactSummary: Artifact metadata only. Has no payload field, so a summary
    can never carry the bytes.
Artifact: Summary fields plus the full payload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PackageRecord(BaseModel):
    """A named container owning zero or more artifacts."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = Field(min_length=1, max_length=255)
    created_by: int = Field(description="User ID of the owner")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ArtifactSummary(BaseModel):
    """
    Artifact metadata without the payload.

    Returned by listings, metadata checks and upload responses.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_by: int
    package_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Artifact(ArtifactSummary):
    """Artifact including its binary payload. Only produced on explicit request."""

    payload: bytes = Field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    def summary(self) -> ArtifactSummary:
        """Drop the payload."""
        return ArtifactSummary(**self.model_dump(exclude={"payload"}))
