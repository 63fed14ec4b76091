"""
Video Pydantic models for Tubely.

VideoRecord is the persisted document. It is immutable: the media pipeline
never edits a record in place, it derives a copy whose storage-location
fields point at the newly stored object and hands that copy to the
repository. Identity and ownership fields can therefore never drift.
"""

import uuid

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# MODELS
# =============================================================================


class VideoRecord(BaseModel):
    """
    Stored video metadata.

    Attributes:
        id: Video identifier (UUID4 string, stored as Mongo ``_id``)
        user_id: Owning user's identifier
        title: Display title
        description: Free-form description
        video_url: Object-store key of the processed video, None until uploaded
        thumbnail_url: Object-store key of the thumbnail, None until uploaded
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), alias="_id", description="Video identifier"
    )

    user_id: str = Field(..., min_length=1, max_length=100, description="Owning user's ID")

    title: str = Field(..., min_length=1, max_length=200, description="Display title")

    description: str = Field(default="", max_length=5000, description="Video description")

    video_url: str | None = Field(
        default=None, max_length=1024, description="Storage key of the processed video"
    )

    thumbnail_url: str | None = Field(
        default=None, max_length=1024, description="Storage key of the thumbnail image"
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Creation timestamp (UTC)"
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Last modification timestamp (UTC)"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "_id": "5b0c1f1e-6a4f-4f5e-9d59-2a0c8e9b1f44",
                "user_id": "user123",
                "title": "Boots on the trail",
                "description": "",
                "video_url": "portrait/3f1c9b7e2d4a4c6f8e0b1a2c3d4e5f60-processed.mp4",
                "thumbnail_url": None,
            }
        },
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Titles are stored trimmed and must not be blank."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Title must not be blank")
        return stripped

    def with_video_key(self, key: str) -> "VideoRecord":
        """Return a copy pointing at a newly stored processed video."""
        return self.model_copy(update={"video_url": key, "updated_at": datetime.now(UTC)})

    def with_thumbnail_key(self, key: str) -> "VideoRecord":
        """Return a copy pointing at a newly stored thumbnail."""
        return self.model_copy(update={"thumbnail_url": key, "updated_at": datetime.now(UTC)})

    def is_owned_by(self, user_id: str) -> bool:
        """Check ownership against a resolved caller identity."""
        return self.user_id == user_id

    def to_document(self) -> dict[str, Any]:
        """Serialize for MongoDB, keeping the ``_id`` alias."""
        return self.model_dump(by_alias=True)


class VideoCreate(BaseModel):
    """Request body for creating a draft video."""

    title: str = Field(..., min_length=1, max_length=200, description="Display title")
    description: str = Field(default="", max_length=5000, description="Video description")


class VideoResponse(BaseModel):
    """
    Video as returned by the API.

    ``video_url`` and ``thumbnail_url`` carry freshly presigned URLs, never
    the raw storage keys.
    """

    id: str = Field(..., description="Video identifier")
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field(..., description="Display title")
    description: str = Field(..., description="Video description")
    video_url: str | None = Field(None, description="Presigned URL of the processed video")
    thumbnail_url: str | None = Field(None, description="Presigned URL of the thumbnail")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_record(
        cls,
        record: VideoRecord,
        video_url: str | None = None,
        thumbnail_url: str | None = None,
    ) -> "VideoResponse":
        """Build the response for ``record`` with already signed URLs."""
        return cls(
            id=record.id,
            user_id=record.user_id,
            title=record.title,
            description=record.description,
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
