"""
Media pipeline value types.

These describe the transient artifacts of one upload: the staged file, the
probed geometry and the orientation category derived from it.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class OrientationCategory(str, Enum):
    """
    Coarse classification of a video's frame geometry.

    The value doubles as the first path segment of the storage key.
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


class Dimensions(BaseModel):
    """Pixel width and height of the primary video stream."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)


class StagedAsset(BaseModel):
    """
    A raw upload persisted to the local staging directory.

    Owned by a single pipeline run and removed before the request completes.
    """

    path: str = Field(..., description="Absolute or assets_root-relative local path")
    media_type: str = Field(..., description="Declared content type of the upload")
    size: int = Field(..., ge=0, description="Bytes written to disk")

    model_config = ConfigDict(frozen=True)


class UploadResult(BaseModel):
    """Outcome of a successful pipeline run."""

    video_id: str
    storage_key: str
    orientation: OrientationCategory
    size: int = Field(..., ge=0)

    model_config = ConfigDict(use_enum_values=True)
