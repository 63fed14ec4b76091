"""
Pydantic models for the Tubely backend.
"""

from tubely.models.media import Dimensions, OrientationCategory, StagedAsset, UploadResult
from tubely.models.video import VideoCreate, VideoRecord, VideoResponse


__all__ = [
    "Dimensions",
    "OrientationCategory",
    "StagedAsset",
    "UploadResult",
    "VideoCreate",
    "VideoRecord",
    "VideoResponse",
]
