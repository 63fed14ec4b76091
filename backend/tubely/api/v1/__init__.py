"""
Tubely API v1 router aggregator.

Router Structure:
    - /videos: Video drafts, uploads, thumbnails and signed reads
"""

from fastapi import APIRouter

from tubely.api.v1.videos import router as videos_router


api_router = APIRouter()

api_router.include_router(
    videos_router,
    prefix="/videos",
    tags=["videos"],
)

__all__ = ["api_router"]
