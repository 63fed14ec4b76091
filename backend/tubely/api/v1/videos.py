"""
FastAPI Videos Router for Tubely

Endpoints:
- POST /                      - Create a draft video
- GET /                       - List the caller's videos with signed URLs
- GET /{video_id}             - One video with signed URLs
- DELETE /{video_id}          - Delete a video and its stored objects
- POST /{video_id}/upload     - Run the video upload pipeline
- POST /{video_id}/thumbnail  - Attach a thumbnail image

Every endpoint requires a bearer token. Pipeline errors are translated to
HTTP responses in one place, ``raise_http_error``, with the
``{"error", "message"}`` detail shape used across the API.
"""

import logging

from typing import NoReturn

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from pydantic import BaseModel, Field

from tubely.config import Settings, get_settings
from tubely.core.auth import get_current_user_id
from tubely.core.database import get_db_client
from tubely.core.storage import get_storage_client
from tubely.models.media import UploadResult
from tubely.models.video import VideoCreate, VideoResponse
from tubely.services.errors import (
    AuthorizationError,
    FileValidationError,
    ProbeError,
    StagingError,
    StorageError,
    TranscodeError,
    VideoNotFoundError,
    VideoPipelineError,
)
from tubely.services.probe_service import AspectClassifier, FFprobeProber
from tubely.services.remux_service import FFmpegRemuxer
from tubely.services.staging_service import LocalStager
from tubely.services.storage_service import VideoStorageService
from tubely.services.thumbnail_service import ThumbnailService
from tubely.services.upload_validator import UploadValidator
from tubely.services.video_repository import VideoRepository
from tubely.services.video_service import VideoService
from tubely.services.video_upload_service import VideoUploadService


logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================


class ErrorResponse(BaseModel):
    """Body of every error response produced by this router."""

    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


# Checked in order, so subclasses must precede their bases
ERROR_RESPONSES: list[tuple[type[VideoPipelineError], int, str]] = [
    (FileValidationError, status.HTTP_400_BAD_REQUEST, "invalid_upload"),
    (AuthorizationError, status.HTTP_403_FORBIDDEN, "forbidden"),
    (VideoNotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (StagingError, status.HTTP_500_INTERNAL_SERVER_ERROR, "staging_failed"),
    (TranscodeError, status.HTTP_500_INTERNAL_SERVER_ERROR, "transcode_failed"),
    (ProbeError, status.HTTP_500_INTERNAL_SERVER_ERROR, "probe_failed"),
    (StorageError, status.HTTP_502_BAD_GATEWAY, "storage_failed"),
]

ERROR_DOCS = {
    400: {"model": ErrorResponse, "description": "Invalid content type or size"},
    403: {"model": ErrorResponse, "description": "Video unavailable to this user"},
    404: {"model": ErrorResponse, "description": "Video not found"},
    500: {"model": ErrorResponse, "description": "Local processing failed"},
    502: {"model": ErrorResponse, "description": "Object storage failed"},
}


def raise_http_error(error: VideoPipelineError) -> NoReturn:
    """Translate a pipeline error into an ``HTTPException``."""
    for error_type, status_code, code in ERROR_RESPONSES:
        if isinstance(error, error_type):
            raise HTTPException(
                status_code=status_code,
                detail={"error": code, "message": str(error)},
            ) from error

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "upload_failed", "message": str(error)},
    ) from error


# ============================================================================
# Dependencies
# ============================================================================


def get_video_repository() -> VideoRepository:
    return VideoRepository(get_db_client().get_videos_collection())


def get_video_storage_service(settings: Settings = Depends(get_settings)) -> VideoStorageService:
    return VideoStorageService(get_storage_client(), settings)


def get_video_upload_service(
    repository: VideoRepository = Depends(get_video_repository),
    storage_service: VideoStorageService = Depends(get_video_storage_service),
    settings: Settings = Depends(get_settings),
) -> VideoUploadService:
    """
    Wire the upload pipeline with the real ffmpeg/ffprobe stages.

    Returns:
        VideoUploadService: Pipeline bound to this request's collaborators.
    """
    return VideoUploadService(
        repository=repository,
        storage_service=storage_service,
        classifier=AspectClassifier(FFprobeProber(settings.ffprobe_path)),
        remuxer=FFmpegRemuxer(settings.ffmpeg_path),
        stager=LocalStager(settings),
        validator=UploadValidator(settings),
        settings=settings,
    )


def get_video_service(
    repository: VideoRepository = Depends(get_video_repository),
    storage_service: VideoStorageService = Depends(get_video_storage_service),
) -> VideoService:
    return VideoService(repository, storage_service)


def get_thumbnail_service(
    repository: VideoRepository = Depends(get_video_repository),
    storage_service: VideoStorageService = Depends(get_video_storage_service),
    settings: Settings = Depends(get_settings),
) -> ThumbnailService:
    return ThumbnailService(repository, storage_service, settings)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft video",
)
async def create_video(
    payload: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
) -> VideoResponse:
    return await video_service.create_video(user_id, payload.title, payload.description)


@router.get(
    "",
    response_model=list[VideoResponse],
    summary="List the caller's videos",
)
async def list_videos(
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
) -> list[VideoResponse]:
    try:
        return await video_service.list_videos(user_id)
    except VideoPipelineError as e:
        raise_http_error(e)


@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Get one video with signed URLs",
    responses={403: ERROR_DOCS[403], 404: ERROR_DOCS[404]},
)
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
) -> VideoResponse:
    try:
        return await video_service.get_video(user_id, video_id)
    except VideoPipelineError as e:
        raise_http_error(e)


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a video",
    responses={403: ERROR_DOCS[403], 404: ERROR_DOCS[404]},
)
async def delete_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    video_service: VideoService = Depends(get_video_service),
) -> Response:
    try:
        await video_service.delete_video(user_id, video_id)
    except VideoPipelineError as e:
        raise_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{video_id}/upload",
    response_model=UploadResult,
    summary="Upload and process a video file",
    description=(
        "Accepts an MP4 up to 1 GB, remuxes it for fast start, classifies its "
        "orientation and stores it under an orientation-prefixed key."
    ),
    responses=ERROR_DOCS,
)
async def upload_video(
    video_id: str,
    video: UploadFile = File(..., description="MP4 video file"),
    user_id: str = Depends(get_current_user_id),
    upload_service: VideoUploadService = Depends(get_video_upload_service),
) -> UploadResult:
    """
    Run the upload pipeline for ``video_id``.

    Returns:
        UploadResult: Storage key, orientation and size of the stored video.

    Raises:
        HTTPException: 400 invalid upload, 403 not the owner, 500 local
            processing failure, 502 object storage failure.
    """
    logger.info("Video upload request from user %s for video %s: %s", user_id, video_id, video.filename)
    try:
        return await upload_service.upload_video(user_id, video_id, video)
    except VideoPipelineError as e:
        raise_http_error(e)
    finally:
        await video.close()


@router.post(
    "/{video_id}/thumbnail",
    response_model=VideoResponse,
    summary="Upload a thumbnail image",
    responses={400: ERROR_DOCS[400], 403: ERROR_DOCS[403], 502: ERROR_DOCS[502]},
)
async def upload_thumbnail(
    video_id: str,
    thumbnail: UploadFile = File(..., description="JPEG or PNG image"),
    user_id: str = Depends(get_current_user_id),
    thumbnail_service: ThumbnailService = Depends(get_thumbnail_service),
    video_service: VideoService = Depends(get_video_service),
) -> VideoResponse:
    try:
        record = await thumbnail_service.upload_thumbnail(user_id, video_id, thumbnail)
        return await video_service.sign_video(record)
    except VideoPipelineError as e:
        raise_http_error(e)
    finally:
        await thumbnail.close()
