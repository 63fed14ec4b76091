"""
Video read path and record lifecycle.

Stored records hold object keys; responses hold URLs. Every response built
here signs its URLs at call time, so a URL is never older than the request
that produced it.
"""

import logging

from tubely.models.video import VideoRecord, VideoResponse
from tubely.services.errors import AuthorizationError, StorageError, VideoNotFoundError
from tubely.services.storage_service import VideoStorageService
from tubely.services.video_repository import VideoRepository


logger = logging.getLogger(__name__)


class VideoService:
    """Create, read, list and delete a user's videos."""

    def __init__(self, repository: VideoRepository, storage_service: VideoStorageService) -> None:
        self.repository = repository
        self.storage_service = storage_service

    async def sign_video(self, record: VideoRecord) -> VideoResponse:
        """Translate stored keys into freshly presigned URLs."""
        video_url = await self.storage_service.presign(record.video_url) if record.video_url else None
        thumbnail_url = (
            await self.storage_service.presign(record.thumbnail_url) if record.thumbnail_url else None
        )
        return VideoResponse.from_record(record, video_url=video_url, thumbnail_url=thumbnail_url)

    async def _get_owned(self, user_id: str, video_id: str) -> VideoRecord:
        record = await self.repository.get_video(video_id)
        if record is None:
            raise VideoNotFoundError(f"Video {video_id} not found")
        if not record.is_owned_by(user_id):
            logger.warning("User %s denied access to video %s", user_id, video_id)
            raise AuthorizationError("Video unavailable to this user")
        return record

    async def create_video(self, user_id: str, title: str, description: str = "") -> VideoResponse:
        record = await self.repository.create_video(
            VideoRecord(user_id=user_id, title=title, description=description)
        )
        return VideoResponse.from_record(record)

    async def get_video(self, user_id: str, video_id: str) -> VideoResponse:
        """
        Raises:
            VideoNotFoundError: If the video does not exist.
            AuthorizationError: If another user owns it.
        """
        return await self.sign_video(await self._get_owned(user_id, video_id))

    async def list_videos(self, user_id: str) -> list[VideoResponse]:
        records = await self.repository.list_videos(user_id)
        return [await self.sign_video(record) for record in records]

    async def delete_video(self, user_id: str, video_id: str) -> None:
        """
        Remove the record, then its stored objects.

        Objects that fail to delete are logged and left behind; once the
        record is gone nothing can reference them.
        """
        record = await self._get_owned(user_id, video_id)
        if not await self.repository.delete_video(record.id, user_id):
            raise VideoNotFoundError(f"Video {video_id} not found")

        for key in (record.video_url, record.thumbnail_url):
            if not key:
                continue
            try:
                await self.storage_service.delete_object(key)
            except StorageError as error:
                logger.warning("Could not delete object %s for video %s: %s", key, video_id, str(error))

        logger.info("Deleted video %s for user %s", video_id, user_id)
