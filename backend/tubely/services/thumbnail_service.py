"""
Thumbnail upload path.

Images are stored byte for byte; there is no transcoding or local staging.
"""

import logging

from tubely.config import Settings
from tubely.models.video import VideoRecord
from tubely.services.errors import AuthorizationError, FileValidationError, StorageError
from tubely.services.staging_service import AsyncByteSource, UploadedFile
from tubely.services.storage_service import VideoStorageService
from tubely.services.upload_validator import UNAVAILABLE_MESSAGE
from tubely.services.video_repository import VideoRepository
from tubely.utils.file_validator import format_file_size, validate_content_type, validate_file_size


logger = logging.getLogger(__name__)


class ThumbnailService:
    def __init__(
        self,
        repository: VideoRepository,
        storage_service: VideoStorageService,
        settings: Settings,
    ) -> None:
        self.repository = repository
        self.storage_service = storage_service
        self.max_size = settings.max_thumbnail_upload_bytes
        self.accepted_types = settings.accepted_thumbnail_content_types

    async def _read_limited(self, upload: AsyncByteSource) -> bytes:
        # One byte past the limit is enough to tell an oversized body apart
        data = await upload.read(self.max_size + 1)
        if len(data) > self.max_size:
            raise FileValidationError(
                f"Thumbnail is too large: exceeds the {format_file_size(self.max_size)} limit"
            )
        return data

    async def upload_thumbnail(
        self,
        user_id: str,
        video_id: str,
        upload: UploadedFile,
    ) -> VideoRecord:
        """
        Validate, store and attach a thumbnail image.

        Returns:
            VideoRecord: The updated record.

        Raises:
            FileValidationError: Unaccepted image type or too large.
            AuthorizationError: Video missing or owned by someone else.
            StorageError: The object store rejected the write.
            VideoNotFoundError: The record vanished before it could be updated.
        """
        size_check = validate_file_size(upload.size, self.max_size)
        if not size_check["is_valid"]:
            raise FileValidationError(size_check["error"])

        record = await self.repository.get_video(video_id)
        if record is None or not record.is_owned_by(user_id):
            logger.warning("User %s denied thumbnail upload for video %s", user_id, video_id)
            raise AuthorizationError(UNAVAILABLE_MESSAGE)

        type_check = validate_content_type(upload.content_type, self.accepted_types)
        if not type_check["is_valid"]:
            raise FileValidationError(type_check["error"])

        data = await self._read_limited(upload)
        key = await self.storage_service.upload_thumbnail(record.id, data, type_check["content_type"])

        updated = await self._attach(record, key)
        logger.info("Attached thumbnail %s to video %s (%d bytes)", key, video_id, len(data))
        return updated

    async def _attach(self, record: VideoRecord, key: str) -> VideoRecord:
        """Point the record at ``key``, deleting the stored image if that fails."""
        try:
            return await self.repository.update_video(
                record.with_thumbnail_key(key), fields={"thumbnail_url"}
            )
        except BaseException:
            try:
                await self.storage_service.delete_object(key)
            except StorageError as cleanup_error:
                logger.warning("Could not remove orphaned thumbnail %s: %s", key, str(cleanup_error))
            raise
