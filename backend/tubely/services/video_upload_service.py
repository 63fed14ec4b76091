"""
Video Upload Pipeline

Takes one uploaded video from the request body to a published storage key:

    validate -> stage -> remux -> classify -> upload -> update record

Stages run strictly in sequence, each consuming the previous stage's file on
disk. Every local artifact registers its own discard callback on an
``ExitStack`` the moment it exists, so success, a typed stage failure or a
cancelled request all leave the staging directory clean. The record only
learns the new key after the object store has confirmed the write.
"""

import asyncio
import contextlib
import logging

from collections.abc import Awaitable
from typing import TypeVar

from tubely.config import Settings
from tubely.models.media import OrientationCategory, UploadResult
from tubely.models.video import VideoRecord
from tubely.services.errors import (
    ProbeError,
    StorageError,
    TranscodeError,
    VideoPipelineError,
)
from tubely.services.probe_service import AspectClassifier
from tubely.services.remux_service import Remuxer
from tubely.services.staging_service import LocalStager, UploadedFile
from tubely.services.storage_service import VideoStorageService
from tubely.services.upload_validator import UploadValidator
from tubely.services.video_repository import VideoRepository
from tubely.utils.local_files import discard_file
from tubely.utils.logger import add_log_context


logger = logging.getLogger(__name__)

T = TypeVar("T")


class VideoUploadService:
    """
    Runs the upload pipeline for one video at a time per call.

    Instances hold no per-upload state, so one service may serve any number
    of concurrent requests.

    Example:
        ```python
        service = VideoUploadService(
            repository=VideoRepository(collection),
            storage_service=VideoStorageService(storage_client, settings),
            classifier=AspectClassifier(FFprobeProber(settings.ffprobe_path)),
            remuxer=FFmpegRemuxer(settings.ffmpeg_path),
            stager=LocalStager(settings),
            validator=UploadValidator(settings),
            settings=settings,
        )
        result = await service.upload_video(user_id, video_id, upload_file)
        ```
    """

    def __init__(
        self,
        repository: VideoRepository,
        storage_service: VideoStorageService,
        classifier: AspectClassifier,
        remuxer: Remuxer,
        stager: LocalStager,
        validator: UploadValidator,
        settings: Settings,
    ) -> None:
        self.repository = repository
        self.storage_service = storage_service
        self.classifier = classifier
        self.remuxer = remuxer
        self.stager = stager
        self.validator = validator
        self.tool_timeout = settings.media_tool_timeout_seconds
        self.max_upload_bytes = settings.max_video_upload_bytes

    async def _bounded(self, step: Awaitable[T], error_type: type[VideoPipelineError], tool: str) -> T:
        """Await a subprocess-backed step, enforcing the optional deadline."""
        if self.tool_timeout is None:
            return await step
        try:
            return await asyncio.wait_for(step, timeout=self.tool_timeout)
        except TimeoutError as error:
            raise error_type(f"{tool} did not finish within {self.tool_timeout} seconds") from error

    async def upload_video(self, user_id: str, video_id: str, upload: UploadedFile) -> UploadResult:
        """
        Process and publish an uploaded video.

        Args:
            user_id: Authenticated caller.
            video_id: Target video record.
            upload: Request body part carrying the video.

        Returns:
            UploadResult: Key, orientation and size of the published object.

        Raises:
            FileValidationError: Wrong content type or too large.
            AuthorizationError: Video missing or owned by someone else.
            StagingError: Local write failed.
            TranscodeError: ffmpeg failed or timed out.
            ProbeError: ffprobe failed, timed out or returned unusable output.
            StorageError: The object store rejected the upload.
            VideoNotFoundError: The record vanished before it could be updated.
            VideoPipelineError: Anything unexpected, wrapped.
        """
        ctx_logger = add_log_context(logger, video_id=video_id, user_id=user_id)

        try:
            record = await self.repository.get_video(video_id)
            owned, content_type = self.validator.validate(user_id, record, upload.content_type, upload.size)

            with contextlib.ExitStack() as artifacts:
                staged = await self.stager.stage(
                    owned.id,
                    upload,
                    content_type,
                    max_bytes=self.max_upload_bytes,
                )
                artifacts.callback(discard_file, staged.path)
                ctx_logger.info("Staged upload", extra={"size": staged.size})

                processed_path = await self._bounded(self.remuxer.remux(staged.path), TranscodeError, "ffmpeg")
                artifacts.callback(discard_file, processed_path)
                discard_file(staged.path)

                orientation = await self._bounded(self.classifier.classify(processed_path), ProbeError, "ffprobe")

                storage_key = await self.storage_service.upload_processed_video(
                    processed_path, orientation, content_type
                )

            updated = await self._publish(owned, storage_key, ctx_logger)

        except VideoPipelineError:
            raise
        except Exception as error:
            ctx_logger.exception("Unexpected error while processing upload")
            raise VideoPipelineError(f"Upload failed: {error}") from error

        ctx_logger.info(
            "Upload complete",
            extra={"storage_key": storage_key, "orientation": orientation.value},
        )
        return UploadResult(
            video_id=updated.id,
            storage_key=storage_key,
            orientation=OrientationCategory(orientation),
            size=staged.size,
        )

    async def _publish(
        self,
        record: VideoRecord,
        storage_key: str,
        ctx_logger: logging.LoggerAdapter,
    ) -> VideoRecord:
        """
        Point the record at ``storage_key``.

        If the record cannot be updated the just-uploaded object would be
        orphaned, so it is deleted before the original error propagates.
        """
        try:
            return await self.repository.update_video(
                record.with_video_key(storage_key), fields={"video_url"}
            )
        except BaseException:
            try:
                await self.storage_service.delete_object(storage_key)
            except StorageError as cleanup_error:
                ctx_logger.warning(
                    "Could not remove orphaned object %s: %s", storage_key, str(cleanup_error)
                )
            raise
