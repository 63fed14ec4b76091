"""
Video Storage Service

Async facade over the S3 storage client for the video pipeline:
- Object Store Uploader: moves a processed video into the bucket under an
  orientation-prefixed, randomly suffixed key
- Thumbnail passthrough writes
- Presigned URL Generator: signs read URLs at request time

boto3 blocks, so every call runs in a worker thread via ``async_wrap``.
Backend failures surface as ``StorageError``; nothing here retries.
"""

import asyncio
import logging
import secrets

from functools import wraps
from typing import Any, Callable, TypeVar

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings
from tubely.core.storage import StorageClient
from tubely.models.media import OrientationCategory
from tubely.services.errors import StorageError
from tubely.utils.file_validator import extension_for_content_type


logger = logging.getLogger(__name__)

T = TypeVar("T")

# 16 random bytes = 128 bits of entropy per key
KEY_ENTROPY_BYTES = 16

THUMBNAIL_PREFIX = "thumbnails"

STORAGE_BACKEND_ERRORS = (ClientError, BotoCoreError, S3UploadFailedError)


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Run a blocking boto3 call in the default thread pool.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original in a worker thread
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


def build_storage_key(orientation: OrientationCategory | str, extension: str = ".mp4") -> str:
    """
    Build ``<orientation>/<32 hex chars>-processed<extension>``.

    The suffix comes from ``secrets`` so keys cannot be guessed and never
    collide in practice.

    Example:
        >>> build_storage_key(OrientationCategory.PORTRAIT)  # doctest: +SKIP
        'portrait/3f9c0a...e1-processed.mp4'
    """
    prefix = orientation.value if isinstance(orientation, OrientationCategory) else str(orientation)
    return f"{prefix}/{secrets.token_hex(KEY_ENTROPY_BYTES)}-processed{extension}"


def build_thumbnail_key(video_id: str, content_type: str) -> str:
    suffix = secrets.token_hex(KEY_ENTROPY_BYTES)
    return f"{THUMBNAIL_PREFIX}/{video_id}-{suffix}{extension_for_content_type(content_type)}"


class VideoStorageService:
    """
    Object store operations used by the upload pipeline and read paths.

    Attributes:
        storage: Synchronous S3 client wrapper
        presign_expiration: Default validity window for read URLs, in seconds
    """

    def __init__(self, storage: StorageClient, settings: Settings) -> None:
        self.storage = storage
        self.presign_expiration = settings.presigned_url_expiration_seconds

    async def upload_processed_video(
        self,
        file_path: str,
        orientation: OrientationCategory,
        content_type: str = "video/mp4",
    ) -> str:
        """
        Upload a remuxed video under a fresh key.

        A failure may leave a partial object behind; the key is never
        recorded anywhere, so such objects are unreachable.

        Args:
            file_path: Local path of the processed file.
            orientation: Category used as the key prefix.
            content_type: Content-Type stored with the object.

        Returns:
            str: The storage key the object was written to.

        Raises:
            StorageError: If the backend rejects the upload.
        """
        key = build_storage_key(orientation, extension_for_content_type(content_type))

        @async_wrap
        def _upload() -> None:
            self.storage.upload_file(file_path, key, content_type=content_type)

        try:
            await _upload()
        except STORAGE_BACKEND_ERRORS as error:
            logger.error("Upload of %s to %s failed: %s", file_path, key, str(error))
            raise StorageError(f"Failed to upload video to object storage: {error}") from error

        logger.info("Uploaded %s to %s", file_path, key)
        return key

    async def upload_thumbnail(self, video_id: str, data: bytes, content_type: str) -> str:
        """
        Store thumbnail bytes as-is.

        Returns:
            str: The storage key the image was written to.

        Raises:
            StorageError: If the backend rejects the write.
        """
        key = build_thumbnail_key(video_id, content_type)

        @async_wrap
        def _put() -> None:
            self.storage.put_bytes(key, data, content_type)

        try:
            await _put()
        except STORAGE_BACKEND_ERRORS as error:
            logger.error("Thumbnail upload for video %s failed: %s", video_id, str(error))
            raise StorageError(f"Failed to upload thumbnail to object storage: {error}") from error

        return key

    async def presign(self, key: str, expires_in: int | None = None) -> str:
        """
        Sign a fresh GET URL for ``key``.

        Nothing is cached: each call returns an independently expiring URL.

        Raises:
            ValueError: If ``expires_in`` is outside the allowed range.
            StorageError: If signing fails.
        """
        expiration = self.presign_expiration if expires_in is None else expires_in

        @async_wrap
        def _sign() -> str:
            return self.storage.generate_presigned_download_url(key, expires_in=expiration)

        try:
            return await _sign()
        except STORAGE_BACKEND_ERRORS as error:
            raise StorageError(f"Failed to sign URL for {key}: {error}") from error

    async def delete_object(self, key: str) -> None:
        """
        Raises:
            StorageError: If the backend rejects the delete.
        """

        @async_wrap
        def _delete() -> None:
            self.storage.delete_file(key)

        try:
            await _delete()
        except STORAGE_BACKEND_ERRORS as error:
            raise StorageError(f"Failed to delete {key}: {error}") from error
