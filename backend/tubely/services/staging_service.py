"""
Local Stager: persists a raw upload to the staging directory.

The body is streamed in chunks into a temporary file next to its final
location and renamed into place only once fully written, so a failed or
oversized upload never leaves a partial file behind. Staged names are
``<video_id>-<16 hex><ext>``, unique per upload.
"""

import logging
import os
import re
import secrets
import tempfile

from typing import Protocol

import aiofiles

from tubely.config import Settings
from tubely.models.media import StagedAsset
from tubely.services.errors import FileValidationError, StagingError
from tubely.utils.file_validator import extension_for_content_type, format_file_size
from tubely.utils.local_files import discard_file


logger = logging.getLogger(__name__)

# Video ids become file names, so they must not carry path separators
SAFE_IDENTIFIER = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

STAGING_TOKEN_BYTES = 8


class AsyncByteSource(Protocol):
    """Anything with an async ``read(size)``, e.g. ``fastapi.UploadFile``."""

    async def read(self, size: int = -1) -> bytes: ...


class UploadedFile(AsyncByteSource, Protocol):
    """The parts of ``fastapi.UploadFile`` the upload paths rely on."""

    filename: str | None
    content_type: str | None
    size: int | None


class LocalStager:
    """
    Writes uploads to ``assets_root`` under names derived from the video id.

    Example:
        ```python
        stager = LocalStager(settings)
        staged = await stager.stage(video_id, upload_file, "video/mp4", max_bytes=1 << 30)
        # staged.path == "<assets_root>/<video_id>-<16 hex>.mp4"
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self.assets_root = settings.assets_root
        self.chunk_size = settings.upload_chunk_size_bytes

    def staged_path(self, video_id: str, content_type: str) -> str:
        """
        Fresh staging path for one upload of ``video_id``.

        Each call adds a random token, so overlapping uploads of the same
        video never write, remux or discard each other's files.
        """
        if not SAFE_IDENTIFIER.match(video_id):
            raise StagingError(f"Refusing to stage unsafe video id: {video_id!r}")
        token = secrets.token_hex(STAGING_TOKEN_BYTES)
        return os.path.join(self.assets_root, f"{video_id}-{token}{extension_for_content_type(content_type)}")

    async def stage(
        self,
        video_id: str,
        source: AsyncByteSource,
        content_type: str,
        max_bytes: int | None = None,
    ) -> StagedAsset:
        """
        Stream ``source`` to the staging path.

        Args:
            video_id: Identifier the staged file name starts with.
            source: Upload body with an async ``read``.
            content_type: Declared (already validated) content type.
            max_bytes: Optional ceiling enforced while streaming.

        Returns:
            StagedAsset: The committed file and its actual size.

        Raises:
            FileValidationError: If the body exceeds ``max_bytes``.
            StagingError: If the file cannot be written.
        """
        final_path = self.staged_path(video_id, content_type)

        try:
            os.makedirs(self.assets_root, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.assets_root, prefix=f".{video_id}-", suffix=".part")
            os.close(fd)
        except OSError as error:
            logger.exception("Could not create staging file in %s", self.assets_root)
            raise StagingError(f"Could not create staging file: {error}") from error

        written = 0
        committed = False
        try:
            async with aiofiles.open(temp_path, "wb") as staged_file:
                while True:
                    chunk = await source.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise FileValidationError(
                            f"Upload is too large: exceeds the {format_file_size(max_bytes)} limit"
                        )
                    await staged_file.write(chunk)

            os.replace(temp_path, final_path)
            committed = True

        except FileValidationError:
            logger.warning("Upload for video %s exceeded %d bytes while staging", video_id, max_bytes)
            raise
        except OSError as error:
            logger.exception("Failed to stage upload for video %s", video_id)
            raise StagingError(f"Failed to stage upload: {error}") from error
        finally:
            if not committed:
                discard_file(temp_path)

        logger.info("Staged %d bytes for video %s at %s", written, video_id, final_path)
        return StagedAsset(path=final_path, media_type=content_type, size=written)
