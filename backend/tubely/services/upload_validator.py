"""
Upload policy checks run before any byte of a video is staged.

Checks run in this order: declared size, ownership, content type. A missing
video and a video owned by someone else fail identically so callers cannot
probe for the existence of other users' videos.
"""

import logging

from tubely.config import Settings
from tubely.models.video import VideoRecord
from tubely.services.errors import AuthorizationError, FileValidationError
from tubely.utils.file_validator import validate_content_type, validate_file_size


logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Video unavailable to this user"


class UploadValidator:
    """Enforces the video upload policy from settings."""

    def __init__(self, settings: Settings) -> None:
        self.max_size = settings.max_video_upload_bytes
        self.accepted_content_type = settings.accepted_video_content_type

    def check_size(self, file_size: int | None) -> None:
        """
        Raises:
            FileValidationError: If the declared size exceeds the ceiling.
        """
        result = validate_file_size(file_size, self.max_size)
        if not result["is_valid"]:
            logger.warning("Rejected upload: %s", result["error"])
            raise FileValidationError(result["error"])

    def check_content_type(self, content_type: str | None) -> str:
        """
        Returns:
            str: The normalized content type.

        Raises:
            FileValidationError: If the type is not the accepted container type.
        """
        result = validate_content_type(content_type, self.accepted_content_type)
        if not result["is_valid"]:
            logger.warning("Rejected upload: %s", result["error"])
            raise FileValidationError(result["error"])
        return result["content_type"]

    def check_ownership(self, record: VideoRecord | None, user_id: str) -> VideoRecord:
        """
        Returns:
            VideoRecord: The record, now known to belong to ``user_id``.

        Raises:
            AuthorizationError: If the record is missing or owned by another user.
        """
        if record is None or not record.is_owned_by(user_id):
            logger.warning(
                "User %s denied access to video %s",
                user_id,
                record.id if record is not None else "<missing>",
            )
            raise AuthorizationError(UNAVAILABLE_MESSAGE)
        return record

    def validate(
        self,
        user_id: str,
        record: VideoRecord | None,
        content_type: str | None,
        file_size: int | None,
    ) -> tuple[VideoRecord, str]:
        """
        Run every check in policy order.

        Returns:
            tuple: The owned record and the normalized content type.
        """
        self.check_size(file_size)
        owned = self.check_ownership(record, user_id)
        normalized = self.check_content_type(content_type)
        return owned, normalized
