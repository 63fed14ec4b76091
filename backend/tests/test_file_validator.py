"""
Tests for the upload validation helpers and the UploadValidator policy.
"""

from collections.abc import Callable

import pytest

from tubely.config import Settings
from tubely.models.video import VideoRecord
from tubely.services.errors import AuthorizationError, FileValidationError
from tubely.services.upload_validator import UNAVAILABLE_MESSAGE, UploadValidator
from tubely.utils.file_validator import (
    MAX_VIDEO_SIZE_BYTES,
    extension_for_content_type,
    format_file_size,
    normalize_content_type,
    validate_content_type,
    validate_file_size,
)


class TestValidateFileSize:
    @pytest.mark.parametrize(
        "file_size,should_pass",
        [
            (0, True),
            (50 * 1024 * 1024, True),
            (MAX_VIDEO_SIZE_BYTES, True),  # boundary is inclusive
            (MAX_VIDEO_SIZE_BYTES + 1, False),
            (2 * 1024**3, False),
        ],
    )
    def test_video_ceiling(self, file_size: int, should_pass: bool) -> None:
        result = validate_file_size(file_size, MAX_VIDEO_SIZE_BYTES)
        assert result["is_valid"] is should_pass
        assert result["max_size"] == MAX_VIDEO_SIZE_BYTES

    def test_undeclared_size_passes(self) -> None:
        """Without a declared size the ceiling is enforced while streaming instead."""
        assert validate_file_size(None)["is_valid"] is True

    def test_negative_size_rejected(self) -> None:
        result = validate_file_size(-1)
        assert result["is_valid"] is False
        assert "negative" in result["error"]

    def test_error_mentions_both_sizes(self) -> None:
        result = validate_file_size(2 * 1024**3, MAX_VIDEO_SIZE_BYTES)
        assert "2.00 GB" in result["error"]
        assert "1.00 GB" in result["error"]


class TestValidateContentType:
    @pytest.mark.parametrize(
        "content_type",
        ["video/mp4", "VIDEO/MP4", "video/mp4; codecs=avc1", " video/mp4 "],
    )
    def test_accepts_mp4_variants(self, content_type: str) -> None:
        result = validate_content_type(content_type, "video/mp4")
        assert result["is_valid"] is True
        assert result["content_type"] == "video/mp4"

    @pytest.mark.parametrize("content_type", ["video/quicktime", "image/png", "", None])
    def test_rejects_other_types(self, content_type: str | None) -> None:
        result = validate_content_type(content_type, "video/mp4")
        assert result["is_valid"] is False
        assert "video/mp4" in result["error"]

    def test_allow_list(self) -> None:
        allowed = ["image/jpeg", "image/png"]
        assert validate_content_type("image/png", allowed)["is_valid"] is True
        assert validate_content_type("image/gif", allowed)["is_valid"] is False


class TestHelpers:
    def test_normalize_content_type(self) -> None:
        assert normalize_content_type("Video/MP4; codecs=avc1") == "video/mp4"
        assert normalize_content_type(None) == ""

    @pytest.mark.parametrize(
        "content_type,extension",
        [
            ("video/mp4", ".mp4"),
            ("image/jpeg", ".jpg"),
            ("image/png", ".png"),
            ("video/webm", ".webm"),
            ("", ".bin"),
        ],
    )
    def test_extension_for_content_type(self, content_type: str, extension: str) -> None:
        assert extension_for_content_type(content_type) == extension

    def test_format_file_size(self) -> None:
        assert format_file_size(512) == "512 B"
        assert format_file_size(1536) == "1.50 KB"
        assert format_file_size(10 << 20) == "10.00 MB"
        assert format_file_size(-5) == "Invalid size"


class TestUploadValidator:
    @pytest.fixture
    def validator(self, mock_settings: Settings) -> UploadValidator:
        return UploadValidator(mock_settings)

    def test_valid_upload(self, validator: UploadValidator, video_record: VideoRecord, user_id: str) -> None:
        record, content_type = validator.validate(user_id, video_record, "video/MP4", 50 * 1024 * 1024)
        assert record is video_record
        assert content_type == "video/mp4"

    def test_oversize_rejected(self, validator: UploadValidator, video_record: VideoRecord, user_id: str) -> None:
        with pytest.raises(FileValidationError, match="too large"):
            validator.validate(user_id, video_record, "video/mp4", 2 * 1024**3)

    def test_wrong_type_rejected(self, validator: UploadValidator, video_record: VideoRecord, user_id: str) -> None:
        with pytest.raises(FileValidationError, match="Invalid file type"):
            validator.validate(user_id, video_record, "video/quicktime", 1024)

    def test_non_owner_rejected(
        self, validator: UploadValidator, video_record: VideoRecord, other_user_id: str
    ) -> None:
        with pytest.raises(AuthorizationError, match=UNAVAILABLE_MESSAGE):
            validator.validate(other_user_id, video_record, "video/mp4", 1024)

    def test_missing_and_foreign_records_fail_identically(
        self,
        validator: UploadValidator,
        make_record: Callable[..., VideoRecord],
        user_id: str,
    ) -> None:
        foreign = make_record(user_id="someone-else")

        with pytest.raises(AuthorizationError) as missing_error:
            validator.check_ownership(None, user_id)
        with pytest.raises(AuthorizationError) as foreign_error:
            validator.check_ownership(foreign, user_id)

        assert str(missing_error.value) == str(foreign_error.value)

    def test_size_checked_before_ownership(
        self, validator: UploadValidator, video_record: VideoRecord, other_user_id: str
    ) -> None:
        with pytest.raises(FileValidationError):
            validator.validate(other_user_id, video_record, "video/mp4", 2 * 1024**3)

    def test_ownership_checked_before_type(
        self, validator: UploadValidator, video_record: VideoRecord, other_user_id: str
    ) -> None:
        with pytest.raises(AuthorizationError):
            validator.validate(other_user_id, video_record, "text/plain", 1024)
