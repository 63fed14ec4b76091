"""
Error taxonomy for the video pipeline.

Every stage raises one of these and nothing else; the pipeline cleans up
and re-raises them unchanged, and the HTTP layer maps each to a status code.
"""


class VideoPipelineError(Exception):
    """Base exception for video pipeline and video service errors."""


class FileValidationError(VideoPipelineError):
    """Upload has an unaccepted content type or exceeds the size ceiling."""


class AuthorizationError(VideoPipelineError):
    """Caller does not own the target video (or the video does not exist)."""


class VideoNotFoundError(VideoPipelineError):
    """Requested video does not exist."""


class StagingError(VideoPipelineError, OSError):
    """Writing the upload to the local staging directory failed."""


class TranscodeError(VideoPipelineError):
    """The remux subprocess failed."""

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class ProbeError(VideoPipelineError):
    """The media probe failed or produced unusable output."""

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class StorageError(VideoPipelineError):
    """An object-store operation failed."""
