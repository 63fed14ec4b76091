"""
Upload Validation Utilities for Tubely

Small, side-effect free checks used by the upload validator, the stager and
the thumbnail path:
- Declared size against a byte ceiling
- Declared content type against an allow-list
- Mapping from content type to the file extension used on disk and in keys
- Human-readable size formatting for error messages

Each validate_* helper returns a result dictionary instead of raising, so the
caller decides which exception type a failure becomes.
"""

from typing import Any


# =============================================================================
# CONSTANTS - Size Limits
# =============================================================================

BYTES_PER_KB: int = 1024

# Video uploads are capped at 1 GiB
MAX_VIDEO_SIZE_BYTES: int = 1 << 30

# Thumbnails are capped at 10 MiB
MAX_THUMBNAIL_SIZE_BYTES: int = 10 << 20


# =============================================================================
# CONSTANTS - Content Types
# =============================================================================

VIDEO_CONTENT_TYPE: str = "video/mp4"

THUMBNAIL_CONTENT_TYPES: tuple[str, ...] = ("image/jpeg", "image/png")

# Extension written to disk and used in storage keys for each accepted type
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "video/mp4": ".mp4",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================


def normalize_content_type(content_type: str | None) -> str:
    """
    Strip parameters and case from a Content-Type header value.

    Example:
        >>> normalize_content_type("Video/MP4; codecs=avc1")
        'video/mp4'
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def validate_file_size(file_size: int | None, max_size: int = MAX_VIDEO_SIZE_BYTES) -> dict[str, Any]:
    """
    Validate a byte size against an inclusive ceiling.

    Args:
        file_size: Size of the upload in bytes. None means the client did not
            declare one; the stager enforces the ceiling while streaming.
        max_size: Maximum allowed size in bytes.

    Returns:
        Dictionary with validation results:
        - is_valid: True if size is within limit
        - error: Human-readable error message or None if valid
        - file_size: The size that was validated
        - max_size: The ceiling that was applied

    Example:
        >>> validate_file_size(2 * 1024 ** 3)["is_valid"]
        False
    """
    result: dict[str, Any] = {
        "is_valid": True,
        "error": None,
        "file_size": file_size,
        "max_size": max_size,
    }

    if file_size is None:
        return result

    if file_size < 0:
        result["is_valid"] = False
        result["error"] = "Invalid file size: cannot be negative"
        return result

    if file_size > max_size:
        result["is_valid"] = False
        result["error"] = (
            f"Upload is too large: {format_file_size(file_size)} exceeds the "
            f"{format_file_size(max_size)} limit"
        )

    return result


def validate_content_type(
    content_type: str | None,
    allowed: str | tuple[str, ...] | list[str],
) -> dict[str, Any]:
    """
    Validate a declared content type against an allow-list.

    Args:
        content_type: The Content-Type declared by the client.
        allowed: A single accepted type or a collection of accepted types.

    Returns:
        Dictionary with validation results:
        - is_valid: True if the normalized type is accepted
        - error: Human-readable error message or None if valid
        - content_type: The normalized content type
    """
    normalized = normalize_content_type(content_type)
    accepted = {allowed} if isinstance(allowed, str) else set(allowed)
    accepted = {normalize_content_type(item) for item in accepted}

    result: dict[str, Any] = {
        "is_valid": True,
        "error": None,
        "content_type": normalized,
    }

    if normalized not in accepted:
        result["is_valid"] = False
        result["error"] = (
            f"Invalid file type '{normalized or 'unknown'}'. "
            f"Allowed types: {', '.join(sorted(accepted))}"
        )

    return result


def extension_for_content_type(content_type: str) -> str:
    """
    Return the file extension (with leading dot) for an accepted content type.

    Types outside CONTENT_TYPE_EXTENSIONS fall back to the subtype, the way
    ``video/webm`` becomes ``.webm``.
    """
    normalized = normalize_content_type(content_type)
    if normalized in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[normalized]

    subtype = normalized.rpartition("/")[2]
    return f".{subtype}" if subtype else ".bin"


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable string.

    Example:
        >>> format_file_size(1536)
        '1.50 KB'
        >>> format_file_size(1 << 30)
        '1.00 GB'
    """
    if size_bytes < 0:
        return "Invalid size"

    bytes_per_mb = BYTES_PER_KB * BYTES_PER_KB
    bytes_per_gb = bytes_per_mb * BYTES_PER_KB

    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < bytes_per_mb:
        return f"{size_bytes / BYTES_PER_KB:.2f} KB"
    if size_bytes < bytes_per_gb:
        return f"{size_bytes / bytes_per_mb:.2f} MB"
    return f"{size_bytes / bytes_per_gb:.2f} GB"


__all__ = [
    "CONTENT_TYPE_EXTENSIONS",
    "MAX_THUMBNAIL_SIZE_BYTES",
    "MAX_VIDEO_SIZE_BYTES",
    "THUMBNAIL_CONTENT_TYPES",
    "VIDEO_CONTENT_TYPE",
    "extension_for_content_type",
    "format_file_size",
    "normalize_content_type",
    "validate_content_type",
    "validate_file_size",
]
