"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely video ingest service
using Pydantic Settings. It loads and validates the environment variables required for:
- Application settings (name, environment, debug mode, logging)
- MongoDB connection and pooling for video metadata
- S3/MinIO object storage and presigned URL expiry
- Local JWT authentication
- The media pipeline (scratch directory, ffmpeg/ffprobe binaries, upload limits)

All settings support environment variable overrides and .env file loading.
"""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from tubely.utils.file_validator import (
    MAX_THUMBNAIL_SIZE_BYTES,
    MAX_VIDEO_SIZE_BYTES,
    THUMBNAIL_CONTENT_TYPES,
    VIDEO_CONTENT_TYPE,
)


LOG_LEVELS = frozenset({"debug", "info", "warning", "error", "critical"})

APP_ENVIRONMENTS = frozenset({"development", "staging", "production", "testing"})


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely service.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - MongoDB: Database connection URI and connection pool settings
    - S3/MinIO: Object storage credentials, bucket and presign expiry
    - JWT: Local bearer token signing
    - Media Pipeline: Staging directory, external tools and upload policy

    Example usage:
        ```python
        from tubely.config import get_settings

        settings = get_settings()
        print(f"Staging uploads in: {settings.assets_root}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="tubely",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable debug mode and hot-reload")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    log_json: bool = Field(
        default=True, description="Emit JSON log lines instead of human-readable text"
    )

    secret_key: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Secret key for JWT signing. Must be a secure random string.",
        min_length=32,
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in MongoDB connection pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in MongoDB connection pool", ge=1
    )

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str = Field(
        default="minioadmin",
        description="S3/MinIO access key ID for authentication",
    )

    s3_secret_access_key: str = Field(
        default="minioadmin",
        description="S3/MinIO secret access key for authentication",
    )

    s3_bucket_name: str = Field(
        default="tubely-videos", description="S3 bucket holding processed videos and thumbnails"
    )

    s3_region: str = Field(
        default="us-east-1",
        description="AWS region for S3 bucket (also used for MinIO compatibility)",
    )

    presigned_url_expiration_seconds: int = Field(
        default=3600,
        description="Validity window of presigned video URLs in seconds (1 hour)",
        ge=60,
        le=86400,
    )

    # =========================================================================
    # JWT Configuration
    # =========================================================================

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_expiration_hours: int = Field(
        default=24, description="JWT token expiration time in hours", ge=1, le=168
    )

    # =========================================================================
    # Media Pipeline Settings
    # =========================================================================

    assets_root: str = Field(
        default="./assets",
        description="Local scratch directory where uploads are staged and remuxed",
    )

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable name or path")

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable name or path")

    media_tool_timeout_seconds: float | None = Field(
        default=None,
        description="Optional deadline for each ffmpeg/ffprobe run (None waits indefinitely)",
        gt=0,
    )

    upload_chunk_size_bytes: int = Field(
        default=1024 * 1024,
        description="Chunk size used when streaming uploads to the staging directory",
        ge=4096,
    )

    max_video_upload_bytes: int = Field(
        default=MAX_VIDEO_SIZE_BYTES,
        description="Maximum accepted video upload size in bytes (1 GiB)",
        ge=1,
    )

    accepted_video_content_type: str = Field(
        default=VIDEO_CONTENT_TYPE, description="The single container type accepted for video uploads"
    )

    max_thumbnail_upload_bytes: int = Field(
        default=MAX_THUMBNAIL_SIZE_BYTES,
        description="Maximum accepted thumbnail size in bytes (10 MiB)",
        ge=1,
    )

    accepted_thumbnail_content_types: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(THUMBNAIL_CONTENT_TYPES),
        description="Image types accepted for thumbnails",
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", "app_env")
    @classmethod
    def validate_choice(cls, v: str, info: ValidationInfo) -> str:
        """log_level and app_env are case-insensitive picks from a fixed set."""
        allowed = LOG_LEVELS if info.field_name == "log_level" else APP_ENVIRONMENTS
        normalized = v.strip().lower()
        if normalized not in allowed:
            raise ValueError(f"{info.field_name} must be one of {sorted(allowed)}, got {v!r}")
        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only symmetric algorithms are usable with a shared secret_key."""
        algorithm = v.strip().upper()
        if algorithm not in {"HS256", "HS384", "HS512"}:
            raise ValueError(f"jwt_algorithm must be an HMAC algorithm (HS256, HS384, HS512), got {v!r}")
        return algorithm

    @field_validator("cors_origins", "accepted_thumbnail_content_types", mode="before")
    @classmethod
    def split_comma_separated(cls, v: str | list[str]) -> list[str]:
        """Parse list settings from a comma-separated string if provided as string."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("accepted_video_content_type")
    @classmethod
    def normalize_content_type(cls, v: str) -> str:
        """Content types are compared lowercase."""
        return v.strip().lower()


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The Settings object is built once on first call; later calls return the
    cached instance without re-reading environment variables or .env files.
    Tests override this via ``app.dependency_overrides[get_settings]`` or by
    calling ``get_settings.cache_clear()``.
    """
    return Settings()
