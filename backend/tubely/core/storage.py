"""
Tubely S3-Compatible Storage Client

Thin synchronous wrapper around a boto3 S3 client. It works against MinIO in
development and AWS S3 in production, selected by ``s3_endpoint_url``.

Operations:
- upload_file / put_bytes: write an object with an explicit content type
- generate_presigned_download_url: time-limited GET URL for a stored key
- delete_file: object housekeeping
- ensure_bucket_exists: bucket bootstrap for scripts and local setups

All calls here block; the async service layer runs them in worker threads.
"""

import logging

from typing import Any

import boto3

from boto3.exceptions import S3UploadFailedError
from botocore.client import Config
from botocore.exceptions import ClientError

from tubely.config import Settings, get_settings


MIN_PRESIGNED_EXPIRATION_SECONDS = 60
MAX_PRESIGNED_EXPIRATION_SECONDS = 86400

logger = logging.getLogger(__name__)

# Using a dict container allows replacement without a global statement
_singleton_container: dict[str, "StorageClient"] = {}


class StorageClient:
    """
    S3-compatible storage client bound to a single bucket.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Target bucket for all operations

    Example usage:
        ```python
        storage = get_storage_client()
        storage.upload_file("/tmp/clip-processed.mp4", "landscape/ab12...-processed.mp4",
                            content_type="video/mp4")
        url = storage.generate_presigned_download_url("landscape/ab12...-processed.mp4")
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """
        Create the boto3 client.

        Path-style addressing and SigV4 are forced so presigned URLs work the
        same way against MinIO and AWS.
        """
        self.settings = settings or get_settings()

        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 3, "mode": "standard"},
        )

        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=self.settings.s3_endpoint_url,
                aws_access_key_id=self.settings.s3_access_key_id,
                aws_secret_access_key=self.settings.s3_secret_access_key,
                region_name=self.settings.s3_region,
                config=client_config,
            )
            self.bucket_name = self.settings.s3_bucket_name

            logger.info(
                "S3 storage client initialized",
                extra={
                    "bucket": self.bucket_name,
                    "region": self.settings.s3_region,
                    "endpoint": self.settings.s3_endpoint_url or "AWS S3 (default)",
                },
            )
        except ClientError:
            logger.exception(
                "Failed to initialize S3 storage client",
                extra={"endpoint": self.settings.s3_endpoint_url},
            )
            raise

    def generate_presigned_download_url(
        self,
        key: str,
        expires_in: int = 3600,
    ) -> str:
        """
        Generate a presigned GET URL for a stored object.

        Every call signs afresh, so two calls for the same key produce two
        independently expiring URLs.

        Args:
            key: The S3 object key to grant read access to.
            expires_in: Validity window in seconds (60-86400). Default 1 hour.

        Returns:
            str: Presigned GET URL.

        Raises:
            ValueError: If expires_in is outside the valid range.
            ClientError: If signing fails.
        """
        if not MIN_PRESIGNED_EXPIRATION_SECONDS <= expires_in <= MAX_PRESIGNED_EXPIRATION_SECONDS:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGNED_EXPIRATION_SECONDS} and "
                f"{MAX_PRESIGNED_EXPIRATION_SECONDS} seconds, got {expires_in}"
            )

        try:
            presigned_url = self.s3_client.generate_presigned_url(
                ClientMethod="get_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": key,
                },
                ExpiresIn=expires_in,
            )
        except ClientError:
            logger.exception("Failed to generate presigned download URL", extra={"key": key})
            raise

        logger.debug(
            "Generated presigned download URL",
            extra={"key": key, "expires_in": expires_in},
        )
        return presigned_url

    def upload_file(
        self,
        file_path: str,
        key: str,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> bool:
        """
        Upload a local file to the bucket under ``key``.

        Args:
            file_path: Path to the local file to upload.
            key: Destination object key.
            content_type: Content-Type stored with the object.
            metadata: Optional user metadata (string keys and values).

        Returns:
            bool: True once the transfer has completed.

        Raises:
            S3UploadFailedError: If the managed transfer fails.
            ClientError: For other S3 errors.
        """
        extra_args: dict[str, Any] = {"ContentType": content_type}
        if metadata:
            extra_args["Metadata"] = metadata

        try:
            self.s3_client.upload_file(
                Filename=file_path,
                Bucket=self.bucket_name,
                Key=key,
                ExtraArgs=extra_args,
            )
        except (ClientError, S3UploadFailedError):
            logger.exception(
                "Failed to upload file to S3",
                extra={"file_path": file_path, "key": key},
            )
            raise

        logger.info(
            "Uploaded file to S3",
            extra={"file_path": file_path, "key": key, "content_type": content_type},
        )
        return True

    def put_bytes(self, key: str, data: bytes, content_type: str) -> bool:
        """Store an in-memory payload under ``key``."""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError:
            logger.exception("Failed to put object to S3", extra={"key": key})
            raise

        logger.info(
            "Put object to S3",
            extra={"key": key, "size": len(data), "content_type": content_type},
        )
        return True

    def delete_file(self, key: str) -> bool:
        """
        Delete an object. Deleting a missing key is not an error in S3.

        Raises:
            ClientError: If delete fails due to permissions or network issues.
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError:
            logger.exception("Failed to delete file from S3", extra={"key": key})
            raise

        logger.info("Deleted file from S3", extra={"key": key})
        return True

    def ensure_bucket_exists(self) -> bool:
        """
        Create the configured bucket if it does not exist yet.

        Returns:
            bool: True if the bucket was created, False if it already existed.
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            logger.debug("Bucket already exists", extra={"bucket": self.bucket_name})
            return False
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code not in {"404", "NoSuchBucket", "NotFound"}:
                logger.exception("Failed to check bucket", extra={"bucket": self.bucket_name})
                raise

        create_args: dict[str, Any] = {"Bucket": self.bucket_name}
        # us-east-1 rejects an explicit LocationConstraint
        if self.settings.s3_region != "us-east-1":
            create_args["CreateBucketConfiguration"] = {
                "LocationConstraint": self.settings.s3_region
            }

        self.s3_client.create_bucket(**create_args)
        logger.info("Created bucket", extra={"bucket": self.bucket_name})
        return True


def get_storage_client() -> StorageClient:
    """
    Get the shared StorageClient instance, creating it on first use.

    boto3 clients are thread-safe, so one instance serves every request and
    every worker thread spawned by the async service layer.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient()
        logger.info("Created new StorageClient singleton instance")

    return _singleton_container["instance"]
