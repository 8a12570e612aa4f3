"""Object storage for uploaded class documents (S3 or any S3-compatible endpoint)."""

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from studygroup.config import get_settings

settings = get_settings()


class StorageError(Exception):
    """Raised when an object storage operation fails."""


class DocumentStorage:
    """Service for storing document bytes under their storage path."""

    def __init__(self, client=None, bucket: str | None = None):
        """Initialize S3 client with credentials from settings unless one is given."""
        if client is None:
            client_kwargs = {
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
                "region_name": settings.aws_s3_region,
            }
            # Support MinIO / LocalStack by pointing to a custom endpoint
            if settings.aws_s3_endpoint_url:
                client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url
            client = boto3.client("s3", **client_kwargs)

        self.s3_client = client
        self.bucket = bucket or settings.aws_s3_bucket

    async def upload(self, storage_path: str, data: bytes, content_type: str) -> None:
        """
        Store document bytes. Never overwrites an existing object.

        Args:
            storage_path: Object key, `{user_id}/{class_id}/{timestamp}_{filename}`
            data: Raw file bytes
            content_type: MIME type recorded on the object

        Raises:
            StorageError: If the object exists already or S3 rejects the write
        """
        if self.exists(storage_path):
            raise StorageError(f"An object already exists at {storage_path}")
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=storage_path,
                Body=data,
                ContentType=content_type,
                CacheControl=f"max-age={settings.document_cache_control}",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload document: {str(e)}") from e

    async def remove(self, storage_path: str) -> None:
        """
        Delete a stored document.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=storage_path)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete document: {str(e)}") from e

    async def create_signed_url(self, storage_path: str, expires_in: int) -> str:
        """
        Generate a presigned GET URL for downloading a document.

        Raises:
            StorageError: If the URL cannot be signed
        """
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": storage_path},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to create download URL: {str(e)}") from e

    def exists(self, storage_path: str) -> bool:
        """Check if an object exists at the given path."""
        try:
            self.s3_client.head_object(Bucket=self.bucket, Key=storage_path)
            return True
        except ClientError:
            return False


# Singleton instance
document_storage = DocumentStorage()
