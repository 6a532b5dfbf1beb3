"""Object storage for property images, behind a provider interface (GCS/S3)."""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from botocore.exceptions import ClientError
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings, StorageProvider

logger = logging.getLogger(__name__)

settings = get_settings()

IMAGE_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


class StorageProviderInterface(ABC):
    """Abstract interface for storage providers."""

    @abstractmethod
    def presigned_upload_url(self, object_path: str, mime_type: str, ttl_seconds: int) -> str:
        """Presigned PUT URL for a direct browser upload."""

    @abstractmethod
    def presigned_download_url(self, object_path: str, ttl_seconds: int) -> str:
        """Presigned GET URL."""

    @abstractmethod
    def object_exists(self, object_path: str) -> bool:
        ...

    @abstractmethod
    def delete_object(self, object_path: str) -> bool:
        ...


class GCSStorageProvider(StorageProviderInterface):
    """Google Cloud Storage provider."""

    def __init__(self, bucket_name: str, project_id: Optional[str] = None):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._client = None

    @property
    def bucket(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=self.project_id)
        return self._client.bucket(self.bucket_name)

    def presigned_upload_url(self, object_path: str, mime_type: str, ttl_seconds: int) -> str:
        return self.bucket.blob(object_path).generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=ttl_seconds),
            method="PUT",
            content_type=mime_type,
        )

    def presigned_download_url(self, object_path: str, ttl_seconds: int) -> str:
        return self.bucket.blob(object_path).generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=ttl_seconds),
            method="GET",
        )

    def object_exists(self, object_path: str) -> bool:
        return self.bucket.blob(object_path).exists()

    def delete_object(self, object_path: str) -> bool:
        blob = self.bucket.blob(object_path)
        if not blob.exists():
            return False
        blob.delete()
        return True


class S3StorageProvider(StorageProviderInterface):
    """AWS S3 storage provider."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self._client = None

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    def presigned_upload_url(self, object_path: str, mime_type: str, ttl_seconds: int) -> str:
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket_name, "Key": object_path, "ContentType": mime_type},
            ExpiresIn=ttl_seconds,
        )

    def presigned_download_url(self, object_path: str, ttl_seconds: int) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": object_path},
            ExpiresIn=ttl_seconds,
        )

    def object_exists(self, object_path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=object_path)
        except ClientError:
            return False
        return True

    def delete_object(self, object_path: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=object_path)
        except ClientError as e:
            logger.warning("S3 delete of %s failed: %s", object_path, e)
            return False
        return True


class StorageService:
    """Property image storage. Provider calls block, so they run in a threadpool."""

    def __init__(self, provider: StorageProviderInterface):
        self.provider = provider

    @staticmethod
    def image_path(property_id: UUID, mime_type: str) -> str:
        return f"properties/{property_id}/images/{uuid.uuid4()}.{IMAGE_MIME_TYPES[mime_type]}"

    @staticmethod
    def belongs_to_property(object_path: str, property_id: UUID) -> bool:
        return object_path.startswith(f"properties/{property_id}/images/")

    @staticmethod
    def validate_image(mime_type: str, file_size_bytes: int) -> None:
        """Raises ValueError for unsupported types or oversized files."""
        if mime_type not in IMAGE_MIME_TYPES:
            raise ValueError(f"Unsupported image type: {mime_type}")
        if file_size_bytes > settings.max_upload_size_mb * 1024 * 1024:
            raise ValueError(f"File size exceeds maximum of {settings.max_upload_size_mb}MB")

    async def create_image_upload(
        self,
        property_id: UUID,
        mime_type: str,
        file_size_bytes: int,
    ) -> tuple[str, str, datetime]:
        """Returns (upload_url, object_path, expires_at)."""
        self.validate_image(mime_type, file_size_bytes)
        object_path = self.image_path(property_id, mime_type)
        ttl = settings.presign_ttl_seconds
        url = await run_in_threadpool(self.provider.presigned_upload_url, object_path, mime_type, ttl)
        return url, object_path, datetime.utcnow() + timedelta(seconds=ttl)

    async def verify_upload(self, object_path: str) -> bool:
        return await run_in_threadpool(self.provider.object_exists, object_path)

    async def get_download_url(self, object_path: str, ttl_seconds: int = 3600) -> str:
        return await run_in_threadpool(self.provider.presigned_download_url, object_path, ttl_seconds)

    async def delete(self, object_path: str) -> bool:
        return await run_in_threadpool(self.provider.delete_object, object_path)


def get_storage_service() -> StorageService:
    """Storage service for the configured provider."""
    if settings.storage_provider == StorageProvider.GCS:
        provider = GCSStorageProvider(
            bucket_name=settings.bucket_name,
            project_id=settings.gcs_project_id,
        )
    else:
        provider = S3StorageProvider(
            bucket_name=settings.bucket_name,
            region=settings.aws_region or "us-east-1",
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    return StorageService(provider)
