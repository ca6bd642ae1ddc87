"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Provides S3-compatible storage operations for AWS S3, MinIO, and other
S3-compatible services. Keys are chosen by the caller; this adapter never
renames or deduplicates.
"""

import logging
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ...domain.submissions.errors import StorageError
from ...domain.submissions.ports.object_storage_port import ObjectStoragePort
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Example:
        config = load_storage_config()
        storage = S3StorageAdapter.from_config(config)

        await storage.put("submission-files", "draft-7/script/..._000_ab12cd34.png", data, "image/png")
        url = storage.public_url("submission-files", "draft-7/script/..._000_ab12cd34.png")
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        public_base_url: Optional[str] = None,
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            region: AWS region (default: 'us-east-1')
            public_base_url: Base for public URLs (overrides endpoint-derived URLs)

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

        self.endpoint_url = endpoint_url
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

        logger.info(
            f"Initialized S3 storage adapter: endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3StorageAdapter":
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            region=config.region,
            public_base_url=config.public_base_url,
        )

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Upload bytes to `bucket/key` (overwrites).

        Raises:
            StorageError: If upload fails
            ValueError: If data is empty
        """
        if not data:
            raise ValueError("Cannot store empty file")

        try:
            self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(f"S3 upload failed: bucket={bucket}, key={key}, error={error_code}")
            raise StorageError(f"Failed to upload file: {error_code}")
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: bucket={bucket}, key={key}, error={e}")
            raise StorageError(f"Failed to upload file: {e}")

        logger.info(f"Uploaded file: bucket={bucket}, key={key}, size={len(data)}, content_type={content_type}")

    def public_url(self, bucket: str, key: str) -> str:
        """Build the public URL of an object.

        Path-style for custom endpoints (MinIO, CDN base), virtual-hosted
        style for AWS S3.

        Example:
            >>> adapter.public_url("submission-files", "draft-7/script/a.png")
            'http://localhost:9000/submission-files/draft-7/script/a.png'
        """
        quoted_key = quote(key, safe="/")
        if self.public_base_url:
            return f"{self.public_base_url}/{bucket}/{quoted_key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{bucket}/{quoted_key}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{quoted_key}"

    async def ping(self) -> bool:
        """List buckets to verify connectivity."""
        try:
            self.s3_client.list_buckets()
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Object storage ping failed: {e}")
            return False

    async def ensure_bucket(self, bucket: str) -> None:
        """Create `bucket` if it does not exist (development convenience).

        Raises:
            StorageError: If the bucket cannot be checked or created
        """
        try:
            self.s3_client.head_bucket(Bucket=bucket)
            return
        except ClientError as e:
            error_code = _error_code(e)
            if error_code not in ("404", "NoSuchBucket"):
                raise StorageError(f"Failed to verify bucket {bucket}: {error_code}")

        try:
            self.s3_client.create_bucket(Bucket=bucket)
            logger.info(f"Created bucket: {bucket}")
        except ClientError as e:
            error_code = _error_code(e)
            raise StorageError(f"Failed to create bucket {bucket}: {error_code}")
