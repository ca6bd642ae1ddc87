"""Storage configuration for S3-compatible object storage.

Supports both MinIO (development) and AWS S3 (production) with the same interface.
"""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings, get_settings


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        region: AWS region (default: 'us-east-1')
        public_base_url: Base for public object URLs (CDN or public MinIO host);
                         derived from endpoint/region when unset
        attachment_bucket: Bucket for intake attachments
        label_bucket: Bucket for delivered shipping labels
        results_bucket: Bucket for lab results and shipped-out photos
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    region: str = "us-east-1"
    public_base_url: Optional[str] = None
    attachment_bucket: str = "submission-files"
    label_bucket: str = "shipping-labels"
    results_bucket: str = "lab-results"


def load_storage_config(settings: Optional[Settings] = None) -> StorageConfig:
    """Build storage configuration from application settings.

    Example:
        # For MinIO (development):
        S3_ENDPOINT_URL=http://localhost:9000
        S3_ACCESS_KEY_ID=minioadmin
        S3_SECRET_ACCESS_KEY=minioadmin

        # For AWS S3 (production):
        S3_ENDPOINT_URL=            (empty, uses AWS defaults)
        S3_REGION=us-east-2
        S3_PUBLIC_BASE_URL=https://files.example-lab.com
    """
    settings = settings or get_settings()
    return StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        region=settings.S3_REGION,
        public_base_url=settings.S3_PUBLIC_BASE_URL or None,
        attachment_bucket=settings.ATTACHMENT_BUCKET,
        label_bucket=settings.LABEL_BUCKET,
        results_bucket=settings.RESULTS_BUCKET,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    for bucket in (config.attachment_bucket, config.label_bucket, config.results_bucket):
        if not bucket:
            raise ValueError("Storage bucket names cannot be empty")

    for url in (config.endpoint_url, config.public_base_url):
        if url and not url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL: {url}. Must start with http:// or https://")

    if not config.endpoint_url and not config.region:
        raise ValueError("AWS region is required when using S3 (S3_ENDPOINT_URL not set)")
