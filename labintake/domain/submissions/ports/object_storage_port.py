"""Object Storage Port - Domain interface for S3-compatible storage.

Adapters must implement this interface to provide S3, MinIO, or other storage
backends for intake attachments, labels and lab results.
"""

from abc import ABC, abstractmethod


class ObjectStoragePort(ABC):
    """Port interface for storing uploaded files under caller-chosen keys.

    Example Usage:
        storage = S3StorageAdapter(...)

        await storage.put("submission-files", "draft-7/script/..._000_ab12cd34.png", data, "image/png")
        url = storage.public_url("submission-files", "draft-7/script/..._000_ab12cd34.png")
    """

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Store bytes under `bucket/key`, overwriting any existing object.

        Raises:
            StorageError: If upload fails or storage is unavailable
            ValueError: If data is empty
        """
        pass

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        """Return the stable public URL for `bucket/key`."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity (used by health checks)."""
        pass
