"""
Storage Provider Interface and Implementations
Where rendered invite artifacts are kept (local filesystem or S3)
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class StorageProvider(ABC):
    """Abstract base class for storage providers"""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Store data under a key

        Returns:
            The key the object was stored under
        """
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Retrieve data by key, or None if missing"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete data by key; False if it did not exist"""
        pass

    @abstractmethod
    def get_url(self, key: str) -> str:
        """Shareable URL for a stored object"""
        pass


class LocalDiskStorageProvider(StorageProvider):
    """Local filesystem storage, served by the API under /storage"""

    def __init__(self, base_path: str, public_base_url: str = ""):
        """
        Initialize local disk storage

        Args:
            base_path: Base directory for storage
            public_base_url: Absolute origin used to build shareable URLs
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        logger.info(f"LocalDiskStorageProvider initialized at {self.base_path}")

    def _path_for(self, key: str) -> Path:
        # Keys are relative and may not climb out of the base directory
        parts = [part for part in key.strip("/").split("/") if part not in ("", ".", "..")]
        if not parts:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_path.joinpath(*parts)

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        file_path = self._path_for(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)
        logger.debug(f"Stored {len(data)} bytes to {file_path}")
        return file_path.relative_to(self.base_path).as_posix()

    def get(self, key: str) -> Optional[bytes]:
        file_path = self._path_for(key)
        if not file_path.exists():
            return None
        return file_path.read_bytes()

    def delete(self, key: str) -> bool:
        file_path = self._path_for(key)
        if not file_path.exists():
            return False
        file_path.unlink()
        logger.debug(f"Deleted {file_path}")
        return True

    def get_url(self, key: str) -> str:
        relative = self._path_for(key).relative_to(self.base_path).as_posix()
        return f"{self.public_base_url}/storage/{relative}"


class S3StorageProvider(StorageProvider):
    """S3-compatible storage provider (for production)"""

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        url_expiry_seconds: int = 7 * 24 * 3600,
    ):
        """
        Initialize S3 storage provider

        Credentials come from the standard AWS environment/config chain.

        Args:
            bucket_name: S3 bucket name
            region: AWS region
            endpoint_url: Custom endpoint for S3-compatible services
            url_expiry_seconds: Lifetime of presigned invite links
        """
        import boto3  # optional dependency: pip install fyw_pay[s3]

        self.bucket_name = bucket_name
        self.url_expiry_seconds = url_expiry_seconds
        self.s3_client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type
        )
        return key

    def get(self, key: str) -> Optional[bytes]:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        except self.s3_client.exceptions.NoSuchKey:
            return None
        return response["Body"].read()

    def delete(self, key: str) -> bool:
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        return True

    def get_url(self, key: str) -> str:
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=self.url_expiry_seconds,
        )


def get_storage_provider(config) -> StorageProvider:
    """
    Factory function to get the configured storage provider

    Args:
        config: Config with STORAGE_PROVIDER ('local' or 's3') and its settings
    """
    provider_name = (config.STORAGE_PROVIDER or "local").lower()
    if provider_name == "local":
        return LocalDiskStorageProvider(config.STORAGE_PATH, public_base_url=config.PUBLIC_BASE_URL)
    elif provider_name == "s3":
        if not config.S3_BUCKET_NAME:
            raise ValueError("S3_BUCKET_NAME is required for S3 storage")
        return S3StorageProvider(
            bucket_name=config.S3_BUCKET_NAME,
            region=config.S3_REGION,
            endpoint_url=config.S3_ENDPOINT_URL,
        )
    else:
        raise ValueError(f"Unknown storage provider: {provider_name}")
