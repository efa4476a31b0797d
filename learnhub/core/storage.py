"""
File storage abstraction. S3-compatible bucket OR local filesystem.
Controlled by FF_USE_S3 flag.

Objects are addressed by opaque paths inside the materials bucket
(``{user_id}/{timestamp}_{name}``), the same keys Supabase Storage uses.
"""

import logging
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config import get_settings
from .flags import get_flags

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    def __init__(self, bucket: Optional[str] = None):
        self.bucket = bucket or get_settings().storage_bucket

    @abstractmethod
    async def upload(self, file_bytes: bytes, path: str, content_type: str = "") -> str:
        """Store bytes at path. Returns the path."""
        ...

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Read the object at path. Raises FileNotFoundError if missing."""
        ...

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete the object at path. Missing objects are ignored."""
        ...


class S3Storage(StorageBackend):
    def __init__(self, bucket: Optional[str] = None):
        super().__init__(bucket)
        self._client = None

    def _get_client(self):
        if self._client is None:
            import boto3

            settings = get_settings()
            kwargs = {"region_name": settings.aws_region}
            if settings.s3_endpoint_url:
                kwargs["endpoint_url"] = settings.s3_endpoint_url
            if settings.aws_access_key_id:
                kwargs["aws_access_key_id"] = settings.aws_access_key_id
                kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
            self._client = boto3.client("s3", **kwargs)
        return self._client

    async def upload(self, file_bytes: bytes, path: str, content_type: str = "") -> str:
        client = self._get_client()
        client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=file_bytes,
            ContentType=content_type or _guess_content_type(path),
        )
        logger.info("Uploaded to S3: %s/%s", self.bucket, path)
        return path

    async def download(self, path: str) -> bytes:
        from botocore.exceptions import ClientError

        client = self._get_client()
        try:
            obj = client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("NoSuchKey", "404"):
                raise FileNotFoundError(path) from e
            raise
        return obj["Body"].read()

    async def remove(self, path: str) -> None:
        client = self._get_client()
        client.delete_object(Bucket=self.bucket, Key=path)
        logger.info("Removed from S3: %s/%s", self.bucket, path)


class LocalStorage(StorageBackend):
    def __init__(self, base_path: Optional[str] = None, bucket: Optional[str] = None):
        super().__init__(bucket)
        self.base_path = Path(base_path or get_settings().local_storage_path)

    def _resolve(self, path: str) -> Path:
        root = (self.base_path / self.bucket).resolve()
        full = (root / path).resolve()
        if root not in full.parents:
            raise FileNotFoundError(path)
        return full

    async def upload(self, file_bytes: bytes, path: str, content_type: str = "") -> str:
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(file_bytes)
        logger.info("Saved locally: %s", file_path)
        return path

    async def download(self, path: str) -> bytes:
        file_path = self._resolve(path)
        if not file_path.is_file():
            raise FileNotFoundError(path)
        return file_path.read_bytes()

    async def remove(self, path: str) -> None:
        file_path = self._resolve(path)
        if file_path.is_file():
            file_path.unlink()
            logger.info("Removed locally: %s", file_path)


def get_storage() -> StorageBackend:
    """Return the active storage backend based on feature flags."""
    flags = get_flags()
    if flags.use_s3:
        return S3Storage()
    return LocalStorage()


def _guess_content_type(filename: str) -> str:
    ct, _ = mimetypes.guess_type(filename)
    return ct or "application/octet-stream"
