"""
Object storage for profile images.

Backends expose one capability, ``ObjectStorage``:

- ``upload(data, key, content_type)`` stores bytes and returns the public
  reference (URL) clients use to fetch the object.
- ``delete(key)`` removes the object.
- ``key_for(reference)`` is the key codec: it maps a reference previously
  returned by ``upload`` back to its storage key, or returns ``None`` when the
  reference is empty or not hosted by this backend. URL-addressed backends use
  the final path segment of the URL (everything after the last ``/``), which
  is the rule references already saved on user records rely on.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from account_backend.core.aws import s3_client
from account_backend.core.errors import StorageError, UploadError
from account_backend.core.settings import S, Settings

log = structlog.get_logger(__name__)


class ObjectStorage(Protocol):
    def upload(self, data: bytes, key: str, content_type: str) -> str: ...

    def delete(self, key: str) -> None: ...

    def key_for(self, reference: str) -> Optional[str]: ...


def last_path_segment(reference: str) -> str:
    return reference.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class StorageConfig:
    bucket: str
    region: str = "us-east-1"
    prefix: str = ""
    endpoint_url: str = ""
    public_base_url: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            bucket=settings.profile_image_bucket,
            region=settings.aws_region or "us-east-1",
            prefix=settings.profile_image_prefix,
            endpoint_url=settings.s3_endpoint_url,
            public_base_url=settings.s3_public_base_url,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )

    def object_key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def base_url(self) -> str:
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        if self.endpoint_url:
            # S3-compatible services are addressed path-style
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com"


class S3ObjectStorage:
    def __init__(self, config: StorageConfig, client=None) -> None:
        if not config.bucket:
            raise ValueError("bucket is required")
        self.config = config
        self._s3 = client or s3_client(
            region=config.region,
            endpoint_url=config.endpoint_url,
            access_key_id=config.access_key_id,
            secret_access_key=config.secret_access_key,
        )

    def url_for(self, key: str) -> str:
        return f"{self.config.base_url()}/{self.config.object_key(key)}"

    def upload(self, data: bytes, key: str, content_type: str) -> str:
        object_key = self.config.object_key(key)
        try:
            self._s3.put_object(
                Bucket=self.config.bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as exc:
            raise UploadError() from exc
        log.info("storage_object_uploaded", bucket=self.config.bucket, key=object_key, size=len(data))
        return self.url_for(key)

    def delete(self, key: str) -> None:
        object_key = self.config.object_key(key)
        try:
            self._s3.delete_object(Bucket=self.config.bucket, Key=object_key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to delete object {object_key}") from exc
        log.info("storage_object_deleted", bucket=self.config.bucket, key=object_key)

    def key_for(self, reference: str) -> Optional[str]:
        if not reference:
            return None
        base = self.config.base_url() + "/"
        if not (reference.startswith("https://") or reference.startswith(base)):
            return None
        return last_path_segment(reference) or None


class LocalObjectStorage:
    """Filesystem backend for development, served by the app under ``/static/uploads``."""

    def __init__(self, directory: Path, base_url: str) -> None:
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise StorageError(f"Invalid storage key {key!r}")
        return self.directory / key

    def upload(self, data: bytes, key: str, content_type: str) -> str:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise UploadError() from exc
        return f"{self.base_url}/{key}"

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except OSError as exc:
            raise StorageError(f"Failed to delete object {key}") from exc

    def key_for(self, reference: str) -> Optional[str]:
        if not reference or not reference.startswith(self.base_url + "/"):
            return None
        return last_path_segment(reference) or None


DEFAULT_UPLOAD_DIR = Path(__file__).resolve().parents[1] / "static" / "uploads"


def build_storage(settings: Settings = S) -> ObjectStorage:
    if settings.profile_image_bucket:
        return S3ObjectStorage(StorageConfig.from_settings(settings))
    directory = Path(settings.local_upload_dir) if settings.local_upload_dir else DEFAULT_UPLOAD_DIR
    log.warning("storage_local_fallback", directory=str(directory))
    return LocalObjectStorage(directory, f"{settings.public_base_url}/static/uploads")
