"""
CV Blob Storage

BlobStore is the interface the submission workflow uploads CVs through and
the download route reads them back through. Two backends:

LocalBlobStore keeps objects on disk under a root directory and addresses
them by URL beneath a public base URL (served by api/uploads.py):

    key  cvs/7/3f2a...e1.pdf
    file {root}/cvs/7/3f2a...e1.pdf
    meta {root}/cvs/7/3f2a...e1.pdf.meta.json
    url  {public_base_url}/cvs/7/3f2a...e1.pdf

S3BlobStore puts objects in a bucket through boto3:

    url  https://{bucket}.s3.{region}.amazonaws.com/cvs/7/3f2a...e1.pdf

Select one with CV_STORAGE_BACKEND=local|s3 (see create_blob_store).
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

from jobboard.config import Settings
from jobboard.errors import ConfigurationError

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".meta.json"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


@dataclass
class StoredBlob:
    content: bytes
    content_type: str
    metadata: Dict[str, str] = field(default_factory=dict)


class BlobStore(ABC):
    """Durable storage for uploaded file content."""

    @abstractmethod
    def url_for(self, key: str) -> str:
        """The URL an object stored under ``key`` is addressed by."""
        pass

    @abstractmethod
    async def upload(
        self,
        content: bytes,
        key: str,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Store ``content`` under ``key`` and return its URL."""
        pass

    @abstractmethod
    async def fetch(self, url: str) -> Optional[StoredBlob]:
        """Read back the object at ``url``, or None if it no longer exists."""
        pass

    @abstractmethod
    async def delete(self, url: str) -> None:
        """Remove the object previously returned as ``url``."""
        pass


def validate_key(key: str) -> PurePosixPath:
    path = PurePosixPath(key)
    if not key or path.is_absolute() or ".." in path.parts:
        raise ValueError(f"Invalid object key: {key!r}")
    return path


def _key_under(base_url: str, url: str) -> str:
    prefix = base_url + "/"
    if not url.startswith(prefix):
        raise ValueError(f"URL is not served by this store: {url}")
    return str(validate_key(url[len(prefix):]))


class LocalBlobStore(BlobStore):
    def __init__(self, root_dir: str, public_base_url: str):
        self.root = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{validate_key(key)}"

    def key_for(self, url: str) -> str:
        return _key_under(self.public_base_url, url)

    def _write(self, path: Path, content: bytes, meta: Dict[str, str]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        Path(str(path) + METADATA_SUFFIX).write_text(json.dumps(meta, sort_keys=True))

    def _read(self, path: Path) -> Optional[StoredBlob]:
        if not path.is_file():
            return None
        meta_path = Path(str(path) + METADATA_SUFFIX)
        meta = json.loads(meta_path.read_text()) if meta_path.is_file() else {}
        content_type = meta.pop("contentType", DEFAULT_CONTENT_TYPE)
        return StoredBlob(content=path.read_bytes(), content_type=content_type, metadata=meta)

    def _remove(self, path: Path) -> None:
        path.unlink(missing_ok=True)
        Path(str(path) + METADATA_SUFFIX).unlink(missing_ok=True)

    async def upload(
        self,
        content: bytes,
        key: str,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        path = self.root / validate_key(key)
        meta = {"contentType": content_type, **(metadata or {})}

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, lambda: self._write(path, content, meta))

        logger.info(f"Stored {len(content)} bytes at {key}")
        return self.url_for(key)

    async def fetch(self, url: str) -> Optional[StoredBlob]:
        path = self.root / self.key_for(url)

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: self._read(path))

    async def delete(self, url: str) -> None:
        path = self.root / self.key_for(url)

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, lambda: self._remove(path))

        logger.info(f"Deleted {url}")


class S3BlobStore(BlobStore):
    """
    Objects in one S3 bucket.

    Credentials come from the usual boto3 chain (AWS_ACCESS_KEY_ID and
    AWS_SECRET_ACCESS_KEY, a profile or an instance role). boto3 clients
    block, so every call runs in the default executor.
    """

    def __init__(self, bucket: str, region: str, client: Any = None):
        if not bucket or not region:
            raise ConfigurationError(
                "AWS S3 configuration is missing. Set S3_BUCKET_NAME and AWS_REGION."
            )
        self.bucket = bucket
        self.region = region
        self.base_url = f"https://{bucket}.s3.{region}.amazonaws.com"
        self.client = client or boto3.client("s3", region_name=region)

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{validate_key(key)}"

    def key_for(self, url: str) -> str:
        return _key_under(self.base_url, url)

    async def upload(
        self,
        content: bytes,
        key: str,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        url = self.url_for(key)

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None,
            lambda: self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
                Metadata=dict(metadata or {}),
            ),
        )

        logger.info(f"Uploaded {len(content)} bytes to s3://{self.bucket}/{key}")
        return url

    def _get(self, key: str) -> Optional[StoredBlob]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                return None
            raise
        return StoredBlob(
            content=response["Body"].read(),
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            metadata=dict(response.get("Metadata") or {}),
        )

    async def fetch(self, url: str) -> Optional[StoredBlob]:
        key = self.key_for(url)

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: self._get(key))

    async def delete(self, url: str) -> None:
        key = self.key_for(url)

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None, lambda: self.client.delete_object(Bucket=self.bucket, Key=key)
        )

        logger.info(f"Deleted s3://{self.bucket}/{key}")


def create_blob_store(settings: Settings) -> BlobStore:
    backend = settings.cv_storage_backend.lower()
    if backend == "local":
        return LocalBlobStore(settings.cv_storage_dir, settings.cv_public_base_url)
    if backend == "s3":
        return S3BlobStore(settings.s3_bucket_name, settings.aws_region)
    raise ConfigurationError(f"Unknown CV storage backend: {settings.cv_storage_backend}")
