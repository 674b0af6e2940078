"""S3-compatible object storage (Contabo by default).

Keys are laid out per tenant: {folder}/{company_id}/{name}-{timestamp}-{uuid8}{ext}.
boto3 is synchronous, so every network call runs in a worker thread.
"""

import asyncio
import logging
import re
import time
import uuid
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Object storage"
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@lru_cache(maxsize=1)
def _s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint,
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


def _safe_stem(filename: str) -> str:
    stem = PurePosixPath(filename or "file").stem
    stem = re.sub(r"[^a-zA-Z0-9_-]", "_", stem).strip("_")[:80]
    return stem or "file"


def make_key(folder: str, company_id: str, filename: str) -> str:
    ext = PurePosixPath(filename or "").suffix.lower()
    # One segment only: the tenant id must stay the second segment
    folder = re.sub(r"[^a-zA-Z0-9_-]", "_", folder.strip("/").replace("/", "-")) or "uploads"
    timestamp = int(time.time() * 1000)
    return f"{folder}/{company_id}/{_safe_stem(filename)}-{timestamp}-{uuid.uuid4().hex[:8]}{ext}"


def key_belongs_to(key: str, company_id: str) -> bool:
    """True when the key is `{folder}/{company_id}/{name}` for this tenant."""
    parts = key.split("/")
    return len(parts) == 3 and parts[1] == company_id


class StorageService:
    def __init__(self, client: Any = None, bucket: str | None = None):
        self._client = client or _s3_client()
        self._bucket = bucket or settings.s3_bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    def _fail(self, action: str, exc: Exception) -> ExternalServiceError:
        logger.error("%s failed for bucket %s: %s", action, self._bucket, exc)
        return ExternalServiceError(SERVICE_NAME, f"{action} failed")

    # ------------------------------------------------------------------
    # URLs and keys
    # ------------------------------------------------------------------

    def get_public_url(self, key: str) -> str:
        base = (settings.s3_public_url or f"{settings.s3_endpoint.rstrip('/')}/{self._bucket}").rstrip("/")
        return f"{base}/{key}"

    def extract_key_from_url(self, url: str) -> str | None:
        """Reverse of get_public_url; also accepts path-style endpoint URLs."""
        if settings.s3_public_url and url.startswith(settings.s3_public_url.rstrip("/") + "/"):
            return unquote(url[len(settings.s3_public_url.rstrip("/")) + 1:]) or None
        path = unquote(urlparse(url).path).lstrip("/")
        prefix = f"{self._bucket}/"
        if path.startswith(prefix):
            return path[len(prefix):] or None
        return path or None

    # ------------------------------------------------------------------
    # Sync operations (run in threads by the async wrappers)
    # ------------------------------------------------------------------

    def _upload_sync(self, body: bytes, key: str, content_type: str, metadata: dict[str, str]) -> dict:
        try:
            result = self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                Metadata=metadata,
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._fail("Upload", exc) from exc
        return {
            "key": key,
            "url": self.get_public_url(key),
            "bucket": self._bucket,
            "size": len(body),
            "content_type": content_type,
            "etag": (result.get("ETag") or "").strip('"'),
        }

    def _presign_sync(self, client_method: str, params: dict, expires_in: int) -> str:
        try:
            return self._client.generate_presigned_url(
                ClientMethod=client_method, Params=params, ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._fail("Presign", exc) from exc

    def _delete_sync(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise self._fail("Delete", exc) from exc

    def _head_sync(self, key: str) -> dict | None:
        try:
            return self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return None
            raise self._fail("Head", exc) from exc
        except BotoCoreError as exc:
            raise self._fail("Head", exc) from exc

    # ------------------------------------------------------------------
    # Public async API
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        body: bytes,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> dict:
        result = await asyncio.to_thread(self._upload_sync, body, key, content_type, metadata or {})
        logger.info("Uploaded %s (%s bytes)", key, result["size"])
        return result

    async def generate_presigned_upload_url(
        self, key: str, content_type: str | None = None, expires_in: int | None = None
    ) -> dict:
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        expires = expires_in or settings.s3_presign_expires
        url = await asyncio.to_thread(self._presign_sync, "put_object", params, expires)
        return {"upload_url": url, "key": key, "file_url": self.get_public_url(key), "expires_in": expires}

    async def generate_presigned_download_url(self, key: str, expires_in: int | None = None) -> dict:
        expires = expires_in or settings.s3_presign_expires
        url = await asyncio.to_thread(
            self._presign_sync, "get_object", {"Bucket": self._bucket, "Key": key}, expires
        )
        return {"download_url": url, "key": key, "expires_in": expires}

    async def delete_file(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)
        logger.info("Deleted %s", key)

    async def file_exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._head_sync, key) is not None

    async def get_file_metadata(self, key: str) -> dict | None:
        head = await asyncio.to_thread(self._head_sync, key)
        if head is None:
            return None
        return {
            "key": key,
            "content_type": head.get("ContentType"),
            "size": head.get("ContentLength"),
            "last_modified": head.get("LastModified"),
            "etag": (head.get("ETag") or "").strip('"'),
            "metadata": head.get("Metadata") or {},
        }


def get_storage() -> StorageService:
    """FastAPI dependency; tests override it with an instance over a fake S3 client."""
    return StorageService()
