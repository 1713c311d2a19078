"""
Blob Storage Client

Async adapter over a Supabase Storage client for one private bucket. Stored
references are the object's public-style URL; callers only ever hand out
short-lived signed URLs.

The adapter is duck-typed on the client: anything exposing
``.from_(bucket)`` (storage3 ``AsyncStorageClient``) or
``.storage.from_(bucket)`` (a supabase client) works. The client built by
``get_blob_store`` shares one httpx client with explicit connect/read
timeouts so a slow storage backend cannot stall a lifecycle operation.
Transport failures, timeouts and error responses all surface as
BlobStoreError.
"""

import logging
from functools import lru_cache
from typing import Any
from urllib.parse import unquote, urlparse

import httpx
from storage3 import AsyncStorageClient
from storage3.exceptions import StorageApiError
from storage3.utils import StorageException

from lms.core.config import settings

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "/storage/v1"


class BlobStoreError(Exception):
    """Raised when a storage request fails or times out."""


class BlobStore:
    """Client for a single storage bucket."""

    def __init__(self, client: Any, bucket: str, base_url: str):
        self._client = client
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")

    def _bucket(self) -> Any:
        storage = getattr(self._client, "storage", None)
        if storage is not None and hasattr(storage, "from_"):
            return storage.from_(self.bucket)
        return self._client.from_(self.bucket)

    @staticmethod
    def _first_key(data: dict[str, Any], *keys: str) -> Any:
        for key in keys:
            if data.get(key):
                return data[key]
        return None

    def reference_for(self, path: str) -> str:
        """Build the stored reference for an object path."""
        return f"{self.base_url}{STORAGE_PREFIX}/object/public/{self.bucket}/{path}"

    def extract_path(self, reference: str) -> str:
        """
        Extract the object path inside the bucket from a stored reference.

        Accepts full URLs (public, authenticated or signed) as well as bare
        object paths, with or without the bucket name in front.
        """
        path = unquote(urlparse(reference).path) if "://" in reference else reference
        path = path.lstrip("/")

        marker = f"/{self.bucket}/"
        if "://" in reference or path.startswith(STORAGE_PREFIX.lstrip("/")):
            _, found, remainder = f"/{path}".partition(marker)
            if not found:
                raise BlobStoreError(f"Reference {reference} is not in bucket {self.bucket}")
            return remainder

        if path.startswith(f"{self.bucket}/"):
            return path[len(self.bucket) + 1 :]
        return path

    async def upload(self, content: bytes, path: str, content_type: str) -> str:
        """
        Upload an object and return its stored reference.

        Raises:
            BlobStoreError: If the upload fails
        """
        try:
            await self._bucket().upload(
                path, content, {"content-type": content_type, "upsert": "false"}
            )
        except (StorageException, httpx.HTTPError) as e:
            raise BlobStoreError(f"Upload of {path} failed: {e!r}") from e

        logger.info(f"Uploaded {len(content)} bytes to {self.bucket}/{path}")
        return self.reference_for(path)

    async def delete(self, reference: str) -> None:
        """
        Delete the object behind a stored reference.

        Removing an object that is already gone counts as success, so
        repeated deletes are safe.

        Raises:
            BlobStoreError: On transport errors, timeouts or other error responses
        """
        path = self.extract_path(reference)
        try:
            await self._bucket().remove([path])
        except StorageApiError as e:
            if str(getattr(e, "status", "")) == "404":
                logger.info(f"Object {self.bucket}/{path} already absent")
                return
            raise BlobStoreError(f"Delete of {path} failed: {e!r}") from e
        except (StorageException, httpx.HTTPError) as e:
            raise BlobStoreError(f"Delete of {path} failed: {e!r}") from e

        logger.info(f"Deleted {self.bucket}/{path}")

    async def signed_url(self, reference: str, ttl_seconds: int) -> str:
        """
        Create a time-limited download URL for a stored reference.

        Raises:
            BlobStoreError: If signing fails
        """
        path = self.extract_path(reference)
        try:
            result = await self._bucket().create_signed_url(path, ttl_seconds)
        except (StorageException, httpx.HTTPError) as e:
            raise BlobStoreError(f"Signing {path} failed: {e!r}") from e

        signed = None
        if isinstance(result, dict):
            signed = self._first_key(result, "signedURL", "signedUrl", "signed_url")
            data = result.get("data")
            if signed is None and isinstance(data, dict):
                signed = self._first_key(data, "signedURL", "signedUrl", "signed_url")
        if not signed:
            raise BlobStoreError(f"Signing {path} returned no URL")

        signed = str(signed)
        if signed.startswith("http"):
            return signed
        if not signed.startswith(STORAGE_PREFIX):
            signed = f"{STORAGE_PREFIX}{signed}"
        return f"{self.base_url}{signed}"


def create_storage_client(
    base_url: str,
    service_key: str,
    *,
    connect_timeout: float,
    read_timeout: float,
) -> AsyncStorageClient:
    """storage3 client authenticated with the service key."""
    url = f"{base_url.rstrip('/')}{STORAGE_PREFIX}"
    headers = {"Authorization": f"Bearer {service_key}", "apikey": service_key}
    http_client = httpx.AsyncClient(
        base_url=url,
        headers=headers,
        timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
        follow_redirects=True,
    )
    return AsyncStorageClient(url, headers, http_client=http_client)


@lru_cache
def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the client for the configured document bucket."""
    client = create_storage_client(
        settings.supabase_url,
        settings.supabase_service_key,
        connect_timeout=settings.storage_connect_timeout,
        read_timeout=settings.storage_read_timeout,
    )
    return BlobStore(client, settings.storage_bucket, settings.supabase_url)
