"""Blob storage for uploaded PDF files.

Two backends behind one small interface:

- ``SupabaseBlobStore`` talks to the Supabase Storage REST API with httpx.
- ``LocalBlobStore`` keeps files in a directory and signs download URLs with
  HMAC, served back by ``/api/storage``. Meant for development and tests.

Blob paths are ``documents/{folder_id}/{document_id}/{prefix}_{filename}``.
"""

import hashlib
import hmac
import logging
import time
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote, urlencode

import httpx

from ..core.config import Settings, StorageBackend
from ..exceptions import BlobStorageError

logger = logging.getLogger(__name__)

# Retry configuration for transient failures (connection errors, 5xx).
MAX_RETRIES = 3
RETRY_BASE_DELAY = 0.5  # seconds; exponential: 0.5s, 1s


def safe_filename(filename: str) -> str:
    """Last path component of a client-supplied file name."""
    return Path(filename.replace("\\", "/")).name or "file.pdf"


def build_blob_path(folder_id: str, document_id: str, prefix: str, filename: str) -> str:
    """Storage key for one file of a document."""
    return f"documents/{folder_id}/{document_id}/{prefix}_{safe_filename(filename)}"


class BlobStore(Protocol):
    """What the document service needs from a blob backend."""

    def upload(self, data: bytes, path: str, content_type: str) -> str: ...

    def delete(self, path: str) -> None: ...

    def create_signed_url(self, path: str, ttl_seconds: int) -> str: ...

    def ensure_bucket(self) -> None: ...


class SupabaseBlobStore:
    """Supabase Storage over its REST API.

    Args:
        base_url: Supabase project URL, e.g. ``https://abc.supabase.co``.
        api_key: Service-role key, sent both as ``apikey`` and as bearer token.
        bucket: Bucket holding every document file.
        client: Optional preconfigured ``httpx.Client`` (tests pass one with
                a ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str,
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.retry_base_delay = retry_base_delay
        self._client = client or httpx.Client(timeout=timeout)
        self._client.headers.update({
            "Authorization": f"Bearer {api_key}",
            "apikey": api_key,
        })

    def _url(self, suffix: str) -> str:
        return f"{self.base_url}/storage/v1/{suffix}"

    def _request(self, method: str, suffix: str, **kwargs) -> httpx.Response:
        """Send a request, retrying connection errors and 5xx with backoff.

        4xx responses are not retried. Raises ``httpx.HTTPError`` on failure.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(MAX_RETRIES):
            try:
                resp = self._client.request(method, self._url(suffix), **kwargs)
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                last_exc = httpx.HTTPStatusError(
                    f"Server error {resp.status_code}",
                    request=resp.request,
                    response=resp,
                )
            except (httpx.ConnectError, httpx.TimeoutException) as exc:
                last_exc = exc

            if attempt < MAX_RETRIES - 1:
                delay = self.retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Storage request %s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    method, suffix, attempt + 1, MAX_RETRIES, delay, last_exc,
                )
                time.sleep(delay)

        raise last_exc  # type: ignore[misc]

    def upload(self, data: bytes, path: str, content_type: str = "application/pdf") -> str:
        try:
            self._request(
                "POST",
                f"object/{self.bucket}/{quote(path)}",
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "true"},
            )
        except httpx.HTTPError as e:
            raise BlobStorageError(f"Failed to upload {path}", path=path, original_error=e) from e
        logger.info("Uploaded blob", extra={"path": path, "size_bytes": len(data)})
        return path

    def delete(self, path: str) -> None:
        try:
            self._request("DELETE", f"object/{self.bucket}", json={"prefixes": [path]})
        except httpx.HTTPError as e:
            raise BlobStorageError(f"Failed to delete {path}", path=path, original_error=e) from e

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        try:
            resp = self._request(
                "POST",
                f"object/sign/{self.bucket}/{quote(path)}",
                json={"expiresIn": ttl_seconds},
            )
            body = resp.json()
            signed = body.get("signedURL") or body.get("signedUrl")
        except (httpx.HTTPError, ValueError) as e:
            raise BlobStorageError(f"Failed to sign {path}", path=path, original_error=e) from e
        if not signed:
            raise BlobStorageError(f"Storage returned no signed URL for {path}", path=path)
        if signed.startswith("http"):
            return signed
        return self._url(signed.lstrip("/"))

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet. Private; files are only reachable via signed URLs."""
        try:
            buckets = self._request("GET", "bucket").json()
            if any(b.get("name") == self.bucket or b.get("id") == self.bucket for b in buckets):
                return
            self._request(
                "POST", "bucket",
                json={"id": self.bucket, "name": self.bucket, "public": False},
            )
        except (httpx.HTTPError, ValueError) as e:
            raise BlobStorageError(
                f"Failed to initialise bucket {self.bucket}", original_error=e
            ) from e
        logger.info("Created storage bucket", extra={"bucket": self.bucket})

    def close(self) -> None:
        self._client.close()


class LocalBlobStore:
    """Files on the local filesystem, one directory per bucket.

    Signed URLs point at ``{base_url}/api/storage/{path}`` and carry an
    expiry timestamp plus an HMAC-SHA256 signature over ``path`` and expiry.
    """

    def __init__(
        self,
        root_dir: str,
        bucket: str,
        signing_key: str,
        base_url: str,
        clock=time.time,
    ):
        self.root = Path(root_dir).resolve() / bucket
        self.bucket = bucket
        self._key = signing_key.encode()
        self.base_url = base_url.rstrip("/")
        self._clock = clock

    def _file(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise BlobStorageError("Blob path escapes the storage root", path=path)
        return target

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode()
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def upload(self, data: bytes, path: str, content_type: str = "application/pdf") -> str:
        target = self._file(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise BlobStorageError(f"Failed to upload {path}", path=path, original_error=e) from e
        logger.info("Stored blob on disk", extra={"path": path, "size_bytes": len(data)})
        return path

    def delete(self, path: str) -> None:
        try:
            self._file(path).unlink(missing_ok=True)
        except OSError as e:
            raise BlobStorageError(f"Failed to delete {path}", path=path, original_error=e) from e

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        expires = int(self._clock()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._signature(path, expires)})
        return f"{self.base_url}/api/storage/{quote(path)}?{query}"

    def verify(self, path: str, expires: int, signature: str) -> bool:
        """True if *signature* was issued for *path* and has not expired."""
        if self._clock() > expires:
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)

    def open_path(self, path: str) -> Optional[Path]:
        """Filesystem location of *path*, or None if nothing is stored there."""
        target = self._file(path)
        return target if target.is_file() else None

    def ensure_bucket(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BlobStorageError(
                f"Failed to initialise bucket {self.bucket}", original_error=e
            ) from e


def create_blob_store(settings: Settings) -> BlobStore:
    """Build the backend selected by ``STORAGE_BACKEND``."""
    if settings.storage_backend == StorageBackend.SUPABASE:
        return SupabaseBlobStore(
            base_url=settings.supabase_url,
            api_key=settings.supabase_key,
            bucket=settings.storage_bucket,
            timeout=settings.storage_timeout_seconds,
        )
    return LocalBlobStore(
        root_dir=settings.local_storage_dir,
        bucket=settings.storage_bucket,
        signing_key=settings.jwt_secret_key,
        base_url=settings.app_base_url,
    )
