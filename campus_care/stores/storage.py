"""Supabase Storage client for report images (REST API over httpx)."""

import logging
import re
from datetime import datetime

import httpx

from ..core.errors import BackendUnavailableError, StorageUnavailableError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def build_object_path(reporter_id: str | None, filename: str, now: datetime) -> str:
    """Object key for an uploaded image: reports/<reporter>/<millis>_<name>."""
    safe_name = _UNSAFE_CHARS.sub("_", filename.rsplit("/", 1)[-1]).strip("_") or "image"
    millis = int(now.timestamp() * 1000)
    return f"reports/{reporter_id or 'anonymous'}/{millis}_{safe_name}"


def _is_bucket_missing(response: httpx.Response) -> bool:
    if response.status_code == 404:
        return True
    try:
        body = response.json()
    except ValueError:
        return False
    if not isinstance(body, dict):
        return False
    return body.get("error") == "Bucket not found" or str(body.get("statusCode")) == "404"


class SupabaseStorage:
    """Uploads images into one public bucket."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        bucket: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = url.rstrip("/")
        self.bucket = bucket
        self._headers = {
            "apikey": anon_key,
            "Authorization": f"Bearer {anon_key}",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def bucket_exists(self) -> bool:
        """Check that the configured bucket is present."""
        try:
            response = await self._client.get(
                f"{self.base_url}/storage/v1/bucket",
                headers=self._headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error checking bucket: {e}")
            raise BackendUnavailableError(f"Could not list storage buckets: {e}") from e

        buckets = response.json() or []
        return any(b.get("name") == self.bucket or b.get("id") == self.bucket for b in buckets)

    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> str:
        """Upload an object and return its public URL."""
        headers = dict(self._headers)
        headers["Content-Type"] = content_type or "application/octet-stream"
        try:
            response = await self._client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                content=content,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Error uploading image: {e}")
            raise BackendUnavailableError(f"Image upload failed: {e}") from e

        if response.is_success:
            return self.public_url(path)

        if _is_bucket_missing(response):
            raise StorageUnavailableError(
                f"The storage bucket '{self.bucket}' does not exist."
            )
        logger.error(f"Error uploading image: {response.status_code} {response.text[:200]}")
        raise BackendUnavailableError(f"Image upload failed with HTTP {response.status_code}")

    async def remove(self, paths: list[str]) -> None:
        """Delete objects; failures are logged only."""
        try:
            response = await self._client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                json={"prefixes": paths},
                headers=self._headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to remove {paths} from {self.bucket}: {e}")
