"""
Blob storage backends for uploaded listing images, profile photos and documents.
Every backend stores bytes under a key and hands back a durable public URL.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional
import asyncio
import logging

import aiofiles
import cloudinary
import cloudinary.uploader
import httpx

from maskan.config import Settings
from maskan.utils.exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful upload."""
    url: str
    key: str


class BlobStore(ABC):
    """Object store interface used by the upload pipeline."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        """
        Store bytes under ``key``.

        Raises:
            StorageError: If the backend refuses or cannot be reached
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a stored blob. Deleting a missing blob is not an error.

        Raises:
            StorageError: If the backend cannot be reached
        """

    async def aclose(self) -> None:
        return None


class LocalBlobStore(BlobStore):
    """Files on local disk, served by whatever fronts ``public_base_url``."""

    def __init__(self, base_dir: Path, public_base_url: str):
        self.base_dir = Path(base_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise StorageError(f"Storage key escapes upload directory: {key}")
        return path

    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

        return StoredBlob(url=f"{self.public_base_url}/{key}", key=key)

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e


class CloudinaryBlobStore(BlobStore):
    """
    Cloudinary uploads through the official SDK.

    The SDK is synchronous, so calls run in a worker thread. Images are stored
    as ``image`` resources and everything else (PDFs) as ``raw``.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "maskan"):
        self.folder = folder.strip("/")
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    @staticmethod
    def resource_type_for(content_type: str) -> str:
        return "image" if content_type.startswith("image/") else "raw"

    def public_id_for(self, key: str, resource_type: str) -> str:
        # Cloudinary appends the format to image ids; raw ids keep their extension.
        if resource_type == "image" and "." in key.rsplit("/", 1)[-1]:
            key = key.rsplit(".", 1)[0]
        return f"{self.folder}/{key}" if self.folder else key

    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        resource_type = self.resource_type_for(content_type)
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                BytesIO(data),
                resource_type=resource_type,
                public_id=self.public_id_for(key, resource_type),
                overwrite=False,
                type="upload",
                invalidate=False,
            )
        except Exception as e:
            raise StorageError(f"Cloudinary upload failed for {key}: {e}") from e

        url = str(result.get("secure_url") or "").strip()
        public_id = str(result.get("public_id") or "").strip()
        if not url or not public_id:
            raise StorageError(f"Cloudinary returned no URL for {key}")

        return StoredBlob(url=url, key=f"{resource_type}:{public_id}")

    async def delete(self, key: str) -> None:
        resource_type, _, public_id = key.partition(":")
        if not public_id:
            resource_type, public_id = "image", key
        try:
            await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type,
                invalidate=False,
            )
        except Exception as e:
            raise StorageError(f"Cloudinary delete failed for {key}: {e}") from e


class VercelBlobStore(BlobStore):
    """
    Vercel Blob over its HTTP API.

    The returned URL doubles as the key because the delete endpoint is
    addressed by URL.
    """

    API_VERSION = "7"

    def __init__(
        self,
        token: str,
        api_url: str = "https://blob.vercel-storage.com",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 30.0,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.token}",
            "x-api-version": self.API_VERSION,
        }

    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        headers = self._headers()
        headers["x-content-type"] = content_type
        headers["x-add-random-suffix"] = "0"
        try:
            resp = await self._client.put(f"{self.api_url}/{key}", content=data, headers=headers)
        except httpx.RequestError as e:
            raise StorageError(f"Vercel Blob unreachable for {key}: {e}") from e

        if not (200 <= resp.status_code < 300):
            raise StorageError(f"Vercel Blob upload failed: HTTP {resp.status_code}: {resp.text[:500]}")

        url = str(resp.json().get("url") or "").strip()
        if not url:
            raise StorageError(f"Vercel Blob returned no URL for {key}")
        return StoredBlob(url=url, key=url)

    async def delete(self, key: str) -> None:
        try:
            resp = await self._client.post(
                f"{self.api_url}/delete",
                json={"urls": [key]},
                headers=self._headers(),
            )
        except httpx.RequestError as e:
            raise StorageError(f"Vercel Blob unreachable for delete: {e}") from e

        if not (200 <= resp.status_code < 300):
            raise StorageError(f"Vercel Blob delete failed: HTTP {resp.status_code}")

    async def aclose(self) -> None:
        await self._client.aclose()


def build_blob_store(settings: Settings) -> BlobStore:
    """Create the backend named by ``settings.storage_backend``."""
    if settings.storage_backend == "cloudinary":
        if not (settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret):
            raise ValueError("Cloudinary storage requires CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET")
        return CloudinaryBlobStore(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            settings.cloudinary_folder,
        )

    if settings.storage_backend == "vercel":
        if not settings.vercel_blob_token:
            raise ValueError("Vercel Blob storage requires VERCEL_BLOB_TOKEN")
        return VercelBlobStore(settings.vercel_blob_token, settings.vercel_blob_api_url)

    logger.info(f"Using local blob store at {settings.upload_dir}")
    return LocalBlobStore(Path(settings.upload_dir), settings.public_base_url)
