"""
NoteLens Backend — Blob Storage Client
========================================

What:  Writes image bytes to the managed blob storage bucket and resolves
       the public download URL.
How:   Storage REST API:
         upload:   POST {base}/v0/b/{bucket}/o?name={path}   (raw bytes body)
         download: {base}/v0/b/{bucket}/o/{quoted path}?alt=media&token={token}
       The download token comes from the upload response (`downloadTokens`).
Who:   Called by VisionService.upload_image().

Failure policy: every fault (transport, non-2xx status, missing token) is
wrapped in UploadError. Uploads are never retried.
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from notelens.config import Settings, settings as default_settings
from notelens.exceptions import UploadError

logger = logging.getLogger(__name__)


class BlobStorageClient:
    """Uploads objects into one storage bucket."""

    def __init__(self, http: httpx.AsyncClient, config: Optional[Settings] = None):
        self.http = http
        self.settings = config or default_settings

    @property
    def bucket_url(self) -> str:
        base = self.settings.storage_base_url.rstrip("/")
        return f"{base}/v0/b/{self.settings.storage_bucket}/o"

    def download_url(self, path: str, token: str) -> str:
        return f"{self.bucket_url}/{quote(path, safe='')}?alt=media&token={token}"

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        id_token: Optional[str] = None,
    ) -> str:
        """
        Store `data` under `path` and return its download URL.

        Raises:
            UploadError: on any transport fault or unexpected response.
        """
        headers = {"Content-Type": content_type}
        if id_token:
            headers["Authorization"] = f"Firebase {id_token}"

        try:
            response = await self.http.post(
                self.bucket_url,
                params={"name": path},
                content=data,
                headers=headers,
                timeout=self.settings.http_timeout,
            )
            response.raise_for_status()
            metadata = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Upload of %s failed: %s", path, str(e))
            raise UploadError(
                message="Image upload failed",
                context={"path": path, "error_type": type(e).__name__},
            ) from e

        tokens = metadata.get("downloadTokens") if isinstance(metadata, dict) else None
        # Comma-separated when the object has several tokens
        token = tokens.split(",")[0].strip() if isinstance(tokens, str) else ""
        if not token:
            logger.error("Upload of %s returned no download token", path)
            raise UploadError(
                message="Image upload failed: no download URL available",
                context={"path": path},
            )

        logger.info("Uploaded %s (%d bytes)", path, len(data))
        return self.download_url(path, token)
