"""
GCS Blob Store
==============
Google Cloud Storage backend for durable artifacts.

Uses default credentials (GOOGLE_APPLICATION_CREDENTIALS or ADC).
"""

import asyncio
from typing import Any, Optional

from loguru import logger

from shared.models import BlobRef

from .base import BlobStore


class GCSBlobStore(BlobStore):
    """Blob store backed by a single GCS bucket."""

    def __init__(self, bucket_name: str, client: Optional[Any] = None):
        self.bucket_name = bucket_name
        self._client = client

    @property
    def name(self) -> str:
        return "gcs"

    @property
    def durable(self) -> bool:
        return True

    def _bucket(self):
        if self._client is None:
            from google.cloud import storage

            self._client = storage.Client()
        return self._client.bucket(self.bucket_name)

    def url_for(self, key: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> BlobRef:
        def _upload() -> None:
            blob = self._bucket().blob(key)
            blob.upload_from_string(data, content_type=content_type)

        await asyncio.to_thread(_upload)
        logger.info(f"Uploaded {len(data)} bytes to gs://{self.bucket_name}/{key}")
        return BlobRef(key=key, url=self.url_for(key), content_type=content_type)

    async def get(self, key: str) -> bytes:
        def _download() -> bytes:
            blob = self._bucket().blob(key)
            if not blob.exists():
                raise KeyError(key)
            return blob.download_as_bytes()

        return await asyncio.to_thread(_download)

    async def delete(self, key: str) -> None:
        def _delete() -> None:
            blob = self._bucket().blob(key)
            if blob.exists():
                blob.delete()

        await asyncio.to_thread(_delete)
