"""
Blob Storage
============
Key-addressed artifact storage for source videos, clips and subtitle files.

Usage:
    from services.storage import get_blob_store

    store = get_blob_store(settings)
    ref = await store.put("clips/abc.mp4", data, "video/mp4")
"""

from loguru import logger

from config.settings import Settings

from .base import BlobStore
from .gcs_store import GCSBlobStore
from .local_store import LocalBlobStore


def get_blob_store(settings: Settings) -> BlobStore:
    """
    Get the configured blob store.

    Durable GCS storage when a bucket is configured, local disk otherwise.
    """
    if settings.durable_storage:
        logger.info(f"Using GCS blob store (bucket={settings.gcs_bucket})")
        return GCSBlobStore(settings.gcs_bucket)
    logger.info(f"No durable storage configured - using local blob store at {settings.local_storage_dir}")
    return LocalBlobStore(settings.local_storage_dir, public_base_url=settings.public_base_url)


__all__ = [
    "get_blob_store",
    "BlobStore",
    "GCSBlobStore",
    "LocalBlobStore",
]
