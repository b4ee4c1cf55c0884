"""
Blob Store Base Interface
=========================
Abstract key -> bytes store used for every media and text artifact.

The store is append-only from the pipeline's point of view: stages only ever
create new keys, so no locking is needed beyond atomic per-key writes.
"""

from abc import ABC, abstractmethod

from shared.models import BlobRef


class BlobStore(ABC):
    """Abstract base class for blob storage backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier ("gcs", "local")."""
        pass

    @property
    @abstractmethod
    def durable(self) -> bool:
        """True when writes land in durable shared storage."""
        pass

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> BlobRef:
        """
        Store bytes under a key.

        Args:
            key: Globally unique artifact key
            data: Raw bytes
            content_type: MIME type recorded with the object

        Returns:
            BlobRef pointing at the stored object
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Read the bytes stored under a key. Raises KeyError if missing."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass

    @abstractmethod
    def url_for(self, key: str) -> str:
        """Public/downloadable URL for a key."""
        pass

    def placeholder_ref(self, key: str, content_type: str = "video/mp4") -> BlobRef:
        """
        Reference with the regular shape but no bytes behind it.

        Used when the source could not be downloaded; downstream stages can
        still carry it around as an opaque handle.
        """
        return BlobRef(
            key=key,
            url=f"mock://{self.name}/{key}",
            content_type=content_type,
            placeholder=True,
        )
