"""
Local Blob Store
================
Filesystem-backed store used when no durable storage credentials exist.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from shared.models import BlobRef

from .base import BlobStore


class LocalBlobStore(BlobStore):
    """
    Stores blobs as files under a root directory.

    Keys may contain "/" and map to sub-directories. Writes go through a
    temporary file and os.replace so a key is never observed half-written.
    """

    def __init__(self, root_dir: str, public_base_url: Optional[str] = None):
        self.root = Path(root_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    @property
    def name(self) -> str:
        return "local"

    @property
    def durable(self) -> bool:
        return False

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Blob key escapes store root: {key}")
        return path

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return self._path(key).as_uri()

    async def put(self, key: str, data: bytes, content_type: str) -> BlobRef:
        path = self._path(key)
        await asyncio.to_thread(self._write_atomic, path, data)
        logger.debug(f"Stored {len(data)} bytes at {key}")
        return BlobRef(key=key, url=self.url_for(key), content_type=content_type)

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            raise KeyError(key)
        return await asyncio.to_thread(path.read_bytes)

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
