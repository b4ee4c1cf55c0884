"""
Encode Backend Factory
======================
Picks the encode backend for this process.

Returns None when encoding is disabled or the ffmpeg binary cannot be found;
callers treat that as "render placeholders".
"""

import shutil
from typing import Optional

from loguru import logger

from config.settings import Settings
from services.storage.base import BlobStore

from .base import EncodeBackend
from .ffmpeg_backend import FFmpegBackend


def get_encode_backend(settings: Settings, store: BlobStore) -> Optional[EncodeBackend]:
    """
    Create the configured encode backend.

    Args:
        settings: Runtime settings (encoder, ffmpeg_path)
        store: Blob store the backend reads from and writes to

    Returns:
        EncodeBackend instance, or None when no encoder is usable
    """
    if settings.encoder == "none":
        logger.info("[Factory] Encoding disabled (encoder=none)")
        return None

    if settings.encoder != "ffmpeg":
        logger.warning(f"[Factory] Unknown encoder '{settings.encoder}' - encoding disabled")
        return None

    if shutil.which(settings.ffmpeg_path) is None:
        logger.warning(f"[Factory] ffmpeg not found at '{settings.ffmpeg_path}' - clips will be placeholders")
        return None

    logger.info("[Factory] Creating ffmpeg encode backend")
    return FFmpegBackend(settings, store)
