"""
Video Renderer Service
======================
Encode backends that turn stored source media into reels.

Architecture:
- base: EncodeBackend interface (extract, burn_subtitles)
- ffmpeg_backend: ffmpeg CLI implementation
- factory: get_encode_backend(settings, store), None when no toolchain
"""

from .base import ASPECT_RATIOS, EncodeBackend
from .factory import get_encode_backend
from .ffmpeg_backend import FFmpegBackend

__all__ = [
    "ASPECT_RATIOS",
    "EncodeBackend",
    "FFmpegBackend",
    "get_encode_backend",
]
