"""
Encode Backend Base Classes
===========================
Abstract interface for the media toolchain that cuts clips and burns in
subtitles. Backends read inputs from and write outputs to the blob store, so
callers only ever deal in BlobRefs.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from shared.models import BlobRef, SubtitleCue, SubtitleStyle

# Output frame sizes per aspect ratio
ASPECT_RATIOS: Dict[str, Tuple[int, int]] = {
    "9:16": (1080, 1920),
    "16:9": (1920, 1080),
    "1:1": (1080, 1080),
    "4:5": (1080, 1350),
}


class EncodeBackend(ABC):
    """
    Abstract base class for encode backends.

    Each backend (currently only ffmpeg) implements this interface.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier reported in session results."""
        pass

    @abstractmethod
    async def extract(
        self,
        source_ref: BlobRef,
        start: float,
        end: float,
        aspect: str,
        output_key: str,
    ) -> BlobRef:
        """
        Cut [start, end) out of the source and reframe it to an aspect ratio.

        Args:
            source_ref: Stored source video
            start: Clip start in seconds
            end: Clip end in seconds
            aspect: Target aspect ratio (key of ASPECT_RATIOS)
            output_key: Blob key for the rendered clip

        Returns:
            BlobRef of the rendered clip

        Raises:
            RuntimeError: If encoding fails
        """
        pass

    @abstractmethod
    async def burn_subtitles(
        self,
        clip_ref: BlobRef,
        cues: List[SubtitleCue],
        style: SubtitleStyle,
        output_key: str,
    ) -> BlobRef:
        """
        Render cues into the clip's frames with the given style.

        Returns:
            BlobRef of the subtitled clip

        Raises:
            RuntimeError: If encoding fails
        """
        pass
