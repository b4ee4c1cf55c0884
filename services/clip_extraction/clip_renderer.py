"""
Clip Renderer
=============
Cuts one vertical (9:16) clip per highlight out of the stored source.

When no encode backend is available, or the source itself is only a
placeholder, a self-describing JSON manifest is stored instead and the clip
points back at the source media.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from config.settings import REEL_ASPECT, Settings
from services.storage.base import BlobStore
from services.video_renderer.base import EncodeBackend
from shared.models import BlobRef, Highlight, RenderedClip
from shared.result import StageResult

logger = logging.getLogger(__name__)

MANIFEST_TYPE = "mock_video_clip"
MANIFEST_NOTE = (
    "No encoder was available, so this manifest describes the clip instead of "
    "containing it. The window refers to the source media."
)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class ClipRenderer:
    """
    Renders highlights into standalone clips.

    Usage:
        renderer = ClipRenderer(settings, store, backend)
        results = await renderer.render_all(highlights, source_ref, concurrency=2)
    """

    def __init__(self, settings: Settings, store: BlobStore, backend: Optional[EncodeBackend]):
        self.store = store
        self.backend = backend
        self.default_concurrency = max(1, settings.reel_concurrency)

    @property
    def encoder_name(self) -> str:
        return self.backend.name if self.backend else "none"

    def _can_encode(self, source_ref: BlobRef) -> bool:
        return self.backend is not None and not source_ref.placeholder

    def _echo(self, highlight: Highlight, source_ref: BlobRef, manifest_ref: Optional[BlobRef] = None) -> RenderedClip:
        return RenderedClip(
            id=highlight.id,
            media_ref=source_ref,
            filename=source_ref.key.rsplit("/", 1)[-1],
            duration_seconds=highlight.duration_seconds,
            transcript=highlight.transcript_summary,
            keywords=highlight.keywords,
            manifest_ref=manifest_ref,
        )

    async def _write_manifest(self, highlight: Highlight, source_ref: BlobRef) -> RenderedClip:
        key = f"clips/{highlight.id}-{_epoch_millis()}.json"
        manifest = {
            "id": highlight.id,
            "type": MANIFEST_TYPE,
            "start": highlight.start_seconds,
            "end": highlight.end_seconds,
            "duration": highlight.duration_seconds,
            "transcript": highlight.transcript_summary,
            "keywords": list(highlight.keywords),
            "source": source_ref.url,
            "note": MANIFEST_NOTE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        manifest_ref = await self.store.put(
            key,
            json.dumps(manifest, indent=2).encode("utf-8"),
            "application/json",
        )
        logger.info(f"Wrote clip manifest {key}")
        return self._echo(highlight, source_ref, manifest_ref=manifest_ref)

    async def render(self, highlight: Highlight, source_ref: BlobRef) -> RenderedClip:
        """
        Render one highlight.

        Args:
            highlight: Window to cut
            source_ref: Stored source media

        Returns:
            RenderedClip (a manifest-backed echo of the source when encoding is impossible)
        """
        if not self._can_encode(source_ref):
            return await self._write_manifest(highlight, source_ref)

        key = f"clips/{highlight.id}-{_epoch_millis()}.mp4"
        media_ref = await self.backend.extract(
            source_ref,
            highlight.start_seconds,
            highlight.end_seconds,
            REEL_ASPECT,
            key,
        )
        logger.info(f"Rendered clip {key} ({highlight.duration_seconds:.1f}s)")
        return RenderedClip(
            id=highlight.id,
            media_ref=media_ref,
            filename=key.rsplit("/", 1)[-1],
            duration_seconds=highlight.duration_seconds,
            transcript=highlight.transcript_summary,
            keywords=highlight.keywords,
        )

    async def render_or_degrade(self, highlight: Highlight, source_ref: BlobRef) -> StageResult[RenderedClip]:
        """Render one highlight; any failure yields a degraded clip echoing the source."""
        try:
            clip = await self.render(highlight, source_ref)
        except Exception as e:
            logger.warning(f"Rendering {highlight.id} failed: {e}")
            return StageResult.fallback(self._echo(highlight, source_ref), f"render failed: {e}")

        if self.backend is None:
            return StageResult.fallback(clip, "no encoder")
        if source_ref.placeholder:
            return StageResult.fallback(clip, "source unavailable")
        return StageResult.ok(clip)

    async def render_all(
        self,
        highlights: List[Highlight],
        source_ref: BlobRef,
        concurrency: Optional[int] = None,
    ) -> List[StageResult[RenderedClip]]:
        """
        Render many highlights with at most ``concurrency`` in flight.

        Results are returned in the order of ``highlights``.
        """
        semaphore = asyncio.Semaphore(max(1, concurrency or self.default_concurrency))

        async def _render(highlight: Highlight) -> StageResult[RenderedClip]:
            async with semaphore:
                return await self.render_or_degrade(highlight, source_ref)

        return list(await asyncio.gather(*(_render(h) for h in highlights)))
