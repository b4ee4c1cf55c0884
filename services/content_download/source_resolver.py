"""
Source Resolver
===============
Turns a YouTube URL into video metadata, a downloadable stream and a stored
copy of the source media.

Metadata and format lists come from yt-dlp (run in a worker thread); the media
itself is streamed with httpx under a byte budget and written to the blob
store. Upstream failures degrade to demo metadata or a placeholder reference
instead of failing the session.
"""
import asyncio
import re
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import yt_dlp
from loguru import logger

from config.settings import Settings
from services.storage.base import BlobStore
from shared.errors import (
    InvalidInput,
    ReelPipelineError,
    ResourceExhausted,
    StreamUnavailable,
    UpstreamUnavailable,
)
from shared.models import StoredSource, StreamHandle, VideoInfo
from shared.result import StageResult

YOUTUBE_URL_RE = re.compile(
    r"^(?:https?://)?(?:www\.|m\.)?"
    r"(?:youtube\.com/(?:watch\?v=|embed/|shorts/)|youtu\.be/)"
    r"[^&\s?#/]+"
)
VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)([^&\n?#/]+)"
)

YDL_OPTIONS: Dict[str, Any] = {
    "quiet": True,
    "no_warnings": True,
    "skip_download": True,
    "noplaylist": True,
}

DOWNLOAD_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
}

DEMO_DESCRIPTION = (
    "This is a demo processing. Video metadata could not be fetched, "
    "so defaults are used in its place."
)

InfoExtractor = Callable[[str], Dict[str, Any]]


def ytdlp_extract_info(url: str) -> Dict[str, Any]:
    """Fetch the yt-dlp info dict for a URL without downloading media (blocking)."""
    with yt_dlp.YoutubeDL(YDL_OPTIONS) as ydl:
        info = ydl.extract_info(url, download=False)
    if not info:
        raise UpstreamUnavailable(f"No metadata returned for {url}")
    return info


def extract_video_id(url: str) -> Optional[str]:
    if not isinstance(url, str):
        return None
    match = VIDEO_ID_RE.search(url)
    return match.group(1) if match else None


def _format_height(fmt: Dict[str, Any]) -> int:
    height = fmt.get("height")
    if isinstance(height, (int, float)):
        return int(height)
    label = str(fmt.get("format_note") or "")
    match = re.match(r"(\d+)p", label)
    return int(match.group(1)) if match else 0


def _format_size(fmt: Dict[str, Any]) -> Optional[int]:
    size = fmt.get("filesize") or fmt.get("filesize_approx")
    return int(size) if size else None


def _has_audio_and_video(fmt: Dict[str, Any]) -> bool:
    return (
        bool(fmt.get("url"))
        and fmt.get("vcodec") not in (None, "none")
        and fmt.get("acodec") not in (None, "none")
    )


def select_format(
    formats: List[Dict[str, Any]],
    preferred_container: str = "mp4",
    max_bytes: int = 100 * 1024 * 1024,
) -> StreamHandle:
    """
    Pick the stream to download from a yt-dlp format list.

    Only formats carrying both audio and video are considered. Those in the
    preferred container come first, then higher resolutions; the first one
    with a known size under max_bytes wins. If none qualifies, the first
    muxed format is used.

    Raises:
        StreamUnavailable: If no format carries both audio and video
    """
    muxed = [f for f in formats or [] if _has_audio_and_video(f)]
    if not muxed:
        raise StreamUnavailable("No suitable video formats found")

    ranked = sorted(
        muxed,
        key=lambda f: (f.get("ext") != preferred_container, -_format_height(f)),
    )
    chosen = next(
        (f for f in ranked if _format_size(f) is not None and _format_size(f) < max_bytes),
        muxed[0],
    )

    height = _format_height(chosen)
    return StreamHandle(
        url=chosen["url"],
        container=chosen.get("ext") or "",
        quality_label=chosen.get("format_note") or (f"{height}p" if height else ""),
        size_bytes=_format_size(chosen),
        http_headers=dict(chosen.get("http_headers") or {}),
    )


class SourceResolver:
    """
    Resolves and persists source videos.

    Usage:
        resolver = SourceResolver(settings, store)
        info = (await resolver.fetch_info(url)).value
        stored = await resolver.persist_to_store(url, info)
    """

    def __init__(
        self,
        settings: Settings,
        store: BlobStore,
        info_extractor: Optional[InfoExtractor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.store = store
        self._extract = info_extractor or ytdlp_extract_info
        self._transport = transport

    def validate(self, url: Any) -> bool:
        """True for canonical YouTube watch/short/embed URLs. Never raises."""
        if not isinstance(url, str):
            return False
        return YOUTUBE_URL_RE.match(url.strip()) is not None

    async def _extract_info(self, url: str) -> Dict[str, Any]:
        return await asyncio.wait_for(
            asyncio.to_thread(self._extract, url),
            timeout=self.settings.metadata_timeout,
        )

    def _demo_info(self, video_id: str) -> VideoInfo:
        return VideoInfo(
            title=f"Video {video_id} (Demo Mode)",
            duration_seconds=self.settings.fallback_duration,
            description=DEMO_DESCRIPTION,
            thumbnail_urls=(f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg",),
            source_id=video_id,
        )

    async def fetch_info(self, url: str) -> StageResult[VideoInfo]:
        """
        Fetch video metadata.

        Returns:
            StageResult with real metadata, or degraded demo metadata when the
            upstream lookup fails

        Raises:
            InvalidInput: If no video id can be extracted from the URL
        """
        video_id = extract_video_id(url)
        if not video_id:
            raise InvalidInput("Invalid YouTube URL - could not extract video ID")

        try:
            raw = await self._extract_info(url)
        except asyncio.TimeoutError:
            logger.warning(f"Metadata lookup timed out for {video_id} - using demo info")
            return StageResult.fallback(self._demo_info(video_id), "metadata timed out")
        except Exception as e:
            logger.warning(f"Metadata lookup failed for {video_id}: {e} - using demo info")
            return StageResult.fallback(self._demo_info(video_id), f"metadata unavailable: {e}")

        duration = int(raw.get("duration") or 0)
        if duration <= 0:
            logger.warning(f"Video {video_id} reports no duration - assuming {self.settings.fallback_duration}s")
            duration = self.settings.fallback_duration

        thumbnails = tuple(t["url"] for t in raw.get("thumbnails") or [] if t.get("url"))
        if not thumbnails and raw.get("thumbnail"):
            thumbnails = (raw["thumbnail"],)

        info = VideoInfo(
            title=raw.get("title") or f"Video {video_id}",
            duration_seconds=duration,
            description=raw.get("description") or "",
            thumbnail_urls=thumbnails,
            source_id=raw.get("id") or video_id,
            raw=raw,
        )
        logger.info(f"Resolved '{info.title}' ({info.duration_seconds}s)")
        return StageResult.ok(info)

    async def resolve_stream(self, url: str, raw: Optional[Dict[str, Any]] = None) -> StreamHandle:
        """
        Pick a downloadable stream for the video.

        Args:
            url: Video URL
            raw: yt-dlp info dict already fetched for the URL; looked up when None

        Raises:
            StreamUnavailable: If metadata is unavailable or no format qualifies
        """
        if raw is None:
            try:
                raw = await self._extract_info(url)
            except asyncio.TimeoutError:
                raise StreamUnavailable("Format lookup timed out")
            except Exception as e:
                raise StreamUnavailable(f"Failed to get video stream URL: {e}") from e

        stream = select_format(
            raw.get("formats") or [],
            preferred_container=self.settings.preferred_container,
            max_bytes=self.settings.max_stream_bytes,
        )
        logger.info(f"Selected {stream.container} {stream.quality_label} stream")
        return stream

    async def _download(self, stream: StreamHandle) -> bytes:
        limit = self.settings.max_download_bytes
        headers = {**DOWNLOAD_HEADERS, **stream.http_headers}
        chunks = []
        received = 0

        async with httpx.AsyncClient(
            timeout=self.settings.download_timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", stream.url, headers=headers) as response:
                response.raise_for_status()
                declared = int(response.headers.get("content-length") or 0)
                if declared > limit:
                    raise ResourceExhausted("Stream exceeds download budget", limit=limit, observed=declared)
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > limit:
                        raise ResourceExhausted("Download exceeded byte budget", limit=limit, observed=received)
                    chunks.append(chunk)

        return b"".join(chunks)

    async def persist_to_store(
        self,
        url: str,
        info: Optional[VideoInfo] = None,
    ) -> StageResult[StoredSource]:
        """
        Download the source media into the blob store.

        Any failure (no stream, download error, budget overrun, upload error)
        yields a degraded result holding a placeholder reference.

        The format list comes from ``info.raw`` when info is given, so no second
        metadata lookup happens. Demo info carries no formats and fails fast.
        """
        source_id = info.source_id if info else (extract_video_id(url) or "source")
        filename = f"{source_id}-{int(time.time() * 1000)}.mp4"
        key = f"sources/{filename}"

        try:
            if info is not None and not info.raw:
                raise StreamUnavailable("No format list - metadata unavailable")
            stream = await self.resolve_stream(url, info.raw if info is not None else None)
            data = await asyncio.wait_for(
                self._download(stream),
                timeout=self.settings.download_timeout,
            )
            logger.info(f"Downloaded {len(data)} bytes for {source_id}")
            ref = await self.store.put(key, data, "video/mp4")
        except (ReelPipelineError, httpx.HTTPError, asyncio.TimeoutError) as e:
            reason = str(e) or type(e).__name__
            logger.warning(f"Source download failed for {source_id}: {reason} - using placeholder")
            return StageResult.fallback(
                StoredSource(ref=self.store.placeholder_ref(key), filename=filename),
                f"source unavailable: {reason}",
            )
        except Exception as e:
            logger.exception(f"Unexpected error persisting {source_id}")
            return StageResult.fallback(
                StoredSource(ref=self.store.placeholder_ref(key), filename=filename),
                f"source unavailable: {e}",
            )

        logger.info(f"Source stored at {ref.url}")
        return StageResult.ok(StoredSource(ref=ref, filename=filename))
