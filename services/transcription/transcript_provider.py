"""
Transcript Provider
Best-effort transcripts from a video's published caption tracks
"""
import asyncio
import html
import logging
import re
from typing import Any, Dict, Optional

import httpx

from config.settings import Settings
from services.clip_extraction.subtitle_formats import parse_vtt
from services.content_download.source_resolver import InfoExtractor, ytdlp_extract_info

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def flatten_vtt(content: str) -> str:
    """
    Collapse a WebVTT caption file into plain transcript text.

    Auto-generated captions repeat the previous line at the top of each cue
    ("rolling" captions); consecutive duplicate lines are emitted once.
    """
    lines = []
    for cue in parse_vtt(content):
        for raw_line in cue.text.split("\n"):
            line = _SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub("", raw_line))).strip()
            if line and (not lines or lines[-1] != line):
                lines.append(line)
    return " ".join(lines)


class TranscriptProvider:
    """Fetches caption-track transcripts. Never raises."""

    def __init__(
        self,
        settings: Settings,
        info_extractor: Optional[InfoExtractor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.enabled = settings.transcripts_enabled
        self.language = settings.transcript_language
        self.metadata_timeout = settings.metadata_timeout
        self.download_timeout = settings.download_timeout
        self._extract = info_extractor or ytdlp_extract_info
        self._transport = transport

        if not self.enabled:
            logger.info("Transcripts disabled - segments will use placeholder text")

    def is_enabled(self) -> bool:
        return self.enabled

    def _pick_track(self, info: Dict[str, Any]) -> Optional[str]:
        """URL of the best VTT track: manual subtitles first, then automatic captions."""
        for source in ("subtitles", "automatic_captions"):
            tracks = info.get(source) or {}
            languages = [self.language] + sorted(
                lang for lang in tracks if lang.startswith(f"{self.language}-")
            )
            for lang in languages:
                for track in tracks.get(lang) or []:
                    if track.get("ext") == "vtt" and track.get("url"):
                        return track["url"]
        return None

    async def fetch(self, url: str, info: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Fetch the transcript for a video

        Args:
            url: Video URL
            info: yt-dlp info dict already fetched for the URL; looked up when None

        Returns:
            Flattened transcript text, or None when no captions are available
        """
        if not self.enabled:
            return None

        try:
            if info is None:
                info = await asyncio.wait_for(
                    asyncio.to_thread(self._extract, url),
                    timeout=self.metadata_timeout,
                )
            track_url = self._pick_track(info)
            if not track_url:
                logger.info(f"No '{self.language}' caption track for {url}")
                return None

            async with httpx.AsyncClient(
                timeout=self.download_timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(track_url)
                response.raise_for_status()

            text = flatten_vtt(response.text)
        except Exception as e:
            logger.warning(f"Transcript unavailable for {url}: {e}")
            return None

        if not text:
            return None
        logger.info(f"Transcript fetched: {len(text.split())} words")
        return text
