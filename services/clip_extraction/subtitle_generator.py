"""
Subtitle Generator for Rendered Clips
=====================================
Turns a clip's transcript into timed, styled subtitles.

Steps:
- optional AI rewrite into short punchy "|"-separated lines
- fixed 3 second cues (one per line, or 5 words each without a rewrite)
- sidecar file in SRT, VTT or ASS
- optional burn-in through the encode backend
"""

import asyncio
import logging
import time
from typing import List, Optional

from config.settings import Settings
from services.storage.base import BlobStore
from services.video_renderer.base import EncodeBackend
from shared.ai_client import AIClient
from shared.errors import ResourceExhausted, UpstreamUnavailable
from shared.models import BlobRef, RenderedClip, SubtitleCue, SubtitledClip, SubtitleStyle
from shared.result import StageResult

from .subtitle_formats import CONTENT_TYPES, format_cues
from .subtitle_styles import style_for

logger = logging.getLogger(__name__)

CUE_SECONDS = 3
WORDS_PER_CUE = 5
SEGMENT_SEPARATOR = "|"

ENHANCE_SYSTEM_PROMPT = """You are an expert at creating engaging social media content. Your task is to enhance video transcripts to make them more viral and engaging for Instagram Reels.

Rules:
1. Keep the core message intact
2. Add engaging hooks and power words
3. Use strategic emojis (max 3 per sentence)
4. Break into short, punchy sentences
5. Add calls to action when appropriate
6. Make it feel conversational and energetic
7. Focus on these keywords: {keywords}

Format the output as short subtitle-friendly segments separated by "|\""""


class SubtitleEngine:
    """
    Generates subtitles for rendered clips.

    Features:
    - AI transcript enhancement with a plain-text fallback
    - Index-derived cue timing (3 seconds per cue)
    - Four named styles (modern, bold, neon, classic)
    - Sidecar files plus ffmpeg burn-in
    """

    def __init__(
        self,
        settings: Settings,
        ai: AIClient,
        store: BlobStore,
        backend: Optional[EncodeBackend] = None,
    ):
        self.ai = ai
        self.store = store
        self.backend = backend
        self.creative_model = settings.creative_model
        self.encode_timeout = settings.encode_timeout

    async def enhance(self, transcript: str, keywords: List[str]) -> str:
        """
        Rewrite a transcript for social media.

        Returns the transcript unchanged when the model is unavailable or
        returns nothing.
        """
        if not transcript or not transcript.strip():
            return transcript

        response = await self.ai.complete(
            ENHANCE_SYSTEM_PROMPT.format(keywords=", ".join(keywords)),
            f'Enhance this transcript for maximum engagement: "{transcript}"',
            temperature=0.8,
            max_tokens=500,
            model=self.creative_model,
        )
        if not response:
            return transcript
        logger.info("Transcript enhanced successfully")
        return response.strip()

    def segment(self, text: str) -> List[SubtitleCue]:
        """
        Split text into 3 second cues.

        "|"-separated text gives one cue per non-empty piece (enhanced);
        anything else is grouped five words per cue.
        """
        if not text or not text.strip():
            return []

        if SEGMENT_SEPARATOR in text:
            pieces = [p.strip() for p in text.split(SEGMENT_SEPARATOR) if p.strip()]
            enhanced = True
        else:
            words = text.split()
            pieces = [
                " ".join(words[i:i + WORDS_PER_CUE])
                for i in range(0, len(words), WORDS_PER_CUE)
            ]
            enhanced = False

        return [
            SubtitleCue(
                start_seconds=i * CUE_SECONDS,
                end_seconds=(i + 1) * CUE_SECONDS,
                text=piece,
                enhanced=enhanced,
            )
            for i, piece in enumerate(pieces)
        ]

    def style_for(self, name: str) -> SubtitleStyle:
        return style_for(name)

    async def render(self, cues: List[SubtitleCue], fmt: str, clip_id: str) -> BlobRef:
        """Serialize cues and store them as subtitles/<clip_id>-<millis>.<fmt>."""
        fmt = fmt.lower()
        content = format_cues(cues, fmt)
        key = f"subtitles/{clip_id}-{int(time.time() * 1000)}.{fmt}"
        return await self.store.put(key, content.encode("utf-8"), CONTENT_TYPES[fmt])

    async def burn_in(
        self,
        media_ref: BlobRef,
        cues: List[SubtitleCue],
        style: SubtitleStyle,
        output_name: str,
    ) -> BlobRef:
        """
        Burn cues into the clip frames.

        Raises:
            UpstreamUnavailable: If there is no encoder or no media to burn into
            ResourceExhausted: If encoding exceeds the encode timeout
        """
        if self.backend is None:
            raise UpstreamUnavailable("No encode backend available for burn-in")
        if media_ref.placeholder:
            raise UpstreamUnavailable(f"No media behind {media_ref.key}")

        try:
            return await asyncio.wait_for(
                self.backend.burn_subtitles(media_ref, cues, style, f"reels/{output_name}"),
                timeout=self.encode_timeout,
            )
        except asyncio.TimeoutError:
            raise ResourceExhausted(
                f"Burn-in exceeded {self.encode_timeout}s",
                limit=int(self.encode_timeout),
            )

    async def subtitle_clip(
        self,
        clip: RenderedClip,
        style_name: str = "modern",
        fmt: str = "srt",
        burn: bool = True,
    ) -> StageResult[SubtitledClip]:
        """
        Full pipeline: enhance, segment, style, write sidecar, burn.

        A failed sidecar write or burn-in degrades the result; the unburned
        media is kept in that case.
        """
        text = await self.enhance(clip.transcript, list(clip.keywords))
        cues = self.segment(text)
        style = self.style_for(style_name)
        problems = []

        subtitle_ref = None
        if cues:
            try:
                subtitle_ref = await self.render(cues, fmt, clip.id)
            except Exception as e:
                logger.warning(f"Subtitle file for {clip.id} failed: {e}")
                problems.append(f"subtitle file failed: {e}")

        media_ref = clip.media_ref
        burned = False
        if burn and cues:
            try:
                media_ref = await self.burn_in(
                    clip.media_ref, cues, style, f"{clip.id}-{int(time.time() * 1000)}.mp4"
                )
                burned = True
                logger.info(f"Subtitles burned into {media_ref.key}")
            except Exception as e:
                logger.warning(f"Burn-in for {clip.id} failed: {e}")
                problems.append(f"burn-in failed: {e}")

        result = SubtitledClip(media_ref=media_ref, cues=cues, subtitle_ref=subtitle_ref, burned=burned)
        if problems:
            return StageResult.fallback(result, "; ".join(problems))
        return StageResult.ok(result)
