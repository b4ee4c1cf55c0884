"""
Highlight Scorer
================
Ranks candidate windows of a source video by how well they would work as
short-form reels.

The model proposes highlights as JSON (validated against contracts.py); when
it is unavailable or its reply is unusable, a deterministic heuristic spreads
highlights evenly over the video instead.
"""

from typing import Iterable, List, Optional

from loguru import logger

from config.settings import Settings
from shared.ai_client import AIClient
from shared.models import Highlight, HighlightAnalysis, VideoInfo
from shared.result import StageResult

from .contracts import ContractValidationError, parse_analysis

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert social media content analyzer. Your job is to identify the most "
    "engaging and viral-worthy segments from video content that would work well as "
    "Instagram Reels."
)

TITLE_SYSTEM_PROMPT = (
    "You are a viral social media content creator. Create engaging, clickable titles for "
    "Instagram Reels that will maximize views and engagement."
)

DEFAULT_KEYWORDS = ("engaging",)
DEFAULT_REASON = "AI selected for engagement potential"
DEFAULT_SUMMARY = "AI analysis completed"
DEFAULT_VIRAL_POTENTIAL = 0.7
HEURISTIC_VIRAL_POTENTIAL = 0.8
HEURISTIC_SUMMARY = "Heuristic analysis - detected multiple engaging segments with high viral potential"
MAX_TITLE_LENGTH = 50

HEURISTIC_KEYWORDS = [
    ("shocking", "surprising", "wow"),
    ("funny", "hilarious", "comedy"),
    ("educational", "tutorial", "howto"),
    ("inspirational", "motivational", "uplifting"),
    ("trending", "viral", "popular"),
    ("dramatic", "intense", "emotional"),
    ("creative", "artistic", "unique"),
    ("informative", "facts", "knowledge"),
]

HEURISTIC_REASONS = [
    "High emotional impact with surprising content",
    "Humorous moment likely to be shared",
    "Educational value that provides clear benefit",
    "Inspirational message with broad appeal",
    "Trending topic with viral potential",
    "Dramatic peak that hooks viewers",
    "Creative demonstration with visual appeal",
    "Informative content that answers common questions",
]

TITLE_TEMPLATES = [
    "{upper}! You won't believe this...",
    "This {kw} moment is INSANE",
    "{kw} content that went VIRAL",
    "Wait for it... {kw} surprise!",
    "{kw} hack everyone needs to see",
]


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def rank(highlights: Iterable[Highlight]) -> List[Highlight]:
    """Score descending, earlier start first on ties."""
    return sorted(highlights, key=lambda h: (-h.score, h.start_seconds))


def template_title(highlight: Highlight) -> str:
    """Deterministic title picked by the highlight's start second."""
    keyword = highlight.keywords[0] if highlight.keywords else DEFAULT_KEYWORDS[0]
    template = TITLE_TEMPLATES[int(highlight.start_seconds) % len(TITLE_TEMPLATES)]
    return template.format(kw=keyword, upper=keyword.upper())[:MAX_TITLE_LENGTH]


class HighlightScorer:
    """
    AI highlight ranking with a heuristic fallback.

    Usage:
        scorer = HighlightScorer(settings, ai_client)
        result = await scorer.score(video_info, transcripts, duration)
        if result.degraded:
            ...  # heuristic highlights
    """

    def __init__(self, settings: Settings, ai: AIClient):
        self.ai = ai
        self.window_seconds = settings.segment_window
        self.max_highlights = settings.max_highlights
        self.creative_model = settings.creative_model

    def build_prompt(self, video_info: VideoInfo, transcripts: List[str]) -> str:
        """Analysis prompt; transcript lines are prefixed with their start second."""
        lines = "\n".join(
            f"{i * self.window_seconds}s: {text}" for i, text in enumerate(transcripts)
        )
        return f"""Analyze this video content for the best Instagram Reel segments:

Video Title: {video_info.title}
Video Duration: {video_info.duration_seconds} seconds
Description: {video_info.description[:500]}...

Transcript segments:
{lines}

Please identify the top 5-10 most engaging segments that would make great Instagram Reels. For each segment, provide:

1. Start time (in seconds)
2. End time (in seconds)
3. Engagement score (1-10)
4. Keywords that describe the content
5. Brief transcript summary
6. Reason why this segment would be viral

Focus on segments that have:
- High emotional impact
- Surprising or unexpected content
- Clear visual storytelling
- Quotable moments
- Educational value
- Entertainment factor

Respond in JSON format as an object:
{{"segments": [{{"start": 0, "end": 30, "score": 8, "keywords": ["..."], "transcript": "...", "reason": "..."}}], "summary": "...", "viralPotential": 0.8}}"""

    def parse(self, response: str, duration: float) -> HighlightAnalysis:
        """
        Turn a model reply into a ranked HighlightAnalysis.

        Windows are clamped to [0, duration]; those that collapse are dropped.

        Raises:
            ContractValidationError: If the reply does not match the contract
        """
        payload = parse_analysis(response)

        highlights = []
        for segment in payload.segments:
            start = max(0.0, segment.start or 0)
            end = min(float(duration), segment.end or start + self.window_seconds)
            if end <= start:
                logger.debug(f"Dropping collapsed window {start}-{end}")
                continue

            keywords = tuple(k for k in (segment.keywords or []) if k) or DEFAULT_KEYWORDS
            highlights.append(Highlight(
                start_seconds=start,
                end_seconds=end,
                score=_clamp((segment.score or 5) / 10),
                keywords=keywords,
                transcript_summary=segment.transcript or "",
                reason=segment.reason or DEFAULT_REASON,
            ))

        viral = payload.viral_potential
        return HighlightAnalysis(
            highlights=rank(highlights),
            summary=payload.summary or DEFAULT_SUMMARY,
            viral_potential=_clamp(DEFAULT_VIRAL_POTENTIAL if viral is None else viral),
        )

    def heuristic(self, duration: int, transcripts: Optional[List[str]] = None) -> HighlightAnalysis:
        """
        Evenly spaced highlights with decreasing scores.

        At least one highlight is produced for any positive duration. Each
        takes its text from the candidate window containing its start.
        """
        transcripts = transcripts or []
        count = min(self.max_highlights, int(duration // self.window_seconds))
        if duration > 0 and count == 0:
            count = 1

        highlights = []
        for i in range(count):
            start = int(duration / count * i)
            end = min(start + self.window_seconds, duration)
            window = start // self.window_seconds
            highlights.append(Highlight(
                start_seconds=start,
                end_seconds=end,
                score=max(0.0, round(0.9 - 0.1 * i, 2)),
                keywords=HEURISTIC_KEYWORDS[i % len(HEURISTIC_KEYWORDS)],
                transcript_summary=(
                    transcripts[window] if window < len(transcripts) and transcripts[window]
                    else f"Engaging content segment at {start}s"
                ),
                reason=HEURISTIC_REASONS[i % len(HEURISTIC_REASONS)],
            ))

        return HighlightAnalysis(
            highlights=rank(highlights),
            summary=HEURISTIC_SUMMARY,
            viral_potential=HEURISTIC_VIRAL_POTENTIAL,
        )

    async def score(
        self,
        video_info: VideoInfo,
        transcripts: List[str],
        duration: Optional[int] = None,
    ) -> StageResult[HighlightAnalysis]:
        """
        Rank highlights for a video.

        Args:
            video_info: Source metadata
            transcripts: Per-window transcript text, in window order
            duration: Video duration (defaults to video_info.duration_seconds)

        Returns:
            StageResult with the AI analysis, or a degraded heuristic analysis
        """
        if duration is None:
            duration = video_info.duration_seconds

        if not self.ai.available:
            return StageResult.fallback(self.heuristic(duration, transcripts), "ai unavailable")

        response = await self.ai.complete(
            ANALYSIS_SYSTEM_PROMPT,
            self.build_prompt(video_info, transcripts),
            temperature=0.7,
            json_mode=True,
        )
        if response is None:
            logger.warning("No usable analysis reply - falling back to heuristic highlights")
            return StageResult.fallback(self.heuristic(duration, transcripts), "no ai response")

        try:
            analysis = self.parse(response, duration)
        except ContractValidationError as e:
            logger.warning(f"Analysis reply rejected: {e} - falling back to heuristic highlights")
            return StageResult.fallback(self.heuristic(duration, transcripts), "invalid ai response")

        if not analysis.highlights:
            logger.warning("Analysis reply had no usable highlights - falling back to heuristic highlights")
            return StageResult.fallback(self.heuristic(duration, transcripts), "empty ai response")

        logger.info(f"AI selected {len(analysis.highlights)} highlights (viral potential {analysis.viral_potential:.2f})")
        return StageResult.ok(analysis)

    async def title_for(self, highlight: Highlight, original_title: str) -> str:
        """Short catchy title for a reel; template title when the model gives nothing."""
        if self.ai.available:
            response = await self.ai.complete(
                TITLE_SYSTEM_PROMPT,
                f"""Create a catchy title for this video segment:

Original title: {original_title}
Segment content: {highlight.transcript_summary}
Keywords: {', '.join(highlight.keywords)}
Why it's engaging: {highlight.reason}

Make it short (under 50 characters), engaging, and optimized for social media.""",
                temperature=0.8,
                model=self.creative_model,
            )
            title = (response or "").strip().strip('"').strip()[:MAX_TITLE_LENGTH]
            if title:
                return title

        return template_title(highlight)
