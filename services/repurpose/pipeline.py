"""
Reel Pipeline Orchestrator
==========================
Main orchestrator for turning one long-form video into short reels.

Coordinates:
- Source resolution and persistence
- Transcript lookup and segment analysis
- Highlight scoring
- Per-highlight rendering and subtitles
- Optional titles

Every highlight moves through selected -> rendering -> subtitling ->
completed; any fallback or error moves it to degraded instead, and it still
yields a reel built from the best artifact produced so far.
"""

import asyncio
from dataclasses import replace
from typing import List, Optional, Tuple

from loguru import logger

from config import get_settings
from config.settings import Settings
from services.analysis.segment_analyzer import SegmentAnalyzer
from services.clip_extraction.clip_renderer import ClipRenderer
from services.clip_extraction.subtitle_generator import SubtitleEngine
from services.content_download.source_resolver import SourceResolver
from services.storage import get_blob_store
from services.storage.base import BlobStore
from services.transcription.transcript_provider import TranscriptProvider
from services.video_renderer import get_encode_backend
from services.video_renderer.base import EncodeBackend
from shared.ai_client import AIClient
from shared.errors import InvalidInput
from shared.models import (
    BlobRef,
    FinalReel,
    Highlight,
    HighlightAnalysis,
    ReelRequest,
    ReelState,
    RenderedClip,
    SessionResult,
    SubtitledClip,
    VideoInfo,
    new_id,
)

from .highlight_scorer import HighlightScorer

PADDED_REASON = "padded"

Selection = Tuple[Highlight, List[str]]


class ReelPipeline:
    """
    Reel Pipeline

    Usage:
        pipeline = ReelPipeline.from_settings()
        result = await pipeline.run(ReelRequest(url="https://youtu.be/abc123", number_of_reels=3))

    Components can be passed in directly (tests use fakes for the AI client,
    encode backend and metadata extractor).
    """

    def __init__(
        self,
        settings: Settings,
        store: BlobStore,
        ai: AIClient,
        backend: Optional[EncodeBackend],
        resolver: Optional[SourceResolver] = None,
        transcripts: Optional[TranscriptProvider] = None,
        analyzer: Optional[SegmentAnalyzer] = None,
        scorer: Optional[HighlightScorer] = None,
        renderer: Optional[ClipRenderer] = None,
        subtitles: Optional[SubtitleEngine] = None,
    ):
        self.settings = settings
        self.store = store
        self.ai = ai
        self.backend = backend

        self.resolver = resolver or SourceResolver(settings, store)
        self.transcripts = transcripts or TranscriptProvider(settings)
        self.analyzer = analyzer or SegmentAnalyzer(settings)
        self.scorer = scorer or HighlightScorer(settings, ai)
        self.renderer = renderer or ClipRenderer(settings, store, backend)
        self.subtitles = subtitles or SubtitleEngine(settings, ai, store, backend)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ReelPipeline":
        """Build a pipeline with the store, AI client and encoder the settings describe."""
        settings = settings or get_settings()
        store = get_blob_store(settings)
        return cls(
            settings=settings,
            store=store,
            ai=AIClient(settings),
            backend=get_encode_backend(settings, store),
        )

    async def run(self, request: ReelRequest) -> SessionResult:
        """
        Process one video into ``request.number_of_reels`` reels.

        Args:
            request: Validated or raw ReelRequest

        Returns:
            SessionResult with exactly number_of_reels reels

        Raises:
            InvalidInput: If the request or URL is invalid
        """
        request.validate()
        if not self.resolver.validate(request.url):
            raise InvalidInput(f"Invalid YouTube URL: {request.url}")

        session_id = new_id()
        logger.info(f"🎬 Session {session_id}: {request.number_of_reels} reels from {request.url}")

        session_reasons: List[str] = []

        # Step 1: metadata (the info dict is reused for formats and captions)
        info_result = await self.resolver.fetch_info(request.url)
        info = info_result.value
        if info_result.degraded:
            session_reasons.append(f"metadata: {info_result.reason}")

        # Step 2: source media
        source_result = await self.resolver.persist_to_store(request.url, info)
        source_ref = source_result.value.ref

        # Step 3: transcript + candidate windows
        transcript = await self.transcripts.fetch(request.url, info.raw)
        segments = self.analyzer.partition(info, transcript)
        window_texts = [segment.transcript_slice for segment in segments]

        # Step 4: highlights
        analysis_result = await self.scorer.score(info, window_texts, info.duration_seconds)
        analysis = analysis_result.value
        if analysis_result.degraded:
            session_reasons.append(f"highlights: {analysis_result.reason}")

        selections = self._select(analysis, request, info, window_texts)

        # Step 5: per-highlight work
        reels = await self._process_all(selections, session_reasons, source_ref, request)

        # Step 6: titles
        if request.generate_titles:
            for reel, (highlight, _) in zip(reels, selections):
                reel.title = await self.scorer.title_for(highlight, info.title)

        result = SessionResult(
            session_id=session_id,
            video_title=info.title,
            original_duration=info.duration_seconds,
            reels=reels,
            summary=analysis.summary,
            viral_potential=analysis.viral_potential,
            ai_enhanced=not analysis_result.degraded,
            storage_mode="durable" if self.store.durable else "local",
            encoder=self.renderer.encoder_name,
        )
        logger.info(
            f"✅ Session {session_id}: {result.clips_generated} reels "
            f"({result.degraded_count} degraded)"
        )
        return result

    def _fit(self, highlight: Highlight, clip_duration: int) -> Highlight:
        """Trim a highlight to the requested clip length."""
        if highlight.duration_seconds <= clip_duration:
            return highlight
        return replace(highlight, end_seconds=highlight.start_seconds + clip_duration)

    def _select(
        self,
        analysis: HighlightAnalysis,
        request: ReelRequest,
        info: VideoInfo,
        window_texts: List[str],
    ) -> List[Selection]:
        """
        Top-ranked highlights, padded with heuristic windows up to number_of_reels.
        """
        wanted = request.number_of_reels
        selections: List[Selection] = [
            (self._fit(h, request.clip_duration), []) for h in analysis.highlights[:wanted]
        ]
        if len(selections) >= wanted:
            return selections

        padding = self.scorer.heuristic(info.duration_seconds, window_texts).highlights
        if not padding:
            padding = [Highlight(
                start_seconds=0,
                end_seconds=request.clip_duration,
                score=0.0,
                keywords=("engaging",),
                transcript_summary=info.title,
                reason=PADDED_REASON,
            )]

        used = {h.start_seconds for h, _ in selections}
        fresh = [h for h in padding if h.start_seconds not in used] or padding
        logger.warning(
            f"Only {len(selections)} highlights for {wanted} reels - padding with heuristic windows"
        )

        i = 0
        while len(selections) < wanted:
            base = fresh[i % len(fresh)]
            selections.append((self._fit(replace(base, id=new_id()), request.clip_duration), [PADDED_REASON]))
            i += 1
        return selections

    async def _process_all(
        self,
        selections: List[Selection],
        session_reasons: List[str],
        source_ref: BlobRef,
        request: ReelRequest,
    ) -> List[FinalReel]:
        """Sequential by default; reel_concurrency > 1 switches to a bounded pool."""
        concurrency = self.settings.reel_concurrency
        if concurrency <= 1:
            reels = []
            for highlight, reasons in selections:
                reels.append(await self._process(highlight, session_reasons + reasons, source_ref, request))
            return reels

        semaphore = asyncio.Semaphore(concurrency)

        async def _bounded(selection: Selection) -> FinalReel:
            highlight, reasons = selection
            async with semaphore:
                return await self._process(highlight, session_reasons + reasons, source_ref, request)

        return list(await asyncio.gather(*(_bounded(s) for s in selections)))

    async def _process(
        self,
        highlight: Highlight,
        inherited_reasons: List[str],
        source_ref: BlobRef,
        request: ReelRequest,
    ) -> FinalReel:
        """Run one highlight through rendering and subtitles. Never raises."""
        reasons = list(inherited_reasons)
        state = ReelState.SELECTED
        clip: Optional[RenderedClip] = None
        subtitled: Optional[SubtitledClip] = None

        try:
            state = ReelState.RENDERING
            rendered = await self.renderer.render_or_degrade(highlight, source_ref)
            clip = rendered.value
            if rendered.degraded:
                reasons.append(rendered.reason)

            state = ReelState.SUBTITLING
            captioned = await self.subtitles.subtitle_clip(
                clip,
                style_name=request.subtitle_style,
                fmt=request.subtitle_format,
                burn=request.burn_subtitles and not rendered.degraded,
            )
            subtitled = captioned.value
            if captioned.degraded:
                reasons.append(captioned.reason)
        except Exception as e:
            logger.exception(f"Reel {highlight.id} failed while {state.value}")
            reasons.append(f"{state.value} failed: {e}")

        final_state = ReelState.DEGRADED if reasons else ReelState.COMPLETED
        logger.debug(f"Reel {highlight.id}: {state.value} -> {final_state.value}")

        if subtitled is not None:
            media_ref = subtitled.media_ref
        elif clip is not None:
            media_ref = clip.media_ref
        else:
            media_ref = source_ref

        return FinalReel(
            id=highlight.id,
            filename=clip.filename if clip else media_ref.key.rsplit("/", 1)[-1],
            media_ref=media_ref,
            duration_seconds=highlight.duration_seconds,
            keywords=highlight.keywords,
            transcript=highlight.transcript_summary,
            subtitle_cue_count=len(subtitled.cues) if subtitled else 0,
            subtitle_ref=subtitled.subtitle_ref if subtitled else None,
            state=final_state,
            degraded_reasons=reasons,
        )
