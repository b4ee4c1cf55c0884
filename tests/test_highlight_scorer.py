"""
Tests for AI highlight scoring, its response contract and the heuristic fallback.
"""
import json

import pytest

from conftest import ai_with
from services.repurpose.contracts import ContractValidationError, parse_analysis, strip_code_fences
from services.repurpose.highlight_scorer import (
    DEFAULT_REASON,
    HEURISTIC_KEYWORDS,
    HighlightScorer,
    template_title,
)
from shared.models import Highlight, VideoInfo


def video(duration=180):
    return VideoInfo(
        title="How Rockets Work",
        duration_seconds=duration,
        description="x" * 900,
        thumbnail_urls=(),
        source_id="abc123",
    )


def reply(segments, **extra):
    return json.dumps({"segments": segments, **extra})


class TestContracts:
    """Model reply parsing."""

    def test_object_form(self):
        payload = parse_analysis(reply([{"start": 10, "end": 40, "score": 8}], summary="ok", viralPotential=0.9))
        assert payload.segments[0].start == 10
        assert payload.summary == "ok"
        assert payload.viral_potential == 0.9

    def test_bare_array(self):
        payload = parse_analysis(json.dumps([{"start": 1}, {"start": 2}]))
        assert [s.start for s in payload.segments] == [1, 2]

    def test_code_fences(self):
        text = "Here you go:\n```json\n" + reply([{"start": 5}]) + "\n```"
        assert strip_code_fences(text) == reply([{"start": 5}])
        assert parse_analysis(text).segments[0].start == 5

    def test_keyword_string_is_split(self):
        payload = parse_analysis(reply([{"keywords": "space, rockets ,"}]))
        assert payload.segments[0].keywords == ["space", "rockets"]

    def test_invalid_json(self):
        with pytest.raises(ContractValidationError):
            parse_analysis("definitely not json")

    def test_schema_violation(self):
        with pytest.raises(ContractValidationError):
            parse_analysis(reply([{"start": "soon"}]))

    def test_scalar_json(self):
        with pytest.raises(ContractValidationError):
            parse_analysis("42")


class TestHeuristic:
    """Deterministic fallback highlights."""

    def test_three_minute_video(self, settings, no_ai):
        analysis = HighlightScorer(settings, no_ai).heuristic(180)
        assert len(analysis.highlights) == 6
        assert [h.score for h in analysis.highlights] == [0.9, 0.8, 0.7, 0.6, 0.5, 0.4]
        assert [h.start_seconds for h in analysis.highlights] == [0, 30, 60, 90, 120, 150]
        assert all(h.end_seconds - h.start_seconds == 30 for h in analysis.highlights)
        assert analysis.highlights[1].keywords == HEURISTIC_KEYWORDS[1]
        assert analysis.viral_potential == 0.8
        assert analysis.summary.startswith("Heuristic analysis")

    def test_capped_at_eight(self, settings, no_ai):
        analysis = HighlightScorer(settings, no_ai).heuristic(3600)
        assert len(analysis.highlights) == 8
        assert analysis.highlights[1].start_seconds == 450

    def test_short_video_gets_one_highlight(self, settings, no_ai):
        analysis = HighlightScorer(settings, no_ai).heuristic(20)
        assert len(analysis.highlights) == 1
        assert analysis.highlights[0].start_seconds == 0
        assert analysis.highlights[0].end_seconds == 20

    def test_zero_duration(self, settings, no_ai):
        assert HighlightScorer(settings, no_ai).heuristic(0).highlights == []

    def test_uses_window_transcripts(self, settings, no_ai):
        analysis = HighlightScorer(settings, no_ai).heuristic(60, ["first words", ""])
        assert analysis.highlights[0].transcript_summary == "first words"
        assert analysis.highlights[1].transcript_summary == "Engaging content segment at 30s"

    def test_text_comes_from_window_holding_start(self, settings, no_ai):
        windows = [f"window {n}" for n in range(20)]
        analysis = HighlightScorer(settings, no_ai).heuristic(600, windows)
        by_start = {h.start_seconds: h.transcript_summary for h in analysis.highlights}
        assert by_start[0] == "window 0"
        assert by_start[75] == "window 2"
        assert by_start[525] == "window 17"


class TestScore:
    """AI path, fallbacks and invariants."""

    @pytest.mark.asyncio
    async def test_ai_unavailable_falls_back(self, settings, no_ai):
        result = await HighlightScorer(settings, no_ai).score(video(), [], 180)
        assert result.degraded
        assert result.reason == "ai unavailable"
        assert len(result.value.highlights) == 6

    @pytest.mark.asyncio
    async def test_ai_reply_is_ranked_and_normalized(self, settings):
        ai = ai_with(settings, reply(
            [
                {"start": 60, "end": 90, "score": 6, "keywords": ["launch"], "transcript": "liftoff", "reason": "big"},
                {"start": 10, "end": 40, "score": 9},
                {"start": 100, "end": 130, "score": 9},
            ],
            summary="Great video",
            viralPotential=0.95,
        ))
        result = await HighlightScorer(settings, ai).score(video(), ["a", "b"], 180)

        assert not result.degraded
        highlights = result.value.highlights
        assert [(h.start_seconds, h.score) for h in highlights] == [(10, 0.9), (100, 0.9), (60, 0.6)]
        assert highlights[0].keywords == ("engaging",)
        assert highlights[0].reason == DEFAULT_REASON
        assert highlights[2].transcript_summary == "liftoff"
        assert result.value.summary == "Great video"
        assert result.value.viral_potential == 0.95

    @pytest.mark.asyncio
    async def test_clamps_window_to_duration(self, settings):
        ai = ai_with(settings, reply([{"start": 170, "end": 230, "score": 7}]))
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        highlight = result.value.highlights[0]
        assert highlight.start_seconds == 170
        assert highlight.end_seconds == 180
        assert highlight.score == 0.7

    @pytest.mark.asyncio
    async def test_missing_fields_use_defaults(self, settings):
        ai = ai_with(settings, reply([{"start": -5}]))
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        highlight = result.value.highlights[0]
        assert highlight.start_seconds == 0
        assert highlight.end_seconds == 30
        assert highlight.score == 0.5
        assert result.value.summary == "AI analysis completed"
        assert result.value.viral_potential == 0.7

    @pytest.mark.asyncio
    async def test_scores_are_clamped(self, settings):
        ai = ai_with(settings, reply([{"start": 0, "end": 20, "score": 15}], viralPotential=3))
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        assert result.value.highlights[0].score == 1.0
        assert result.value.viral_potential == 1.0

    @pytest.mark.asyncio
    async def test_collapsed_windows_are_dropped(self, settings):
        ai = ai_with(settings, reply([{"start": 200, "end": 220}, {"start": 50, "end": 40}, {"start": 0, "end": 15}]))
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        assert [(h.start_seconds, h.end_seconds) for h in result.value.highlights] == [(0, 15)]

    @pytest.mark.asyncio
    async def test_malformed_reply_falls_back(self, settings):
        ai = ai_with(settings, "I think the best part is at 1:30")
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        assert result.degraded
        assert result.reason == "invalid ai response"
        assert [h.score for h in result.value.highlights] == [0.9, 0.8, 0.7, 0.6, 0.5, 0.4]

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self, settings):
        ai = ai_with(settings, reply([]))
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        assert result.degraded
        assert result.reason == "empty ai response"

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self, settings):
        ai = ai_with(settings, RuntimeError("503"))
        result = await HighlightScorer(settings, ai).score(video(), [], 180)
        assert result.degraded
        assert result.reason == "no ai response"

    @pytest.mark.asyncio
    async def test_every_result_satisfies_invariants(self, settings):
        for text in (reply([{"start": 170, "end": 230, "score": 40}, {"start": 3}]), "garbage", None):
            ai = ai_with(settings, text)
            result = await HighlightScorer(settings, ai).score(video(), [], 180)
            highlights = result.value.highlights
            assert highlights
            for h in highlights:
                assert 0 <= h.start_seconds < h.end_seconds <= 180
                assert 0 <= h.score <= 1
            keys = [(-h.score, h.start_seconds) for h in highlights]
            assert keys == sorted(keys)

    @pytest.mark.asyncio
    async def test_prompt_contents(self, settings):
        ai = ai_with(settings, reply([{"start": 0, "end": 30}]))
        await HighlightScorer(settings, ai).score(video(), ["intro words", "middle words"], 180)
        request = ai._client.requests[0]
        prompt = request["messages"][1]["content"]
        assert "Video Title: How Rockets Work" in prompt
        assert "x" * 500 + "..." in prompt
        assert "x" * 501 not in prompt
        assert "0s: intro words" in prompt
        assert "30s: middle words" in prompt
        assert request["temperature"] == 0.7
        assert request["response_format"] == {"type": "json_object"}


class TestTitles:
    """Reel titles."""

    def highlight(self, start=0, keywords=("rockets",)):
        return Highlight(
            start_seconds=start, end_seconds=start + 30, score=0.9,
            keywords=keywords, transcript_summary="t", reason="r",
        )

    def test_template_is_deterministic(self):
        assert template_title(self.highlight(0)) == "ROCKETS! You won't believe this..."
        assert template_title(self.highlight(1)) == "This rockets moment is INSANE"
        assert template_title(self.highlight(5)) == template_title(self.highlight(0))

    def test_template_without_keywords(self):
        assert template_title(self.highlight(3, keywords=())) == "Wait for it... engaging surprise!"

    def test_template_is_capped(self):
        assert len(template_title(self.highlight(0, keywords=("x" * 80,)))) == 50

    @pytest.mark.asyncio
    async def test_ai_title_trimmed(self, settings):
        ai = ai_with(settings, '"' + "Rockets " * 10 + '"')
        title = await HighlightScorer(settings, ai).title_for(self.highlight(), "How Rockets Work")
        assert len(title) <= 50
        assert title.startswith("Rockets Rockets")
        assert ai._client.requests[0]["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_ai_failure_uses_template(self, settings):
        ai = ai_with(settings, RuntimeError("boom"))
        title = await HighlightScorer(settings, ai).title_for(self.highlight(2), "How Rockets Work")
        assert title == "rockets content that went VIRAL"

    @pytest.mark.asyncio
    async def test_no_ai_uses_template(self, settings, no_ai):
        title = await HighlightScorer(settings, no_ai).title_for(self.highlight(4), "How Rockets Work")
        assert title == "rockets hack everyone needs to see"
