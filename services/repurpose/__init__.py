"""
Reel Pipeline
=============
Turn one long-form video into several 9:16 reels with AI-selected highlights
and stylized subtitles.

Features:
- AI highlight ranking with a heuristic fallback
- Vertical reframing
- Styled subtitles (sidecar + burn-in)
- Per-reel degraded flag instead of session failures
"""

from .highlight_scorer import HighlightScorer, template_title
from .pipeline import ReelPipeline

__all__ = ['HighlightScorer', 'ReelPipeline', 'template_title']
