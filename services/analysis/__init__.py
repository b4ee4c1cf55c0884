"""Segment analysis for source videos."""

from .segment_analyzer import STOPWORDS, SegmentAnalyzer, extract_keywords

__all__ = ["SegmentAnalyzer", "extract_keywords", "STOPWORDS"]
