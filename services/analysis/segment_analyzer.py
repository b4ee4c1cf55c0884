"""
Segment Analyzer - splits a source video into fixed candidate windows
Each window carries its share of the transcript and a few naive keywords
"""
import re
from typing import List, Optional

from loguru import logger

from config.settings import Settings
from shared.models import CandidateSegment, VideoInfo

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "being", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "this", "that", "these", "those",
})

MAX_KEYWORDS = 5


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """
    Naive keyword extraction.

    Lowercases, splits on non-word characters, keeps tokens longer than three
    characters that are not stopwords, de-duplicates in order of appearance
    and returns the first ``limit``.
    """
    keywords: List[str] = []
    for token in re.split(r"\W+", (text or "").lower()):
        if len(token) <= 3 or token in STOPWORDS or token in keywords:
            continue
        keywords.append(token)
        if len(keywords) == limit:
            break
    return keywords


class SegmentAnalyzer:
    """Partitions a video into candidate segments"""

    def __init__(self, settings: Settings):
        self.window_seconds = settings.segment_window
        self.max_segments = settings.max_segments

    def partition(
        self,
        video_info: VideoInfo,
        transcript: Optional[str] = None,
    ) -> List[CandidateSegment]:
        """
        Split [0, duration) into fixed windows.

        Args:
            video_info: Source metadata (duration and title are used)
            transcript: Full transcript text, if one was found

        Returns:
            Ordered list of candidate segments (empty for zero-length videos)
        """
        duration = video_info.duration_seconds
        if duration <= 0:
            return []

        window = self.window_seconds
        count = min(duration // window, self.max_segments)
        if count == 0:
            count = 1

        words = transcript.split() if transcript else []
        words_per_second = len(words) / duration

        segments = []
        for i in range(count):
            start = i * window
            length = min(window, duration - start)
            if transcript:
                first = int(start * words_per_second)
                last = int((start + length) * words_per_second)
                text = " ".join(words[first:last])
            else:
                text = f"Segment {i + 1} of {video_info.title}"

            segments.append(CandidateSegment(
                start_seconds=start,
                duration_seconds=length,
                transcript_slice=text,
                keywords=tuple(extract_keywords(text)),
            ))

        logger.info(f"Partitioned {duration}s into {len(segments)} segments of {window}s")
        return segments
