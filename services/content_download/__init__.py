"""
Content Download
================
Source resolution for YouTube URLs: validation, metadata, stream selection
and persistence to the blob store.
"""

from .source_resolver import (
    SourceResolver,
    extract_video_id,
    select_format,
    ytdlp_extract_info,
)

__all__ = [
    "SourceResolver",
    "extract_video_id",
    "select_format",
    "ytdlp_extract_info",
]
