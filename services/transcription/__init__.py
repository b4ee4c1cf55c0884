"""
Transcription
Caption-track transcripts for source videos
"""

from .transcript_provider import TranscriptProvider, flatten_vtt

__all__ = ["TranscriptProvider", "flatten_vtt"]
