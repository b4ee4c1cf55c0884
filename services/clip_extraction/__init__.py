"""
Clip Extraction Service
=======================
Per-highlight clip rendering and subtitle synthesis.

- clip_renderer: 9:16 clips (or manifests when no encoder exists)
- subtitle_generator: enhance, segment, style, render and burn subtitles
- subtitle_formats / subtitle_styles: SRT/VTT/ASS codecs and the style catalogue
"""

from .clip_renderer import ClipRenderer
from .subtitle_formats import format_cues, parse_srt, parse_vtt
from .subtitle_generator import SubtitleEngine
from .subtitle_styles import STYLES, style_for

__all__ = [
    'ClipRenderer',
    'SubtitleEngine',
    'STYLES',
    'style_for',
    'format_cues',
    'parse_srt',
    'parse_vtt',
]
