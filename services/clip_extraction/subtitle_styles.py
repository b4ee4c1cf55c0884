"""
Subtitle Styles
===============
The fixed catalogue of named subtitle treatments.
"""

from typing import Dict

from shared.models import SubtitleStyle

DEFAULT_STYLE = "modern"

STYLES: Dict[str, SubtitleStyle] = {
    "modern": SubtitleStyle(
        name="modern",
        font_family="Arial, sans-serif",
        font_size_px=24,
        text_color="#FFFFFF",
        background_color="rgba(0, 0, 0, 0.8)",
        vertical_position="bottom",
        animation="fade",
    ),
    "bold": SubtitleStyle(
        name="bold",
        font_family="Impact, Arial Black, sans-serif",
        font_size_px=28,
        text_color="#FFFF00",
        background_color="rgba(0, 0, 0, 0.9)",
        vertical_position="center",
        animation="bounce",
    ),
    "neon": SubtitleStyle(
        name="neon",
        font_family="Orbitron, monospace",
        font_size_px=26,
        text_color="#00FFFF",
        background_color="rgba(0, 0, 0, 0.7)",
        vertical_position="bottom",
        animation="slide",
    ),
    "classic": SubtitleStyle(
        name="classic",
        font_family="Times New Roman, serif",
        font_size_px=22,
        text_color="#FFFFFF",
        background_color="rgba(0, 0, 0, 0.6)",
        vertical_position="bottom",
        animation="none",
    ),
}


def style_for(name: str) -> SubtitleStyle:
    """Look up a style by name (case-insensitive). Unknown names get the default."""
    key = (name or "").strip().lower()
    return STYLES.get(key, STYLES[DEFAULT_STYLE])
