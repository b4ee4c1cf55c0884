"""
Configuration package.

Usage:
    from config import get_settings

    settings = get_settings()
"""
from typing import Optional

from .settings import (
    MAX_CLIP_DURATION,
    MAX_REELS,
    MIN_CLIP_DURATION,
    MIN_REELS,
    PRESETS,
    REEL_ASPECT,
    SERVICE_NAME,
    SERVICE_VERSION,
    SUBTITLE_FORMATS,
    SUBTITLE_STYLES,
    Settings,
)

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


__all__ = [
    "Settings",
    "get_settings",
    "PRESETS",
    "SERVICE_NAME",
    "SERVICE_VERSION",
    "SUBTITLE_FORMATS",
    "SUBTITLE_STYLES",
    "REEL_ASPECT",
    "MIN_REELS",
    "MAX_REELS",
    "MIN_CLIP_DURATION",
    "MAX_CLIP_DURATION",
]
