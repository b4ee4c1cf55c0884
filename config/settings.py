"""
Reel Pipeline service configuration.

Everything that depends on the process environment is read here, once, into a
``Settings`` object. Components receive that object in their constructors and
never look at ``os.environ`` themselves.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

# Service settings
SERVICE_NAME = "reel-pipeline"
SERVICE_VERSION = "1.0.0"
SERVICE_PORT = int(os.getenv("PORT", 6004))

# Paths
BASE_DIR = Path(__file__).parent.parent

# Subtitle / output formats
SUBTITLE_FORMATS = ["srt", "vtt", "ass"]
SUBTITLE_STYLES = ["modern", "bold", "neon", "classic"]
REEL_ASPECT = "9:16"

# Request bounds
MIN_REELS = 1
MAX_REELS = 10
MIN_CLIP_DURATION = 5
MAX_CLIP_DURATION = 120

# Quick presets offered to the UI
PRESETS: Dict[str, Dict[str, object]] = {
    "viral": {"clip_duration": 15, "number_of_reels": 5, "subtitle_style": "bold"},
    "educational": {"clip_duration": 60, "number_of_reels": 3, "subtitle_style": "modern"},
    "comedy": {"clip_duration": 30, "number_of_reels": 5, "subtitle_style": "neon"},
    "highlights": {"clip_duration": 45, "number_of_reels": 3, "subtitle_style": "classic"},
}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime configuration for every pipeline component."""

    # AI inference
    openai_api_key: Optional[str] = None
    analysis_model: str = "gpt-4o-mini"
    creative_model: str = "gpt-4o-mini"
    ai_timeout: float = 30.0

    # Blob storage
    gcs_bucket: str = ""
    local_storage_dir: str = "/tmp/reel-pipeline/blobs"
    public_base_url: Optional[str] = None

    # Media toolchain
    ffmpeg_path: str = "ffmpeg"
    encoder: str = "ffmpeg"  # "ffmpeg" | "none"
    encode_timeout: float = 300.0

    # Source resolution budgets
    metadata_timeout: float = 20.0
    download_timeout: float = 30.0
    max_download_bytes: int = 50 * 1024 * 1024
    max_stream_bytes: int = 100 * 1024 * 1024
    fallback_duration: int = 180
    preferred_container: str = "mp4"

    # Analysis
    segment_window: int = 30
    max_segments: int = 10
    max_highlights: int = 8

    # Transcripts
    transcripts_enabled: bool = True
    transcript_language: str = "en"

    # Orchestration
    reel_concurrency: int = 1

    log_level: str = "INFO"

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def durable_storage(self) -> bool:
        return bool(self.gcs_bucket)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration from environment variables."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            analysis_model=os.getenv("REEL_ANALYSIS_MODEL", "gpt-4o-mini"),
            creative_model=os.getenv("REEL_CREATIVE_MODEL", "gpt-4o-mini"),
            ai_timeout=float(os.getenv("REEL_AI_TIMEOUT", "30")),
            gcs_bucket=os.getenv("GCS_BUCKET", "").strip(),
            local_storage_dir=os.getenv("REEL_STORAGE_DIR", "/tmp/reel-pipeline/blobs"),
            public_base_url=os.getenv("REEL_PUBLIC_BASE_URL") or None,
            ffmpeg_path=os.getenv("FFMPEG_PATH", "ffmpeg"),
            encoder=os.getenv("REEL_ENCODER", "ffmpeg").lower(),
            encode_timeout=float(os.getenv("REEL_ENCODE_TIMEOUT", "300")),
            metadata_timeout=float(os.getenv("REEL_METADATA_TIMEOUT", "20")),
            download_timeout=float(os.getenv("REEL_DOWNLOAD_TIMEOUT", "30")),
            max_download_bytes=int(os.getenv("REEL_MAX_DOWNLOAD_BYTES", str(50 * 1024 * 1024))),
            max_stream_bytes=int(os.getenv("REEL_MAX_STREAM_BYTES", str(100 * 1024 * 1024))),
            fallback_duration=int(os.getenv("REEL_FALLBACK_DURATION", "180")),
            segment_window=int(os.getenv("REEL_SEGMENT_WINDOW", "30")),
            max_segments=int(os.getenv("REEL_MAX_SEGMENTS", "10")),
            max_highlights=int(os.getenv("REEL_MAX_HIGHLIGHTS", "8")),
            transcripts_enabled=_env_bool("REEL_TRANSCRIPTS_ENABLED", True),
            transcript_language=os.getenv("REEL_TRANSCRIPT_LANGUAGE", "en"),
            reel_concurrency=int(os.getenv("REEL_CONCURRENCY", "1")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
