"""
Reel Pipeline Data Model
========================
Entities passed between pipeline stages.

Source Resolver -> VideoInfo, StreamHandle, StoredSource
Segment Analyzer -> CandidateSegment
Highlight Scorer -> Highlight, HighlightAnalysis
Clip Renderer -> RenderedClip
Subtitle Engine -> SubtitleCue, SubtitleStyle, SubtitledClip
Orchestrator -> FinalReel, SessionResult
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from config.settings import (
    MAX_CLIP_DURATION,
    MAX_REELS,
    MIN_CLIP_DURATION,
    MIN_REELS,
    PRESETS,
    SUBTITLE_FORMATS,
)
from shared.errors import InvalidInput


def new_id() -> str:
    return uuid4().hex


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class BlobRef:
    """Opaque handle to an object in the blob store."""
    key: str
    url: str
    content_type: str = "application/octet-stream"
    placeholder: bool = False  # True when no bytes exist behind the key

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "url": self.url,
            "content_type": self.content_type,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class VideoInfo:
    """Source video metadata. Immutable once fetched."""
    title: str
    duration_seconds: int
    description: str
    thumbnail_urls: Tuple[str, ...]
    source_id: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)  # yt-dlp info dict, empty for demo info

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "duration_seconds": self.duration_seconds,
            "description": self.description,
            "thumbnail_urls": list(self.thumbnail_urls),
            "source_id": self.source_id,
        }


@dataclass(frozen=True)
class StreamHandle:
    """A downloadable encoded stream picked for the source."""
    url: str
    container: str = ""
    quality_label: str = ""
    size_bytes: Optional[int] = None
    http_headers: Dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class StoredSource:
    ref: BlobRef
    filename: str


@dataclass(frozen=True)
class CandidateSegment:
    """Fixed-length window of the source with its transcript slice."""
    start_seconds: int
    duration_seconds: int
    transcript_slice: str
    keywords: Tuple[str, ...] = ()

    @property
    def end_seconds(self) -> int:
        return self.start_seconds + self.duration_seconds


@dataclass(frozen=True)
class Highlight:
    """Scored, time-bounded window selected as a reel candidate."""
    start_seconds: float
    end_seconds: float
    score: float
    keywords: Tuple[str, ...]
    transcript_summary: str
    reason: str
    id: str = field(default_factory=new_id)

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start_seconds,
            "end": self.end_seconds,
            "score": self.score,
            "keywords": list(self.keywords),
            "transcript": self.transcript_summary,
            "reason": self.reason,
        }


@dataclass
class HighlightAnalysis:
    """Scorer output: ranked highlights plus session-level judgement."""
    highlights: List[Highlight]
    summary: str
    viral_potential: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "highlights": [h.to_dict() for h in self.highlights],
            "summary": self.summary,
            "viral_potential": self.viral_potential,
        }


@dataclass
class RenderedClip:
    """A standalone clip cut for one highlight."""
    id: str
    media_ref: BlobRef
    filename: str
    duration_seconds: float
    transcript: str
    keywords: Tuple[str, ...]
    manifest_ref: Optional[BlobRef] = None  # set when rendered without an encoder


@dataclass(frozen=True)
class SubtitleCue:
    """One timed subtitle line."""
    start_seconds: float
    end_seconds: float
    text: str
    enhanced: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start_seconds,
            "end": self.end_seconds,
            "text": self.text,
            "enhanced": self.enhanced,
        }


@dataclass(frozen=True)
class SubtitleStyle:
    """Named visual treatment for burned-in subtitles."""
    name: str
    font_family: str
    font_size_px: int
    text_color: str
    background_color: str
    vertical_position: str  # top | center | bottom
    animation: str  # none | fade | slide | bounce

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "font_family": self.font_family,
            "font_size_px": self.font_size_px,
            "text_color": self.text_color,
            "background_color": self.background_color,
            "vertical_position": self.vertical_position,
            "animation": self.animation,
        }


@dataclass
class SubtitledClip:
    media_ref: BlobRef
    cues: List[SubtitleCue]
    subtitle_ref: Optional[BlobRef] = None
    burned: bool = False


class ReelState(str, Enum):
    """Lifecycle of one highlight through the session."""
    SELECTED = "selected"
    RENDERING = "rendering"
    SUBTITLING = "subtitling"
    COMPLETED = "completed"
    DEGRADED = "degraded"


@dataclass
class FinalReel:
    """Terminal artifact of one highlight's journey through the pipeline."""
    id: str
    filename: str
    media_ref: BlobRef
    duration_seconds: float
    keywords: Tuple[str, ...]
    transcript: str
    subtitle_cue_count: int
    title: str = ""
    subtitle_ref: Optional[BlobRef] = None
    state: ReelState = ReelState.COMPLETED
    degraded_reasons: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.state == ReelState.DEGRADED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "download_url": self.media_ref.url,
            "media_key": self.media_ref.key,
            "duration": self.duration_seconds,
            "keywords": list(self.keywords),
            "transcript": self.transcript,
            "subtitle_segments": self.subtitle_cue_count,
            "subtitle_url": self.subtitle_ref.url if self.subtitle_ref else None,
            "title": self.title,
            "state": self.state.value,
            "degraded": self.degraded,
            "degraded_reasons": list(self.degraded_reasons),
        }


@dataclass
class ReelRequest:
    """Caller's request for one session."""
    url: str
    number_of_reels: int = 3
    clip_duration: int = 30
    subtitle_style: str = "modern"
    subtitle_format: str = "srt"
    burn_subtitles: bool = True
    generate_titles: bool = True

    def validate(self) -> None:
        """Raise InvalidInput if the request cannot start a session."""
        if not isinstance(self.url, str) or not self.url.strip():
            raise InvalidInput("A video URL is required")
        if not MIN_REELS <= self.number_of_reels <= MAX_REELS:
            raise InvalidInput(
                f"number_of_reels must be between {MIN_REELS} and {MAX_REELS}"
            )
        if not MIN_CLIP_DURATION <= self.clip_duration <= MAX_CLIP_DURATION:
            raise InvalidInput(
                f"clip_duration must be between {MIN_CLIP_DURATION} and {MAX_CLIP_DURATION} seconds"
            )
        if self.subtitle_format not in SUBTITLE_FORMATS:
            raise InvalidInput(f"Unsupported subtitle format: {self.subtitle_format}")

    @classmethod
    def from_preset(cls, url: str, preset: str, **overrides: Any) -> "ReelRequest":
        if preset not in PRESETS:
            raise InvalidInput(f"Unknown preset: {preset}")
        values = dict(PRESETS[preset])
        values.update(overrides)
        return cls(url=url, **values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReelRequest":
        """Build a request from a JSON body (snake_case or camelCase keys)."""
        url = data.get("url") or data.get("youtube_url") or data.get("youtubeUrl") or ""
        preset = data.get("preset")
        overrides = {}
        for name, camel in (
            ("number_of_reels", "numberOfReels"),
            ("clip_duration", "clipDuration"),
            ("subtitle_style", "subtitleStyle"),
            ("subtitle_format", "subtitleFormat"),
            ("burn_subtitles", "burnSubtitles"),
            ("generate_titles", "generateTitles"),
        ):
            value = data.get(name, data.get(camel))
            if value is not None:
                overrides[name] = value
        try:
            for name in ("number_of_reels", "clip_duration"):
                if name in overrides:
                    overrides[name] = int(overrides[name])
        except (TypeError, ValueError):
            raise InvalidInput("number_of_reels and clip_duration must be integers")
        for name in ("burn_subtitles", "generate_titles"):
            if name in overrides:
                overrides[name] = _as_bool(overrides[name])
        if isinstance(overrides.get("subtitle_format"), str):
            overrides["subtitle_format"] = overrides["subtitle_format"].strip().lower()
        if preset:
            return cls.from_preset(url, preset, **overrides)
        return cls(url=url, **overrides)


@dataclass
class SessionResult:
    """Everything the caller gets back for one session."""
    session_id: str
    video_title: str
    original_duration: int
    reels: List[FinalReel]
    summary: str = ""
    viral_potential: float = 0.0
    ai_enhanced: bool = False
    storage_mode: str = "local"
    encoder: str = "none"

    @property
    def clips_generated(self) -> int:
        return len(self.reels)

    @property
    def degraded_count(self) -> int:
        return sum(1 for reel in self.reels if reel.degraded)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "session_id": self.session_id,
            "video_title": self.video_title,
            "original_duration": self.original_duration,
            "clips_generated": self.clips_generated,
            "degraded_count": self.degraded_count,
            "summary": self.summary,
            "viral_potential": self.viral_potential,
            "processing": {
                "ai_enhanced": self.ai_enhanced,
                "storage_mode": self.storage_mode,
                "encoder": self.encoder,
            },
            "reels": [reel.to_dict() for reel in self.reels],
        }
