"""
Shared fixtures and fakes for reel-pipeline tests.

Fakes stand in for the three things that need the network or binaries:
the OpenAI client, the ffmpeg encode backend and yt-dlp metadata lookups.
"""
import os
import sys
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import Settings  # noqa: E402
from services.content_download.source_resolver import SourceResolver  # noqa: E402
from services.repurpose.pipeline import ReelPipeline  # noqa: E402
from services.storage.local_store import LocalBlobStore  # noqa: E402
from services.transcription.transcript_provider import TranscriptProvider  # noqa: E402
from services.video_renderer.base import EncodeBackend  # noqa: E402
from shared.ai_client import AIClient  # noqa: E402
from shared.models import BlobRef, SubtitleCue, SubtitleStyle  # noqa: E402

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
VIDEO_ID = "dQw4w9WgXcQ"

Reply = Union[str, None, Exception, Callable[[Dict[str, Any]], Optional[str]]]


class FakeOpenAI:
    """
    Stand-in for openai.AsyncOpenAI.

    ``reply`` is returned for every call: a string, None (empty content), an
    exception to raise, or a callable receiving the request kwargs.
    """

    def __init__(self, reply: Reply = None):
        self.reply = reply
        self.requests: List[Dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        reply = self.reply
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(kwargs)
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeBackend(EncodeBackend):
    """Encode backend that writes small marker files instead of running ffmpeg."""

    def __init__(self, store, fail_extract_at: Optional[set] = None, fail_burn: bool = False):
        self.store = store
        self.fail_extract_at = fail_extract_at or set()
        self.fail_burn = fail_burn
        self.extract_calls: List[Dict[str, Any]] = []
        self.burn_calls: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def extract(self, source_ref: BlobRef, start: float, end: float, aspect: str, output_key: str) -> BlobRef:
        self.extract_calls.append({
            "source": source_ref.key, "start": start, "end": end, "aspect": aspect, "key": output_key,
        })
        if start in self.fail_extract_at:
            raise RuntimeError(f"FFmpeg failed at {start}")
        return await self.store.put(output_key, f"clip {start}-{end}".encode(), "video/mp4")

    async def burn_subtitles(self, clip_ref: BlobRef, cues: List[SubtitleCue], style: SubtitleStyle, output_key: str) -> BlobRef:
        self.burn_calls.append({"clip": clip_ref.key, "cues": len(cues), "style": style.name, "key": output_key})
        if self.fail_burn:
            raise RuntimeError("FFmpeg burn failed")
        return await self.store.put(output_key, b"burned", "video/mp4")


def make_info(
    duration: int = 180,
    video_id: str = VIDEO_ID,
    formats: Optional[List[Dict[str, Any]]] = None,
    subtitles: Optional[Dict[str, Any]] = None,
    automatic_captions: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """A yt-dlp style info dict."""
    return {
        "id": video_id,
        "title": "How Rockets Work",
        "duration": duration,
        "description": "A long explanation of rockets. " * 40,
        "thumbnails": [
            {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
            {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
        ],
        "formats": formats if formats is not None else [
            {
                "url": "https://media.example/18.mp4",
                "ext": "mp4",
                "height": 360,
                "vcodec": "avc1",
                "acodec": "mp4a",
                "filesize": 2048,
            },
        ],
        "subtitles": subtitles or {},
        "automatic_captions": automatic_captions or {},
    }


def failing_extractor(url: str) -> Dict[str, Any]:
    raise RuntimeError("HTTP Error 429: Too Many Requests")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        openai_api_key=None,
        local_storage_dir=str(tmp_path / "blobs"),
        encoder="none",
        transcripts_enabled=False,
        ai_timeout=1.0,
        encode_timeout=5.0,
        metadata_timeout=5.0,
        download_timeout=5.0,
    )


@pytest.fixture
def store(settings):
    return LocalBlobStore(settings.local_storage_dir)


@pytest.fixture
def no_ai(settings):
    return AIClient(settings)


def ai_with(settings: Settings, reply: Reply) -> AIClient:
    return AIClient(settings, client=FakeOpenAI(reply))


def build_pipeline(settings, store, ai, backend, extractor=None, handler=None) -> ReelPipeline:
    """Pipeline wired to a fake metadata extractor and an in-memory HTTP transport."""
    extractor = extractor or (lambda url: make_info())
    transport = httpx.MockTransport(handler or (lambda request: httpx.Response(200, content=b"source-video")))
    return ReelPipeline(
        settings,
        store,
        ai,
        backend,
        resolver=SourceResolver(settings, store, info_extractor=extractor, transport=transport),
        transcripts=TranscriptProvider(settings, info_extractor=extractor),
    )
