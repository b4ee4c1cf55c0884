"""
Tests for source resolution and caption-track transcripts.
"""
import httpx
import pytest

from conftest import VIDEO_ID, VIDEO_URL, failing_extractor, make_info
from services.content_download.source_resolver import SourceResolver, extract_video_id, select_format
from services.transcription.transcript_provider import TranscriptProvider, flatten_vtt
from shared.errors import InvalidInput, StreamUnavailable


def resolver_for(settings, store, info=None, extractor=None, handler=None):
    transport = httpx.MockTransport(handler) if handler else None
    return SourceResolver(
        settings,
        store,
        info_extractor=extractor or (lambda url: info or make_info()),
        transport=transport,
    )


def fmt(url, ext="mp4", height=360, size=None, vcodec="avc1", acodec="mp4a"):
    return {"url": url, "ext": ext, "height": height, "filesize": size, "vcodec": vcodec, "acodec": acodec}


class TestValidation:
    """URL validation and id extraction."""

    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "http://youtube.com/watch?v=dQw4w9WgXcQ&t=42",
        "youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
    ])
    def test_accepts_youtube_urls(self, settings, store, url):
        assert resolver_for(settings, store).validate(url)
        assert extract_video_id(url) == VIDEO_ID

    @pytest.mark.parametrize("url", [
        "",
        "https://vimeo.com/12345",
        "https://www.youtube.com/channel/UC123",
        "https://www.youtube.com/watch?list=PL123",
        "not a url",
        None,
        42,
    ])
    def test_rejects_everything_else(self, settings, store, url):
        assert resolver_for(settings, store).validate(url) is False


class TestFetchInfo:
    """Metadata with demo fallback."""

    @pytest.mark.asyncio
    async def test_real_metadata(self, settings, store):
        result = await resolver_for(settings, store).fetch_info(VIDEO_URL)
        assert not result.degraded
        info = result.value
        assert info.title == "How Rockets Work"
        assert info.duration_seconds == 180
        assert info.source_id == VIDEO_ID
        assert len(info.thumbnail_urls) == 2

    @pytest.mark.asyncio
    async def test_upstream_failure_gives_demo_info(self, settings, store):
        result = await resolver_for(settings, store, extractor=failing_extractor).fetch_info(VIDEO_URL)
        assert result.degraded
        info = result.value
        assert info.title == f"Video {VIDEO_ID} (Demo Mode)"
        assert info.duration_seconds == 180
        assert info.thumbnail_urls == (f"https://img.youtube.com/vi/{VIDEO_ID}/maxresdefault.jpg",)
        assert info.source_id == VIDEO_ID

    @pytest.mark.asyncio
    async def test_zero_duration_uses_fallback(self, settings, store):
        result = await resolver_for(settings, store, info=make_info(duration=0)).fetch_info(VIDEO_URL)
        assert result.value.duration_seconds == settings.fallback_duration

    @pytest.mark.asyncio
    async def test_url_without_id_is_invalid(self, settings, store):
        with pytest.raises(InvalidInput):
            await resolver_for(settings, store).fetch_info("https://example.com/video")


class TestSelectFormat:
    """Stream selection rules."""

    def test_prefers_mp4_then_height_under_budget(self):
        stream = select_format([
            fmt("webm-1080", ext="webm", height=1080, size=1000),
            fmt("mp4-360", height=360, size=1000),
            fmt("mp4-720", height=720, size=1000),
            fmt("mp4-1080-huge", height=1080, size=500 * 1024 * 1024),
        ])
        assert stream.url == "mp4-720"
        assert stream.container == "mp4"
        assert stream.quality_label == "720p"

    def test_ignores_video_only_and_audio_only(self):
        stream = select_format([
            fmt("video-only", height=1080, size=10, acodec="none"),
            fmt("audio-only", height=None, size=10, vcodec="none"),
            fmt("muxed", height=360, size=10),
        ])
        assert stream.url == "muxed"

    def test_first_muxed_when_nothing_fits(self):
        stream = select_format([
            fmt("first", ext="webm", height=480),
            fmt("second", height=720),
        ])
        assert stream.url == "first"

    def test_no_candidates(self):
        with pytest.raises(StreamUnavailable):
            select_format([fmt("video-only", acodec="none")])
        with pytest.raises(StreamUnavailable):
            select_format([])

    @pytest.mark.asyncio
    async def test_resolve_stream_wraps_upstream_errors(self, settings, store):
        with pytest.raises(StreamUnavailable):
            await resolver_for(settings, store, extractor=failing_extractor).resolve_stream(VIDEO_URL)


class TestPersist:
    """Download into the blob store."""

    @pytest.mark.asyncio
    async def test_downloads_into_store(self, settings, store):
        def handler(request):
            assert request.url == "https://media.example/18.mp4"
            return httpx.Response(200, content=b"video-bytes")

        resolver = resolver_for(settings, store, handler=handler)
        info = (await resolver.fetch_info(VIDEO_URL)).value
        result = await resolver.persist_to_store(VIDEO_URL, info)

        assert not result.degraded
        stored = result.value
        assert stored.filename.startswith(f"{VIDEO_ID}-")
        assert stored.filename.endswith(".mp4")
        assert not stored.ref.placeholder
        assert await store.get(stored.ref.key) == b"video-bytes"

    @pytest.mark.asyncio
    async def test_budget_overrun_gives_placeholder(self, settings, store):
        settings.max_download_bytes = 4
        resolver = resolver_for(settings, store, handler=lambda request: httpx.Response(200, content=b"too many bytes"))
        result = await resolver.persist_to_store(VIDEO_URL)

        assert result.degraded
        assert result.value.ref.placeholder
        assert result.value.ref.key.endswith(result.value.filename)
        with pytest.raises(KeyError):
            await store.get(result.value.ref.key)

    @pytest.mark.asyncio
    async def test_http_error_gives_placeholder(self, settings, store):
        resolver = resolver_for(settings, store, handler=lambda request: httpx.Response(403))
        result = await resolver.persist_to_store(VIDEO_URL)
        assert result.degraded
        assert result.value.ref.placeholder

    @pytest.mark.asyncio
    async def test_reuses_fetched_formats(self, settings, store):
        calls = []

        def extractor(url):
            calls.append(url)
            return make_info()

        resolver = resolver_for(
            settings, store, extractor=extractor, handler=lambda request: httpx.Response(200, content=b"v"),
        )
        info = (await resolver.fetch_info(VIDEO_URL)).value
        result = await resolver.persist_to_store(VIDEO_URL, info)

        assert not result.degraded
        assert calls == [VIDEO_URL]

    @pytest.mark.asyncio
    async def test_demo_info_skips_second_lookup(self, settings, store):
        calls = []

        def extractor(url):
            calls.append(url)
            raise RuntimeError("HTTP Error 429")

        resolver = resolver_for(settings, store, extractor=extractor)
        info = (await resolver.fetch_info(VIDEO_URL)).value
        result = await resolver.persist_to_store(VIDEO_URL, info)

        assert result.degraded
        assert result.value.ref.placeholder
        assert "metadata unavailable" in result.reason
        assert calls == [VIDEO_URL]

    @pytest.mark.asyncio
    async def test_no_stream_gives_placeholder(self, settings, store):
        resolver = resolver_for(settings, store, info=make_info(formats=[]))
        result = await resolver.persist_to_store(VIDEO_URL)
        assert result.degraded
        assert "No suitable video formats" in result.reason


AUTO_CAPTIONS = """WEBVTT
Kind: captions
Language: en

00:00:00.000 --> 00:00:02.000 align:start position:0%
rockets<00:00:00.500><c> are</c><00:00:01.000><c> loud</c>

00:00:02.000 --> 00:00:04.000 align:start position:0%
rockets are loud
and very &amp; fast

00:00:04.000 --> 00:00:06.000 align:start position:0%
and very &amp; fast
"""


class TestTranscriptProvider:
    """Best-effort caption transcripts."""

    def test_flatten_dedupes_rolling_lines(self):
        assert flatten_vtt(AUTO_CAPTIONS) == "rockets are loud and very & fast"

    @pytest.mark.asyncio
    async def test_fetches_manual_subtitles_first(self, settings):
        settings.transcripts_enabled = True
        info = make_info(
            subtitles={"en": [{"ext": "srv3", "url": "https://c/srv3"}, {"ext": "vtt", "url": "https://c/manual.vtt"}]},
            automatic_captions={"en": [{"ext": "vtt", "url": "https://c/auto.vtt"}]},
        )
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, text=AUTO_CAPTIONS)

        provider = TranscriptProvider(settings, info_extractor=lambda url: info, transport=httpx.MockTransport(handler))
        assert await provider.fetch(VIDEO_URL) == "rockets are loud and very & fast"
        assert seen == ["https://c/manual.vtt"]

    @pytest.mark.asyncio
    async def test_regional_automatic_captions(self, settings):
        settings.transcripts_enabled = True
        info = make_info(automatic_captions={"en-US": [{"ext": "vtt", "url": "https://c/auto.vtt"}]})
        provider = TranscriptProvider(
            settings,
            info_extractor=lambda url: info,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text=AUTO_CAPTIONS)),
        )
        assert await provider.fetch(VIDEO_URL)

    @pytest.mark.asyncio
    async def test_uses_given_info(self, settings):
        settings.transcripts_enabled = True
        info = make_info(subtitles={"en": [{"ext": "vtt", "url": "https://c/manual.vtt"}]})

        def extractor(url):
            raise AssertionError("info was already fetched")

        provider = TranscriptProvider(
            settings,
            info_extractor=extractor,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text=AUTO_CAPTIONS)),
        )
        assert await provider.fetch(VIDEO_URL, info) == "rockets are loud and very & fast"
        assert await provider.fetch(VIDEO_URL, {}) is None

    @pytest.mark.asyncio
    async def test_no_tracks(self, settings):
        settings.transcripts_enabled = True
        provider = TranscriptProvider(settings, info_extractor=lambda url: make_info())
        assert await provider.fetch(VIDEO_URL) is None

    @pytest.mark.asyncio
    async def test_failures_return_none(self, settings):
        settings.transcripts_enabled = True
        provider = TranscriptProvider(settings, info_extractor=failing_extractor)
        assert await provider.fetch(VIDEO_URL) is None

    @pytest.mark.asyncio
    async def test_disabled(self, settings):
        def extractor(url):
            raise AssertionError("should not be called")

        provider = TranscriptProvider(settings, info_extractor=extractor)
        assert not provider.is_enabled()
        assert await provider.fetch(VIDEO_URL) is None
