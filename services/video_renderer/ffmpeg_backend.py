"""
FFmpeg Encode Backend
=====================
Clip extraction and subtitle burn-in with the ffmpeg CLI.

Features:
- Seek + trim of the source window
- Scale-and-crop reframing to the target aspect ratio (center crop)
- ASS subtitle burn-in with per-style font, colours and alignment
"""

import asyncio
import tempfile
from pathlib import Path
from typing import List

from loguru import logger

from config.settings import Settings
from services.clip_extraction.subtitle_formats import styled_ass
from services.storage.base import BlobStore
from shared.models import BlobRef, SubtitleCue, SubtitleStyle

from .base import ASPECT_RATIOS, EncodeBackend


class FFmpegBackend(EncodeBackend):
    """
    Encode backend driving the ffmpeg binary.

    Usage:
        backend = FFmpegBackend(settings, store)
        ref = await backend.extract(source_ref, 10, 40, "9:16", "clips/abc.mp4")
    """

    def __init__(self, settings: Settings, store: BlobStore):
        self.ffmpeg_path = settings.ffmpeg_path
        self.timeout = settings.encode_timeout
        self.store = store

    @property
    def name(self) -> str:
        return "ffmpeg"

    async def extract(
        self,
        source_ref: BlobRef,
        start: float,
        end: float,
        aspect: str,
        output_key: str,
    ) -> BlobRef:
        if aspect not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {aspect}")
        if end <= start:
            raise ValueError(f"Empty clip window: {start}-{end}")
        width, height = ASPECT_RATIOS[aspect]

        with tempfile.TemporaryDirectory(prefix="reel-extract-") as work_dir:
            source_path = Path(work_dir) / "source.mp4"
            output_path = Path(work_dir) / "clip.mp4"
            await self._fetch(source_ref, source_path)

            cmd = [
                self.ffmpeg_path,
                "-y",
                "-ss", f"{start:.3f}",
                "-i", str(source_path),
                "-t", f"{end - start:.3f}",
                "-vf", f"scale={width}:{height}:force_original_aspect_ratio=increase,crop={width}:{height}",
                "-c:v", "libx264",
                "-preset", "veryfast",
                "-crf", "23",
                "-c:a", "aac",
                "-b:a", "128k",
                "-movflags", "+faststart",
                str(output_path),
            ]
            logger.info(f"Extracting {start:.1f}s-{end:.1f}s ({aspect}) -> {output_key}")
            await self._run(cmd)

            data = await asyncio.to_thread(output_path.read_bytes)

        return await self.store.put(output_key, data, "video/mp4")

    async def burn_subtitles(
        self,
        clip_ref: BlobRef,
        cues: List[SubtitleCue],
        style: SubtitleStyle,
        output_key: str,
    ) -> BlobRef:
        with tempfile.TemporaryDirectory(prefix="reel-burn-") as work_dir:
            clip_path = Path(work_dir) / "clip.mp4"
            ass_path = Path(work_dir) / "subs.ass"
            output_path = Path(work_dir) / "burned.mp4"

            await self._fetch(clip_ref, clip_path)
            ass_path.write_text(styled_ass(cues, style), encoding="utf-8")

            cmd = [
                self.ffmpeg_path,
                "-y",
                "-i", str(clip_path),
                "-vf", f"ass={ass_path}",
                "-c:v", "libx264",
                "-preset", "veryfast",
                "-crf", "20",
                "-c:a", "copy",
                str(output_path),
            ]
            logger.info(f"Burning {len(cues)} cues ({style.name}) -> {output_key}")
            await self._run(cmd)

            data = await asyncio.to_thread(output_path.read_bytes)

        return await self.store.put(output_key, data, "video/mp4")

    async def _fetch(self, ref: BlobRef, path: Path) -> None:
        if ref.placeholder:
            raise RuntimeError(f"No media behind placeholder {ref.key}")
        data = await self.store.get(ref.key)
        await asyncio.to_thread(path.write_bytes, data)

    async def _run(self, cmd: List[str]) -> None:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise RuntimeError(f"FFmpeg timed out after {self.timeout}s")

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace") if stderr else "Unknown error"
            raise RuntimeError(f"FFmpeg failed: {error_msg[-500:]}")
