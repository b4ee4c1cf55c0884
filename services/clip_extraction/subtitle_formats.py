"""
Subtitle File Formats
=====================
Serializers and parsers for SRT, WebVTT and ASS subtitle files.

Cue times are rounded to the format's precision (milliseconds for SRT/VTT,
centiseconds for ASS) before being split into fields, so a cue written and
read back keeps its timing.
"""

import re
import logging
from typing import Dict, List, Optional

from shared.models import SubtitleCue, SubtitleStyle

logger = logging.getLogger(__name__)

CONTENT_TYPES: Dict[str, str] = {
    "srt": "application/x-subrip",
    "vtt": "text/vtt",
    "ass": "text/x-ssa",
}

ASS_FORMAT_LINE = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, "
    "BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, "
    "BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding"
)
DEFAULT_ASS_STYLE = (
    "Style: Default,Arial,24,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,"
    "1,0,0,0,100,100,0,0,1,2,0,2,10,10,10,1"
)

# ASS numpad alignment: 2 = bottom centre, 5 = middle centre, 8 = top centre
_ASS_ALIGNMENT = {"bottom": 2, "center": 5, "top": 8}

_TIMING_RE = re.compile(
    r"(?P<start>(?:\d+:)?\d{1,2}:\d{2}[,.]\d{3})\s*-->\s*(?P<end>(?:\d+:)?\d{1,2}:\d{2}[,.]\d{3})"
)
_RGBA_RE = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)")


def _split_millis(seconds: float):
    total = int(round(max(seconds, 0) * 1000))
    hours, rem = divmod(total, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return hours, minutes, secs, millis


def format_srt_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm."""
    h, m, s, ms = _split_millis(seconds)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def format_vtt_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS.mmm."""
    h, m, s, ms = _split_millis(seconds)
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def format_ass_time(seconds: float) -> str:
    """Format seconds as H:MM:SS.cc."""
    total = int(round(max(seconds, 0) * 100))
    hours, rem = divmod(total, 360_000)
    minutes, rem = divmod(rem, 6000)
    secs, centis = divmod(rem, 100)
    return f"{hours}:{minutes:02d}:{secs:02d}.{centis:02d}"


def parse_timestamp(value: str) -> float:
    """Parse an SRT or VTT timestamp (hours optional) into seconds."""
    value = value.strip().replace(",", ".")
    parts = value.split(":")
    if len(parts) == 2:
        parts.insert(0, "0")
    hours, minutes, rest = parts
    return int(hours) * 3600 + int(minutes) * 60 + float(rest)


def format_srt(cues: List[SubtitleCue]) -> str:
    blocks = [
        f"{i}\n{format_srt_time(cue.start_seconds)} --> {format_srt_time(cue.end_seconds)}\n{cue.text}\n"
        for i, cue in enumerate(cues, 1)
    ]
    return "\n".join(blocks)


def format_vtt(cues: List[SubtitleCue]) -> str:
    blocks = [
        f"{format_vtt_time(cue.start_seconds)} --> {format_vtt_time(cue.end_seconds)}\n{cue.text}\n"
        for cue in cues
    ]
    return "WEBVTT\n\n" + "\n".join(blocks)


def ass_header(style_line: str = DEFAULT_ASS_STYLE) -> str:
    return (
        "[Script Info]\n"
        "Title: AI Generated Subtitles\n"
        "ScriptType: v4.00+\n"
        "\n"
        "[V4+ Styles]\n"
        f"{ASS_FORMAT_LINE}\n"
        f"{style_line}\n"
        "\n"
        "[Events]\n"
        "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
    )


def format_ass(
    cues: List[SubtitleCue],
    style_line: str = DEFAULT_ASS_STYLE,
    text_prefix: str = "",
) -> str:
    """
    Generate ASS subtitle content.

    Args:
        cues: Cues to write
        style_line: The "Style: Default,..." line for the styles section
        text_prefix: Override tags placed before every cue's text
    """
    events = []
    for cue in cues:
        text = cue.text.replace("\n", "\\N")
        events.append(
            f"Dialogue: 0,{format_ass_time(cue.start_seconds)},{format_ass_time(cue.end_seconds)},"
            f"Default,,0,0,0,,{text_prefix}{text}"
        )
    return ass_header(style_line) + "\n".join(events)


def format_cues(cues: List[SubtitleCue], fmt: str) -> str:
    """Serialize cues in one of the supported formats."""
    fmt = fmt.lower()
    if fmt == "srt":
        return format_srt(cues)
    if fmt == "vtt":
        return format_vtt(cues)
    if fmt == "ass":
        return format_ass(cues)
    raise ValueError(f"Unsupported subtitle format: {fmt}")


def _parse_blocks(content: str) -> List[SubtitleCue]:
    cues = []
    blocks = re.split(r"\n\s*\n", content.replace("\r\n", "\n").strip())
    for block in blocks:
        lines = block.split("\n")
        for idx, line in enumerate(lines):
            match = _TIMING_RE.search(line)
            if not match:
                continue
            text = "\n".join(lines[idx + 1:]).strip()
            if text:
                cues.append(SubtitleCue(
                    start_seconds=parse_timestamp(match.group("start")),
                    end_seconds=parse_timestamp(match.group("end")),
                    text=text,
                ))
            break
    return cues


def parse_srt(content: str) -> List[SubtitleCue]:
    """Read SRT content back into cues. Blocks without a timing line are skipped."""
    return _parse_blocks(content)


def parse_vtt(content: str) -> List[SubtitleCue]:
    """Read WebVTT content back into cues, skipping the header and NOTE/STYLE blocks."""
    body = content.replace("\r\n", "\n")
    if body.startswith("\ufeff"):
        body = body[1:]
    if not body.startswith("WEBVTT"):
        logger.warning("VTT content is missing the WEBVTT header")
    return _parse_blocks(body)


# Style conversion for burn-in

def _ass_colour(red: int, green: int, blue: int, alpha: int = 0) -> str:
    return f"&H{alpha:02X}{blue:02X}{green:02X}{red:02X}"


def css_to_ass_colour(value: str, default: str = "&H00FFFFFF") -> str:
    """
    Convert "#RRGGBB" or "rgba(r, g, b, a)" into an ASS &HAABBGGRR colour.

    ASS alpha is inverted (00 opaque, FF transparent).
    """
    value = (value or "").strip()
    if value.startswith("#") and len(value) == 7:
        try:
            r, g, b = (int(value[i:i + 2], 16) for i in (1, 3, 5))
        except ValueError:
            return default
        return _ass_colour(r, g, b)

    match = _RGBA_RE.match(value)
    if match:
        r, g, b = (min(int(match.group(i)), 255) for i in (1, 2, 3))
        opacity = float(match.group(4)) if match.group(4) is not None else 1.0
        opacity = min(max(opacity, 0.0), 1.0)
        return _ass_colour(r, g, b, int(round((1 - opacity) * 255)))

    return default


def primary_font(font_family: str) -> str:
    """First family of a CSS font stack ("Impact, Arial Black, sans-serif" -> "Impact")."""
    first = font_family.split(",")[0].strip().strip("'\"")
    return first or "Arial"


def ass_style_line(style: SubtitleStyle) -> str:
    """Build the ASS "Style: Default,..." line for a named subtitle style."""
    alignment = _ASS_ALIGNMENT.get(style.vertical_position, 2)
    primary = css_to_ass_colour(style.text_color)
    back = css_to_ass_colour(style.background_color, default="&H80000000")
    # BorderStyle 3 draws an opaque box in BackColour behind the text
    return (
        f"Style: Default,{primary_font(style.font_family)},{style.font_size_px},"
        f"{primary},&H000000FF,&H00000000,{back},"
        f"1,0,0,0,100,100,0,0,3,2,0,{alignment},10,10,10,1"
    )


def animation_tags(animation: str) -> str:
    """ASS override tags approximating a style's entry animation."""
    if animation == "fade":
        return r"{\fad(250,250)}"
    if animation == "bounce":
        return r"{\fscx80\fscy80\t(0,150,\fscx115\fscy115)\t(150,300,\fscx100\fscy100)}"
    if animation == "slide":
        return r"{\fad(150,0)\fsp8\t(0,300,\fsp0)}"
    return ""


def styled_ass(cues: List[SubtitleCue], style: SubtitleStyle) -> str:
    """ASS document for burning cues in with a specific style."""
    return format_ass(cues, style_line=ass_style_line(style), text_prefix=animation_tags(style.animation))


def content_type_for(fmt: str) -> Optional[str]:
    return CONTENT_TYPES.get(fmt.lower())
