"""Burn subtitles into the merged video and mux in the narration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from reelsmith.ffmpeg import DEFAULT_PROFILE, EncoderProfile, FFmpeg, FFmpegError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubtitleStyle:
    """ASS style overrides passed to the subtitles filter.

    Colours are ASS ``&HAABBGGRR`` values.
    """
    font_name: str = "Arial"
    font_size: int = 48
    primary_colour: str = "&H00FFFFFF"
    outline_colour: str = "&H00000000"
    border_style: int = 3
    outline: int = 4
    shadow: int = 0
    bold: bool = True
    alignment: int = 2  # bottom centre
    margin_v: int = 50

    def force_style(self) -> str:
        return ",".join([
            f"FontName={self.font_name}",
            f"FontSize={self.font_size}",
            f"PrimaryColour={self.primary_colour}",
            f"OutlineColour={self.outline_colour}",
            f"BorderStyle={self.border_style}",
            f"Outline={self.outline}",
            f"Shadow={self.shadow}",
            f"Bold={1 if self.bold else 0}",
            f"Alignment={self.alignment}",
            f"MarginV={self.margin_v}",
        ])


DEFAULT_STYLE = SubtitleStyle()


def _escape_filter_path(path: Path) -> str:
    """Escape a file path for use as a filter option value inside ``-vf``.

    ffmpeg unescapes the value twice: once when splitting the filtergraph and
    once when splitting the filter's ``key=value`` options. The option level
    gets backslash escapes, the graph level gets single quotes with any
    embedded quote written as ``'\\''``.
    """
    text = str(path).replace("\\", "/")
    text = text.replace(":", "\\:").replace("'", "\\'")
    return "'" + text.replace("'", "'\\''") + "'"


def _has_cues(subtitle_path: Path) -> bool:
    return subtitle_path.exists() and subtitle_path.read_text(encoding="utf-8").strip() != ""


def build_mux_args(
    video_path: Path,
    audio_path: Path,
    subtitle_path: Path | None,
    output_path: Path,
    style: SubtitleStyle = DEFAULT_STYLE,
    profile: EncoderProfile = DEFAULT_PROFILE,
) -> list[str]:
    """ffmpeg arguments for the final encode.

    ``subtitle_path`` of None renders without captions.
    """
    args = [
        "-i", str(video_path),
        "-i", str(audio_path),
        "-map", "0:v:0",
        "-map", "1:a:0",
    ]
    if subtitle_path is not None:
        args += [
            "-vf",
            f"subtitles=filename={_escape_filter_path(subtitle_path)}"
            f":force_style='{style.force_style()}'",
        ]
    args += [
        *profile.video_args(),
        *profile.audio_args(),
        "-movflags", "+faststart",
        str(output_path),
    ]
    return args


def mux_final(
    ffmpeg: FFmpeg,
    video_path: Path,
    audio_path: Path,
    subtitle_path: Path,
    output_path: Path,
    style: SubtitleStyle = DEFAULT_STYLE,
    profile: EncoderProfile = DEFAULT_PROFILE,
) -> Path:
    """Produce the deliverable: burned-in captions, narration audio.

    An empty subtitle document is skipped rather than handed to the filter.
    On failure any partially written output is removed.
    """
    if not _has_cues(subtitle_path):
        logger.warning("Subtitle file %s has no cues; rendering without captions", subtitle_path)
        subtitles: Path | None = None
    else:
        subtitles = subtitle_path

    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Muxing %s + %s -> %s", video_path.name, Path(audio_path).name, output_path)
    try:
        ffmpeg.run(
            build_mux_args(video_path, audio_path, subtitles, output_path, style, profile),
            label="mux",
        )
    except FFmpegError:
        output_path.unlink(missing_ok=True)
        raise

    logger.info("Final video: %s (%.1f KB)", output_path, output_path.stat().st_size / 1024)
    return output_path
