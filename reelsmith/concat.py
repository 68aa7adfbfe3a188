"""Stream-copy concatenation of normalized clips via the concat demuxer."""

from __future__ import annotations

import logging
from pathlib import Path

from reelsmith.ffmpeg import FFmpeg

logger = logging.getLogger(__name__)

MANIFEST_NAME = "concat_list.txt"


class MissingClipError(FileNotFoundError):
    """Raised when a clip expected on disk is absent."""


def _manifest_line(path: Path) -> str:
    # concat demuxer quoting: close the quote, escape, reopen
    escaped = str(path.resolve()).replace("'", "'\\''")
    return f"file '{escaped}'\n"


def write_concat_manifest(clips: list[Path], manifest_path: Path) -> Path:
    """Write the ordered ``file '...'`` list consumed by ``-f concat``."""
    with open(manifest_path, "w", encoding="utf-8") as f:
        for clip in clips:
            f.write(_manifest_line(clip))
    return manifest_path


def concatenate_clips(
    ffmpeg: FFmpeg,
    clips: list[Path],
    output_path: Path,
    manifest_path: Path | None = None,
) -> Path:
    """Join ``clips`` in list order into ``output_path`` without re-encoding.

    All clips must share codec parameters, which holds when each went through
    the same normalizer profile.

    Raises:
        ValueError: If ``clips`` is empty.
        MissingClipError: If any input is missing.
        FFmpegError: If ffmpeg fails.
    """
    if not clips:
        raise ValueError("No clips to concatenate")

    missing = [str(c) for c in clips if not Path(c).is_file()]
    if missing:
        raise MissingClipError(f"Clip(s) not found: {', '.join(missing)}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    manifest = manifest_path or output_path.parent / MANIFEST_NAME
    write_concat_manifest(clips, manifest)

    logger.info("Concatenating %d clip(s) -> %s", len(clips), output_path)
    ffmpeg.run(
        [
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest),
            "-c", "copy",
            str(output_path),
        ],
        label="concat",
    )
    return output_path
