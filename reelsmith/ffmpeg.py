"""Thin wrapper around the ffmpeg and ffprobe command-line tools.

Every stage of the render goes through an ``FFmpeg`` instance so tests can
substitute a fake that records commands instead of encoding.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_STDERR_TAIL = 500


class FFmpegError(RuntimeError):
    """Raised when ffmpeg or ffprobe exits with an error."""

    def __init__(
        self,
        message: str,
        cmd: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.cmd = cmd or []
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


@dataclass(frozen=True)
class EncoderProfile:
    """Fixed encoding parameters shared by every normalized clip.

    The concat demuxer stream-copies, so all inputs must agree on codec,
    resolution, frame rate and pixel format.
    """
    width: int = 1920
    height: int = 1080
    fps: int = 30
    video_codec: str = "libx264"
    preset: str = "medium"
    crf: int = 23
    pix_fmt: str = "yuv420p"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    def video_args(self) -> list[str]:
        return [
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", self.pix_fmt,
        ]

    def audio_args(self) -> list[str]:
        return ["-c:a", self.audio_codec, "-b:a", self.audio_bitrate]


DEFAULT_PROFILE = EncoderProfile()


class FFmpeg:
    """Runs ffmpeg/ffprobe as blocking subprocesses.

    No timeout is applied; a hung encoder blocks the caller.
    """

    def __init__(self, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe") -> None:
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin

    def check_available(self) -> None:
        """Raise if either binary is missing from PATH."""
        for binary in (self.ffmpeg_bin, self.ffprobe_bin):
            if shutil.which(binary) is None:
                raise FFmpegError(
                    f"{binary} not found on PATH. Install ffmpeg and retry."
                )

    def run(self, args: list[str], label: str = "ffmpeg") -> None:
        """Run ffmpeg with ``args`` (overwrite enabled)."""
        cmd = [self.ffmpeg_bin, "-y", *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise FFmpegError(f"{label}: could not start {self.ffmpeg_bin}: {exc}", cmd=cmd) from exc
        if result.returncode != 0:
            raise FFmpegError(
                f"{label} failed (exit {result.returncode}): {result.stderr[-_STDERR_TAIL:]}",
                cmd=cmd,
                returncode=result.returncode,
                stderr=result.stderr,
            )

    def probe_duration(self, path: Path) -> float:
        """Return the container duration of ``path`` in seconds."""
        cmd = [
            self.ffprobe_bin, "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise FFmpegError(f"could not start {self.ffprobe_bin}: {exc}", cmd=cmd) from exc
        if result.returncode != 0:
            raise FFmpegError(
                f"ffprobe failed for {path}: {result.stderr[-_STDERR_TAIL:]}",
                cmd=cmd,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        try:
            duration = float(result.stdout.strip())
        except ValueError as exc:
            raise FFmpegError(
                f"ffprobe returned no duration for {path}: {result.stdout.strip()!r}",
                cmd=cmd,
            ) from exc
        if duration <= 0:
            raise FFmpegError(f"ffprobe reported non-positive duration for {path}: {duration}", cmd=cmd)
        return duration
