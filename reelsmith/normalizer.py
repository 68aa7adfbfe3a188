"""Retime a stock clip so it fills its section of the narration."""

from __future__ import annotations

import logging
from pathlib import Path

from reelsmith.ffmpeg import DEFAULT_PROFILE, EncoderProfile, FFmpeg
from reelsmith.models import NormalizedClip

logger = logging.getLogger(__name__)

MIN_SPEED = 0.5
MAX_SPEED = 2.0


def compute_speed_factor(
    native_duration: float,
    target_duration: float,
    min_speed: float = MIN_SPEED,
    max_speed: float = MAX_SPEED,
) -> float:
    """Playback speed that maps ``native_duration`` onto ``target_duration``.

    Clamped to ``[min_speed, max_speed]``; for extreme mismatches the output
    will not exactly match the target.
    """
    if native_duration <= 0:
        raise ValueError(f"Native duration must be positive, got {native_duration}")
    if target_duration <= 0:
        raise ValueError(f"Target duration must be positive, got {target_duration}")
    speed = native_duration / target_duration
    return max(min_speed, min(max_speed, speed))


def build_normalize_args(
    input_path: Path,
    output_path: Path,
    speed: float,
    target_duration: float,
    profile: EncoderProfile = DEFAULT_PROFILE,
) -> list[str]:
    """ffmpeg arguments that retime, conform and truncate one clip."""
    filter_parts = [
        f"setpts={1 / speed:.3f}*PTS",
        f"scale={profile.width}:{profile.height}:force_original_aspect_ratio=increase",
        f"crop={profile.width}:{profile.height}",
        "setsar=1",
        f"fps={profile.fps}",
    ]
    return [
        "-i", str(input_path),
        "-vf", ",".join(filter_parts),
        "-an",
        "-t", f"{target_duration:.3f}",
        *profile.video_args(),
        str(output_path),
    ]


def normalize_clip(
    ffmpeg: FFmpeg,
    input_path: Path,
    output_path: Path,
    target_duration: float,
    profile: EncoderProfile = DEFAULT_PROFILE,
) -> NormalizedClip:
    """Re-encode ``input_path`` so it plays for ``target_duration`` seconds.

    Args:
        ffmpeg: Encoder invoker.
        input_path: Source stock clip.
        output_path: Where to write the retimed clip.
        target_duration: Section length in seconds.
        profile: Encoding profile shared by all clips of a render.

    Returns:
        NormalizedClip describing the output.

    Raises:
        FFmpegError: If probing or encoding fails.
        ValueError: If the target duration is not positive.
    """
    native = ffmpeg.probe_duration(input_path)
    speed = compute_speed_factor(native, target_duration)
    if speed != native / target_duration:
        logger.warning(
            "Speed for %s clamped: raw %.3f -> %.3f (native %.2fs, target %.2fs)",
            input_path.name, native / target_duration, speed, native, target_duration,
        )
    else:
        logger.info(
            "Normalizing %s: %.2fs -> %.2fs (speed %.3f)",
            input_path.name, native, target_duration, speed,
        )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    ffmpeg.run(
        build_normalize_args(input_path, output_path, speed, target_duration, profile),
        label=f"normalize {input_path.name}",
    )

    return NormalizedClip(
        source=input_path,
        path=output_path,
        native_duration=native,
        target_duration=target_duration,
        speed_factor=speed,
    )
