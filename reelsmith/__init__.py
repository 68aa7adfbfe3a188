"""reelsmith: narrated, captioned stock-footage videos from word-timed captions."""

from reelsmith.captions import build_srt, chunk_captions, format_srt_time
from reelsmith.ffmpeg import FFmpeg, FFmpegError
from reelsmith.jobs import RenderJob, RenderJobManager
from reelsmith.models import CaptionWord, ClipPolicy, RenderState, VisualSection
from reelsmith.renderer import RenderError, RenderOrchestrator

__all__ = [
    "CaptionWord",
    "ClipPolicy",
    "FFmpeg",
    "FFmpegError",
    "RenderError",
    "RenderJob",
    "RenderJobManager",
    "RenderOrchestrator",
    "RenderState",
    "VisualSection",
    "build_srt",
    "chunk_captions",
    "format_srt_time",
]
