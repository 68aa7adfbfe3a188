"""Subtitle chunking and SubRip (.srt) formatting from word timings."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable

from reelsmith.models import CaptionChunk, CaptionWord

logger = logging.getLogger(__name__)

MAX_CHUNK_SECONDS = 2.0
MAX_CHUNK_WORDS = 4


def chunk_captions(
    words: Iterable[CaptionWord],
    max_seconds: float = MAX_CHUNK_SECONDS,
    max_words: int = MAX_CHUNK_WORDS,
) -> list[CaptionChunk]:
    """Group consecutive words into short subtitle chunks.

    A chunk is closed before adding a word when that word would stretch the
    chunk past ``max_seconds`` from its start, or when the chunk already holds
    ``max_words`` words. The triggering word opens the next chunk.
    """
    chunks: list[CaptionChunk] = []
    current: list[CaptionWord] = []

    for word in words:
        if current and (
            word.end - current[0].start > max_seconds
            or len(current) >= max_words
        ):
            chunks.append(_close_chunk(current))
            current = []
        current.append(word)

    if current:
        chunks.append(_close_chunk(current))

    return chunks


def _close_chunk(words: list[CaptionWord]) -> CaptionChunk:
    return CaptionChunk(
        words=[w.text for w in words],
        start=words[0].start,
        end=words[-1].end,
    )


def format_srt_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm``, truncating each field."""
    hours = math.floor(seconds / 3600)
    minutes = math.floor((seconds % 3600) / 60)
    secs = math.floor(seconds % 60)
    # round before flooring so 1.234 does not come out as 233 ms
    millis = min(999, math.floor(round((seconds % 1) * 1000, 6)))
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def build_srt(chunks: Iterable[CaptionChunk]) -> str:
    """Serialize chunks into a SubRip document, one cue per chunk."""
    parts = []
    for index, chunk in enumerate(chunks, start=1):
        parts.append(
            f"{index}\n"
            f"{format_srt_time(chunk.start)} --> {format_srt_time(chunk.end)}\n"
            f"{chunk.text}\n\n"
        )
    return "".join(parts)


def write_subtitle_file(chunks: list[CaptionChunk], output_path: Path) -> Path:
    """Write chunks as an .srt file and return its path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(build_srt(chunks))
    logger.info("Subtitles written: %s (%d cues)", output_path, len(chunks))
    return output_path
