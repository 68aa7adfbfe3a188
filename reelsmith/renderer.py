"""Render orchestrator: clips -> concat -> subtitles -> mux.

Runs the whole assembly for one project in a scratch workspace that is
always removed afterwards, keeping only ``<upload_dir>/final/<id>/video.mp4``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from reelsmith.captions import chunk_captions, write_subtitle_file
from reelsmith.concat import MissingClipError, concatenate_clips
from reelsmith.ffmpeg import DEFAULT_PROFILE, EncoderProfile, FFmpeg
from reelsmith.models import (
    CaptionWord,
    ClipPolicy,
    NormalizedClip,
    RenderRequest,
    RenderState,
    VisualSection,
)
from reelsmith.muxer import DEFAULT_STYLE, SubtitleStyle, mux_final
from reelsmith.normalizer import normalize_clip
from reelsmith.workspace import ScratchWorkspace, scratch_workspace

logger = logging.getLogger(__name__)

StateCallback = Callable[[RenderState], None]


class RenderError(Exception):
    """Raised when any stage of a render fails."""

    def __init__(self, message: str, stage: RenderState, project_id: str):
        self.stage = stage
        self.project_id = project_id
        super().__init__(message)


def section_clip_path(upload_dir: Path, project_id: str, section: VisualSection) -> Path | None:
    """Local file of the clip selected for ``section``, or None if unselected."""
    selected = section.selected_video
    if selected is None:
        return None
    if selected.local_path:
        return Path(selected.local_path)
    return upload_dir / "visuals" / project_id / f"{selected.id}.mp4"


class RenderOrchestrator:
    """Sequences the render stages for one project at a time.

    Usage::

        orchestrator = RenderOrchestrator(FFmpeg(), upload_dir=Path("uploads"))
        final = orchestrator.render(project_id, sections, audio_path, captions)
    """

    def __init__(
        self,
        ffmpeg: FFmpeg,
        upload_dir: Path,
        clip_policy: ClipPolicy = ClipPolicy.STRICT,
        profile: EncoderProfile = DEFAULT_PROFILE,
        style: SubtitleStyle = DEFAULT_STYLE,
    ) -> None:
        self.ffmpeg = ffmpeg
        self.upload_dir = Path(upload_dir)
        self.clip_policy = ClipPolicy(clip_policy)
        self.profile = profile
        self.style = style

    def project_dir(self, project_id: str) -> Path:
        return self.upload_dir / "final" / project_id

    def output_path(self, project_id: str) -> Path:
        return self.project_dir(project_id) / "video.mp4"

    def render_request(self, request: RenderRequest, on_state: StateCallback | None = None) -> Path:
        return self.render(
            request.project_id,
            request.sections,
            request.audio_path,
            request.captions,
            on_state=on_state,
        )

    def render(
        self,
        project_id: str,
        sections: list[VisualSection],
        audio_path: Path,
        captions: list[CaptionWord],
        on_state: StateCallback | None = None,
    ) -> Path:
        """Render the final video for a project and return its path.

        Sections are expected to have a selected clip each; that is checked
        by the caller.

        Raises:
            RenderError: On any stage failure; the cause is chained.
        """
        stage = RenderState.PENDING

        def enter(new_stage: RenderState) -> None:
            nonlocal stage
            stage = new_stage
            logger.info("[%s] %s", project_id, new_stage.value)
            if on_state is not None:
                on_state(new_stage)

        enter(RenderState.PENDING)
        final_path = self.output_path(project_id)

        try:
            if final_path.exists():
                logger.info("[%s] Removing previous output %s", project_id, final_path)
                final_path.unlink()

            with scratch_workspace(self.project_dir(project_id) / "temp") as ws:
                enter(RenderState.PROCESSING_CLIPS)
                clips = self._normalize_sections(project_id, sections, ws)

                enter(RenderState.CONCATENATING)
                concatenate_clips(
                    self.ffmpeg,
                    [c.path for c in clips],
                    ws.merged_path,
                    manifest_path=ws.manifest_path,
                )

                enter(RenderState.SUBTITLING)
                chunks = chunk_captions(captions)
                write_subtitle_file(chunks, ws.subtitle_path)

                enter(RenderState.MUXING)
                mux_final(
                    self.ffmpeg,
                    ws.merged_path,
                    Path(audio_path),
                    ws.subtitle_path,
                    final_path,
                    style=self.style,
                    profile=self.profile,
                )
        except Exception as exc:
            failed_stage = stage
            logger.error("[%s] Render failed during %s: %s", project_id, failed_stage.value, exc)
            enter(RenderState.FAILED)
            raise RenderError(
                f"Render failed during {failed_stage.value}: {exc}",
                stage=failed_stage,
                project_id=project_id,
            ) from exc

        enter(RenderState.DONE)
        logger.info("[%s] Render complete: %s", project_id, final_path)
        return final_path

    def _normalize_sections(
        self,
        project_id: str,
        sections: list[VisualSection],
        ws: ScratchWorkspace,
    ) -> list[NormalizedClip]:
        clips: list[NormalizedClip] = []
        for i, section in enumerate(sections):
            source = section_clip_path(self.upload_dir, project_id, section)
            if source is None or not source.is_file():
                self._handle_missing(project_id, i, source)
                continue
            clips.append(normalize_clip(
                self.ffmpeg,
                source,
                ws.clip_path(i),
                section.duration,
                profile=self.profile,
            ))

        if not clips:
            raise MissingClipError(f"No clips available to render for project {project_id}")

        total = sum(c.expected_duration for c in clips)
        logger.info("[%s] %d clip(s) normalized, visual track %.2fs", project_id, len(clips), total)
        return clips

    def _handle_missing(self, project_id: str, index: int, source: Path | None) -> None:
        what = f"section {index}: " + (f"clip not found at {source}" if source else "no clip selected")
        if self.clip_policy is ClipPolicy.STRICT:
            raise MissingClipError(f"[{project_id}] {what}")
        logger.warning("[%s] Skipping %s", project_id, what)
