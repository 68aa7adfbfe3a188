"""JSON-backed project records and render preconditions.

Structure:
    <data_dir>/projects/
        <project_id>.json      # one VideoProject per file
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from reelsmith.models import ProjectStatus, RenderRequest, VideoProject

logger = logging.getLogger(__name__)

FINAL_STEP = 7


class ProjectNotFoundError(FileNotFoundError):
    """Raised when a project id has no record."""


class ProjectNotReadyError(ValueError):
    """Raised when a project lacks the data a render needs."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectStore:
    """Loads and saves project records as JSON files."""

    def __init__(self, data_dir: Path) -> None:
        self.projects_dir = Path(data_dir) / "projects"

    def path(self, project_id: str) -> Path:
        return self.projects_dir / f"{project_id}.json"

    def exists(self, project_id: str) -> bool:
        return self.path(project_id).exists()

    def load(self, project_id: str) -> VideoProject:
        path = self.path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        with open(path, "r", encoding="utf-8") as f:
            return VideoProject.from_dict(json.load(f))

    def save(self, project: VideoProject) -> VideoProject:
        project.updated_at = _now()
        if not project.created_at:
            project.created_at = project.updated_at
        self.projects_dir.mkdir(parents=True, exist_ok=True)
        path = self.path(project.id)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(project.to_dict(), f, indent=2, ensure_ascii=False)
        tmp.replace(path)
        return project

    def create(self, title: str, language_code: str = "en", idea_text: str | None = None) -> VideoProject:
        project = VideoProject(
            id=uuid.uuid4().hex[:12],
            title=title,
            language_code=language_code,
            idea_text=idea_text,
        )
        logger.info("Created project %s (%s)", project.id, title)
        return self.save(project)

    def list_projects(self) -> list[VideoProject]:
        if not self.projects_dir.exists():
            return []
        projects = []
        for path in sorted(self.projects_dir.glob("*.json")):
            with open(path, "r", encoding="utf-8") as f:
                projects.append(VideoProject.from_dict(json.load(f)))
        return projects

    # ------------------------------------------------------------------
    # Render status
    # ------------------------------------------------------------------

    def mark_rendering(self, project_id: str) -> VideoProject:
        project = self.load(project_id)
        project.status = ProjectStatus.RENDERING
        project.error = None
        return self.save(project)

    def mark_completed(self, project_id: str, video_path: Path) -> VideoProject:
        project = self.load(project_id)
        project.status = ProjectStatus.COMPLETED
        project.final_video_path = str(video_path)
        project.current_step = FINAL_STEP
        project.error = None
        return self.save(project)

    def mark_failed(self, project_id: str, error: str) -> VideoProject:
        project = self.load(project_id)
        project.status = ProjectStatus.FAILED
        project.error = error
        return self.save(project)


def build_render_request(project: VideoProject) -> RenderRequest:
    """Check a project is ready to render and package its inputs.

    Raises:
        ProjectNotReadyError: If audio, captions or visuals are missing, or
            any section has no selected clip. An empty caption list is
            accepted and renders without subtitles.
    """
    if not project.audio_file_path:
        raise ProjectNotReadyError(f"Project {project.id} has no narration audio")
    if project.captions is None:
        raise ProjectNotReadyError(f"Project {project.id} has no captions")
    if not project.visuals:
        raise ProjectNotReadyError(f"Project {project.id} has no visual sections")

    unselected = [i for i, s in enumerate(project.visuals) if not s.is_selected]
    if unselected:
        raise ProjectNotReadyError(
            f"Project {project.id}: select videos for all sections "
            f"(missing: {', '.join(str(i) for i in unselected)})"
        )

    return RenderRequest(
        project_id=project.id,
        sections=project.visuals,
        audio_path=Path(project.audio_file_path),
        captions=project.captions,
    )
