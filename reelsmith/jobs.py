"""Background render jobs with an awaitable, pollable handle.

``RenderJobManager.submit`` marks the project as rendering, starts the
blocking orchestrator in a worker thread and returns immediately. The
project's persisted status (rendering -> completed | failed) is updated when
the job ends; callers that want to block simply ``await job.wait()``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from reelsmith.models import RenderRequest, RenderState
from reelsmith.projects import ProjectStore, build_render_request
from reelsmith.renderer import RenderError, RenderOrchestrator

logger = logging.getLogger(__name__)


class RenderAlreadyRunningError(RuntimeError):
    """Raised when a project already has a render in flight."""


@dataclass
class RenderJob:
    """Handle for one submitted render.

    Attributes:
        project_id: Project being rendered.
        state: Last stage reported by the orchestrator.
        result: Final video path once the job succeeded.
        error: The exception that ended the job, if it failed.
    """
    project_id: str
    state: RenderState = RenderState.PENDING
    result: Path | None = None
    error: Exception | None = None
    _task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None and self.result is not None

    def _set_state(self, state: RenderState) -> None:
        self.state = state

    async def wait(self) -> Path:
        """Block until the job ends; return the video path or raise its error."""
        if self._task is None:
            raise RuntimeError(f"Job for {self.project_id} was never started")
        await asyncio.shield(self._task)
        if self.error is not None:
            raise self.error
        if self.result is None:
            raise RuntimeError(f"Job for {self.project_id} finished without a result")
        return self.result


class RenderJobManager:
    """Starts renders in the background and tracks one job per project."""

    def __init__(self, orchestrator: RenderOrchestrator, store: ProjectStore) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self._jobs: dict[str, RenderJob] = {}

    def get(self, project_id: str) -> RenderJob | None:
        return self._jobs.get(project_id)

    def submit_project(self, project_id: str) -> RenderJob:
        """Load a project, check it is ready and submit it.

        Raises:
            ProjectNotFoundError: Unknown project id.
            ProjectNotReadyError: Missing audio, captions or selections.
            RenderAlreadyRunningError: A render for this project is in flight.
        """
        project = self.store.load(project_id)
        return self.submit(build_render_request(project))

    def submit(self, request: RenderRequest) -> RenderJob:
        """Start rendering ``request``; must be called from a running event loop."""
        existing = self._jobs.get(request.project_id)
        if existing is not None and not existing.done:
            raise RenderAlreadyRunningError(
                f"Project {request.project_id} is already rendering ({existing.state.value})"
            )

        loop = asyncio.get_running_loop()
        self.store.mark_rendering(request.project_id)

        job = RenderJob(project_id=request.project_id)
        job._task = loop.create_task(self._run(job, request))
        self._jobs[request.project_id] = job
        logger.info("Render job started for project %s", request.project_id)
        return job

    async def _run(self, job: RenderJob, request: RenderRequest) -> None:
        try:
            path = await asyncio.to_thread(
                self.orchestrator.render_request, request, job._set_state,
            )
            self.store.mark_completed(request.project_id, path)
            job.result = path
            logger.info("Render job completed for project %s: %s", request.project_id, path)
        except Exception as exc:
            job.error = exc
            job.state = RenderState.FAILED
            logger.error("Render job failed for project %s: %s", request.project_id, exc)
            self._record_failure(request.project_id, exc)

    def _record_failure(self, project_id: str, exc: Exception) -> None:
        if isinstance(exc, RenderError):
            message = f"Render failed during {exc.stage.value}"
        else:
            message = "Render failed"
        try:
            self.store.mark_failed(project_id, message)
        except OSError as store_exc:
            logger.error("Could not record failure for project %s: %s", project_id, store_exc)
