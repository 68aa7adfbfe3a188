"""Project-scoped scratch directory for one render."""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass
class ScratchWorkspace:
    """Paths of the intermediates produced during a render."""
    root: Path

    def clip_path(self, index: int) -> Path:
        return self.root / f"clip_{index:03d}.mp4"

    @property
    def manifest_path(self) -> Path:
        return self.root / "concat_list.txt"

    @property
    def subtitle_path(self) -> Path:
        return self.root / "subtitles.srt"

    @property
    def merged_path(self) -> Path:
        return self.root / "merged.mp4"


@contextmanager
def scratch_workspace(root: Path) -> Iterator[ScratchWorkspace]:
    """Create ``root`` fresh and remove it on every exit path.

    Leftovers from an earlier aborted run are cleared first. A failure to
    clean up is logged and does not mask the render's own outcome.
    """
    if root.exists():
        logger.warning("Removing stale scratch directory %s", root)
        shutil.rmtree(root)
    root.mkdir(parents=True)
    try:
        yield ScratchWorkspace(root=root)
    finally:
        logger.info("Cleaning up scratch directory %s", root)
        try:
            shutil.rmtree(root)
        except OSError as exc:
            logger.error("Failed to remove scratch directory %s: %s", root, exc)
