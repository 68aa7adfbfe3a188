"""Visual section planning and stock clip selection.

These steps fill ``VideoProject.visuals`` so that every section has a
downloaded clip before a render is submitted.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from reelsmith.clients.openrouter import OpenRouterClient
from reelsmith.clients.pexels import PexelsClient, best_video_file
from reelsmith.models import CaptionWord, LanguageConfig, SelectedVideo, VideoProject, VisualSection

logger = logging.getLogger(__name__)

RESULTS_PER_SECTION = 3


async def plan_visual_sections(
    llm: OpenRouterClient,
    stock: PexelsClient,
    captions: list[CaptionWord],
    language: LanguageConfig,
    results_per_section: int = RESULTS_PER_SECTION,
) -> list[VisualSection]:
    """Ask the LLM for sections, then search stock footage for each."""
    raw = await asyncio.to_thread(
        llm.generate_visual_sections,
        language.visual_system_prompt,
        language.visual_model,
        captions,
    )
    sections = [
        VisualSection(
            section_text=s.get("section_text", ""),
            search_query=s["search_query"],
            start_time=float(s["start_time"]),
            end_time=float(s["end_time"]),
        )
        for s in raw
    ]
    logger.info("Planned %d visual section(s)", len(sections))

    results = await asyncio.gather(
        *(stock.search_videos(s.search_query, results_per_section) for s in sections)
    )
    for section, videos in zip(sections, results):
        section.results = videos
    return sections


def _section(project: VideoProject, index: int) -> VisualSection:
    if not project.visuals:
        raise ValueError(f"Project {project.id} has no visual sections")
    if not 0 <= index < len(project.visuals):
        raise ValueError(f"Invalid section index {index} (project has {len(project.visuals)})")
    return project.visuals[index]


async def select_video(
    stock: PexelsClient,
    project: VideoProject,
    index: int,
    video_id: int,
    upload_dir: Path,
) -> VisualSection:
    """Download one of a section's search results and mark it selected.

    The clip is stored at ``<upload_dir>/visuals/<project_id>/<video_id>.mp4``.
    """
    section = _section(project, index)
    video = next((v for v in section.results if v.id == video_id), None)
    if video is None:
        raise ValueError(f"Video {video_id} is not among the results for section {index}")

    rendition = best_video_file(video)
    local_path = upload_dir / "visuals" / project.id / f"{video_id}.mp4"
    await stock.download_video(rendition.link, local_path)

    section.selected_video = SelectedVideo(
        id=video.id,
        url=rendition.link,
        width=video.width,
        height=video.height,
        local_path=str(local_path),
    )
    logger.info("Section %d: selected video %s (%dx%d)", index, video.id, rendition.width, rendition.height)
    return section


async def research_section(
    stock: PexelsClient,
    project: VideoProject,
    index: int,
    query: str,
    results_per_section: int = RESULTS_PER_SECTION,
) -> VisualSection:
    """Replace a section's search query and results."""
    section = _section(project, index)
    section.search_query = query
    section.results = await stock.search_videos(query, results_per_section)
    return section
