"""Async client for the Pexels stock video API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from reelsmith.clients.base import ApiError, AsyncApiClient
from reelsmith.config import get_api_key
from reelsmith.models import StockVideo, StockVideoFile

logger = logging.getLogger(__name__)

_PEXELS_BASE = "https://api.pexels.com/videos"
_TARGET_RATIO = 16 / 9
_RATIO_TOLERANCE = 0.05


def _is_widescreen(width: int, height: int) -> bool:
    return height > 0 and abs(width / height - _TARGET_RATIO) < _RATIO_TOLERANCE


def best_video_file(video: StockVideo) -> StockVideoFile:
    """Pick the rendition to download for ``video``.

    Preference: 1920x1080, then any HD 16:9, then the widest 16:9, then the
    widest file of any ratio.

    Raises:
        ValueError: If the video has no files.
    """
    if not video.video_files:
        raise ValueError(f"Stock video {video.id} has no downloadable files")

    widescreen = [f for f in video.video_files if _is_widescreen(f.width, f.height)]

    for f in widescreen:
        if f.width == 1920 and f.height == 1080:
            return f
    for f in widescreen:
        if f.quality == "hd":
            return f
    if widescreen:
        return max(widescreen, key=lambda f: f.width)
    return max(video.video_files, key=lambda f: f.width)


class PexelsClient(AsyncApiClient):
    """Search and download stock clips.

    Usage::

        async with PexelsClient(api_key="...") as client:
            videos = await client.search_videos("ocean waves", per_page=3)
            await client.download_video(best_video_file(videos[0]).link, "clip.mp4")
    """

    def __init__(self, api_key: str, base_url: str = _PEXELS_BASE, **kwargs: Any) -> None:
        super().__init__(base_url, headers={"Authorization": api_key}, **kwargs)

    async def search_videos(self, query: str, per_page: int = 5) -> list[StockVideo]:
        """Search landscape videos and keep those close to 16:9."""
        logger.info("Searching stock videos: %r", query)
        response = await self._request_with_retry(
            "GET",
            "/search",
            params={"query": query, "per_page": per_page * 2, "orientation": "landscape"},
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise ApiError(f"Invalid JSON from Pexels search: {response.text[:200]}") from exc

        videos = [StockVideo.from_dict(v) for v in data.get("videos", [])]
        widescreen = [v for v in videos if _is_widescreen(v.width, v.height)]
        logger.debug("Query %r: %d results, %d widescreen", query, len(videos), len(widescreen))
        return widescreen[:per_page]

    async def download_video(self, url: str, output_path: str | Path) -> Path:
        return await self.download_file(url, output_path)


def build_client(config: dict, **kwargs: Any) -> PexelsClient:
    pexels = config.get("pexels") or {}
    return PexelsClient(
        api_key=get_api_key(config, "pexels"),
        base_url=pexels.get("base_url", _PEXELS_BASE),
        **kwargs,
    )
