from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import make_section, make_words

from reelsmith.models import LanguageConfig, StockVideo, StockVideoFile, VideoProject
from reelsmith.visuals import plan_visual_sections, research_section, select_video


class FakeLLM:
    def __init__(self, sections):
        self.sections = sections
        self.calls = []

    def generate_visual_sections(self, system_prompt, model, captions):
        self.calls.append((system_prompt, model, len(captions)))
        return self.sections


class FakeStock:
    def __init__(self):
        self.queries = []
        self.downloads = []

    async def search_videos(self, query, per_page=5):
        self.queries.append((query, per_page))
        return [
            StockVideo(
                id=hash(query) % 1000 + i,
                width=1920,
                height=1080,
                video_files=[StockVideoFile(id=1, quality="hd", file_type="video/mp4",
                                            width=1920, height=1080, link=f"https://cdn.example/{query}/{i}.mp4")],
            )
            for i in range(per_page)
        ]

    async def download_video(self, url, output_path):
        self.downloads.append(url)
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"clip")
        return path


LANG = LanguageConfig(code="en", name="English", visual_model="openai/gpt-4o-mini", visual_system_prompt="editor")


def test_plan_visual_sections():
    llm = FakeLLM([
        {"section_text": "dawn", "search_query": "sunrise", "start_time": 0, "end_time": 5.5},
        {"section_text": "sea", "search_query": "waves", "start_time": 5.5, "end_time": 12},
    ])
    stock = FakeStock()

    sections = asyncio.run(plan_visual_sections(llm, stock, make_words(20, 12.0), LANG, results_per_section=2))

    assert llm.calls == [("editor", "openai/gpt-4o-mini", 20)]
    assert [(s.search_query, s.start_time, s.end_time) for s in sections] == [
        ("sunrise", 0.0, 5.5), ("waves", 5.5, 12.0),
    ]
    assert sorted(stock.queries) == [("sunrise", 2), ("waves", 2)]
    assert all(len(s.results) == 2 and not s.is_selected for s in sections)


def _project_with_results() -> VideoProject:
    stock = FakeStock()
    section = make_section(0.0, 5.0, None)
    section.results = asyncio.run(stock.search_videos("forest", 3))
    return VideoProject(id="p9", visuals=[section])


def test_select_video_downloads_and_marks(upload_dir):
    project = _project_with_results()
    video = project.visuals[0].results[1]
    stock = FakeStock()

    section = asyncio.run(select_video(stock, project, 0, video.id, upload_dir))

    expected = upload_dir / "visuals" / "p9" / f"{video.id}.mp4"
    assert expected.exists()
    assert section.selected_video.id == video.id
    assert section.selected_video.local_path == str(expected)
    assert stock.downloads == ["https://cdn.example/forest/1.mp4"]


@pytest.mark.parametrize("index,video_id", [(3, 0), (-1, 0), (0, 99999)])
def test_select_video_rejects_bad_choice(upload_dir, index, video_id):
    project = _project_with_results()
    with pytest.raises(ValueError):
        asyncio.run(select_video(FakeStock(), project, index, video_id, upload_dir))


def test_research_section_replaces_query():
    project = _project_with_results()
    stock = FakeStock()

    section = asyncio.run(research_section(stock, project, 0, "mountain lake"))

    assert section.search_query == "mountain lake"
    assert stock.queries == [("mountain lake", 3)]
    assert project.visuals[0] is section
