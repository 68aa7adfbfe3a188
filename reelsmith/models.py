"""Data models for the reelsmith render pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class RenderState(str, Enum):
    """Stages a single render invocation moves through."""
    PENDING = "pending"
    PROCESSING_CLIPS = "processing-clips"
    CONCATENATING = "concatenating"
    SUBTITLING = "subtitling"
    MUXING = "muxing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RenderState.DONE, RenderState.FAILED)


class ProjectStatus(str, Enum):
    """Persisted status of a video project."""
    IN_PROGRESS = "in_progress"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


class ClipPolicy(str, Enum):
    """What to do when a section's source clip is missing on disk."""
    STRICT = "strict"
    BEST_EFFORT = "best-effort"


@dataclass(frozen=True)
class CaptionWord:
    """A transcribed word with its timing.

    Attributes:
        text: The word as transcribed.
        start: Start time in seconds.
        end: End time in seconds.
        confidence: Transcription confidence in [0, 1].
    """
    text: str
    start: float
    end: float
    confidence: float = 1.0

    def to_dict(self) -> dict:
        return {
            "word": self.text,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CaptionWord:
        return cls(
            text=data.get("word", data.get("text", "")),
            start=float(data["start"]),
            end=float(data["end"]),
            confidence=float(data.get("confidence", 1.0)),
        )


@dataclass
class CaptionChunk:
    """A short run of consecutive words shown as one subtitle cue."""
    words: list[str]
    start: float
    end: float

    @property
    def text(self) -> str:
        return " ".join(self.words)


@dataclass
class StockVideoFile:
    """One rendition of a stock video."""
    id: int
    quality: str | None
    file_type: str
    width: int
    height: int
    link: str

    @classmethod
    def from_dict(cls, data: dict) -> StockVideoFile:
        return cls(
            id=data["id"],
            quality=data.get("quality"),
            file_type=data.get("file_type", "video/mp4"),
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            link=data["link"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quality": self.quality,
            "file_type": self.file_type,
            "width": self.width,
            "height": self.height,
            "link": self.link,
        }


@dataclass
class StockVideo:
    """A stock footage search result."""
    id: int
    width: int
    height: int
    url: str = ""
    image: str = ""
    duration: float = 0.0
    video_files: list[StockVideoFile] = field(default_factory=list)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    @classmethod
    def from_dict(cls, data: dict) -> StockVideo:
        return cls(
            id=data["id"],
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            url=data.get("url", ""),
            image=data.get("image", ""),
            duration=float(data.get("duration") or 0.0),
            video_files=[StockVideoFile.from_dict(f) for f in data.get("video_files", [])],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "url": self.url,
            "image": self.image,
            "duration": self.duration,
            "video_files": [f.to_dict() for f in self.video_files],
        }


@dataclass
class SelectedVideo:
    """The stock clip chosen for a section.

    Attributes:
        id: Stock provider video id.
        url: Download link of the chosen rendition.
        width: Source width in pixels.
        height: Source height in pixels.
        local_path: Where the downloaded clip was saved, if known.
    """
    id: int
    url: str
    width: int = 0
    height: int = 0
    local_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> SelectedVideo:
        return cls(
            id=data["id"],
            url=data.get("url", ""),
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            local_path=data.get("local_path"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "local_path": self.local_path,
        }


@dataclass
class VisualSection:
    """A contiguous time range of the narration covered by one clip."""
    section_text: str
    search_query: str
    start_time: float
    end_time: float
    selected_video: SelectedVideo | None = None
    results: list[StockVideo] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def is_selected(self) -> bool:
        return self.selected_video is not None

    @classmethod
    def from_dict(cls, data: dict) -> VisualSection:
        selected = data.get("selected_video", data.get("selected_pexels_video"))
        return cls(
            section_text=data.get("section_text", ""),
            search_query=data.get("search_query", ""),
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            selected_video=SelectedVideo.from_dict(selected) if selected else None,
            results=[
                StockVideo.from_dict(v)
                for v in data.get("results", data.get("pexels_results")) or []
            ],
        )

    def to_dict(self) -> dict:
        return {
            "section_text": self.section_text,
            "search_query": self.search_query,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "selected_video": self.selected_video.to_dict() if self.selected_video else None,
            "results": [v.to_dict() for v in self.results],
        }


@dataclass
class RenderRequest:
    """Everything a render needs from its caller."""
    project_id: str
    sections: list[VisualSection]
    audio_path: Path
    captions: list[CaptionWord]


@dataclass
class NormalizedClip:
    """A clip retimed to its section length."""
    source: Path
    path: Path
    native_duration: float
    target_duration: float
    speed_factor: float

    @property
    def expected_duration(self) -> float:
        """Duration after clamping; shorter than target when the clamp bites."""
        return min(self.target_duration, self.native_duration / self.speed_factor)


@dataclass
class LanguageConfig:
    """Per-language models and prompts for the LLM steps."""
    code: str
    name: str
    idea_model: str = ""
    idea_system_prompt: str = ""
    script_model: str = ""
    script_system_prompt: str = ""
    visual_model: str = ""
    visual_system_prompt: str = ""


@dataclass
class VideoProject:
    """A project record as persisted by the project store."""
    id: str
    title: str = ""
    language_code: str = "en"
    current_step: int = 1
    status: ProjectStatus = ProjectStatus.IN_PROGRESS
    idea_text: str | None = None
    script_text: str | None = None
    audio_file_path: str | None = None
    captions: list[CaptionWord] | None = None
    visuals: list[VisualSection] | None = None
    final_video_path: str | None = None
    error: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> VideoProject:
        captions = data.get("captions", data.get("captions_data"))
        visuals = data.get("visuals", data.get("visuals_data"))
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            language_code=data.get("language_code", "en"),
            current_step=int(data.get("current_step", 1)),
            status=ProjectStatus(data.get("status", ProjectStatus.IN_PROGRESS.value)),
            idea_text=data.get("idea_text"),
            script_text=data.get("script_text"),
            audio_file_path=data.get("audio_file_path"),
            captions=[CaptionWord.from_dict(c) for c in captions] if captions is not None else None,
            visuals=[VisualSection.from_dict(v) for v in visuals] if visuals is not None else None,
            final_video_path=data.get("final_video_path"),
            error=data.get("error"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "language_code": self.language_code,
            "current_step": self.current_step,
            "status": self.status.value,
            "idea_text": self.idea_text,
            "script_text": self.script_text,
            "audio_file_path": self.audio_file_path,
            "captions": [c.to_dict() for c in self.captions] if self.captions is not None else None,
            "visuals": [v.to_dict() for v in self.visuals] if self.visuals is not None else None,
            "final_video_path": self.final_video_path,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
