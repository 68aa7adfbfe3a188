"""Shared fixtures: a fake ffmpeg that tracks durations instead of encoding."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from reelsmith.ffmpeg import FFmpegError
from reelsmith.models import CaptionWord, SelectedVideo, VisualSection

_SETPTS_RE = re.compile(r"setpts=([0-9.]+)\*PTS")
_MANIFEST_RE = re.compile(r"^file '(.*)'$")


def _key(path) -> str:
    return str(Path(path).resolve())


class FakeFFmpeg:
    """Records every invocation and writes placeholder outputs.

    Durations are tracked per path so a test can check what the real encoder
    would have produced: normalize outputs are ``min(-t, native * setpts)``,
    concat outputs are the sum of their inputs, mux outputs keep the video
    and audio durations of their inputs.
    """

    def __init__(self, default_duration: float = 10.0, fail_on: str | None = None) -> None:
        self.default_duration = default_duration
        self.fail_on = fail_on
        self.durations: dict[str, float] = {}
        self.audio_durations: dict[str, float] = {}
        self.calls: list[tuple[str, list[str]]] = []
        self.probed: list[Path] = []

    def check_available(self) -> None:
        pass

    def set_duration(self, path: Path, seconds: float) -> None:
        self.durations[_key(path)] = seconds

    def probe_duration(self, path: Path) -> float:
        self.probed.append(Path(path))
        if self.fail_on == "probe":
            raise FFmpegError(f"ffprobe failed for {path}")
        return self.durations.get(_key(path), self.default_duration)

    def run(self, args: list[str], label: str = "ffmpeg") -> None:
        self.calls.append((label, list(args)))
        if self.fail_on and label.startswith(self.fail_on):
            raise FFmpegError(f"{label} failed (exit 1): boom", cmd=args, returncode=1, stderr="boom")

        output = Path(args[-1])
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(b"fake media")

        inputs = [args[i + 1] for i, a in enumerate(args) if a == "-i"]
        if "concat" in args:
            total = 0.0
            for line in Path(inputs[0]).read_text(encoding="utf-8").splitlines():
                m = _MANIFEST_RE.match(line)
                total += self.durations.get(_key(m.group(1).replace("'\\''", "'")), 0.0)
            self.durations[_key(output)] = total
        elif "-t" in args:
            target = float(args[args.index("-t") + 1])
            factor = float(_SETPTS_RE.search(args[args.index("-vf") + 1]).group(1))
            native = self.durations.get(_key(inputs[0]), self.default_duration)
            self.durations[_key(output)] = min(target, native * factor)
        elif len(inputs) == 2:
            self.durations[_key(output)] = self.durations.get(_key(inputs[0]), 0.0)
            self.audio_durations[_key(output)] = self.durations.get(_key(inputs[1]), 0.0)

    def labels(self) -> list[str]:
        return [label.split()[0] for label, _ in self.calls]


@pytest.fixture
def fake_ffmpeg() -> FakeFFmpeg:
    return FakeFFmpeg()


def make_words(count: int, total: float) -> list[CaptionWord]:
    """``count`` evenly spaced words spanning ``[0, total]``."""
    step = total / count
    return [
        CaptionWord(text=f"w{i}", start=round(i * step, 3), end=round(i * step + step * 0.8, 3), confidence=0.9)
        for i in range(count)
    ]


def make_section(start: float, end: float, video_id: int | None, local_path: Path | None = None) -> VisualSection:
    selected = None
    if video_id is not None:
        selected = SelectedVideo(
            id=video_id,
            url=f"https://videos.example/{video_id}.mp4",
            width=1920,
            height=1080,
            local_path=str(local_path) if local_path else None,
        )
    return VisualSection(
        section_text=f"section {start}-{end}",
        search_query="ocean",
        start_time=start,
        end_time=end,
        selected_video=selected,
    )


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


def write_clip(upload_dir: Path, project_id: str, video_id: int) -> Path:
    path = upload_dir / "visuals" / project_id / f"{video_id}.mp4"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"source clip")
    return path
