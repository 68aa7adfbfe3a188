from __future__ import annotations

import pytest
from click.testing import CliRunner

from conftest import FakeFFmpeg, make_section, make_words, write_clip

from reelsmith.models import ProjectStatus
from reelsmith.projects import ProjectStore
from reelsmith.runner import cli


@pytest.fixture
def workdir(tmp_path):
    (tmp_path / "config.yaml").write_text(
        "paths:\n  data_dir: data\n  upload_dir: uploads\nrender:\n  missing_clips: strict\n"
        "languages:\n  - code: en\n    name: English\n    script_model: openai/gpt-4o\n",
        encoding="utf-8",
    )
    return tmp_path


def _invoke(workdir, *args):
    return CliRunner().invoke(cli, ["--config", str(workdir / "config.yaml"), *args])


def _ready_project(workdir, ffmpeg: FakeFFmpeg):
    store = ProjectStore(workdir / "data")
    project = store.create("Tide pools")
    audio = workdir / "voice.mp3"
    audio.write_bytes(b"narration")
    ffmpeg.set_duration(audio, 9.0)
    project.audio_file_path = str(audio)
    project.captions = make_words(12, 9.0)
    project.visuals = []
    for vid, (start, end) in enumerate([(0.0, 4.0), (4.0, 9.0)], start=1):
        ffmpeg.set_duration(write_clip(workdir / "uploads", project.id, vid), end - start)
        project.visuals.append(make_section(start, end, vid))
    return store, store.save(project)


def test_new_then_status(workdir):
    result = _invoke(workdir, "new", "Quiet harbours", "--idea", "boats at dawn")
    assert result.exit_code == 0, result.output
    assert "Created project" in result.output

    [project] = ProjectStore(workdir / "data").list_projects()
    assert project.idea_text == "boats at dawn"
    assert project.current_step == 2

    result = _invoke(workdir, "status")
    assert result.exit_code == 0
    assert project.id in result.output


def test_status_empty(workdir):
    result = _invoke(workdir, "status")
    assert result.exit_code == 0
    assert "No projects found" in result.output


def test_missing_config(tmp_path):
    result = CliRunner().invoke(cli, ["--config", str(tmp_path / "absent.yaml"), "status"])
    assert result.exit_code == 1
    assert "Config not found" in result.output


def test_captions_command(workdir):
    store = ProjectStore(workdir / "data")
    project = store.create("t")
    project.captions = make_words(6, 3.0)
    store.save(project)
    out = workdir / "subs.srt"

    result = _invoke(workdir, "captions", project.id, "-o", str(out))

    assert result.exit_code == 0, result.output
    text = out.read_text(encoding="utf-8")
    assert text.startswith("1\n00:00:00,000 --> ")
    assert "w0 w1 w2 w3" in text


def test_render_command(workdir, monkeypatch):
    ffmpeg = FakeFFmpeg()
    monkeypatch.setattr("reelsmith.ffmpeg.FFmpeg", lambda *args: ffmpeg)
    store, project = _ready_project(workdir, ffmpeg)

    result = _invoke(workdir, "render", project.id)

    assert result.exit_code == 0, result.output
    saved = store.load(project.id)
    assert saved.status is ProjectStatus.COMPLETED
    assert saved.final_video_path == str(workdir.resolve() / "uploads" / "final" / project.id / "video.mp4")
    assert ffmpeg.labels() == ["normalize", "normalize", "concat", "mux"]


def test_render_command_failure(workdir, monkeypatch):
    ffmpeg = FakeFFmpeg(fail_on="mux")
    monkeypatch.setattr("reelsmith.ffmpeg.FFmpeg", lambda *args: ffmpeg)
    store, project = _ready_project(workdir, ffmpeg)

    result = _invoke(workdir, "render", project.id)

    assert result.exit_code == 1
    assert "Render failed during muxing" in result.output
    saved = store.load(project.id)
    assert saved.status is ProjectStatus.FAILED
    assert saved.error == "Render failed during muxing"


def test_render_unready_project(workdir, monkeypatch):
    monkeypatch.setattr("reelsmith.ffmpeg.FFmpeg", lambda *args: FakeFFmpeg())
    project = ProjectStore(workdir / "data").create("empty")

    result = _invoke(workdir, "render", project.id)

    assert result.exit_code == 1
    assert "no narration audio" in result.output


class _FakeLLM:
    def generate_script(self, system_prompt, model, idea, words=3000):
        return "Waves fold over the harbour wall."


class _FakeTranscriber:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def transcribe(self, audio_path):
        return make_words(3, 1.5)


def test_wizard_steps(workdir, monkeypatch):
    monkeypatch.setattr("reelsmith.clients.openrouter.build_client", lambda config: _FakeLLM())
    monkeypatch.setattr("reelsmith.clients.assemblyai.build_client", lambda config: _FakeTranscriber())
    store = ProjectStore(workdir / "data")
    project = store.create("Harbour", idea_text="boats at dawn")
    audio = workdir / "voice.mp3"
    audio.write_bytes(b"narration")

    result = _invoke(workdir, "script", project.id)
    assert result.exit_code == 0, result.output
    assert store.load(project.id).current_step == 2
    assert store.load(project.id).script_text == "Waves fold over the harbour wall."

    result = _invoke(workdir, "audio", project.id, str(audio))
    assert result.exit_code == 0, result.output
    assert store.load(project.id).current_step == 3

    result = _invoke(workdir, "transcribe", project.id)
    assert result.exit_code == 0, result.output
    saved = store.load(project.id)
    assert saved.current_step == 4
    assert [w.text for w in saved.captions] == ["w0", "w1", "w2"]


def test_precondition_error_is_not_a_config_error(workdir):
    project = ProjectStore(workdir / "data").create("No idea yet")

    result = _invoke(workdir, "script", project.id)

    assert result.exit_code == 1
    assert "Error: Project" in result.output
    assert "has no idea text" in result.output
    assert "Configuration error" not in result.output


def test_unknown_language_is_a_config_error(workdir):
    project = ProjectStore(workdir / "data").create("Fjords", language_code="no", idea_text="fjords")

    result = _invoke(workdir, "script", project.id)

    assert result.exit_code == 1
    assert "Configuration error: Language config not found: no" in result.output
