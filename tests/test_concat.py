from __future__ import annotations

import pytest

from reelsmith.concat import MissingClipError, concatenate_clips, write_concat_manifest


def _touch(path):
    path.write_bytes(b"clip")
    return path


def test_manifest_keeps_list_order(tmp_path):
    clips = [_touch(tmp_path / name) for name in ("c.mp4", "a.mp4", "b.mp4")]
    manifest = write_concat_manifest(clips, tmp_path / "list.txt")

    lines = manifest.read_text(encoding="utf-8").splitlines()
    assert lines == [f"file '{(tmp_path / n).resolve()}'" for n in ("c.mp4", "a.mp4", "b.mp4")]


def test_manifest_escapes_single_quotes(tmp_path):
    clip = _touch(tmp_path / "it's.mp4")
    manifest = write_concat_manifest([clip], tmp_path / "list.txt")
    assert manifest.read_text(encoding="utf-8").strip().endswith("it'\\''s.mp4'")


def test_concatenate_sums_durations(fake_ffmpeg, tmp_path):
    clips = [_touch(tmp_path / f"clip_{i:03d}.mp4") for i in range(3)]
    for clip, seconds in zip(clips, (5.0, 10.0, 8.0)):
        fake_ffmpeg.set_duration(clip, seconds)

    out = concatenate_clips(fake_ffmpeg, clips, tmp_path / "merged.mp4")

    assert out.exists()
    assert fake_ffmpeg.durations[str(out.resolve())] == pytest.approx(23.0)
    label, args = fake_ffmpeg.calls[0]
    assert label == "concat"
    assert args[:4] == ["-f", "concat", "-safe", "0"]
    assert args[args.index("-c") + 1] == "copy"
    assert (tmp_path / "concat_list.txt").exists()


def test_empty_clip_list_rejected(fake_ffmpeg, tmp_path):
    with pytest.raises(ValueError):
        concatenate_clips(fake_ffmpeg, [], tmp_path / "merged.mp4")
    assert fake_ffmpeg.calls == []


def test_missing_clip_rejected(fake_ffmpeg, tmp_path):
    present = _touch(tmp_path / "a.mp4")
    with pytest.raises(MissingClipError, match="gone.mp4"):
        concatenate_clips(fake_ffmpeg, [present, tmp_path / "gone.mp4"], tmp_path / "merged.mp4")
    assert fake_ffmpeg.calls == []
