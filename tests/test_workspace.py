from __future__ import annotations

import pytest

from reelsmith.workspace import scratch_workspace


def test_paths(tmp_path):
    with scratch_workspace(tmp_path / "temp") as ws:
        assert ws.root.is_dir()
        assert ws.clip_path(7).name == "clip_007.mp4"
        assert ws.manifest_path.name == "concat_list.txt"
        assert ws.subtitle_path.name == "subtitles.srt"
        assert ws.merged_path.name == "merged.mp4"


def test_removed_after_success(tmp_path):
    root = tmp_path / "temp"
    with scratch_workspace(root) as ws:
        ws.merged_path.write_bytes(b"x")
    assert not root.exists()


def test_removed_after_exception(tmp_path):
    root = tmp_path / "temp"
    with pytest.raises(RuntimeError, match="boom"):
        with scratch_workspace(root) as ws:
            ws.clip_path(0).write_bytes(b"x")
            raise RuntimeError("boom")
    assert not root.exists()


def test_stale_directory_cleared(tmp_path):
    root = tmp_path / "temp"
    root.mkdir()
    (root / "clip_000.mp4").write_bytes(b"old")
    with scratch_workspace(root) as ws:
        assert list(ws.root.iterdir()) == []
