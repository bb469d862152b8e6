"""Tests for concat stage."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from m4b_maker.config import PipelineConfig
from m4b_maker.errors import ConcatenationError, ExternalToolError
from m4b_maker.stages.concat import find_tracks, run, wait_until_stable


def _ok():
    return subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")


def _make_tracks(track_dir: Path, names: list[str]) -> None:
    track_dir.mkdir(parents=True, exist_ok=True)
    for name in names:
        (track_dir / name).write_bytes(b"\xff\xfb" + name.encode())


def _fake_mp3wrap(suffix="_MP3WRAP"):
    """Write the merged file the way mp3wrap names it."""

    def _run_tool(args, **kwargs):
        out = Path(args[1])
        out.with_name(f"{out.stem}{suffix}{out.suffix}").write_bytes(b"merged audio")
        return _ok()

    return _run_tool


class TestConcatStage:
    def _make_config(self):
        return PipelineConfig(_env_file=None, settle_interval=0.01, settle_timeout=2)

    @patch("m4b_maker.stages.concat.run_tool")
    def test_renames_suffixed_output(self, mock_tool, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["ch_01.mp3", "ch_02.mp3"])
        mock_tool.side_effect = _fake_mp3wrap()

        merged = run(tmp_path / "mp3s", tmp_path, self._make_config())

        assert merged == tmp_path / "merged.mp3"
        assert merged.read_bytes() == b"merged audio"
        assert not (tmp_path / "merged_MP3WRAP.mp3").exists()

    @patch("m4b_maker.stages.concat.run_tool")
    def test_accepts_unsuffixed_output(self, mock_tool, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["a.mp3", "b.mp3"])
        mock_tool.side_effect = _fake_mp3wrap(suffix="")

        assert run(tmp_path / "mp3s", tmp_path, self._make_config()).exists()

    @patch("m4b_maker.stages.concat.run_tool")
    def test_tracks_passed_in_natural_order(self, mock_tool, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["track10.mp3", "track2.mp3", "track1.MP3"])
        mock_tool.side_effect = _fake_mp3wrap()

        run(tmp_path / "mp3s", tmp_path, self._make_config())

        args = mock_tool.call_args.args[0]
        assert args[0] == "mp3wrap"
        assert [Path(a).name for a in args[2:]] == ["track1.MP3", "track2.mp3", "track10.mp3"]

    @patch("m4b_maker.stages.concat.run_tool")
    def test_single_track_copied(self, mock_tool, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["only.mp3"])

        merged = run(tmp_path / "mp3s", tmp_path, self._make_config())

        mock_tool.assert_not_called()
        assert merged.read_bytes() == (tmp_path / "mp3s" / "only.mp3").read_bytes()

    def test_no_tracks(self, tmp_path):
        (tmp_path / "mp3s").mkdir()
        (tmp_path / "mp3s" / "readme.txt").write_text("hi")
        with pytest.raises(ConcatenationError, match="No MP3 tracks"):
            run(tmp_path / "mp3s", tmp_path, self._make_config())

    @patch("m4b_maker.stages.concat.run_tool", return_value=_ok())
    def test_no_output_produced(self, mock_tool, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["a.mp3", "b.mp3"])
        with pytest.raises(ConcatenationError, match="neither"):
            run(tmp_path / "mp3s", tmp_path, self._make_config())

    @patch("m4b_maker.stages.concat.run_tool")
    def test_tool_failure(self, mock_tool, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["a.mp3", "b.mp3"])
        mock_tool.side_effect = ExternalToolError("mp3wrap", 1, "bad frame")
        with pytest.raises(ConcatenationError, match="bad frame"):
            run(tmp_path / "mp3s", tmp_path, self._make_config())

    @patch("m4b_maker.stages.concat.shutil.copyfile")
    def test_single_track_copy_failure(self, mock_copy, tmp_path):
        _make_tracks(tmp_path / "mp3s", ["only.mp3"])
        mock_copy.side_effect = OSError(28, "No space left on device")
        with pytest.raises(ConcatenationError, match="No space left"):
            run(tmp_path / "mp3s", tmp_path, self._make_config())


class TestFindTracks:
    def _relative(self, root):
        return [t.relative_to(root).as_posix() for t in find_tracks(root)]

    def test_recurses_into_subdirs(self, tmp_path):
        _make_tracks(tmp_path / "cd1", ["01.mp3"])
        _make_tracks(tmp_path / "cd2", ["02.mp3"])
        assert [t.name for t in find_tracks(tmp_path)] == ["01.mp3", "02.mp3"]

    def test_disc_folders_not_interleaved(self, tmp_path):
        _make_tracks(tmp_path / "disc2", ["01.mp3", "02.mp3"])
        _make_tracks(tmp_path / "disc1", ["02.mp3", "01.mp3"])
        assert self._relative(tmp_path) == [
            "disc1/01.mp3",
            "disc1/02.mp3",
            "disc2/01.mp3",
            "disc2/02.mp3",
        ]

    def test_folders_sorted_naturally(self, tmp_path):
        _make_tracks(tmp_path / "disc10", ["01.mp3"])
        _make_tracks(tmp_path / "disc9", ["01.mp3"])
        assert self._relative(tmp_path) == ["disc9/01.mp3", "disc10/01.mp3"]

    def test_skips_macos_metadata(self, tmp_path):
        _make_tracks(tmp_path / "book", ["01.mp3", "._01.mp3"])
        _make_tracks(tmp_path / "__MACOSX" / "book", ["._01.mp3"])
        assert self._relative(tmp_path) == ["book/01.mp3"]

    def test_skips_hidden_dirs(self, tmp_path):
        _make_tracks(tmp_path / ".trash", ["01.mp3"])
        _make_tracks(tmp_path, ["02.mp3"])
        assert self._relative(tmp_path) == ["02.mp3"]


class TestWaitUntilStable:
    def test_stable_file(self, tmp_path):
        f = tmp_path / "merged.mp3"
        f.write_bytes(b"1234")
        assert wait_until_stable(f, interval=0.01, timeout=1) == 4

    def test_missing_file_times_out(self, tmp_path):
        with pytest.raises(ConcatenationError, match="did not settle"):
            wait_until_stable(tmp_path / "merged.mp3", interval=0.01, timeout=0.05)

    def test_empty_file_times_out(self, tmp_path):
        f = tmp_path / "merged.mp3"
        f.write_bytes(b"")
        with pytest.raises(ConcatenationError):
            wait_until_stable(f, interval=0.01, timeout=0.05)
