"""Tests for the per-job workspace."""

import os
import stat

import pytest

from m4b_maker.config import PipelineConfig
from m4b_maker.workspace import create_workspace, remove_workspace, workspace


class TestCreateWorkspace:
    def test_owner_only_and_pid_keyed(self, tmp_path):
        config = PipelineConfig(_env_file=None, work_dir=tmp_path / "work")
        ws = create_workspace(config)
        assert ws.parent == tmp_path / "work"
        assert f"-{os.getpid()}-" in ws.name
        assert stat.S_IMODE(ws.stat().st_mode) == 0o700

    def test_unique_per_call(self, tmp_path):
        config = PipelineConfig(_env_file=None, work_dir=tmp_path)
        assert create_workspace(config) != create_workspace(config)


class TestWorkspaceContext:
    def test_removed_on_success(self, tmp_path):
        config = PipelineConfig(_env_file=None, work_dir=tmp_path)
        with workspace(config) as ws:
            (ws / "mp3s").mkdir()
            (ws / "mp3s" / "01.mp3").write_bytes(b"x")
        assert not ws.exists()

    def test_removed_on_failure(self, tmp_path):
        config = PipelineConfig(_env_file=None, work_dir=tmp_path)
        with pytest.raises(RuntimeError):
            with workspace(config) as ws:
                (ws / "merged.mp3").write_bytes(b"x")
                raise RuntimeError("stage failed")
        assert not ws.exists()

    def test_kept_when_cleanup_disabled(self, tmp_path):
        config = PipelineConfig(_env_file=None, work_dir=tmp_path, cleanup_work_dir=False)
        with workspace(config) as ws:
            pass
        assert ws.exists()

    def test_remove_missing_is_noop(self, tmp_path):
        remove_workspace(tmp_path / "gone")
