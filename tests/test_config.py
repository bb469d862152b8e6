"""Tests for config.py -- defaults, env var overrides."""

from pathlib import Path

import pytest

from m4b_maker.config import PipelineConfig

# Env vars that pydantic-settings reads -- must be cleaned for default tests
_CONFIG_ENV_VARS = [
    "WORK_DIR", "LOG_DIR", "VERBOSE", "LOG_LEVEL", "CLEANUP_WORK_DIR",
    "KEEP_GOING", "VERIFY_TAGS", "PUBLISHER_TOKENS", "DEFAULT_COVER_URL",
    "ENCODE_QUALITY", "SETTLE_INTERVAL", "SETTLE_TIMEOUT",
    "TOOL_TIMEOUT", "DOWNLOAD_TIMEOUT", "FAAC_BIN", "MP3WRAP_BIN",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove pipeline env vars so defaults tests see actual defaults."""
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_default_values(self):
        config = PipelineConfig(_env_file=None)
        assert config.work_dir is None
        assert config.cleanup_work_dir is True
        assert config.keep_going is False
        assert config.verify_tags is False
        assert config.log_level == "INFO"
        assert config.encode_quality == 80
        assert config.tool_timeout == 0

    def test_default_tools(self):
        config = PipelineConfig(_env_file=None)
        assert config.mp3wrap_bin == "mp3wrap"
        assert config.mplayer_bin == "mplayer"
        assert config.faac_bin == "faac"
        assert config.unzip_bin == "unzip"
        assert config.identify_bin == "identify"
        assert config.convert_bin == "convert"

    def test_publisher_tokens(self):
        config = PipelineConfig(_env_file=None)
        assert config.publisher_tokens == ["librivox"]


class TestOverrides:
    def test_constructor_override(self):
        config = PipelineConfig(_env_file=None, keep_going=True, encode_quality=100)
        assert config.keep_going is True
        assert config.encode_quality == 100

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("ENCODE_QUALITY", "60")
        monkeypatch.setenv("VERIFY_TAGS", "true")
        config = PipelineConfig(_env_file=None)
        assert config.encode_quality == 60
        assert config.verify_tags is True

    def test_path_from_env(self, monkeypatch):
        monkeypatch.setenv("WORK_DIR", "/tmp/test-work")
        config = PipelineConfig(_env_file=None)
        assert config.work_dir == Path("/tmp/test-work")

    def test_list_from_env(self, monkeypatch):
        monkeypatch.setenv("PUBLISHER_TOKENS", '["librivox", "gutenberg"]')
        config = PipelineConfig(_env_file=None)
        assert config.publisher_tokens == ["librivox", "gutenberg"]

    def test_tool_path_from_env(self, monkeypatch):
        monkeypatch.setenv("FAAC_BIN", "/opt/faac/bin/faac")
        config = PipelineConfig(_env_file=None)
        assert config.faac_bin == "/opt/faac/bin/faac"
